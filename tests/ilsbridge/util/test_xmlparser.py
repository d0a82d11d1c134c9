import pytest
from lxml import etree

from ilsbridge.util.xmlparser import XMLParser


class TestXMLParser:
    def test_load_xml(self) -> None:
        root = XMLParser._load_xml("<bibs><bib><mms_id>1</mms_id></bib></bibs>")
        assert root.tag == "bibs"

        # Null bytes are dropped before parsing.
        root = XMLParser._load_xml(b"<item>a\x00b</item>")
        assert root.text == "ab"

    @pytest.mark.parametrize(
        "document",
        [
            pytest.param("<garbage><foo>bar</ga", id="truncated"),
            pytest.param("{}", id="json"),
        ],
    )
    def test_load_xml_invalid(self, document: str) -> None:
        with pytest.raises(etree.XMLSyntaxError):
            XMLParser._load_xml(document)

    def test_entities_not_resolved(self) -> None:
        document = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE foo [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>'
            "<foo>&xxe;</foo>"
        )
        root = XMLParser._load_xml(document)
        assert "root:" not in etree.tostring(root, encoding="unicode")

    def test_subtags(self) -> None:
        root = XMLParser._load_xml(
            "<bib><mms_id>991</mms_id><isbn>1</isbn><isbn/></bib>"
        )
        assert XMLParser.text_of_optional_subtag(root, "mms_id") == "991"
        assert XMLParser.text_of_optional_subtag(root, "title") is None
        assert XMLParser._xpath1(root, "title") is None
        assert len(XMLParser._xpath(root, "isbn")) == 2
