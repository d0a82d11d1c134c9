from __future__ import annotations

from typing import TYPE_CHECKING

from lxml import etree

if TYPE_CHECKING:
    from lxml.etree import _Element


class XMLParser:
    """Helper functions to process XML data."""

    NAMESPACES: dict[str, str] = {}

    @classmethod
    def _xpath(
        cls, tag: _Element, expression: str, namespaces: dict[str, str] | None = None
    ) -> list[_Element]:
        """Wrapper to do a namespaced XPath expression."""
        if not namespaces:
            namespaces = cls.NAMESPACES
        return tag.xpath(expression, namespaces=namespaces)  # type: ignore[no-any-return]

    @classmethod
    def _xpath1(
        cls, tag: _Element, expression: str, namespaces: dict[str, str] | None = None
    ) -> _Element | None:
        """Wrapper to do a namespaced XPath expression."""
        values = cls._xpath(tag, expression, namespaces=namespaces)
        if not values:
            return None
        return values[0]

    @classmethod
    def text_of_optional_subtag(
        cls, tag: _Element, name: str, namespaces: dict[str, str] | None = None
    ) -> str | None:
        found = cls._xpath1(tag, name, namespaces=namespaces)
        if found is None or found.text is None:
            return None
        return str(found.text)

    @staticmethod
    def _load_xml(xml: str | bytes) -> _Element:
        """
        Parse an XML document from string or bytes and return its root element.

        Unlike a recovering parser, this raises etree.XMLSyntaxError for
        anything that is not well-formed XML, so callers can tell a garbled
        body apart from an empty document.
        """
        if isinstance(xml, str):
            xml = xml.encode("utf8")

        # libxml2 stops processing a document at the null character. Remove
        # it up front, it never carries meaning in the documents we read.
        xml = xml.replace(b"\x00", b"")
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        return etree.fromstring(xml, parser)
