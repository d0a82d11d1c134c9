from __future__ import annotations

from collections.abc import Iterable, Sequence
from io import BytesIO
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from lxml import etree
from pymarc import Field, Record, parse_xml_to_array

from ilsbridge.api.alma.constants import (
    DIGITAL_DELIVERY_ID_TOKEN,
    InventoryType,
    MarcAvailabilityField,
)
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.api.circulation.data import InventoryEntry
from ilsbridge.util.log import LoggerMixin
from ilsbridge.util.xmlparser import XMLParser

if TYPE_CHECKING:
    from lxml.etree import _Element


def is_absolute_http_url(url: str) -> bool:
    if not url or any(c.isspace() for c in url):
        return False
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def _subfield(field: Field, code: str) -> str:
    values = field.get_subfields(code)
    return values[0] if values else ""


class AvailabilityDecoder(XMLParser, LoggerMixin):
    """Decodes the availability fields Alma embeds in the MARC record of a
    bib when /bibs is called with the p_avail, e_avail or d_avail expansions.
    """

    def __init__(
        self, requests: AlmaRequests, digital_delivery_url: str | None = None
    ) -> None:
        self.requests = requests
        self.digital_delivery_url = digital_delivery_url

    def statuses_for_inventory_types(
        self, ids: Sequence[str], types: Iterable[InventoryType]
    ) -> dict[str, list[InventoryEntry]]:
        """Fetch the bibs in `ids` with one call and decode the entries of
        the requested inventory types, in field order, keyed by MMS id."""
        types = [t for t in InventoryType if t in set(types)]
        results: dict[str, list[InventoryEntry]] = {}
        if not ids or not types:
            return results

        document = self.requests.request(
            "/bibs",
            {
                "mms_id": ",".join(ids),
                "expand": ",".join(t.expansion for t in types),
            },
        )
        if document is None:
            return results

        for bib in self._xpath(document, "bib"):
            mms_id = self.text_of_optional_subtag(bib, "mms_id") or ""
            results[mms_id] = self._decode_bib(bib, mms_id, types)
        return results

    def _decode_bib(
        self, bib: _Element, mms_id: str, types: Sequence[InventoryType]
    ) -> list[InventoryEntry]:
        record = self._marc_record(bib)
        if record is None:
            self.log.warning(f"no record: bib {mms_id} has no MARC record")
            return []

        isbn = self.text_of_optional_subtag(bib, "isbn") or ""
        entries: list[InventoryEntry] = []
        if InventoryType.physical in types:
            entries.extend(self._physical(record, mms_id, isbn))
        if InventoryType.electronic in types:
            entries.extend(self._electronic(record, mms_id, isbn))
        if InventoryType.digital in types:
            entries.extend(self._digital(record, mms_id))
        return entries

    def _marc_record(self, bib: _Element) -> Record | None:
        record = self._xpath1(bib, "record")
        if record is None:
            return None
        records = parse_xml_to_array(BytesIO(etree.tostring(record)))
        return records[0] if records else None

    @staticmethod
    def _is_available(value: str) -> bool:
        return value.lower() == "available"

    def _physical(
        self, record: Record, mms_id: str, isbn: str
    ) -> Iterable[InventoryEntry]:
        for field in record.get_fields(MarcAvailabilityField.physical):
            yield InventoryEntry(
                id=mms_id,
                call_number=isbn,
                availability=self._is_available(_subfield(field, "e")),
                location=_subfield(field, "c"),
            )

    def _electronic(
        self, record: Record, mms_id: str, isbn: str
    ) -> Iterable[InventoryEntry]:
        for field in record.get_fields(MarcAvailabilityField.electronic):
            url = _subfield(field, "u")
            yield InventoryEntry(
                id=mms_id,
                call_number=isbn,
                availability=self._is_available(_subfield(field, "e")),
                location=_subfield(field, "m"),
                location_href=url if is_absolute_http_url(url) else None,
                status=_subfield(field, "s"),
            )

    def _digital(self, record: Record, mms_id: str) -> Iterable[InventoryEntry]:
        fields = record.get_fields(MarcAvailabilityField.digital)
        if fields and not self.digital_delivery_url:
            self.log.warning(
                f"Digital items exist for {mms_id}, but digital_delivery_url "
                "is not set -- unable to generate links"
            )
        for field in fields:
            href = None
            if self.digital_delivery_url:
                href = self.digital_delivery_url.replace(
                    DIGITAL_DELIVERY_ID_TOKEN, _subfield(field, "b")
                )
            yield InventoryEntry(
                id=mms_id,
                availability=True,
                location=_subfield(field, "e"),
                location_href=href,
            )
