"""
Typed views of the Alma XML documents we read.

Alma omits elements freely, so every field is optional and defaults to
None (or an empty list). Code reading these models checks for presence
instead of catching lookup errors.
"""

from __future__ import annotations

from pydantic_xml import BaseXmlModel, attr, element


class CodedValue(BaseXmlModel, search_mode="unordered"):
    """An element whose text is a code and whose `desc` attribute is the
    human readable label, e.g. <base_status desc="Item in place">1</base_status>."""

    value: str | None = None
    desc: str | None = attr(default=None)

    @property
    def text(self) -> str:
        return self.value or ""


# Items of a bibliographic record


class HoldingData(BaseXmlModel, search_mode="unordered"):
    holding_id: str | None = element(default=None)
    call_number: str | None = element(default=None)


class ItemData(BaseXmlModel, search_mode="unordered"):
    pid: str | None = element(default=None)
    barcode: str | None = element(default=None)
    base_status: CodedValue | None = element(default=None)
    process_type: CodedValue | None = element(default=None)
    requested: str | None = element(default=None)
    location: CodedValue | None = element(default=None)
    description: str | None = element(default=None)
    public_note: str | None = element(default=None)

    @property
    def is_requested(self) -> bool:
        return (self.requested or "").strip().lower() == "true"


class Item(BaseXmlModel, tag="item", search_mode="unordered"):
    holding_data: HoldingData = element(default_factory=HoldingData)
    item_data: ItemData = element(default_factory=ItemData)


class Items(BaseXmlModel, tag="items", search_mode="unordered"):
    total_record_count: int = attr(default=0)
    items: list[Item] = element(tag="item", default_factory=list)


# Loans


class ItemLoan(BaseXmlModel, tag="item_loan", search_mode="unordered"):
    loan_id: str | None = element(default=None)
    mms_id: str | None = element(default=None)
    due_date: str | None = element(default=None)
    item_barcode: str | None = element(default=None)
    title: str | None = element(default=None)
    publication_year: str | None = element(default=None)
    renewable: str | None = element(default=None)
    library: CodedValue | None = element(default=None)
    circ_desk: CodedValue | None = element(default=None)

    @property
    def is_renewable(self) -> bool:
        return (self.renewable or "").strip().lower() == "true"


class ItemLoans(BaseXmlModel, tag="item_loans", search_mode="unordered"):
    total_record_count: int = attr(default=0)
    loans: list[ItemLoan] = element(tag="item_loan", default_factory=list)


# Request options


class RequestOption(BaseXmlModel, tag="request_option", search_mode="unordered"):
    type: CodedValue | None = element(default=None)


class RequestOptions(BaseXmlModel, tag="request_options", search_mode="unordered"):
    options: list[RequestOption] = element(tag="request_option", default_factory=list)

    @property
    def types(self) -> list[str]:
        return [o.type.text for o in self.options if o.type is not None]


# Users


class Address(BaseXmlModel, tag="address", search_mode="unordered"):
    line1: str | None = element(default=None)
    line2: str | None = element(default=None)
    line3: str | None = element(default=None)
    postal_code: str | None = element(default=None)
    city: str | None = element(default=None)
    country: CodedValue | None = element(default=None)


class Addresses(BaseXmlModel, tag="addresses", search_mode="unordered"):
    addresses: list[Address] = element(tag="address", default_factory=list)


class Phone(BaseXmlModel, tag="phone", search_mode="unordered"):
    phone_number: str | None = element(default=None)


class Phones(BaseXmlModel, tag="phones", search_mode="unordered"):
    phones: list[Phone] = element(tag="phone", default_factory=list)


class ContactInfo(BaseXmlModel, tag="contact_info", search_mode="unordered"):
    addresses: Addresses | None = element(default=None)
    phones: Phones | None = element(default=None)


class UserBlock(BaseXmlModel, tag="user_block", search_mode="unordered"):
    block_description: CodedValue | None = element(default=None)
    block_status: str | None = element(default=None)
    block_note: str | None = element(default=None)


class UserBlocks(BaseXmlModel, tag="user_blocks", search_mode="unordered"):
    blocks: list[UserBlock] = element(tag="user_block", default_factory=list)


class User(BaseXmlModel, tag="user", search_mode="unordered"):
    primary_id: str | None = element(default=None)
    first_name: str | None = element(default=None)
    last_name: str | None = element(default=None)
    user_group: CodedValue | None = element(default=None)
    contact_info: ContactInfo | None = element(default=None)
    user_blocks: UserBlocks | None = element(default=None)


# Fees


class Fee(BaseXmlModel, tag="fee", search_mode="unordered"):
    type: CodedValue | None = element(default=None)
    title: str | None = element(default=None)
    original_amount: str | None = element(default=None)
    balance: str | None = element(default=None)
    creation_time: str | None = element(default=None)
    status_time: str | None = element(default=None)


class Fees(BaseXmlModel, tag="fees", search_mode="unordered"):
    fees: list[Fee] = element(tag="fee", default_factory=list)


# Patron requests


class UserRequest(BaseXmlModel, tag="user_request", search_mode="unordered"):
    request_id: str | None = element(default=None)
    request_type: str | None = element(default=None)
    request_status: str | None = element(default=None)
    request_date: str | None = element(default=None)
    last_interest_date: str | None = element(default=None)
    mms_id: str | None = element(default=None)
    title: str | None = element(default=None)
    pickup_location: str | None = element(default=None)
    item_policy: CodedValue | None = element(default=None)

    @property
    def item_policy_code(self) -> str:
        return self.item_policy.text if self.item_policy is not None else ""


class UserRequests(BaseXmlModel, tag="user_requests", search_mode="unordered"):
    total_record_count: int = attr(default=0)
    requests: list[UserRequest] = element(tag="user_request", default_factory=list)


# Configuration


class Library(BaseXmlModel, tag="library", search_mode="unordered"):
    code: str | None = element(default=None)
    name: str | None = element(default=None)


class Libraries(BaseXmlModel, tag="libraries", search_mode="unordered"):
    libraries: list[Library] = element(tag="library", default_factory=list)


# Courses


class Course(BaseXmlModel, tag="course", search_mode="unordered"):
    id: str | None = element(default=None)
    code: str | None = element(default=None)
    name: str | None = element(default=None)


class Courses(BaseXmlModel, tag="courses", search_mode="unordered"):
    total_record_count: int = attr(default=0)
    courses: list[Course] = element(tag="course", default_factory=list)


class ReadingList(BaseXmlModel, tag="reading_list", search_mode="unordered"):
    id: str | None = element(default=None)
    code: str | None = element(default=None)
    name: str | None = element(default=None)


class ReadingLists(BaseXmlModel, tag="reading_lists", search_mode="unordered"):
    reading_lists: list[ReadingList] = element(
        tag="reading_list", default_factory=list
    )


class CitationMetadata(BaseXmlModel, tag="metadata", search_mode="unordered"):
    title: str | None = element(default=None)
    author: str | None = element(default=None)
    publisher: str | None = element(default=None)
    publication_date: str | None = element(default=None)
    isbn: str | None = element(default=None)
    issn: str | None = element(default=None)
    mms_id: str | None = element(default=None)


class Citation(BaseXmlModel, tag="citation", search_mode="unordered"):
    id: str | None = element(default=None)
    metadata: CitationMetadata = element(default_factory=CitationMetadata)


class Citations(BaseXmlModel, tag="citations", search_mode="unordered"):
    citations: list[Citation] = element(tag="citation", default_factory=list)
