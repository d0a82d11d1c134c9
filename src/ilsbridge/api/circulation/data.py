from __future__ import annotations

import dataclasses
from typing import Literal

DueStatus = Literal["overdue", "due"]

REQUESTED_DUE_DATE = "requested"
"""Due date shown for an item that is already requested by another patron."""

NO_BARCODE = "n/a"
"""Barcode shown for an item that does not carry one."""


@dataclasses.dataclass(frozen=True)
class PatronIdentity:
    """A patron who logged in against Alma.

    :param id: The Alma primary id, used in every user API path.
    :param cat_username: The barcode (or other unique id) the patron typed.
    :param cat_password: The password the patron typed.
    """

    id: str
    cat_username: str = ""
    cat_password: str = ""


@dataclasses.dataclass(kw_only=True)
class HoldingEntry:
    """One physical item of a bibliographic record."""

    id: str
    source: str = "Solr"
    availability: bool
    status: str
    location: str
    reserve: str = "N"
    call_number: str
    due_date: str | None = None
    # Alma has no API for recently returned items.
    return_date: Literal[False] = False
    # Either the running copy number, or the item description when the
    # item carries one.
    number: int | str
    barcode: str = NO_BARCODE
    item_notes: list[str] | None = None
    item_id: str
    holding_id: str
    add_link: bool = False
    description: str | None = None


@dataclasses.dataclass(kw_only=True)
class InventoryEntry:
    """Availability decoded from a record's embedded MARC availability
    fields. Digital entries never carry a call number."""

    id: str
    source: str = "Solr"
    availability: bool
    location: str
    call_number: str | None = None
    reserve: str = "N"
    location_href: str | None = None
    status: str | None = None


@dataclasses.dataclass(kw_only=True)
class HoldingsResult:
    total: int = 0
    holdings: list[HoldingEntry] = dataclasses.field(default_factory=list)
    # None when neither electronic nor digital inventory is configured.
    electronic_holdings: list[InventoryEntry] | None = None


@dataclasses.dataclass(kw_only=True)
class LoanRecord:
    id: str
    due_date: str
    due_status: DueStatus | None = None
    barcode: str
    publication_year: str = ""
    renewable: bool = False
    title: str = ""
    item_id: str
    institution_name: str = ""
    borrowing_location: str = ""


@dataclasses.dataclass(kw_only=True)
class TransactionPage:
    count: int = 0
    records: list[LoanRecord] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class AccountBlock:
    description: str


@dataclasses.dataclass(kw_only=True)
class LoanFee:
    """A fine or fee. Amounts are in cents."""

    title: str
    amount: int
    balance: int
    create_date: str
    checkout: str
    fine: str


@dataclasses.dataclass(kw_only=True)
class PatronHold:
    create: str
    expire: str
    id: str
    in_transit: bool
    item_id: str
    location: str
    processed: bool
    title: str


@dataclasses.dataclass(kw_only=True)
class PatronProfile:
    firstname: str | None = None
    lastname: str | None = None
    group: str | None = None
    group_code: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    zip: str | None = None
    city: str | None = None
    country: str | None = None
    phone: str | None = None


@dataclasses.dataclass(kw_only=True)
class RenewalDetail:
    success: bool
    new_date: str | None = None
    item_id: str | None = None
    sys_message: str | None = None


@dataclasses.dataclass(kw_only=True)
class RenewalResult:
    details: dict[str, RenewalDetail] = dataclasses.field(default_factory=dict)
    # One status key per loan that could not be renewed.
    blocks: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(kw_only=True)
class CancelDetail:
    success: bool
    status: str
    sys_message: str | None = None


@dataclasses.dataclass(kw_only=True)
class CancelResult:
    count: int = 0
    items: dict[str, CancelDetail] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(kw_only=True)
class HoldRequest:
    """What a patron asked for when placing a hold.

    Title level requests only need `id`. Item level requests (the default)
    also need `holding_id` and `item_id`. `required_by` is a display date.
    """

    id: str
    patron: PatronIdentity
    level: Literal["item", "title"] = "item"
    holding_id: str | None = None
    item_id: str | None = None
    pickup_location: str | None = None
    comment: str | None = None
    required_by: str | None = None
    description: str | None = None


@dataclasses.dataclass(kw_only=True)
class HoldResult:
    success: bool
    sys_message: str | None = None


@dataclasses.dataclass(frozen=True)
class PickupLocation:
    location_id: str
    location_display: str


@dataclasses.dataclass(kw_only=True)
class NewPatronForm:
    firstname: str
    lastname: str
    email: str
    username: str
