from __future__ import annotations

from enum import StrEnum

from frozendict import frozendict


class InventoryType(StrEnum):
    physical = "physical"
    digital = "digital"
    electronic = "electronic"

    @property
    def expansion(self) -> str:
        """The `expand` value that makes /bibs include this inventory type."""
        return INVENTORY_EXPANSIONS[self]


# Ordered the way Alma expects them in the expand parameter.
INVENTORY_EXPANSIONS = frozendict(
    {
        InventoryType.physical: "p_avail",
        InventoryType.digital: "d_avail",
        InventoryType.electronic: "e_avail",
    }
)


class LoginMethod(StrEnum):
    # Look the patron up only, the password was checked elsewhere.
    barcode = "barcode"
    # Ask Alma to verify the password before looking the patron up.
    password = "password"


class MarcAvailabilityField(StrEnum):
    physical = "AVA"
    electronic = "AVE"
    digital = "AVD"


# The item base_status value that means "in place".
ITEM_IN_PLACE_STATUS = "1"
LOAN_PROCESS_TYPE = "LOAN"
HOLD_REQUEST_TYPE = "HOLD"
MOVE_REQUEST_TYPE = "MOVE"
ACTIVE_BLOCK_STATUS = "ACTIVE"
ON_HOLD_SHELF = "On Hold Shelf"
NOT_STARTED = "Not Started"
# Move requests report their status as a code rather than a label.
MOVE_NOT_STARTED = "NOT_STARTED"
MOVE_IN_PROCESS = "IN_PROCESS"
ARCHIVE_ITEM_POLICY = "Archive"
ILL_ITEM_POLICY = "InterlibraryLoan"
CANCEL_REASON = "CancelledAtPatronRequest"

DIGITAL_DELIVERY_ID_TOKEN = "%%id%%"
NO_ERROR_MESSAGE = "no message available"

ITEMS_ORDER_BY = "library,location,enum_a,enum_b"
ITEMS_DIRECTION = "desc"

TRANSACTION_SORT_KEYS = frozendict(
    {
        "checkout": "loan_date",
        "title": "title",
        "due": "due_date",
    }
)
DEFAULT_TRANSACTION_SORT = "checkout desc"

TRANSACTION_SORT_OPTIONS = frozendict(
    {
        "checkout desc": "sort_checkout_date_desc",
        "checkout asc": "sort_checkout_date_asc",
        "due desc": "sort_due_date_desc",
        "due asc": "sort_due_date_asc",
        "title asc": "sort_title",
    }
)
TRANSACTIONS_DEFAULT_DISPLAY_SORT = "due asc"

RENEW_SUCCESS = "renew_success"
HOLD_CANCEL_SUCCESS = "hold_cancel_success"
FEE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
FEE_TIME_FORMAT_NO_FRACTION = "%Y-%m-%dT%H:%M:%SZ"
