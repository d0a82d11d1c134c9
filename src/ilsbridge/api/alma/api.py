from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Literal

from ilsbridge.api.alma.availability import AvailabilityDecoder
from ilsbridge.api.alma.constants import (
    TRANSACTION_SORT_OPTIONS,
    TRANSACTIONS_DEFAULT_DISPLAY_SORT,
)
from ilsbridge.api.alma.courses import AlmaCoursesAPI
from ilsbridge.api.alma.dates import AlmaDateParser, DateConverter
from ilsbridge.api.alma.holdings import HoldingsAggregator
from ilsbridge.api.alma.models import CitationMetadata
from ilsbridge.api.alma.patron import AlmaPatronAPI
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.api.alma.settings import AlmaSettings
from ilsbridge.api.circulation.data import (
    AccountBlock,
    CancelResult,
    HoldingsResult,
    HoldRequest,
    HoldResult,
    InventoryEntry,
    LoanFee,
    LoanRecord,
    NewPatronForm,
    PatronHold,
    PatronIdentity,
    PatronProfile,
    PickupLocation,
    RenewalResult,
    TransactionPage,
)
from ilsbridge.service.cache.cache import PatronCache, cache_backend_from_config
from ilsbridge.service.cache.configuration import CacheConfiguration
from ilsbridge.util.log import LoggerMixin

if TYPE_CHECKING:
    from lxml.etree import _Element


class AlmaAPI(LoggerMixin):
    """The Alma driver as seen by a discovery front end.

    Wires the request gateway, the date parser, the patron cache and the
    availability decoder together, and exposes every operation through one
    object.
    """

    def __init__(
        self,
        settings: AlmaSettings,
        cache: PatronCache | None = None,
        date_converter: DateConverter | None = None,
    ) -> None:
        self.settings = settings
        self.requests = AlmaRequests(settings)
        self.date_parser = AlmaDateParser(
            date_converter or DateConverter.from_settings(settings)
        )
        self.cache = cache if cache is not None else PatronCache()
        self.decoder = AvailabilityDecoder(
            self.requests, settings.digital_delivery_url
        )
        self.holdings = HoldingsAggregator(
            self.requests,
            self.date_parser,
            self.decoder,
            settings.inventory_types,
            fanout_workers=settings.fanout_workers,
        )
        self.patrons = AlmaPatronAPI(
            self.requests, self.date_parser, self.cache, settings
        )
        self.courses = AlmaCoursesAPI(self.requests)

    @classmethod
    def from_environment(cls) -> AlmaAPI:
        """Build the driver from ILSBRIDGE_ALMA_* and ILSBRIDGE_CACHE_*
        environment variables.

        :raise CannotLoadConfiguration: If a required setting is missing
            or invalid.
        """
        settings = AlmaSettings()
        cache = PatronCache(cache_backend_from_config(CacheConfiguration()))
        return cls(settings, cache)

    # Holdings and availability

    def get_holding(
        self,
        id: str,
        patron: PatronIdentity | None = None,
        offset: int | None = None,
        item_limit: int | None = None,
    ) -> HoldingsResult:
        return self.holdings.get_holding(
            id, patron, offset=offset, item_limit=item_limit
        )

    def get_statuses(self, ids: Sequence[str]) -> dict[str, list[InventoryEntry]]:
        return self.decoder.statuses_for_inventory_types(
            ids, self.settings.inventory_types
        )

    def get_status(self, id: str) -> list[InventoryEntry]:
        statuses = self.get_statuses([id])
        return statuses.get(id, next(iter(statuses.values()), []))

    def get_purchase_history(self, id: str) -> list[Any]:
        # Alma has no purchase history API.
        return []

    def parse_date(self, date: str | None, with_time: bool = False) -> str:
        return self.date_parser.parse_date(date, with_time=with_time)

    def get_config(self, function: str) -> dict[str, Any] | None:
        if function == "Holds":
            return {"itemLimit": self.settings.holds_item_limit}
        if function == "getMyTransactions":
            return {
                "max_results": self.settings.transactions_max_results,
                "sort": dict(TRANSACTION_SORT_OPTIONS),
                "default_sort": TRANSACTIONS_DEFAULT_DISPLAY_SORT,
            }
        return None

    # Patrons

    def patron_login(self, barcode: str, password: str) -> PatronIdentity | None:
        return self.patrons.patron_login(barcode, password)

    def get_my_profile(self, patron: PatronIdentity) -> PatronProfile:
        return self.patrons.get_my_profile(patron)

    def get_account_blocks(
        self, patron: PatronIdentity
    ) -> list[AccountBlock] | Literal[False]:
        return self.patrons.get_account_blocks(patron)

    def get_request_blocks(
        self, patron: PatronIdentity
    ) -> list[AccountBlock] | Literal[False]:
        return self.patrons.get_request_blocks(patron)

    def get_my_fines(self, patron: PatronIdentity) -> list[LoanFee]:
        return self.patrons.get_my_fines(patron)

    def get_my_holds(self, patron: PatronIdentity) -> list[PatronHold]:
        return self.patrons.get_my_holds(patron)

    def get_my_storage_retrieval_requests(
        self, patron: PatronIdentity
    ) -> list[PatronHold]:
        return self.patrons.get_my_storage_retrieval_requests(patron)

    def get_my_ill_requests(self, patron: PatronIdentity) -> list[PatronHold]:
        return self.patrons.get_my_ill_requests(patron)

    def get_my_transactions(
        self, patron: PatronIdentity, params: Mapping[str, Any] | None = None
    ) -> TransactionPage:
        return self.patrons.get_my_transactions(patron, params)

    def get_renew_details(self, loan: LoanRecord) -> str:
        return self.patrons.get_renew_details(loan)

    def renew_my_items(
        self, patron: PatronIdentity, loan_ids: Iterable[str]
    ) -> RenewalResult:
        return self.patrons.renew_my_items(patron, loan_ids)

    def get_cancel_hold_details(self, hold: PatronHold) -> str:
        return self.patrons.get_cancel_hold_details(hold)

    def cancel_holds(
        self, patron: PatronIdentity, request_ids: Iterable[str]
    ) -> CancelResult:
        return self.patrons.cancel_holds(patron, request_ids)

    def place_hold(self, hold: HoldRequest) -> HoldResult:
        return self.patrons.place_hold(hold)

    def get_pickup_locations(self, patron: PatronIdentity) -> list[PickupLocation]:
        return self.patrons.get_pickup_locations(patron)

    def create_alma_user(self, form: NewPatronForm) -> _Element | None:
        return self.patrons.create_alma_user(form)

    # Course reserves

    def get_courses(self) -> dict[str, str]:
        return self.courses.get_courses()

    def find_reserves(self, course_id: str) -> dict[str, CitationMetadata]:
        return self.courses.find_reserves(course_id)
