from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import NamedTuple, TypeVar
from urllib.parse import quote

from ilsbridge.api.alma.availability import AvailabilityDecoder
from ilsbridge.api.alma.constants import (
    HOLD_REQUEST_TYPE,
    ITEM_IN_PLACE_STATUS,
    ITEMS_DIRECTION,
    ITEMS_ORDER_BY,
    LOAN_PROCESS_TYPE,
    InventoryType,
)
from ilsbridge.api.alma.dates import AlmaDateParser
from ilsbridge.api.alma.models import Item, ItemLoans, Items, RequestOptions
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.api.circulation.data import (
    NO_BARCODE,
    REQUESTED_DUE_DATE,
    HoldingEntry,
    HoldingsResult,
    InventoryEntry,
    PatronIdentity,
)
from ilsbridge.util.log import LoggerMixin, elapsed_time_logging

T = TypeVar("T")


def _escape(value: str) -> str:
    return quote(value, safe="")


class ItemDetails(NamedTuple):
    due_date: str | None
    add_link: bool


def run_in_order(
    tasks: Sequence[Callable[[], T]], max_workers: int = 1
) -> list[T]:
    """Run `tasks` and return their results in task order.

    With more than one worker the tasks run on a thread pool. The first
    failure cancels every task that has not started yet and is raised once
    the running ones are done.
    """
    if max_workers <= 1 or len(tasks) <= 1:
        return [task() for task in tasks]

    executor = ThreadPoolExecutor(max_workers=min(max_workers, len(tasks)))
    try:
        futures: list[Future[T]] = [executor.submit(task) for task in tasks]
        done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        for future in not_done:
            future.cancel()
        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()  # type: ignore[misc]
        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


class HoldingsAggregator(LoggerMixin):
    """Builds the holdings of one bibliographic record: a window of its
    physical items, each completed with its loan due date and the patron's
    hold eligibility, plus the electronic and digital inventory.

    Any failed call aborts the whole aggregation.
    """

    def __init__(
        self,
        requests: AlmaRequests,
        date_parser: AlmaDateParser,
        decoder: AvailabilityDecoder,
        inventory_types: Sequence[InventoryType],
        fanout_workers: int = 1,
    ) -> None:
        self.requests = requests
        self.date_parser = date_parser
        self.decoder = decoder
        self.inventory_types = tuple(inventory_types)
        self.fanout_workers = fanout_workers

    def items_path(self, id: str) -> str:
        return f"/bibs/{_escape(id)}/holdings/ALL/items"

    def item_path(self, id: str, holding_id: str, item_id: str) -> str:
        return (
            f"/bibs/{_escape(id)}/holdings/{_escape(holding_id)}"
            f"/items/{_escape(item_id)}"
        )

    def get_holding(
        self,
        id: str,
        patron: PatronIdentity | None = None,
        offset: int | None = None,
        item_limit: int | None = None,
    ) -> HoldingsResult:
        offset = offset or 0
        result = HoldingsResult()

        params: dict[str, str | int | None] = {}
        if item_limit:
            # Without a limit Alma returns its default first page.
            params["limit"] = item_limit
            params["offset"] = offset
        params["order_by"] = ITEMS_ORDER_BY
        params["direction"] = ITEMS_DIRECTION

        with elapsed_time_logging(
            log_method=self.log.debug,
            message_prefix=f"Items for {id}",
            skip_start=True,
        ):
            items = self.requests.fetch(Items, self.items_path(id), params)
            if items is not None:
                result.total = items.total_record_count
                details = run_in_order(
                    [
                        (lambda item=item: self._item_details(id, item, patron))
                        for item in items.items
                    ],
                    self.fanout_workers,
                )
                result.holdings = [
                    self._holding_entry(id, item, offset + index + 1, detail)
                    for index, (item, detail) in enumerate(
                        zip(items.items, details)
                    )
                ]

        if (
            InventoryType.digital in self.inventory_types
            or InventoryType.electronic in self.inventory_types
        ):
            result.electronic_holdings = self._electronic_holdings([id])
        return result

    def _electronic_holdings(self, ids: Sequence[str]) -> list[InventoryEntry]:
        # Physical items were already listed item by item.
        types = [t for t in self.inventory_types if t != InventoryType.physical]
        statuses = self.decoder.statuses_for_inventory_types(ids, types)
        return [entry for entries in statuses.values() for entry in entries]

    def _item_details(
        self, id: str, item: Item, patron: PatronIdentity | None
    ) -> ItemDetails:
        holding_id = item.holding_data.holding_id or ""
        item_id = item.item_data.pid or ""
        path = self.item_path(id, holding_id, item_id)

        due_date = None
        if item.item_data.is_requested:
            due_date = REQUESTED_DUE_DATE
        elif (
            item.item_data.process_type is not None
            and item.item_data.process_type.text == LOAN_PROCESS_TYPE
        ):
            loans = self.requests.fetch(ItemLoans, f"{path}/loans")
            raw_due_date = loans.loans[0].due_date if loans and loans.loans else None
            due_date = self.date_parser.parse_date(raw_due_date)

        # Only ask about request options for a known patron.
        add_link = False
        if patron is not None and patron.id:
            options = self.requests.fetch(
                RequestOptions, f"{path}/request-options", {"user_id": patron.id}
            )
            add_link = options is not None and HOLD_REQUEST_TYPE in options.types

        return ItemDetails(due_date=due_date, add_link=add_link)

    @staticmethod
    def _holding_entry(
        id: str, item: Item, number: int, details: ItemDetails
    ) -> HoldingEntry:
        data = item.item_data
        description = data.description or None
        base_status = data.base_status
        return HoldingEntry(
            id=id,
            availability=base_status is not None
            and base_status.text == ITEM_IN_PLACE_STATUS,
            status=(base_status.desc or "") if base_status is not None else "",
            location=data.location.text if data.location is not None else "",
            call_number=item.holding_data.call_number or "",
            due_date=details.due_date,
            number=description if description else number,
            barcode=data.barcode or NO_BARCODE,
            item_notes=[data.public_note] if data.public_note else None,
            item_id=data.pid or "",
            holding_id=item.holding_data.holding_id or "",
            add_link=details.add_link,
            description=description,
        )
