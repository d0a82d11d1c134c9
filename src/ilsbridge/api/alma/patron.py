from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import quote

from lxml import etree

from ilsbridge.api.alma.constants import (
    ACTIVE_BLOCK_STATUS,
    ARCHIVE_ITEM_POLICY,
    CANCEL_REASON,
    DEFAULT_TRANSACTION_SORT,
    FEE_TIME_FORMAT,
    FEE_TIME_FORMAT_NO_FRACTION,
    HOLD_CANCEL_SUCCESS,
    HOLD_REQUEST_TYPE,
    ILL_ITEM_POLICY,
    MOVE_IN_PROCESS,
    MOVE_NOT_STARTED,
    MOVE_REQUEST_TYPE,
    NOT_STARTED,
    ON_HOLD_SHELF,
    RENEW_SUCCESS,
    TRANSACTION_SORT_KEYS,
    LoginMethod,
)
from ilsbridge.api.alma.dates import AlmaDateParser
from ilsbridge.api.alma.exception import (
    AlmaApiFailure,
    AlmaBusinessError,
    AlmaErrorParser,
)
from ilsbridge.api.alma.models import (
    Fees,
    ItemLoan,
    ItemLoans,
    Libraries,
    User,
    UserRequest,
    UserRequests,
)
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.api.alma.settings import AlmaSettings
from ilsbridge.api.circulation.data import (
    AccountBlock,
    CancelDetail,
    CancelResult,
    HoldRequest,
    HoldResult,
    LoanFee,
    LoanRecord,
    NewPatronForm,
    PatronHold,
    PatronIdentity,
    PatronProfile,
    PickupLocation,
    RenewalDetail,
    RenewalResult,
    TransactionPage,
)
from ilsbridge.api.circulation.exceptions import (
    CannotCreatePatron,
    CannotHold,
    CannotReleaseHold,
    CannotRenew,
    PatronAuthorizationFailedException,
)
from ilsbridge.service.cache.cache import PatronCache, PatronCacheKind
from ilsbridge.util.datetime_helpers import add_iso8601_period, utc_now
from ilsbridge.util.log import LoggerMixin
from ilsbridge.util.sentinel import SentinelType
from ilsbridge.util.xmlparser import XMLParser

if TYPE_CHECKING:
    from lxml.etree import _Element

ONE_DAY = 86400


def _escape(value: str) -> str:
    return quote(value, safe="")


class AlmaPatronAPI(LoggerMixin):
    """Patron account operations: login, profile, blocks, fines, loans,
    holds and requests."""

    def __init__(
        self,
        requests: AlmaRequests,
        date_parser: AlmaDateParser,
        cache: PatronCache,
        settings: AlmaSettings,
    ) -> None:
        self.requests = requests
        self.date_parser = date_parser
        self.cache = cache
        self.settings = settings

    @staticmethod
    def _patron_id(patron: PatronIdentity) -> str:
        if not patron.id:
            raise PatronAuthorizationFailedException(
                "Patron has no Alma id, log in first."
            )
        return patron.id

    def _user_path(self, patron: PatronIdentity, *parts: str) -> str:
        return "/".join(
            ["/users", _escape(self._patron_id(patron)), *map(_escape, parts)]
        )

    def patron_login(self, barcode: str, password: str) -> PatronIdentity | None:
        """Look the patron up by any unique id and return their identity, or
        None when Alma rejects the password."""
        path = f"/users/{_escape(barcode)}"
        if self.settings.login_method == LoginMethod.password:
            _, status = self.requests.request_with_status(
                path,
                {"user_id_type": "all_unique", "op": "auth", "password": password},
                method="POST",
                allowed_errors=[400],
            )
            if status == 400:
                self.log.info(f"Alma rejected the password for {barcode}")
                return None

        user = self.requests.fetch(
            User,
            path,
            {"user_id_type": "all_unique", "view": "brief", "expand": "none"},
        )
        if user is None:
            return None
        return PatronIdentity(
            id=user.primary_id or "",
            cat_username=barcode.strip(),
            cat_password=password.strip(),
        )

    def get_my_profile(self, patron: PatronIdentity) -> PatronProfile:
        user = self.requests.fetch(User, self._user_path(patron))
        if user is None:
            return PatronProfile()

        profile = PatronProfile(
            firstname=user.first_name,
            lastname=user.last_name,
            group=user.user_group.desc if user.user_group else None,
            group_code=user.user_group.value if user.user_group else None,
        )
        contact = user.contact_info
        if contact is not None:
            if contact.addresses is not None and contact.addresses.addresses:
                address = contact.addresses.addresses[0]
                profile.address1 = address.line1
                profile.address2 = address.line2
                profile.address3 = address.line3
                profile.zip = address.postal_code
                profile.city = address.city
                profile.country = address.country.value if address.country else None
            if contact.phones is not None and contact.phones.phones:
                profile.phone = contact.phones.phones[0].phone_number

        self.cache.put(patron.id, PatronCacheKind.GROUP_CODE, profile.group_code)
        return profile

    def get_account_blocks(
        self, patron: PatronIdentity
    ) -> list[AccountBlock] | Literal[False]:
        """The patron's active blocks, or False when there are none.

        The answer is memoized per patron with no expiry.
        """
        patron_id = self._patron_id(patron)
        cached = self.cache.get(patron_id, PatronCacheKind.BLOCKS)
        if cached is not SentinelType.NotCached:
            return [AccountBlock(d) for d in cached] if cached else False

        user = self.requests.fetch(User, self._user_path(patron))
        if user is None or user.user_blocks is None or not user.user_blocks.blocks:
            return False

        descriptions = []
        for block in user.user_blocks.blocks:
            if (block.block_status or "") != ACTIVE_BLOCK_STATUS:
                continue
            description = (
                block.block_description.desc or ""
                if block.block_description is not None
                else ""
            )
            if block.block_note:
                description = f"{description}. {block.block_note}"
            descriptions.append(description)

        self.cache.put(patron_id, PatronCacheKind.BLOCKS, descriptions or False)
        return [AccountBlock(d) for d in descriptions] or False

    def get_request_blocks(
        self, patron: PatronIdentity
    ) -> list[AccountBlock] | Literal[False]:
        return self.get_account_blocks(patron)

    def _fee_time(self, value: str | None) -> str:
        if not value:
            return ""
        input_format = FEE_TIME_FORMAT if "." in value else FEE_TIME_FORMAT_NO_FRACTION
        return self.date_parser.converter.convert_to_display_date_and_time(
            input_format, value
        )

    def get_my_fines(self, patron: PatronIdentity) -> list[LoanFee]:
        fees = self.requests.fetch(Fees, self._user_path(patron, "fees"))
        if fees is None:
            return []
        return [
            LoanFee(
                title=fee.title or "",
                amount=round(float(fee.original_amount or 0) * 100),
                balance=round(float(fee.balance or 0) * 100),
                create_date=self._fee_time(fee.creation_time),
                checkout=self._fee_time(fee.status_time),
                fine=(fee.type.desc or "") if fee.type is not None else "",
            )
            for fee in fees.fees
        ]

    def _requests_of_type(
        self, patron: PatronIdentity, request_type: str
    ) -> list[UserRequest]:
        found = self.requests.fetch(
            UserRequests,
            self._user_path(patron, "requests"),
            {"request_type": request_type},
        )
        return found.requests if found is not None else []

    def get_my_holds(self, patron: PatronIdentity) -> list[PatronHold]:
        return [
            PatronHold(
                create=request.request_date or "",
                expire=request.last_interest_date or "",
                id=request.request_id or "",
                in_transit=request.request_status != ON_HOLD_SHELF,
                item_id=request.mms_id or "",
                location=request.pickup_location or "",
                processed=request.item_policy_code == ILL_ITEM_POLICY
                and request.request_status != NOT_STARTED,
                title=request.title or "",
            )
            for request in self._requests_of_type(patron, HOLD_REQUEST_TYPE)
        ]

    def _move_requests(self, patron: PatronIdentity, policy: str) -> list[PatronHold]:
        return [
            PatronHold(
                create=request.request_date or "",
                expire=request.last_interest_date or "",
                id=request.request_id or "",
                in_transit=request.request_status != MOVE_IN_PROCESS,
                item_id=request.mms_id or "",
                location=request.pickup_location or "",
                processed=policy == ILL_ITEM_POLICY
                and request.request_status != MOVE_NOT_STARTED,
                title=request.title or "",
            )
            for request in self._requests_of_type(patron, MOVE_REQUEST_TYPE)
            if request.item_policy_code == policy
        ]

    def get_my_storage_retrieval_requests(
        self, patron: PatronIdentity
    ) -> list[PatronHold]:
        return self._move_requests(patron, ARCHIVE_ITEM_POLICY)

    def get_my_ill_requests(self, patron: PatronIdentity) -> list[PatronHold]:
        return self._move_requests(patron, ILL_ITEM_POLICY)

    def get_my_transactions(
        self, patron: PatronIdentity, params: Mapping[str, Any] | None = None
    ) -> TransactionPage:
        """One page of the patron's loans.

        :param params: Optional `sort` ("checkout desc", "due asc", ...),
            `limit` (page size) and `page` (1 based).
        """
        params = params or {}
        sort = str(params.get("sort") or DEFAULT_TRANSACTION_SORT).split(" ", 1)
        sort_key = TRANSACTION_SORT_KEYS.get(sort[0], TRANSACTION_SORT_KEYS["due"])
        direction = "DESC" if len(sort) > 1 and sort[1] == "desc" else "ASC"
        page_size = int(params.get("limit") or self.settings.transactions_page_size)
        page = params.get("page")
        offset = (int(page) - 1) * page_size if page else 0

        loans = self.requests.fetch(
            ItemLoans,
            self._user_path(patron, "loans"),
            {
                "limit": page_size,
                "offset": offset,
                "order_by": sort_key,
                "direction": direction,
                "expand": "renewable",
            },
        )
        if loans is None:
            return TransactionPage()

        now = utc_now()
        records = []
        for loan in loans.loans:
            due = self.date_parser.parse_datetime(loan.due_date)
            due_status: Literal["overdue", "due"] | None = None
            if due is not None:
                if now > due:
                    due_status = "overdue"
                elif (due - now).total_seconds() < ONE_DAY:
                    due_status = "due"
            records.append(
                LoanRecord(
                    id=loan.mms_id or "",
                    due_date=self.date_parser.parse_date(loan.due_date, with_time=True),
                    due_status=due_status,
                    barcode=loan.item_barcode or "",
                    publication_year=loan.publication_year or "",
                    renewable=loan.is_renewable,
                    title=loan.title or "",
                    item_id=loan.loan_id or "",
                    institution_name=loan.library.text if loan.library else "",
                    borrowing_location=loan.circ_desk.text if loan.circ_desk else "",
                )
            )
        return TransactionPage(count=loans.total_record_count, records=records)

    def get_renew_details(self, loan: LoanRecord) -> str:
        if not loan.item_id:
            raise CannotRenew("The loan has no Alma loan id.")
        return loan.item_id

    def _renew(self, patron: PatronIdentity, loan_id: str) -> RenewalDetail:
        path = self._user_path(patron, "loans", loan_id)
        try:
            loan = self.requests.fetch(ItemLoan, path, {"op": "renew"}, method="POST")
        except AlmaApiFailure as e:
            raise CannotRenew(e.message, e.debug_message) from e
        if loan is None:
            raise CannotRenew(f"Alma returned no loan when renewing {loan_id}.")
        return RenewalDetail(
            success=True,
            new_date=self.date_parser.parse_date(loan.due_date, with_time=True),
            item_id=loan.loan_id,
            sys_message=RENEW_SUCCESS,
        )

    def renew_my_items(
        self, patron: PatronIdentity, loan_ids: Iterable[str]
    ) -> RenewalResult:
        """Renew each loan. A failed renewal is recorded and the rest are
        still attempted."""
        result = RenewalResult()
        for loan_id in loan_ids:
            try:
                result.details[loan_id] = self._renew(patron, loan_id)
            except CannotRenew as e:
                self.log.warning(f"Could not renew loan {loan_id}: {e.message}")
                result.details[loan_id] = RenewalDetail(
                    success=False, item_id=loan_id, sys_message=e.status
                )
                result.blocks.append(e.status)
        return result

    def get_cancel_hold_details(self, hold: PatronHold) -> str:
        if not hold.id:
            raise CannotReleaseHold("The hold has no Alma request id.")
        return hold.id

    def cancel_holds(
        self, patron: PatronIdentity, request_ids: Iterable[str]
    ) -> CancelResult:
        """Cancel each request. Results are keyed by the MMS id of the
        requested record, or by the request id when that is unknown."""
        result = CancelResult()
        for request_id in request_ids:
            path = self._user_path(patron, "requests", request_id)
            mms_id = ""
            try:
                request = self.requests.fetch(UserRequest, path)
                mms_id = (request.mms_id or "") if request is not None else ""
                self.requests.request(
                    path, {"reason": CANCEL_REASON}, method="DELETE"
                )
            except AlmaApiFailure as e:
                if isinstance(e, AlmaBusinessError):
                    error_code = e.error_code or "No error code available"
                    message = e.message
                else:
                    error_code = "No error code available"
                    message = f"HTTP status code: {e.status_code or 'Code not available'}"
                failure = CannotReleaseHold(
                    f"{message}. Alma MMS ID: {mms_id}. Alma request ID: {request_id}. "
                    f"Alma error code: {error_code}",
                    e.debug_message,
                )
                self.log.warning(failure.message)
                result.items[mms_id or request_id] = CancelDetail(
                    success=False, status=failure.status, sys_message=failure.message
                )
                continue
            result.count += 1
            result.items[mms_id or request_id] = CancelDetail(
                success=True, status=HOLD_CANCEL_SUCCESS
            )
        return result

    def place_hold(self, hold: HoldRequest) -> HoldResult:
        patron_id = self._patron_id(hold.patron)
        if hold.level == "title":
            path = f"/bibs/{_escape(hold.id)}/requests"
        else:
            if not hold.holding_id or not hold.item_id:
                raise CannotHold("Item level holds need a holding id and an item id.")
            path = (
                f"/bibs/{_escape(hold.id)}/holdings/{_escape(hold.holding_id)}"
                f"/items/{_escape(hold.item_id)}/requests"
            )

        required_by = None
        if hold.required_by:
            required_by = (
                self.date_parser.converter.convert_from_display_date(
                    "%Y-%m-%d", hold.required_by
                )
                + "Z"
            )
        body = {
            "request_type": HOLD_REQUEST_TYPE,
            "pickup_location_type": "LIBRARY",
            "pickup_location_library": hold.pickup_location,
            "comment": hold.comment,
            "last_interest_date": required_by,
        }
        if hold.level == "title":
            body["description"] = hold.description
        body = {k: v for k, v in body.items() if v}

        response = self.requests.send_json(path, body, {"user_id": patron_id})
        if 200 <= response.status_code < 300:
            return HoldResult(success=True)

        self.log.error(
            f"Placing a hold on {hold.id} failed ({response.status_code}): {response.text}"
        )
        error = AlmaErrorParser.from_json(response.text)
        if error is None:
            try:
                document = XMLParser._load_xml(
                    response.content.replace(b"xmlns=", b"ns=")
                )
            except etree.XMLSyntaxError:
                document = None
            error = AlmaErrorParser.from_xml(document)
        message = error.message if error and error.message else None
        return HoldResult(success=False, sys_message=message or CannotHold().status)

    def get_pickup_locations(self, patron: PatronIdentity) -> list[PickupLocation]:
        libraries = self.requests.fetch(Libraries, "/conf/libraries")
        if libraries is None:
            return []
        return [
            PickupLocation(
                location_id=library.code or "", location_display=library.name or ""
            )
            for library in libraries.libraries
        ]

    def create_alma_user(self, form: NewPatronForm) -> _Element | None:
        """Create an Alma account from a self registration form and return
        the user document Alma answers with."""
        config = self.settings.new_user
        for key in config.REQUIRED:
            if not getattr(config, key):
                message = f'Setting "new_user.{key}" is not set.'
                self.log.error(message)
                raise CannotCreatePatron(message)

        now = utc_now()
        try:
            expiry = add_iso8601_period(config.expiry_date or "P1Y", now)
            purge = (
                add_iso8601_period(config.purge_date, now)
                if config.purge_date
                else None
            )
        except ValueError as e:
            self.log.error(f"New user period has the wrong format: {e}")
            raise CannotCreatePatron(str(e)) from e

        user = etree.Element("user")
        etree.SubElement(user, "record_type").text = config.record_type
        etree.SubElement(user, "first_name").text = form.firstname
        etree.SubElement(user, "last_name").text = form.lastname
        etree.SubElement(user, "user_group").text = config.user_group
        etree.SubElement(user, "preferred_language").text = config.preferred_language
        etree.SubElement(user, "expiry_date").text = expiry.strftime("%Y-%m-%d") + "Z"
        if purge is not None:
            etree.SubElement(user, "purge_date").text = purge.strftime("%Y-%m-%d") + "Z"
        etree.SubElement(user, "account_type").text = config.account_type
        etree.SubElement(user, "status").text = config.status

        contact_info = etree.SubElement(user, "contact_info")
        email = etree.SubElement(
            etree.SubElement(contact_info, "emails"), "email", preferred="true"
        )
        etree.SubElement(email, "email_address").text = form.email
        etree.SubElement(
            etree.SubElement(email, "email_types"), "email_type"
        ).text = config.email_type

        identifier = etree.SubElement(
            etree.SubElement(user, "user_identifiers"), "user_identifier"
        )
        etree.SubElement(identifier, "id_type").text = config.id_type
        etree.SubElement(identifier, "value").text = form.username

        body = etree.tostring(
            user, xml_declaration=True, encoding="UTF-8", standalone=True
        )
        return self.requests.request(
            "/users",
            method="POST",
            body=body,
            headers={"Content-Type": "application/xml"},
        )
