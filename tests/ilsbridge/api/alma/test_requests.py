from __future__ import annotations

import logging

import pytest
import requests
from requests_mock import Mocker

from ilsbridge.api.alma.constants import NO_ERROR_MESSAGE
from ilsbridge.api.alma.exception import (
    AlmaBusinessError,
    AlmaParseError,
    AlmaServerError,
    AlmaTransportError,
    FailureKind,
)
from ilsbridge.api.alma.models import Items, User
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.api.alma.settings import AlmaSettings
from tests.fixtures.alma import AlmaFixture


class TestAlmaRequests:
    def test_url_and_api_key(self, alma: AlmaFixture) -> None:
        requests_ = alma.api.requests
        alma.queue("user.xml")
        requests_.request("/users/patron-1", {"view": "full", "expand": None})

        assert alma.requests == [alma.url("/users/patron-1")]
        # None values are dropped and the key is added.
        assert alma.params() == {"view": "full", "apikey": alma.API_KEY}
        args = alma.http_client.requests_args[-1]
        assert args["timeout"] == 30
        # Alma calls are never retried.
        assert args["max_retry_count"] == 0
        assert alma.http_client.requests_methods == ["GET"]

        # Absolute URLs pass through and an explicit key is kept.
        alma.queue("user.xml")
        requests_.request("https://other.test/users/1", {"apikey": "other"})
        assert alma.requests[-1] == "https://other.test/users/1"
        assert alma.params() == {"apikey": "other"}

    def test_timeout_setting(self, alma: AlmaFixture) -> None:
        alma.configure(http_timeout=5)
        alma.queue("user.xml")
        alma.api.requests.request("/users/patron-1")
        assert alma.http_client.requests_args[-1]["timeout"] == 5

    def test_post_data_and_body(self, alma: AlmaFixture) -> None:
        requests_ = alma.api.requests

        alma.queue("user.xml")
        requests_.request(
            "/users/patron-1", data={"op": "auth", "unused": None}, method="POST"
        )
        assert alma.http_client.requests_args[-1]["data"] == {"op": "auth"}

        # Form data is only sent with POST.
        alma.queue("user.xml")
        requests_.request("/users/patron-1", data={"op": "auth"})
        assert alma.http_client.requests_args[-1]["data"] is None

        alma.queue("user.xml")
        requests_.request(
            "/users",
            data={"ignored": "yes"},
            method="POST",
            body=b"<user/>",
            headers={"Content-Type": "application/xml"},
        )
        args = alma.http_client.requests_args[-1]
        assert args["data"] == b"<user/>"
        assert args["headers"] == {"Content-Type": "application/xml"}

    def test_namespace_is_dropped(self, alma: AlmaFixture) -> None:
        alma.queue("user_no_blocks.xml")
        document = alma.api.requests.request("/users/patron-1")
        assert document is not None
        assert document.tag == "user"
        assert alma.api.requests.parse(User, document, "/users").primary_id == "patron-1"

    def test_request_with_status(self, alma: AlmaFixture) -> None:
        alma.queue("user.xml", status=201)
        document, status = alma.api.requests.request_with_status("/users", method="POST")
        assert document is not None
        assert status == 201

    @pytest.mark.parametrize(
        "status, allowed, expected",
        [
            pytest.param(204, (), None, id="no content"),
            pytest.param(400, (400,), None, id="allowed error"),
        ],
    )
    def test_blank_body_without_document(
        self,
        alma: AlmaFixture,
        status: int,
        allowed: tuple[int, ...],
        expected: None,
    ) -> None:
        alma.http_client.queue_response(status, content="  \n")
        document, code = alma.api.requests.request_with_status(
            "/users/patron-1", allowed_errors=allowed
        )
        assert document is expected
        assert code == status

    def test_blank_body_with_success(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(200, content="")
        with pytest.raises(AlmaServerError) as exc_info:
            alma.api.requests.request("/users/patron-1")
        assert exc_info.value.status_code == 200
        assert exc_info.value.kind == FailureKind.server

    def test_blank_body_with_error(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(404, content="")
        with pytest.raises(AlmaBusinessError) as exc_info:
            alma.api.requests.request("/users/patron-1")
        assert exc_info.value.message == NO_ERROR_MESSAGE
        assert exc_info.value.status_code == 404

    def test_server_error(self, alma: AlmaFixture) -> None:
        # The body is not looked at, even when it is an error document.
        alma.queue("error.xml", status=503)
        with pytest.raises(AlmaServerError, match="HTTP error code: 503") as exc_info:
            alma.api.requests.request("/users/patron-1", allowed_errors=[400])
        assert exc_info.value.status_code == 503
        assert exc_info.value.path == alma.url("/users/patron-1")

    def test_business_error(
        self, alma: AlmaFixture, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.ERROR)
        alma.queue("error.xml", status=400)
        with pytest.raises(AlmaBusinessError) as exc_info:
            alma.api.requests.request("/users/12345", {"view": "brief"})

        error = exc_info.value
        assert error.kind == FailureKind.business
        assert error.status_code == 400
        # The first error of the list is the one reported.
        assert error.message == "User with identifier 12345 was not found."
        assert error.error_code == "401861"
        assert error.path == alma.url("/users/12345")

        [record] = caplog.records
        assert record.message.startswith(
            "[ALMA] User with identifier 12345 was not found. | Call to: "
        )
        assert "'view': 'brief'" in record.message
        assert "HTTP status code: 400" in record.message
        assert alma.API_KEY not in record.message

    def test_allowed_business_error(self, alma: AlmaFixture) -> None:
        alma.queue("error.xml", status=400)
        document, status = alma.api.requests.request_with_status(
            "/users/12345", allowed_errors=[400]
        )
        assert status == 400
        assert document is not None
        assert document.tag == "web_service_result"

    @pytest.mark.parametrize(
        "status, allowed",
        [
            pytest.param(200, (), id="success"),
            pytest.param(409, (409,), id="allowed"),
        ],
    )
    def test_parse_error(
        self, alma: AlmaFixture, status: int, allowed: tuple[int, ...]
    ) -> None:
        alma.http_client.queue_response(status, content="<garbage><foo>bar</ga")
        with pytest.raises(AlmaParseError) as exc_info:
            alma.api.requests.request("/users/patron-1", allowed_errors=allowed)
        assert exc_info.value.kind == FailureKind.parse
        assert exc_info.value.status_code == status

    def test_unparseable_error(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(
            401, content='{"web_service_result": "not xml"}'
        )
        with pytest.raises(AlmaBusinessError) as exc_info:
            alma.api.requests.request("/users/patron-1")
        assert exc_info.value.message == NO_ERROR_MESSAGE
        assert exc_info.value.error_code is None

    @pytest.mark.parametrize(
        "exception",
        [
            pytest.param(requests.exceptions.ConnectionError("refused"), id="connection"),
            pytest.param(requests.exceptions.ReadTimeout("too slow"), id="timeout"),
        ],
    )
    def test_transport_error(
        self, alma: AlmaFixture, exception: Exception
    ) -> None:
        alma.http_client.route_exception("/users/patron-1", exception)
        with pytest.raises(AlmaTransportError) as exc_info:
            alma.api.requests.request("/users/patron-1")
        assert exc_info.value.kind == FailureKind.transport
        assert exc_info.value.status_code is None
        assert str(exception) in exc_info.value.message
        # Nothing is retried.
        assert len(alma.requests) == 1

    def test_debug_logging(
        self, alma: AlmaFixture, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="ilsbridge.api.alma.requests")
        alma.queue("user.xml")
        alma.api.requests.request("/users/patron-1", {"view": "full"})

        [record] = [r for r in caplog.records if r.name.endswith("AlmaRequests")]
        assert record.levelno == logging.DEBUG
        # Elapsed time is what requests measured for the response.
        assert record.message.startswith("[0.0000] GET request for ")
        assert (
            f"GET request for {alma.url('/users/patron-1')}?view=full&apikey=%2A%2A%2A results (200):"
            in record.message
        )
        assert "<primary_id>patron-1</primary_id>" in record.message
        assert alma.API_KEY not in record.message

    def test_fetch(self, alma: AlmaFixture) -> None:
        alma.queue("items.xml")
        items = alma.api.requests.fetch(Items, "/bibs/991234/holdings/ALL/items")
        assert items is not None
        assert items.total_record_count == 3
        assert [item.item_data.pid for item in items.items] == ["2301", "2302", "2303"]

        alma.http_client.queue_response(204)
        assert alma.api.requests.fetch(Items, "/bibs/991234/holdings/ALL/items") is None

    def test_fetch_wrong_document(self, alma: AlmaFixture) -> None:
        alma.queue("user.xml")
        with pytest.raises(AlmaParseError, match="Response did not match Items"):
            alma.api.requests.fetch(Items, "/bibs/991234/holdings/ALL/items")

        alma.http_client.queue_response(
            200, content='<items total_record_count="many"/>'
        )
        with pytest.raises(AlmaParseError):
            alma.api.requests.fetch(Items, "/bibs/991234/holdings/ALL/items")

    def test_send_json(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(
            400, content={"errorList": {"error": [{"errorMessage": "No"}]}}
        )
        response = alma.api.requests.send_json(
            "/bibs/1/requests", {"request_type": "HOLD"}, {"user_id": "patron-1"}
        )
        # Every status is handed back.
        assert response.status_code == 400

        args = alma.http_client.requests_args[-1]
        assert alma.http_client.requests_methods[-1] == "POST"
        assert args["json"] == {"request_type": "HOLD"}
        assert args["params"] == {
            "user_id": "patron-1",
            "apikey": alma.API_KEY,
            "format": "json",
        }
        assert args["max_retry_count"] == 0

        alma.http_client.queue_response(500, content="")
        assert (
            alma.api.requests.send_json("/bibs/1/requests", {}).status_code == 500
        )


class TestAlmaRequestsTransport:
    """Goes through a real requests session, with requests-mock standing in
    for the network."""

    @pytest.fixture
    def alma_requests(self) -> AlmaRequests:
        return AlmaRequests(
            AlmaSettings(api_base_url="https://alma.test/almaws/v1", api_key="key")
        )

    def test_success(self, alma_requests: AlmaRequests) -> None:
        with Mocker() as m:
            m.get(
                "https://alma.test/almaws/v1/conf/libraries",
                text="<libraries><library><code>MAIN</code></library></libraries>",
            )
            document = alma_requests.request("/conf/libraries")
        assert document is not None
        assert document.findtext("library/code") == "MAIN"
        assert m.call_count == 1
        assert m.last_request.qs == {"apikey": ["key"]}

    def test_timeout(self, alma_requests: AlmaRequests) -> None:
        with Mocker() as m:
            m.get(
                "https://alma.test/almaws/v1/conf/libraries",
                exc=requests.exceptions.ConnectTimeout,
            )
            with pytest.raises(AlmaTransportError):
                alma_requests.request("/conf/libraries")
        assert m.call_count == 1

    def test_server_error_not_retried(self, alma_requests: AlmaRequests) -> None:
        with Mocker() as m:
            m.get(
                "https://alma.test/almaws/v1/conf/libraries",
                status_code=503,
                text="",
            )
            with pytest.raises(AlmaServerError):
                alma_requests.request("/conf/libraries")
        assert m.call_count == 1
