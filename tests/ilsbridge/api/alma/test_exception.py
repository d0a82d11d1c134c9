from __future__ import annotations

import pytest

from ilsbridge.api.alma.exception import (
    AlmaBusinessError,
    AlmaError,
    AlmaErrorParser,
    AlmaServerError,
    FailureKind,
)
from ilsbridge.util.xmlparser import XMLParser
from tests.fixtures.files import AlmaFilesFixture


class TestAlmaErrorParser:
    def test_from_xml(self, alma_files_fixture: AlmaFilesFixture) -> None:
        content = alma_files_fixture.sample_data("error.xml").replace(
            b"xmlns=", b"ns="
        )
        error = AlmaErrorParser.from_xml(XMLParser._load_xml(content))
        assert error == AlmaError(
            code="401861", message="User with identifier 12345 was not found."
        )

    def test_from_xml_without_errors(self) -> None:
        assert AlmaErrorParser.from_xml(None) is None
        assert AlmaErrorParser.from_xml(XMLParser._load_xml("<user/>")) is None
        assert AlmaErrorParser.from_xml(
            XMLParser._load_xml(
                "<web_service_result><errorList><error/></errorList></web_service_result>"
            )
        ) == AlmaError(code=None, message=None)

    @pytest.mark.parametrize(
        "text, expected",
        [
            pytest.param(
                '{"errorList": {"error": [{"errorCode": "401129", "errorMessage": "No items can fulfill"}, {"errorCode": "1"}]}}',
                AlmaError(code="401129", message="No items can fulfill"),
                id="list",
            ),
            pytest.param(
                '{"errorList": {"error": {"errorCode": 401652, "errorMessage": "Bad pickup"}}}',
                AlmaError(code="401652", message="Bad pickup"),
                id="single object",
            ),
            pytest.param('{"errorList": {"error": []}}', None, id="empty list"),
            pytest.param('{"request_id": "1"}', None, id="no errors"),
            pytest.param("[1, 2]", None, id="not an object"),
            pytest.param("<xml/>", None, id="not json"),
        ],
    )
    def test_from_json(self, text: str, expected: AlmaError | None) -> None:
        assert AlmaErrorParser.from_json(text) == expected


class TestAlmaApiFailure:
    def test_attributes(self) -> None:
        error = AlmaBusinessError(
            "https://alma.test/almaws/v1/users/1",
            "User not found",
            status_code=400,
            error_code="401861",
            debug_message="<web_service_result/>",
        )
        assert error.kind == FailureKind.business
        assert error.path == "https://alma.test/almaws/v1/users/1"
        assert error.service == "alma.test"
        assert error.message == "User not found"
        assert str(error) == (
            "Alma call to https://alma.test/almaws/v1/users/1 failed: "
            "User not found\n\n<web_service_result/>"
        )

        server_error = AlmaServerError("/users/1", "HTTP error code: 500", status_code=500)
        assert server_error.kind == FailureKind.server
        assert str(server_error) == "Alma call to /users/1 failed: HTTP error code: 500"
