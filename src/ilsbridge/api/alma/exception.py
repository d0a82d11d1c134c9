from __future__ import annotations

import json
from enum import StrEnum
from typing import TYPE_CHECKING, Any, NamedTuple

from ilsbridge.core.exceptions import IlsBridgeValueError
from ilsbridge.util.http import RemoteIntegrationException
from ilsbridge.util.xmlparser import XMLParser

if TYPE_CHECKING:
    from lxml.etree import _Element


class FailureKind(StrEnum):
    transport = "transport"
    server = "server"
    business = "business"
    parse = "parse"


class AlmaApiFailure(RemoteIntegrationException):
    """A call to the Alma API could not be completed.

    Every failure carries the path of the call that failed, the HTTP status
    when one was received, and a message meant for operators.
    """

    kind: FailureKind
    internal_message = "Alma call to %s failed: %s"

    def __init__(
        self,
        path: str,
        message: str,
        *,
        status_code: int | None = None,
        debug_message: str | None = None,
    ) -> None:
        super().__init__(path, message, debug_message)
        self.path = path
        self.status_code = status_code


class AlmaTransportError(AlmaApiFailure):
    """The connection failed or timed out. Never retried."""

    kind = FailureKind.transport


class AlmaServerError(AlmaApiFailure):
    """Alma answered with a 5xx status, or with an empty document where a
    successful call must return one."""

    kind = FailureKind.server


class AlmaBusinessError(AlmaApiFailure):
    """Alma refused the call and explained why in an error document."""

    kind = FailureKind.business

    def __init__(
        self,
        path: str,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        debug_message: str | None = None,
    ) -> None:
        super().__init__(
            path, message, status_code=status_code, debug_message=debug_message
        )
        self.error_code = error_code


class AlmaParseError(AlmaApiFailure):
    """The response body was not the document we expected."""

    kind = FailureKind.parse


class InvalidDateError(IlsBridgeValueError):
    """A date string from Alma did not match any known shape, or matched one
    but does not name a real date."""

    def __init__(self, value: str, message: str | None = None) -> None:
        super().__init__(message or f"Invalid date: {value}")
        self.value = value


class AlmaError(NamedTuple):
    code: str | None
    message: str | None


class AlmaErrorParser(XMLParser):
    """Reads the first entry of an Alma errorList, which is authoritative."""

    @classmethod
    def from_xml(cls, root: _Element | None) -> AlmaError | None:
        if root is None:
            return None
        error = cls._xpath1(root, "/*/errorList/error[1]")
        if error is None:
            return None
        return AlmaError(
            code=cls.text_of_optional_subtag(error, "errorCode"),
            message=cls.text_of_optional_subtag(error, "errorMessage"),
        )

    @classmethod
    def from_json(cls, text: str) -> AlmaError | None:
        """JSON responses nest the same errorList inside an object, with
        `error` either a list or a single object."""
        try:
            document: Any = json.loads(text)
        except ValueError:
            return None
        if not isinstance(document, dict):
            return None
        errors = (document.get("errorList") or {}).get("error")
        if isinstance(errors, list):
            errors = errors[0] if errors else None
        if not isinstance(errors, dict):
            return None
        code = errors.get("errorCode")
        message = errors.get("errorMessage")
        return AlmaError(
            code=str(code) if code is not None else None,
            message=str(message) if message is not None else None,
        )
