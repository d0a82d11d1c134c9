from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import urlencode

from lxml import etree
from pydantic import ValidationError
from pydantic_xml import BaseXmlModel
from pydantic_xml.errors import ParsingError
from requests import Response

from ilsbridge.api.alma.constants import NO_ERROR_MESSAGE
from ilsbridge.api.alma.exception import (
    AlmaApiFailure,
    AlmaBusinessError,
    AlmaErrorParser,
    AlmaParseError,
    AlmaServerError,
    AlmaTransportError,
)
from ilsbridge.api.alma.settings import AlmaSettings
from ilsbridge.util.http import (
    HTTP,
    BadResponseException,
    RequestNetworkException,
)
from ilsbridge.util.log import LoggerMixin
from ilsbridge.util.xmlparser import XMLParser

if TYPE_CHECKING:
    from lxml.etree import _Element

ModelT = TypeVar("ModelT", bound=BaseXmlModel)

Params = Mapping[str, str | int | None]


class AlmaRequests(LoggerMixin):
    """Issues calls to the Alma REST API and classifies what comes back.

    Every call returns the parsed root element of the response document, or
    raises one of the AlmaApiFailure subclasses. Nothing is retried.
    """

    SERVICE_NAME = "Alma"

    def __init__(self, settings: AlmaSettings) -> None:
        self.base_url = settings.api_base_url
        self.api_key = settings.api_key
        self.timeout = settings.http_timeout

    def url(self, path: str) -> str:
        if "://" in path:
            return path
        return self.base_url + path

    def request(
        self,
        path: str,
        params: Params | None = None,
        data: Params | None = None,
        method: str = "GET",
        body: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
        allowed_errors: Collection[int] = (),
    ) -> _Element | None:
        """Make one call and return the response document.

        :param path: Relative to the API base URL, or an absolute URL.
        :param params: Query parameters. The API key is added unless present.
        :param data: Form parameters, sent with POST calls only.
        :param body: A raw request body. Takes precedence over `data`.
        :param allowed_errors: HTTP statuses that are handed back as a
            document rather than raised as an AlmaBusinessError.
        :return: The root element, or None when there is no document.
        """
        document, _ = self.request_with_status(
            path,
            params=params,
            data=data,
            method=method,
            body=body,
            headers=headers,
            allowed_errors=allowed_errors,
        )
        return document

    def request_with_status(
        self,
        path: str,
        params: Params | None = None,
        data: Params | None = None,
        method: str = "GET",
        body: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
        allowed_errors: Collection[int] = (),
    ) -> tuple[_Element | None, int]:
        """Like `request`, but also return the HTTP status code."""
        query = self._query(params)
        url = self.url(path)
        response = self._send(method, url, query, data, body, headers)
        return self._process(method, url, query, data, response, allowed_errors)

    def send_json(
        self,
        path: str,
        payload: Mapping[str, Any],
        params: Params | None = None,
    ) -> Response:
        """POST a JSON document and hand back the raw response, whatever its
        status. Used by calls whose outcome is reported to the patron rather
        than raised."""
        query = dict(self._query(params))
        query["format"] = "json"
        url = self.url(path)
        try:
            response = HTTP.request_with_timeout(
                "POST",
                url,
                params=query,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                max_retry_count=0,
                allowed_response_codes=["2xx", "3xx", "4xx", "5xx"],
            )
        except RequestNetworkException as e:
            self.log.error(f"POST request for {url} failed: {e.message}")
            raise AlmaTransportError(
                url, e.message or str(e), debug_message=e.debug_message
            ) from e
        self._log_call("POST", url, query, response)
        return response

    def fetch(
        self,
        model: type[ModelT],
        path: str,
        params: Params | None = None,
        **kwargs: Any,
    ) -> ModelT | None:
        """Make a call and validate the response document against `model`."""
        document = self.request(path, params=params, **kwargs)
        if document is None:
            return None
        return self.parse(model, document, self.url(path))

    @classmethod
    def parse(cls, model: type[ModelT], document: _Element, path: str) -> ModelT:
        try:
            return model.from_xml_tree(document)
        except (ValidationError, ParsingError) as e:
            cls.logger().error(
                f"Unexpected {document.tag} document from {path}: {e}"
            )
            raise AlmaParseError(
                path,
                f"Response did not match {model.__name__}: {e}",
                debug_message=etree.tostring(document, encoding="unicode"),
            ) from e

    def _query(self, params: Params | None) -> dict[str, str | int]:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        if "apikey" not in query:
            query["apikey"] = self.api_key
        return query

    def _send(
        self,
        method: str,
        url: str,
        query: Mapping[str, str | int],
        data: Params | None,
        body: str | bytes | None,
        headers: Mapping[str, str] | None,
    ) -> Response:
        payload: Any = None
        if body is not None:
            payload = body
        elif method == "POST" and data:
            payload = {k: v for k, v in data.items() if v is not None}

        try:
            response = HTTP.request_with_timeout(
                method,
                url,
                params=query,
                data=payload,
                headers=headers,
                timeout=self.timeout,
                max_retry_count=0,
            )
        except BadResponseException as e:
            # Only the 5xx series gets here, every other status is ours to classify.
            self._log_call(method, url, query, e.response)
            self.log.error(
                f"{method} request for {url} failed, HTTP error code: {e.status_code}"
            )
            raise AlmaServerError(
                url,
                f"HTTP error code: {e.status_code}",
                status_code=e.status_code,
                debug_message=e.debug_message,
            ) from e
        except RequestNetworkException as e:
            self.log.error(f"{method} request for {url} failed: {e.message}")
            raise AlmaTransportError(
                url, e.message or str(e), debug_message=e.debug_message
            ) from e

        self._log_call(method, url, query, response)
        return response

    def _process(
        self,
        method: str,
        url: str,
        query: Mapping[str, str | int],
        data: Params | None,
        response: Response,
        allowed_errors: Collection[int],
    ) -> tuple[_Element | None, int]:
        status = response.status_code
        success = 200 <= status < 300
        allowed = status in allowed_errors

        # Alma declares a default namespace that collides with attribute names
        # in its own schema. Dropping the declaration keeps element names plain.
        content = response.content.replace(b"xmlns=", b"ns=")

        if not content.strip():
            if status == 204 or (allowed and not success):
                return None, status
            if success:
                self.log.error(
                    f"Empty document for {method} request for {url}, HTTP status code: {status}"
                )
                raise AlmaServerError(
                    url,
                    f"XML is not valid or HTTP error, URL: {url}, HTTP status code: {status}",
                    status_code=status,
                )
            raise self._business_error(method, url, query, data, response, None)

        try:
            document = XMLParser._load_xml(content)
        except etree.XMLSyntaxError as e:
            # Present but not XML is a parse failure, blank was a server failure above.
            if success or allowed:
                self.log.error(
                    f"Could not parse response for {method} request for {url}: {e}. "
                    f"Response was:\n{response.headers!r}\n\n{response.text}"
                )
                raise AlmaParseError(
                    url, str(e), status_code=status, debug_message=response.text
                ) from e
            raise self._business_error(method, url, query, data, response, None)

        if success or allowed:
            return document, status
        raise self._business_error(method, url, query, data, response, document)

    def _business_error(
        self,
        method: str,
        url: str,
        query: Mapping[str, str | int],
        data: Params | None,
        response: Response,
        document: _Element | None,
    ) -> AlmaApiFailure:
        error = AlmaErrorParser.from_xml(document)
        message = error.message if error and error.message else NO_ERROR_MESSAGE
        self.log.error(
            f"[ALMA] {message} | Call to: {url}. GET params: {self._masked(query)!r}. "
            f"POST params: {dict(data or {})!r}. Result body: {response.text}. "
            f"HTTP status code: {response.status_code}"
        )
        return AlmaBusinessError(
            url,
            message,
            status_code=response.status_code,
            error_code=error.code if error else None,
            debug_message=response.text,
        )

    def _log_call(
        self,
        method: str,
        url: str,
        query: Mapping[str, str | int],
        response: Response,
    ) -> None:
        elapsed = response.elapsed.total_seconds()
        self.log.debug(
            f"[{elapsed:.4f}] {method} request for {url}?{urlencode(self._masked(query))} "
            f"results ({response.status_code}):\n{response.text}"
        )

    @staticmethod
    def _masked(query: Mapping[str, str | int]) -> dict[str, str | int]:
        return {k: ("***" if k == "apikey" else v) for k, v in query.items()}
