from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any, TypedDict, Unpack

import requests
from requests import Session as RequestsSession
from requests.adapters import HTTPAdapter, Response
from urllib3 import Retry

from ilsbridge.util.http.base import (
    ResponseCodesTypes,
    get_default_headers,
    raise_for_bad_response,
)
from ilsbridge.util.http.exception import (
    RequestNetworkException,
    RequestTimedOut,
)
from ilsbridge.util.log import LoggerMixin


class RequestKwargs(TypedDict, total=False):
    params: Mapping[str, str | int | float | None] | None
    headers: Mapping[str, str] | None
    timeout: float | int | None
    allow_redirects: bool
    data: Iterable[bytes] | str | bytes | Mapping[str, Any] | None
    json: Mapping[str, Any] | None

    allowed_response_codes: ResponseCodesTypes
    max_retry_count: int


class HTTP(LoggerMixin):
    """A helper for the `requests` module."""

    DEFAULT_REQUEST_RETRIES = 5
    DEFAULT_REQUEST_TIMEOUT = 20
    BACKOFF_FACTOR = 1.0

    # The set of status codes on which a retry will be attempted (if the number of retries requested is non-zero).
    RETRY_STATUS_CODES = [429, 500, 502, 503, 504]

    @classmethod
    def session(cls, max_retry_count: int | None = None) -> RequestsSession:
        """
        Create a requests session with the given retry settings.

        Note: RequestsSession is not thread-safe, so a session must not be
        shared between the worker threads of a fan-out.
        """
        max_retry_count = (
            max_retry_count
            if max_retry_count is not None
            else cls.DEFAULT_REQUEST_RETRIES
        )

        session = RequestsSession()
        retry_strategy = Retry(
            total=max_retry_count,
            status_forcelist=cls.RETRY_STATUS_CODES,
            backoff_factor=cls.BACKOFF_FACTOR,
            # If our automatic retries are exhausted, we handle the final
            # response ourselves in raise_for_bad_response.
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    @classmethod
    def request_with_timeout(
        cls, http_method: str, url: str, **kwargs: Unpack[RequestKwargs]
    ) -> Response:
        """Call requests.request and turn a timeout into a RequestTimedOut
        exception.
        """
        return cls._request_with_timeout(http_method, url, **kwargs)

    @classmethod
    def _request_with_timeout(
        cls, http_method: str, url: str, **kwargs: Unpack[RequestKwargs]
    ) -> Response:
        """The core of `request_with_timeout`.

        :param url: Make the request to this URL.
        :param kwargs: Keyword arguments for the request function.
        """
        allowed_response_codes = kwargs.pop("allowed_response_codes", [])
        max_retry_count: int | None = kwargs.pop("max_retry_count", None)

        if not "timeout" in kwargs:
            kwargs["timeout"] = cls.DEFAULT_REQUEST_TIMEOUT

        # Set a user-agent if not already present
        headers = get_default_headers()
        if (additional_headers := kwargs.get("headers")) is not None:
            headers.update(additional_headers)
        kwargs["headers"] = headers

        try:
            request_start_time = time.time()
            response = cls._send(http_method, url, max_retry_count, **kwargs)
            cls.logger().debug(
                f"Request time for {url} took {time.time() - request_start_time:.2f} seconds"
            )
        except requests.exceptions.Timeout as e:
            # Wrap the requests-specific Timeout exception
            # in a generic RequestTimedOut exception.
            raise RequestTimedOut(url, str(e)) from e
        except requests.exceptions.RequestException as e:
            # Wrap all other requests-specific exceptions in
            # a generic RequestNetworkException.
            raise RequestNetworkException(url, str(e)) from e

        return raise_for_bad_response(url, response, allowed_response_codes)

    @classmethod
    def _send(
        cls,
        http_method: str,
        url: str,
        max_retry_count: int | None,
        **kwargs: Any,
    ) -> Response:
        with cls.session(max_retry_count=max_retry_count) as session:
            return session.request(http_method, url, **kwargs)
