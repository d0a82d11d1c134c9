from __future__ import annotations

from urllib.parse import urlparse

import requests

from ilsbridge.core.exceptions import IntegrationException


class RemoteIntegrationException(IntegrationException):
    """An exception that happens when we try and fail to communicate
    with a third-party service over HTTP.
    """

    internal_message = "Error accessing %s: %s"

    def __init__(
        self, url_or_service: str, message: str, debug_message: str | None = None
    ) -> None:
        """Indicate that a remote integration has failed.

        `param url_or_service` The name of the service that failed
           (e.g. "Alma"), or the specific URL that had the problem.
        """
        if url_or_service and any(
            url_or_service.startswith(x) for x in ("http:", "https:")
        ):
            self.url = url_or_service
            self.service = urlparse(url_or_service).netloc
        else:
            self.url = self.service = url_or_service

        super().__init__(message, debug_message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.debug_message:
            message += "\n\n" + self.debug_message
        return self.internal_message % (self.url, message)


class BadResponseException(RemoteIntegrationException):
    """The request seemingly went okay, but we got a bad response."""

    internal_message = "Bad response from %s: %s"

    BAD_STATUS_CODE_MESSAGE = (
        "Got status code %s from external server, cannot continue."
    )

    def __init__(
        self,
        url_or_service: str,
        message: str,
        response: requests.Response,
        debug_message: str | None = None,
    ):
        if debug_message is None:
            debug_message = (
                f"Status code: {response.status_code}\nContent: {response.text}"
            )

        super().__init__(url_or_service, message, debug_message)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class RequestNetworkException(RemoteIntegrationException):
    """The connection to the remote service could not be made, or was
    dropped before a response came back.
    """

    internal_message = "Network error contacting %s: %s"


class RequestTimedOut(RequestNetworkException):
    """The remote service did not answer within the request timeout."""

    internal_message = "Timeout accessing %s: %s"
