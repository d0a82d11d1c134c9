from ilsbridge.util.http.base import (
    ResponseCodesTypes,
    get_series,
    raise_for_bad_response,
    status_code_matches,
)
from ilsbridge.util.http.exception import (
    BadResponseException,
    RemoteIntegrationException,
    RequestNetworkException,
    RequestTimedOut,
)
from ilsbridge.util.http.http import HTTP

__all__ = [
    "HTTP",
    "BadResponseException",
    "RemoteIntegrationException",
    "RequestNetworkException",
    "RequestTimedOut",
    "ResponseCodesTypes",
    "get_series",
    "raise_for_bad_response",
    "status_code_matches",
]
