from __future__ import annotations

from enum import Enum


class SentinelType(Enum):
    """
    Sentinel values used throughout ilsbridge.

    Using an enum member means the sentinel can be type hinted as
    Literal[SentinelType.NotCached] and checked with `is`.
    """

    NotCached = "NotCached"
    """
    Returned by a cache lookup when nothing has been stored under a key. A
    stored None or False is a real value and is returned as-is.
    """
