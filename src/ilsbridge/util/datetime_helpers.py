import datetime
import re
from collections.abc import Callable
from functools import wraps
from typing import overload

import pytz
from dateutil.relativedelta import relativedelta


def _wrapper[T, **P](func: Callable[P, T]) -> Callable[P, T]:
    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        kwargs["tzinfo"] = pytz.UTC
        return func(*args, **kwargs)

    return wrapper


datetime_utc = _wrapper(datetime.datetime)
"""
Return a datetime object but with UTC information from pytz.
"""


def from_timestamp(ts: float) -> datetime.datetime:
    """Return a UTC datetime object from a timestamp.

    :return: datetime object
    """
    return datetime.datetime.fromtimestamp(ts, tz=pytz.UTC)


def utc_now() -> datetime.datetime:
    """Get the current time in UTC.

    :return: datetime object
    """
    return datetime.datetime.now(tz=pytz.UTC)


@overload
def to_utc(dt: datetime.datetime) -> datetime.datetime: ...


@overload
def to_utc(dt: datetime.datetime | None) -> datetime.datetime | None: ...


def to_utc(dt: datetime.datetime | None) -> datetime.datetime | None:
    """This converts a naive datetime object that represents UTC into
    an aware datetime object.

    :return: datetime object, or None if `dt` was None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    if dt.tzinfo == pytz.UTC:
        # Already UTC.
        return dt
    return dt.astimezone(pytz.UTC)


def strptime_utc(date_string: str, format: str) -> datetime.datetime:
    """Parse a string that describes a time but includes no timezone,
    into a timezone-aware datetime object set to UTC.

    :raise ValueError: If `format` expects timezone information to be
        present in `date_string`.
    """
    if "%Z" in format or "%z" in format:
        raise ValueError(f"Cannot use strptime_utc with timezone-aware format {format}")
    return to_utc(datetime.datetime.strptime(date_string, format))


_ISO8601_PERIOD = re.compile(
    r"^P(?!$)(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?=\d)(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_period(period: str) -> relativedelta:
    """Parse an ISO-8601 duration such as ``P1Y`` or ``P6M2D`` into a
    relativedelta, so that calendar units (years, months) are added the way
    a person would expect rather than as a fixed number of days.

    :raise ValueError: If `period` is not a valid ISO-8601 duration.
    """
    match = _ISO8601_PERIOD.match(period.strip())
    if match is None:
        raise ValueError(f"Invalid ISO-8601 period: {period!r}")
    parts = {key: int(value) for key, value in match.groupdict().items() if value}
    return relativedelta(**parts)


def add_iso8601_period(
    period: str, start: datetime.datetime | None = None
) -> datetime.datetime:
    """Return `start` (default: now, in UTC) moved forward by `period`."""
    return (start or utc_now()) + parse_iso8601_period(period)
