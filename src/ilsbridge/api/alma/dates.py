from __future__ import annotations

import dataclasses
import datetime
import re

import pytz

from ilsbridge.api.alma.exception import InvalidDateError
from ilsbridge.api.alma.settings import AlmaSettings
from ilsbridge.util.datetime_helpers import strptime_utc, to_utc


class DateConverter:
    """Turns dates in a known input format into the configured display format.

    Dates without a time are calendar dates and are never shifted between
    time zones. Dates with a time are read as UTC and shown in the display
    time zone.
    """

    def __init__(
        self,
        date_format: str = "%m-%d-%Y",
        time_format: str = "%H:%M",
        timezone: str = "UTC",
    ) -> None:
        self.date_format = date_format
        self.time_format = time_format
        self.timezone = pytz.timezone(timezone)

    @classmethod
    def from_settings(cls, settings: AlmaSettings) -> DateConverter:
        return cls(
            date_format=settings.display_date_format,
            time_format=settings.display_time_format,
            timezone=settings.display_timezone,
        )

    def parse(self, input_format: str, value: str) -> datetime.datetime:
        try:
            return strptime_utc(value, input_format)
        except ValueError as e:
            raise InvalidDateError(value, f"Invalid date: {value} ({e})") from e

    def localize(self, value: datetime.datetime) -> datetime.datetime:
        return to_utc(value).astimezone(self.timezone)

    def convert_to_display_date(self, input_format: str, value: str) -> str:
        return self.parse(input_format, value).strftime(self.date_format)

    def convert_to_display_date_and_time(self, input_format: str, value: str) -> str:
        local = self.localize(self.parse(input_format, value))
        return f"{local.strftime(self.date_format)} {local.strftime(self.time_format)}"

    def convert_from_display_date(self, output_format: str, value: str) -> str:
        return self.parse(self.date_format, value).strftime(output_format)


@dataclasses.dataclass(frozen=True)
class DateShape:
    name: str
    pattern: re.Pattern[str]
    input_format: str
    has_time: bool = False

    def matches(self, value: str) -> bool:
        return self.pattern.match(value) is not None


# Evaluated in order, the first match wins. "25/07/2012" matches both the
# unpadded and the padded day/month/year shapes, and must resolve through
# the unpadded one.
DATE_SHAPES: tuple[DateShape, ...] = (
    DateShape("compact", re.compile(r"^[0-9]{8}$"), "%Y%m%d"),
    DateShape("month name", re.compile(r"^[0-9]+/[A-Za-z]{3}/[0-9]{4}$"), "%d/%b/%Y"),
    DateShape("day/month/year", re.compile(r"^[0-9]+/[0-9]+/[0-9]{4}$"), "%d/%m/%Y"),
    DateShape(
        "padded day/month/year",
        re.compile(r"^[0-9]{1,2}/[0-9]{1,2}/[0-9]{2,4}$"),
        "%d/%m/%y",
    ),
    DateShape("iso date", re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"), "%Y-%m-%d"),
    DateShape(
        "iso timestamp",
        re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}Z$"),
        "%Y-%m-%dT%H:%M:%SZ",
        has_time=True,
    ),
)


class AlmaDateParser:
    """Normalizes the assortment of date formats Alma returns."""

    def __init__(self, converter: DateConverter | None = None) -> None:
        self.converter = converter or DateConverter()

    @staticmethod
    def _strip_zone(date: str) -> str:
        # Alma suffixes some plain dates with a zone marker, e.g. 2012-07-13Z.
        if "T" not in date and date.endswith("Z"):
            return date[:-1]
        return date

    @staticmethod
    def shape_of(date: str) -> DateShape:
        for shape in DATE_SHAPES:
            if shape.matches(date):
                return shape
        raise InvalidDateError(date)

    def parse_date(self, date: str | None, with_time: bool = False) -> str:
        """Return `date` in the display format.

        :param with_time: Include the time of day, for the values that have one.
        :return: The display string, or "" for an empty value.
        :raise InvalidDateError: If `date` has no recognized shape, or is not
            a real date.
        """
        if not date:
            return ""
        date = self._strip_zone(date)
        shape = self.shape_of(date)
        if shape.has_time:
            if with_time:
                return self.converter.convert_to_display_date_and_time(
                    shape.input_format, date
                )
            return self.converter.convert_to_display_date("%Y-%m-%d", date[:10])
        return self.converter.convert_to_display_date(shape.input_format, date)

    def parse_datetime(self, date: str | None) -> datetime.datetime | None:
        """Return `date` as an aware UTC datetime, for comparisons.

        Dates without a time are taken as midnight UTC.
        """
        if not date:
            return None
        date = self._strip_zone(date)
        return self.converter.parse(self.shape_of(date).input_format, date)
