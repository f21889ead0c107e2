"""
Temporal normalisation for spreadsheet cells.

Source date/time values arrive in three incompatible shapes:

- spreadsheet serial numbers (day offsets from the workbook epoch, with
  the time of day in the fractional part),
- Unix timestamps (seconds since 1970-01-01),
- free-text strings in a small set of literal grammars.

The cell's number-format string decides which shape a number is; the
value alone never does. Every shape resolves to one naive ``datetime``
(the canonical instant). No timezone or locale is consulted.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

import pandas as pd
from openpyxl.styles.numbers import is_date_format
from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH, from_excel

from spreadsheet_seeder.errors import AmbiguousDateError

UNIX_EPOCH = datetime(1970, 1, 1)

# Largest serial Excel accepts (9999-12-31).
MAX_SERIAL = 2958465

# Format hints that mark a numeric cell as a Unix timestamp.
UNIX_FORMAT_HINTS = frozenset({"u", "unix", "timestamp", "epoch"})

# Explicit hints for a column whose cells are dates written as text.
STRING_FORMAT_HINTS = frozenset({"string", "text-date"})

# Generic hints a host may put in ``date_formats`` for spreadsheet dates.
SERIAL_FORMAT_HINTS = frozenset({"date", "datetime"})

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

_TIME = (
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,6}))?)?"
    r"(?:\s*(?P<ampm>[AaPp][Mm]))?"
)

# October 15 2020 23:37 / Oct 4, 2020 05:31:02.44 / October 15 2020
RE_MONTH_NAME_DATE = re.compile(
    r"^(?P<month>[A-Za-z]{3,9})\.?\s+(?P<day>\d{1,2}),?\s+(?P<year>\d{4})"
    r"(?:\s+" + _TIME + r")?$"
)
# 2020-10-15 / 2020-10-15T23:37:00.5 / 2020-10-15 23:37
RE_ISO_DATE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})"
    r"(?:[T ]" + _TIME + r")?$"
)
# 2020/10/15 / 2020/10/15 23:37:09
RE_SLASH_DATE = re.compile(
    r"^(?P<year>\d{4})/(?P<month>\d{1,2})/(?P<day>\d{1,2})"
    r"(?:\s+" + _TIME + r")?$"
)
RE_NUMERIC = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

STRING_GRAMMARS = (RE_MONTH_NAME_DATE, RE_ISO_DATE, RE_SLASH_DATE)


class DateKind(str, Enum):
    """How a cell's number format says its value encodes a date."""
    NONE = "none"
    SERIAL = "serial"
    UNIX = "unix"
    STRING = "string"


class _NotADate:
    """Sentinel returned when a value is plain data rather than a date."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_A_DATE"


NOT_A_DATE = _NotADate()

CanonicalInstant = datetime
NormalizedDate = Union[datetime, _NotADate]


def classify_format(number_format: Optional[str]) -> DateKind:
    """
    Map a number-format hint to the date representation it implies.

    ``None``, ``""``, ``General`` and other non-date formats give
    ``DateKind.NONE``.
    """
    if number_format is None:
        return DateKind.NONE
    hint = str(number_format).strip()
    if not hint:
        return DateKind.NONE
    lowered = hint.lower()
    if lowered in UNIX_FORMAT_HINTS:
        return DateKind.UNIX
    if lowered in STRING_FORMAT_HINTS:
        return DateKind.STRING
    if lowered in SERIAL_FORMAT_HINTS:
        return DateKind.SERIAL
    if is_date_format(hint):
        return DateKind.SERIAL
    return DateKind.NONE


def parse_date_string(text: Any) -> Optional[datetime]:
    """
    Parse ``text`` against the literal grammars, or return ``None``.

    Supported:
      - ``Month DD YYYY[ HH:MM[:SS[.ffffff]]][ AM|PM]`` (English month names)
      - ``YYYY-MM-DD[(T| )HH:MM[:SS[.ffffff]]]``
      - ``YYYY/MM/DD[ HH:MM[:SS[.ffffff]]]``
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    for grammar in STRING_GRAMMARS:
        m = grammar.match(text)
        if not m:
            continue
        parts = m.groupdict()
        if grammar is RE_MONTH_NAME_DATE:
            month = MONTHS.get(parts["month"].lower())
            if month is None:
                return None
        else:
            month = int(parts["month"])
        hour = int(parts["hour"] or 0)
        if parts.get("ampm"):
            if not 1 <= hour <= 12:
                return None
            hour = hour % 12 + (12 if parts["ampm"].lower() == "pm" else 0)
        fraction = parts.get("fraction") or ""
        try:
            return datetime(
                int(parts["year"]),
                month,
                int(parts["day"]),
                hour,
                int(parts["minute"] or 0),
                int(parts["second"] or 0),
                int(fraction.ljust(6, "0")) if fraction else 0,
            )
        except ValueError:
            return None
    return None


def serial_to_datetime(serial: Any, epoch: datetime = WINDOWS_EPOCH) -> datetime:
    """
    Convert a spreadsheet serial number into a datetime.

    The 1900 date system counts from 1899-12-30 so that the phantom
    1900-02-29 is absorbed; serials below 60 are shifted by openpyxl.
    """
    number = float(serial)
    if number < 0 or number > MAX_SERIAL:
        raise AmbiguousDateError(serial, details={"reason": "serial out of range"})
    try:
        result = from_excel(number, epoch)
    except (OverflowError, ValueError) as e:
        raise AmbiguousDateError(serial, details={"reason": str(e)}) from e
    if isinstance(result, time):
        result = datetime.combine(epoch.date(), result)
    return result


def unix_to_datetime(seconds: Any) -> datetime:
    """
    Convert seconds since 1970-01-01 into a naive datetime.

    Decimal arithmetic keeps sub-second digits exact up to microseconds.
    """
    try:
        value = Decimal(str(seconds).strip())
    except (InvalidOperation, ValueError) as e:
        raise AmbiguousDateError(seconds, details={"reason": "not a number"}) from e
    if not value.is_finite():
        raise AmbiguousDateError(seconds, details={"reason": "not a finite number"})
    whole = int(value)
    micro = int(((value - whole) * 1_000_000).to_integral_value())
    try:
        return UNIX_EPOCH + timedelta(seconds=whole, microseconds=micro)
    except OverflowError as e:
        raise AmbiguousDateError(seconds, details={"reason": str(e)}) from e


def native_to_datetime(value: Any, epoch: datetime = WINDOWS_EPOCH) -> Optional[datetime]:
    """Coerce reader-native temporal objects into a naive datetime, or None."""
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        value = value.to_pydatetime(warn=False)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, time):
        return datetime.combine(epoch.date(), value.replace(tzinfo=None))
    # duration formats such as [h]:mm:ss come back from openpyxl as timedelta
    if isinstance(value, timedelta):
        if isinstance(value, pd.Timedelta):
            value = value.to_pytimedelta()
        return epoch + value
    return None


def _is_blank(value: Any) -> bool:
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


class TemporalNormalizer:
    """
    Resolve raw cell values into canonical instants.

    ``normalize`` returns a naive ``datetime`` for date cells and
    ``NOT_A_DATE`` for everything else. A value the format marks as a
    date but that matches no representation raises ``AmbiguousDateError``.
    """

    def __init__(self, infer_string_dates: bool = True):
        self.infer_string_dates = infer_string_dates

    def normalize(
        self,
        value: Any,
        number_format: Optional[str] = None,
        epoch: datetime = WINDOWS_EPOCH,
    ) -> NormalizedDate:
        if _is_blank(value):
            return NOT_A_DATE

        native = native_to_datetime(value, epoch)
        if native is not None:
            return native

        kind = classify_format(number_format)
        if kind is DateKind.NONE:
            return self._infer(value)

        try:
            if kind is DateKind.SERIAL:
                return self._from_serial(value, epoch)
            if kind is DateKind.UNIX:
                return self._from_unix(value)
            return self._from_string(value)
        except AmbiguousDateError as e:
            e.number_format = number_format
            e.args = (str(e),)
            raise

    # -- per-kind strategies -------------------------------------------------

    def _infer(self, value: Any) -> NormalizedDate:
        # Numbers without a date format are plain numbers.
        if self.infer_string_dates and isinstance(value, str):
            parsed = parse_date_string(value)
            if parsed is not None:
                return parsed
        return NOT_A_DATE

    @staticmethod
    def _from_serial(value: Any, epoch: datetime) -> datetime:
        if _is_number(value):
            return serial_to_datetime(value, epoch)
        if isinstance(value, str):
            parsed = parse_date_string(value)
            if parsed is not None:
                return parsed
            if RE_NUMERIC.match(value.strip()):
                return serial_to_datetime(value.strip(), epoch)
        raise AmbiguousDateError(value)

    @staticmethod
    def _from_unix(value: Any) -> datetime:
        if _is_number(value):
            return unix_to_datetime(value)
        if isinstance(value, str):
            if RE_NUMERIC.match(value.strip()):
                return unix_to_datetime(value)
            parsed = parse_date_string(value)
            if parsed is not None:
                return parsed
        raise AmbiguousDateError(value)

    @staticmethod
    def _from_string(value: Any) -> datetime:
        parsed = parse_date_string(value)
        if parsed is None:
            raise AmbiguousDateError(value)
        return parsed


def epoch_for_datemode(datemode: int) -> datetime:
    """Epoch of an xlrd ``datemode`` flag (0 = 1900 system, 1 = 1904 system)."""
    return MAC_EPOCH if datemode == 1 else WINDOWS_EPOCH


_default_normalizer = TemporalNormalizer()


def normalize(value: Any, number_format: Optional[str] = None, epoch: datetime = WINDOWS_EPOCH) -> NormalizedDate:
    """Module-level shortcut using a normalizer that infers string dates."""
    return _default_normalizer.normalize(value, number_format, epoch)
