"""Value conversions between driver-native and canonical representations."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from typing import Any

# Large enough for any supported column precision plus the scale
_DECIMAL_CONTEXT = Context(prec=200)

# HH:MM:SS[.fffffff]
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?")


def read_lob(value: Any) -> Any:
    """Materialize large-object handles that expose read()."""
    reader = getattr(value, "read", None)
    if callable(reader):
        return reader()
    return value


def to_bytes(value: Any) -> bytes:
    value = read_lob(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"Expected binary data but got '{type(value).__name__}'")


def to_text(value: Any) -> str:
    value = read_lob(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError("Expected character data but got binary data")
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def to_decimal(value: Any, scale: int, rounding: str = ROUND_HALF_EVEN) -> Decimal:
    """Convert to Decimal rescaled to exactly ``scale`` digits.

    Raises:
        ValueError: If the value is not numeric or cannot be rescaled
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value} to decimal")
    try:
        if isinstance(value, float):
            number = Decimal(repr(value))
        elif isinstance(value, Decimal):
            number = value
        else:
            number = Decimal(str(value).strip())
        return number.quantize(
            Decimal(1).scaleb(-scale), rounding=rounding, context=_DECIMAL_CONTEXT
        )
    except InvalidOperation as e:
        raise ValueError(f"Cannot convert '{value}' to a decimal with scale {scale}") from e


def to_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (Decimal, float)):
        if value != int(value):
            raise ValueError(f"Value {value} is not an integer")
        return int(value)
    return int(str(value).strip())


def to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value} to float")
    return float(value)


def to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Expected a date but got '{type(value).__name__}'")


def to_time(value: Any) -> time:
    """Normalise driver time values to a naive time of day.

    Accepts time, datetime, timedelta (returned by some MySQL drivers) and
    strings with up to nine fractional digits, which are truncated to
    microseconds.

    Raises:
        ValueError: If a timedelta is negative or spans a day or more
    """
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, timedelta):
        if value < timedelta(0) or value >= timedelta(days=1):
            raise ValueError(f"Time value '{value}' is not a time of day")
        return time(
            value.seconds // 3600,
            (value.seconds % 3600) // 60,
            value.seconds % 60,
            value.microseconds,
        )
    if isinstance(value, str):
        match = _TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"Cannot parse time value '{value}'")
        hours, minutes, seconds, fraction = match.groups()
        micros = int((fraction or "0").ljust(6, "0")[:6])
        return time(int(hours), int(minutes), int(seconds), micros)
    raise TypeError(f"Expected a time but got '{type(value).__name__}'")


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-like timestamp string, tolerating 7-9 fractional digits."""
    text = value.strip().replace(" ", "T", 1)
    match = re.match(r"^(.*?\.\d{6})\d{1,3}(.*)$", text)
    if match:
        text = match.group(1) + match.group(2)
    return datetime.fromisoformat(text)


def to_utc_timestamp(value: Any) -> datetime:
    """Convert to an aware UTC datetime; naive values are taken as UTC."""
    if isinstance(value, str):
        value = parse_datetime(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise TypeError(f"Expected a timestamp but got '{type(value).__name__}'")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local_datetime(value: Any) -> datetime:
    """Convert to a naive datetime holding the stored wall-clock value."""
    if isinstance(value, str):
        value = parse_datetime(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise TypeError(f"Expected a datetime but got '{type(value).__name__}'")
    return value.replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetime to naive UTC wall time, as bound for TIMESTAMP columns."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
