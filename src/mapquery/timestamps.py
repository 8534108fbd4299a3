"""
Timestamp coding.

Encoding always produces RFC3339 with fractional seconds (trailing zeros
trimmed, "Z" for a zero UTC offset). Decoding accepts, in order:

    1. RFC3339, optionally with fractional seconds
    2. decimal seconds since the Unix epoch, e.g. "1000" or "1000.25"
    3. a JSON document holding an RFC3339 string, e.g. "\"2006-01-02T15:04:05Z\""

Naive datetimes are treated as UTC when encoded. Decoded datetimes are
always timezone-aware. Sub-microsecond precision is truncated.
"""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

from mapquery.errors import CompositeError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# datetime.max is ~2.5e11 seconds after the epoch
_MAX_EPOCH_SECONDS = Decimal(10) ** 12

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?"
    r"(?:(Z)|([+-])(\d{2}):(\d{2}))\Z"
)
_DECIMAL_SECONDS = re.compile(r"^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?\Z")


def parse_rfc3339(s: str) -> datetime:
    m = _RFC3339.match(s)
    if not m:
        raise ValueError(f"{s!r} is not an RFC3339 timestamp")

    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    fraction = m.group(7) or ""
    microsecond = int(fraction[:6].ljust(6, "0"))

    if m.group(8):
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(m.group(10)), minutes=int(m.group(11)))
        if offset >= timedelta(hours=24):
            raise ValueError(f"{s!r} has an out of range UTC offset")
        tz = timezone(-offset if m.group(9) == "-" else offset)

    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)


def parse_epoch_seconds(s: str) -> datetime:
    """Seconds since the Unix epoch: whole part plus a fractional part."""
    if not _DECIMAL_SECONDS.match(s):
        raise ValueError(f"{s!r} is not a decimal number of seconds")
    try:
        total = Decimal(s)
    except InvalidOperation as e:
        raise ValueError(f"{s!r} is not a decimal number of seconds") from e
    if abs(total) > _MAX_EPOCH_SECONDS:
        raise ValueError(f"{s!r} is out of the representable time range")

    whole = int(total)
    nanos = int((total - whole) * 1_000_000_000)
    try:
        return EPOCH + timedelta(seconds=whole, microseconds=int(nanos / 1000))
    except OverflowError as e:
        raise ValueError(f"{s!r} is out of the representable time range") from e


def parse_json_timestamp(s: str) -> datetime:
    value = json.loads(s)
    if not isinstance(value, str):
        raise ValueError(f"JSON timestamp must be a string, got {type(value).__name__}")
    return parse_rfc3339(value)


_PARSERS = (
    ("rfc3339", parse_rfc3339),
    ("epoch seconds", parse_epoch_seconds),
    ("json", parse_json_timestamp),
)


def parse_timestamp(s: str) -> datetime:
    """
    Parse a timestamp, trying each accepted form in turn.

    Raises:
        CompositeError: wrapping the failure of the last form tried
    """
    last_error: Exception = ValueError(f"cannot parse {s!r} as a timestamp")
    for label, parser in _PARSERS:
        try:
            return parser(s)
        except ValueError as e:
            logger.debug("Timestamp %r is not %s: %s", s, label, e)
            last_error = e
    raise CompositeError(last_error, s) from last_error


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")

    offset = value.utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds()) // 60
    if minutes == 0:
        return text + "Z"
    sign = "+" if minutes > 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"
