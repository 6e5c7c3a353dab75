"""
Opaque pagination cursor.

Wire format: URL-safe base64 without padding of ``"<epochMillis>:<id>"``.

Decoding is lenient on purpose: anything that is not a well-formed cursor
decodes to ``None`` and the caller starts from the first page. Range checks
beyond the signed 64-bit limit of the stored columns are the caller's concern.
"""
import base64
import binascii
import re
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

DELIMITER = ":"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLI = timedelta(milliseconds=1)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class Cursor(NamedTuple):
    """Position of the last item of a page."""

    epoch_millis: int
    id: int


def to_epoch_millis(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MILLI


def from_epoch_millis(epoch_millis: int) -> datetime:
    """
    Inverse of ``to_epoch_millis``.

    Raises:
        OverflowError: If the value is outside the datetime range
    """
    return _EPOCH + timedelta(milliseconds=epoch_millis)


def encode_cursor(created_at: Optional[datetime], payment_id: Optional[int]) -> Optional[str]:
    """
    Encode the (created_at, id) position of a page's tail item.

    Returns None unless both components are present.
    """
    if created_at is None or payment_id is None:
        return None
    raw = f"{to_epoch_millis(created_at)}{DELIMITER}{payment_id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: Optional[str]) -> Optional[Cursor]:
    """
    Decode a cursor token.

    Never raises. Blank, malformed, non-numeric or short payloads all
    decode to None. Fields after the second are ignored.
    """
    if token is None or not token.strip():
        return None

    token = token.strip().rstrip("=")
    if not _TOKEN_RE.match(token) or len(token) % 4 == 1:
        return None

    try:
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    parts = raw.split(DELIMITER)
    if len(parts) < 2:
        return None

    millis_part, id_part = parts[0], parts[1]
    if not _INT_RE.match(millis_part) or not _INT_RE.match(id_part):
        return None

    epoch_millis, payment_id = int(millis_part), int(id_part)
    if not (_INT64_MIN <= epoch_millis <= _INT64_MAX and _INT64_MIN <= payment_id <= _INT64_MAX):
        return None

    return Cursor(epoch_millis=epoch_millis, id=payment_id)
