"""
Low-level encoding helpers shared by the token engine.

Segments are base64url without padding, JSON documents are serialized
compactly, and lifetimes are written as timespans (``"90"``, ``"10s"``,
``"5m"``, ``"2h"``, ``"7d"``).
"""

import base64
import binascii
import json
import re
from typing import Any

from src.core.errors.exceptions import DecodeError, InvalidTimespanError

TIMESPAN_PATTERN = re.compile(r"(\d+)([smhd])", re.ASCII)
DIGITS_PATTERN = re.compile(r"\d+", re.ASCII)
BASE64URL_PATTERN = re.compile(r"[A-Za-z0-9_-]*")

TIMESPAN_UNITS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
}

Timespan = int | str


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(value: str) -> bytes:
    """
    Decode an unpadded base64url string.

    Raises:
        DecodeError: the value contains characters outside the base64url
            alphabet or its length can not be a valid encoding.
    """
    if not isinstance(value, str) or not BASE64URL_PATTERN.fullmatch(value):
        raise DecodeError("Invalid base64url alphabet")
    if len(value) % 4 == 1:
        raise DecodeError("Invalid base64url length")

    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64url segment: {e}")


def json_encode(document: dict[str, Any]) -> bytes:
    """
    Serialize a header or claim set.

    Raises:
        DecodeError: the document holds a value JSON can not represent, such
            as NaN or infinity.
    """
    try:
        encoded = json.dumps(
            document, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Document is not valid JSON: {e}")
    return encoded.encode("utf-8")


def reject_constant(name: str) -> Any:
    raise DecodeError(f"Invalid JSON constant in token: {name}")


def json_decode(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"), parse_constant=reject_constant)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Invalid JSON in token: {e}")


def encode_segment(document: dict[str, Any]) -> str:
    return base64url_encode(json_encode(document))


def decode_segment(segment: str) -> Any:
    return json_decode(base64url_decode(segment))


def parse_timespan(value: Timespan) -> int:
    """
    Convert a timespan to whole seconds.

    Accepts a non-negative integer, a digit-only string (seconds) or
    ``<digits><unit>`` where unit is one of ``s``, ``m``, ``h``, ``d``.

    Raises:
        InvalidTimespanError: for any other shape, including negative numbers
            and booleans.
    """
    if isinstance(value, bool):
        raise InvalidTimespanError(value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidTimespanError(value)
        return value
    if not isinstance(value, str):
        raise InvalidTimespanError(value)

    if DIGITS_PATTERN.fullmatch(value):
        amount, unit = value, "s"
    else:
        match = TIMESPAN_PATTERN.fullmatch(value)
        if not match:
            raise InvalidTimespanError(value)
        amount, unit = match.groups()

    try:
        return int(amount) * TIMESPAN_UNITS[unit]
    except ValueError:
        # int() refuses strings above the interpreter's digit limit
        raise InvalidTimespanError(value[:32])


def render_timespan(seconds: int) -> str:
    """
    Render seconds as the largest whole unit that is at least one.

    Days when ``seconds >= 86400``, hours when ``seconds >= 3600``, minutes
    otherwise. The remainder below the chosen unit is dropped.
    """
    if seconds >= TIMESPAN_UNITS["d"]:
        return f"{seconds // TIMESPAN_UNITS['d']}d"
    if seconds >= TIMESPAN_UNITS["h"]:
        return f"{seconds // TIMESPAN_UNITS['h']}h"
    return f"{seconds // TIMESPAN_UNITS['m']}m"
