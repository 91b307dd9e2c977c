"""Parsing of textual property values into typed values.

Every parser takes the raw text and, optionally, the property key it came
from so that errors can name it. Unparseable input raises
:class:`~dataknobs_properties.exceptions.InvalidValueError`; callers never
get a silent default from these functions (the boolean parser is the one
exception, returning None so the caller can apply its own default).
"""

import re
from typing import List, NamedTuple
from urllib.parse import urlsplit

from .exceptions import InvalidArgumentError, InvalidValueError

INT_MIN, INT_MAX = -(2**31), 2**31 - 1
LONG_MIN, LONG_MAX = -(2**63), 2**63 - 1

DECIMAL_PATTERN = re.compile(r"[+-]?\d+")
HEX_PATTERN = re.compile(r"(-?)0[xX]([0-9a-fA-F]+)")
FLOAT_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

#: Binary prefix suffixes accepted by parse_long_bytes, as powers of 1024.
BINARY_PREFIXES = {"k": 1, "m": 2, "g": 3, "t": 4, "p": 5, "e": 6}


class SocketAddress(NamedTuple):
    """A host and port pair."""

    host: str
    port: int

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


def parse_int(text: str, key: str | None = None) -> int:
    """Parse a 32-bit integer in decimal or ``0x`` hexadecimal form."""
    return _parse_integer(text, key, INT_MIN, INT_MAX, "int")


def parse_long(text: str, key: str | None = None) -> int:
    """Parse a 64-bit integer in decimal or ``0x`` hexadecimal form."""
    return _parse_integer(text, key, LONG_MIN, LONG_MAX, "long")


def parse_long_bytes(text: str, key: str | None = None) -> int:
    """Parse a byte count with an optional binary prefix.

    ``"1k"`` is 1024, ``"1m"`` and ``"1M"`` are 1048576, up to ``e``
    (exbi). Anything else after the number is an error.

    Args:
        text: Value to parse
        key: Property key, for error messages

    Returns:
        The number of bytes

    Raises:
        InvalidValueError: If the value is not a valid byte count
    """
    stripped = text.strip()
    if not stripped:
        raise InvalidValueError(key, text, "byte count")

    power = BINARY_PREFIXES.get(stripped[-1].lower())
    if power is None:
        return _parse_integer(stripped, key, LONG_MIN, LONG_MAX, "byte count")

    number = _parse_integer(stripped[:-1], key, LONG_MIN, LONG_MAX, "byte count")
    result = number * (1024**power)
    if not LONG_MIN <= result <= LONG_MAX:
        raise InvalidValueError(key, text, "byte count")
    return result


def parse_float(text: str, key: str | None = None) -> float:
    """Parse a decimal floating point literal, surrounding whitespace allowed."""
    stripped = text.strip()
    if not FLOAT_PATTERN.fullmatch(stripped):
        raise InvalidValueError(key, text, "float")
    return float(stripped)


def parse_boolean(text: str) -> bool | None:
    """Parse ``true`` or ``false`` case-insensitively; None for anything else."""
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def parse_socket_addr(
    text: str,
    default_port: int | None = None,
    key: str | None = None,
) -> SocketAddress:
    """Parse ``host`` or ``host:port`` into a SocketAddress.

    Args:
        text: Address text; surrounding whitespace is ignored
        default_port: Port used when the text carries none
        key: Property key, named in the error message

    Returns:
        The parsed address

    Raises:
        InvalidArgumentError: If the text is not a valid host:port authority
    """
    target = text.strip()
    helpful = f" (configuration property '{key}')" if key else ""
    error = InvalidArgumentError(
        f"Does not contain a valid host:port authority: {target}{helpful}",
        context={"key": key, "value": target},
    )

    if not target:
        raise error
    try:
        parts = urlsplit(target if "://" in target else f"//{target}")
        port = parts.port
    except ValueError as e:
        raise error from e

    host = parts.hostname
    if port is None:
        port = default_port
    if not host or port is None or port < 0 or (parts.path not in ("", "/")):
        raise error
    return SocketAddress(host, port)


def split_strings(text: str | None) -> List[str]:
    """Split a comma-separated value, keeping whitespace and empty items."""
    if text is None or text == "":
        return []
    return text.split(",")


def split_trimmed(text: str | None) -> List[str]:
    """Split a comma-separated value, trimming items and dropping empty ones."""
    if text is None:
        return []
    return [item.strip() for item in text.split(",") if item.strip()]


def _parse_integer(text: str, key: str | None, low: int, high: int, expected: str) -> int:
    stripped = text.strip()
    hex_match = HEX_PATTERN.fullmatch(stripped)
    if hex_match:
        result = int(hex_match.group(2), 16)
        if hex_match.group(1):
            result = -result
    elif DECIMAL_PATTERN.fullmatch(stripped):
        result = int(stripped, 10)
    else:
        raise InvalidValueError(key, text, expected)

    if not low <= result <= high:
        raise InvalidValueError(key, text, expected)
    return result
