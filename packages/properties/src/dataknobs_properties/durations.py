"""Time units and duration parsing for ``<number><suffix>`` values."""

from enum import Enum

from .conversions import parse_long
from .exceptions import InvalidValueError


class TimeUnit(Enum):
    """Time units with their textual suffix and size in nanoseconds."""

    NANOSECONDS = ("ns", 1)
    MICROSECONDS = ("us", 1_000)
    MILLISECONDS = ("ms", 1_000_000)
    SECONDS = ("s", 1_000_000_000)
    MINUTES = ("m", 60 * 1_000_000_000)
    HOURS = ("h", 3_600 * 1_000_000_000)
    DAYS = ("d", 86_400 * 1_000_000_000)

    def __init__(self, suffix: str, nanos: int) -> None:
        self.suffix = suffix
        self.nanos = nanos

    def convert(self, duration: int, source: "TimeUnit") -> int:
        """Convert a duration in ``source`` units to this unit, truncating.

        Args:
            duration: Amount of time in the source unit
            source: Unit of ``duration``

        Returns:
            The duration in this unit, truncated toward zero
        """
        total = duration * source.nanos
        result = abs(total) // self.nanos
        return -result if total < 0 else result


def parse_time_duration(text: str, unit: TimeUnit, key: str | None = None) -> int:
    """Parse a duration such as ``"7s"`` or ``"250ms"`` into ``unit``.

    A bare number is taken to already be in ``unit``. Suffixes are matched
    case-insensitively.

    Args:
        text: Value to parse
        unit: Unit of the returned value
        key: Property key, for error messages

    Returns:
        The duration in ``unit``

    Raises:
        InvalidValueError: If the number part is not an integer
    """
    stripped = text.strip()
    lowered = stripped.lower()
    source = unit
    number = stripped
    # Multi-letter suffixes are listed first so "ms" is not read as "s".
    for candidate in TimeUnit:
        if lowered.endswith(candidate.suffix):
            source = candidate
            number = stripped[: -len(candidate.suffix)]
            break

    try:
        value = parse_long(number, key)
    except InvalidValueError as e:
        raise InvalidValueError(key, text, "time duration") from e
    return unit.convert(value, source)


def format_time_duration(value: int, unit: TimeUnit) -> str:
    return f"{value}{unit.suffix}"
