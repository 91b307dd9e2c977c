"""Integer range sets parsed from values such as ``"2-4,9,27-"``."""

from typing import Iterator, List, Tuple

from .conversions import INT_MAX
from .exceptions import InvalidValueError


class IntegerRanges:
    """A set of inclusive integer spans.

    Each comma-separated item is a single integer or a ``lo-hi`` span. A
    missing low end means 0 (``"-100"`` is ``0-100``) and a missing high end
    means unbounded (``"34-"``). Iteration yields every member once, in
    ascending order.

    Example:
        ```python
        ranges = IntegerRanges("4-6,9-10,27")
        ranges.is_included(5)   # True
        ranges.is_included(7)   # False
        list(IntegerRanges("8-12, 5- 7"))  # [5, 6, 7, 8, 9, 10, 11, 12]
        ```
    """

    def __init__(self, text: str | None = None, key: str | None = None) -> None:
        """Parse range text.

        Args:
            text: Comma-separated values and spans; None or empty gives an empty set
            key: Property key, for error messages

        Raises:
            InvalidValueError: If an item is not an integer or a valid span
        """
        self._ranges: List[Tuple[int, int]] = []
        if not text:
            return
        for item in text.split(","):
            item = item.strip()
            if not item:
                continue
            parts = item.split("-")
            if len(parts) > 2:
                raise InvalidValueError(key, text, "integer range")
            if len(parts) == 1:
                start = end = self._convert(parts[0], 0, key, text)
            else:
                start = self._convert(parts[0], 0, key, text)
                end = self._convert(parts[1], INT_MAX, key, text)
            if start > end:
                raise InvalidValueError(key, text, "integer range")
            self._ranges.append((start, end))

    @staticmethod
    def _convert(part: str, default: int, key: str | None, text: str) -> int:
        part = part.strip()
        if not part:
            return default
        if not (part.isascii() and part.isdigit()):
            raise InvalidValueError(key, text, "integer range")
        return int(part)

    def is_included(self, value: int) -> bool:
        """Check whether a value falls inside any span."""
        return any(start <= value <= end for start, end in self._ranges)

    def is_empty(self) -> bool:
        return not self._ranges

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.is_included(value)

    def __iter__(self) -> Iterator[int]:
        current = -1
        for start, end in sorted(self._ranges):
            value = max(start, current + 1)
            while value <= end:
                yield value
                value += 1
            current = max(current, end)

    def __bool__(self) -> bool:
        return bool(self._ranges)

    def __str__(self) -> str:
        items = []
        for start, end in self._ranges:
            items.append(str(start) if start == end else f"{start}-{end}")
        return ",".join(items)

    def __repr__(self) -> str:
        return f"IntegerRanges({str(self)!r})"
