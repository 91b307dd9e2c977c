"""Tests for value parsers, integer ranges and time units."""

import pytest

from dataknobs_properties import IntegerRanges, InvalidArgumentError, InvalidValueError, TimeUnit
from dataknobs_properties.conversions import (
    LONG_MAX,
    parse_boolean,
    parse_long,
    parse_long_bytes,
    parse_socket_addr,
    split_trimmed,
)
from dataknobs_properties.durations import parse_time_duration


class TestParsers:
    """Test the standalone parsers."""

    def test_long_limits(self):
        """Test 64-bit bounds are enforced."""
        assert parse_long(str(LONG_MAX)) == LONG_MAX
        with pytest.raises(InvalidValueError):
            parse_long(str(LONG_MAX + 1))

    @pytest.mark.parametrize(
        "text,expected",
        [("1k", 1024), ("1g", 1024**3), ("2T", 2 * 1024**4), ("-1p", -(1024**5)), ("1e", 1024**6)],
    )
    def test_binary_prefixes(self, text, expected):
        """Test every binary prefix."""
        assert parse_long_bytes(text) == expected

    def test_byte_count_overflow(self):
        """Test results beyond 64 bits are rejected."""
        with pytest.raises(InvalidValueError):
            parse_long_bytes("8e")

    def test_boolean_none_for_other_text(self):
        """Test non-literals parse to None."""
        assert parse_boolean("maybe") is None

    def test_socket_addr_ipv6(self):
        """Test bracketed IPv6 hosts."""
        addr = parse_socket_addr("[::1]:8020")

        assert addr.host == "::1"
        assert addr.port == 8020
        assert str(addr) == "[::1]:8020"

    def test_socket_addr_without_port(self):
        """Test a host without port or default is rejected."""
        with pytest.raises(InvalidArgumentError):
            parse_socket_addr("host", None, "k")

    def test_split_trimmed(self):
        """Test empty items are dropped."""
        assert split_trimmed(" a ,, b,") == ["a", "b"]
        assert split_trimmed(None) == []


class TestIntegerRanges:
    """Test range parsing, membership and iteration."""

    def test_membership(self):
        """Test spans and single values."""
        ranges = IntegerRanges("4-6,9-10,27")

        assert [n for n in range(30) if n in ranges] == [4, 5, 6, 9, 10, 27]

    def test_open_ends(self):
        """Test missing low and high ends."""
        ranges = IntegerRanges("-3, 100-")

        assert ranges.is_included(0)
        assert ranges.is_included(3)
        assert not ranges.is_included(4)
        assert ranges.is_included(10**9)

    def test_iteration_is_ascending_and_unique(self):
        """Test overlapping and unordered spans iterate once each, ascending."""
        assert list(IntegerRanges("8-12, 5- 7, 10-11")) == [5, 6, 7, 8, 9, 10, 11, 12]

    def test_empty(self):
        """Test empty range text."""
        ranges = IntegerRanges("")

        assert ranges.is_empty()
        assert not ranges
        assert list(ranges) == []
        assert not ranges.is_included(0)

    def test_str(self):
        """Test the text form."""
        assert str(IntegerRanges("1-3, 5")) == "1-3,5"

    @pytest.mark.parametrize("text", ["a-b", "5-1", "1-2-3", "x", "\u00b2", "1-\u0663"])
    def test_invalid(self, text):
        """Test malformed range text."""
        with pytest.raises(InvalidValueError):
            IntegerRanges(text, "ranges")


class TestTimeUnit:
    """Test time unit conversion."""

    def test_convert_truncates(self):
        """Test conversion toward zero."""
        assert TimeUnit.SECONDS.convert(1999, TimeUnit.MILLISECONDS) == 1
        assert TimeUnit.SECONDS.convert(-1999, TimeUnit.MILLISECONDS) == -1
        assert TimeUnit.NANOSECONDS.convert(1, TimeUnit.DAYS) == 86_400 * 10**9

    def test_suffix_case_insensitive(self):
        """Test suffixes in any case."""
        assert parse_time_duration("5S", TimeUnit.MILLISECONDS) == 5000
        assert parse_time_duration(" 3 H", TimeUnit.MINUTES) == 180
