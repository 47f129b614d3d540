"""
Tests for strict numeric option parsing.
"""

import math

import pytest

from dh_imagetools.utils import ArgparseError, parse_float, parse_int, parse_int_list


@pytest.mark.unit
class TestParseInt:
    """Test integer option values."""

    @pytest.mark.parametrize("text,expected", [("0", 0), ("60", 60), ("+7", 7), ("-3", -3)])
    def test_valid(self, text, expected):
        assert parse_int("-w", text) == expected

    @pytest.mark.parametrize("text", ["", "12abc", "1.5", " 12", "1_000", "0x10"])
    def test_invalid(self, text):
        with pytest.raises(ArgparseError) as exc_info:
            parse_int("-w", text)

        assert str(exc_info.value) == "-w: invalid argument."

    def test_out_of_range(self):
        assert parse_int("-w", "2147483647") == 2147483647
        with pytest.raises(ArgparseError) as exc_info:
            parse_int("-w", "2147483648")

        assert exc_info.value.message == "value out of range."


@pytest.mark.unit
class TestParseFloat:
    """Test floating point option values."""

    @pytest.mark.parametrize("text,expected", [
        ("0.4", 0.4), ("1", 1.0), (".5", 0.5), ("-2.5e-1", -0.25), ("3.", 3.0),
    ])
    def test_valid(self, text, expected):
        assert parse_float("-k", text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", "abc", "0.4x", "1e", "--1"])
    def test_invalid(self, text):
        with pytest.raises(ArgparseError):
            parse_float("-k", text)

    def test_infinity_only_when_allowed(self):
        assert math.isinf(parse_float("-k", "inf", allow_infinity=True))
        with pytest.raises(ArgparseError) as exc_info:
            parse_float("-t", "inf")

        assert exc_info.value.option == "-t"

    def test_overflow_is_out_of_range(self):
        with pytest.raises(ArgparseError) as exc_info:
            parse_float("-t", "1e999")

        assert exc_info.value.message == "value out of range."

    def test_nan_rejected(self):
        with pytest.raises(ArgparseError):
            parse_float("-k", "nan", allow_infinity=True)


@pytest.mark.unit
class TestParseIntList:
    """Test comma separated window lists."""

    def test_valid(self):
        assert parse_int_list("-X", "15,31,63", 3) == [15, 31, 63]
        assert parse_int_list("-X", "15", 3) == [15]

    def test_too_many(self):
        with pytest.raises(ArgparseError):
            parse_int_list("-X", "1,2,3,4", 3)

    def test_empty_item(self):
        with pytest.raises(ArgparseError):
            parse_int_list("-X", "15,,31", 3)
