"""Strict numeric option parsing for the command-line tools.

Option values must be complete numbers: trailing garbage, embedded
whitespace and Python-only spellings such as ``1_000`` are rejected.
"""

import argparse
import math
import re
import sys
from typing import List, NoReturn

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


class ArgparseError(Exception):
    """Raised when an option value is malformed or out of bounds."""

    def __init__(self, option: str, message: str) -> None:
        super().__init__(f"{option}: {message}")
        self.option = option
        self.message = message


class ToolArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: {message}\n")


def parse_int(option: str, text: str) -> int:
    """Parse a 32-bit signed integer option value."""
    if not _INT_RE.fullmatch(text):
        raise ArgparseError(option, "invalid argument.")
    value = int(text)
    if value < INT32_MIN or value > INT32_MAX:
        raise ArgparseError(option, "value out of range.")
    return value


def parse_float(option: str, text: str, allow_infinity: bool = False,
                allow_nan: bool = False) -> float:
    """Parse a floating point option value."""
    if not _FLOAT_RE.fullmatch(text):
        raise ArgparseError(option, "invalid argument.")
    value = float(text)
    if not allow_nan and math.isnan(value):
        raise ArgparseError(option, "the value must not be NaN.")
    if not allow_infinity and math.isinf(value):
        # Overflowing literals such as 1e999 parse to infinity.
        if re.search(r"inf", text, re.IGNORECASE):
            raise ArgparseError(option, "the value must not be infinity.")
        raise ArgparseError(option, "value out of range.")
    return value


def parse_int_list(option: str, text: str, max_items: int) -> List[int]:
    """Parse a comma separated list of integers (e.g. ``-X 15,31,63``)."""
    tokens = text.split(",")
    if len(tokens) > max_items:
        raise ArgparseError(option, "too many values.")
    return [parse_int(option, token) for token in tokens]
