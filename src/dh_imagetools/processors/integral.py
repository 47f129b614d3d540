"""Integral images and O(1) windowed mean/standard deviation.

Implements the summed-area table approach described in Shafait et al. (2008)
"Efficient Implementation of Local Adaptive Thresholding Techniques Using
Integral Images". Sums of intensity and squared intensity are accumulated in
an unsigned integer type; wrap-around of the running totals is harmless as long
as a single window's sum of squares fits the type, which is what
:func:`check_window_size` guarantees.
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from ..exceptions import ArithmeticRangeError, InvalidParameterError
from .base import check_padded_size

logger = logging.getLogger(__name__)

ACCUMULATOR_TYPES = {
    "uint64": np.uint64,
    "uint32": np.uint32,
}

MAX_INTENSITY = 255


def window_size_limit(accumulator: str = "uint64") -> int:
    """Largest window size whose sum of squares cannot overflow the accumulator.

    The bound is the largest ``ws`` with ``ws**2 * 255**2 < 2**bits``:
    16843009 for ``uint64`` and 257 for ``uint32``.
    """
    dtype = _accumulator_dtype(accumulator)
    bits = np.dtype(dtype).itemsize * 8
    return math.isqrt((2**bits - 1) // (MAX_INTENSITY * MAX_INTENSITY))


def check_window_size(window_size: int, accumulator: str = "uint64",
                      parameter: str = "window_size") -> int:
    """Validate a window size against the accumulator range and return it."""
    if isinstance(window_size, bool) or not isinstance(window_size, (int, np.integer)):
        raise InvalidParameterError(
            "window size must be an integer", parameter=parameter, value=window_size
        )
    if window_size < 1:
        raise InvalidParameterError(
            "window size is too small", parameter=parameter, value=window_size
        )
    limit = window_size_limit(accumulator)
    if window_size > limit:
        raise ArithmeticRangeError(
            f"window size is too large for a {accumulator} accumulator (limit {limit})",
            parameter=parameter, value=window_size,
        )
    return int(window_size)


def _accumulator_dtype(accumulator: str):
    try:
        return ACCUMULATOR_TYPES[accumulator]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown accumulator type: {accumulator}. "
            f"Use one of {sorted(ACCUMULATOR_TYPES)}",
            parameter="accumulator",
        ) from None


def window_padding(window_size: int) -> Tuple[int, int]:
    """Return (low, high) padding: ceil(ws/2) before, floor(ws/2) after."""
    high = window_size // 2
    return window_size - high, high


def pad_for_window(gray: np.ndarray, window_size: int) -> np.ndarray:
    """Replicate-pad a single-channel image so every pixel has a full window."""
    low, high = window_padding(window_size)
    return cv2.copyMakeBorder(gray, low, high, low, high, cv2.BORDER_REPLICATE)


@dataclass(frozen=True)
class IntegralImages:
    """Pair of summed-area tables with a leading zero row and column.

    ``sum[y, x]`` is the total intensity of ``padded[:y, :x]`` and ``sqsum[y, x]``
    the total squared intensity of the same rectangle.
    """

    sum: np.ndarray
    sqsum: np.ndarray

    @property
    def shape(self) -> Tuple[int, int]:
        return self.sum.shape


def compute_integral_images(padded: np.ndarray, accumulator: str = "uint64") -> IntegralImages:
    """Build the intensity and squared-intensity integral images of ``padded``.

    Two passes: running sums along each row, then accumulation down the columns.
    """
    dtype = _accumulator_dtype(accumulator)
    ph, pw = padded.shape[:2]

    values = padded.astype(dtype)
    squares = values * values

    s1 = np.zeros((ph + 1, pw + 1), dtype=dtype)
    s2 = np.zeros((ph + 1, pw + 1), dtype=dtype)
    s1[1:, 1:] = np.cumsum(np.cumsum(values, axis=1, dtype=dtype), axis=0, dtype=dtype)
    s2[1:, 1:] = np.cumsum(np.cumsum(squares, axis=1, dtype=dtype), axis=0, dtype=dtype)

    return IntegralImages(sum=s1, sqsum=s2)


def _window_totals(table: np.ndarray, window_size: int, width: int, height: int) -> np.ndarray:
    # Pixel y reads padded rows y+1 .. y+ws, i.e. original rows
    # y-ceil(ws/2)+1 .. y+floor(ws/2).
    lo = 1
    hi = window_size + 1
    # Unsigned wrap-around cancels out across the four corners.
    return (
        table[hi:hi + height, hi:hi + width]
        - table[lo:lo + height, hi:hi + width]
        - table[hi:hi + height, lo:lo + width]
        + table[lo:lo + height, lo:lo + width]
    )


def window_sums(integrals: IntegralImages, window_size: int,
                width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """Per-pixel window totals of intensity and squared intensity."""
    total1 = _window_totals(integrals.sum, window_size, width, height)
    total2 = _window_totals(integrals.sqsum, window_size, width, height)
    return total1, total2


def window_statistics(integrals: IntegralImages, window_size: int,
                      width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """Per-pixel window mean and standard deviation as float64 arrays."""
    total1, total2 = window_sums(integrals, window_size, width, height)
    area = float(window_size * window_size)
    mean = total1.astype(np.float64) / area
    variance = total2.astype(np.float64) / area - mean * mean
    stddev = np.sqrt(np.maximum(variance, 0.0))
    return mean, stddev


@dataclass(frozen=True)
class LocalStatistics:
    """Local mean and standard deviation of a grayscale image for one window size."""

    window_size: int
    mean: np.ndarray
    stddev: np.ndarray


def local_statistics(gray: np.ndarray, window_size: int,
                     accumulator: str = "uint64") -> LocalStatistics:
    """Compute windowed mean/stddev for every pixel of a single-channel image."""
    check_window_size(window_size, accumulator)
    height, width = gray.shape[:2]
    check_padded_size(width, height, window_size)

    padded = pad_for_window(gray, window_size)
    integrals = compute_integral_images(padded, accumulator)
    logger.debug(
        f"Integral images for window {window_size}: padded {padded.shape}, "
        f"accumulator={accumulator}"
    )
    mean, stddev = window_statistics(integrals, window_size, width, height)
    return LocalStatistics(window_size=window_size, mean=mean, stddev=stddev)
