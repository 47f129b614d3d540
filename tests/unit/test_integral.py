"""
Tests for integral images and windowed statistics.

Window statistics are checked against a direct per-pixel computation over a
replicate-padded image.
"""

import numpy as np
import pytest

from dh_imagetools.exceptions import ArithmeticRangeError, InvalidParameterError
from dh_imagetools.processors.integral import (
    check_window_size,
    compute_integral_images,
    local_statistics,
    pad_for_window,
    window_padding,
    window_size_limit,
)


def brute_force_statistics(gray: np.ndarray, window_size: int):
    """Mean and standard deviation of every window, one pixel at a time.

    The window of pixel y spans rows y - (ws - 1) // 2 .. y + ws // 2, with
    out-of-range rows and columns clamped to the nearest edge.
    """
    values = gray.astype(np.float64)
    h, w = gray.shape
    before = (window_size - 1) // 2
    offsets = np.arange(-before, window_size - before)
    mean = np.empty((h, w))
    stddev = np.empty((h, w))
    for y in range(h):
        rows = np.clip(y + offsets, 0, h - 1)
        for x in range(w):
            cols = np.clip(x + offsets, 0, w - 1)
            window = values[np.ix_(rows, cols)]
            mean[y, x] = window.mean()
            stddev[y, x] = np.sqrt(max((window ** 2).mean() - window.mean() ** 2, 0.0))
    return mean, stddev


@pytest.mark.unit
class TestIntegralImages:
    """Test summed-area table construction."""

    def test_tables_have_leading_zero_row_and_column(self, random_gray_image):
        integrals = compute_integral_images(random_gray_image)

        h, w = random_gray_image.shape
        assert integrals.shape == (h + 1, w + 1)
        assert not integrals.sum[0, :].any()
        assert not integrals.sum[:, 0].any()
        assert integrals.sum[-1, -1] == random_gray_image.astype(np.uint64).sum()
        assert integrals.sqsum[-1, -1] == (random_gray_image.astype(np.uint64) ** 2).sum()

    def test_padding_splits_window_ceil_before_floor_after(self):
        assert window_padding(1) == (1, 0)
        assert window_padding(4) == (2, 2)
        assert window_padding(5) == (3, 2)

        gray = np.arange(6, dtype=np.uint8).reshape(2, 3)
        padded = pad_for_window(gray, 5)
        assert padded.shape == (2 + 5, 3 + 5)
        # Replicated border
        assert padded[0, 0] == gray[0, 0]
        assert padded[-1, -1] == gray[-1, -1]


@pytest.mark.unit
class TestLocalStatistics:
    """Test windowed mean and standard deviation."""

    @pytest.mark.parametrize("window_size", [1, 2, 3, 4, 5, 8, 11, 15])
    def test_matches_brute_force(self, random_gray_image, window_size):
        stats = local_statistics(random_gray_image, window_size)
        expected_mean, expected_stddev = brute_force_statistics(random_gray_image, window_size)

        np.testing.assert_allclose(stats.mean, expected_mean, atol=1e-9)
        np.testing.assert_allclose(stats.stddev, expected_stddev, atol=1e-6)

    def test_even_window_extends_further_after_centre(self):
        step = np.array([[0, 0, 0, 0, 200, 200, 200, 200]], dtype=np.uint8)
        stats = local_statistics(step, 2)

        # Pixel x averages columns x and x+1
        np.testing.assert_array_equal(stats.mean[0], [0, 0, 0, 100, 200, 200, 200, 200])

    def test_even_window_of_four_by_hand(self):
        row = np.array([[0, 40, 80, 120, 160, 200]], dtype=np.uint8)
        stats = local_statistics(row, 4)

        # Columns x-1 .. x+2, clamped at the edges
        expected = [
            (0 + 0 + 40 + 80) / 4,
            (0 + 40 + 80 + 120) / 4,
            (40 + 80 + 120 + 160) / 4,
            (80 + 120 + 160 + 200) / 4,
            (120 + 160 + 200 + 200) / 4,
            (160 + 200 + 200 + 200) / 4,
        ]
        np.testing.assert_allclose(stats.mean[0], expected)

    def test_window_larger_than_image(self, random_gray_image):
        stats = local_statistics(random_gray_image, 61)
        expected_mean, expected_stddev = brute_force_statistics(random_gray_image, 61)

        np.testing.assert_allclose(stats.mean, expected_mean, atol=1e-9)
        np.testing.assert_allclose(stats.stddev, expected_stddev, atol=1e-6)

    def test_image_sized_window_gives_image_mean(self, random_gray_image):
        square = random_gray_image[:21, :21]
        stats = local_statistics(square, 21)

        # Window of the centre pixel covers exactly the image
        assert stats.mean[10, 10] == pytest.approx(square.astype(np.float64).mean())

    def test_constant_image_has_zero_deviation(self):
        gray = np.full((12, 9), 77, dtype=np.uint8)
        stats = local_statistics(gray, 7)

        assert np.all(stats.mean == 77.0)
        assert np.all(stats.stddev == 0.0)

    def test_unit_window_returns_pixels(self, random_gray_image):
        stats = local_statistics(random_gray_image, 1)

        np.testing.assert_array_equal(stats.mean, random_gray_image.astype(np.float64))
        assert np.all(stats.stddev == 0.0)

    def test_uint32_accumulator_matches_uint64(self, random_gray_image):
        wide = local_statistics(random_gray_image, 15, "uint64")
        narrow = local_statistics(random_gray_image, 15, "uint32")

        np.testing.assert_allclose(narrow.mean, wide.mean)
        np.testing.assert_allclose(narrow.stddev, wide.stddev)

    def test_uint32_accumulator_wraps_safely_on_bright_image(self):
        # Running totals exceed 2**32 but every window fits.
        gray = np.full((400, 400), 255, dtype=np.uint8)
        stats = local_statistics(gray, 257, "uint32")

        assert np.all(stats.mean == 255.0)
        np.testing.assert_allclose(stats.stddev, 0.0, atol=1e-6)


@pytest.mark.unit
class TestWindowSizeLimits:
    """Test accumulator-dependent window size bounds."""

    def test_limits(self):
        assert window_size_limit("uint64") == 16843009
        assert window_size_limit("uint32") == 257

    def test_uint32_rejects_oversized_window(self):
        assert check_window_size(257, "uint32") == 257
        with pytest.raises(ArithmeticRangeError):
            check_window_size(258, "uint32")

    def test_rejects_non_positive_window(self):
        with pytest.raises(InvalidParameterError):
            check_window_size(0)
        with pytest.raises(InvalidParameterError):
            check_window_size(-3)

    def test_rejects_non_integer_window(self):
        with pytest.raises(InvalidParameterError):
            check_window_size(3.5)

    def test_unknown_accumulator(self):
        with pytest.raises(InvalidParameterError):
            window_size_limit("int8")
