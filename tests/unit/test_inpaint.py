"""
Tests for fast diffusion inpainting.
"""

import numpy as np
import pytest

from dh_imagetools.config import Config, InpaintConfig
from dh_imagetools.exceptions import DegenerateMaskError, InvalidParameterError
from dh_imagetools.processors import InpaintInitMode, InpaintProcessor, fast_inpaint
from dh_imagetools.processors.inpaint import DIFFUSION_KERNEL, parse_init_mode


@pytest.fixture
def color_image() -> np.ndarray:
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(24, 32, 3), dtype=np.uint8)


@pytest.fixture
def hole_mask() -> np.ndarray:
    mask = np.zeros((24, 32), dtype=np.uint8)
    mask[6:18, 10:20] = 255
    mask[0:3, 0:4] = 255
    return mask


@pytest.mark.unit
class TestFastInpaint:
    """Test the diffusion fill."""

    @pytest.mark.parametrize("init_mode", ["mean", "nearest"])
    @pytest.mark.parametrize("iterations", [0, 5])
    def test_unmasked_pixels_are_untouched(self, color_image, hole_mask, init_mode, iterations):
        result = fast_inpaint(color_image, hole_mask, init_mode, iterations)

        assert result.shape == color_image.shape
        assert result.dtype == np.uint8
        unmasked = hole_mask == 0
        np.testing.assert_array_equal(result[unmasked], color_image[unmasked])

    @pytest.mark.parametrize("init_mode", [InpaintInitMode.MEAN, InpaintInitMode.NEAREST])
    def test_full_mask_is_degenerate(self, color_image, init_mode):
        mask = np.full(color_image.shape[:2], 255, dtype=np.uint8)

        with pytest.raises(DegenerateMaskError):
            fast_inpaint(color_image, mask, init_mode)

    def test_empty_mask_returns_copy(self, color_image):
        mask = np.zeros(color_image.shape[:2], dtype=np.uint8)
        result = fast_inpaint(color_image, mask)

        np.testing.assert_array_equal(result, color_image)
        assert result is not color_image

    def test_mean_initialization(self):
        image = np.array([[10, 20, 0], [30, 41, 0]], dtype=np.uint8)
        mask = np.array([[0, 0, 255], [0, 0, 255]], dtype=np.uint8)
        result = fast_inpaint(image, mask, "mean", iterations=0)

        # floor((10 + 20 + 30 + 41) / 4)
        assert result[0, 2] == 25
        assert result[1, 2] == 25

    def test_nearest_initialization(self):
        image = np.zeros((5, 10), dtype=np.uint8)
        image[:, :5] = 10
        image[:, 5:] = 200
        mask = np.zeros((5, 10), dtype=np.uint8)
        mask[:, 3:7] = 255

        result = fast_inpaint(image, mask, "nearest", iterations=0)

        assert np.all(result[:, 3:5] == 10)
        assert np.all(result[:, 5:7] == 200)

    def test_constant_image_stays_constant(self, hole_mask):
        image = np.full((24, 32), 100, dtype=np.uint8)
        image[hole_mask > 0] = 0

        result = fast_inpaint(image, hole_mask, "mean", iterations=10)

        assert np.all(result == 100)

    def test_diffusion_smooths_towards_neighbours(self):
        image = np.zeros((9, 9), dtype=np.uint8)
        image[:, :] = 200
        mask = np.zeros((9, 9), dtype=np.uint8)
        mask[4, 4] = 255
        image[4, 4] = 0

        result = fast_inpaint(image, mask, "mean", iterations=1)

        assert result[4, 4] == 200

    def test_kernel_weights_sum_to_one(self):
        assert DIFFUSION_KERNEL[1, 1] == 0
        assert float(DIFFUSION_KERNEL.sum()) == pytest.approx(1.0, abs=1e-6)

    def test_negative_iterations(self, color_image, hole_mask):
        with pytest.raises(InvalidParameterError):
            fast_inpaint(color_image, hole_mask, iterations=-1)

    def test_mask_shape_must_match(self, color_image):
        with pytest.raises(InvalidParameterError):
            fast_inpaint(color_image, np.zeros((5, 5), dtype=np.uint8))

    def test_init_mode_aliases(self):
        assert parse_init_mode("neighbor") == InpaintInitMode.NEAREST
        assert parse_init_mode("neighbor-L1") == InpaintInitMode.NEAREST
        assert parse_init_mode("default") == InpaintInitMode.NEAREST
        assert parse_init_mode("mean") == InpaintInitMode.MEAN
        with pytest.raises(InvalidParameterError):
            parse_init_mode("telea")


@pytest.mark.unit
class TestInpaintProcessor:
    """Test the config-driven processor."""

    def test_uses_config_section(self, color_image, hole_mask):
        config = Config(inpaint=InpaintConfig(init_mode="mean", iterations=3))
        processor = InpaintProcessor(config)

        np.testing.assert_array_equal(
            processor.process(color_image, hole_mask),
            fast_inpaint(color_image, hole_mask, "mean", 3),
        )
