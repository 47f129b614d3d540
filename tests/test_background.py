"""End-to-end tests for background isolation."""

import numpy as np
import pytest

from dh_imagetools.config import BackgroundConfig, Config
from dh_imagetools.exceptions import InvalidParameterError
from dh_imagetools.processors import (
    BackgroundIsolationProcessor,
    adjust_brightness,
    isolate_background,
    normalize_by_background,
)
from dh_imagetools.processors.background import build_background_mask


@pytest.mark.integration
class TestIsolateBackground:
    """Test the full binarize / mask / inpaint / normalize pipeline."""

    def test_flat_page_normalizes_to_alpha(self):
        image = np.full((40, 50), 200, dtype=np.uint8)
        result = isolate_background(image)

        # trunc(0.9 * 255)
        assert np.all(result == 229)

    def test_flat_page_background_output(self):
        image = np.full((40, 50), 200, dtype=np.uint8)
        result = isolate_background(image, output="background")

        assert np.all(result == 200)

    def test_uneven_illumination_is_flattened(self, document_image):
        result = isolate_background(document_image)

        paper = result[5, 10:150].astype(int)
        assert np.ptp(document_image[5, 10:150]) > 60
        assert np.ptp(paper) <= 6
        assert abs(paper.mean() - 229) <= 3

    def test_strokes_stay_dark(self, document_image):
        result = isolate_background(document_image)

        assert result[20, 80] < 100

    def test_color_input_keeps_channels(self, color_document_image):
        result = isolate_background(color_document_image)

        assert result.shape == color_document_image.shape
        assert result.dtype == np.uint8

    def test_input_as_grayscale(self, color_document_image):
        result = isolate_background(color_document_image, input_as_grayscale=True)

        assert result.shape == color_document_image.shape[:2]

    def test_alpha_one_without_blur_gives_white_paper(self):
        image = np.full((30, 30), 180, dtype=np.uint8)
        result = isolate_background(image, blur=1, alpha=1.0)

        assert np.all(result == 255)

    def test_brightness_stretch(self, document_image):
        result = isolate_background(document_image, brightness=True)

        assert result.min() == 0
        assert result.max() == 255

    def test_mask_covers_strokes(self, document_image):
        mask = build_background_mask(document_image, window_size=60)

        assert mask[20, 80] == 255
        assert mask[5, 80] == 0

    @pytest.mark.parametrize("params", [
        {"blur": 4},
        {"blur": 0},
        {"alpha": 1.5},
        {"distance1": -1.0},
        {"output": "foreground"},
    ])
    def test_invalid_parameters(self, document_image, params):
        with pytest.raises(InvalidParameterError):
            isolate_background(document_image, **params)


@pytest.mark.unit
class TestNormalization:
    """Test division by the background estimate."""

    def test_zero_background(self):
        image = np.array([[0, 50]], dtype=np.uint8)
        background = np.zeros((1, 2), dtype=np.uint8)

        np.testing.assert_array_equal(normalize_by_background(image, background), [[0, 255]])

    def test_brighter_than_background_saturates(self):
        image = np.array([[250]], dtype=np.uint8)
        background = np.array([[100]], dtype=np.uint8)

        assert normalize_by_background(image, background, alpha=0.9)[0, 0] == 255

    def test_ratio_is_truncated(self):
        image = np.array([[50]], dtype=np.uint8)
        background = np.array([[200]], dtype=np.uint8)

        # 0.9 * 50 / 200 * 255 = 57.375
        assert normalize_by_background(image, background, alpha=0.9)[0, 0] == 57

    def test_adjust_brightness_flat_image_unchanged(self):
        image = np.full((4, 4), 90, dtype=np.uint8)

        np.testing.assert_array_equal(adjust_brightness(image), image)

    def test_adjust_brightness_stretches_range(self):
        image = np.array([[40, 90, 91]], dtype=np.uint8)

        np.testing.assert_array_equal(adjust_brightness(image), [[0, 250, 255]])

    def test_adjust_brightness_truncates(self):
        image = np.array([[10, 12, 17]], dtype=np.uint8)

        # 2 * 255 / 7 = 72.86
        np.testing.assert_array_equal(adjust_brightness(image), [[0, 72, 255]])


@pytest.mark.integration
class TestBackgroundIsolationProcessor:
    """Test the config-driven processor."""

    def test_uses_config_sections(self, document_image):
        config = Config(background=BackgroundConfig(blur=5, alpha=0.8))
        processor = BackgroundIsolationProcessor(config)

        np.testing.assert_array_equal(
            processor.process(document_image),
            isolate_background(document_image, blur=5, alpha=0.8),
        )

    def test_debug_images(self, document_image, sample_config):
        sample_config.save_debug_images = True
        processor = BackgroundIsolationProcessor(sample_config)
        processor.process(document_image)

        assert set(processor.get_debug_images()) == {'01_foreground_mask', '02_background'}
