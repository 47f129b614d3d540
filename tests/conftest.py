"""
Pytest configuration and shared fixtures for the image tool tests.

Provides synthetic document images, masks and configuration objects.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import cv2
import numpy as np
import pytest

from dh_imagetools.config import Config, get_default_config
from dh_imagetools.utils.logging_utils import setup_logging


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def document_image() -> np.ndarray:
    """Grayscale page with dark strokes on an unevenly lit background."""
    height, width = 120, 160
    # Illumination falls off from left (230) to right (150)
    ramp = np.linspace(230, 150, width)
    image = np.tile(ramp, (height, 1)).astype(np.uint8)

    for y in range(20, 100, 20):
        image[y - 2:y + 2, 15:145] = 30
    cv2.putText(image, "ab", (40, 112), cv2.FONT_HERSHEY_SIMPLEX, 0.5, 40, 2)
    return image


@pytest.fixture
def color_document_image(document_image: np.ndarray) -> np.ndarray:
    """BGR version of the document image with a slight yellow tint."""
    image = cv2.cvtColor(document_image, cv2.COLOR_GRAY2BGR)
    image[:, :, 0] = (image[:, :, 0] * 0.85).astype(np.uint8)
    return image


@pytest.fixture
def random_gray_image() -> np.ndarray:
    """Reproducible random grayscale image."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(23, 31), dtype=np.uint8)


@pytest.fixture
def square_mask() -> np.ndarray:
    """10x10 mask that is entirely foreground."""
    return np.full((10, 10), 255, dtype=np.uint8)


@pytest.fixture
def blob_mask() -> np.ndarray:
    """Mask with one interior blob and one blob touching the border."""
    mask = np.zeros((40, 40), dtype=np.uint8)
    mask[15:25, 15:25] = 255
    mask[0:6, 30:40] = 255
    return mask


@pytest.fixture
def sample_config() -> Config:
    """Create a sample configuration for testing."""
    config = get_default_config()

    config.logging.level = "DEBUG"
    config.logging.use_rich = False
    config.save_debug_images = False

    return config


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Setup logging for tests."""
    setup_logging(
        level="WARNING",  # Only show warnings and errors in tests
        use_rich=False,   # Disable rich formatting for cleaner test output
        format_style="minimal"
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (deselect with '-m \"not unit\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
