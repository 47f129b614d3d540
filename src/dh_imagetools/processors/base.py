"""Base processor class and common validation helpers for image processors."""

from typing import Any, Dict, Optional
import numpy as np
from abc import ABC, abstractmethod
from pathlib import Path
import cv2

from ..exceptions import EmptyOrOversizedImageError, InvalidParameterError

# Padded buffers are indexed with native 32-bit signed ints in OpenCV.
INT_MAX = 2**31 - 1


def validate_image(image: np.ndarray, name: str = "image") -> None:
    """Validate that the input is a non-empty 8-bit image with 1 or 3 channels."""
    if image is None:
        raise InvalidParameterError(f"{name} cannot be None", parameter=name)
    if not isinstance(image, np.ndarray):
        raise InvalidParameterError(f"{name} must be a numpy array", parameter=name)
    if image.dtype != np.uint8:
        raise InvalidParameterError(
            f"{name} must be 8-bit unsigned, got {image.dtype}", parameter=name
        )
    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] != 3):
        raise InvalidParameterError(
            f"{name} must have 1 or 3 channels, got shape {image.shape}", parameter=name
        )
    if image.size == 0:
        raise EmptyOrOversizedImageError(f"{name} is empty", shape=image.shape)


def validate_mask(mask: np.ndarray, shape: Optional[tuple] = None) -> None:
    """Validate a single-channel mask, optionally against an image shape."""
    validate_image(mask, "mask")
    if mask.ndim != 2:
        raise InvalidParameterError("mask must be single-channel", parameter="mask")
    if shape is not None and mask.shape != tuple(shape[:2]):
        raise InvalidParameterError(
            f"mask shape {mask.shape} does not match image shape {tuple(shape[:2])}",
            parameter="mask",
        )


def check_padded_size(width: int, height: int, window_size: int) -> None:
    """Reject images whose padded size would overflow native int arithmetic."""
    if width == 0 or height == 0:
        raise EmptyOrOversizedImageError("image is empty", width=width, height=height)
    if (
        INT_MAX - window_size < width
        or INT_MAX - window_size < height
        or INT_MAX // (width + window_size) < height + window_size
    ):
        raise EmptyOrOversizedImageError(
            "image size plus window size is too big to pad",
            width=width, height=height, window_size=window_size,
        )


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Return a single-channel view of an image, converting BGR if needed."""
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


class BaseProcessor(ABC):
    """Base class for all image processors."""

    def __init__(self, config: Optional[Any] = None):
        """Initialize processor with optional configuration."""
        self.config = config
        self.debug_images = {}  # Store debug images during processing

    def get_config_value(self, key: str, default: Any) -> Any:
        """Safely get a config value with a default."""
        if self.config is None:
            return default
        return getattr(self.config, key, default)

    @abstractmethod
    def process(self, image: np.ndarray, **kwargs) -> Any:
        """Process an image. Must be implemented by subclasses."""
        pass

    def save_debug_image(self, name: str, image: np.ndarray) -> None:
        """Store a debug image for later saving."""
        if self.get_config_value('save_debug_images', False):
            self.debug_images[name] = image.copy()

    def get_debug_images(self) -> Dict[str, np.ndarray]:
        """Get all stored debug images."""
        return self.debug_images

    def clear_debug_images(self) -> None:
        """Clear stored debug images."""
        self.debug_images = {}

    def save_debug_images_to_dir(self, debug_dir: Path, prefix: str = "") -> None:
        """Save all debug images to the specified directory."""
        if not self.debug_images:
            return

        debug_dir.mkdir(parents=True, exist_ok=True)

        for name, image in self.debug_images.items():
            filename = f"{prefix}_{name}.png" if prefix else f"{name}.png"
            cv2.imwrite(str(debug_dir / filename), image)
