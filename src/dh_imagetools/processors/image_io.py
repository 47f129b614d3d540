"""Image I/O utilities for loading and saving images."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np

from ..exceptions import ImageLoadError, ImageSaveError, InvalidParameterError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp"]

COLOR_MODES = {
    "color": cv2.IMREAD_COLOR,
    "grayscale": cv2.IMREAD_GRAYSCALE,
    "any": cv2.IMREAD_ANYCOLOR,
}


def load_image(image_path: PathLike, color_mode: str = "any") -> np.ndarray:
    """Load image from file.

    Args:
        image_path: Path to the image file
        color_mode: 'color', 'grayscale' or 'any' (keep grayscale files single-channel)

    Returns:
        numpy array containing the image

    Raises:
        ImageLoadError: If image cannot be loaded
    """
    if color_mode not in COLOR_MODES:
        raise InvalidParameterError(
            f"Invalid color mode: {color_mode}. Must be one of: {list(COLOR_MODES)}",
            parameter="color_mode",
        )

    path = Path(image_path)
    image = cv2.imread(str(path), COLOR_MODES[color_mode])
    if image is None:
        raise ImageLoadError("image could not be loaded", image_path=str(path))
    if image.size == 0:
        raise ImageLoadError("image is empty", image_path=str(path))

    logger.debug(f"Loaded image: {path} ({image.shape}, dtype={image.dtype})")
    return image


def save_image(image: np.ndarray, output_path: PathLike, bilevel: bool = False,
               compression: Optional[int] = None) -> None:
    """Save image to file.

    Args:
        image: Image array to save
        output_path: Path where to save the image
        bilevel: Write 1-bit PNG (only honoured for .png files)
        compression: PNG compression level 0-9 (only honoured for .png files)

    Raises:
        ImageSaveError: If image is None, empty or cannot be written
    """
    path = Path(output_path)
    if image is None:
        raise ImageSaveError("Cannot save None as image", image_path=str(path))

    if image.size == 0:
        raise ImageSaveError("Cannot save empty image", image_path=str(path))

    params: List[int] = []
    if path.suffix.lower() == ".png":
        if compression is not None:
            params += [cv2.IMWRITE_PNG_COMPRESSION, int(compression)]
        if bilevel:
            params += [cv2.IMWRITE_PNG_BILEVEL, 1]

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        written = cv2.imwrite(str(path), image, params)
    except cv2.error as e:
        raise ImageSaveError(f"image could not be written: {e}", image_path=str(path)) from e
    if not written:
        raise ImageSaveError("image could not be written", image_path=str(path))
    logger.debug(f"Saved image: {path} ({image.shape})")


def get_image_files(directory: Path) -> List[Path]:
    """Get all image files from directory.

    Args:
        directory: Directory to search for images

    Returns:
        List of paths to image files, sorted
    """
    image_files = set()  # Use set to avoid duplicates on case-insensitive filesystems

    for ext in IMAGE_EXTENSIONS:
        image_files.update(directory.glob(f"*{ext}"))
        image_files.update(directory.glob(f"*{ext.upper()}"))

    return sorted(image_files)
