"""Background isolation for unevenly illuminated scans.

Text and other dark detail found by Sauvola binarization are masked out, the
hole is inpainted to estimate the paper background, and the original image is
divided by that estimate to flatten the illumination.
"""

import logging
import math
from enum import Enum
from typing import Any

import cv2
import numpy as np

from ..exceptions import InvalidParameterError
from .base import BaseProcessor, to_grayscale, validate_image
from .inpaint import DEFAULT_ITERATIONS, InpaintInitMode, fast_inpaint
from .mask_ops import DistanceMetric, inset, negate
from .sauvola import DEFAULT_K, DEFAULT_WINDOW_SIZE, sauvola_binarize

logger = logging.getLogger(__name__)

DEFAULT_DENOISE_DISTANCE1 = 1.0
DEFAULT_DENOISE_DISTANCE2 = 5.0
DEFAULT_BLUR = 9
DEFAULT_ALPHA = 0.9


class BackgroundOutput(str, Enum):
    """What the isolator returns."""
    NORMALIZED = "normalized"
    BACKGROUND = "background"


def validate_background_parameters(
    distance1: float = DEFAULT_DENOISE_DISTANCE1,
    distance2: float = DEFAULT_DENOISE_DISTANCE2,
    blur: int = DEFAULT_BLUR,
    alpha: float = DEFAULT_ALPHA,
) -> None:
    """Check the mask denoise distances, blur size and alpha."""
    for name, value in (("distance1", distance1), ("distance2", distance2)):
        if math.isnan(value) or value < 0:
            raise InvalidParameterError(
                "denoise distance must not be negative", parameter=name, value=value
            )
    if isinstance(blur, bool) or not isinstance(blur, (int, np.integer)) or blur < 1:
        raise InvalidParameterError("background blur size must be positive", parameter="blur", value=blur)
    if blur % 2 != 1:
        raise InvalidParameterError(
            "background blur size must be an odd integer", parameter="blur", value=blur
        )
    if math.isnan(alpha) or alpha < 0 or alpha > 1:
        raise InvalidParameterError(
            "background alpha must be in between 0 and 1", parameter="alpha", value=alpha
        )


def build_background_mask(
    gray: np.ndarray,
    window_size: int = DEFAULT_WINDOW_SIZE,
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    distance1: float = DEFAULT_DENOISE_DISTANCE1,
    distance2: float = DEFAULT_DENOISE_DISTANCE2,
    accumulator: str = "uint64",
) -> np.ndarray:
    """Mask (255) of the dark detail that has to be painted over.

    The binarized ink is shrunk by ``distance1`` to drop specks, then grown
    back by ``distance2`` so the inpainted region covers glyph fringes.
    """
    binary = sauvola_binarize(gray, window_size, k, r_scale, accumulator)
    mask = inset(negate(binary), distance1, DistanceMetric.L2)
    mask = inset(negate(mask), distance2, DistanceMetric.L2)
    return negate(mask)


def normalize_by_background(image: np.ndarray, background: np.ndarray,
                            alpha: float = DEFAULT_ALPHA) -> np.ndarray:
    """Divide an image by its background and rescale so ``alpha`` maps to white.

    A zero background pixel saturates the result to white unless the image
    pixel is itself zero.
    """
    values = image.astype(np.float64)
    bg = background.astype(np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(bg > 0, alpha * values / bg, np.where(values > 0, 1.0, 0.0))
    return (np.clip(ratio, 0.0, 1.0) * 255.0).astype(np.uint8)


def adjust_brightness(image: np.ndarray) -> np.ndarray:
    """Stretch the intensity range to [0, 255] using grayscale min/max.

    Images with a single intensity are returned unchanged.
    """
    gray = to_grayscale(image)
    e_min = float(gray.min())
    e_max = float(gray.max())
    if not e_min < e_max:
        return image.copy()

    stretched = (image.astype(np.float64) - e_min) * 255.0 / (e_max - e_min)
    return np.clip(stretched, 0.0, 255.0).astype(np.uint8)


def isolate_background(
    image: np.ndarray,
    window_size: int = DEFAULT_WINDOW_SIZE,
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    init_mode: Any = InpaintInitMode.NEAREST,
    iterations: int = DEFAULT_ITERATIONS,
    distance1: float = DEFAULT_DENOISE_DISTANCE1,
    distance2: float = DEFAULT_DENOISE_DISTANCE2,
    blur: int = DEFAULT_BLUR,
    alpha: float = DEFAULT_ALPHA,
    output: Any = BackgroundOutput.NORMALIZED,
    brightness: bool = False,
    input_as_grayscale: bool = False,
    accumulator: str = "uint64",
    **kwargs
) -> np.ndarray:
    """Estimate the paper background and flatten the illumination of a scan.

    Args:
        image: Grayscale or BGR scan
        window_size: Sauvola window size used to find the foreground
        k: Sauvola k parameter
        r_scale: Scale of Sauvola's R parameter
        init_mode: Inpaint initialization ("mean" or "nearest")
        iterations: Inpaint relaxation rounds
        distance1: Mask shrinking distance (removes specks)
        distance2: Mask growing distance (covers glyph fringes)
        blur: Odd Gaussian kernel size applied to the background (1 disables)
        alpha: Background intensity mapped to white when normalizing
        output: "normalized" for the flattened image, "background" for the estimate
        brightness: Stretch the result to the full intensity range
        input_as_grayscale: Convert a BGR input to grayscale first

    Returns:
        np.ndarray: Image with the same number of channels as the (converted) input
    """
    processor = kwargs.get('_processor', None)

    validate_image(image)
    validate_background_parameters(distance1, distance2, blur, alpha)
    try:
        output = BackgroundOutput(output)
    except ValueError:
        raise InvalidParameterError(f"Unknown output: {output}", parameter="output") from None

    if input_as_grayscale:
        image = to_grayscale(image)

    mask = build_background_mask(
        to_grayscale(image), window_size, k, r_scale, distance1, distance2, accumulator
    )
    if processor:
        processor.save_debug_image('01_foreground_mask', mask)

    background = fast_inpaint(image, mask, init_mode, iterations)
    if blur != 1:
        background = cv2.GaussianBlur(
            background, (blur, blur), 0.0, sigmaY=0.0, borderType=cv2.BORDER_REPLICATE
        )
    if processor:
        processor.save_debug_image('02_background', background)

    if output == BackgroundOutput.BACKGROUND:
        result = background
    else:
        result = normalize_by_background(image, background, alpha)

    if brightness:
        result = adjust_brightness(result)

    logger.debug(
        f"Isolated background: shape={image.shape}, window={window_size}, "
        f"masked={int(np.count_nonzero(mask))}, output={output.value}"
    )
    return result


class BackgroundIsolationProcessor(BaseProcessor):
    """Processor running the full background isolation pipeline."""

    def process(self, image: np.ndarray, **kwargs) -> np.ndarray:
        """Isolate the background using the ``sauvola``, ``mask_denoise``,
        ``inpaint`` and ``background`` config sections.
        """
        self.clear_debug_images()

        params = {}
        sauvola_cfg = self.get_config_value('sauvola', None)
        if sauvola_cfg is not None:
            params.update(
                window_size=sauvola_cfg.window_size,
                k=sauvola_cfg.k,
                r_scale=sauvola_cfg.r_scale,
                accumulator=sauvola_cfg.accumulator,
            )
        for key in ('mask_denoise', 'inpaint', 'background'):
            section = self.get_config_value(key, None)
            if section is not None:
                params.update(section.model_dump())
        params.update(kwargs)
        params['_processor'] = self

        return isolate_background(image, **params)
