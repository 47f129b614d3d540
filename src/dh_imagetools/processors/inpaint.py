"""Fast diffusion inpainting.

Implements the relaxation scheme of Oliveira et al. (2001) "Fast Digital
Image Inpainting": the masked region is seeded with an initial guess and then
repeatedly replaced by a 3x3 weighted average of its neighbourhood, which
approximates a harmonic (Laplace) fill bounded by the unmasked pixels.
"""

import logging
from enum import Enum
from typing import Any

import cv2
import numpy as np

from ..exceptions import DegenerateMaskError, InvalidParameterError
from .base import BaseProcessor, validate_image, validate_mask

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 16

_A = 0.073235
_B = 0.176765
DIFFUSION_KERNEL = np.array(
    [[_A, _B, _A],
     [_B, 0.0, _B],
     [_A, _B, _A]],
    dtype=np.float32,
)


class InpaintInitMode(str, Enum):
    """How masked pixels are seeded before relaxation."""
    MEAN = "mean"
    NEAREST = "nearest"


INIT_MODE_ALIASES = {
    "mean": InpaintInitMode.MEAN,
    "nearest": InpaintInitMode.NEAREST,
    "neighbor": InpaintInitMode.NEAREST,
    "neighbor-L1": InpaintInitMode.NEAREST,
    "default": InpaintInitMode.NEAREST,
}


def parse_init_mode(value: Any) -> InpaintInitMode:
    """Resolve an init mode or one of its aliases."""
    if isinstance(value, InpaintInitMode):
        return value
    try:
        return INIT_MODE_ALIASES[str(value)]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown inpaint init mode: {value}", parameter="init_mode", value=value
        ) from None


def fill_with_mean(image: np.ndarray, masked: np.ndarray) -> np.ndarray:
    """Fill masked pixels with the per-channel mean of the unmasked pixels."""
    unmasked = ~masked
    count = int(np.count_nonzero(unmasked))
    if count == 0:
        raise DegenerateMaskError("no unmasked pixels", processor="inpaint")

    totals = image[unmasked].sum(axis=0, dtype=np.uint64)
    mean = (totals // np.uint64(count)).astype(np.uint8)

    filled = image.copy()
    filled[masked] = mean
    return filled


def fill_with_nearest(image: np.ndarray, masked: np.ndarray) -> np.ndarray:
    """Copy into each masked pixel the value of its nearest unmasked pixel (L1)."""
    unmasked = ~masked
    if not np.any(unmasked):
        raise DegenerateMaskError("no unmasked pixels", processor="inpaint")

    h, w = masked.shape
    # Unmasked pixels are the zero-valued sources of the transform.
    sources = np.where(masked, 255, 0).astype(np.uint8)
    _, labels = cv2.distanceTransformWithLabels(
        sources, cv2.DIST_L1, 3, labelType=cv2.DIST_LABEL_PIXEL
    )

    ys, xs = np.nonzero(unmasked)
    lookup = np.zeros(int(labels.max()) + 1, dtype=np.intp)
    lookup[labels[ys, xs]] = ys * w + xs
    nearest = lookup[labels].ravel()

    flat = image.reshape(h * w, -1)
    filled = flat[nearest].reshape(image.shape)
    filled[unmasked] = image[unmasked]
    return filled


def fast_inpaint(
    image: np.ndarray,
    mask: np.ndarray,
    init_mode: Any = InpaintInitMode.NEAREST,
    iterations: int = DEFAULT_ITERATIONS,
    **kwargs
) -> np.ndarray:
    """Fill the masked region of an image by diffusion.

    Args:
        image: Source image, grayscale or BGR
        mask: Single-channel mask, non-zero where pixels are to be filled
        init_mode: "mean" or "nearest" (aliases accepted)
        iterations: Number of relaxation rounds (0 keeps the initial fill)

    Returns:
        np.ndarray: New image; pixels outside the mask equal the source exactly

    Raises:
        DegenerateMaskError: If the mask covers every pixel
    """
    processor = kwargs.get('_processor', None)

    validate_image(image)
    validate_mask(mask, image.shape)
    init_mode = parse_init_mode(init_mode)
    if isinstance(iterations, bool) or not isinstance(iterations, (int, np.integer)) or iterations < 0:
        raise InvalidParameterError(
            "inpaint iteration count must not be negative", parameter="iterations", value=iterations
        )

    masked = mask > 0

    if init_mode == InpaintInitMode.MEAN:
        filled = fill_with_mean(image, masked)
    else:
        filled = fill_with_nearest(image, masked)

    if processor:
        processor.save_debug_image('01_initial_fill', filled)

    work = filled.astype(np.float32)
    for _ in range(iterations):
        relaxed = cv2.filter2D(
            work, -1, DIFFUSION_KERNEL, anchor=(1, 1), delta=0,
            borderType=cv2.BORDER_REPLICATE,
        )
        work[masked] = relaxed[masked]

    result = np.clip(np.rint(work), 0, 255).astype(np.uint8)
    result[~masked] = image[~masked]

    logger.debug(
        f"Inpainted {int(np.count_nonzero(masked))} pixels "
        f"(init={init_mode.value}, iterations={iterations})"
    )
    return result


class InpaintProcessor(BaseProcessor):
    """Processor for mask-driven background inpainting."""

    def process(self, image: np.ndarray, mask: np.ndarray = None, **kwargs) -> np.ndarray:
        """Inpaint ``image`` under ``mask`` using the ``inpaint`` config section."""
        self.clear_debug_images()

        section = self.get_config_value('inpaint', None)
        params = section.model_dump() if section is not None else {}
        params.update(kwargs)
        params['_processor'] = self

        return fast_inpaint(image, mask, **params)
