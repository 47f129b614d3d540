"""Sauvola adaptive thresholding on top of integral-image statistics."""

import logging
import math
from enum import Enum
from typing import Any, Optional, Sequence

import cv2
import numpy as np

from ..exceptions import EmptyOrOversizedImageError, InvalidParameterError
from .base import BaseProcessor, INT_MAX, check_padded_size, to_grayscale, validate_image
from .integral import check_window_size, local_statistics

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 60
DEFAULT_K = 0.4

# Half of the 8-bit intensity range, the largest standard deviation possible.
HALF_RANGE = 255.0 * 0.5

MAX_WINDOWS = 3


class OutputType(str, Enum):
    """Output modes of the Sauvola thresholder."""
    BINARY = "binary"
    THRESHOLD = "threshold"
    VARIABLE = "variable"
    PIXELINFO = "pixelinfo"
    VARIABLE_MULTIW = "variable-multiw"


OUTPUT_TYPE_ALIASES = {
    "b": OutputType.BINARY,
    "binary": OutputType.BINARY,
    "binarized": OutputType.BINARY,
    "t": OutputType.THRESHOLD,
    "threshold": OutputType.THRESHOLD,
    "v": OutputType.VARIABLE,
    "variable": OutputType.VARIABLE,
    "p": OutputType.PIXELINFO,
    "pixels": OutputType.PIXELINFO,
    "pixelinfo": OutputType.PIXELINFO,
    "multiw": OutputType.VARIABLE_MULTIW,
    "variable-multiw": OutputType.VARIABLE_MULTIW,
}

VARIABLE_OUTPUTS = (OutputType.VARIABLE, OutputType.VARIABLE_MULTIW)


def parse_output_type(value: Any) -> OutputType:
    """Resolve an output type or one of its aliases."""
    if isinstance(value, OutputType):
        return value
    try:
        return OUTPUT_TYPE_ALIASES[str(value)]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown output type: {value}", parameter="output_type", value=value
        ) from None


def expand_window_sizes(window_sizes: Sequence[int], accumulator: str = "uint64") -> list:
    """Validate 1-3 window sizes and repeat the last one until there are three."""
    sizes = list(window_sizes)
    if not sizes:
        raise InvalidParameterError(
            "at least one window size is required", parameter="multi_window_sizes"
        )
    if len(sizes) > MAX_WINDOWS:
        raise InvalidParameterError(
            "too many window sizes", parameter="multi_window_sizes", value=sizes
        )
    for size in sizes:
        check_window_size(size, accumulator, parameter="multi_window_sizes")
    while len(sizes) < MAX_WINDOWS:
        sizes.append(sizes[-1])
    return sizes


def validate_sauvola_parameters(
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    t_scale: float = 1.0,
    bias: float = 0.0,
    output_type: OutputType = OutputType.BINARY,
) -> None:
    """Check the scalar parameters of the Sauvola formula.

    ``k`` and ``r_scale`` may be infinite; ``t_scale`` and ``bias`` must be finite.
    Variable-threshold outputs need ``r_scale >= 1`` so that the k=1 threshold
    never exceeds the k=0 threshold.
    """
    if math.isnan(k) or k < 0:
        raise InvalidParameterError("k parameter is too small", parameter="k", value=k)
    if math.isnan(r_scale) or r_scale <= 0:
        raise InvalidParameterError("R scale must be positive", parameter="r_scale", value=r_scale)
    if not math.isfinite(t_scale) or t_scale <= 0:
        raise InvalidParameterError(
            "threshold scale must be larger than zero", parameter="t_scale", value=t_scale
        )
    if not math.isfinite(bias):
        raise InvalidParameterError("threshold bias must be finite", parameter="bias", value=bias)
    if output_type in VARIABLE_OUTPUTS and r_scale < 1:
        raise InvalidParameterError(
            "R scale must not be less than 1 if variable output is enabled",
            parameter="r_scale", value=r_scale,
        )


def sauvola_threshold_map(
    mean: np.ndarray,
    stddev: np.ndarray,
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    t_scale: float = 1.0,
    bias: float = 0.0,
) -> np.ndarray:
    """Per-pixel Sauvola threshold, truncated toward zero.

    ``T = t_scale * mean * (1 + k * (stddev / R - 1)) + 255 * bias`` with
    ``R = r_scale * 127.5``.
    """
    r_param = r_scale * HALF_RANGE
    with np.errstate(invalid="ignore"):
        threshold = t_scale * mean * (1.0 + k * (stddev / r_param - 1.0)) + 255.0 * bias
    return np.trunc(threshold)


def variable_threshold_map(
    gray: np.ndarray,
    mean: np.ndarray,
    stddev: np.ndarray,
    r_scale: float = 1.0,
    t_scale: float = 1.0,
    bias: float = 0.0,
) -> np.ndarray:
    """Encode, per pixel, the lowest k that turns the pixel white.

    Raising k lowers the threshold from its k=0 value ``t*mean`` down to its
    k=1 value ``t*mean*stddev/R``. The source intensity is clamped into that
    interval and mapped to [0, 255], so 255 means white already at k=0 and
    0 means still black at k=1.
    """
    r_param = r_scale * HALF_RANGE
    real_bias = 255.0 * bias
    scaled_mean = t_scale * mean
    th_high = scaled_mean + real_bias
    th_low = scaled_mean * (stddev / r_param) + real_bias

    values = gray.astype(np.float64)
    clamped = np.maximum(np.minimum(values, th_high), th_low)
    span = th_high - th_low
    with np.errstate(divide="ignore", invalid="ignore"):
        scaled = 255.0 * ((clamped - th_low) / span)
    # A zero-width interval means the decision does not depend on k at all.
    flat = np.where(values > th_high, 255.0, 0.0)
    result = np.where(span > 0, scaled, flat)
    return np.clip(result, 0, 255).astype(np.uint8)


def pixel_info_map(gray: np.ndarray, mean: np.ndarray, stddev: np.ndarray) -> np.ndarray:
    """Diagnostic BGR image: B=mean, G=2*stddev, R=inverted intensity."""
    info = np.empty(gray.shape + (3,), dtype=np.uint8)
    info[:, :, 0] = np.clip(mean, 0, 255).astype(np.uint8)
    info[:, :, 1] = np.clip(stddev * 2.0, 0, 255).astype(np.uint8)
    info[:, :, 2] = 255 - gray
    return info


def prescale_image(gray: np.ndarray, scale: float) -> np.ndarray:
    """Resize with Lanczos4 by ``scale``, guarding against empty or huge results."""
    if not math.isfinite(scale) or scale <= 0:
        raise InvalidParameterError("prescale value must be positive", parameter="prescale", value=scale)
    if scale == 1.0:
        return gray

    h, w = gray.shape[:2]
    if scale * h + 1 >= INT_MAX or scale * w + 1 >= INT_MAX:
        raise EmptyOrOversizedImageError("image is too big after prescaling", scale=scale)
    new_w = int(scale * w)
    new_h = int(scale * h)
    if new_w == 0 or new_h == 0:
        raise EmptyOrOversizedImageError("image is empty after prescaling", scale=scale)
    if INT_MAX // new_w < new_h:
        raise EmptyOrOversizedImageError("image is too big after prescaling", scale=scale)
    if (new_w, new_h) == (w, h):
        return gray

    logger.debug(f"Prescaling {w}x{h} -> {new_w}x{new_h}")
    return cv2.resize(gray, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)


def sauvola(
    image: np.ndarray,
    output_type: Any = OutputType.BINARY,
    window_size: int = DEFAULT_WINDOW_SIZE,
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    t_scale: float = 1.0,
    bias: float = 0.0,
    multi_window_sizes: Optional[Sequence[int]] = None,
    prescale: float = 1.0,
    accumulator: str = "uint64",
    **kwargs
) -> np.ndarray:
    """Apply Sauvola's algorithm and return the requested output image.

    Args:
        image: Input image (grayscale or BGR; BGR is converted to grayscale)
        output_type: One of :class:`OutputType` or an alias such as "b", "v", "multiw"
        window_size: Side length of the square analysis window
        k: Sauvola k parameter (sensitivity to local contrast)
        r_scale: Scale of R, 1.0 meaning the largest possible standard deviation
        t_scale: Multiplicative scale applied to the threshold
        bias: Threshold bias as a fraction of the intensity range
        multi_window_sizes: 1-3 window sizes for the variable-multiw output
        prescale: Resize factor applied before thresholding
        accumulator: Integral image accumulator type ("uint64" or "uint32")

    Returns:
        np.ndarray: Single-channel uint8 image, or a 3-channel BGR image for
        the pixelinfo and variable-multiw outputs
    """
    processor = kwargs.get('_processor', None)

    validate_image(image)
    output_type = parse_output_type(output_type)
    validate_sauvola_parameters(k, r_scale, t_scale, bias, output_type)

    if output_type == OutputType.VARIABLE_MULTIW:
        if multi_window_sizes is None:
            raise InvalidParameterError(
                "variable-multiw output requires window sizes", parameter="multi_window_sizes"
            )
        sizes = expand_window_sizes(multi_window_sizes, accumulator)
    else:
        sizes = [check_window_size(window_size, accumulator)]

    gray = prescale_image(to_grayscale(image), prescale)
    h, w = gray.shape[:2]
    check_padded_size(w, h, max(sizes))

    if processor:
        processor.save_debug_image('01_grayscale_input', gray)

    if output_type == OutputType.VARIABLE_MULTIW:
        result = np.empty((h, w, 3), dtype=np.uint8)
        maps = {}
        for index, size in enumerate(sizes):
            if size not in maps:
                stats = local_statistics(gray, size, accumulator)
                maps[size] = variable_threshold_map(
                    gray, stats.mean, stats.stddev, r_scale, t_scale, bias
                )
            # First window goes to red, i.e. the last BGR channel.
            result[:, :, 2 - index] = maps[size]
        logger.debug(f"Multi-window variable threshold with sizes {sizes}")
    else:
        stats = local_statistics(gray, sizes[0], accumulator)
        if output_type == OutputType.PIXELINFO:
            result = pixel_info_map(gray, stats.mean, stats.stddev)
        elif output_type == OutputType.VARIABLE:
            result = variable_threshold_map(
                gray, stats.mean, stats.stddev, r_scale, t_scale, bias
            )
        else:
            threshold = sauvola_threshold_map(
                stats.mean, stats.stddev, k, r_scale, t_scale, bias
            )
            if output_type == OutputType.THRESHOLD:
                threshold = np.nan_to_num(threshold, nan=0.0, posinf=255.0, neginf=0.0)
                result = np.clip(threshold, 0, 255).astype(np.uint8)
            else:
                result = np.where(gray > threshold, 255, 0).astype(np.uint8)

    if processor:
        processor.save_debug_image(f'02_{output_type.value}', result)

    return result


def sauvola_binarize(
    image: np.ndarray,
    window_size: int = DEFAULT_WINDOW_SIZE,
    k: float = DEFAULT_K,
    r_scale: float = 1.0,
    accumulator: str = "uint64",
) -> np.ndarray:
    """Binarize with Sauvola's algorithm: 255 where intensity exceeds the threshold."""
    return sauvola(
        image, OutputType.BINARY, window_size=window_size, k=k,
        r_scale=r_scale, accumulator=accumulator,
    )


class SauvolaProcessor(BaseProcessor):
    """Processor for Sauvola binarization and its diagnostic outputs."""

    def process(self, image: np.ndarray, **kwargs) -> np.ndarray:
        """Threshold an image using the configured Sauvola parameters.

        Keyword arguments override the values of the ``sauvola`` config section.
        """
        self.clear_debug_images()

        section = self.get_config_value('sauvola', None)
        params = section.model_dump() if section is not None else {}
        params.update(kwargs)
        params['_processor'] = self

        return sauvola(image, **params)
