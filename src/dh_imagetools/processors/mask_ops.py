"""Binary mask editing: negate, inset/outset by distance, border fill."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List

import cv2
import numpy as np

from ..exceptions import InvalidParameterError
from .base import BaseProcessor, validate_mask

logger = logging.getLogger(__name__)


class DistanceMetric(str, Enum):
    """Distance metrics supported by the distance transform."""
    L1 = "L1"
    L2 = "L2"


class MaskOp(str, Enum):
    """Mask editing operations."""
    NEGATE = "negate"
    BORDER_FILL = "border-fill"
    INSET = "inset"
    OUTSET = "outset"


def parse_metric(value: Any) -> DistanceMetric:
    """Resolve a metric given as enum or case-insensitive string."""
    if isinstance(value, DistanceMetric):
        return value
    for metric in DistanceMetric:
        if str(value).upper() == metric.value:
            return metric
    raise InvalidParameterError(f"Unknown distance metric: {value}", parameter="metric", value=value)


def binarize_mask(mask: np.ndarray) -> np.ndarray:
    """Map any non-zero value to 255."""
    return np.where(mask > 0, 255, 0).astype(np.uint8)


def negate(mask: np.ndarray) -> np.ndarray:
    """Swap inside and outside of a mask."""
    validate_mask(mask)
    return np.where(mask > 0, 0, 255).astype(np.uint8)


def distance_field(mask: np.ndarray, metric: Any = DistanceMetric.L2,
                   border_as_background: bool = False) -> np.ndarray:
    """Distance from every pixel to the nearest zero pixel of ``mask``.

    L2 distances are exact Euclidean distances; L1 uses the 3x3 city-block
    mask, which is exact for that metric. Pixels of a mask without any zero
    pixel are infinitely far from the background.

    Args:
        mask: Single-channel mask
        metric: "L1" or "L2"
        border_as_background: Treat the area just outside the image as zero

    Returns:
        np.ndarray: float32 distances with the mask's shape
    """
    validate_mask(mask)
    metric = parse_metric(metric)

    source = binarize_mask(mask)
    if border_as_background:
        source = cv2.copyMakeBorder(source, 1, 1, 1, 1, cv2.BORDER_CONSTANT, value=0)

    if not np.any(source == 0):
        return np.full(mask.shape, np.inf, dtype=np.float32)

    if metric == DistanceMetric.L2:
        dist = cv2.distanceTransform(source, cv2.DIST_L2, cv2.DIST_MASK_PRECISE)
    else:
        dist = cv2.distanceTransform(source, cv2.DIST_L1, 3)

    if border_as_background:
        dist = dist[1:-1, 1:-1]
    return dist


def _check_distance(distance: float) -> float:
    if isinstance(distance, bool) or not isinstance(distance, (int, float, np.floating, np.integer)):
        raise InvalidParameterError("distance must be a number", parameter="distance", value=distance)
    if math.isnan(distance):
        raise InvalidParameterError("distance must not be NaN", parameter="distance", value=distance)
    return float(distance)


def inset(mask: np.ndarray, distance: float, metric: Any = DistanceMetric.L2,
          border_as_background: bool = False) -> np.ndarray:
    """Shrink the mask: clear every pixel within ``distance`` of the background.

    A negative distance grows the mask by ``-distance`` instead.
    """
    distance = _check_distance(distance)
    if distance < 0:
        return outset(mask, -distance, metric, border_as_background)

    dist = distance_field(mask, metric, border_as_background)
    return np.where(dist <= distance, 0, 255).astype(np.uint8)


def outset(mask: np.ndarray, distance: float, metric: Any = DistanceMetric.L2,
           border_as_background: bool = False) -> np.ndarray:
    """Grow the mask by ``distance``; implemented as an inset of the negated mask."""
    distance = _check_distance(distance)
    if distance < 0:
        return inset(mask, -distance, metric, border_as_background)

    return negate(inset(negate(mask), distance, metric, border_as_background))


def border_fill(mask: np.ndarray) -> np.ndarray:
    """Remove every foreground component that touches the image border."""
    validate_mask(mask)
    filled = binarize_mask(mask)
    h, w = filled.shape

    seeds = (
        [(x, 0) for x in range(w)]
        + [(x, h - 1) for x in range(w)]
        + [(0, y) for y in range(h)]
        + [(w - 1, y) for y in range(h)]
    )
    for x, y in seeds:
        if filled[y, x]:
            cv2.floodFill(filled, None, (x, y), 0)
    return filled


@dataclass(frozen=True)
class MaskCommand:
    """One step of a mask editing sequence."""

    op: MaskOp
    distance: float = 0.0
    metric: DistanceMetric = DistanceMetric.L2

    def normalized(self) -> "MaskCommand":
        """Fold a negative distance into the complementary operation."""
        if self.op in (MaskOp.INSET, MaskOp.OUTSET) and self.distance < 0:
            flipped = MaskOp.OUTSET if self.op == MaskOp.INSET else MaskOp.INSET
            return MaskCommand(flipped, -self.distance, self.metric)
        return self


def apply_mask_command(mask: np.ndarray, command: MaskCommand,
                       border_as_background: bool = False) -> np.ndarray:
    """Apply a single command to a mask."""
    command = command.normalized()
    if command.op == MaskOp.NEGATE:
        return negate(mask)
    if command.op == MaskOp.BORDER_FILL:
        return border_fill(mask)
    if command.op == MaskOp.INSET:
        return inset(mask, command.distance, command.metric, border_as_background)
    if command.op == MaskOp.OUTSET:
        return outset(mask, command.distance, command.metric, border_as_background)
    raise InvalidParameterError(f"Unknown mask operation: {command.op}", parameter="op")


def apply_mask_commands(mask: np.ndarray, commands: Iterable[MaskCommand],
                        border_as_background: bool = False) -> np.ndarray:
    """Apply commands in order; the result is always a {0, 255} mask."""
    result = binarize_mask(mask)
    for command in commands:
        logger.debug(f"Mask command: {command.op.value} {command.distance} {command.metric.value}")
        result = apply_mask_command(result, command, border_as_background)
    return result


class MaskProcessor(BaseProcessor):
    """Processor applying a sequence of mask commands."""

    def process(self, image: np.ndarray, commands: List[MaskCommand] = (), **kwargs) -> np.ndarray:
        """Apply ``commands`` to a single-channel mask image."""
        self.clear_debug_images()
        self.save_debug_image('01_input_mask', image)
        result = apply_mask_commands(
            image, commands, kwargs.get('border_as_background', False)
        )
        self.save_debug_image('02_result_mask', result)
        return result
