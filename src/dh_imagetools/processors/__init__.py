"""Image Processors Module.

This module provides the numeric image-analysis components of the toolkit.
Each processor handles one stage of the binarization / background workflow.
"""

# Base processor
from .base import BaseProcessor

# Image I/O
from .image_io import (
    load_image,
    save_image,
    get_image_files,
)

# Integral images
from .integral import (
    IntegralImages,
    LocalStatistics,
    compute_integral_images,
    window_statistics,
    local_statistics,
    window_size_limit,
    check_window_size,
)

# Sauvola thresholding
from .sauvola import (
    OutputType,
    SauvolaProcessor,
    sauvola,
    sauvola_binarize,
)

# Mask morphology
from .mask_ops import (
    DistanceMetric,
    MaskOp,
    MaskCommand,
    MaskProcessor,
    negate,
    inset,
    outset,
    border_fill,
    distance_field,
    apply_mask_commands,
)

# Inpainting
from .inpaint import (
    InpaintInitMode,
    InpaintProcessor,
    fast_inpaint,
)

# Background isolation
from .background import (
    BackgroundOutput,
    BackgroundIsolationProcessor,
    isolate_background,
    normalize_by_background,
    adjust_brightness,
)

__all__ = [
    # Base
    "BaseProcessor",

    # Image I/O
    "load_image",
    "save_image",
    "get_image_files",

    # Integral images
    "IntegralImages",
    "LocalStatistics",
    "compute_integral_images",
    "window_statistics",
    "local_statistics",
    "window_size_limit",
    "check_window_size",

    # Sauvola thresholding
    "OutputType",
    "SauvolaProcessor",
    "sauvola",
    "sauvola_binarize",

    # Mask morphology
    "DistanceMetric",
    "MaskOp",
    "MaskCommand",
    "MaskProcessor",
    "negate",
    "inset",
    "outset",
    "border_fill",
    "distance_field",
    "apply_mask_commands",

    # Inpainting
    "InpaintInitMode",
    "InpaintProcessor",
    "fast_inpaint",

    # Background isolation
    "BackgroundOutput",
    "BackgroundIsolationProcessor",
    "isolate_background",
    "normalize_by_background",
    "adjust_brightness",
]
