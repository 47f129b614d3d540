"""Adaptive binarization and background isolation for document images."""

__version__ = "1.0.0"
__author__ = "DH Image Tools Team"

from .processors import sauvola, apply_mask_commands, fast_inpaint, isolate_background

__all__ = ["sauvola", "apply_mask_commands", "fast_inpaint", "isolate_background"]
