"""Utility modules for the image tools."""

from .logging_utils import (
    setup_logging, setup_logging_from_config, log_processing_stats
)
from .argparse_utils import (
    ArgparseError, parse_int, parse_float, parse_int_list
)

__all__ = [
    'setup_logging', 'setup_logging_from_config', 'log_processing_stats',
    'ArgparseError', 'parse_int', 'parse_float', 'parse_int_list',
]
