"""Batch processing of image files, sequentially or in worker processes."""

import logging
import traceback
from functools import partial
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from tqdm import tqdm

from .processors import get_image_files
from .processors.background import isolate_background
from .processors.image_io import load_image, save_image
from .processors.mask_ops import apply_mask_commands
from .processors.sauvola import OutputType, parse_output_type, sauvola

logger = logging.getLogger(__name__)

BatchResult = Tuple[Path, Optional[Path], Optional[str]]


def sauvola_file(input_path: Path, output_path: Path, params: Dict[str, Any]) -> None:
    """Threshold one file with :func:`sauvola` and write the result."""
    image = load_image(input_path, "grayscale")
    result = sauvola(image, **params)
    binary = parse_output_type(params.get("output_type", OutputType.BINARY)) == OutputType.BINARY
    save_image(result, output_path, bilevel=binary, compression=9 if binary else None)


def mask_op_file(input_path: Path, output_path: Path, params: Dict[str, Any]) -> None:
    """Apply mask commands to one file and write a bilevel result."""
    mask = load_image(input_path, "grayscale")
    result = apply_mask_commands(mask, **params)
    save_image(result, output_path, bilevel=True)


def isolate_background_file(input_path: Path, output_path: Path, params: Dict[str, Any]) -> None:
    """Run background isolation on one file and write the result."""
    image = load_image(input_path, "any")
    result = isolate_background(image, **params)
    save_image(result, output_path)


def process_single_file_wrapper(
    paths: Tuple[Path, Path],
    worker: Callable[[Path, Path, Dict[str, Any]], None],
    params: Dict[str, Any],
) -> BatchResult:
    """Run ``worker`` on one (input, output) pair, capturing any error.

    Returns:
        Tuple of (input_path, output_path or None, error_message or None)
    """
    input_path, output_path = paths
    try:
        worker(input_path, output_path, params)
        return (input_path, output_path, None)
    except Exception as e:
        error_msg = f"Error processing {input_path}: {e}\n{traceback.format_exc()}"
        return (input_path, None, error_msg)


class BatchProcessor:
    """Run one of the file tools over many images."""

    def __init__(
        self,
        worker: Callable[[Path, Path, Dict[str, Any]], None],
        params: Optional[Dict[str, Any]] = None,
        max_workers: Optional[int] = None,
        show_progress: bool = True,
    ):
        """Initialize the batch processor.

        Args:
            worker: Module-level function taking (input_path, output_path, params)
            params: Keyword arguments forwarded to the core function
            max_workers: Maximum number of worker processes (default: CPU count - 1)
            show_progress: Whether to show a progress bar
        """
        self.worker = worker
        self.params = params or {}
        self.max_workers = max_workers or max(1, cpu_count() - 1)
        self.show_progress = show_progress

    @staticmethod
    def plan_outputs(input_dir: Path, output_dir: Path, suffix: str = ".png") -> List[Tuple[Path, Path]]:
        """Pair every image in ``input_dir`` with an output path in ``output_dir``."""
        return [
            (path, output_dir / f"{path.stem}{suffix}")
            for path in get_image_files(input_dir)
        ]

    def run(self, jobs: List[Tuple[Path, Path]], parallel: bool = True) -> Dict[str, Any]:
        """Process all jobs and return a summary.

        Returns:
            Dictionary with 'successful', 'failed' and 'total' entries
        """
        if not jobs:
            return {'successful': [], 'failed': [], 'total': 0}

        func = partial(process_single_file_wrapper, worker=self.worker, params=self.params)

        if parallel and len(jobs) > 1 and self.max_workers > 1:
            logger.info(f"Processing {len(jobs)} images using {self.max_workers} workers")
            with Pool(processes=min(self.max_workers, len(jobs))) as pool:
                results = list(tqdm(
                    pool.imap(func, jobs), total=len(jobs), desc="Processing images",
                    unit="img", disable=not self.show_progress,
                ))
        else:
            logger.info(f"Processing {len(jobs)} images sequentially")
            results = [
                func(job) for job in tqdm(
                    jobs, desc="Processing images", unit="img", disable=not self.show_progress
                )
            ]

        successful = []
        failed = []
        for input_path, output_path, error_msg in results:
            if error_msg:
                logger.warning(error_msg.splitlines()[0])
                failed.append({'image': str(input_path), 'error': error_msg})
            else:
                successful.append({'image': str(input_path), 'output': str(output_path)})

        return {'successful': successful, 'failed': failed, 'total': len(jobs)}
