"""Command-line entry points for the image tools.

Each tool reads one image and writes one image. When the input is a
directory, every image in it is processed into the output directory.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import __version__
from .batch import BatchProcessor, isolate_background_file, mask_op_file, sauvola_file
from .config import get_default_config, load_config
from .exceptions import ConfigurationError, ImageToolsError, InvalidParameterError
from .processors.inpaint import parse_init_mode
from .processors.integral import window_size_limit
from .processors.mask_ops import DistanceMetric, MaskCommand, MaskOp
from .processors.sauvola import (
    MAX_WINDOWS, OutputType, VARIABLE_OUTPUTS, parse_output_type,
)
from .utils.argparse_utils import (
    ArgparseError, ToolArgumentParser, parse_float, parse_int, parse_int_list,
)
from .utils.logging_utils import log_processing_stats, setup_logging_from_config

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="Input image (or directory of images)")
    parser.add_argument("output", type=Path, help="Output image (or directory)")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", type=Path, help="Configuration file (JSON, YAML or TOML)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--workers", metavar="N", help="Worker processes for directory input")


def _load_tool_config(args: argparse.Namespace):
    config = load_config(args.config) if args.config else get_default_config()
    if args.verbose:
        config.logging.level = "DEBUG"
    setup_logging_from_config(config.logging)
    return config


def _window_size(option: str, text: str, accumulator: str) -> int:
    value = parse_int(option, text)
    if value < 1:
        raise ArgparseError(option, "window size is too small.")
    if value > window_size_limit(accumulator):
        raise ArgparseError(option, "window size is too large.")
    return value


def _run(worker: Callable[[Path, Path, Dict[str, Any]], None], args: argparse.Namespace,
         params: Dict[str, Any]) -> int:
    """Process a single file, or every image of a directory."""
    workers = parse_int("--workers", args.workers) if args.workers else None
    if workers is not None and workers < 1:
        raise ArgparseError("--workers", "value must be positive.")

    if not args.input.is_dir():
        worker(args.input, args.output, params)
        return 0

    batch = BatchProcessor(worker, params, max_workers=workers)
    jobs = batch.plan_outputs(args.input, args.output)
    with log_processing_stats(f"processing {args.input}", logger) as stats:
        summary = batch.run(jobs)
        stats["files_processed"] = len(summary['successful'])
        stats["files_failed"] = len(summary['failed'])
    return 1 if summary['failed'] else 0


def _main(parser: argparse.ArgumentParser, build: Callable[[argparse.Namespace, Any], Dict[str, Any]],
          worker: Callable[[Path, Path, Dict[str, Any]], None], argv: Optional[List[str]]) -> int:
    try:
        args = parser.parse_args(argv)
    except ArgparseError as e:
        # Mask distances are parsed while the command line is read.
        print(f"{e.option}: {e.message}", file=sys.stderr)
        return 1

    try:
        config = _load_tool_config(args)
        params = build(args, config)
        return _run(worker, args, params)
    except ArgparseError as e:
        print(f"{e.option}: {e.message}", file=sys.stderr)
    except InvalidParameterError as e:
        option = e.parameter or parser.prog
        print(f"{option}: {e.message}", file=sys.stderr)
    except ConfigurationError as e:
        print(f"{args.config}: {e}", file=sys.stderr)
    except ImageToolsError as e:
        print(f"{args.input}: {e}", file=sys.stderr)
    return 1


# ---------------------------------------------------------------------------
# dh-binarize-sauvola
# ---------------------------------------------------------------------------

class _MultiWindowAction(argparse.Action):
    """``-X`` sets the window list and selects the variable-multiw output."""

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.multi_window = (option_string, values)
        namespace.output_type = ("-X", OutputType.VARIABLE_MULTIW.value)


class _OutputTypeAction(argparse.Action):
    """Record the output type together with the option that chose it."""

    def __call__(self, parser, namespace, values, option_string=None):
        value = self.const if self.nargs == 0 else values
        namespace.output_type = (option_string, value)


def build_sauvola_parser() -> argparse.ArgumentParser:
    parser = ToolArgumentParser(
        prog="dh-binarize-sauvola",
        description="Binarize an image with Sauvola's algorithm.",
    )
    _add_common_arguments(parser)
    parser.add_argument("-S", "--prescale", metavar="SCALE", help="Prescale the image")
    parser.add_argument("-w", "--window-size", metavar="WS", help="Window size (default: 60)")
    parser.add_argument("-k", "--k-param", metavar="K", help="Sauvola k parameter (default: 0.4)")
    parser.add_argument("-r", "--r-scale", metavar="RSCALE",
                        help="Scale of R (1.0 for maximum standard deviation possible)")
    parser.add_argument("-t", "--threshold-scale", metavar="TSCALE", help="Threshold scale")
    parser.add_argument("-b", "--threshold-bias", metavar="BIAS",
                        help="Threshold bias as a fraction of the intensity range")
    parser.add_argument("-T", "--output-threshold", action=_OutputTypeAction, nargs=0,
                        const="threshold", dest="output_type", help="Output the threshold map")
    parser.add_argument("-V", "--output-variable", action=_OutputTypeAction, nargs=0,
                        const="variable", dest="output_type",
                        help="Output the lowest k turning each pixel white")
    parser.add_argument("-P", "--output-pixelinfo", action=_OutputTypeAction, nargs=0,
                        const="pixelinfo", dest="output_type",
                        help="Output B=mean, G=2*stddev, R=inverted intensity")
    parser.add_argument("-X", "--multi-window-size", metavar="W1,W2,W3", action=_MultiWindowAction,
                        help="Variable output for up to three window sizes (R, G, B)")
    parser.add_argument("-O", "--output-type", metavar="TYPE", action=_OutputTypeAction,
                        dest="output_type",
                        help="binary, threshold, variable, pixelinfo or variable-multiw")
    parser.set_defaults(output_type=None, multi_window=None)
    return parser


def sauvola_params(args: argparse.Namespace, config) -> Dict[str, Any]:
    """Merge the ``sauvola`` config section with command-line options."""
    params = config.sauvola.model_dump()
    accumulator = params["accumulator"]

    if args.prescale is not None:
        params["prescale"] = parse_float("-S", args.prescale)
        if params["prescale"] <= 0:
            raise ArgparseError("-S", "prescale value must be positive.")
    if args.window_size is not None:
        params["window_size"] = _window_size("-w", args.window_size, accumulator)
    if args.k_param is not None:
        params["k"] = parse_float("-k", args.k_param, allow_infinity=True)
        if params["k"] < 0:
            raise ArgparseError("-k", "k parameter is too small.")
    if args.r_scale is not None:
        params["r_scale"] = parse_float("-r", args.r_scale, allow_infinity=True)
        if params["r_scale"] <= 0:
            raise ArgparseError("-r", "R scale must be positive.")
    if args.threshold_scale is not None:
        params["t_scale"] = parse_float("-t", args.threshold_scale)
        if params["t_scale"] <= 0:
            raise ArgparseError("-t", "threshold scale must be larger than zero.")
    if args.threshold_bias is not None:
        params["bias"] = parse_float("-b", args.threshold_bias)

    if args.multi_window is not None:
        option, text = args.multi_window
        sizes = parse_int_list(option, text, MAX_WINDOWS)
        for size in sizes:
            if size < 1:
                raise ArgparseError(option, "one of the window sizes is too small.")
            if size > window_size_limit(accumulator):
                raise ArgparseError(option, "one of the window sizes is too large.")
        params["multi_window_sizes"] = sizes

    if args.output_type is not None:
        option, value = args.output_type
        try:
            params["output_type"] = parse_output_type(value)
        except InvalidParameterError:
            raise ArgparseError(option, "unknown value.") from None

    output_type = parse_output_type(params["output_type"])
    if output_type in VARIABLE_OUTPUTS and params["r_scale"] < 1:
        raise ArgparseError("-r", "R scale must not be less than 1 if variable output is enabled.")
    if output_type == OutputType.VARIABLE_MULTIW and not params["multi_window_sizes"]:
        raise ArgparseError("--output-type", "value of variable-multiw requires a `-X' option.")
    params["output_type"] = output_type.value
    return params


def binarize_sauvola_main(argv: Optional[List[str]] = None) -> int:
    """Entry point of ``dh-binarize-sauvola``."""
    return _main(build_sauvola_parser(), sauvola_params, sauvola_file, argv)


# ---------------------------------------------------------------------------
# dh-mask-op
# ---------------------------------------------------------------------------

class _MaskCommandAction(argparse.Action):
    """Append a mask command, keeping command-line order across options."""

    def __init__(self, option_strings, dest, op=None, metric=DistanceMetric.L2, **kwargs):
        self.op = op
        self.metric = metric
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        commands = list(getattr(namespace, self.dest, None) or [])
        if self.nargs == 0:
            commands.append(MaskCommand(self.op))
        else:
            distance = parse_float(option_string, values, allow_infinity=True)
            commands.append(MaskCommand(self.op, distance, self.metric))
        setattr(namespace, self.dest, commands)


def build_mask_op_parser() -> argparse.ArgumentParser:
    parser = ToolArgumentParser(
        prog="dh-mask-op",
        description="Edit a binary mask. Commands are applied in the order given.",
    )
    _add_common_arguments(parser)
    parser.add_argument("-n", "--neg", action=_MaskCommandAction, nargs=0, dest="commands",
                        op=MaskOp.NEGATE, help="Negate the mask")
    parser.add_argument("-B", "--border-fill", action=_MaskCommandAction, nargs=0, dest="commands",
                        op=MaskOp.BORDER_FILL, help="Remove components touching the border")
    parser.add_argument("-i", "--inset", metavar="W", action=_MaskCommandAction, dest="commands",
                        op=MaskOp.INSET, help="Shrink the mask by W (L2)")
    parser.add_argument("-I", "--inset-L1", metavar="W", action=_MaskCommandAction, dest="commands",
                        op=MaskOp.INSET, metric=DistanceMetric.L1, help="Shrink the mask by W (L1)")
    parser.add_argument("-o", "--outset", metavar="W", action=_MaskCommandAction, dest="commands",
                        op=MaskOp.OUTSET, help="Grow the mask by W (L2)")
    parser.add_argument("-O", "--outset-L1", metavar="W", action=_MaskCommandAction,
                        dest="commands", op=MaskOp.OUTSET, metric=DistanceMetric.L1,
                        help="Grow the mask by W (L1)")
    parser.add_argument("--border-as-background", action="store_true",
                        help="Treat the outside of the image as background for distances")
    parser.set_defaults(commands=[])
    return parser


def mask_op_params(args: argparse.Namespace, config) -> Dict[str, Any]:
    return {
        "commands": list(args.commands),
        "border_as_background": args.border_as_background,
    }


def mask_op_main(argv: Optional[List[str]] = None) -> int:
    """Entry point of ``dh-mask-op``."""
    return _main(build_mask_op_parser(), mask_op_params, mask_op_file, argv)


# ---------------------------------------------------------------------------
# dh-isolate-bg
# ---------------------------------------------------------------------------

def build_isolate_bg_parser() -> argparse.ArgumentParser:
    parser = ToolArgumentParser(
        prog="dh-isolate-bg",
        description="Estimate the paper background of a scan and normalize the image by it.",
    )
    _add_common_arguments(parser)
    parser.add_argument("-g", "--input-as-grayscale", action="store_true",
                        help="Convert the input image to grayscale")
    parser.add_argument("-w", "--window-size", metavar="WS", help="Sauvola window size")
    parser.add_argument("-k", "--k-param", metavar="K", help="Sauvola k parameter")
    parser.add_argument("-r", "--r-scale", metavar="RSCALE", help="Scale of Sauvola's R")
    parser.add_argument("-I", "--inpaint-init", metavar="MODE",
                        help="Inpaint initialization: mean or nearest")
    parser.add_argument("-i", "--inpaint-iterations", metavar="ITER",
                        help="Inpaint iterations (default: 16)")
    parser.add_argument("-j", "--mask-denoise1", metavar="D1",
                        help="Mask denoise distance, shrinking (default: 1.0)")
    parser.add_argument("-J", "--mask-denoise2", metavar="D2",
                        help="Mask denoise distance, growing (default: 5.0)")
    parser.add_argument("-A", "--background-blur", metavar="BLUR",
                        help="Background blur size, odd (default: 9)")
    parser.add_argument("-a", "--background-alpha", metavar="ALPHA",
                        help="Normal intensity of the background (default: 0.9)")
    parser.add_argument("-B", "--output-background", action="store_true",
                        help="Output the background estimate instead of the normalized image")
    parser.add_argument("-G", "--adjust-brightness", action="store_true",
                        help="Stretch the output to the full intensity range")
    return parser


def isolate_bg_params(args: argparse.Namespace, config) -> Dict[str, Any]:
    """Merge the config sections used by the isolator with command-line options."""
    params = {
        "window_size": config.sauvola.window_size,
        "k": config.sauvola.k,
        "r_scale": config.sauvola.r_scale,
        "accumulator": config.sauvola.accumulator,
    }
    params.update(config.mask_denoise.model_dump())
    params.update(config.inpaint.model_dump())
    params.update(config.background.model_dump())

    if args.input_as_grayscale:
        params["input_as_grayscale"] = True
    if args.window_size is not None:
        params["window_size"] = _window_size("-w", args.window_size, params["accumulator"])
    if args.k_param is not None:
        params["k"] = parse_float("-k", args.k_param, allow_infinity=True)
        if params["k"] < 0:
            raise ArgparseError("-k", "k parameter is too small.")
    if args.r_scale is not None:
        params["r_scale"] = parse_float("-r", args.r_scale, allow_infinity=True)
        if params["r_scale"] <= 0:
            raise ArgparseError("-r", "R scale must be positive.")
    if args.inpaint_init is not None:
        try:
            params["init_mode"] = parse_init_mode(args.inpaint_init).value
        except InvalidParameterError:
            raise ArgparseError("-I", "unknown value.") from None
    if args.inpaint_iterations is not None:
        params["iterations"] = parse_int("-i", args.inpaint_iterations)
        if params["iterations"] < 0:
            raise ArgparseError("-i", "the number of iterations must not be negative.")
    for option, attr, key in (("-j", "mask_denoise1", "distance1"),
                              ("-J", "mask_denoise2", "distance2")):
        text = getattr(args, attr)
        if text is not None:
            params[key] = parse_float(option, text)
            if params[key] < 0:
                raise ArgparseError(option, "denoise distance must not be negative.")
    if args.background_blur is not None:
        blur = parse_int("-A", args.background_blur)
        if blur < 1 or blur % 2 != 1:
            raise ArgparseError("-A", "background blur size must be a positive odd integer.")
        params["blur"] = blur
    if args.background_alpha is not None:
        alpha = parse_float("-a", args.background_alpha)
        if not 0 <= alpha <= 1:
            raise ArgparseError("-a", "background alpha must be in between 0 and 1.")
        params["alpha"] = alpha
    if args.output_background:
        params["output"] = "background"
    if args.adjust_brightness:
        params["brightness"] = True

    return params


def isolate_bg_main(argv: Optional[List[str]] = None) -> int:
    """Entry point of ``dh-isolate-bg``."""
    return _main(build_isolate_bg_parser(), isolate_bg_params, isolate_background_file, argv)


if __name__ == "__main__":
    sys.exit(isolate_bg_main())
