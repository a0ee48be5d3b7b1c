"""Shared argparse argument factories for CpGHMM CLI tools.

Each function adds a group of related arguments to an ArgumentParser.
Default values can be overridden per-script where needed.
"""

import argparse
import sys

from cpghmm.config import DEFAULT_CONVERGENCE, DEFAULT_MAX_ITERATIONS
from cpghmm.core.encoding import DECODE_WINDOW_SIZE, TRAINING_CHUNK_SIZE


def positive_int(value: str) -> int:
    """argparse type: integer > 0."""
    try:
        number = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def positive_float(value: str) -> float:
    """argparse type: float > 0."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def add_window_args(parser: argparse.ArgumentParser,
                    chunk_size: bool = True,
                    window_size: bool = True) -> None:
    """Add --chunk-size and/or --window-size (accept hex, e.g. 0x10000)."""
    if chunk_size:
        parser.add_argument(
            '--chunk-size', type=positive_int, default=TRAINING_CHUNK_SIZE,
            help=f"Symbols per training chunk (default: {TRAINING_CHUNK_SIZE:,})"
        )
    if window_size:
        parser.add_argument(
            '--window-size', type=positive_int, default=DECODE_WINDOW_SIZE,
            help=f"Symbols per decode window (default: {DECODE_WINDOW_SIZE:,})"
        )


def add_training_args(parser: argparse.ArgumentParser,
                      positional: bool = False) -> None:
    """Add convergence threshold and iteration count (positional for cpghmm-find)."""
    if positional:
        parser.add_argument('convergence', type=positive_float,
                            help="Baum-Welch convergence threshold")
        parser.add_argument('iterations', type=positive_int,
                            help="Maximum Baum-Welch iterations")
    else:
        parser.add_argument(
            '--convergence', type=positive_float, default=DEFAULT_CONVERGENCE,
            help=f"Baum-Welch convergence threshold (default: {DEFAULT_CONVERGENCE})"
        )
        parser.add_argument(
            '--iterations', '-n', type=positive_int, default=DEFAULT_MAX_ITERATIONS,
            help=f"Maximum Baum-Welch iterations (default: {DEFAULT_MAX_ITERATIONS})"
        )
    parser.add_argument(
        '--require-convergence', action='store_true',
        help="Fail if training has not converged after the last iteration"
    )
    parser.add_argument(
        '--corpus', default=None, metavar='NPZ',
        help="Also save the encoded training corpus to this .npz file"
    )


def add_threshold_args(parser: argparse.ArgumentParser,
                       min_cg_content: float = 0.5,
                       min_oe_ratio: float = 0.6,
                       min_length: int = 0) -> None:
    """Add island score thresholds."""
    parser.add_argument(
        '--min-cg-content', type=float, default=min_cg_content,
        help=f"Emit islands with CG content above this (default: {min_cg_content})"
    )
    parser.add_argument(
        '--min-oe-ratio', type=float, default=min_oe_ratio,
        help=f"Emit islands with observed/expected CpG above this (default: {min_oe_ratio})"
    )
    parser.add_argument(
        '--min-length', type=int, default=min_length,
        help=f"Minimum island length in bp (default: {min_length}, no filter)"
    )


def add_stats_args(parser: argparse.ArgumentParser) -> None:
    """Add --stats flag."""
    parser.add_argument(
        '--stats', action='store_true',
        help="Write island summary statistics and plots next to the island file"
    )


def add_verbose_args(parser: argparse.ArgumentParser) -> None:
    """Add --verbose flag."""
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help="Verbose output (progress bars)"
    )


def add_version_args(parser: argparse.ArgumentParser) -> None:
    """Add --version flag."""
    from cpghmm import __version__
    parser.add_argument(
        '--version', action='version',
        version=f'%(prog)s {__version__}'
    )


def fail(message: str, code: int = 1):
    """Print an error to stderr and exit."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(code)
