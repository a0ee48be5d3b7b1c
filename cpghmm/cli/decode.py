#!/usr/bin/env python3
"""
CpGHMM decode CLI entry point.
Applies a trained model to a test sequence and writes CpG island records.
"""

import argparse
import os
from typing import List

from cpghmm.config import PipelineConfig
from cpghmm.core.encoding import describe_input, read_symbol_blocks
from cpghmm.core.errors import CpGHMMError, DecodeFailure
from cpghmm.core.hmm import CpGHMM
from cpghmm.core.model_io import load_model
from cpghmm.inference import IslandRecord, IslandStats, run_decoding
from cpghmm.cli.common import (
    add_stats_args, add_threshold_args, add_verbose_args, add_version_args,
    add_window_args, fail,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Find CpG islands in a DNA sequence with a trained CpGHMM model',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Output:
  One line per island: <start> <end> <length> <cgContent> <oeRatio>
  (1-based inclusive coordinates)

Examples:
  cpghmm-decode -i chr22.fa -m chr21.json -o chr22.islands.txt
  cpghmm-decode -i test.txt -m model.json -o islands.txt --stats
'''
    )
    add_version_args(parser)
    parser.add_argument('-i', '--input', required=True,
                        help='Test sequence (raw text or FASTA)')
    parser.add_argument('-m', '--model', required=True,
                        help='Trained model (.json from cpghmm-train --save-model)')
    parser.add_argument('-o', '--output', required=True,
                        help='Island record output path')
    add_window_args(parser, chunk_size=False)
    add_threshold_args(parser)
    add_stats_args(parser)
    add_verbose_args(parser)
    return parser.parse_args(argv)


def write_stats(stats: IslandStats, islands_path: str):
    prefix = os.path.splitext(islands_path)[0]
    summary_path = f"{prefix}_stats.txt"
    stats.write_summary(summary_path)
    pdf_path = stats.plot_distributions(prefix)
    print(f"  Statistics: {summary_path}")
    print(f"  QC plots: {pdf_path}")


def decode_file(model: CpGHMM, input_path: str, output_path: str,
                config: PipelineConfig, with_stats: bool = False,
                verbose: bool = False) -> List[IslandRecord]:
    """Decode a test file. Raises DecodeFailure; records of earlier windows stay written."""
    print(f"\nDecoding: {describe_input(input_path)} "
          f"(windows of {config.window_size:,})")

    stats = IslandStats() if with_stats else None
    try:
        records = run_decoding(model, read_symbol_blocks(input_path), output_path,
                               window_size=config.window_size,
                               thresholds=config.thresholds,
                               stats=stats, verbose=verbose)
    except (OSError, UnicodeDecodeError) as e:
        raise DecodeFailure(f"Could not read test input {input_path}: {e}") from e

    print(f"  Islands: {len(records):,} -> {output_path}")
    if stats is not None:
        write_stats(stats, output_path)
    return records


def main(argv=None):
    args = parse_args(argv)

    try:
        config = PipelineConfig.from_args(args)
    except ValueError as e:
        fail(str(e), code=2)

    print("CpGHMM Island Finder")
    print(f"  Model: {args.model}")
    print(f"  Input: {args.input}")

    try:
        model = load_model(args.model)
    except (OSError, ValueError, KeyError) as e:
        fail(f"Could not load model {args.model}: {e}")

    try:
        decode_file(model, args.input, args.output, config,
                    with_stats=args.stats, verbose=args.verbose)
    except CpGHMMError as e:
        fail(str(e))

    print("\nDone!")


if __name__ == '__main__':
    main()
