#!/usr/bin/env python3
"""
CpGHMM find CLI entry point.
Full pipeline: train on one sequence, then find CpG islands in another.

Usage:
    cpghmm-find TRAIN TEST ISLANDS REPORT CONVERGENCE ITERATIONS
"""

import argparse

from cpghmm.config import PipelineConfig
from cpghmm.core.errors import DecodeFailure, TrainingFailure
from cpghmm.cli.common import (
    add_stats_args, add_threshold_args, add_training_args, add_verbose_args,
    add_version_args, add_window_args, fail,
)
from cpghmm.cli.decode import decode_file
from cpghmm.cli.train import train_from_file


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Train the CpG island HMM and find islands in a test sequence',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Output:
  ISLANDS  one line per island: <start> <end> <length> <cgContent> <oeRatio>
  REPORT   three lines per hidden state: start probability,
           transition row, emission row

Examples:
  cpghmm-find chr21.txt chr22.txt islands.txt model.txt 0.005 10
  cpghmm-find train.fa test.fa islands.txt model.txt 0.001 20 --save-model model.json
'''
    )
    add_version_args(parser)
    parser.add_argument('train', help='Training sequence (raw text or FASTA)')
    parser.add_argument('test', help='Test sequence (raw text or FASTA)')
    parser.add_argument('islands', help='Island record output path')
    parser.add_argument('report', help='Model report output path')
    add_training_args(parser, positional=True)
    parser.add_argument('--save-model', default=None, metavar='JSON',
                        help='Also save the trained model as JSON')
    add_window_args(parser)
    add_threshold_args(parser)
    add_stats_args(parser)
    add_verbose_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    try:
        config = PipelineConfig.from_args(args)
    except ValueError as e:
        fail(str(e), code=2)

    print("CpGHMM Island Finder")
    print(f"  Training input: {args.train}")
    print(f"  Test input: {args.test}")
    print(f"  Convergence: {config.convergence}")
    print(f"  Iterations: {config.max_iterations}")

    try:
        model = train_from_file(args.train, args.report, config,
                                model_path=args.save_model, corpus_path=args.corpus,
                                verbose=args.verbose)
    except TrainingFailure as e:
        fail(f"Training failed: {e}")

    try:
        decode_file(model, args.test, args.islands, config,
                    with_stats=args.stats, verbose=args.verbose)
    except DecodeFailure as e:
        fail(f"Decoding failed: {e}")

    print("\nDone!")


if __name__ == '__main__':
    main()
