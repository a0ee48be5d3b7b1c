#!/usr/bin/env python3
"""
CpGHMM train CLI entry point.
Trains the 8-state CpG island HMM with Baum-Welch and writes the model
report (and optionally the JSON model for cpghmm-decode).
"""

import argparse

from cpghmm.config import PipelineConfig
from cpghmm.core.encoding import describe_input
from cpghmm.core.errors import CpGHMMError
from cpghmm.core.hmm import CpGHMM
from cpghmm.training import BaumWelchTrainer, corpus_from_file, run_training, save_corpus
from cpghmm.cli.common import (
    add_training_args, add_verbose_args, add_version_args, add_window_args, fail,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Train the CpG island HMM from a DNA sequence',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  cpghmm-train -i chr21.fa -o chr21.model.txt --save-model chr21.json
  cpghmm-train -i train.txt -o report.txt -n 20 --convergence 0.001
'''
    )
    add_version_args(parser)
    parser.add_argument('-i', '--input', required=True,
                        help='Training sequence (raw text or FASTA)')
    parser.add_argument('-o', '--output', required=True,
                        help='Model report output path')
    parser.add_argument('--save-model', default=None, metavar='JSON',
                        help='Also save the trained model as JSON')
    add_training_args(parser)
    add_window_args(parser, window_size=False)
    add_verbose_args(parser)
    return parser.parse_args(argv)


def train_from_file(input_path: str, report_path: str, config: PipelineConfig,
                    model_path: str = None, corpus_path: str = None,
                    verbose: bool = False) -> CpGHMM:
    """Encode, train and report. Raises TrainingFailure on any training problem."""
    print(f"\nEncoding training input: {describe_input(input_path)}")
    corpus = corpus_from_file(input_path, config.chunk_size)
    print(f"  Size of input: {corpus.total_symbols:,} symbols")
    print(f"  Chunks: {len(corpus):,} x {config.chunk_size:,}")

    if corpus_path:
        written = save_corpus(corpus, corpus_path)
        print(f"  Corpus saved to: {written}")

    print(f"\nTraining (convergence={config.convergence}, "
          f"max iterations={config.max_iterations})...")
    trainer = BaumWelchTrainer(require_convergence=config.require_convergence,
                               verbose=verbose)
    model, saved_path = run_training(corpus, report_path, config.convergence,
                                     config.max_iterations, trainer=trainer,
                                     model_path=model_path)

    monitor = model.monitor_
    if monitor is not None:
        status = 'converged' if monitor.converged else 'stopped at iteration limit'
        print(f"  {status} after {monitor.n_iter} iteration(s)")
        if monitor.history:
            print(f"  Final log-likelihood: {monitor.history[-1]:.6e}")
    print(f"  Model report: {report_path}")
    if saved_path:
        print(f"  Model: {saved_path}")
    return model


def main(argv=None):
    args = parse_args(argv)

    try:
        config = PipelineConfig.from_args(args)
    except ValueError as e:
        fail(str(e), code=2)

    print("CpGHMM Model Training")
    print(f"  Input: {args.input}")
    print(f"  Iterations: {config.max_iterations}")

    try:
        train_from_file(args.input, args.output, config,
                        model_path=args.save_model, corpus_path=args.corpus,
                        verbose=args.verbose)
    except CpGHMMError as e:
        fail(str(e))

    print("\nDone!")


if __name__ == '__main__':
    main()
