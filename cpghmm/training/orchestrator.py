"""
Training orchestration.

Bootstraps the 8-state model, hands it with the encoded corpus to a
Trainer, and writes the refined model as a text report. Any trainer
problem surfaces as TrainingFailure, in which case no report is written.
"""

import warnings
from typing import Optional, Protocol, Tuple

import numpy as np

from cpghmm.core.bootstrap import ModelPriors, build_initial_model
from cpghmm.core.errors import TrainingFailure
from cpghmm.core.hmm import CpGHMM
from cpghmm.core.model_io import save_model, write_model_report
from cpghmm.training.corpus import TrainingCorpus


class Trainer(Protocol):
    """Refines an initial model against a corpus, or raises TrainingFailure."""

    def train(self, model: CpGHMM, corpus: TrainingCorpus,
              convergence: float, max_iterations: int) -> CpGHMM:
        ...


class BaumWelchTrainer:
    """
    Single-process Baum-Welch over every corpus chunk.

    Each chunk is an independent observation sequence; expected counts
    are pooled across chunks before each M-step.
    """

    def __init__(self, require_convergence: bool = False, verbose: bool = False):
        self.require_convergence = require_convergence
        self.verbose = verbose

    def train(self, model: CpGHMM, corpus: TrainingCorpus,
              convergence: float, max_iterations: int) -> CpGHMM:
        if len(corpus) == 0:
            raise TrainingFailure(
                f"Training corpus is empty: {corpus.total_symbols:,} symbols read, "
                f"need at least {corpus.chunk_size:,} for one chunk"
            )
        if max_iterations < 1:
            raise TrainingFailure(f"max_iterations must be >= 1, got {max_iterations}")

        refined = model.copy()
        refined.n_iter = max_iterations
        refined.tol = convergence

        X, lengths = corpus.concatenated()
        refined.fit(X, lengths=lengths, verbose=self.verbose, desc="Baum-Welch")

        history = refined.monitor_.history
        if not history or not np.isfinite(history[-1]):
            raise TrainingFailure(
                "Baum-Welch diverged: log-likelihood is not finite "
                "(the corpus contains observations the model cannot emit)"
            )
        if self.require_convergence and not refined.monitor_.converged:
            raise TrainingFailure(
                f"Baum-Welch did not converge to {convergence} "
                f"within {max_iterations} iterations"
            )
        return refined


def train_model(corpus: TrainingCorpus, convergence: float, max_iterations: int,
                trainer: Optional[Trainer] = None,
                priors: Optional[ModelPriors] = None) -> CpGHMM:
    """
    Train a CpG island model.

    Args:
        corpus: Encoded training chunks
        convergence: Parameter-change threshold for convergence
        max_iterations: Maximum Baum-Welch iterations
        trainer: Training strategy (default: BaumWelchTrainer)
        priors: Initial tables (default: the 8-state CpG priors)

    Returns:
        Refined CpGHMM

    Raises:
        TrainingFailure: on any trainer failure.
    """
    if trainer is None:
        trainer = BaumWelchTrainer()

    try:
        initial = build_initial_model(priors)
    except ValueError as e:
        raise TrainingFailure(f"Invalid model priors: {e}") from e

    try:
        refined = trainer.train(initial, corpus, convergence, max_iterations)
    except TrainingFailure:
        raise
    except Exception as e:
        raise TrainingFailure(f"Trainer failed: {e}") from e

    if refined is None:
        raise TrainingFailure("Trainer returned no model")
    try:
        refined.validate()
    except ValueError as e:
        raise TrainingFailure(f"Trained model is malformed: {e}") from e

    return refined


def run_training(corpus: TrainingCorpus, report_path: str,
                 convergence: float, max_iterations: int,
                 trainer: Optional[Trainer] = None,
                 priors: Optional[ModelPriors] = None,
                 model_path: Optional[str] = None) -> Tuple[CpGHMM, Optional[str]]:
    """
    Train, then write the model report (and optionally the JSON model).

    Nothing is written if training fails.

    Returns:
        (model, saved_path) where saved_path is the JSON file actually
        written (save_model may change the extension), or None when no
        model_path was given.
    """
    if corpus.discarded_symbols:
        warnings.warn(
            f"Training input has {corpus.discarded_symbols:,} trailing symbols "
            f"that do not fill a chunk of {corpus.chunk_size:,}; they are not used"
        )

    model = train_model(corpus, convergence, max_iterations,
                        trainer=trainer, priors=priors)

    write_model_report(model, report_path)
    saved_path = None
    if model_path:
        monitor = model.monitor_
        saved_path = save_model(model, model_path, metadata={
            'convergence': convergence,
            'max_iterations': max_iterations,
            'n_iter_run': monitor.n_iter if monitor else None,
            'converged': monitor.converged if monitor else None,
            'n_chunks': len(corpus),
            'chunk_size': corpus.chunk_size,
            'total_symbols': corpus.total_symbols,
        })
    return model, saved_path
