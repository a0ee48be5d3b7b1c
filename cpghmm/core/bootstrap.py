"""
Initial 8-state model for Baum-Welch refinement.

The priors are hand-tuned: island states (A+, C+, G+, T+) mostly
transition among themselves with C+ -> G+ favoured, background states
(A-, C-, G-, T-) likewise among themselves with C- -> G- suppressed,
and every cross-group transition has probability 0.0025. Each state
emits its own nucleotide with probability 1.
"""

from dataclasses import dataclass, field

import numpy as np

from cpghmm.core.encoding import N_HIDDEN_STATES, N_SYMBOLS
from cpghmm.core.hmm import CpGHMM


INITIAL_PROBS = [0.05, 0.05, 0.05, 0.05, 0.2, 0.2, 0.2, 0.2]

TRANSITION_PROBS = [
    [0.170, 0.274, 0.426, 0.120, 0.0025, 0.0025, 0.0025, 0.0025],
    [0.170, 0.358, 0.274, 0.188, 0.0025, 0.0025, 0.0025, 0.0025],
    [0.161, 0.329, 0.375, 0.125, 0.0025, 0.0025, 0.0025, 0.0025],
    [0.079, 0.345, 0.384, 0.182, 0.0025, 0.0025, 0.0025, 0.0025],
    [0.0025, 0.0025, 0.0025, 0.0025, 0.300, 0.205, 0.275, 0.210],
    [0.0025, 0.0025, 0.0025, 0.0025, 0.393, 0.137, 0.088, 0.372],
    [0.0025, 0.0025, 0.0025, 0.0025, 0.248, 0.246, 0.288, 0.208],
    [0.0025, 0.0025, 0.0025, 0.0025, 0.177, 0.239, 0.282, 0.292],
]

EMISSION_PROBS = [
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0, 0.0],
    [0.0, 0.0, 0.0, 1.0],
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0, 0.0],
    [0.0, 0.0, 0.0, 1.0],
]


@dataclass
class ModelPriors:
    """Initial, transition and emission tables used to seed training."""
    initial: np.ndarray = field(default_factory=lambda: np.array(INITIAL_PROBS))
    transition: np.ndarray = field(default_factory=lambda: np.array(TRANSITION_PROBS))
    emission: np.ndarray = field(default_factory=lambda: np.array(EMISSION_PROBS))

    def __post_init__(self):
        self.initial = np.asarray(self.initial, dtype=float)
        self.transition = np.asarray(self.transition, dtype=float)
        self.emission = np.asarray(self.emission, dtype=float)

    @property
    def n_states(self) -> int:
        return len(self.initial)

    @property
    def n_symbols(self) -> int:
        return self.emission.shape[1]


def default_priors() -> ModelPriors:
    return ModelPriors()


def build_initial_model(priors: ModelPriors = None) -> CpGHMM:
    """
    Build the starting model for training.

    Args:
        priors: Tables to use; defaults to the 8-state CpG priors.

    Returns:
        CpGHMM holding copies of the prior tables.

    Raises:
        ValueError: if the tables are inconsistent or not stochastic.
    """
    if priors is None:
        priors = default_priors()

    model = CpGHMM(n_states=priors.n_states, n_symbols=priors.n_symbols)
    model.startprob_ = priors.initial.copy()
    model.transmat_ = priors.transition.copy()
    model.emissionprob_ = priors.emission.copy()
    model.validate()
    return model


def is_default_layout(model: CpGHMM) -> bool:
    """True if the model has the 8-state / 4-symbol CpG layout."""
    return model.n_states == N_HIDDEN_STATES and model.n_symbols == N_SYMBOLS
