"""
Shared pytest fixtures for CpGHMM tests.
"""
import pytest
import numpy as np


@pytest.fixture
def simple_emission_probs():
    """
    Simple 2-state, 4-symbol emission probability matrix.
    State 0: GC-rich
    State 1: AT-rich
    """
    return np.array([
        [0.1, 0.4, 0.4, 0.1],
        [0.4, 0.1, 0.1, 0.4],
    ])


@pytest.fixture
def simple_observations():
    """Observation sequence with an AT-rich -> GC-rich -> AT-rich pattern."""
    return np.array([0, 3, 0, 3, 0, 1, 2, 1, 2, 2, 1, 2, 1, 3, 0, 3, 0], dtype=np.int32)


@pytest.fixture
def two_state_model(simple_emission_probs):
    """A 2-state CpGHMM with non-degenerate emissions."""
    from cpghmm.core.hmm import CpGHMM

    model = CpGHMM(n_states=2)
    model.emissionprob_ = simple_emission_probs
    model.startprob_ = np.array([0.5, 0.5])
    model.transmat_ = np.array([[0.9, 0.1], [0.1, 0.9]])
    return model


@pytest.fixture
def cpg_model():
    """The untrained 8-state model built from the default priors."""
    from cpghmm.core.bootstrap import build_initial_model
    return build_initial_model()


@pytest.fixture
def island_sequence():
    """AT-rich flank, a CpG-rich core, AT-rich flank (3,000 bp)."""
    return 'AT' * 500 + 'CG' * 500 + 'AT' * 500


@pytest.fixture
def random_sequence():
    """Reproducible random DNA with a CpG-rich stretch in the middle."""
    rng = np.random.default_rng(42)
    flank = ''.join(rng.choice(list('ACGT'), size=2000, p=[0.3, 0.2, 0.2, 0.3]))
    core = ''.join(rng.choice(['CG', 'GC', 'CA', 'TG'], size=400, p=[0.5, 0.3, 0.1, 0.1]))
    return flank + core + flank

