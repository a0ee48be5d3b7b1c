"""
Tests for cpghmm.core.bootstrap module.
"""
import pytest
import numpy as np

from cpghmm.core.bootstrap import (
    EMISSION_PROBS,
    INITIAL_PROBS,
    TRANSITION_PROBS,
    ModelPriors,
    build_initial_model,
    default_priors,
    is_default_layout,
)
from cpghmm.core.hmm import CpGHMM


class TestPriorTables:
    def test_initial(self):
        assert INITIAL_PROBS == [0.05] * 4 + [0.2] * 4

    def test_transition_rows(self):
        assert TRANSITION_PROBS[0] == [0.170, 0.274, 0.426, 0.120, 0.0025, 0.0025, 0.0025, 0.0025]
        assert TRANSITION_PROBS[5] == [0.0025, 0.0025, 0.0025, 0.0025, 0.393, 0.137, 0.088, 0.372]

    def test_cross_group_transitions(self):
        trans = np.array(TRANSITION_PROBS)
        np.testing.assert_array_equal(trans[:4, 4:], 0.0025)
        np.testing.assert_array_equal(trans[4:, :4], 0.0025)

    def test_rows_sum_to_one(self):
        np.testing.assert_allclose(np.array(TRANSITION_PROBS).sum(axis=1), 1.0, atol=1e-12)
        np.testing.assert_allclose(np.sum(INITIAL_PROBS), 1.0, atol=1e-12)

    def test_each_state_emits_its_nucleotide(self):
        emit = np.array(EMISSION_PROBS)
        for state in range(8):
            expected = np.zeros(4)
            expected[state % 4] = 1.0
            np.testing.assert_array_equal(emit[state], expected)


class TestBuildInitialModel:
    def test_default_model(self):
        model = build_initial_model()
        assert model.n_states == 8
        assert model.n_symbols == 4
        np.testing.assert_array_equal(model.startprob_, INITIAL_PROBS)
        np.testing.assert_array_equal(model.transmat_, TRANSITION_PROBS)
        np.testing.assert_array_equal(model.emissionprob_, EMISSION_PROBS)
        assert is_default_layout(model)

    def test_models_do_not_share_tables(self):
        first = build_initial_model()
        first.transmat_[0, 0] = 0.0
        second = build_initial_model()
        assert second.transmat_[0, 0] == pytest.approx(0.170)

    def test_priors_are_copied(self):
        priors = default_priors()
        model = build_initial_model(priors)
        model.startprob_[0] = 1.0
        assert priors.initial[0] == pytest.approx(0.05)

    def test_custom_priors(self):
        priors = ModelPriors(
            initial=[0.5, 0.5],
            transition=[[0.9, 0.1], [0.2, 0.8]],
            emission=[[0.25, 0.25, 0.25, 0.25], [0.1, 0.4, 0.4, 0.1]],
        )
        model = build_initial_model(priors)
        assert model.n_states == 2
        assert not is_default_layout(model)

    def test_invalid_priors(self):
        priors = ModelPriors(initial=[0.5, 0.6],
                             transition=[[0.9, 0.1], [0.2, 0.8]],
                             emission=[[1.0, 0, 0, 0], [0, 1.0, 0, 0]])
        with pytest.raises(ValueError, match="startprob_"):
            build_initial_model(priors)

    def test_mismatched_shapes(self):
        priors = ModelPriors(initial=[0.5, 0.5],
                             transition=[[1.0]],
                             emission=[[1.0, 0, 0, 0], [0, 1.0, 0, 0]])
        with pytest.raises(ValueError, match="transmat_"):
            build_initial_model(priors)


class TestIsDefaultLayout:
    def test_other_layout(self):
        assert not is_default_layout(CpGHMM(n_states=2))
