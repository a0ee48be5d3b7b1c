"""
Tests for cpghmm.core.model_io module.
"""
import json
import os

import pytest
import numpy as np

from cpghmm.core.hmm import CpGHMM
from cpghmm.core.model_io import (
    MODEL_VERSION,
    format_model_report,
    load_model,
    load_model_with_metadata,
    read_model_report,
    save_model,
    write_model_report,
)


@pytest.fixture
def sample_model():
    """A perturbed 8-state model with non-trivial values."""
    rng = np.random.default_rng(42)
    model = CpGHMM()
    model.startprob_ = rng.dirichlet(np.ones(8))
    model.transmat_ = rng.dirichlet(np.ones(8), size=8)
    model.emissionprob_ = rng.dirichlet(np.ones(4), size=8)
    return model


class TestLoadSaveRoundTrip:
    def test_json_round_trip(self, sample_model, tmp_path):
        filepath = str(tmp_path / "model.json")
        save_model(sample_model, filepath)

        loaded = load_model(filepath)
        np.testing.assert_array_equal(loaded.startprob_, sample_model.startprob_)
        np.testing.assert_array_equal(loaded.transmat_, sample_model.transmat_)
        np.testing.assert_array_equal(loaded.emissionprob_, sample_model.emissionprob_)

    def test_metadata_preserved(self, sample_model, tmp_path):
        filepath = str(tmp_path / "model.json")
        save_model(sample_model, filepath, metadata={'convergence': 0.005, 'n_chunks': 3})

        _, metadata = load_model_with_metadata(filepath)
        assert metadata['convergence'] == 0.005
        assert metadata['n_chunks'] == 3

    def test_file_contents(self, cpg_model, tmp_path):
        filepath = str(tmp_path / "model.json")
        save_model(cpg_model, filepath)
        with open(filepath) as f:
            data = json.load(f)
        assert data['model_type'] == 'CpGHMM'
        assert data['version'] == MODEL_VERSION
        assert data['hidden_states'] == ['A+', 'C+', 'G+', 'T+', 'A-', 'C-', 'G-', 'T-']
        assert data['symbols'] == ['a', 'c', 'g', 't']
        assert 'metadata' not in data

    def test_non_json_extension_redirected(self, sample_model, tmp_path):
        filepath = str(tmp_path / "model.pickle")
        with pytest.warns(UserWarning, match="Only JSON"):
            written = save_model(sample_model, filepath)
        assert written.endswith('model.json')
        assert os.path.exists(written)
        assert not os.path.exists(filepath)


class TestLoadErrors:
    def test_wrong_model_type(self, tmp_path):
        filepath = tmp_path / "other.json"
        filepath.write_text(json.dumps({'model_type': 'OtherHMM'}))
        with pytest.raises(ValueError, match="not a CpGHMM model"):
            load_model(str(filepath))

    def test_malformed_parameters(self, sample_model, tmp_path):
        filepath = str(tmp_path / "model.json")
        sample_model.transmat_ = sample_model.transmat_ * 2
        save_model(sample_model, filepath)
        with pytest.raises(ValueError, match="transmat_"):
            load_model(filepath)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_model(str(tmp_path / "missing.json"))


class TestModelReport:
    def test_three_lines_per_state(self, cpg_model):
        lines = format_model_report(cpg_model).splitlines()
        assert len(lines) == 24
        assert lines[0] == '0.05'
        assert lines[1] == '0.17 0.274 0.426 0.12 0.0025 0.0025 0.0025 0.0025'
        assert lines[2] == '1.0 0.0 0.0 0.0'
        assert lines[12] == '0.2'
        assert lines[14] == '1.0 0.0 0.0 0.0'

    def test_field_counts(self, sample_model):
        lines = format_model_report(sample_model).splitlines()
        for i in range(8):
            assert len(lines[3 * i].split()) == 1
            assert len(lines[3 * i + 1].split()) == 8
            assert len(lines[3 * i + 2].split()) == 4

    def test_report_reader(self, sample_model, tmp_path):
        filepath = str(tmp_path / "report.txt")
        write_model_report(sample_model, filepath)
        restored = read_model_report(filepath)
        np.testing.assert_array_equal(restored.startprob_, sample_model.startprob_)
        np.testing.assert_array_equal(restored.transmat_, sample_model.transmat_)
        np.testing.assert_array_equal(restored.emissionprob_, sample_model.emissionprob_)

    def test_report_reader_rejects_truncated(self, cpg_model, tmp_path):
        filepath = tmp_path / "report.txt"
        lines = format_model_report(cpg_model).splitlines()
        filepath.write_text('\n'.join(lines[:4]) + '\n')
        with pytest.raises(ValueError, match="3 lines per state"):
            read_model_report(str(filepath))

    def test_unrenderable_model_writes_nothing(self, tmp_path):
        filepath = tmp_path / "report.txt"
        with pytest.raises(TypeError):
            write_model_report(CpGHMM(), str(filepath))
        assert not filepath.exists()
