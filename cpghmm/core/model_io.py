"""
CpGHMM model I/O module

Two on-disk forms:
- .json: full model plus training metadata (load/save round-trip)
- model report: plain text, one stanza per hidden state
  (start probability, transition row, emission row)
"""

import json
import os
import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np

from cpghmm.core.bootstrap import is_default_layout
from cpghmm.core.encoding import HIDDEN_STATE_NAMES, SYMBOL_NAMES
from cpghmm.core.hmm import CpGHMM


MODEL_VERSION = '1.0'


# =============================================================================
# JSON
# =============================================================================

def save_model(model: CpGHMM, filepath: str,
               metadata: Optional[Dict[str, Any]] = None) -> str:
    """
    Save model to file in JSON format.

    If the filepath does not end in .json, the extension is replaced with
    .json and a warning is issued.

    Args:
        model: Trained CpGHMM
        filepath: Output path (.json)
        metadata: Extra training metadata stored alongside the parameters

    Returns:
        The path actually written
    """
    if not filepath.endswith('.json'):
        old_path = filepath
        base, _ = os.path.splitext(filepath)
        filepath = base + '.json'
        warnings.warn(
            f"Only JSON format is supported for saving. "
            f"Saving to '{filepath}' instead of '{old_path}'."
        )

    data = {
        'model_type': 'CpGHMM',
        'version': MODEL_VERSION,
        'n_states': model.n_states,
        'n_symbols': model.n_symbols,
        'startprob': model.startprob_.tolist(),
        'transmat': model.transmat_.tolist(),
        'emissionprob': model.emissionprob_.tolist(),
    }
    if is_default_layout(model):
        data['hidden_states'] = list(HIDDEN_STATE_NAMES)
        data['symbols'] = list(SYMBOL_NAMES)
    if metadata:
        data['metadata'] = metadata

    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)
    return filepath


def load_model_with_metadata(filepath: str) -> Tuple[CpGHMM, Dict[str, Any]]:
    """
    Load a JSON model and its training metadata.

    Raises:
        ValueError: if the file is not a CpGHMM model or fails validation.
    """
    with open(filepath, 'r') as f:
        data = json.load(f)

    if data.get('model_type') != 'CpGHMM':
        raise ValueError(f"{filepath} is not a CpGHMM model file")

    model = CpGHMM(n_states=data['n_states'], n_symbols=data.get('n_symbols', 4))
    model.startprob_ = np.array(data['startprob'], dtype=float)
    model.transmat_ = np.array(data['transmat'], dtype=float)
    model.emissionprob_ = np.array(data['emissionprob'], dtype=float)
    model.validate()

    return model, data.get('metadata', {})


def load_model(filepath: str) -> CpGHMM:
    """Load a JSON model."""
    model, _ = load_model_with_metadata(filepath)
    return model


# =============================================================================
# Plain-text model report
# =============================================================================

def format_model_report(model: CpGHMM) -> str:
    """
    Render a model as text.

    For each hidden state in increasing order:
        <start probability>
        <transition row, space-separated>
        <emission row, space-separated>
    """
    lines = []
    for i in range(model.n_states):
        lines.append(repr(float(model.startprob_[i])))
        lines.append(' '.join(repr(float(p)) for p in model.transmat_[i]))
        lines.append(' '.join(repr(float(p)) for p in model.emissionprob_[i]))
    return '\n'.join(lines) + '\n'


def write_model_report(model: CpGHMM, filepath: str):
    """Write the text report; the file is only created once rendering succeeds."""
    report = format_model_report(model)
    with open(filepath, 'w') as f:
        f.write(report)


def read_model_report(filepath: str) -> CpGHMM:
    """Parse a text report written by write_model_report back into a model."""
    with open(filepath, 'r') as f:
        lines = [line.split() for line in f if line.strip()]

    if len(lines) == 0 or len(lines) % 3 != 0:
        raise ValueError(f"{filepath}: expected 3 lines per state, got {len(lines)} lines")

    n_states = len(lines) // 3
    startprob = np.array([float(lines[3 * i][0]) for i in range(n_states)])
    transmat = np.array([[float(v) for v in lines[3 * i + 1]] for i in range(n_states)])
    emissionprob = np.array([[float(v) for v in lines[3 * i + 2]] for i in range(n_states)])

    model = CpGHMM(n_states=n_states, n_symbols=emissionprob.shape[1])
    model.startprob_ = startprob
    model.transmat_ = transmat
    model.emissionprob_ = emissionprob
    model.validate()
    return model
