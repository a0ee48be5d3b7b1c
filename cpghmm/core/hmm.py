"""
CpGHMM HMM module

Provides:
1. Discrete-emission HMM with any number of hidden states (8 for CpG islands)
2. Viterbi decoding and forward-backward in log space
3. Multi-sequence Baum-Welch training of start, transition and emission
   probabilities
4. Numba JIT compilation of the recursions

Model I/O (JSON, text report) lives in cpghmm.core.model_io.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numba import jit
from scipy.special import logsumexp
from tqdm import tqdm


# =============================================================================
# Numba JIT-compiled HMM algorithms (N states, M symbols)
# =============================================================================

@jit(nopython=True, cache=False)
def _logsumexp_numba(values):
    """log(sum(exp(values))) for a 1-D array; -inf if every entry is -inf."""
    vmax = values[0]
    for i in range(1, len(values)):
        if values[i] > vmax:
            vmax = values[i]
    if vmax == -np.inf:
        return -np.inf
    total = 0.0
    for i in range(len(values)):
        total += np.exp(values[i] - vmax)
    return vmax + np.log(total)


@jit(nopython=True, cache=False)
def _viterbi_numba(obs, log_startprob, log_transmat, log_emissionprob):
    """
    Numba-compiled Viterbi algorithm.

    Ties go to the lowest state index.

    Returns:
        path: Most likely state sequence
        log_prob: Log probability of path
    """
    T = len(obs)
    N = log_startprob.shape[0]

    delta = np.empty((T, N))
    backpointer = np.zeros((T, N), dtype=np.int8)

    for j in range(N):
        delta[0, j] = log_startprob[j] + log_emissionprob[j, obs[0]]

    for t in range(1, T):
        o = obs[t]
        for j in range(N):
            best_i = 0
            best = delta[t-1, 0] + log_transmat[0, j]
            for i in range(1, N):
                score = delta[t-1, i] + log_transmat[i, j]
                if score > best:
                    best = score
                    best_i = i
            delta[t, j] = best + log_emissionprob[j, o]
            backpointer[t, j] = best_i

    # Backtrack
    path = np.zeros(T, dtype=np.int8)
    last = 0
    for j in range(1, N):
        if delta[T-1, j] > delta[T-1, last]:
            last = j
    path[T-1] = last
    log_prob = delta[T-1, last]

    for t in range(T - 1, 0, -1):
        path[t-1] = backpointer[t, path[t]]

    return path, log_prob


@jit(nopython=True, cache=False)
def _forward_numba(obs, log_startprob, log_transmat, log_emissionprob):
    """Numba-compiled forward algorithm."""
    T = len(obs)
    N = log_startprob.shape[0]
    alpha = np.empty((T, N))
    terms = np.empty(N)

    for j in range(N):
        alpha[0, j] = log_startprob[j] + log_emissionprob[j, obs[0]]

    for t in range(1, T):
        o = obs[t]
        for j in range(N):
            for i in range(N):
                terms[i] = alpha[t-1, i] + log_transmat[i, j]
            alpha[t, j] = _logsumexp_numba(terms) + log_emissionprob[j, o]

    log_prob = _logsumexp_numba(alpha[T-1])
    return alpha, log_prob


@jit(nopython=True, cache=False)
def _backward_numba(obs, log_transmat, log_emissionprob):
    """Numba-compiled backward algorithm."""
    T = len(obs)
    N = log_transmat.shape[0]
    beta = np.empty((T, N))
    terms = np.empty(N)

    for i in range(N):
        beta[T-1, i] = 0.0

    for t in range(T - 2, -1, -1):
        o = obs[t + 1]
        for i in range(N):
            for j in range(N):
                terms[j] = log_transmat[i, j] + log_emissionprob[j, o] + beta[t+1, j]
            beta[t, i] = _logsumexp_numba(terms)

    return beta


@jit(nopython=True, cache=False)
def _baum_welch_estep_numba(obs, log_startprob, log_transmat, log_emissionprob):
    """
    Numba-compiled full E-step: forward, backward, and accumulate counts.

    Returns:
        start_counts: (N,) start state counts
        trans_counts: (N, N) transition counts
        emit_counts: (N, M) emission counts
        log_prob: log probability of sequence
    """
    T = len(obs)
    N = log_startprob.shape[0]
    M = log_emissionprob.shape[1]

    alpha, log_prob = _forward_numba(obs, log_startprob, log_transmat, log_emissionprob)
    beta = _backward_numba(obs, log_transmat, log_emissionprob)

    start_counts = np.zeros(N)
    emit_counts = np.zeros((N, M))
    for t in range(T):
        o = obs[t]
        for i in range(N):
            gamma = np.exp(alpha[t, i] + beta[t, i] - log_prob)
            emit_counts[i, o] += gamma
            if t == 0:
                start_counts[i] = gamma

    trans_counts = np.zeros((N, N))
    for t in range(T - 1):
        o_next = obs[t + 1]
        for i in range(N):
            for j in range(N):
                trans_counts[i, j] += np.exp(alpha[t, i] + log_transmat[i, j]
                                             + log_emissionprob[j, o_next]
                                             + beta[t+1, j] - log_prob)

    return start_counts, trans_counts, emit_counts, log_prob


class CpGHMM:
    """
    Discrete HMM used for CpG island detection.

    States (default layout):
        0-3: island states A+, C+, G+, T+
        4-7: background states A-, C-, G-, T-

    Probabilities are kept in linear space on the public attributes
    (startprob_, transmat_, emissionprob_) and converted to log space
    for all recursions.
    """

    def __init__(self, n_states: int = 8, n_symbols: int = 4):
        self.n_states = n_states
        self.n_symbols = n_symbols
        self.startprob_: Optional[np.ndarray] = None
        self.transmat_: Optional[np.ndarray] = None
        self.emissionprob_: Optional[np.ndarray] = None

        # Log versions (computed when needed)
        self._log_startprob: Optional[np.ndarray] = None
        self._log_transmat: Optional[np.ndarray] = None
        self._log_emissionprob: Optional[np.ndarray] = None

        # Training metadata
        self.n_iter: int = 100
        self.tol: float = 0.005
        self.monitor_: Optional[TrainingMonitor] = None

    def _compute_log_probs(self):
        """Convert probabilities to log space."""
        with np.errstate(divide='ignore'):  # log(0) -> -inf
            self._log_startprob = np.ascontiguousarray(np.log(self.startprob_), dtype=np.float64)
            self._log_transmat = np.ascontiguousarray(np.log(self.transmat_), dtype=np.float64)
            self._log_emissionprob = np.ascontiguousarray(np.log(self.emissionprob_),
                                                          dtype=np.float64)

    def _as_obs(self, obs: np.ndarray) -> np.ndarray:
        """Contiguous int64 symbols for the compiled kernels, range-checked."""
        obs = np.ascontiguousarray(obs, dtype=np.int64)
        if len(obs) == 0:
            raise ValueError("observation sequence is empty")
        if obs.min() < 0 or obs.max() >= self.n_symbols:
            raise ValueError(f"observations must be in the range 0-{self.n_symbols - 1}")
        return obs

    def validate(self, atol: float = 1e-6):
        """
        Check shapes and stochastic invariants.

        Raises:
            ValueError: if a parameter is missing, has the wrong shape,
                contains negative/non-finite values, or a distribution
                does not sum to 1 within atol.
        """
        n, m = self.n_states, self.n_symbols
        expected = {
            'startprob_': (n,),
            'transmat_': (n, n),
            'emissionprob_': (n, m),
        }
        for name, shape in expected.items():
            value = getattr(self, name)
            if value is None:
                raise ValueError(f"{name} is not set")
            if value.shape != shape:
                raise ValueError(f"{name} has shape {value.shape}, expected {shape}")
            if not np.all(np.isfinite(value)) or np.any(value < 0):
                raise ValueError(f"{name} contains negative or non-finite values")

        if not np.isclose(self.startprob_.sum(), 1.0, atol=atol):
            raise ValueError(f"startprob_ sums to {self.startprob_.sum():.6f}, expected 1")
        for name in ('transmat_', 'emissionprob_'):
            sums = getattr(self, name).sum(axis=1)
            bad = np.where(~np.isclose(sums, 1.0, atol=atol))[0]
            if len(bad):
                raise ValueError(
                    f"{name} row {bad[0]} sums to {sums[bad[0]]:.6f}, expected 1"
                )

    def _forward(self, obs: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Forward algorithm in log space.

        Returns:
            alpha: Forward log probabilities (T x n_states)
            log_prob: Log probability of observation sequence
        """
        alpha, log_prob = _forward_numba(self._as_obs(obs), self._log_startprob,
                                         self._log_transmat, self._log_emissionprob)
        return alpha, float(log_prob)

    def _backward(self, obs: np.ndarray) -> np.ndarray:
        """
        Backward algorithm in log space.

        Returns:
            beta: Backward log probabilities (T x n_states)
        """
        return _backward_numba(self._as_obs(obs), self._log_transmat, self._log_emissionprob)

    def _viterbi(self, obs: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Viterbi algorithm for most likely state sequence.

        Returns:
            path: Most likely state sequence
            log_prob: Log probability of the path
        """
        path, log_prob = _viterbi_numba(self._as_obs(obs), self._log_startprob,
                                        self._log_transmat, self._log_emissionprob)
        return path, float(log_prob)

    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Predict most likely state sequence using Viterbi algorithm.

        Args:
            X: Observation sequence, shape (T, 1) or (T,)

        Returns:
            State sequence, shape (T,)
        """
        self._compute_log_probs()

        obs = np.asarray(X).flatten().astype(int)
        if len(obs) == 0:
            return np.array([], dtype=np.int8)
        path, _ = self._viterbi(obs)
        return path

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """
        Posterior probabilities P(state | observations) at each position.

        Returns:
            Posterior probabilities, shape (T, n_states); rows sum to 1.
        """
        self._compute_log_probs()

        obs = np.asarray(X).flatten().astype(int)
        alpha, _ = self._forward(obs)
        beta = self._backward(obs)

        log_gamma = alpha + beta
        log_gamma -= logsumexp(log_gamma, axis=1)[:, np.newaxis]
        return np.exp(log_gamma)

    def score(self, X: np.ndarray) -> float:
        """Log probability of an observation sequence."""
        self._compute_log_probs()
        obs = np.asarray(X).flatten().astype(int)
        _, log_prob = self._forward(obs)
        return log_prob

    def _expected_counts(self, seq: np.ndarray):
        """E-step for one sequence: expected start, transition and emission counts."""
        sc, tc, ec, lp = _baum_welch_estep_numba(self._as_obs(seq), self._log_startprob,
                                                 self._log_transmat, self._log_emissionprob)
        return sc, tc, ec, float(lp)

    def fit(self, X: np.ndarray, lengths: Optional[List[int]] = None,
            verbose: bool = False, desc: str = "EM") -> 'CpGHMM':
        """
        Train HMM using Baum-Welch.

        All three parameter sets are re-estimated. Training stops when the
        Euclidean distance between successive parameter sets falls below
        self.tol, or after self.n_iter iterations.

        Args:
            X: Observation sequence(s), shape (T, 1) or (T,)
            lengths: Length of each sequence if multiple are concatenated
            verbose: Show progress bar for EM iterations
            desc: Description for progress bar

        Returns:
            self
        """
        obs = np.asarray(X).flatten().astype(int)
        if lengths is None:
            lengths = [len(obs)]

        self.monitor_ = TrainingMonitor()

        iterator = tqdm(range(self.n_iter), desc=desc, leave=False, disable=not verbose)

        for iteration in iterator:
            self._compute_log_probs()

            # E-step: accumulate expected counts over all sequences
            start_counts = np.zeros(self.n_states)
            trans_counts = np.zeros((self.n_states, self.n_states))
            emit_counts = np.zeros((self.n_states, self.n_symbols))
            log_prob_total = 0.0

            idx = 0
            for length in lengths:
                seq = obs[idx:idx + length]
                idx += length
                if length == 0:
                    continue
                sc, tc, ec, lp = self._expected_counts(seq)
                start_counts += sc
                trans_counts += tc
                emit_counts += ec
                log_prob_total += lp

            self.monitor_.history.append(log_prob_total)
            if not np.isfinite(log_prob_total):
                # Caller decides how to report divergence
                break

            # M-step: rows with no expected mass keep their previous values
            new_start = _normalize(start_counts, self.startprob_)
            new_trans = _normalize_rows(trans_counts, self.transmat_)
            new_emit = _normalize_rows(emit_counts, self.emissionprob_)

            delta = parameter_distance(
                (self.startprob_, self.transmat_, self.emissionprob_),
                (new_start, new_trans, new_emit),
            )
            self.startprob_, self.transmat_, self.emissionprob_ = new_start, new_trans, new_emit

            self.monitor_.deltas.append(delta)
            iterator.set_postfix({'logprob': f'{log_prob_total:.4e}', 'delta': f'{delta:.2e}'})

            if delta < self.tol:
                self.monitor_.converged = True
                break

        self.monitor_.n_iter = len(self.monitor_.deltas)
        self._compute_log_probs()
        return self

    def island_states(self) -> np.ndarray:
        """Indices of the island (+) states: the first half of the state space."""
        return np.arange(self.n_states // 2)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize model to dictionary."""
        return {
            'n_states': self.n_states,
            'n_symbols': self.n_symbols,
            'startprob_': self.startprob_.tolist() if self.startprob_ is not None else None,
            'transmat_': self.transmat_.tolist() if self.transmat_ is not None else None,
            'emissionprob_': self.emissionprob_.tolist() if self.emissionprob_ is not None else None,
            'model_type': 'CpGHMM_native'
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'CpGHMM':
        """Deserialize model from dictionary."""
        model = cls(n_states=d.get('n_states', 8), n_symbols=d.get('n_symbols', 4))
        if d.get('startprob_') is not None:
            model.startprob_ = np.array(d['startprob_'], dtype=float)
        if d.get('transmat_') is not None:
            model.transmat_ = np.array(d['transmat_'], dtype=float)
        if d.get('emissionprob_') is not None:
            model.emissionprob_ = np.array(d['emissionprob_'], dtype=float)
        return model

    def copy(self) -> 'CpGHMM':
        model = CpGHMM.from_dict(self.to_dict())
        model.n_iter = self.n_iter
        model.tol = self.tol
        return model


class TrainingMonitor:
    """Tracks training progress."""
    def __init__(self):
        self.history = []
        self.deltas = []
        self.converged = False
        self.n_iter = 0


def parameter_distance(old, new) -> float:
    """Euclidean distance between two (start, transition, emission) parameter sets."""
    total = 0.0
    for a, b in zip(old, new):
        total += float(np.sum((np.asarray(a) - np.asarray(b)) ** 2))
    return float(np.sqrt(total))


def _normalize(counts: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    total = counts.sum()
    if total <= 0:
        return fallback.copy()
    return counts / total


def _normalize_rows(counts: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    sums = counts.sum(axis=1, keepdims=True)
    safe = np.where(sums == 0, 1, sums)
    result = counts / safe
    empty = sums[:, 0] == 0
    result[empty] = fallback[empty]
    return result
