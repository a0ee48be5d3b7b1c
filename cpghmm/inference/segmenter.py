"""
Island segmentation of decoded hidden-state paths.

States 0-3 (A+, C+, G+, T+) are island states, 4-7 (A-, C-, G-, T-)
background states; a state's nucleotide is state % 4. A candidate island
opens on the first island state after background and closes on the next
background state. On close it is scored:

    cg_content = (C + G) / length
    oe_ratio   = CG * length / (C * G)     (0.0 if C or G is zero)

and emitted iff cg_content > min_cg_content and oe_ratio > min_oe_ratio.

Paths arrive window by window; SegmentationState carries the open
candidate (including whether the last symbol was C) across windows so
the result is identical to scanning the whole path at once. A candidate
still open at the end of input is dropped, never closed.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

import numpy as np

from cpghmm.core.encoding import (
    DECODE_WINDOW_SIZE, N_HIDDEN_STATES, N_SYMBOLS, SYMBOL_C, SYMBOL_G,
)


@dataclass(frozen=True)
class IslandThresholds:
    """Score cut-offs for emitting a candidate (all comparisons are strict except min_length)."""
    min_cg_content: float = 0.5
    min_oe_ratio: float = 0.6
    min_length: int = 0

    def passes(self, length: int, cg_content: float, oe_ratio: float) -> bool:
        return (cg_content > self.min_cg_content
                and oe_ratio > self.min_oe_ratio
                and length >= self.min_length)


@dataclass(frozen=True)
class IslandRecord:
    """A scored island; start/end are 1-based inclusive sequence coordinates."""
    start: int
    end: int
    length: int
    cg_content: float
    oe_ratio: float

    def format(self) -> str:
        return "%d %d %d %f %f" % (self.start, self.end, self.length,
                                   self.cg_content, self.oe_ratio)


@dataclass
class SegmentationState:
    """Scan state carried from one window to the next."""
    in_island: bool = False
    start: int = 0          # 0-based global offset of the open candidate
    length: int = 0
    c_count: int = 0
    g_count: int = 0
    cg_count: int = 0
    prev_was_c: bool = False


def score_candidate(length: int, c_count: int, g_count: int, cg_count: int):
    """Return (cg_content, oe_ratio) for a closed candidate."""
    cg_content = (c_count + g_count) / length
    if c_count != 0 and g_count != 0:
        oe_ratio = (cg_count * length) / (c_count * g_count)
    else:
        oe_ratio = 0.0
    return cg_content, oe_ratio


class IslandScanner:
    """
    Stateful scanner turning hidden-state windows into IslandRecords.

    Windows must be fed in order: window k covers global offsets
    [k * window_size, (k + 1) * window_size).

    island_states lists the state indices that belong to an island; it
    defaults to the first half of the state space. Use for_model() to take
    the split from a trained model.
    """

    def __init__(self, window_size: int = DECODE_WINDOW_SIZE,
                 thresholds: Optional[IslandThresholds] = None,
                 n_states: int = N_HIDDEN_STATES,
                 island_states: Optional[Iterable[int]] = None):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self.window_size = window_size
        self.thresholds = thresholds or IslandThresholds()
        self.n_states = n_states

        if island_states is None:
            island_states = range(n_states // 2)
        island_states = np.asarray(list(island_states), dtype=int)
        if len(island_states) and (island_states.min() < 0 or island_states.max() >= n_states):
            raise ValueError(f"island states must be in 0..{n_states - 1}")
        self.island_mask = np.zeros(n_states, dtype=bool)
        self.island_mask[island_states] = True

        self.state = SegmentationState()
        self.position = 0        # next global offset to scan
        self.windows_scanned = 0
        self.candidates_rejected = 0
        self._short_window_seen = False

    @classmethod
    def for_model(cls, model, window_size: int = DECODE_WINDOW_SIZE,
                  thresholds: Optional[IslandThresholds] = None) -> 'IslandScanner':
        """Scanner whose island/background split comes from model.island_states()."""
        return cls(window_size, thresholds, n_states=model.n_states,
                   island_states=model.island_states())

    def scan_window(self, path: Iterable[int],
                    window_index: Optional[int] = None) -> List[IslandRecord]:
        """
        Scan one window of the hidden-state path.

        Args:
            path: Hidden states for this window
            window_index: Position of the window in the sequence; checked
                against the scanner's progress when given

        Returns:
            Records that closed inside this window, in order

        Raises:
            ValueError: on out-of-order windows, oversized windows, a window
                after a short (final) one, or invalid state indices.
        """
        states = np.asarray(path)
        n = len(states)

        if window_index is not None and window_index * self.window_size != self.position:
            raise ValueError(
                f"window {window_index} is out of order; expected window "
                f"{self.position // self.window_size}"
            )
        if n > self.window_size:
            raise ValueError(f"window has {n} states, more than window_size {self.window_size}")
        if self._short_window_seen and n:
            raise ValueError("cannot scan past a short (final) window")
        if n and (states.min() < 0 or states.max() >= self.n_states):
            raise ValueError(f"state indices must be in 0..{self.n_states - 1}")

        records = []
        st = self.state
        thresholds = self.thresholds
        is_island = self.island_mask.tolist()

        # Locals for the hot loop; written back after the window
        in_island = st.in_island
        start = st.start
        length = st.length
        c_count = st.c_count
        g_count = st.g_count
        cg_count = st.cg_count
        prev_was_c = st.prev_was_c

        g = self.position
        for s in states.tolist():
            if in_island:
                if not is_island[s]:
                    in_island = False
                    length = g - start
                    cg_content, oe_ratio = score_candidate(length, c_count, g_count, cg_count)
                    if thresholds.passes(length, cg_content, oe_ratio):
                        # end offset is g - 1, reported 1-based
                        records.append(IslandRecord(start + 1, g, length, cg_content, oe_ratio))
                    else:
                        self.candidates_rejected += 1
                else:
                    length += 1
                    symbol = s % N_SYMBOLS
                    if symbol == SYMBOL_G:
                        g_count += 1
                        if prev_was_c:
                            cg_count += 1
                    if symbol == SYMBOL_C:
                        c_count += 1
                        prev_was_c = True
                    else:
                        prev_was_c = False
            elif is_island[s]:
                in_island = True
                start = g
                length = 1
                cg_count = 0
                symbol = s % N_SYMBOLS
                if symbol == SYMBOL_C:
                    c_count = 1
                    prev_was_c = True
                else:
                    c_count = 0
                    prev_was_c = False
                g_count = 1 if symbol == SYMBOL_G else 0
            g += 1

        st.in_island = in_island
        st.start = start
        st.length = length
        st.c_count = c_count
        st.g_count = g_count
        st.cg_count = cg_count
        st.prev_was_c = prev_was_c

        self.position = g
        self.windows_scanned += 1
        if n < self.window_size:
            self._short_window_seen = True
        return records

    def finish(self) -> Optional[SegmentationState]:
        """
        End of input: drop any open candidate without scoring it.

        Returns:
            A copy of the dropped candidate's state, or None.
        """
        dropped = replace(self.state) if self.state.in_island else None
        self.state = SegmentationState()
        return dropped


def scan_state_path(path: Iterable[int], window_size: Optional[int] = None,
                    thresholds: Optional[IslandThresholds] = None) -> List[IslandRecord]:
    """
    Scan a complete hidden-state path, split into windows of window_size.

    Pure function of its inputs: the same path and window size always
    yield the same records.
    """
    states = np.asarray(path)
    if window_size is None:
        window_size = max(len(states), 1)

    scanner = IslandScanner(window_size, thresholds)
    records = []
    for window_index, offset in enumerate(range(0, len(states), window_size)):
        records.extend(scanner.scan_window(states[offset:offset + window_size], window_index))
    scanner.finish()
    return records
