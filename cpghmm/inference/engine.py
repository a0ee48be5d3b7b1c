"""CpGHMM decode-and-segment engine."""

import warnings
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Tuple

import numpy as np
from tqdm import tqdm

from cpghmm.core.encoding import DECODE_WINDOW_SIZE, iter_chunks
from cpghmm.core.errors import DecodeFailure
from cpghmm.core.hmm import CpGHMM
from cpghmm.inference.segmenter import IslandRecord, IslandScanner, IslandThresholds


class Decoder(Protocol):
    """Maps an observation window to its hidden-state path, or raises DecodeFailure."""

    def decode(self, model: CpGHMM, window: np.ndarray) -> np.ndarray:
        ...


class ViterbiDecoder:
    """Most-likely state path via CpGHMM.predict()."""

    def decode(self, model: CpGHMM, window: np.ndarray) -> np.ndarray:
        try:
            model.validate()
        except ValueError as e:
            raise DecodeFailure(f"Malformed model: {e}") from e
        return model.predict(window)


def decode_windows(model: CpGHMM, blocks: Iterable[np.ndarray],
                   decoder: Optional[Decoder] = None,
                   window_size: int = DECODE_WINDOW_SIZE,
                   thresholds: Optional[IslandThresholds] = None,
                   scanner: Optional[IslandScanner] = None,
                   verbose: bool = False) -> Iterator[Tuple[int, List[IslandRecord]]]:
    """
    Decode the test sequence window by window and segment the paths.

    Windows are decoded strictly in order and the scanner state is carried
    between them. Only full windows are decoded; trailing symbols are
    discarded. An island still open after the last window is dropped.

    Args:
        model: Trained CpGHMM
        blocks: Encoded symbol blocks of the test sequence
        decoder: Decoding strategy (default: ViterbiDecoder)
        window_size: Symbols per decode window
        thresholds: Island score cut-offs
        scanner: Pre-built scanner (to inspect its counters afterwards)
        verbose: Show a progress bar over windows

    Yields:
        (window_index, records closed in that window)

    Raises:
        DecodeFailure: if decoding a window fails; windows already yielded
            are unaffected.
    """
    if decoder is None:
        decoder = ViterbiDecoder()
    if scanner is None:
        scanner = IslandScanner.for_model(model, window_size, thresholds)

    windows = iter_chunks(blocks, window_size)
    for window_index, window in enumerate(tqdm(windows, desc="Decoding windows",
                                               unit="window", disable=not verbose)):
        try:
            path = decoder.decode(model, window)
        except DecodeFailure as e:
            if e.window_index is None:
                e.window_index = window_index
            raise
        except Exception as e:
            raise DecodeFailure(f"Decoding window {window_index} failed: {e}",
                                window_index) from e

        path = np.asarray(path)
        if len(path) != len(window):
            raise DecodeFailure(
                f"Decoder returned {len(path)} states for window {window_index} "
                f"of {len(window)} symbols", window_index
            )
        try:
            records = scanner.scan_window(path, window_index)
        except ValueError as e:
            raise DecodeFailure(f"Invalid state path for window {window_index}: {e}",
                                window_index) from e
        yield window_index, records

    dropped = scanner.finish()
    if dropped is not None:
        warnings.warn(
            f"Island candidate open at end of input (starting at {dropped.start + 1:,}) "
            f"was dropped without scoring"
        )


def find_islands(model: CpGHMM, blocks: Iterable[np.ndarray],
                 decoder: Optional[Decoder] = None,
                 window_size: int = DECODE_WINDOW_SIZE,
                 thresholds: Optional[IslandThresholds] = None,
                 sink: Optional[Callable[[IslandRecord], None]] = None,
                 verbose: bool = False) -> Iterator[IslandRecord]:
    """Yield island records in sequence order (see decode_windows), passing each to sink."""
    for _, records in decode_windows(model, blocks, decoder=decoder,
                                     window_size=window_size,
                                     thresholds=thresholds, verbose=verbose):
        for record in records:
            if sink is not None:
                sink(record)
            yield record
