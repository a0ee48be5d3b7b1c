"""Island record output: one `<start> <end> <length> <cgContent> <oeRatio>` line per island."""

import os
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from cpghmm.core.encoding import DECODE_WINDOW_SIZE
from cpghmm.core.hmm import CpGHMM
from cpghmm.inference.engine import Decoder, decode_windows
from cpghmm.inference.segmenter import IslandRecord, IslandScanner, IslandThresholds
from cpghmm.inference.stats import IslandStats


ISLAND_COLUMNS = ['start', 'end', 'length', 'cg_content', 'oe_ratio']


class IslandWriter:
    """Writes records as they are produced; flush() after each window."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        self.count = 0
        self._handle = open(filepath, 'w')

    def write(self, records: Iterable[IslandRecord]):
        for record in records:
            self._handle.write(record.format() + '\n')
            self.count += 1

    def flush(self):
        self._handle.flush()

    def close(self):
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def write_islands(records: Iterable[IslandRecord], filepath: str) -> int:
    """Write records to filepath; returns the number written."""
    with IslandWriter(filepath) as writer:
        writer.write(records)
        return writer.count


def read_islands(filepath: str) -> pd.DataFrame:
    """Read an island file into a DataFrame with ISLAND_COLUMNS."""
    if os.path.getsize(filepath) == 0:
        return pd.DataFrame({
            'start': pd.Series(dtype=np.int64),
            'end': pd.Series(dtype=np.int64),
            'length': pd.Series(dtype=np.int64),
            'cg_content': pd.Series(dtype=float),
            'oe_ratio': pd.Series(dtype=float),
        })
    return pd.read_csv(filepath, sep=' ', header=None, names=ISLAND_COLUMNS,
                       dtype={'start': np.int64, 'end': np.int64, 'length': np.int64,
                              'cg_content': float, 'oe_ratio': float})


def run_decoding(model: CpGHMM, blocks: Iterable[np.ndarray], output_path: str,
                 decoder: Optional[Decoder] = None,
                 window_size: int = DECODE_WINDOW_SIZE,
                 thresholds: Optional[IslandThresholds] = None,
                 stats: Optional[IslandStats] = None,
                 verbose: bool = False) -> List[IslandRecord]:
    """
    Decode the test sequence and write islands to output_path.

    Records are flushed after every window, so on DecodeFailure the
    output file keeps everything found before the failing window.

    Args:
        stats: If given, filled with the records and scan counters

    Returns:
        All records written.
    """
    scanner = IslandScanner.for_model(model, window_size, thresholds)

    all_records = []
    try:
        with IslandWriter(output_path) as writer:
            for _, records in decode_windows(model, blocks, decoder=decoder,
                                             window_size=window_size,
                                             scanner=scanner, verbose=verbose):
                writer.write(records)
                writer.flush()
                all_records.extend(records)
    finally:
        if stats is not None:
            stats.add_records(all_records)
            stats.windows_decoded = scanner.windows_scanned
            stats.sequence_length = scanner.position
            stats.candidates_rejected = scanner.candidates_rejected
    return all_records
