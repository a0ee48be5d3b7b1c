"""
Sequence encoding for CpGHMM.

Turns a stream of raw DNA characters into integer symbols
(A=0, C=1, G=2, T=3) and packs them into fixed-length observation
vectors:
- training chunks of TRAINING_CHUNK_SIZE symbols (corpus for Baum-Welch)
- decode windows of DECODE_WINDOW_SIZE symbols (input to Viterbi)

Characters outside the ACGT alphabet (case-insensitive) are dropped
without advancing any counter. A trailing partial vector at end of
stream is never emitted.
"""

import gzip
import os
import warnings
from typing import IO, Callable, Iterable, Iterator, List, Optional

import numpy as np
import pysam


# Alphabet and state labels
SYMBOLS = 'ACGT'
SYMBOL_NAMES = ('a', 'c', 'g', 't')
HIDDEN_STATE_NAMES = ('A+', 'C+', 'G+', 'T+', 'A-', 'C-', 'G-', 'T-')
N_SYMBOLS = 4
N_HIDDEN_STATES = 8

SYMBOL_A = 0
SYMBOL_C = 1
SYMBOL_G = 2
SYMBOL_T = 3

# Default vector sizes
TRAINING_CHUNK_SIZE = 0x10000   # 65,536 symbols per training chunk
DECODE_WINDOW_SIZE = 0x100000   # 1,048,576 symbols per decode window

FASTA_EXTENSIONS = ('.fa', '.fasta', '.fna', '.fa.gz', '.fasta.gz', '.fna.gz')

# Byte -> symbol lookup; -1 marks characters that are skipped
_BASE_TO_SYMBOL = np.full(256, -1, dtype=np.int8)
for _i, _base in enumerate(SYMBOLS):
    _BASE_TO_SYMBOL[ord(_base)] = _i
    _BASE_TO_SYMBOL[ord(_base.lower())] = _i


def encode_base(char: str) -> Optional[int]:
    """
    Encode a single DNA character.

    Returns:
        Symbol in {0, 1, 2, 3}, or None if the character is not in the
        alphabet (N, whitespace, header text, ...).
    """
    if len(char) != 1:
        return None
    code = ord(char)
    if code > 255:
        return None
    symbol = int(_BASE_TO_SYMBOL[code])
    return None if symbol < 0 else symbol


def encode_sequence(sequence: str) -> np.ndarray:
    """
    Vectorized encoding of a whole string.

    Unrecognized characters are removed, so the result length equals
    the number of A/C/G/T characters in the input.
    """
    if not sequence:
        return np.array([], dtype=np.int8)
    return encode_bytes(sequence.encode('ascii', errors='replace'))


def encode_bytes(data: bytes) -> np.ndarray:
    """Encode raw bytes; any byte outside A/C/G/T (any case) is dropped."""
    encoded = _BASE_TO_SYMBOL[np.frombuffer(data, dtype=np.uint8)]
    return encoded[encoded >= 0]


def iter_symbol_blocks(stream: IO, block_size: int = 1 << 20) -> Iterator[np.ndarray]:
    """
    Read a stream in blocks and yield the encoded symbols of each block.

    Binary streams are encoded byte by byte, so input that is not valid
    text (Latin-1, stray 0xFF bytes) is skipped like any other non-ACGT
    character.
    """
    while True:
        block = stream.read(block_size)
        if not block:
            break
        if isinstance(block, str):
            encoded = encode_sequence(block)
        else:
            encoded = encode_bytes(block)
        if len(encoded):
            yield encoded


def iter_symbols(stream: IO, block_size: int = 1 << 20) -> Iterator[int]:
    """Yield one symbol per recognized character of a text or binary stream."""
    for block in iter_symbol_blocks(stream, block_size):
        yield from block.tolist()


def is_fasta_path(path: str) -> bool:
    return path.lower().endswith(FASTA_EXTENSIONS)


def read_symbol_blocks(path: str, block_size: int = 1 << 20) -> Iterator[np.ndarray]:
    """
    Yield encoded symbol blocks from a sequence file.

    FASTA files (.fa/.fasta/.fna, optionally gzipped) are read with
    pysam and record sequences are concatenated in file order; header
    lines are never encoded. Any other file is read in binary mode as a
    raw stream of DNA characters.
    """
    if is_fasta_path(path):
        with pysam.FastxFile(path) as fasta:
            for record in fasta:
                encoded = encode_sequence(record.sequence or '')
                if len(encoded):
                    yield encoded
        return

    opener = gzip.open if path.endswith('.gz') else open
    with opener(path, 'rb') as stream:
        yield from iter_symbol_blocks(stream, block_size)


class ChunkedVectorBuilder:
    """
    Accumulates symbols into fixed-capacity observation vectors.

    When the current vector reaches `capacity` symbols it is sealed,
    delivered to `consumer` (if given) and returned from push(); a new
    empty vector is then started. Partial vectors are never delivered.
    """

    def __init__(self, capacity: int,
                 consumer: Optional[Callable[[np.ndarray], None]] = None):
        if not isinstance(capacity, (int, np.integer)) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self.capacity = int(capacity)
        self.consumer = consumer
        self.sealed_count = 0
        self.total = 0
        self._buffer = np.empty(self.capacity, dtype=np.int8)
        self._pos = 0

    @property
    def pending(self) -> int:
        """Number of symbols buffered in the current (unsealed) vector."""
        return self._pos

    def push(self, symbol: int) -> Optional[np.ndarray]:
        """Append one symbol; returns the sealed vector if this push filled it."""
        if symbol not in (0, 1, 2, 3):
            raise ValueError(f"invalid symbol {symbol!r}; expected 0-3")
        self._buffer[self._pos] = symbol
        self._pos += 1
        self.total += 1
        if self._pos == self.capacity:
            return self._seal()
        return None

    def extend(self, symbols: Iterable[int]) -> List[np.ndarray]:
        """Append many symbols; returns every vector sealed along the way."""
        arr = np.asarray(symbols if isinstance(symbols, np.ndarray) else list(symbols),
                         dtype=np.int8)
        if len(arr) and (arr.min() < 0 or arr.max() > 3):
            raise ValueError("symbols must be in the range 0-3")

        sealed = []
        offset = 0
        while offset < len(arr):
            take = min(self.capacity - self._pos, len(arr) - offset)
            self._buffer[self._pos:self._pos + take] = arr[offset:offset + take]
            self._pos += take
            self.total += take
            offset += take
            if self._pos == self.capacity:
                sealed.append(self._seal())
        return sealed

    def _seal(self) -> np.ndarray:
        vector = self._buffer
        self._buffer = np.empty(self.capacity, dtype=np.int8)
        self._pos = 0
        self.sealed_count += 1
        if self.consumer is not None:
            self.consumer(vector)
        return vector


def iter_chunks(blocks: Iterable[np.ndarray], capacity: int,
                warn_partial: bool = True) -> Iterator[np.ndarray]:
    """
    Re-chunk a stream of symbol blocks into full vectors of `capacity`.

    The trailing partial vector is discarded (with a warning unless
    warn_partial is False).
    """
    builder = ChunkedVectorBuilder(capacity)
    for block in blocks:
        for vector in builder.extend(block):
            yield vector

    if builder.pending and warn_partial:
        warnings.warn(
            f"Discarding {builder.pending:,} trailing symbols "
            f"(less than one full vector of {capacity:,})"
        )


def describe_input(path: str) -> str:
    """Short label for progress output."""
    kind = 'FASTA' if is_fasta_path(path) else 'raw sequence'
    return f"{os.path.basename(path)} ({kind})"
