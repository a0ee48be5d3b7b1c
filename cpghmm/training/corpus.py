"""Training corpus: numbered, fixed-length observation chunks."""

import re
import zipfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Tuple

import numpy as np

from cpghmm.core.encoding import (ChunkedVectorBuilder, TRAINING_CHUNK_SIZE,
                                  read_symbol_blocks)
from cpghmm.core.errors import TrainingFailure


_CHUNK_KEY = re.compile(r'^chunk_(\d+)$')


@dataclass
class TrainingCorpus:
    """
    Ordered (index, vector) pairs keyed by chunk number starting at 1.

    total_symbols counts every recognized symbol read, including the
    trailing symbols that did not fill a chunk and were discarded.
    """
    chunk_size: int = TRAINING_CHUNK_SIZE
    chunks: Dict[int, np.ndarray] = field(default_factory=dict)
    total_symbols: int = 0

    def __len__(self) -> int:
        return len(self.chunks)

    def add(self, vector: np.ndarray) -> int:
        index = len(self.chunks) + 1
        self.chunks[index] = vector
        return index

    def items(self) -> Iterator[Tuple[int, np.ndarray]]:
        for index in sorted(self.chunks):
            yield index, self.chunks[index]

    @property
    def discarded_symbols(self) -> int:
        return self.total_symbols - len(self.chunks) * self.chunk_size

    def concatenated(self) -> Tuple[np.ndarray, List[int]]:
        """All chunks as one observation array plus per-chunk lengths (for fit())."""
        vectors = [vec for _, vec in self.items()]
        if not vectors:
            return np.array([], dtype=np.int8), []
        return np.concatenate(vectors), [len(v) for v in vectors]


def build_training_corpus(blocks: Iterable[np.ndarray],
                          chunk_size: int = TRAINING_CHUNK_SIZE) -> TrainingCorpus:
    """
    Pack encoded symbol blocks into training chunks.

    Args:
        blocks: Iterable of encoded symbol arrays (see read_symbol_blocks)
        chunk_size: Symbols per chunk

    Returns:
        TrainingCorpus with chunks numbered from 1
    """
    corpus = TrainingCorpus(chunk_size=chunk_size)
    builder = ChunkedVectorBuilder(chunk_size, consumer=corpus.add)
    for block in blocks:
        builder.extend(block)
    corpus.total_symbols = builder.total
    return corpus


def corpus_from_file(path: str, chunk_size: int = TRAINING_CHUNK_SIZE) -> TrainingCorpus:
    """
    Read and encode a training sequence file.

    Raises:
        TrainingFailure: if the file cannot be read.
    """
    try:
        return build_training_corpus(read_symbol_blocks(path), chunk_size)
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise TrainingFailure(f"Could not read training input {path}: {e}") from e


def save_corpus(corpus: TrainingCorpus, filepath: str) -> str:
    """
    Persist the corpus as an .npz archive with keys chunk_000001, chunk_000002, ...

    Returns the path written (numpy appends .npz when it is missing).
    """
    if not filepath.endswith('.npz'):
        filepath += '.npz'
    arrays = {f"chunk_{index:06d}": vec for index, vec in corpus.items()}
    np.savez(filepath,
             chunk_size=np.int64(corpus.chunk_size),
             total_symbols=np.int64(corpus.total_symbols),
             **arrays)
    return filepath


def load_corpus(filepath: str) -> TrainingCorpus:
    """
    Load a corpus written by save_corpus.

    Raises:
        TrainingFailure: if the archive is missing, unreadable, or holds
            chunks of the wrong size.
    """
    try:
        with np.load(filepath, allow_pickle=False) as data:
            corpus = TrainingCorpus(chunk_size=int(data['chunk_size']),
                                    total_symbols=int(data['total_symbols']))
            keyed = []
            for key in data.files:
                match = _CHUNK_KEY.match(key)
                if match:
                    keyed.append((int(match.group(1)), key))
            for index, key in sorted(keyed):
                vec = data[key].astype(np.int8)
                if len(vec) != corpus.chunk_size:
                    raise ValueError(f"{key} has {len(vec)} symbols, expected {corpus.chunk_size}")
                corpus.chunks[index] = vec
    except (OSError, KeyError, ValueError, zipfile.BadZipFile) as e:
        raise TrainingFailure(f"Could not read training corpus {filepath}: {e}") from e
    return corpus
