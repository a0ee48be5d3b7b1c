"""Decode-and-segment engine, island output and statistics."""

from cpghmm.inference.segmenter import (
    IslandRecord,
    IslandScanner,
    IslandThresholds,
    SegmentationState,
    scan_state_path,
)
from cpghmm.inference.engine import (
    Decoder,
    ViterbiDecoder,
    decode_windows,
    find_islands,
)
from cpghmm.inference.output import IslandWriter, write_islands, read_islands, run_decoding
from cpghmm.inference.stats import IslandStats

__all__ = [
    'IslandRecord',
    'IslandScanner',
    'IslandThresholds',
    'SegmentationState',
    'scan_state_path',
    'Decoder',
    'ViterbiDecoder',
    'decode_windows',
    'find_islands',
    'IslandWriter',
    'write_islands',
    'read_islands',
    'run_decoding',
    'IslandStats',
]
