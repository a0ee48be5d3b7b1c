"""
CpGHMM - Hidden Markov Model CpG island finder for genomic DNA sequences.
"""

__version__ = "1.0.0"

from cpghmm.core.hmm import CpGHMM
from cpghmm.core.bootstrap import build_initial_model
from cpghmm.core.model_io import load_model, save_model, load_model_with_metadata
from cpghmm.inference.segmenter import IslandRecord, IslandThresholds
from cpghmm.inference.engine import find_islands
