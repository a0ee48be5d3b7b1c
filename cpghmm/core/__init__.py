"""Core HMM, sequence encoding and model I/O."""

from cpghmm.core.hmm import CpGHMM
from cpghmm.core.encoding import ChunkedVectorBuilder, encode_base, encode_sequence, read_symbol_blocks
from cpghmm.core.bootstrap import ModelPriors, build_initial_model, default_priors
from cpghmm.core.errors import CpGHMMError, TrainingFailure, DecodeFailure
from cpghmm.core.model_io import load_model, save_model, load_model_with_metadata
