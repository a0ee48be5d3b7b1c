"""Exceptions raised by the CpGHMM training and decoding stages."""

from typing import Optional


class CpGHMMError(Exception):
    """Base class for fatal pipeline errors."""


class TrainingFailure(CpGHMMError):
    """Training did not produce a usable model (no report is written)."""


class DecodeFailure(CpGHMMError):
    """
    Decoding failed for one window of the test sequence.

    Island records already emitted for earlier windows are kept.
    """

    def __init__(self, message: str, window_index: Optional[int] = None):
        super().__init__(message)
        self.window_index = window_index
