"""Transcript accumulation."""

from quibble.transcript.accumulator import (
    Dispatch,
    SessionBuffer,
    TranscriptAccumulator,
    find_sentence_boundary,
)

__all__ = [
    "Dispatch",
    "SessionBuffer",
    "TranscriptAccumulator",
    "find_sentence_boundary",
]
