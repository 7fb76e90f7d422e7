"""Transcript accumulation and classifier dispatch decisions."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

from quibble.classifier.models import ClassifierRequest
from quibble.config import TranscriptConfig

# Sentence end: terminal punctuation followed by whitespace or end of text
SENTENCE_END_RE = re.compile(r"[.?!](?=\s|$)")


def find_sentence_boundary(text: str) -> int:
    """Return the offset just after the last complete sentence, or 0."""
    last = None
    for last in SENTENCE_END_RE.finditer(text):
        pass
    return last.end() if last else 0


@dataclass
class SessionBuffer:
    """Per-session transcript state for the current round."""

    accumulated_text: str = ""
    last_processed_offset: int = 0
    last_displayed_answer: str | None = None
    silence_timer: asyncio.Task | None = field(default=None, repr=False)
    # Bumped on every full reset; results from an earlier round are stale
    round_id: int = 0

    def clear_text(self) -> None:
        """Start a fresh round of clue text."""
        self.accumulated_text = ""
        self.last_processed_offset = 0

    def clear(self) -> None:
        """Forget the round and the displayed answer."""
        self.clear_text()
        self.last_displayed_answer = None
        self.round_id += 1


@dataclass(frozen=True)
class Dispatch:
    """A decision to classify a snapshot of the buffer."""

    request: ClassifierRequest
    final: bool
    end_of_clue: bool = False


class TranscriptAccumulator:
    """Grows a session buffer and decides when to call the classifier.

    Never touches the display; the only side effects are on the buffer.
    """

    def __init__(self, buffer: SessionBuffer, config: TranscriptConfig | None = None) -> None:
        self.buffer = buffer
        self.config = config or TranscriptConfig()
        self._cues = [p.lower() for p in self.config.end_of_clue_phrases if p.strip()]

    def append(self, segment_text: str) -> str:
        """Append a segment, separated by a space, and return the buffer text."""
        segment = segment_text.strip()
        if segment:
            if self.buffer.accumulated_text:
                self.buffer.accumulated_text += " " + segment
            else:
                self.buffer.accumulated_text = segment
        return self.buffer.accumulated_text

    def has_end_of_clue(self, text: str) -> bool:
        lowered = text.lower()
        return any(cue in lowered for cue in self._cues)

    def take_dispatch(self, is_final: bool) -> Dispatch | None:
        """Decide whether the buffer warrants a classification call.

        On dispatch the processed offset advances to the end of the sent text
        and, for a final snapshot carrying an end-of-clue cue, the buffer is
        cleared so the next segment starts a new round.

        Args:
            is_final: Whether the latest segment ended an utterance.

        Returns:
            The dispatch to perform, or None.
        """
        text = self.buffer.accumulated_text
        offset = self.buffer.last_processed_offset

        if is_final:
            end = len(text)
            # Already sent verbatim; a cue still closes the round
            if end <= offset:
                if self.has_end_of_clue(text):
                    self.buffer.clear_text()
                return None
        else:
            end = find_sentence_boundary(text)
            if end <= offset or end - offset < self.config.min_growth_chars:
                return None

        snapshot = text[:end]
        if len(snapshot.strip()) < self.config.min_dispatch_chars:
            return None

        request = ClassifierRequest(
            full_text=snapshot,
            clue_so_far=text[:offset].strip(),
            recent_segment=text[offset:end].strip(),
            already_answered=self.buffer.last_displayed_answer is not None,
            last_answer=self.buffer.last_displayed_answer,
        )

        end_of_clue = is_final and self.has_end_of_clue(snapshot)
        if end_of_clue:
            self.buffer.clear_text()
        else:
            self.buffer.last_processed_offset = end

        return Dispatch(request=request, final=is_final, end_of_clue=end_of_clue)
