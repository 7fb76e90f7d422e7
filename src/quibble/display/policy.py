"""Display state policy - classifier outcomes to on-screen state."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from quibble.classifier.models import Answer, CallFailed, Chatter, Outcome, Reset
from quibble.common.logging import get_logger
from quibble.config import DisplayConfig
from quibble.transcript.accumulator import SessionBuffer


class DisplayState(Enum):
    """Display state enum."""

    IDLE = "idle"
    SHOWING_QUESTION_ONLY = "showing_question_only"
    SHOWING_ANSWER = "showing_answer"


class DisplaySurface(Protocol):
    """Rendering primitives offered by the host device."""

    def show_text_wall(self, text: str) -> None: ...

    def show_double_text_wall(self, top_text: str, bottom_text: str) -> None: ...


def same_answer(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return " ".join(a.split()).casefold() == " ".join(b.split()).casefold()


class DisplayStatePolicy:
    """Turns outcomes into display updates and owns answer bookkeeping."""

    def __init__(
        self,
        display: DisplaySurface,
        buffer: SessionBuffer,
        config: DisplayConfig | None = None,
        user_id: str | None = None,
    ) -> None:
        self.display = display
        self.buffer = buffer
        self.config = config or DisplayConfig()
        self.state = DisplayState.IDLE
        self.logger = get_logger("display_policy", user_id=user_id)

    def question_tail(self, text: str) -> str:
        limit = self.config.question_tail_chars
        text = text.strip()
        return "..." + text[-limit:] if len(text) > limit else text

    def show_transcript(self, text: str, live: bool) -> None:
        """Render the running transcript for a newly received segment."""
        if not live or not text:
            return

        if self.buffer.last_displayed_answer:
            self._render_answer(text, self.buffer.last_displayed_answer)
        else:
            self._render(self.display.show_text_wall, text)

        if self.state == DisplayState.IDLE:
            self.state = DisplayState.SHOWING_QUESTION_ONLY

    def apply(self, outcome: Outcome, question_text: str, live: bool) -> bool:
        """Apply a classifier outcome.

        Args:
            outcome: Classifier outcome.
            question_text: The text that was classified.
            live: Whether live transcript display is enabled.

        Returns:
            True if the display was updated.
        """
        if isinstance(outcome, Answer):
            if same_answer(outcome.entity, self.buffer.last_displayed_answer):
                self.logger.debug("duplicate_answer_suppressed", entity=outcome.entity)
                return False
            self._render_answer(question_text, outcome.entity)
            self.buffer.last_displayed_answer = outcome.entity
            self.state = DisplayState.SHOWING_ANSWER
            self.logger.info("answer_displayed", entity=outcome.entity)
            return True

        if isinstance(outcome, Reset):
            self.reset("classifier")
            return True

        if isinstance(outcome, Chatter):
            if live and self.state == DisplayState.IDLE:
                self.state = DisplayState.SHOWING_QUESTION_ONLY
            return False

        if isinstance(outcome, CallFailed):
            self.logger.warning("showing_transcript_after_failure", reason=outcome.reason.value)

        # NoMatch and CallFailed: keep a displayed answer, else show the raw transcript
        if live and self.state != DisplayState.SHOWING_ANSWER and question_text:
            self._render(self.display.show_text_wall, question_text)
            self.state = DisplayState.SHOWING_QUESTION_ONLY
            return True
        return False

    def show_notice(self, text: str) -> None:
        """Show a status message without changing the round state."""
        self._render(self.display.show_text_wall, text)

    def reset(self, reason: str) -> None:
        """Clear the round and return to idle."""
        self.buffer.clear()
        self.state = DisplayState.IDLE
        self._render(self.display.show_text_wall, self.config.ready_text)
        self.logger.info("display_reset", reason=reason)

    def _render_answer(self, question_text: str, entity: str) -> None:
        self._render(
            self.display.show_double_text_wall,
            self.question_tail(question_text),
            f"Answer: {entity}",
        )

    def _render(self, primitive, *args: str) -> None:
        try:
            primitive(*args)
        except Exception as e:
            self.logger.exception("display_update_failed", error=str(e))
