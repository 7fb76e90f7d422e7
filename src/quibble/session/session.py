"""A single user's live trivia session."""

from __future__ import annotations

import asyncio
from typing import Any

from quibble.classifier.models import Outcome, Reset
from quibble.classifier.providers import AnswerClassifier
from quibble.common.events import EventBus
from quibble.common.logging import get_logger
from quibble.config import Config
from quibble.display.policy import DisplayState, DisplayStatePolicy, DisplaySurface
from quibble.session.settings import SHOW_LIVE_TRANSCRIPTION, InMemorySettings, SettingsStore
from quibble.transcript.accumulator import SessionBuffer, TranscriptAccumulator

PERMISSION_DENIED_TEXT = "Microphone permission denied. Please enable it in settings."


class QuibbleSession:
    """Routes one user's transcript through accumulator, classifier and display.

    At most one classification call is in flight per session. Segments that
    arrive meanwhile are appended to the buffer; the in-flight drain loop
    re-evaluates the buffer when its call returns, carrying over a pending
    final flag.
    """

    def __init__(
        self,
        user_id: str,
        session_id: str,
        display: DisplaySurface,
        classifier: AnswerClassifier,
        config: Config,
        settings: SettingsStore | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.user_id = user_id
        self.session_id = session_id
        self.config = config
        self.classifier = classifier
        self.settings = settings or InMemorySettings()
        self.event_bus = event_bus

        self.buffer = SessionBuffer()
        self.accumulator = TranscriptAccumulator(self.buffer, config.transcript)
        self.policy = DisplayStatePolicy(display, self.buffer, config.display, user_id=user_id)
        self.logger = get_logger("session", user_id=user_id, session_id=session_id)

        self._in_flight = False
        self._pending_final = False
        self._closed = False
        self._tasks: set[asyncio.Task] = set()
        self.dispatch_count = 0

        self._unsubscribe_settings = self.settings.on_value_change(
            SHOW_LIVE_TRANSCRIPTION, self._on_live_setting_changed
        )

    @property
    def state(self) -> DisplayState:
        return self.policy.state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def live_transcription(self) -> bool:
        return bool(
            self.settings.get(
                SHOW_LIVE_TRANSCRIPTION,
                self.config.display.show_live_transcription,
            )
        )

    async def on_transcription(self, text: str, is_final: bool) -> None:
        """Handle one transcription segment."""
        if self._closed:
            return

        self._restart_silence_timer()
        buffered = self.accumulator.append(text)
        self._pending_final = self._pending_final or is_final

        self.logger.debug("transcript_received", final=is_final, length=len(buffered))
        self.policy.show_transcript(buffered, self.live_transcription)

        if self._in_flight:
            # Picked up by the running drain loop
            return

        self._in_flight = True
        try:
            await self._drain()
        finally:
            self._in_flight = False

    def submit_transcription(self, text: str, is_final: bool) -> asyncio.Task:
        """Schedule a segment without waiting for classification."""
        task = asyncio.get_running_loop().create_task(self.on_transcription(text, is_final))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def wait_idle(self) -> None:
        """Wait for scheduled segments and their classification calls."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _drain(self) -> None:
        while not self._closed:
            is_final, self._pending_final = self._pending_final, False
            dispatch = self.accumulator.take_dispatch(is_final)
            if dispatch is None:
                return

            self.dispatch_count += 1
            self.logger.info(
                "dispatching",
                final=dispatch.final,
                end_of_clue=dispatch.end_of_clue,
                length=len(dispatch.request.full_text),
            )
            round_id = self.buffer.round_id
            outcome = await self.classifier.classify(dispatch.request)
            if self._closed:
                return
            if self.buffer.round_id != round_id:
                self.logger.info("stale_outcome_dropped", outcome=outcome.kind.value)
                continue
            await self._apply(outcome, dispatch.request.full_text)

    async def _apply(self, outcome: Outcome, question_text: str) -> None:
        displayed = self.policy.apply(outcome, question_text, self.live_transcription)
        await self._emit(
            "quiz.outcome",
            kind=outcome.kind.value,
            entity=getattr(outcome, "entity", None),
            reason=getattr(getattr(outcome, "reason", None), "value", None),
            displayed=displayed,
            question=question_text,
        )
        if isinstance(outcome, Reset):
            await self._emit("quiz.reset", reason="classifier")

    def _restart_silence_timer(self) -> None:
        self._cancel_silence_timer()
        self.buffer.silence_timer = asyncio.get_running_loop().create_task(
            self._silence_countdown()
        )

    def _cancel_silence_timer(self) -> None:
        timer = self.buffer.silence_timer
        if timer is not None and not timer.done():
            timer.cancel()
        self.buffer.silence_timer = None

    async def _silence_countdown(self) -> None:
        await asyncio.sleep(self.config.display.silence_clear_seconds)
        if self._closed:
            return
        self.buffer.silence_timer = None
        self.policy.reset("silence")
        await self._emit("quiz.reset", reason="silence")

    async def on_error(self, code: str | None, message: str = "") -> None:
        """Handle an error reported by the host session."""
        self.logger.error("session_error", code=code, message=message)
        if code == "PERMISSION_DENIED" or "permission" in message.lower():
            self.policy.show_notice(PERMISSION_DENIED_TEXT)

    def _on_live_setting_changed(self, new_value: Any, old_value: Any) -> None:
        self.logger.info(
            "live_transcription_setting_changed",
            old=old_value,
            new=new_value,
        )

    async def close(self) -> None:
        """End the session; an in-flight call completes but is not applied."""
        if self._closed:
            return
        self._closed = True
        self._cancel_silence_timer()
        self._unsubscribe_settings()
        self.logger.info("session_closed", dispatches=self.dispatch_count)

    async def _emit(self, topic: str, **data: Any) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(topic, "session", user_id=self.user_id, **data)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error("transcription_handler_failed", error=str(task.exception()))
