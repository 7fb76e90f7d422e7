"""Session registry keyed by user id."""

from __future__ import annotations

from dataclasses import dataclass

from quibble.classifier.providers import AnswerClassifier, create_classifier
from quibble.common.events import EventBus
from quibble.common.logging import get_logger
from quibble.config import Config, load_config
from quibble.display.policy import DisplaySurface
from quibble.session.session import QuibbleSession
from quibble.session.settings import SettingsStore

READ_ONLY_TEXT = "Microphone not available. App is in read-only mode."


@dataclass(frozen=True)
class SessionCapabilities:
    """Hardware the host device reports for a session."""

    has_display: bool = True
    has_microphone: bool = True


class SessionRegistry:
    """Owns every live session; created on session start, removed on end.

    One classifier instance is shared by all sessions; it keeps no
    per-call state beyond provider status.
    """

    def __init__(
        self,
        config: Config | None = None,
        classifier: AnswerClassifier | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.config = config or load_config()
        self.classifier = classifier or create_classifier(
            self.config.llm, mock_mode=self.config.mock_mode
        )
        self.event_bus = event_bus or EventBus()
        self._sessions: dict[str, QuibbleSession] = {}
        self.logger = get_logger("session_registry")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def get(self, user_id: str) -> QuibbleSession | None:
        return self._sessions.get(user_id)

    async def start_session(
        self,
        user_id: str,
        session_id: str,
        display: DisplaySurface,
        capabilities: SessionCapabilities | None = None,
        settings: SettingsStore | None = None,
    ) -> QuibbleSession | None:
        """Create a session for a user, replacing any previous one.

        Returns:
            The new session, or None when the device has no display.
        """
        capabilities = capabilities or SessionCapabilities()
        if not capabilities.has_display:
            self.logger.warning("session_refused_no_display", user_id=user_id)
            return None

        if user_id in self._sessions:
            await self.end_session(user_id)

        session = QuibbleSession(
            user_id,
            session_id,
            display,
            self.classifier,
            self.config,
            settings=settings,
            event_bus=self.event_bus,
        )
        self._sessions[user_id] = session

        if capabilities.has_microphone:
            session.policy.show_notice(self.config.display.welcome_text)
        else:
            self.logger.warning("no_microphone", user_id=user_id)
            session.policy.show_notice(READ_ONLY_TEXT)

        self.logger.info("session_started", user_id=user_id, session_id=session_id)
        await self.event_bus.emit(
            "session.started",
            "registry",
            user_id=user_id,
            session_id=session_id,
            has_microphone=capabilities.has_microphone,
        )
        return session

    async def end_session(self, user_id: str) -> bool:
        """Close and forget a user's session."""
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False

        await session.close()
        self.logger.info("session_ended", user_id=user_id, session_id=session.session_id)
        await self.event_bus.emit(
            "session.ended",
            "registry",
            user_id=user_id,
            session_id=session.session_id,
        )
        return True

    async def handle_transcription(self, user_id: str, text: str, is_final: bool) -> bool:
        """Route a segment to the user's session and wait for its handling.

        Returns:
            False when the user has no active session.
        """
        session = self._sessions.get(user_id)
        if session is None:
            self.logger.warning("transcription_without_session", user_id=user_id)
            return False
        await session.on_transcription(text, is_final)
        return True

    async def handle_error(self, user_id: str, code: str | None, message: str = "") -> None:
        session = self._sessions.get(user_id)
        if session is not None:
            await session.on_error(code, message)

    async def close(self) -> None:
        """End every session."""
        for user_id in list(self._sessions):
            await self.end_session(user_id)
