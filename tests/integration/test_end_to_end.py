"""End-to-end integration tests for Quibble."""

import httpx
import pytest

from quibble.classifier import GeminiClassifier
from quibble.display import DisplayState
from quibble.session import SessionCapabilities, SessionRegistry
from quibble.session.registry import READ_ONLY_TEXT


@pytest.mark.integration
class TestEndToEndFlow:
    """End-to-end flow tests."""

    @pytest.mark.asyncio
    async def test_capital_of_france_flow(self, registry, classifier, display):
        """Test the main flow.

        1. Session starts and shows the welcome text
        2. A partial segment arrives and is not classified
        3. The final segment completes the question
        4. The answer is shown under the question
        """
        classifier.add_replies("ANSWER: Paris")

        session = await registry.start_session("user-1", "session-1", display)
        assert display.last == ("text", "Quibble Ready. Ask me a trivia question!")

        await registry.handle_transcription("user-1", "What is the capital of", False)
        assert classifier.requests == []

        await registry.handle_transcription("user-1", "France?", True)

        assert len(classifier.requests) == 1
        assert display.last == ("double", "What is the capital of France?", "Answer: Paris")
        assert session.state == DisplayState.SHOWING_ANSWER

        outcomes = registry.event_bus.get_history("quiz.outcome")
        assert outcomes[0].data["kind"] == "answer"
        assert outcomes[0].data["entity"] == "Paris"
        assert outcomes[0].data["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_two_rounds_with_reset(self, registry, classifier, display):
        """Test two rounds separated by a reset."""
        classifier.add_replies("ANSWER: Marie Curie", "RESET", "ANSWER: Mount Everest")
        await registry.start_session("user-1", "session-1", display)

        await registry.handle_transcription(
            "user-1", "This scientist won two Nobel Prizes in different sciences.", True
        )
        await registry.handle_transcription("user-1", "Alright, next question everyone.", True)
        await registry.handle_transcription(
            "user-1", "What is the tallest mountain on Earth?", True
        )

        assert display.answers()[-1] == "Answer: Mount Everest"
        assert "Answer: Marie Curie" in display.answers()
        assert ("text", "Quibble Ready.") in display.calls

    @pytest.mark.asyncio
    async def test_gemini_over_http(self, config, display):
        """Test the full path through the HTTP adapter with a mocked provider."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("models/gemini-2.0-flash:generateContent")
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "ANSWER: Paris"}]}}]},
            )

        classifier = GeminiClassifier(
            config.llm.gemini_endpoint,
            model="gemini-2.0-flash",
            api_key="test-key",
            transport=httpx.MockTransport(handler),
        )
        registry = SessionRegistry(config, classifier=classifier)
        try:
            await registry.start_session("user-1", "session-1", display)
            await registry.handle_transcription("user-1", "What is the capital of France?", True)
        finally:
            await registry.close()

        assert display.last == ("double", "What is the capital of France?", "Answer: Paris")


@pytest.mark.integration
class TestSessionLifecycle:
    """Tests for session start, routing and end."""

    @pytest.mark.asyncio
    async def test_lifecycle_events(self, registry, display, event_bus):
        """Test session start and end events."""
        await registry.start_session("user-1", "session-1", display)
        assert "user-1" in registry
        assert len(registry) == 1

        assert await registry.end_session("user-1") is True
        assert "user-1" not in registry
        assert await registry.end_session("user-1") is False

        topics = [e.topic for e in event_bus.get_history("session.*")]
        assert topics == ["session.ended", "session.started"]

    @pytest.mark.asyncio
    async def test_no_display_refused(self, registry, display):
        """Test devices without a display are refused."""
        session = await registry.start_session(
            "user-1",
            "session-1",
            display,
            SessionCapabilities(has_display=False),
        )

        assert session is None
        assert "user-1" not in registry
        assert display.calls == []

    @pytest.mark.asyncio
    async def test_no_microphone_read_only(self, registry, display):
        """Test devices without a microphone get a read-only notice."""
        session = await registry.start_session(
            "user-1",
            "session-1",
            display,
            SessionCapabilities(has_microphone=False),
        )

        assert session is not None
        assert display.last == ("text", READ_ONLY_TEXT)

    @pytest.mark.asyncio
    async def test_restart_replaces_session(self, registry, display):
        """Test starting again replaces the session."""
        first = await registry.start_session("user-1", "session-1", display)
        second = await registry.start_session("user-1", "session-2", display)

        assert first.closed
        assert registry.get("user-1") is second
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_transcription_without_session(self, registry, classifier):
        """Test segments for unknown users are dropped."""
        handled = await registry.handle_transcription("ghost", "What is the capital of France?", True)

        assert handled is False
        assert classifier.requests == []

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, registry, classifier):
        """Test sessions do not share state."""
        from quibble.session.settings import InMemorySettings

        class Screen:
            def __init__(self):
                self.calls = []

            def show_text_wall(self, text):
                self.calls.append(("text", text))

            def show_double_text_wall(self, top_text, bottom_text):
                self.calls.append(("double", top_text, bottom_text))

        screen_a, screen_b = Screen(), Screen()
        classifier.add_replies("ANSWER: Paris")
        await registry.start_session("a", "sa", screen_a, settings=InMemorySettings())
        await registry.start_session("b", "sb", screen_b)

        await registry.handle_transcription("a", "What is the capital of France?", True)

        assert registry.get("a").buffer.last_displayed_answer == "Paris"
        assert registry.get("b").buffer.accumulated_text == ""
        assert not any(c[0] == "double" for c in screen_b.calls)

    @pytest.mark.asyncio
    async def test_permission_error_routed(self, registry, display):
        """Test errors are routed to the session."""
        from quibble.session.session import PERMISSION_DENIED_TEXT

        await registry.start_session("user-1", "session-1", display)
        await registry.handle_error("user-1", None, "Permission denied for microphone")

        assert display.last == ("text", PERMISSION_DENIED_TEXT)
