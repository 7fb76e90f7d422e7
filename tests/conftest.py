"""Pytest configuration and fixtures for Quibble tests."""

from __future__ import annotations

import asyncio

import pytest

from quibble.classifier import MockClassifier
from quibble.common.events import EventBus
from quibble.config import Config
from quibble.session import QuibbleSession, SessionRegistry


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom command line options."""
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Configure test markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip slow tests unless --slow flag is set."""
    if not config.getoption("--slow"):
        skip_slow = pytest.mark.skip(reason="Need --slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


class RecordingDisplay:
    """Display surface that records every render call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []

    def show_text_wall(self, text: str) -> None:
        self.calls.append(("text", text))

    def show_double_text_wall(self, top_text: str, bottom_text: str) -> None:
        self.calls.append(("double", top_text, bottom_text))

    @property
    def last(self) -> tuple[str, ...] | None:
        return self.calls[-1] if self.calls else None

    def answers(self) -> list[str]:
        return [c[2] for c in self.calls if c[0] == "double"]

    def clear(self) -> None:
        self.calls.clear()


class GatedClassifier(MockClassifier):
    """Mock classifier whose calls block until released."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0

    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.release.wait()
            return await super()._complete(system, user, model, alternate)
        finally:
            self.active -= 1


@pytest.fixture
def config() -> Config:
    """Get test configuration."""
    cfg = Config()
    cfg.mock_mode = True
    cfg.app.mode = "development"
    cfg.app.log_level = "DEBUG"
    return cfg


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def classifier() -> MockClassifier:
    return MockClassifier()


@pytest.fixture
def gated_classifier() -> GatedClassifier:
    return GatedClassifier()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
async def session(config, display, classifier, event_bus):
    """Create a live session backed by the mock classifier."""
    session = QuibbleSession(
        "user-1",
        "session-1",
        display,
        classifier,
        config,
        event_bus=event_bus,
    )
    yield session
    await session.close()


@pytest.fixture
async def registry(config, classifier, event_bus):
    """Create a session registry backed by the mock classifier."""
    registry = SessionRegistry(config, classifier=classifier, event_bus=event_bus)
    yield registry
    await registry.close()
