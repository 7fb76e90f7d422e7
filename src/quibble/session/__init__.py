"""Live sessions and their registry."""

from quibble.session.registry import SessionCapabilities, SessionRegistry
from quibble.session.session import QuibbleSession
from quibble.session.settings import InMemorySettings, SettingsStore

__all__ = [
    "InMemorySettings",
    "QuibbleSession",
    "SessionCapabilities",
    "SessionRegistry",
    "SettingsStore",
]
