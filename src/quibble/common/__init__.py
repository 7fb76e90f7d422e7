"""Common utilities for Quibble."""

from quibble.common.logging import get_logger, setup_logging
from quibble.common.events import Event, EventBus, topic_matches

__all__ = [
    "get_logger",
    "setup_logging",
    "Event",
    "EventBus",
    "topic_matches",
]
