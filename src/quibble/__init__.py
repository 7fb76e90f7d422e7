"""Quibble - live trivia answers for smart glasses captions."""

__version__ = "0.1.0"
__author__ = "Quibble Team"

from quibble.config import Config, load_config

__all__ = ["Config", "load_config", "__version__"]
