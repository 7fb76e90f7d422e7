"""Per-session key-value settings with change notifications."""

from __future__ import annotations

from typing import Any, Callable, Protocol

SettingListener = Callable[[Any, Any], None]

SHOW_LIVE_TRANSCRIPTION = "show_live_transcription"


class SettingsStore(Protocol):
    """Settings capability offered by the host session."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def on_value_change(self, key: str, listener: SettingListener) -> Callable[[], None]: ...


class InMemorySettings:
    """Settings store for hosts that do not provide one (CLI, tests)."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._listeners: dict[str, list[SettingListener]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a value and notify listeners with (new, old)."""
        old = self._values.get(key)
        self._values[key] = value
        if old != value:
            for listener in list(self._listeners.get(key, [])):
                listener(value, old)

    def on_value_change(self, key: str, listener: SettingListener) -> Callable[[], None]:
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners.get(key, []):
                self._listeners[key].remove(listener)

        return unsubscribe
