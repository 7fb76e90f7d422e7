"""Display state policy."""

from quibble.display.policy import DisplayState, DisplayStatePolicy, DisplaySurface

__all__ = ["DisplayState", "DisplayStatePolicy", "DisplaySurface"]
