import webbrowser
from typing import Callable, Optional


class BrowserPopup:
    """Opens the broker login page in the system browser."""

    def __init__(self, opener: Optional[Callable[[str], bool]] = None):
        self._opener = opener or webbrowser.open

    def open(self, url: str) -> bool:
        """Returns False when no browser could be launched (treated as a blocked popup)."""
        try:
            return bool(self._opener(url))
        except webbrowser.Error:
            return False
