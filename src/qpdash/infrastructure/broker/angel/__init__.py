"""Angel broker popup and callback plumbing."""

from qpdash.infrastructure.broker.angel.callback_server import CallbackServer, LinkCallbackResource
from qpdash.infrastructure.broker.angel.popup import BrowserPopup

__all__ = ["BrowserPopup", "CallbackServer", "LinkCallbackResource"]
