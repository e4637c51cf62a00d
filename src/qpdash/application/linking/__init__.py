"""Angel broker linking protocol."""

from qpdash.application.linking.ack_gate import LinkAcknowledgmentGate
from qpdash.application.linking.carry_over import PendingTokenCarryOver
from qpdash.application.linking.context import LinkingAttempt, LinkingContext
from qpdash.application.linking.poll_watcher import PollWatcher
from qpdash.application.linking.resolver import CompletionResolver
from qpdash.application.linking.service import AngelLinkService

__all__ = [
    "AngelLinkService",
    "CompletionResolver",
    "LinkAcknowledgmentGate",
    "LinkingAttempt",
    "LinkingContext",
    "PendingTokenCarryOver",
    "PollWatcher",
]
