"""
Completion resolver: turns whatever evidence the broker popup delivered into
one linking outcome.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional
from urllib.parse import quote

from twisted.internet.defer import inlineCallbacks

from qpdash.application.linking.ack_gate import LinkAcknowledgmentGate
from qpdash.application.linking.carry_over import PendingTokenCarryOver
from qpdash.application.linking.context import LinkingContext
from qpdash.application.protocols import RemoteClientLike
from qpdash.application.state import AccountStateStore
from qpdash.config.constants import ANGEL_PROVIDER, LinkOutcome, LinkPhase
from qpdash.domain.accounts import AngelSettings
from qpdash.domain.linking import BrokerTokens, LinkMessage
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.messages import format_info, format_link

LINKED_MESSAGE = "Angel account linked successfully ✅"


class CompletionResolver(LoggingMixin[BaseCallbacks]):
    """
    Dispatch order for a popup message:

    1. foreign provider → ignored
    2. ok=false → error surfaced, no retry
    3. authToken/requestToken → completion call, provisional apply, acknowledge
    4. completed → acknowledge (the gate refreshes the profile)
    5. tokenId → fetch the bundle by handle, then as 3
    6. no token payload → acknowledge
    7. anything else → "no valid tokens"
    """

    def __init__(
        self,
        client: RemoteClientLike,
        store: AccountStateStore,
        gate: LinkAcknowledgmentGate,
        context: LinkingContext,
        carry_over: PendingTokenCarryOver,
        *,
        is_polling: Callable[[], bool],
    ):
        self._client = client
        self._store = store
        self._gate = gate
        self._context = context
        self._carry_over = carry_over
        self._is_polling = is_polling
        self._callbacks = BaseCallbacks()

    def set_callbacks(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(BaseCallbacks, on_error=on_error, on_log=on_log)

    @inlineCallbacks
    def handle_message(self, payload: Mapping[str, Any], *, persist: bool = True):
        message = LinkMessage.from_payload(payload)
        if message.provider != ANGEL_PROVIDER:
            return LinkOutcome.IGNORED
        attempt_id = self._context.attempt.attempt_id

        if not message.ok:
            return self._fail(message.message or "Angel login failed")

        tokens = message.tokens
        if tokens is None:
            self._log(format_info("Angel popup reported success without tokens"))
            yield self._gate.acknowledge(LINKED_MESSAGE, attempt_id)
            return LinkOutcome.LINKED

        if tokens.has_direct:
            return (yield self._complete_persisted(tokens, attempt_id, persist))

        if tokens.completed:
            self._log(format_info("Angel popup reports linking already completed"))
            yield self._gate.acknowledge(LINKED_MESSAGE, attempt_id)
            return LinkOutcome.LINKED

        if tokens.token_id:
            return (yield self._complete_persisted(tokens, attempt_id, persist))

        return self._fail("No valid tokens received from Angel")

    @inlineCallbacks
    def _complete_persisted(self, tokens: BrokerTokens, attempt_id: int, persist: bool):
        if persist:
            self._carry_over.save(tokens)
        try:
            if tokens.has_direct:
                outcome = yield self._complete(tokens, attempt_id)
            else:
                outcome = yield self._complete_from_handle(tokens.token_id, attempt_id)
        finally:
            if persist:
                self._carry_over.clear()
        return outcome

    @inlineCallbacks
    def _complete_from_handle(self, token_id: str, attempt_id: int):
        self._log(format_link(f"Fetching Angel tokens by handle {token_id}"))
        result = yield self._client.get(f"/user/angel/tokens/{quote(token_id, safe='')}")
        raw = result.get("tokens") if result.ok else None
        fetched = BrokerTokens.from_payload(raw) if isinstance(raw, Mapping) else None
        if fetched is None or fetched.is_empty:
            if result.session_expired:
                return LinkOutcome.FAILED
            return self._fail("Could not retrieve Angel tokens. Please try linking again.")
        bundle = BrokerTokens(
            auth_token=fetched.auth_token,
            request_token=fetched.request_token,
            feed_token=fetched.feed_token,
            refresh_token=fetched.refresh_token,
            token_id=token_id,
        )
        return (yield self._complete(bundle, attempt_id))

    @inlineCallbacks
    def _complete(self, tokens: BrokerTokens, attempt_id: int):
        result = yield self._client.post("/user/angel/complete", tokens.to_payload())
        if not result.ok:
            if result.session_expired:
                return LinkOutcome.FAILED
            return self._fail(result.user_error("Failed to link Angel account"))
        current = self._store.current()
        base = current.angel if current is not None else AngelSettings()
        self._store.apply_provisional_angel(base.merged(result.get("angel")))
        yield self._gate.acknowledge(LINKED_MESSAGE, attempt_id)
        return LinkOutcome.LINKED

    def _fail(self, error: str) -> LinkOutcome:
        self._emit_error(error)
        if not self._is_polling():
            self._context.set_phase(LinkPhase.FAILED, error)
        return LinkOutcome.FAILED
