from __future__ import annotations

from typing import Optional

from qpdash.config.constants import PENDING_TOKEN_ID_KEY, PENDING_TOKENS_KEY
from qpdash.domain.linking import BrokerTokens
from qpdash.infrastructure.storage.kv_store import KeyValueStore


class PendingTokenCarryOver:
    """
    One persisted token bundle (or token handle) that survives a restart.

    `consume()` deletes the record before returning it, so it is used at most
    once whatever happens to the completion that follows.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def save(self, tokens: BrokerTokens) -> None:
        if tokens.has_direct:
            self._store.set(PENDING_TOKENS_KEY, tokens.to_payload())
            self._store.pop(PENDING_TOKEN_ID_KEY)
        elif tokens.token_id:
            self._store.set(PENDING_TOKEN_ID_KEY, tokens.token_id)
            self._store.pop(PENDING_TOKENS_KEY)

    def clear(self) -> None:
        self._store.pop(PENDING_TOKENS_KEY)
        self._store.pop(PENDING_TOKEN_ID_KEY)

    def peek(self) -> Optional[BrokerTokens]:
        return self._decode(self._store.get(PENDING_TOKENS_KEY), self._store.get(PENDING_TOKEN_ID_KEY))

    def consume(self) -> Optional[BrokerTokens]:
        blob = self._store.pop(PENDING_TOKENS_KEY)
        token_id = self._store.pop(PENDING_TOKEN_ID_KEY)
        return self._decode(blob, token_id)

    @staticmethod
    def _decode(blob, token_id) -> Optional[BrokerTokens]:
        if isinstance(blob, dict):
            tokens = BrokerTokens.from_payload(blob)
            if tokens.has_direct:
                return tokens
        if token_id:
            return BrokerTokens(token_id=str(token_id))
        return None
