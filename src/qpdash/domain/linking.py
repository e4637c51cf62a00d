from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def _pick(data: Mapping[str, Any], *names: str) -> Optional[str]:
    for name in names:
        value = data.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


@dataclass(frozen=True)
class BrokerTokens:
    """Opaque token bundle produced by the broker authorization step."""
    auth_token: Optional[str] = None
    request_token: Optional[str] = None
    feed_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_id: Optional[str] = None
    completed: bool = False

    @property
    def has_direct(self) -> bool:
        return bool(self.auth_token or self.request_token)

    @property
    def is_empty(self) -> bool:
        return not (
            self.has_direct
            or self.feed_token
            or self.refresh_token
            or self.token_id
            or self.completed
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "BrokerTokens":
        data = payload if isinstance(payload, Mapping) else {}
        return cls(
            auth_token=_pick(data, "authToken", "auth_token"),
            request_token=_pick(data, "requestToken", "request_token"),
            feed_token=_pick(data, "feedToken", "feed_token"),
            refresh_token=_pick(data, "refreshToken", "refresh_token"),
            token_id=_pick(data, "tokenId", "token_id"),
            completed=_truthy(data.get("completed")),
        )

    def to_payload(self) -> dict[str, Optional[str]]:
        """Request body for the linking-completion endpoint."""
        return {
            "authToken": self.auth_token,
            "requestToken": self.request_token,
            "feedToken": self.feed_token,
            "refreshToken": self.refresh_token,
            "tokenId": self.token_id,
        }


@dataclass(frozen=True)
class LinkMessage:
    """Message posted by the broker popup to the dashboard."""
    provider: Optional[str]
    ok: bool
    message: Optional[str] = None
    tokens: Optional[BrokerTokens] = None
    state: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "LinkMessage":
        data = payload if isinstance(payload, Mapping) else {}
        raw_tokens = data.get("tokens")
        tokens = BrokerTokens.from_payload(raw_tokens) if isinstance(raw_tokens, Mapping) else None
        provider = data.get("provider")
        return cls(
            provider=provider if isinstance(provider, str) else None,
            ok=_truthy(data.get("ok")),
            message=_pick(data, "message"),
            tokens=tokens,
            state=_pick(data, "state"),
        )
