"""Signed OAuth ``state`` tokens.

The state carries the requesting user id and the chosen provider through the
provider's redirect. It is ``<payload>.<signature>``, both base64url without
padding, where the payload is compact JSON ``{"user_id", "provider",
"nonce", "issued_at"}`` and the signature is HMAC-SHA256 over the encoded
payload with ``settings.oauth_state_secret``.

Nonces are one-time-use. The consumed-nonce store is process-local; the
signature and TTL checks hold across processes.
"""

import base64
import hashlib
import hmac
import json
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional


class OAuthStateError(ValueError):
    pass


class OAuthStateSecretMissingError(RuntimeError):
    """No usable signing secret is configured"""


PLACEHOLDER_SECRETS = frozenset({"", "change-me", "changeme", "secret"})


@dataclass(frozen=True)
class OAuthState:
    user_id: str
    provider: str
    nonce: str
    issued_at: int


_lock = threading.Lock()
# nonce -> wall-clock time after which it can be forgotten
_consumed_nonces: Dict[str, float] = {}


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _require_secret(secret: Optional[str]) -> str:
    if not secret or secret.strip().lower() in PLACEHOLDER_SECRETS:
        raise OAuthStateSecretMissingError("Missing OAuth configuration: OAUTH_STATE_SECRET")
    return secret


def _sign(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), encoded_payload.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def issue_state(user_id: str, provider: str, secret: Optional[str], now: Optional[float] = None) -> str:
    secret = _require_secret(secret)
    payload = {
        "user_id": user_id,
        "provider": provider,
        "nonce": secrets.token_urlsafe(16),
        "issued_at": int(now if now is not None else time.time()),
    }
    encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    return f"{encoded}.{_sign(encoded, secret)}"


def verify_state(state: str, secret: Optional[str], ttl_seconds: int, now: Optional[float] = None) -> OAuthState:
    """Check signature, age and single use; raise OAuthStateError otherwise"""
    secret = _require_secret(secret)
    now = now if now is not None else time.time()
    try:
        encoded, signature = state.split(".", 1)
    except (AttributeError, ValueError):
        raise OAuthStateError("malformed state")

    if not hmac.compare_digest(signature, _sign(encoded, secret)):
        raise OAuthStateError("bad signature")

    try:
        payload = json.loads(_b64decode(encoded))
        parsed = OAuthState(
            user_id=str(payload["user_id"]),
            provider=str(payload["provider"]),
            nonce=str(payload["nonce"]),
            issued_at=int(payload["issued_at"]),
        )
    except (ValueError, KeyError, TypeError):
        raise OAuthStateError("unreadable payload")

    if not parsed.user_id:
        raise OAuthStateError("missing user id")
    if now - parsed.issued_at > ttl_seconds or parsed.issued_at - now > 60:
        raise OAuthStateError("expired")

    with _lock:
        _evict_consumed(now)
        if parsed.nonce in _consumed_nonces:
            raise OAuthStateError("already used")
        _consumed_nonces[parsed.nonce] = parsed.issued_at + ttl_seconds

    return parsed


def _evict_consumed(now: float) -> None:
    expired = [nonce for nonce, forget_at in _consumed_nonces.items() if now >= forget_at]
    for nonce in expired:
        del _consumed_nonces[nonce]


def clear_consumed_nonces() -> None:
    with _lock:
        _consumed_nonces.clear()
