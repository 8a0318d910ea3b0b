"""Bearer sessions kept in the key-value namespace under ``session:<token>``."""

import json
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from core.security import generate_token
from store.kv import KeyValueStore

_PREFIX = "session:"


@dataclass(frozen=True)
class SessionInfo:
    user_id: str
    email: str
    issued_at: float
    expires_at: float


class SessionStore:
    """Issue, resolve and revoke opaque session tokens with a fixed TTL."""

    def __init__(self, kv: KeyValueStore, *, ttl: timedelta = timedelta(days=7)) -> None:
        self._kv = kv
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: str, email: str) -> str:
        # Abandoned sessions are never resolved again; sweep them here
        self._kv.purge_expired()
        token = generate_token()
        seconds = self._ttl.total_seconds()
        issued_at = self._kv.now()
        self._kv.put_json(
            _PREFIX + token,
            {
                "user_id": user_id,
                "email": email,
                "issued_at": issued_at,
                "expires_at": issued_at + seconds,
            },
            ttl=seconds,
        )
        return token

    def resolve(self, token: str | None) -> Optional[SessionInfo]:
        # Unknown, expired and malformed tokens all end up here as None
        if not token:
            return None
        record = self._kv.get_json(_PREFIX + token)
        if not isinstance(record, dict):
            return None
        try:
            return SessionInfo(
                user_id=str(record["user_id"]),
                email=str(record["email"]),
                issued_at=float(record["issued_at"]),
                expires_at=float(record["expires_at"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def revoke(self, token: str) -> None:
        self._kv.delete(_PREFIX + token)

    def revoke_user(self, user_id: str, *, keep: str | None = None) -> int:
        """Drop every live session bound to *user_id* except *keep*.  Returns the count."""
        revoked = 0
        for key, raw in self._kv.scan(_PREFIX):
            token = key[len(_PREFIX):]
            if token == keep:
                continue
            try:
                bound_to = json.loads(raw).get("user_id")
            except (ValueError, AttributeError):
                continue
            if bound_to == user_id:
                self._kv.delete(key)
                revoked += 1
        return revoked
