"""
Auth gateway – the single entry point that route handlers use to turn a
bearer token into a principal, gate admin-only routes, and call the meeting
server on a principal's behalf.

Per request: Unauthenticated → Authenticated → Authorized → handler.  Any
failure short-circuits with ``Unauthorized`` (401) or ``Forbidden`` (403)
before the handler body runs, so nothing is written for a rejected request.

The FastAPI dependencies at the bottom wire one ``KeyValueStore`` per request
into every store, so a single request sees a single DB session.
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.config import settings
from core.errors import (
    Forbidden,
    NotConfigured,
    Unauthorized,
    UpstreamInvalidResponse,
    UpstreamUnavailable,
    ValidationError,
)
from core.logger import logger
from core.security import CredentialHasher, sign_body
from database import get_db
from models.user import Role
from store.configs import SERVER, SecretConfigStore
from store.kv import Clock, KeyValueStore
from store.sessions import SessionStore
from store.users import IdentityDirectory

# Upstream path prefix the meeting server exposes for signed calls
_UPSTREAM_PREFIX = "/auth/"


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str
    name: str
    role: Role
    token: str


@dataclass(frozen=True)
class UpstreamReply:
    status_code: int
    payload: Any


def _grants(role: Role, required: Role) -> bool:
    if required is Role.MODERATOR:
        return role in (Role.ADMIN, Role.MODERATOR)
    if required is Role.ADMIN:
        return role is Role.ADMIN
    raise AssertionError(f"unhandled role {required!r}")


class AuthGateway:
    def __init__(
        self,
        sessions: SessionStore,
        directory: IdentityDirectory,
        configs: SecretConfigStore,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._sessions = sessions
        self._directory = directory
        self._configs = configs
        self._timeout = timeout
        self._transport = transport

    # -- authentication / authorization --------------------------------------

    def authenticate(self, token: str | None) -> Principal:
        session = self._sessions.resolve(token)
        if session is None:
            raise Unauthorized()
        user = self._directory.find_by_email(session.email)
        # The email may have been deleted and re-registered under a new id
        if user is None or user.id != session.user_id:
            raise Unauthorized()
        return Principal(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            token=token,
        )

    def authorize_role(self, principal: Principal, required: Role) -> Principal:
        if not _grants(principal.role, required):
            raise Forbidden("Admin access required", reason="admin_required")
        return principal

    # -- signed proxy --------------------------------------------------------

    def server_credentials(self) -> dict:
        config = self._configs.load(SERVER)
        if not config or not all(config.get(k) for k in ("url", "api_key", "api_secret")):
            raise NotConfigured()
        return config

    def proxy_signed_call(self, principal: Principal, endpoint: str, body: bytes) -> UpstreamReply:
        """
        Sign *body* with the stored API secret and POST it to the meeting
        server.  The upstream status and JSON payload are returned untouched.
        """
        segments = [s for s in endpoint.strip("/").split("/") if s]
        if not segments or any(s in (".", "..") for s in segments):
            raise ValidationError("Invalid meeting server endpoint")

        creds = self.server_credentials()
        url = creds["url"].rstrip("/") + _UPSTREAM_PREFIX + "/".join(segments)
        headers = {
            "Content-Type": "application/json",
            "API-KEY": creds["api_key"],
            "HASH-SIGNATURE": sign_body(body, creds["api_secret"]),
        }

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("upstream call failed endpoint=%s error=%s", endpoint, type(exc).__name__)
            raise UpstreamUnavailable() from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("upstream non-JSON reply endpoint=%s status=%d", endpoint, response.status_code)
            raise UpstreamInvalidResponse() from exc

        logger.info(
            "proxied endpoint=%s user=%s status=%d",
            endpoint,
            principal.user_id,
            response.status_code,
        )
        return UpstreamReply(status_code=response.status_code, payload=payload)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    return time.time


def get_kv(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> KeyValueStore:
    return KeyValueStore(db, clock=clock)


def get_hasher(kv: KeyValueStore = Depends(get_kv)) -> CredentialHasher:
    return CredentialHasher(kv)


def get_sessions(kv: KeyValueStore = Depends(get_kv)) -> SessionStore:
    return SessionStore(kv, ttl=timedelta(minutes=settings.session_expire_minutes))


def get_directory(kv: KeyValueStore = Depends(get_kv)) -> IdentityDirectory:
    return IdentityDirectory(kv)


def get_configs(kv: KeyValueStore = Depends(get_kv)) -> SecretConfigStore:
    return SecretConfigStore(kv)


def get_upstream_transport() -> Optional[httpx.BaseTransport]:
    """Overridden in tests with an ``httpx.MockTransport``."""
    return None


def get_gateway(
    sessions: SessionStore = Depends(get_sessions),
    directory: IdentityDirectory = Depends(get_directory),
    configs: SecretConfigStore = Depends(get_configs),
    transport: Optional[httpx.BaseTransport] = Depends(get_upstream_transport),
) -> AuthGateway:
    return AuthGateway(
        sessions,
        directory,
        configs,
        timeout=settings.upstream_timeout_seconds,
        transport=transport,
    )


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    gateway: AuthGateway = Depends(get_gateway),
) -> Principal:
    """Dependency: resolve the bearer token.  Raises 401 on any failure."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized()
    return gateway.authenticate(credentials.credentials)


def require_admin(
    principal: Principal = Depends(get_current_principal),
    gateway: AuthGateway = Depends(get_gateway),
) -> Principal:
    """Dependency: :func:`get_current_principal` plus ``role == admin``.  Raises 403 otherwise."""
    return gateway.authorize_role(principal, Role.ADMIN)
