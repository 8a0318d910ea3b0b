"""
Admin endpoints – user lifecycle and the meeting-server / mail settings.

Every endpoint in this router is guarded by ``require_admin``.  A request
that carries a valid session but belongs to a ``moderator`` receives 403
before any business logic runs.
"""

from fastapi import APIRouter, Depends

from core.errors import ValidationError
from core.gateway import (
    AuthGateway,
    Principal,
    get_configs,
    get_directory,
    get_gateway,
    get_hasher,
    get_sessions,
    require_admin,
)
from core.logger import logger
from core.security import CredentialHasher
from store.configs import EMAIL, SERVER, SecretConfigStore
from store.sessions import SessionStore
from store.users import IdentityDirectory
from auth.router import validate_new_password
from auth.schemas import UserSummary
from admin.schemas import (
    ConfigResponse,
    CreateUserRequest,
    EmailConfigRequest,
    ServerConfigRequest,
    UserListResponse,
)
from mail.sender import PROVIDERS

router = APIRouter(prefix="/api", tags=["admin"])

# Cheap upstream call used to check that the stored credentials are accepted
_CHECK_ENDPOINT = "room/getActiveRoomsInfo"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    admin: Principal = Depends(require_admin),
    directory: IdentityDirectory = Depends(get_directory),
):
    """Return every user summary (no password data)."""
    return UserListResponse(users=directory.list_summaries())


@router.post("/users", response_model=UserSummary)
def create_user(
    body: CreateUserRequest,
    admin: Principal = Depends(require_admin),
    directory: IdentityDirectory = Depends(get_directory),
    hasher: CredentialHasher = Depends(get_hasher),
):
    """Create an account.  Duplicate emails (case-insensitive) yield 409."""
    if not body.name.strip() or not body.email.strip():
        raise ValidationError("Missing required fields")
    validate_new_password(body.password)

    user = directory.create(
        name=body.name,
        email=body.email,
        password_hash=hasher.digest(body.password),
        role=body.role,
    )
    logger.info("admin=%s created user=%s", admin.user_id, user.id)
    return user.summary()


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    admin: Principal = Depends(require_admin),
    directory: IdentityDirectory = Depends(get_directory),
    sessions: SessionStore = Depends(get_sessions),
):
    """
    Remove an account and revoke its sessions.

    Guard: an admin cannot delete their own account.
    """
    if directory.delete(user_id, acting_user_id=admin.user_id):
        sessions.revoke_user(user_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/config", response_model=ConfigResponse)
def get_config(
    admin: Principal = Depends(require_admin),
    configs: SecretConfigStore = Depends(get_configs),
):
    """Both configs with every secret field masked."""
    return ConfigResponse(
        server_config=configs.get(SERVER),
        email_config=configs.get(EMAIL) or {"from_address": ""},
    )


@router.post("/config/server")
def save_server_config(
    body: ServerConfigRequest,
    admin: Principal = Depends(require_admin),
    configs: SecretConfigStore = Depends(get_configs),
):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("url") is not None:
        url = fields["url"].strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValidationError("Server URL must start with http:// or https://")
        fields["url"] = url

    saved = configs.put(SERVER, fields)
    logger.info("admin=%s updated server config fields=%s", admin.user_id, sorted(fields))
    return {"success": True, "server_config": saved}


@router.post("/config/email")
def save_email_config(
    body: EmailConfigRequest,
    admin: Principal = Depends(require_admin),
    configs: SecretConfigStore = Depends(get_configs),
):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("provider") and fields["provider"] not in PROVIDERS:
        raise ValidationError(f"Unknown provider. Must be one of: {', '.join(sorted(PROVIDERS))}")

    saved = configs.put(EMAIL, fields)
    logger.info("admin=%s updated email config fields=%s", admin.user_id, sorted(fields))
    return {"success": True, "email_config": saved}


@router.post("/config/server/test")
def test_server_config(
    admin: Principal = Depends(require_admin),
    gateway: AuthGateway = Depends(get_gateway),
):
    """Send a signed check request to the meeting server with the stored credentials."""
    reply = gateway.proxy_signed_call(admin, _CHECK_ENDPOINT, b"{}")
    ok = 200 <= reply.status_code < 300
    return {"success": ok, "status_code": reply.status_code, "response": reply.payload}
