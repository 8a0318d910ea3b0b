"""
Auth endpoints – login, logout, password change, current-user info, and the
one-shot bootstrap of the first admin.

Security notes
--------------
* Login returns the *same* error whether the email doesn't exist or the
  password is wrong.  This prevents user-enumeration attacks.
* change-password verifies the current password before accepting the new
  one, so a stolen (but not yet expired) token alone cannot reset the
  password.  Every other session of that user is revoked afterwards.
* Logout revokes the token server-side; it is unusable immediately.
"""

from fastapi import APIRouter, Depends

from core.config import settings
from core.errors import Forbidden, InvalidCredentials, ValidationError
from core.gateway import (
    Principal,
    get_current_principal,
    get_directory,
    get_hasher,
    get_sessions,
)
from core.logger import logger
from core.security import CredentialHasher
from models.user import Role
from store.sessions import SessionStore
from store.users import IdentityDirectory
from auth.schemas import ChangePasswordRequest, LoginRequest, LoginResponse, UserSummary

router = APIRouter(prefix="/api", tags=["auth"])

# Compared against when the email is unknown; no password hashes to it
_DUMMY_DIGEST = "0" * 64


def validate_new_password(pw: str) -> None:
    if len(pw) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters"
        )


def bootstrap_admin(
    directory: IdentityDirectory,
    hasher: CredentialHasher,
    *,
    name: str,
    email: str,
    password: str,
):
    """Create the first admin.  Only valid while the directory is empty."""
    if not directory.is_empty():
        raise ValidationError("Already initialized", reason="already_initialized")
    if not email or not password:
        raise ValidationError(
            "FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD must be set",
            reason="bootstrap_not_configured",
        )
    validate_new_password(password)
    return directory.create(
        name=name, email=email, password_hash=hasher.digest(password), role=Role.ADMIN
    )


# ---------------------------------------------------------------------------
# Public routes
# ---------------------------------------------------------------------------


@router.post("/auth/register")
def register():
    """Public self-registration is disabled; admins create accounts."""
    raise Forbidden(
        "Public registration is disabled. Contact admin for an account.",
        reason="registration_disabled",
    )


@router.post("/init")
def init(
    directory: IdentityDirectory = Depends(get_directory),
    hasher: CredentialHasher = Depends(get_hasher),
):
    """Create the first admin account from FIRST_ADMIN_* settings."""
    user = bootstrap_admin(
        directory,
        hasher,
        name=settings.first_admin_name,
        email=settings.first_admin_email,
        password=settings.first_admin_password,
    )
    logger.info("bootstrap admin created id=%s", user.id)
    return {"success": True, "user": user.summary()}


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    directory: IdentityDirectory = Depends(get_directory),
    hasher: CredentialHasher = Depends(get_hasher),
    sessions: SessionStore = Depends(get_sessions),
):
    """Verify the credentials and issue a bearer session."""
    user = directory.find_by_email(body.email)

    # Unified failure path – an unknown email still pays for a full digest so
    # neither the body nor the latency reveals whether the account exists
    if user is None:
        hasher.verify(body.password, _DUMMY_DIGEST)
        raise InvalidCredentials()
    if not hasher.verify(body.password, user.password_hash):
        raise InvalidCredentials()

    token = sessions.issue(user.id, user.email)
    logger.info("login user=%s", user.id)
    return LoginResponse(token=token, token_type="bearer", user=user.summary())


# ---------------------------------------------------------------------------
# Authenticated routes
# ---------------------------------------------------------------------------


@router.post("/auth/logout")
def logout(
    principal: Principal = Depends(get_current_principal),
    sessions: SessionStore = Depends(get_sessions),
):
    sessions.revoke(principal.token)
    return {"success": True}


@router.get("/auth/me", response_model=UserSummary)
def me(
    principal: Principal = Depends(get_current_principal),
    directory: IdentityDirectory = Depends(get_directory),
):
    """Return the authenticated user's public profile (no digest)."""
    return directory.find_by_email(principal.email).summary()


@router.post("/auth/change-password")
def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    directory: IdentityDirectory = Depends(get_directory),
    hasher: CredentialHasher = Depends(get_hasher),
    sessions: SessionStore = Depends(get_sessions),
):
    """Change the authenticated user's password and drop their other sessions."""
    validate_new_password(body.new_password)

    user = directory.find_by_email(principal.email)
    if not hasher.verify(body.current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")

    directory.update_credential(user.id, hasher.digest(body.new_password))
    revoked = sessions.revoke_user(user.id, keep=principal.token)
    logger.info("password changed user=%s revoked_sessions=%d", user.id, revoked)
    return {"success": True}
