"""Pydantic request / response models for the admin endpoints."""

from typing import List, Optional

from pydantic import BaseModel

from auth.schemas import UserSummary
from models.user import Role


# -- Requests --------------------------------------------------------------


class CreateUserRequest(BaseModel):
    name: str
    email: str
    password: str
    role: Role = Role.MODERATOR


# Config writes are partial: only the fields present in the body are merged
# over the stored config (see store/configs.py).  Secret fields may carry the
# masked value returned by GET /api/config, which keeps the stored secret.


class ServerConfigRequest(BaseModel):
    url: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


class EmailConfigRequest(BaseModel):
    provider: Optional[str] = None  # "smtp2go" | "mailjet" | "sendgrid" | "mailchannels"
    from_address: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


# -- Responses -------------------------------------------------------------


class UserListResponse(BaseModel):
    users: List[UserSummary]


class ConfigResponse(BaseModel):
    server_config: Optional[dict] = None
    email_config: Optional[dict] = None
