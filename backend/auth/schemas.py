"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime

from pydantic import BaseModel

from models.user import Role


# -- Requests --------------------------------------------------------------


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


# -- Responses -------------------------------------------------------------


class UserSummary(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    created_at: datetime


class LoginResponse(BaseModel):
    token: str
    token_type: str  # always "bearer"
    user: UserSummary
