"""Invite mail endpoint."""

from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.config import settings
from core.gateway import Principal, get_configs, get_current_principal
from core.logger import logger
from store.configs import EMAIL, SecretConfigStore
from mail.sender import MailSender, render_invite

router = APIRouter(prefix="/api/email", tags=["mail"])


class InviteRequest(BaseModel):
    to: str
    name: str
    meeting_title: str
    join_link: Optional[str] = None
    is_moderator: bool = False


def get_mail_transport() -> Optional[httpx.BaseTransport]:
    """Overridden in tests with an ``httpx.MockTransport``."""
    return None


@router.post("/invite")
def send_invite(
    body: InviteRequest,
    principal: Principal = Depends(get_current_principal),
    configs: SecretConfigStore = Depends(get_configs),
    transport: Optional[httpx.BaseTransport] = Depends(get_mail_transport),
):
    sender = MailSender(
        configs.load(EMAIL),
        resend_api_key=settings.resend_api_key,
        default_from=settings.email_from,
        timeout=settings.mail_timeout_seconds,
        transport=transport,
    )
    html = render_invite(body.name, body.meeting_title, body.join_link, body.is_moderator)
    result = sender.send(body.to, f"You're invited: {body.meeting_title}", html)
    logger.info(
        "invite mail user=%s provider=%s success=%s",
        principal.user_id,
        result.provider,
        result.success,
    )
    return {
        "success": result.success,
        "provider": result.provider,
        "status": result.status,
        "error": result.error,
    }
