"""
Outbound mail – thin HTTP relays to transactional mail providers.

Provider selection, in order:
1. the provider saved in the console's email config (unless "mailchannels")
2. Resend, when RESEND_API_KEY is set
3. MailChannels

Delivery failures are reported in the returned :class:`SendResult`; they are
never raised to the caller.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional

import httpx

from core.logger import logger

PROVIDERS = frozenset({"smtp2go", "mailjet", "sendgrid", "mailchannels"})

_SENDER_NAME = "Meeting Admin"


@dataclass(frozen=True)
class SendResult:
    success: bool
    provider: str
    status: Optional[int] = None
    error: Optional[str] = None


class MailSender:
    def __init__(
        self,
        config: Optional[dict],
        *,
        resend_api_key: str = "",
        default_from: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or {}
        self._resend_api_key = resend_api_key
        self._default_from = default_from
        self._timeout = timeout
        self._transport = transport

    @property
    def provider(self) -> str:
        provider = self._config.get("provider")
        if provider and provider != "mailchannels":
            return provider
        if self._resend_api_key:
            return "resend"
        return "mailchannels"

    def _from_address(self) -> str:
        return self._config.get("from_address") or self._default_from

    def _request(self, provider: str, to: str, subject: str, html: str) -> dict:
        cfg = self._config
        sender = self._from_address()
        if provider == "smtp2go":
            return {
                "url": "https://api.smtp2go.com/v3/email/send",
                "json": {
                    "api_key": cfg.get("api_key", ""),
                    "to": [to],
                    "sender": sender,
                    "subject": subject,
                    "html_body": html,
                },
            }
        if provider == "mailjet":
            return {
                "url": "https://api.mailjet.com/v3.1/send",
                "auth": (cfg.get("api_key", ""), cfg.get("api_secret", "")),
                "json": {
                    "Messages": [{
                        "From": {"Email": sender, "Name": _SENDER_NAME},
                        "To": [{"Email": to}],
                        "Subject": subject,
                        "HTMLPart": html,
                    }]
                },
            }
        if provider == "sendgrid":
            return {
                "url": "https://api.sendgrid.com/v3/mail/send",
                "headers": {"Authorization": f"Bearer {cfg.get('api_key', '')}"},
                "json": {
                    "personalizations": [{"to": [{"email": to}]}],
                    "from": {"email": sender},
                    "subject": subject,
                    "content": [{"type": "text/html", "value": html}],
                },
            }
        if provider == "resend":
            return {
                "url": "https://api.resend.com/emails",
                "headers": {"Authorization": f"Bearer {self._resend_api_key}"},
                "json": {"from": sender, "to": [to], "subject": subject, "html": html},
            }
        if provider == "mailchannels":
            return {
                "url": "https://api.mailchannels.net/tx/v1/send",
                "json": {
                    "personalizations": [{"to": [{"email": to}]}],
                    "from": {"email": sender, "name": _SENDER_NAME},
                    "subject": subject,
                    "content": [{"type": "text/html", "value": html}],
                },
            }
        raise ValueError(f"Unknown mail provider '{provider}'")

    def send(self, to: str, subject: str, html: str) -> SendResult:
        provider = self.provider
        try:
            request = self._request(provider, to, subject, html)
        except ValueError as exc:
            return SendResult(success=False, provider=provider, error=str(exc))

        url = request.pop("url")
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(url, **request)
        except httpx.HTTPError as exc:
            logger.warning("mail send failed provider=%s error=%s", provider, type(exc).__name__)
            return SendResult(success=False, provider=provider, error="Mail provider unreachable")

        ok = response.is_success
        if not ok:
            logger.warning("mail rejected provider=%s status=%d", provider, response.status_code)
        return SendResult(success=ok, provider=provider, status=response.status_code)


def render_invite(name: str, meeting_title: str, join_link: Optional[str], is_moderator: bool) -> str:
    """Invite mail body.  Every interpolated value is HTML-escaped."""
    role = "Moderator" if is_moderator else "Participant"
    badge_bg, badge_fg = ("#f59e0b20", "#fbbf24") if is_moderator else ("#8b5cf620", "#a78bfa")
    if join_link:
        link = f'<p><a href="{escape(join_link)}" class="button">Join Meeting</a></p>'
    else:
        link = "<p><em>Join link will be sent separately.</em></p>"
    return f"""<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #0f172a; color: #f8fafc; padding: 40px; margin: 0; }}
    .container {{ max-width: 600px; margin: 0 auto; background: #1e293b; border-radius: 16px; padding: 40px; }}
    p {{ color: #94a3b8; line-height: 1.6; }}
    .button {{ display: inline-block; background: #8b5cf6; color: white !important; padding: 14px 28px; border-radius: 12px; text-decoration: none; font-weight: 600; }}
    .role {{ display: inline-block; background: {badge_bg}; color: {badge_fg}; padding: 4px 12px; border-radius: 20px; font-size: 12px; }}
    .footer {{ margin-top: 30px; border-top: 1px solid #334155; color: #64748b; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>You're Invited!</h1>
    <p>Hi {escape(name)},</p>
    <p>You've been invited to <strong>{escape(meeting_title)}</strong> as a <span class="role">{role}</span>.</p>
    {link}
    <div class="footer">Sent via Meeting Admin</div>
  </div>
</body>
</html>"""
