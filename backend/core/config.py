"""
Application configuration.
All secrets and connection strings are loaded exclusively from environment
variables (via etc/app.conf).  Nothing sensitive is hard-coded here.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Project root is two levels up from this file  (backend/core/config.py → project/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    # Database holding the key-value namespace
    database_url: str  # e.g. sqlite:///./data/meetadmin.sqlite3

    # AES-256 master key – base64-encoded 32 random bytes.
    # Encrypts the secret fields of the stored server / email configs.
    master_encryption_key: str

    # Session lifetime (1 week = 7 days * 24 hours * 60 minutes)
    session_expire_minutes: int = 10080

    # PBKDF2 work factor for login credentials
    password_hash_rounds: int = 600_000
    min_password_length: int = 6

    # Used by POST /api/init and bin/seed_admin.py to bootstrap the first
    # admin account.  After seeding these values are inert.
    first_admin_name: str = "Admin User"
    first_admin_email: str = ""
    first_admin_password: str = ""

    # Outbound HTTP timeouts (seconds)
    upstream_timeout_seconds: float = 15.0
    mail_timeout_seconds: float = 15.0

    # Mail fallbacks used when no provider is configured in the console
    resend_api_key: str = ""
    email_from: str = "Meeting Admin <noreply@example.com>"

    # Comma-separated list of origins allowed by CORS
    allowed_origins: str = "http://localhost:8000"

    # app.conf lives in etc/ – resolved relative to the project root so that
    # the file is found regardless of the working directory.
    model_config = {"env_file": str(_PROJECT_ROOT / "etc" / "app.conf")}

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Module-level singleton – import this everywhere: from core.config import settings
settings = Settings()
