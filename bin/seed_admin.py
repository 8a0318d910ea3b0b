"""
Bootstrap script – creates the first admin user.

Run once after the initial migration:
    alembic upgrade head
    python bin/seed_admin.py

The script reads FIRST_ADMIN_NAME, FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD
from etc/app.conf.  It does the same thing as POST /api/init and refuses to
run once any user exists.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_admin.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.config import settings            # noqa: E402
from core.errors import ValidationError     # noqa: E402
from core.security import CredentialHasher  # noqa: E402
from database import SessionLocal           # noqa: E402
from store.kv import KeyValueStore          # noqa: E402
from store.users import IdentityDirectory   # noqa: E402
from auth.router import bootstrap_admin     # noqa: E402


def seed() -> int:
    db = SessionLocal()
    try:
        kv = KeyValueStore(db)
        try:
            user = bootstrap_admin(
                IdentityDirectory(kv),
                CredentialHasher(kv),
                name=settings.first_admin_name,
                email=settings.first_admin_email,
                password=settings.first_admin_password,
            )
        except ValidationError as exc:
            print(f"[seed_admin] {exc.message} – nothing to do.")
            return 1
        print(f"[seed_admin] Admin '{user.email}' created successfully.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(seed())
