"""
Identity directory.

Layout in the key-value namespace
---------------------------------
* ``user:<normalized email>``  full record, including the password digest.
* ``users:list``               ordered summaries (no digest) for listings and
                               for resolving a user id back to its email.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from core.errors import Conflict, Forbidden
from core.logger import logger
from models.user import Role, User, normalize_email
from store.kv import KeyValueStore

_USER_PREFIX = "user:"
_LIST_KEY = "users:list"


class IdentityDirectory:
    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def _summaries(self) -> list[dict]:
        return self._kv.get_json(_LIST_KEY, default=[])

    # -- lookups -------------------------------------------------------------

    def find_by_email(self, email: str) -> Optional[User]:
        record = self._kv.get_json(_USER_PREFIX + normalize_email(email))
        return User.from_record(record) if record else None

    def find_by_id(self, user_id: str) -> Optional[str]:
        for row in self._summaries():
            if row["id"] == user_id:
                return row["email"]
        return None

    def list_summaries(self) -> list[dict]:
        return list(self._summaries())

    def is_empty(self) -> bool:
        return not self._summaries()

    # -- mutations -----------------------------------------------------------

    def create(self, *, name: str, email: str, password_hash: str, role: Role) -> User:
        """
        Persist a new user.  The ``user:<email>`` key is claimed with a
        conditional insert so two concurrent creates cannot both succeed.
        """
        user = User(
            id=uuid.uuid4().hex,
            email=normalize_email(email),
            name=name.strip(),
            role=role,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        created = self._kv.put_if_absent(
            _USER_PREFIX + user.email, json.dumps(user.to_record())
        )
        if not created:
            raise Conflict("Email already exists")

        summaries = self._summaries()
        summaries.append(user.summary())
        self._kv.put_json(_LIST_KEY, summaries)
        logger.info("user created id=%s role=%s", user.id, user.role.value)
        return user

    def update_credential(self, user_id: str, password_hash: str) -> None:
        email = self.find_by_id(user_id)
        user = self.find_by_email(email) if email else None
        if user is None or user.id != user_id:
            raise LookupError(f"Unknown user id {user_id}")
        record = user.to_record()
        record["password_hash"] = password_hash
        self._kv.put_json(_USER_PREFIX + user.email, record)

    def delete(self, user_id: str, *, acting_user_id: str) -> bool:
        """
        Remove a user.  Returns False if the id is unknown.

        Raises ``Forbidden`` when a user tries to delete their own account.
        """
        if user_id == acting_user_id:
            raise Forbidden("Cannot delete yourself", reason="self_deletion")

        summaries = self._summaries()
        target = next((row for row in summaries if row["id"] == user_id), None)
        if target is None:
            return False

        self._kv.delete(_USER_PREFIX + target["email"])
        self._kv.put_json(_LIST_KEY, [row for row in summaries if row["id"] != user_id])
        logger.info("user deleted id=%s by=%s", user_id, acting_user_id)
        return True
