"""User record and role enumeration, as stored under ``user:<email>``."""

import enum
from dataclasses import asdict, dataclass
from datetime import datetime


class Role(str, enum.Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str
    role: Role
    # PBKDF2 digest under the store-wide salt; never the plaintext
    password_hash: str
    created_at: datetime

    def to_record(self) -> dict:
        record = asdict(self)
        record["role"] = self.role.value
        record["created_at"] = self.created_at.isoformat()
        return record

    @classmethod
    def from_record(cls, record: dict) -> "User":
        return cls(
            id=record["id"],
            email=record["email"],
            name=record["name"],
            role=Role(record["role"]),
            password_hash=record["password_hash"],
            created_at=datetime.fromisoformat(record["created_at"]),
        )

    def summary(self) -> dict:
        """The only view of a user that ever leaves the directory."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
        }
