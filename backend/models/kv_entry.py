"""KVEntry ORM model – one row per key of the shared key-value namespace."""

from sqlalchemy import Column, Float, String, Text

from database import Base


class KVEntry(Base):
    __tablename__ = "kv_entries"

    # e.g. "user:a@b.com", "session:<token>", "config:server"
    key = Column(String(255), primary_key=True)
    # JSON document, serialised by the caller
    value = Column(Text, nullable=False)
    # Unix epoch seconds; NULL means the entry never expires
    expires_at = Column(Float, nullable=True, index=True)
