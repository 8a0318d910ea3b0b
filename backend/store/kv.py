"""
Key-value namespace on top of the ``kv_entries`` table.

Every higher-level store (sessions, users, secret configs, the password salt)
reads and writes through this class.  Writes are committed immediately; there
is no multi-key transaction, so read-modify-write sequences built on top of
it are last-writer-wins.

Expiry is an absolute timestamp checked on every read against an injectable
clock, so tests can move time forward without sleeping.  Lapsed rows that are
never read again are removed in bulk by ``purge_expired``, which runs on every
prefix scan and every session issue.
"""

import json
import time
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.kv_entry import KVEntry

Clock = Callable[[], float]


class KeyValueStore:
    def __init__(self, db: Session, clock: Clock = time.time):
        self._db = db
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def _expiry(self, ttl: Optional[float]) -> Optional[float]:
        return None if ttl is None else self._clock() + ttl

    def _live(self, entry: Optional[KVEntry]) -> Optional[KVEntry]:
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at < self._clock():
            self._db.delete(entry)
            self._db.commit()
            return None
        return entry

    # -- reads ---------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        entry = self._live(self._db.get(KVEntry, key))
        return entry.value if entry else None

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        return default if raw is None else json.loads(raw)

    def scan(self, prefix: str) -> list[tuple[str, str]]:
        """Return ``(key, value)`` for every live entry whose key starts with *prefix*."""
        now = self._clock()
        self.purge_expired()
        rows = (
            self._db.query(KVEntry)
            .filter(KVEntry.key.startswith(prefix, autoescape=True))
            .order_by(KVEntry.key)
            .all()
        )
        return [
            (row.key, row.value)
            for row in rows
            if row.expires_at is None or row.expires_at >= now
        ]

    # -- writes --------------------------------------------------------------

    def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        self._db.merge(KVEntry(key=key, value=value, expires_at=self._expiry(ttl)))
        self._db.commit()

    def put_json(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self.put(key, json.dumps(value), ttl=ttl)

    def put_if_absent(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """
        Insert *key* only if no live entry exists.  Returns False when another
        writer got there first; the caller should re-read the winner.
        """
        if self.get(key) is not None:
            return False
        self._db.add(KVEntry(key=key, value=value, expires_at=self._expiry(ttl)))
        try:
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            return False
        return True

    def delete(self, key: str) -> None:
        entry = self._db.get(KVEntry, key)
        if entry is not None:
            self._db.delete(entry)
            self._db.commit()

    def purge_expired(self) -> int:
        """Delete every entry whose deadline has passed.  Returns the row count."""
        purged = (
            self._db.query(KVEntry)
            .filter(KVEntry.expires_at.isnot(None), KVEntry.expires_at < self._clock())
            .delete(synchronize_session="fetch")
        )
        self._db.commit()
        return purged
