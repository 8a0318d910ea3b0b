"""
Named configuration blobs that carry secrets (meeting server, outbound mail).

Security invariants
-------------------
* Secret fields are encrypted at rest (AES-256-GCM) and decrypt back to the
  exact value that was written.
* Every client-facing read goes through :meth:`SecretConfigStore.get`, which
  masks secret fields down to the mask token plus at most the last four
  characters.
* A masked value is never written back as a literal secret.  Re-submitting
  the current mask keeps the stored secret; any other mask-looking value is
  rejected.
"""

from typing import Any, Optional

from core.errors import ValidationError
from core.security import decrypt_value, encrypt_value
from store.kv import KeyValueStore

MASK_TOKEN = "••••••••"

SERVER = "server"
EMAIL = "email"

# Fields that never leave the server unmasked, per config name
SECRET_FIELDS: dict[str, frozenset[str]] = {
    SERVER: frozenset({"api_secret"}),
    EMAIL: frozenset({"api_key", "api_secret"}),
}


def mask_secret(value: str) -> str:
    if not value:
        return value
    if len(value) <= 4:
        return MASK_TOKEN
    return MASK_TOKEN + value[-4:]


def is_masked(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(MASK_TOKEN)


class SecretConfigStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    @staticmethod
    def _key(name: str) -> str:
        if name not in SECRET_FIELDS:
            raise KeyError(f"Unknown config '{name}'")
        return f"config:{name}"

    # -- persistence ---------------------------------------------------------

    def load(self, name: str) -> Optional[dict]:
        """Return the stored fields with secrets decrypted.  Server-side use only."""
        blob = self._kv.get_json(self._key(name))
        if blob is None:
            return None
        fields = dict(blob.get("fields", {}))
        for field, sealed in blob.get("secrets", {}).items():
            fields[field] = decrypt_value(sealed["ciphertext"], sealed["iv"])
        return fields

    def _store(self, name: str, fields: dict) -> None:
        plain: dict = {}
        sealed: dict = {}
        for field, value in fields.items():
            if field in SECRET_FIELDS[name] and isinstance(value, str) and value:
                ciphertext, iv = encrypt_value(value)
                sealed[field] = {"ciphertext": ciphertext, "iv": iv}
            else:
                plain[field] = value
        self._kv.put_json(self._key(name), {"fields": plain, "secrets": sealed})

    # -- public API ----------------------------------------------------------

    def get(self, name: str) -> Optional[dict]:
        """Return the config with every secret field masked, or None if never saved."""
        fields = self.load(name)
        if fields is None:
            return None
        for field in SECRET_FIELDS[name]:
            if isinstance(fields.get(field), str):
                fields[field] = mask_secret(fields[field])
        return fields

    def put(self, name: str, fields: dict) -> dict:
        """
        Merge *fields* over the stored config and persist the result.

        Returns the masked view of what was stored.
        """
        current = self.load(name) or {}
        merged = dict(current)
        for field, value in fields.items():
            if field in SECRET_FIELDS[name] and is_masked(value):
                stored = current.get(field)
                if stored and value == mask_secret(stored):
                    continue
                raise ValidationError(
                    f"'{field}' is masked but does not match the stored secret; "
                    "submit the real value"
                )
            merged[field] = value
        self._store(name, merged)
        return self.get(name)
