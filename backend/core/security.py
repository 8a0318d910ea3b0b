"""
Central security module.  All cryptographic primitives live here.  No other
module should touch raw crypto directly.

Responsibilities
----------------
1. Password digests against a store-wide salt     (passlib pbkdf2_hmac)
2. Session token generation                       (secrets)
3. Outbound request signing                       (HMAC-SHA256)
4. Config-secret encryption / decryption          (AES-256-GCM)
"""

import base64
import hashlib
import hmac
import secrets

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq

from core.config import settings
from store.kv import KeyValueStore

# ---------------------------------------------------------------------------
# 1.  PBKDF2-SHA256 password digests
# ---------------------------------------------------------------------------
# One salt per deployment, persisted under ``system:salt`` the first time a
# digest is needed.  Every digest in the store is computed against it, so
# losing the salt invalidates every stored credential.

SALT_KEY = "system:salt"


def hash_password(plain: str, salt: str, rounds: int | None = None) -> str:
    """
    Deterministic PBKDF2-SHA256 digest of *plain* under *salt*.

    Returns a 64-character lowercase hex string.
    """
    raw = pbkdf2_hmac(
        "sha256",
        plain.encode("utf-8"),
        salt.encode("utf-8"),
        rounds or settings.password_hash_rounds,
    )
    return raw.hex()


def verify_password(plain: str, stored_digest: str, salt: str, rounds: int | None = None) -> bool:
    """Constant-time comparison of a fresh digest against *stored_digest*."""
    return consteq(hash_password(plain, salt, rounds), stored_digest)


class CredentialHasher:
    """
    Binds the digest functions to the store-wide salt.

    The salt is created lazily with a conditional insert; concurrent first
    callers that lose the race re-read the winning value.
    """

    def __init__(self, kv: KeyValueStore, rounds: int | None = None):
        self._kv = kv
        self._rounds = rounds
        self._salt: str | None = None

    def salt(self) -> str:
        if self._salt is None:
            salt = self._kv.get(SALT_KEY)
            if salt is None:
                self._kv.put_if_absent(SALT_KEY, secrets.token_hex(32))
                salt = self._kv.get(SALT_KEY)
            self._salt = salt
        return self._salt

    def digest(self, plain: str) -> str:
        return hash_password(plain, self.salt(), self._rounds)

    def verify(self, plain: str, stored_digest: str) -> bool:
        return verify_password(plain, stored_digest, self.salt(), self._rounds)


# ---------------------------------------------------------------------------
# 2.  Session tokens
# ---------------------------------------------------------------------------


def generate_token() -> str:
    """256 bits from the OS CSPRNG, URL-safe."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# 3.  Request signing
# ---------------------------------------------------------------------------


def sign_body(body: bytes, secret: str) -> str:
    """
    HMAC-SHA256 of the exact bytes that will go on the wire, as lowercase hex.

    Callers must send *body* unchanged after signing; re-serialising the
    payload would let signature and body diverge.
    """
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# 4.  AES-256-GCM – config secrets at rest
# ---------------------------------------------------------------------------


def _get_master_key() -> bytes:
    """
    Decode the base64-encoded MASTER_ENCRYPTION_KEY from the environment.
    Called at use-time (not import-time) so the key is never cached at module
    load.  Must be exactly 32 bytes after decoding.
    """
    key = base64.b64decode(settings.master_encryption_key)
    if len(key) != 32:
        raise RuntimeError("MASTER_ENCRYPTION_KEY must decode to exactly 32 bytes")
    return key


def encrypt_value(plaintext: str) -> tuple[str, str]:
    """
    Encrypt *plaintext* with AES-256-GCM under a fresh 96-bit nonce.

    Returns
    -------
    encrypted_b64 : str   base64( ciphertext || 16-byte GCM tag )
    iv_b64        : str   base64( 12-byte nonce )
    """
    iv = secrets.token_bytes(12)
    ct_and_tag = AESGCM(_get_master_key()).encrypt(iv, plaintext.encode("utf-8"), None)
    return (
        base64.b64encode(ct_and_tag).decode("ascii"),
        base64.b64encode(iv).decode("ascii"),
    )


def decrypt_value(encrypted_b64: str, iv_b64: str) -> str:
    """
    Decrypt a value produced by :func:`encrypt_value`.

    Raises ``ValueError`` if the GCM authentication tag does not match
    (i.e. the data has been tampered with or the key is wrong).
    """
    iv = base64.b64decode(iv_b64)
    ct_and_tag = base64.b64decode(encrypted_b64)
    try:
        plaintext_bytes = AESGCM(_get_master_key()).decrypt(iv, ct_and_tag, None)
    except Exception as exc:
        raise ValueError("Decryption failed – data may be tampered") from exc
    return plaintext_bytes.decode("utf-8")
