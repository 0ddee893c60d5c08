"""
Password-based authenticated encryption (PBKDF2-HMAC-SHA256 + AES-256-GCM).

Design
------
- A fresh 16-byte salt and a fresh 12-byte IV are drawn for every call to
  `encrypt`; there is no API that accepts a caller-chosen IV, so (key, IV)
  reuse cannot happen through this module.
- The key is derived with PBKDF2-HMAC-SHA256 (>= 100k iterations by default).
- The blob is serialized as a single base64 string:

      base64( salt[16] || iv[12] || tag[16] || ciphertext )

- Decrypting with the wrong password fails closed with AuthenticationError.
  GCM cannot tell "wrong password" apart from "tampered/corrupted blob"; both
  surface as the same error.

The functions are pure (CPU and memory only) and safe to call concurrently.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import AuthenticationError

SALT_LENGTH = 16
IV_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32  # AES-256
ITERATIONS = 100_000

__all__ = [
    "SALT_LENGTH",
    "IV_LENGTH",
    "TAG_LENGTH",
    "KEY_LENGTH",
    "ITERATIONS",
    "EncryptedBlob",
    "derive_key",
    "encrypt",
    "decrypt",
]


@dataclass(frozen=True)
class EncryptedBlob:
    salt: bytes
    iv: bytes
    tag: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        return self.salt + self.iv + self.tag + self.ciphertext

    def to_string(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "EncryptedBlob":
        header = SALT_LENGTH + IV_LENGTH + TAG_LENGTH
        if len(raw) < header:
            raise ValueError(f"blob too short ({len(raw)} < {header} bytes)")
        return cls(
            salt=raw[:SALT_LENGTH],
            iv=raw[SALT_LENGTH : SALT_LENGTH + IV_LENGTH],
            tag=raw[SALT_LENGTH + IV_LENGTH : header],
            ciphertext=raw[header:],
        )

    @classmethod
    def from_string(cls, s: str) -> "EncryptedBlob":
        try:
            raw = base64.b64decode(s.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise ValueError(f"blob is not valid base64: {e}") from e
        return cls.from_bytes(raw)


def derive_key(password: str, salt: bytes, *, iterations: int = ITERATIONS) -> bytes:
    if len(salt) != SALT_LENGTH:
        raise ValueError(f"salt must be {SALT_LENGTH} bytes")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt(plaintext: bytes, password: str, *, iterations: int = ITERATIONS) -> EncryptedBlob:
    salt = secrets.token_bytes(SALT_LENGTH)
    iv = secrets.token_bytes(IV_LENGTH)
    key = derive_key(password, salt, iterations=iterations)
    # cryptography returns ciphertext || tag
    sealed = AESGCM(key).encrypt(iv, plaintext, None)
    return EncryptedBlob(salt=salt, iv=iv, tag=sealed[-TAG_LENGTH:], ciphertext=sealed[:-TAG_LENGTH])


def decrypt(blob: EncryptedBlob | str, password: str, *, iterations: int = ITERATIONS) -> bytes:
    """
    Decrypt and return the protected plaintext.

    Raises AuthenticationError on wrong password, tampering, or a blob that does
    not even have the expected framing.
    """
    if isinstance(blob, str):
        try:
            blob = EncryptedBlob.from_string(blob)
        except ValueError as e:
            raise AuthenticationError(f"decryption failed (malformed blob: {e})") from e
    key = derive_key(password, blob.salt, iterations=iterations)
    try:
        return AESGCM(key).decrypt(blob.iv, blob.ciphertext + blob.tag, None)
    except InvalidTag as e:
        raise AuthenticationError() from e
