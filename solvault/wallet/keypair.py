"""
Ed25519 signing keypair in the Solana layout.

The secret key is 64 bytes: the 32-byte private seed followed by the 32-byte
public key. The public key, base58-encoded, is the wallet address.
Signature math is delegated to `cryptography`.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..address import b58encode

SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64


class Keypair:
    __slots__ = ("_sk", "_secret", "_public")

    def __init__(self, sk: Ed25519PrivateKey) -> None:
        self._sk = sk
        seed = sk.private_bytes_raw()
        pub = sk.public_key().public_bytes_raw()
        self._secret = seed + pub
        self._public = b58encode(pub)

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret_key(cls, secret: bytes) -> "Keypair":
        """Rebuild from 64 secret-key bytes; the public half must match the seed."""
        secret = bytes(secret)
        if len(secret) != SECRET_KEY_LENGTH:
            raise ValueError(f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret)}")
        kp = cls(Ed25519PrivateKey.from_private_bytes(secret[:SEED_LENGTH]))
        if kp._secret[SEED_LENGTH:] != secret[SEED_LENGTH:]:
            raise ValueError("public key half does not match the private seed")
        return kp

    @property
    def public_key(self) -> str:
        return self._public

    @property
    def public_key_bytes(self) -> bytes:
        return self._secret[SEED_LENGTH:]

    @property
    def secret_key(self) -> bytes:
        return self._secret

    def secret_key_base58(self) -> str:
        return b58encode(self._secret)

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(message)

    def __repr__(self) -> str:
        return f"Keypair(public_key={self._public!r})"


__all__ = ["Keypair", "SECRET_KEY_LENGTH"]
