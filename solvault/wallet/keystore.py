"""
Keystore: lifecycle of exactly one password-encrypted identity.

Design
------
- The identity lives in a StorageBackend under the key ``solana_wallet`` as a
  small JSON record; the 64-byte secret key is encrypted with
  :mod:`solvault.wallet.cipher` and never written in the clear.
- ``unlock`` rebuilds a fresh Keypair per call. Nothing here caches it; use
  ``unlocked()`` to scope the key to a ``async with`` block.
- ``export_secret`` is the only path that hands secret material out of this
  module in displayable form, and it always carries a warning.
- ``delete`` needs no password (a forgotten password must not prevent
  self-destruction) but callers must confirm with the user first.

Record schema
-------------
{
  "name": "My Wallet",
  "publicKey": "<base58>",
  "encryptedSecretKey": "<base64 salt||iv||tag||ciphertext>",
  "createdAt": 1735689600000,       # epoch milliseconds
  "kdfIterations": 100000
}

The plaintext is the JSON array of the 64 secret-key byte values.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Union

from ..config import MIN_KDF_ITERATIONS, Config
from ..errors import (
    AlreadyExistsError,
    AuthenticationError,
    ConfigError,
    CorruptedWalletError,
    InvalidPasswordError,
    NotFoundError,
    WeakPasswordError,
)
from ..storage.base import StorageBackend
from ..storage.file import FileStorage, atomic_write_json
from . import cipher
from .keypair import Keypair

WALLET_KEY = "solana_wallet"
MIN_PASSWORD_LENGTH = 8

EXPORT_WARNING = (
    "Secret key exposed. Store it securely and delete this output from your "
    "terminal history."
)


class KeystoreState(str, Enum):
    ABSENT = "absent"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    DELETED = "deleted"


@dataclass(frozen=True)
class WalletStatus:
    exists: bool
    public_address: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"exists": self.exists}
        if self.exists:
            out.update(publicKey=self.public_address, name=self.display_name, createdAt=self.created_at)
        return out


@dataclass(frozen=True)
class SecretExport:
    public_key: str
    name: str
    secret_key_base58: str = field(repr=False)
    warning: str = EXPORT_WARNING


class Keystore:
    """
    `iterations` is the PBKDF2 work factor used when sealing and must be at
    least MIN_KDF_ITERATIONS. `allow_weak_kdf=True` lifts that floor and is
    meant for test suites only; records sealed that way are not safe at rest.
    """

    def __init__(
        self,
        storage: StorageBackend,
        *,
        iterations: int = cipher.ITERATIONS,
        min_password_length: int = MIN_PASSWORD_LENGTH,
        allow_weak_kdf: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
            raise ConfigError("iterations", f"expected a positive integer, got {iterations!r}")
        if iterations < MIN_KDF_ITERATIONS and not allow_weak_kdf:
            raise ConfigError("iterations", f"must be >= {MIN_KDF_ITERATIONS}, got {iterations}")
        self.storage = storage
        self.iterations = iterations
        self.min_password_length = min_password_length
        self._log = logger or logging.getLogger("solvault.wallet.keystore")
        self._deleted = False
        self._open_sessions = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: Optional[StorageBackend] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "Keystore":
        """Keystore over `config.data_dir` (unless `storage` is given), sealing with `config.kdf_iterations`."""
        return cls(
            storage if storage is not None else FileStorage.from_config(config),
            iterations=config.kdf_iterations,
            logger=logger,
        )

    # --- queries (no password) -------------------------------------------

    async def _load(self) -> Optional[Dict[str, Any]]:
        record = await self.storage.get(WALLET_KEY)
        if record is None:
            return None
        if not isinstance(record, dict) or "encryptedSecretKey" not in record or "publicKey" not in record:
            raise CorruptedWalletError("identity record is missing required fields")
        return record

    async def _require(self) -> Dict[str, Any]:
        record = await self._load()
        if record is None:
            raise NotFoundError("wallet", "create a wallet first")
        return record

    async def status(self) -> WalletStatus:
        record = await self._load()
        if record is None:
            return WalletStatus(exists=False)
        return WalletStatus(
            exists=True,
            public_address=record["publicKey"],
            display_name=record.get("name"),
            created_at=record.get("createdAt"),
        )

    async def address(self) -> Tuple[str, str]:
        record = await self._require()
        return record["publicKey"], record.get("name", "")

    async def state(self) -> KeystoreState:
        if await self._load() is None:
            return KeystoreState.DELETED if self._deleted else KeystoreState.ABSENT
        return KeystoreState.UNLOCKED if self._open_sessions else KeystoreState.LOCKED

    # --- lifecycle -------------------------------------------------------

    def _check_password_strength(self, password: str) -> None:
        if len(password) < self.min_password_length:
            raise WeakPasswordError(self.min_password_length)

    def _seal(self, kp: Keypair, password: str) -> str:
        plaintext = json.dumps(list(kp.secret_key)).encode("utf-8")
        return cipher.encrypt(plaintext, password, iterations=self.iterations).to_string()

    async def create(self, password: str, display_name: str, *, overwrite: bool = False) -> str:
        """
        Generate, encrypt and persist a new keypair. Returns only the address.

        `overwrite=True` is the explicit destructive confirmation that replaces
        an existing identity; without it an existing identity is never touched.
        """
        self._check_password_strength(password)
        existing = await self._load()
        if existing is not None and not overwrite:
            raise AlreadyExistsError(existing["publicKey"])

        kp = Keypair.generate()
        sealed = await asyncio.to_thread(self._seal, kp, password)
        record = {
            "name": display_name,
            "publicKey": kp.public_key,
            "encryptedSecretKey": sealed,
            "createdAt": int(time.time() * 1000),
            "kdfIterations": self.iterations,
        }
        await self.storage.set(WALLET_KEY, record)
        self._deleted = False
        if existing is not None:
            self._log.warning("replaced wallet %s with %s", existing["publicKey"], kp.public_key)
        else:
            self._log.info("created wallet %s (%s)", kp.public_key, display_name)
        return kp.public_key

    def _open(self, record: Dict[str, Any], password: str) -> Keypair:
        iterations = record.get("kdfIterations") or cipher.ITERATIONS
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
            raise CorruptedWalletError(f"invalid kdfIterations {iterations!r}")
        try:
            plaintext = cipher.decrypt(record["encryptedSecretKey"], password, iterations=iterations)
        except AuthenticationError as e:
            raise InvalidPasswordError() from e
        # Authentic from here on: anything unexpected is corruption, not a bad password
        try:
            values = json.loads(plaintext.decode("utf-8"))
            if not isinstance(values, list):
                raise ValueError("secret key payload is not a byte array")
            kp = Keypair.from_secret_key(bytes(values))
        except (ValueError, TypeError) as e:
            raise CorruptedWalletError(str(e)) from e
        if kp.public_key != record["publicKey"]:
            raise CorruptedWalletError("decrypted key does not match the stored address")
        return kp

    async def unlock(self, password: str) -> Keypair:
        """
        Decrypt and return the signing keypair for the caller's current
        operation. Any string is accepted; a wrong one fails authentication.
        """
        record = await self._require()
        return await asyncio.to_thread(self._open, record, password)

    @contextlib.asynccontextmanager
    async def unlocked(self, password: str) -> AsyncIterator[Keypair]:
        kp = await self.unlock(password)
        self._open_sessions += 1
        try:
            yield kp
        finally:
            self._open_sessions -= 1

    async def export_secret(self, password: str) -> SecretExport:
        kp = await self.unlock(password)
        record = await self._require()
        self._log.warning("secret key exported for %s", kp.public_key)
        return SecretExport(
            public_key=kp.public_key,
            name=record.get("name", ""),
            secret_key_base58=kp.secret_key_base58(),
        )

    async def change_password(self, old_password: str, new_password: str) -> None:
        self._check_password_strength(new_password)
        record = await self._require()
        kp = await asyncio.to_thread(self._open, record, old_password)
        record = dict(record)
        record["encryptedSecretKey"] = await asyncio.to_thread(self._seal, kp, new_password)
        record["kdfIterations"] = self.iterations
        await self.storage.set(WALLET_KEY, record)
        self._log.info("re-encrypted wallet %s under a new password", kp.public_key)

    async def backup(self, password: str, dest_dir: Optional[Union[str, Path]] = None) -> Path:
        """
        Copy the (still encrypted) identity record to a timestamped file after
        verifying the password.
        """
        await self.unlock(password)
        record = await self._require()
        if dest_dir is None:
            if not isinstance(self.storage, FileStorage):
                raise ConfigError("dest_dir", "required when the storage backend is not file based")
            dest_dir = self.storage.base_dir
        stamp = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        path = Path(dest_dir).expanduser() / f"wallet-backup-{stamp}.json"
        await asyncio.to_thread(atomic_write_json, path, record, private=True)
        self._log.info("backed up wallet %s to %s", record["publicKey"], path)
        return path

    async def delete(self) -> str:
        """Irreversibly remove the identity. Returns the deleted address."""
        record = await self._require()
        await self.storage.remove(WALLET_KEY)
        self._deleted = True
        self._log.info("deleted wallet %s", record["publicKey"])
        return record["publicKey"]


__all__ = [
    "WALLET_KEY",
    "MIN_PASSWORD_LENGTH",
    "EXPORT_WARNING",
    "Keystore",
    "KeystoreState",
    "WalletStatus",
    "SecretExport",
]
