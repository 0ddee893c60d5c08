"""
Vault registry: the locally remembered set of vaults per owning identity.

Persisted under the storage key ``squads_multisigs`` as::

    {"<owner b58>": [{"multisigPda": "<b58>", "createKey": "<b58>"}, ...]}

Every mutation is one read-modify-write of that whole value. Writers within
one process are serialized; writers in separate processes are not
coordinated (last writer wins).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..address import validate_address
from ..chain.base import ChainReader
from ..config import DEFAULT_PROGRAM_ID, Config
from ..errors import InvalidShareLinkError, NotAMemberError, NotFoundError
from ..storage.base import StorageBackend
from .decode import decode_vault
from .links import extract_vault_address
from .types import Vault, VaultReference

REGISTRY_KEY = "squads_multisigs"

# Size of a multisig account as laid out by the program; used to narrow the
# scan before falling back to every program account.
MULTISIG_DATA_SIZE = 178
DEFAULT_DISCOVERY_FILTERS: Sequence[Mapping[str, Any]] = ({"dataSize": MULTISIG_DATA_SIZE},)


class VaultRegistry:
    def __init__(
        self,
        storage: StorageBackend,
        *,
        program_id: str = DEFAULT_PROGRAM_ID,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.storage = storage
        self.program_id = program_id
        self._lock = asyncio.Lock()
        self._log = logger or logging.getLogger("solvault.multisig.registry")

    @classmethod
    def from_config(
        cls, storage: StorageBackend, config: Config, *, logger: Optional[logging.Logger] = None
    ) -> "VaultRegistry":
        return cls(storage, program_id=config.program_id, logger=logger)

    async def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        data = await self.storage.get(REGISTRY_KEY)
        return data if isinstance(data, dict) else {}

    async def register(self, owner: str, vault_address: str, create_key: str) -> bool:
        """Remember `vault_address` for `owner`. Returns False if it was already known."""
        owner = validate_address(owner, field="owner")
        vault_address = validate_address(vault_address, field="vault")
        async with self._lock:
            data = await self._load()
            entries = data.setdefault(owner, [])
            if any(e.get("multisigPda") == vault_address for e in entries):
                return False
            entries.append(VaultReference(owner, vault_address, create_key).to_record())
            await self.storage.set(REGISTRY_KEY, data)
        self._log.info("registered vault %s for %s", vault_address, owner)
        return True

    async def list(self, owner: str) -> List[VaultReference]:
        owner = validate_address(owner, field="owner")
        data = await self._load()
        return [
            VaultReference.from_record(owner, rec)
            for rec in data.get(owner, [])
            if isinstance(rec, dict) and "multisigPda" in rec
        ]

    async def remove(self, owner: str, vault_address: str) -> bool:
        """Forget a vault locally. The on-chain vault is untouched."""
        owner = validate_address(owner, field="owner")
        vault_address = validate_address(vault_address, field="vault")
        async with self._lock:
            data = await self._load()
            entries = data.get(owner, [])
            kept = [e for e in entries if e.get("multisigPda") != vault_address]
            if len(kept) == len(entries):
                return False
            if kept:
                data[owner] = kept
            else:
                data.pop(owner, None)
            await self.storage.set(REGISTRY_KEY, data)
        self._log.info("removed vault %s from %s's list", vault_address, owner)
        return True

    async def discover(
        self,
        owner: str,
        reader: ChainReader,
        *,
        filters: Optional[Sequence[Mapping[str, Any]]] = DEFAULT_DISCOVERY_FILTERS,
    ) -> List[Vault]:
        """
        Scan every account of the multisig program and return the vaults that
        list `owner` as a member. Accounts that do not decode are skipped.
        """
        owner = validate_address(owner, field="owner")
        accounts = await reader.get_program_accounts(self.program_id, filters) if filters else []
        if not accounts:
            accounts = await reader.get_program_accounts(self.program_id, None)

        found: List[Vault] = []
        skipped = 0
        for account in accounts:
            vault = decode_vault(account.pubkey, account.data)
            if vault is None:
                skipped += 1
                self._log.debug("skipping undecodable account %s", account.pubkey)
                continue
            if vault.is_member(owner):
                found.append(vault)
        self._log.info(
            "discovery for %s: %d vaults among %d accounts (%d skipped)", owner, len(found), len(accounts), skipped
        )
        return found

    async def fetch(self, address: str, reader: ChainReader) -> Vault:
        address = validate_address(address, field="vault")
        vault = decode_vault(address, await reader.get_parsed_account(address))
        if vault is None:
            raise NotFoundError("multisig vault", address)
        return vault

    async def import_by_address_or_link(self, owner: str, text: str, reader: ChainReader) -> Vault:
        """Register the vault named by a raw address or share link after checking membership."""
        address = extract_vault_address(text)
        if address is None:
            raise InvalidShareLinkError(text)
        vault = await self.fetch(address, reader)
        if not vault.is_member(owner):
            raise NotAMemberError(owner, address)
        await self.register(owner, address, vault.create_key)
        return vault


__all__ = ["REGISTRY_KEY", "MULTISIG_DATA_SIZE", "DEFAULT_DISCOVERY_FILTERS", "VaultRegistry"]
