"""
Multisig service: vault and proposal actions on behalf of an unlocked member.

Every action follows the same shape:

1. refetch the vault (and proposal) from the chain; cached projections are
   never trusted for authorization,
2. authorize locally with the permission and proposal state models,
3. build an Intent and hand it to the ChainWriter with the signer,
4. wait for confirmation; only a FINALIZED confirmation counts as a state
   change, a FAILED one raises TransactionFailedError,
5. re-read the result and report it.

The on-chain program remains the final authority; local checks only avoid
submitting transactions that are bound to fail.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..address import lamports_to_sol, sol_to_lamports, validate_address
from ..chain.base import AddressDeriver, ChainReader, ChainWriter, Intent, IntentKind
from ..chain.send import submit_and_confirm
from ..config import Config
from ..errors import (
    ConfigError,
    InsufficientPermissionError,
    NotAMemberError,
    NotFoundError,
    Outcome,
    SolvaultError,
)
from ..wallet.keypair import Keypair
from . import proposals as model
from .links import proposal_link, vault_link
from .permissions import Member, Permissions, default_threshold, validate_members, validate_threshold
from .registry import VaultRegistry
from .types import Proposal, ProposalStatus, Vault


@dataclass(frozen=True)
class ActionReceipt:
    action: str
    vault: str
    signature: str
    index: Optional[int] = None
    status: Optional[ProposalStatus] = None
    approvals: int = 0
    rejections: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"action": self.action, "vault": self.vault, "signature": self.signature}
        if self.index is not None:
            out.update(
                index=self.index,
                status=self.status.value if self.status else None,
                approvals=self.approvals,
                rejections=self.rejections,
            )
        return out


@dataclass(frozen=True)
class VaultCreated:
    multisig: str
    treasury: str
    create_key: str
    signature: str
    threshold: int
    members: Tuple[Member, ...]
    share_link: str = ""


@dataclass(frozen=True)
class VaultBalance:
    treasury: str
    lamports: int

    @property
    def sol(self) -> float:
        return lamports_to_sol(self.lamports)


@dataclass
class VaultSummary:
    address: str
    create_key: str
    vault: Optional[Vault] = None
    balance: Optional[VaultBalance] = None
    pending: Optional[int] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"address": self.address, "createKey": self.create_key}
        if self.error is not None:
            out["error"] = self.error
            return out
        if self.vault is None or self.balance is None:
            return out
        out.update(
            threshold=self.vault.threshold,
            members=len(self.vault.members),
            treasury=self.balance.treasury,
            lamports=self.balance.lamports,
            sol=self.balance.sol,
            pending=self.pending,
        )
        return out


class MultisigService:
    def __init__(
        self,
        reader: ChainReader,
        writer: ChainWriter,
        addresses: AddressDeriver,
        registry: VaultRegistry,
        config: Optional[Config] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.addresses = addresses
        self.registry = registry
        self.config = config or Config.from_env()
        if self.config.program_id != registry.program_id:
            raise ConfigError(
                "program_id",
                f"registry scans {registry.program_id} but config names {self.config.program_id}",
            )
        self._log = logger or logging.getLogger("solvault.multisig.service")

    # --- reads -----------------------------------------------------------

    async def fetch_vault(self, address: str) -> Vault:
        return await self.registry.fetch(address, self.reader)

    async def fetch_proposal(self, vault: str, index: int) -> Proposal:
        proposal = await model.fetch_proposal(vault, index, self.reader, self.addresses)
        if proposal is None:
            raise NotFoundError("proposal", f"{vault} #{index}")
        return proposal

    async def vault_balance(self, address: str) -> VaultBalance:
        treasury = self.addresses.vault_address(validate_address(address, field="vault"), 0)
        lamports = await self.reader.get_account_balance(treasury)
        return VaultBalance(treasury=treasury, lamports=int(lamports))

    async def list_proposals(self, address: str, window: Optional[int] = None) -> List[Proposal]:
        vault = await self.fetch_vault(address)
        return await model.list_recent(
            vault, self.reader, self.addresses, window or self.config.proposal_window, logger=self._log
        )

    async def _summary(self, address: str, create_key: str) -> VaultSummary:
        try:
            vault = await self.fetch_vault(address)
            balance, recent = await asyncio.gather(
                self.vault_balance(address),
                model.list_recent(vault, self.reader, self.addresses, self.config.proposal_window, logger=self._log),
            )
        except SolvaultError as e:
            self._log.warning("could not load vault %s: %s", address, e)
            return VaultSummary(address, create_key, error=Outcome.from_error(e).to_dict())
        return VaultSummary(address, create_key, vault=vault, balance=balance, pending=model.pending_count(recent))

    async def list_vault_summaries(self, owner: str) -> List[VaultSummary]:
        refs = await self.registry.list(owner)
        return list(await asyncio.gather(*(self._summary(r.vault_address, r.create_key) for r in refs)))

    def share_link(self, vault: str, index: Optional[int] = None) -> str:
        if index is None:
            return vault_link(vault, self.config.base_url)
        return proposal_link(vault, index, self.config.base_url)

    # --- submission ------------------------------------------------------

    async def _submit(self, intent: Intent, signer: Keypair, cosigners: Sequence[Keypair] = ()) -> str:
        return await submit_and_confirm(self.writer, intent, signer, cosigners, logger=self._log)

    @staticmethod
    def _require_member(vault: Vault, address: str) -> Member:
        member = vault.member(address)
        if member is None:
            raise NotAMemberError(address, vault.address)
        return member

    def plan_vault(
        self,
        creator: str,
        members: Sequence[Member],
        threshold: Optional[int] = None,
        *,
        allow_inert: bool = False,
    ) -> Tuple[List[Member], int]:
        """
        Validate a vault configuration without touching the chain.

        The creator is added with every permission when not listed. Without
        an explicit threshold the majority of voting members is used.
        """
        creator = validate_address(creator, field="creator")
        roster = list(members)
        if not any(m.address.strip() == creator for m in roster):
            roster.insert(0, Member(creator, Permissions.all()))
        roster = validate_members(roster, allow_inert=allow_inert, logger=self._log)
        final = default_threshold(roster) if threshold is None else threshold
        return roster, validate_threshold(final, roster)

    async def create_vault(
        self,
        signer: Keypair,
        members: Sequence[Member],
        threshold: Optional[int] = None,
        *,
        allow_inert: bool = False,
    ) -> VaultCreated:
        roster, final = self.plan_vault(signer.public_key, members, threshold, allow_inert=allow_inert)
        create_key = Keypair.generate()
        multisig = self.addresses.multisig_address(create_key.public_key)
        intent = Intent(
            kind=IntentKind.CREATE_VAULT,
            vault=multisig,
            members=tuple(roster),
            threshold=final,
            create_key=create_key.public_key,
        )
        signature = await self._submit(intent, signer, (create_key,))
        await self.registry.register(signer.public_key, multisig, create_key.public_key)
        return VaultCreated(
            multisig=multisig,
            treasury=self.addresses.vault_address(multisig, 0),
            create_key=create_key.public_key,
            signature=signature,
            threshold=final,
            members=tuple(roster),
            share_link=vault_link(multisig, self.config.base_url),
        )

    async def _receipt(
        self,
        action: str,
        vault: str,
        index: int,
        signature: str,
        predicted: Proposal,
        threshold: int,
        voters: int,
    ) -> ActionReceipt:
        # Reads are eventually consistent, and may fail outright after the
        # transaction is final; either way report the projected state.
        try:
            fresh = await model.fetch_proposal(vault, index, self.reader, self.addresses)
        except SolvaultError as e:
            self._log.warning("%s #%d on %s confirmed (%s) but re-read failed: %s", action, index, vault, signature, e)
            fresh = None
        p = fresh or predicted
        status = p.status if fresh is not None else model.project_status(p, threshold, voters)
        return ActionReceipt(
            action=action,
            vault=vault,
            signature=signature,
            index=index,
            status=status,
            approvals=len(p.approvals),
            rejections=len(p.rejections),
        )

    async def propose_transfer(
        self,
        signer: Keypair,
        vault_address: str,
        recipient: str,
        sol: float,
        memo: Optional[str] = None,
    ) -> ActionReceipt:
        recipient = validate_address(recipient, field="recipient")
        lamports = sol_to_lamports(sol)
        vault = await self.fetch_vault(vault_address)
        member = self._require_member(vault, signer.public_key)
        if not member.permissions.propose:
            raise InsufficientPermissionError(member.address, "propose")

        index = vault.transaction_index + 1
        intent = Intent(
            kind=IntentKind.PROPOSE,
            vault=vault.address,
            index=index,
            recipient=recipient,
            lamports=lamports,
            memo=memo,
        )
        signature = await self._submit(intent, signer)
        predicted = Proposal(index=index, status=ProposalStatus.ACTIVE, vault=vault.address)
        return await self._receipt("propose", vault.address, index, signature, predicted, vault.threshold, vault.voters)

    async def _vote(self, kind: IntentKind, signer: Keypair, vault_address: str, index: int) -> ActionReceipt:
        vault = await self.fetch_vault(vault_address)
        member = self._require_member(vault, signer.public_key)
        proposal = await self.fetch_proposal(vault.address, index)
        model.require_vote(proposal, member)

        signature = await self._submit(Intent(kind=kind, vault=vault.address, index=index), signer)
        if kind is IntentKind.APPROVE:
            predicted = Proposal(index, proposal.status, proposal.approvals | {member.address}, proposal.rejections, vault.address)
        else:
            predicted = Proposal(index, proposal.status, proposal.approvals, proposal.rejections | {member.address}, vault.address)
        return await self._receipt(kind.value, vault.address, index, signature, predicted, vault.threshold, vault.voters)

    async def approve(self, signer: Keypair, vault_address: str, index: int) -> ActionReceipt:
        return await self._vote(IntentKind.APPROVE, signer, vault_address, index)

    async def reject(self, signer: Keypair, vault_address: str, index: int) -> ActionReceipt:
        return await self._vote(IntentKind.REJECT, signer, vault_address, index)

    async def execute(self, signer: Keypair, vault_address: str, index: int) -> ActionReceipt:
        vault = await self.fetch_vault(vault_address)
        member = self._require_member(vault, signer.public_key)
        proposal = await self.fetch_proposal(vault.address, index)
        model.require_execute(proposal, member)

        signature = await self._submit(Intent(kind=IntentKind.EXECUTE, vault=vault.address, index=index), signer)
        predicted = Proposal(index, ProposalStatus.EXECUTED, proposal.approvals, proposal.rejections, vault.address)
        return await self._receipt("execute", vault.address, index, signature, predicted, vault.threshold, vault.voters)


__all__ = ["ActionReceipt", "VaultCreated", "VaultBalance", "VaultSummary", "MultisigService"]
