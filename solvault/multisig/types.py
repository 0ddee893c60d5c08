"""
Multisig value types.

`VaultReference` is the only multisig entity persisted locally. `Vault` and
`Proposal` are read-through projections of on-chain accounts: they are
refetched before any action that depends on their current value and are
never treated as durable local truth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .permissions import Member, voter_count


class ProposalStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    EXECUTED = "Executed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def is_pending(self) -> bool:
        # Approved still waits on a human to execute
        return self in (ProposalStatus.ACTIVE, ProposalStatus.APPROVED)


_TERMINAL = frozenset({ProposalStatus.EXECUTED, ProposalStatus.REJECTED, ProposalStatus.CANCELLED})


@dataclass(frozen=True)
class VaultReference:
    owner: str
    vault_address: str
    create_key: str

    def to_record(self) -> Dict[str, str]:
        return {"multisigPda": self.vault_address, "createKey": self.create_key}

    @classmethod
    def from_record(cls, owner: str, rec: Dict[str, Any]) -> "VaultReference":
        return cls(owner=owner, vault_address=str(rec["multisigPda"]), create_key=str(rec.get("createKey", "")))


@dataclass(frozen=True)
class Vault:
    address: str
    create_key: str
    threshold: int
    members: Tuple[Member, ...]
    transaction_index: int = 0
    stale_transaction_index: int = 0

    def member(self, address: str) -> Optional[Member]:
        for m in self.members:
            if m.address == address:
                return m
        return None

    def is_member(self, address: str) -> bool:
        return self.member(address) is not None

    @property
    def voters(self) -> int:
        return voter_count(self.members)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "createKey": self.create_key,
            "threshold": self.threshold,
            "members": [m.to_dict() for m in self.members],
            "transactionIndex": self.transaction_index,
            "staleTransactionIndex": self.stale_transaction_index,
        }


@dataclass(frozen=True)
class Proposal:
    index: int
    status: ProposalStatus
    approvals: FrozenSet[str] = field(default_factory=frozenset)
    rejections: FrozenSet[str] = field(default_factory=frozenset)
    vault: str = ""

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError(f"proposal index starts at 1, got {self.index}")
        overlap = self.approvals & self.rejections
        if overlap:
            raise ValueError(f"members both approved and rejected: {sorted(overlap)}")

    def vote_of(self, address: str) -> Optional[str]:
        if address in self.approvals:
            return "approve"
        if address in self.rejections:
            return "reject"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "vault": self.vault,
            "status": self.status.value,
            "approvals": sorted(self.approvals),
            "rejections": sorted(self.rejections),
        }


__all__ = ["ProposalStatus", "VaultReference", "Vault", "Proposal"]
