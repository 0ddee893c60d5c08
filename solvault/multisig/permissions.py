"""
Member capabilities and pre-submission validation of a vault's configuration.

A member holds any subset of {propose, vote, execute}. The on-chain program
encodes them as a bitmask (Initiate=1, Vote=2, Execute=4); `Permissions`
converts both ways. Threshold and membership are checked here before a
create-vault intent is ever submitted, because the program treats them as
immutable once the vault exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..address import validate_address
from ..errors import DuplicateMemberError, InvalidThresholdError, NoPermissionError

PROPOSE = 1 << 0  # "Initiate" on chain
VOTE = 1 << 1
EXECUTE = 1 << 2

_log = logging.getLogger("solvault.multisig.permissions")


@dataclass(frozen=True)
class Permissions:
    propose: bool = False
    vote: bool = False
    execute: bool = False

    @classmethod
    def all(cls) -> "Permissions":
        return cls(True, True, True)

    @classmethod
    def from_mask(cls, mask: int) -> "Permissions":
        return cls(bool(mask & PROPOSE), bool(mask & VOTE), bool(mask & EXECUTE))

    @property
    def mask(self) -> int:
        return (PROPOSE if self.propose else 0) | (VOTE if self.vote else 0) | (EXECUTE if self.execute else 0)

    @property
    def is_empty(self) -> bool:
        return not (self.propose or self.vote or self.execute)

    def to_dict(self) -> Dict[str, bool]:
        return {"propose": self.propose, "vote": self.vote, "execute": self.execute}


@dataclass(frozen=True)
class Member:
    address: str
    permissions: Permissions = Permissions()

    def to_dict(self) -> Dict[str, Any]:
        return {"publicKey": self.address, "permissions": self.permissions.to_dict()}


def can_propose(member: Optional[Member]) -> bool:
    return member is not None and member.permissions.propose


def can_vote(member: Optional[Member]) -> bool:
    return member is not None and member.permissions.vote


def can_execute(member: Optional[Member]) -> bool:
    return member is not None and member.permissions.execute


def voter_count(members: Iterable[Member]) -> int:
    return sum(1 for m in members if m.permissions.vote)


def validate_threshold(threshold: Any, members: Sequence[Member]) -> int:
    """Return `threshold` if 1 <= threshold <= number of voters, else raise InvalidThresholdError."""
    voters = voter_count(members)
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidThresholdError(threshold, voters)
    if not 1 <= threshold <= voters:
        raise InvalidThresholdError(threshold, voters)
    return threshold


def validate_members(
    members: Sequence[Member],
    *,
    allow_inert: bool = False,
    logger: Optional[logging.Logger] = None,
) -> List[Member]:
    """
    Check addresses, uniqueness and capabilities.

    A member with no capability is rejected with NoPermissionError unless
    `allow_inert=True`, in which case it is kept and a warning is logged.
    """
    log = logger or _log
    seen = set()
    out: List[Member] = []
    for i, m in enumerate(members):
        addr = validate_address(m.address, field=f"members[{i}]")
        if addr in seen:
            raise DuplicateMemberError(addr)
        seen.add(addr)
        if m.permissions.is_empty:
            if not allow_inert:
                raise NoPermissionError(addr)
            log.warning("member %s has no permissions and will be inert", addr)
        out.append(m if addr == m.address else Member(addr, m.permissions))
    return out


def default_threshold(members: Sequence[Member]) -> int:
    """Simple majority of the voting members (at least 1)."""
    return max(1, -(-voter_count(members) // 2))


__all__ = [
    "PROPOSE",
    "VOTE",
    "EXECUTE",
    "Permissions",
    "Member",
    "can_propose",
    "can_vote",
    "can_execute",
    "voter_count",
    "validate_threshold",
    "validate_members",
    "default_threshold",
]
