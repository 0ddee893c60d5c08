"""
Proposal state model.

    Draft -> Active -> Approved -> Executed
                    -> Rejected
    Draft/Active -> Cancelled

Executed, Rejected and Cancelled are terminal. The on-chain program performs
every real transition; this module classifies what it reads, predicts what
a pending vote will do, and answers "may this member act now?" before an
intent is built. Votes cannot be changed once cast.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from ..chain.base import AddressDeriver, ChainReader
from ..errors import AlreadyVotedError, InsufficientPermissionError, ProposalStateError, SolvaultError
from .decode import classify, decode_proposal
from .permissions import Member
from .types import Proposal, ProposalStatus, Vault

DEFAULT_WINDOW = 20

_log = logging.getLogger("solvault.multisig.proposals")


def has_voted(proposal: Proposal, address: str) -> bool:
    return proposal.vote_of(address) is not None


def can_vote(proposal: Proposal, member: Optional[Member]) -> bool:
    return (
        member is not None
        and proposal.status is ProposalStatus.ACTIVE
        and member.permissions.vote
        and not has_voted(proposal, member.address)
    )


def can_execute(proposal: Proposal, member: Optional[Member]) -> bool:
    # Any member holding execute may settle, not only the proposer.
    return member is not None and proposal.status is ProposalStatus.APPROVED and member.permissions.execute


def pending_count(proposals: Iterable[Proposal]) -> int:
    return sum(1 for p in proposals if p.status.is_pending)


def rejection_cutoff(threshold: int, voters: int) -> int:
    """Rejections at which the threshold can no longer be met."""
    return max(1, voters - threshold + 1)


def approvals_needed(proposal: Proposal, threshold: int) -> int:
    return max(0, threshold - len(proposal.approvals))


def project_status(proposal: Proposal, threshold: int, voters: int) -> ProposalStatus:
    """Predict the status the program assigns after the current tallies."""
    if proposal.status is not ProposalStatus.ACTIVE:
        return proposal.status
    if len(proposal.approvals) >= threshold:
        return ProposalStatus.APPROVED
    if len(proposal.rejections) >= rejection_cutoff(threshold, voters):
        return ProposalStatus.REJECTED
    return ProposalStatus.ACTIVE


def require_vote(proposal: Proposal, member: Member) -> None:
    """Raise the error explaining why `member` may not vote on `proposal`, if any."""
    if not member.permissions.vote:
        raise InsufficientPermissionError(member.address, "vote")
    if proposal.status is not ProposalStatus.ACTIVE:
        raise ProposalStateError(proposal.index, proposal.status.value, [ProposalStatus.ACTIVE.value])
    vote = proposal.vote_of(member.address)
    if vote is not None:
        raise AlreadyVotedError(member.address, proposal.index, vote)


def require_execute(proposal: Proposal, member: Member) -> None:
    if not member.permissions.execute:
        raise InsufficientPermissionError(member.address, "execute")
    if proposal.status is not ProposalStatus.APPROVED:
        raise ProposalStateError(proposal.index, proposal.status.value, [ProposalStatus.APPROVED.value])


async def fetch_proposal(
    vault: str, index: int, reader: ChainReader, addresses: AddressDeriver
) -> Optional[Proposal]:
    data = await reader.get_parsed_account(addresses.proposal_address(vault, index))
    return decode_proposal(index, data, vault=vault)


async def list_recent(
    vault: Vault,
    reader: ChainReader,
    addresses: AddressDeriver,
    window: int = DEFAULT_WINDOW,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[Proposal]:
    """
    Fetch the `window` most recent proposals of `vault`, newest first.

    Indices without a readable proposal account (e.g. a transaction that
    never got a proposal) are left out. So is any index whose read or decode
    fails; the failure is logged and the rest of the window is kept.
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    log = logger or _log
    newest = vault.transaction_index
    if newest < 1:
        return []
    indices = range(newest, max(1, newest - window + 1) - 1, -1)

    async def one(index: int) -> Optional[Proposal]:
        try:
            return await fetch_proposal(vault.address, index, reader, addresses)
        except SolvaultError as e:
            log.warning("vault %s: skipping proposal #%d: %s", vault.address, index, e)
            return None

    fetched = await asyncio.gather(*(one(i) for i in indices))
    out = [p for p in fetched if p is not None]
    log.debug("vault %s: %d of %d recent proposals readable", vault.address, len(out), len(indices))
    return out


__all__ = [
    "DEFAULT_WINDOW",
    "classify",
    "has_voted",
    "can_vote",
    "can_execute",
    "pending_count",
    "rejection_cutoff",
    "approvals_needed",
    "project_status",
    "require_vote",
    "require_execute",
    "fetch_proposal",
    "list_recent",
]
