import pytest

from solvault.errors import (
    AlreadyVotedError,
    ErrorCategory,
    InsufficientPermissionError,
    ProposalStateError,
    UnknownStatusError,
)
from solvault.multisig.decode import classify, decode_proposal, decode_vault
from solvault.multisig.permissions import Member, Permissions
from solvault.multisig.proposals import (
    approvals_needed,
    can_execute,
    can_vote,
    has_voted,
    list_recent,
    pending_count,
    project_status,
    rejection_cutoff,
    require_execute,
    require_vote,
)
from solvault.multisig.types import Proposal, ProposalStatus

from conftest import FakeChain, address_of

A, B, C = address_of("A"), address_of("B"), address_of("C")
ALL = Permissions.all()
VOTE_ONLY = Permissions(vote=True)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Active", ProposalStatus.ACTIVE),
        ("executed", ProposalStatus.EXECUTED),
        ({"__kind": "Approved", "timestamp": 1}, ProposalStatus.APPROVED),
        ({"cancelled": {"timestamp": 5}}, ProposalStatus.CANCELLED),
        ({"Draft": {}}, ProposalStatus.DRAFT),
        (ProposalStatus.REJECTED, ProposalStatus.REJECTED),
    ],
)
def test_classify(raw, expected) -> None:
    assert classify(raw) is expected


@pytest.mark.parametrize("raw", ["Executing", "", None, 3, {"a": 1, "b": 2}, {"__kind": "Paused"}])
def test_classify_unknown(raw) -> None:
    with pytest.raises(UnknownStatusError) as ei:
        classify(raw)
    assert ei.value.category is ErrorCategory.FATAL


def test_terminal_states() -> None:
    terminal = {s for s in ProposalStatus if s.is_terminal}
    assert terminal == {ProposalStatus.EXECUTED, ProposalStatus.REJECTED, ProposalStatus.CANCELLED}


def test_approvals_and_rejections_are_disjoint() -> None:
    with pytest.raises(ValueError):
        Proposal(1, ProposalStatus.ACTIVE, frozenset({A}), frozenset({A}))
    with pytest.raises(ValueError):
        Proposal(0, ProposalStatus.ACTIVE)


def test_vote_exclusivity() -> None:
    member = Member(B, VOTE_ONLY)
    p = Proposal(1, ProposalStatus.ACTIVE)
    assert can_vote(p, member)

    approved = Proposal(1, ProposalStatus.ACTIVE, approvals=frozenset({B}))
    assert has_voted(approved, B)
    assert not can_vote(approved, member)
    with pytest.raises(AlreadyVotedError):
        require_vote(approved, member)

    rejected = Proposal(1, ProposalStatus.ACTIVE, rejections=frozenset({B}))
    assert not can_vote(rejected, member)
    with pytest.raises(AlreadyVotedError) as ei:
        require_vote(rejected, member)
    assert ei.value.details["vote"] == "reject"


def test_can_vote_needs_active_and_vote_permission() -> None:
    p = Proposal(1, ProposalStatus.APPROVED)
    assert not can_vote(p, Member(B, VOTE_ONLY))
    with pytest.raises(ProposalStateError) as ei:
        require_vote(p, Member(B, VOTE_ONLY))
    assert ei.value.current == "Approved"
    assert ei.value.required == ["Active"]

    no_vote = Member(A, Permissions(propose=True, execute=True))
    assert not can_vote(Proposal(1, ProposalStatus.ACTIVE), no_vote)
    with pytest.raises(InsufficientPermissionError):
        require_vote(Proposal(1, ProposalStatus.ACTIVE), no_vote)


def test_two_approvals_at_threshold_two_is_approved() -> None:
    p = Proposal(1, ProposalStatus.ACTIVE, approvals=frozenset({A, B}))
    status = project_status(p, threshold=2, voters=3)
    assert status is ProposalStatus.APPROVED

    approved = Proposal(1, status, approvals=p.approvals)
    assert can_execute(approved, Member(A, ALL))
    assert not can_execute(approved, Member(B, VOTE_ONLY))
    assert not can_execute(p, Member(A, ALL))
    with pytest.raises(ProposalStateError):
        require_execute(p, Member(A, ALL))
    with pytest.raises(InsufficientPermissionError):
        require_execute(approved, Member(B, VOTE_ONLY))


def test_projection_rejection_cutoff() -> None:
    assert rejection_cutoff(threshold=2, voters=3) == 2
    one = Proposal(1, ProposalStatus.ACTIVE, rejections=frozenset({A}))
    assert project_status(one, 2, 3) is ProposalStatus.ACTIVE
    two = Proposal(1, ProposalStatus.ACTIVE, rejections=frozenset({A, B}))
    assert project_status(two, 2, 3) is ProposalStatus.REJECTED
    assert project_status(Proposal(1, ProposalStatus.EXECUTED), 2, 3) is ProposalStatus.EXECUTED


def test_approvals_needed() -> None:
    p = Proposal(1, ProposalStatus.ACTIVE, approvals=frozenset({A}))
    assert approvals_needed(p, 2) == 1
    assert approvals_needed(p, 1) == 0


def test_pending_count_includes_approved() -> None:
    statuses = ["Draft", "Active", "Approved", "Rejected", "Executed", "Cancelled", "Active"]
    proposals = [Proposal(i + 1, classify(s)) for i, s in enumerate(statuses)]
    assert pending_count(proposals) == 3


def test_decode_proposal_shapes() -> None:
    p = decode_proposal(3, {"status": {"__kind": "Active"}, "approved": [A], "rejected": []}, vault="V")
    assert p is not None
    assert (p.index, p.status, p.approvals, p.vault) == (3, ProposalStatus.ACTIVE, frozenset({A}), "V")

    assert decode_proposal(1, None) is None
    assert decode_proposal(1, b"\x00\x01") is None
    assert decode_proposal(1, {"approved": []}) is None
    assert decode_proposal(1, {"status": "Active", "approved": "A"}) is None
    assert decode_proposal(1, {"status": "Active", "approved": [A], "rejected": [A]}) is None
    with pytest.raises(UnknownStatusError):
        decode_proposal(1, {"status": {"__kind": "Executing"}})


@pytest.mark.asyncio
async def test_list_recent_fetches_a_bounded_descending_window(chain: FakeChain) -> None:
    vault_addr = chain.add_vault([(A, 7), (B, 2)], threshold=1)
    for i in range(1, 31):
        chain.add_proposal(vault_addr, i, "Executed" if i < 25 else "Active")
    # a transaction whose proposal account is missing
    del chain.accounts[chain.proposal_address(vault_addr, 28)]

    vault = decode_vault(vault_addr, chain.accounts[vault_addr])
    assert vault is not None and vault.transaction_index == 30

    recent = await list_recent(vault, chain, chain, window=20)
    indices = [p.index for p in recent]
    assert indices == [i for i in range(30, 10, -1) if i != 28]
    assert pending_count(recent) == 5

    small = await list_recent(vault, chain, chain, window=3)
    assert [p.index for p in small] == [30, 29]


@pytest.mark.asyncio
async def test_list_recent_on_fresh_vault(chain: FakeChain) -> None:
    vault = decode_vault("V" * 32, {"threshold": 1, "members": [{"key": A, "permissions": 7}]})
    assert vault is not None
    assert await list_recent(vault, chain, chain) == []
    with pytest.raises(ValueError):
        await list_recent(vault, chain, chain, window=0)


@pytest.mark.asyncio
async def test_list_recent_skips_an_unreadable_index(chain: FakeChain, caplog) -> None:
    vault_addr = chain.add_vault([(A, 7), (B, 2)], threshold=1)
    for i in (1, 2, 3):
        chain.add_proposal(vault_addr, i, "Active")
    chain.accounts[chain.proposal_address(vault_addr, 2)]["status"] = {"__kind": "Stale"}
    vault = decode_vault(vault_addr, chain.accounts[vault_addr])
    assert vault is not None

    with caplog.at_level("WARNING", logger="solvault.multisig.proposals"):
        recent = await list_recent(vault, chain, chain)
    assert [p.index for p in recent] == [3, 1]
    assert pending_count(recent) == 2
    assert "#2" in caplog.text

    # a transient read failure is skipped the same way
    chain.unreadable.add(chain.proposal_address(vault_addr, 3))
    assert [p.index for p in await list_recent(vault, chain, chain)] == [1]
