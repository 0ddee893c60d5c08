import logging

import pytest
from hypothesis import given
from hypothesis import strategies as st

from solvault.errors import (
    DuplicateMemberError,
    ErrorCategory,
    InvalidAddressError,
    InvalidThresholdError,
    NoPermissionError,
)
from solvault.multisig.permissions import (
    EXECUTE,
    PROPOSE,
    VOTE,
    Member,
    Permissions,
    can_execute,
    can_propose,
    can_vote,
    default_threshold,
    validate_members,
    validate_threshold,
    voter_count,
)

from conftest import address_of

A, B, C = address_of("A"), address_of("B"), address_of("C")


def test_mask_round_trip() -> None:
    assert (PROPOSE, VOTE, EXECUTE) == (1, 2, 4)
    for mask in range(8):
        assert Permissions.from_mask(mask).mask == mask
    assert Permissions.all().mask == 7
    assert Permissions().is_empty


def test_capability_predicates() -> None:
    voter = Member(B, Permissions(vote=True))
    assert can_vote(voter) and not can_propose(voter) and not can_execute(voter)
    full = Member(A, Permissions.all())
    assert can_propose(full) and can_vote(full) and can_execute(full)
    assert not can_vote(None)


def test_threshold_example() -> None:
    members = [
        Member(A, Permissions(propose=True, execute=True)),
        Member(B, Permissions(vote=True)),
        Member(C, Permissions(vote=True)),
    ]
    assert validate_threshold(2, members) == 2
    with pytest.raises(InvalidThresholdError) as ei:
        validate_threshold(3, members)
    assert ei.value.details["voters"] == 2
    assert ei.value.category is ErrorCategory.INPUT


@given(masks=st.lists(st.integers(min_value=0, max_value=7), max_size=8), threshold=st.integers(-2, 10))
def test_threshold_invariant(masks, threshold) -> None:
    members = [Member(address_of(str(i)), Permissions.from_mask(m)) for i, m in enumerate(masks)]
    voters = sum(1 for m in masks if m & VOTE)
    assert voter_count(members) == voters
    if 1 <= threshold <= voters:
        assert validate_threshold(threshold, members) == threshold
    else:
        with pytest.raises(InvalidThresholdError):
            validate_threshold(threshold, members)


@pytest.mark.parametrize("bad", [True, 1.0, "2", None])
def test_threshold_must_be_an_int(bad) -> None:
    members = [Member(A, Permissions.all()), Member(B, Permissions.all())]
    with pytest.raises(InvalidThresholdError):
        validate_threshold(bad, members)


def test_duplicate_members() -> None:
    with pytest.raises(DuplicateMemberError) as ei:
        validate_members([Member(A, Permissions.all()), Member(f" {A} ", Permissions(vote=True))])
    assert ei.value.details["address"] == A


def test_member_addresses_are_validated() -> None:
    with pytest.raises(InvalidAddressError) as ei:
        validate_members([Member(A, Permissions.all()), Member("nope", Permissions.all())])
    assert ei.value.details["field"] == "members[1]"


def test_zero_capability_member_hard_fails_by_default() -> None:
    with pytest.raises(NoPermissionError):
        validate_members([Member(A, Permissions.all()), Member(B)])


def test_zero_capability_member_allowed_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="solvault.multisig.permissions"):
        out = validate_members([Member(A, Permissions.all()), Member(B)], allow_inert=True)
    assert [m.address for m in out] == [A, B]
    assert "no permissions" in caplog.text


@pytest.mark.parametrize("voters,expected", [(1, 1), (2, 1), (3, 2), (4, 2), (5, 3)])
def test_default_threshold_is_majority(voters, expected) -> None:
    members = [Member(address_of(str(i)), Permissions.all()) for i in range(voters)]
    assert default_threshold(members) == expected
