"""
Attempt-decode of parsed multisig program accounts.

The program's byte layout is owned by its SDK; what reaches this module is
already parsed into JSON-like mappings (by the node's jsonParsed encoding or
by an injected account parser). Decoders here return ``None`` for anything
that does not have the expected shape so that callers can compose them with
a filter instead of catching exceptions:

    vaults = [v for v in (decode_vault(a.pubkey, a.data) for a in accounts) if v]

Accepted shapes
---------------
Multisig::

    {"createKey": "<b58>", "threshold": 2, "transactionIndex": 7,
     "staleTransactionIndex": 0,
     "members": [{"key": "<b58>", "permissions": {"mask": 7}}, ...]}

  A member's address may be under ``key``, ``publicKey`` or ``address``;
  permissions may be a bitmask (``{"mask": n}`` or a bare int) or explicit
  flags (``initiate``/``propose``, ``vote``, ``execute``).

Proposal::

    {"status": {"__kind": "Active", "timestamp": ...},
     "approved": ["<b58>", ...], "rejected": ["<b58>", ...]}

  ``approvals``/``rejections`` are accepted as aliases.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..address import is_valid_address
from ..errors import UnknownStatusError
from .permissions import Member, Permissions
from .types import Proposal, ProposalStatus, Vault

_STATUS_BY_TAG = {s.value.lower(): s for s in ProposalStatus}


def _status_tag(raw: Any) -> Optional[str]:
    if isinstance(raw, ProposalStatus):
        return raw.value
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        kind = raw.get("__kind")
        if isinstance(kind, str):
            return kind
        if len(raw) == 1:
            (only,) = raw.keys()
            if isinstance(only, str):
                return only
    return None


def classify(raw_status: Any) -> ProposalStatus:
    """
    Map the chain's raw status tag to a ProposalStatus.

    Accepts a tag string, an enum-style mapping with ``__kind`` or a
    single-key mapping (``{"active": {"timestamp": ...}}``); matching is
    case-insensitive. Anything else raises UnknownStatusError.
    """
    tag = _status_tag(raw_status)
    status = _STATUS_BY_TAG.get(tag.strip().lower()) if tag is not None else None
    if status is None:
        raise UnknownStatusError(raw_status)
    return status


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _permissions(raw: Any) -> Optional[Permissions]:
    mask = _as_int(raw)
    if mask is not None:
        return Permissions.from_mask(mask)
    if not isinstance(raw, Mapping):
        return None
    if "mask" in raw:
        mask = _as_int(raw["mask"])
        return Permissions.from_mask(mask) if mask is not None else None
    return Permissions(
        propose=bool(raw.get("initiate", raw.get("propose", False))),
        vote=bool(raw.get("vote", False)),
        execute=bool(raw.get("execute", False)),
    )


def _member(raw: Any) -> Optional[Member]:
    if not isinstance(raw, Mapping):
        return None
    addr = raw.get("key", raw.get("publicKey", raw.get("address")))
    if not isinstance(addr, str) or not is_valid_address(addr):
        return None
    perms = _permissions(raw.get("permissions", 0))
    if perms is None:
        return None
    return Member(addr, perms)


def decode_vault(address: str, data: Any) -> Optional[Vault]:
    """Return a Vault projection, or None if `data` is not a multisig account."""
    if not isinstance(data, Mapping):
        return None
    raw_members = data.get("members")
    threshold = _as_int(data.get("threshold"))
    if not isinstance(raw_members, list) or threshold is None:
        return None
    members: List[Member] = []
    for rm in raw_members:
        m = _member(rm)
        if m is None:
            return None
        members.append(m)
    tx_index = _as_int(data.get("transactionIndex", 0))
    stale = _as_int(data.get("staleTransactionIndex", 0))
    if tx_index is None or stale is None:
        return None
    return Vault(
        address=address,
        create_key=str(data.get("createKey") or ""),
        threshold=threshold,
        members=tuple(members),
        transaction_index=tx_index,
        stale_transaction_index=stale,
    )


def _addresses(raw: Any) -> Optional[frozenset]:
    if raw is None:
        return frozenset()
    if not isinstance(raw, list) or not all(isinstance(a, str) for a in raw):
        return None
    return frozenset(raw)


def decode_proposal(index: int, data: Any, *, vault: str = "") -> Optional[Proposal]:
    """
    Return a Proposal projection, or None if `data` is not a proposal account.

    A well-formed account with an unrecognized status tag still raises
    UnknownStatusError from classify().
    """
    if not isinstance(data, Mapping) or "status" not in data or index < 1:
        return None
    approvals = _addresses(data.get("approved", data.get("approvals")))
    rejections = _addresses(data.get("rejected", data.get("rejections")))
    if approvals is None or rejections is None or approvals & rejections:
        return None
    return Proposal(
        index=index,
        status=classify(data["status"]),
        approvals=approvals,
        rejections=rejections,
        vault=vault,
    )


__all__ = ["classify", "decode_vault", "decode_proposal"]
