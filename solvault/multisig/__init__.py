"""
solvault.multisig
=================

Local multisig state model:

- permissions  member capabilities, threshold and roster validation
- types        VaultReference (persisted), Vault/Proposal (projections)
- decode       attempt-decode of parsed program accounts, status classify
- proposals    proposal state machine predicates and recent-proposal reads
- registry     per-owner vault list, discovery and import
- links        share-link build/parse
- service      authorized actions submitted through a ChainWriter
"""

from .decode import classify, decode_proposal, decode_vault
from .links import ShareLinkTarget, extract_vault_address, parse_link, proposal_link, vault_link
from .permissions import (
    Member,
    Permissions,
    can_execute as member_can_execute,
    can_propose,
    can_vote as member_can_vote,
    default_threshold,
    validate_members,
    validate_threshold,
    voter_count,
)
from .proposals import (
    approvals_needed,
    can_execute,
    can_vote,
    has_voted,
    list_recent,
    pending_count,
    project_status,
)
from .registry import VaultRegistry
from .service import ActionReceipt, MultisigService, VaultBalance, VaultCreated, VaultSummary
from .types import Proposal, ProposalStatus, Vault, VaultReference

__all__ = [
    # permissions
    "Member", "Permissions",
    "can_propose", "member_can_vote", "member_can_execute",
    "voter_count", "validate_threshold", "validate_members", "default_threshold",
    # types
    "Vault", "VaultReference", "Proposal", "ProposalStatus",
    # decode / proposals
    "classify", "decode_vault", "decode_proposal",
    "can_vote", "can_execute", "has_voted", "pending_count",
    "project_status", "approvals_needed", "list_recent",
    # registry / links
    "VaultRegistry",
    "ShareLinkTarget", "vault_link", "proposal_link", "parse_link", "extract_vault_address",
    # service
    "MultisigService", "ActionReceipt", "VaultCreated", "VaultBalance", "VaultSummary",
]
