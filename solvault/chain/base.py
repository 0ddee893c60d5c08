"""
Narrow interfaces to the chain.

Everything behind these protocols is owned by external collaborators: RPC
transport, program-derived address (PDA) derivation, instruction encoding,
signing and submission. This package only builds `Intent`s and reads
accounts.

- ChainReader   read-only, eventually consistent account access.
- ChainWriter   turns an Intent plus its signers into a submitted transaction and
                reports its confirmation. Confirmation, not submission, is the
                point at which a state change has happened.
- AddressDeriver  opaque PDA derivation for multisig/vault/proposal accounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from ..multisig.permissions import Member
    from ..wallet.keypair import Keypair

# SPL Token program; owner of every classic token account
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


@dataclass(frozen=True)
class ProgramAccount:
    pubkey: str
    data: Any
    lamports: int = 0


@dataclass(frozen=True)
class TokenAccount:
    """An SPL token account; `amount` is in the mint's base units."""

    address: str
    mint: str
    amount: int
    decimals: int = 0

    @property
    def ui_amount(self) -> float:
        return self.amount / (10 ** self.decimals)


class Confirmation(str, Enum):
    FINALIZED = "finalized"
    FAILED = "failed"


class IntentKind(str, Enum):
    CREATE_VAULT = "create_vault"
    PROPOSE = "propose"
    APPROVE = "approve"
    REJECT = "reject"
    EXECUTE = "execute"
    TRANSFER_SOL = "transfer_sol"
    TRANSFER_TOKEN = "transfer_token"


@dataclass(frozen=True)
class Intent:
    """
    What a transaction should do, before encoding.

    `vault` names the account the intent acts for: the multisig for vault
    actions, the sending wallet for plain transfers. Token transfers carry
    `mint`, the raw `amount` and the mint's `decimals`; SOL amounts go in
    `lamports`.
    """

    kind: IntentKind
    vault: str
    index: Optional[int] = None
    members: Tuple[Member, ...] = ()
    threshold: Optional[int] = None
    create_key: Optional[str] = None
    recipient: Optional[str] = None
    lamports: Optional[int] = None
    memo: Optional[str] = None
    mint: Optional[str] = None
    amount: Optional[int] = None
    decimals: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind.value, "vault": self.vault}
        for name in (
            "index",
            "threshold",
            "create_key",
            "recipient",
            "lamports",
            "memo",
            "mint",
            "amount",
            "decimals",
        ):
            val = getattr(self, name)
            if val is not None:
                out[name] = val
        if self.members:
            out["members"] = [m.to_dict() for m in self.members]
        return out


@runtime_checkable
class ChainReader(Protocol):
    async def get_account_balance(self, address: str) -> int: ...

    async def get_program_accounts(
        self, program_id: str, filters: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> List[ProgramAccount]: ...

    async def get_parsed_account(self, address: str) -> Optional[Any]: ...

    async def get_token_accounts(self, owner: str) -> List[TokenAccount]: ...


@runtime_checkable
class ChainWriter(Protocol):
    async def submit(self, intent: Intent, signer: Keypair, cosigners: Sequence[Keypair] = ()) -> str: ...

    async def confirm(self, signature: str) -> Confirmation: ...


@runtime_checkable
class AddressDeriver(Protocol):
    def multisig_address(self, create_key: str) -> str: ...

    def vault_address(self, multisig: str, index: int = 0) -> str: ...

    def proposal_address(self, multisig: str, index: int) -> str: ...


__all__ = [
    "TOKEN_PROGRAM_ID",
    "ProgramAccount",
    "TokenAccount",
    "Confirmation",
    "IntentKind",
    "Intent",
    "ChainReader",
    "ChainWriter",
    "AddressDeriver",
]
