from __future__ import annotations

import copy
import hashlib
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import pytest

from solvault.address import b58encode
from solvault.chain.base import Confirmation, Intent, IntentKind, ProgramAccount, TokenAccount
from solvault.config import Config
from solvault.errors import ChainUnavailableError
from solvault.multisig.proposals import rejection_cutoff
from solvault.multisig.registry import VaultRegistry
from solvault.multisig.service import MultisigService
from solvault.storage import MemoryStorage
from solvault.wallet import Keypair, Keystore

# Keeps PBKDF2 fast in tests; production default is 100k.
TEST_ITERATIONS = 1_000


def address_of(label: str) -> str:
    """Deterministic, valid 32-byte base58 address for a label."""
    return b58encode(hashlib.sha256(label.encode("utf-8")).digest())


class FakeChain:
    """
    In-memory stand-in for the RPC reader, the transaction writer and the PDA
    deriver. `confirm` applies an intent the way the multisig program would.
    """

    def __init__(self, program_id: str) -> None:
        self.program_id = program_id
        self.accounts: Dict[str, Any] = {}
        self.balances: Dict[str, int] = {}
        self.transfers: Dict[Tuple[str, int], Tuple[str, int]] = {}
        self.pending: Dict[str, Tuple[Intent, Keypair, Tuple[Keypair, ...]]] = {}
        self.submitted: List[Intent] = []
        self.program_calls: List[Optional[Sequence[Any]]] = []
        self.fail_next = False
        self.honor_size_filter = True
        self.extra_program_accounts: List[ProgramAccount] = []
        self.token_accounts: Dict[str, List[TokenAccount]] = {}
        self.unreadable: Set[str] = set()
        self.reads_down = False
        self._n = 0

    # --- AddressDeriver --------------------------------------------------

    def multisig_address(self, create_key: str) -> str:
        return address_of(f"multisig:{create_key}")

    def vault_address(self, multisig: str, index: int = 0) -> str:
        return address_of(f"vault:{multisig}:{index}")

    def proposal_address(self, multisig: str, index: int) -> str:
        return address_of(f"proposal:{multisig}:{index}")

    # --- ChainReader -----------------------------------------------------

    async def get_account_balance(self, address: str) -> int:
        return self.balances.get(address, 0)

    async def get_program_accounts(self, program_id: str, filters=None) -> List[ProgramAccount]:
        self.program_calls.append(filters)
        if filters and not self.honor_size_filter:
            return []
        multisigs = [
            ProgramAccount(pubkey=addr, data=copy.deepcopy(data))
            for addr, data in self.accounts.items()
            if isinstance(data, dict) and "members" in data
        ]
        return multisigs + list(self.extra_program_accounts)

    async def get_parsed_account(self, address: str) -> Optional[Any]:
        if self.reads_down or address in self.unreadable:
            raise ChainUnavailableError("node unreachable", method="getAccountInfo")
        return copy.deepcopy(self.accounts.get(address))

    async def get_token_accounts(self, owner: str) -> List[TokenAccount]:
        return list(self.token_accounts.get(owner, []))

    # --- ChainWriter -----------------------------------------------------

    async def submit(self, intent: Intent, signer: Keypair, cosigners: Sequence[Keypair] = ()) -> str:
        self._n += 1
        signature = address_of(f"sig:{self._n}")
        self.pending[signature] = (intent, signer, tuple(cosigners))
        self.submitted.append(intent)
        return signature

    async def confirm(self, signature: str) -> Confirmation:
        intent, signer, cosigners = self.pending.pop(signature)
        if self.fail_next:
            self.fail_next = False
            return Confirmation.FAILED
        self._apply(intent, signer, cosigners)
        return Confirmation.FINALIZED

    # --- program emulation -----------------------------------------------

    def add_vault(self, members: Sequence[Tuple[str, int]], threshold: int, *, create_key: Optional[str] = None) -> str:
        create_key = create_key or address_of(f"ck:{len(self.accounts)}")
        address = self.multisig_address(create_key)
        self.accounts[address] = {
            "createKey": create_key,
            "threshold": threshold,
            "members": [{"key": a, "permissions": {"mask": mask}} for a, mask in members],
            "transactionIndex": 0,
            "staleTransactionIndex": 0,
        }
        return address

    def add_proposal(self, vault: str, index: int, status: str, approved=(), rejected=()) -> None:
        self.accounts[self.proposal_address(vault, index)] = {
            "multisig": vault,
            "transactionIndex": index,
            "status": {"__kind": status},
            "approved": list(approved),
            "rejected": list(rejected),
        }
        self.accounts[vault]["transactionIndex"] = max(self.accounts[vault]["transactionIndex"], index)

    def add_token_account(self, owner: str, mint: str, amount: int, decimals: int) -> TokenAccount:
        account = TokenAccount(address_of(f"ata:{owner}:{mint}"), mint, amount, decimals)
        self.token_accounts.setdefault(owner, []).append(account)
        return account

    def _move_tokens(self, sender: str, recipient: str, mint: Optional[str], amount: int) -> None:
        source = next(a for a in self.token_accounts[sender] if a.mint == mint)
        assert source.amount >= amount
        self.token_accounts[sender] = [
            TokenAccount(a.address, a.mint, a.amount - amount, a.decimals) if a is source else a
            for a in self.token_accounts[sender]
        ]
        self.add_token_account(recipient, source.mint, amount, source.decimals)

    def _apply(self, intent: Intent, signer: Keypair, cosigners: Tuple[Keypair, ...]) -> None:
        if intent.kind is IntentKind.CREATE_VAULT:
            assert any(c.public_key == intent.create_key for c in cosigners)
            self.accounts[intent.vault] = {
                "createKey": intent.create_key,
                "threshold": intent.threshold,
                "members": [{"key": m.address, "permissions": {"mask": m.permissions.mask}} for m in intent.members],
                "transactionIndex": 0,
                "staleTransactionIndex": 0,
            }
            return
        if intent.kind is IntentKind.TRANSFER_SOL:
            assert intent.recipient is not None and intent.lamports is not None
            self.balances[intent.vault] = self.balances.get(intent.vault, 0) - intent.lamports
            self.balances[intent.recipient] = self.balances.get(intent.recipient, 0) + intent.lamports
            return
        if intent.kind is IntentKind.TRANSFER_TOKEN:
            assert intent.recipient is not None and intent.amount is not None
            self._move_tokens(intent.vault, intent.recipient, intent.mint, intent.amount)
            return

        vault = self.accounts[intent.vault]
        assert intent.index is not None
        key = self.proposal_address(intent.vault, intent.index)
        if intent.kind is IntentKind.PROPOSE:
            vault["transactionIndex"] = intent.index
            self.add_proposal(intent.vault, intent.index, "Active")
            assert intent.recipient is not None and intent.lamports is not None
            self.transfers[(intent.vault, intent.index)] = (intent.recipient, intent.lamports)
            return

        proposal = self.accounts[key]
        voters = sum(1 for m in vault["members"] if m["permissions"]["mask"] & 2)
        if intent.kind is IntentKind.APPROVE:
            proposal["approved"].append(signer.public_key)
            if len(proposal["approved"]) >= vault["threshold"]:
                proposal["status"] = {"__kind": "Approved"}
        elif intent.kind is IntentKind.REJECT:
            proposal["rejected"].append(signer.public_key)
            if len(proposal["rejected"]) >= rejection_cutoff(vault["threshold"], voters):
                proposal["status"] = {"__kind": "Rejected"}
        elif intent.kind is IntentKind.EXECUTE:
            proposal["status"] = {"__kind": "Executed"}
            recipient, lamports = self.transfers[(intent.vault, intent.index)]
            treasury = self.vault_address(intent.vault, 0)
            self.balances[treasury] = self.balances.get(treasury, 0) - lamports
            self.balances[recipient] = self.balances.get(recipient, 0) + lamports


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(data_dir=tmp_path / "wallet-data", base_url="https://vault.example.org/")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def keystore(storage: MemoryStorage) -> Keystore:
    return Keystore(storage, iterations=TEST_ITERATIONS, allow_weak_kdf=True)


@pytest.fixture
def chain(config: Config) -> FakeChain:
    return FakeChain(config.program_id)


@pytest.fixture
def registry(storage: MemoryStorage, config: Config) -> VaultRegistry:
    return VaultRegistry(storage, program_id=config.program_id)


@pytest.fixture
def service(chain: FakeChain, registry: VaultRegistry, config: Config) -> MultisigService:
    return MultisigService(chain, chain, chain, registry, config)


@pytest.fixture
def alice() -> Keypair:
    return Keypair.generate()


@pytest.fixture
def bob() -> Keypair:
    return Keypair.generate()


@pytest.fixture
def carol() -> Keypair:
    return Keypair.generate()
