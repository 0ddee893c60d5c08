"""
solvault (Python)
Password-encrypted Solana keystore and local multisig state model.
Convenience exports for the most common APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import Config  # noqa: F401
from .errors import (  # noqa: F401
    ErrorCategory,
    Outcome,
    SolvaultError,
    guard,
)

# Addresses
from .address import (  # noqa: F401
    is_valid_address,
    validate_address,
    validate_amount,
    sol_to_lamports,
    lamports_to_sol,
)

# Storage
from .storage import FileStorage, MemoryStorage, MirroredStorage, StorageBackend  # noqa: F401

# Wallet
from .wallet import Keypair, Keystore, KeystoreState, WalletService, decrypt, encrypt  # noqa: F401

# Chain
from .chain import Intent, IntentKind, RpcChainReader  # noqa: F401

# Multisig
from .multisig import (  # noqa: F401
    Member,
    MultisigService,
    Permissions,
    Proposal,
    ProposalStatus,
    Vault,
    VaultReference,
    VaultRegistry,
)

# Token metadata
from .tokens import TokenListCache, resolve_mint  # noqa: F401

# Wiring
from .app import App, build  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "Config",
    "ErrorCategory", "Outcome", "SolvaultError", "guard",
    # Address
    "is_valid_address", "validate_address", "validate_amount",
    "sol_to_lamports", "lamports_to_sol",
    # Storage
    "StorageBackend", "FileStorage", "MemoryStorage", "MirroredStorage",
    # Wallet
    "Keystore", "KeystoreState", "Keypair", "WalletService", "encrypt", "decrypt",
    # Chain
    "Intent", "IntentKind", "RpcChainReader",
    # Multisig
    "Member", "Permissions", "Vault", "VaultReference", "Proposal", "ProposalStatus",
    "VaultRegistry", "MultisigService",
    # Tokens
    "TokenListCache", "resolve_mint",
    # Wiring
    "App", "build",
]
