"""
solvault.wallet
===============

Convenience exports for wallet helpers:

- Password-based AEAD (PBKDF2-HMAC-SHA256 + AES-256-GCM).
- Keystore (one encrypted identity per storage namespace).
- Ed25519 Keypair in the Solana 64-byte secret layout.
- WalletService: SOL and SPL balances, SOL and token transfers.
"""

from .cipher import EncryptedBlob, decrypt, derive_key, encrypt
from .keypair import Keypair
from .account import TokenBalance, TransferReceipt, WalletBalance, WalletService
from .keystore import Keystore, KeystoreState, SecretExport, WalletStatus

__all__ = [
    # cipher
    "EncryptedBlob",
    "derive_key",
    "encrypt",
    "decrypt",
    # keystore
    "Keystore",
    "KeystoreState",
    "WalletStatus",
    "SecretExport",
    # signing
    "Keypair",
    # balance & transfers
    "WalletService",
    "WalletBalance",
    "TokenBalance",
    "TransferReceipt",
]
