"""
solvault.chain
==============

Narrow chain interfaces (reader, writer, PDA derivation), the Intent type the
services build, submit-and-confirm, and an httpx-backed JSON-RPC reader.
"""

from .base import (
    TOKEN_PROGRAM_ID,
    AddressDeriver,
    ChainReader,
    ChainWriter,
    Confirmation,
    Intent,
    IntentKind,
    ProgramAccount,
    TokenAccount,
)
from .rpc import RpcChainReader
from .send import submit_and_confirm

__all__ = [
    "TOKEN_PROGRAM_ID",
    "AddressDeriver",
    "ChainReader",
    "ChainWriter",
    "Confirmation",
    "Intent",
    "IntentKind",
    "ProgramAccount",
    "TokenAccount",
    "RpcChainReader",
    "submit_and_confirm",
]
