"""
solvault.address
================

Base58 public-key helpers and validation of untrusted front-end input.

Solana addresses are the base58 (Bitcoin alphabet) encoding of a 32-byte
ed25519 public key, which yields 32-44 characters. Everything arriving from a
UI or CLI (addresses, amounts) goes through the validators here before any
I/O happens; failures name the offending field.

This module provides:
- b58encode(data) -> str / b58decode(s) -> bytes
- is_valid_address(s) -> bool
- validate_address(s, field="address") -> str
- validate_amount(x, field="amount") -> float
- sol_to_lamports(sol) -> int / lamports_to_sol(lamports) -> float
- short_address(addr) -> str
"""

from __future__ import annotations

import math
from typing import Any

from .errors import InvalidAddressError, InvalidAmountError

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}

PUBKEY_LENGTH = 32
LAMPORTS_PER_SOL = 1_000_000_000

__all__ = [
    "ALPHABET",
    "LAMPORTS_PER_SOL",
    "b58encode",
    "b58decode",
    "is_valid_address",
    "validate_address",
    "validate_amount",
    "sol_to_lamports",
    "lamports_to_sol",
    "short_address",
]


def b58encode(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    encoded = ""
    while value > 0:
        value, mod = divmod(value, 58)
        encoded = ALPHABET[mod] + encoded
    # Preserve leading zeroes as "1" characters.
    padding = 0
    for byte in data:
        if byte == 0:
            padding += 1
        else:
            break
    return "1" * padding + encoded


def b58decode(s: str) -> bytes:
    """Decode a base58 string. Raises ValueError on characters outside the alphabet."""
    value = 0
    for ch in s:
        try:
            value = value * 58 + _INDEX[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    padding = len(s) - len(s.lstrip("1"))
    return b"\x00" * padding + body


def is_valid_address(s: Any) -> bool:
    if not isinstance(s, str) or not (32 <= len(s) <= 44):
        return False
    try:
        return len(b58decode(s)) == PUBKEY_LENGTH
    except ValueError:
        return False


def validate_address(s: Any, field: str = "address") -> str:
    if isinstance(s, str):
        s = s.strip()
    if not is_valid_address(s):
        raise InvalidAddressError(s, field=field)
    return s


def validate_amount(x: Any, field: str = "amount") -> float:
    # bool is an int subclass; "True SOL" is never intended
    if isinstance(x, bool):
        raise InvalidAmountError(x, field=field)
    try:
        val = float(x)
    except (TypeError, ValueError):
        raise InvalidAmountError(x, field=field) from None
    if not math.isfinite(val) or val <= 0:
        raise InvalidAmountError(x, field=field)
    return val


def sol_to_lamports(sol: Any, field: str = "amount") -> int:
    lamports = round(validate_amount(sol, field=field) * LAMPORTS_PER_SOL)
    if lamports < 1:
        raise InvalidAmountError(sol, field=field)
    return int(lamports)


def lamports_to_sol(lamports: int) -> float:
    return int(lamports) / LAMPORTS_PER_SOL


def short_address(addr: str) -> str:
    if len(addr) <= 12:
        return addr
    return f"{addr[:6]}...{addr[-6:]}"
