"""
solvault.wallet.account
=======================

Balance and plain transfers for a single wallet.

- WalletService.balance(address) -> WalletBalance
    SOL plus every non-empty SPL token account, labelled from the token list.
- WalletService.send_sol(signer, recipient, sol) -> TransferReceipt
- WalletService.send_token(signer, token, recipient, amount) -> TransferReceipt
    `token` is a known symbol ("USDC") or a mint address.

Transfers are validated before any I/O, checked against the sender's balance,
then handed to the ChainWriter; a receipt is returned only after the
transaction is confirmed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..address import LAMPORTS_PER_SOL, lamports_to_sol, short_address, sol_to_lamports, validate_address, validate_amount
from ..chain.base import ChainReader, ChainWriter, Intent, IntentKind, TokenAccount
from ..chain.send import submit_and_confirm
from ..errors import InsufficientBalanceError, InvalidAmountError, NotFoundError
from ..tokens import TokenListCache, resolve_mint
from .keypair import Keypair

EXPLORER_TX_URL = "https://solscan.io/tx/"

# flat network fee estimate for a single-signature transfer
FEE_RESERVE_LAMPORTS = 5_000


@dataclass(frozen=True)
class TokenBalance:
    mint: str
    symbol: str
    name: str
    amount: int
    decimals: int = 0

    @property
    def ui_amount(self) -> float:
        return self.amount / (10 ** self.decimals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.name,
            "amount": self.amount,
            "decimals": self.decimals,
            "uiAmount": self.ui_amount,
        }


@dataclass(frozen=True)
class WalletBalance:
    address: str
    lamports: int
    tokens: List[TokenBalance] = field(default_factory=list)

    @property
    def sol(self) -> float:
        return lamports_to_sol(self.lamports)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "lamports": self.lamports,
            "sol": self.sol,
            "tokens": [t.to_dict() for t in self.tokens],
        }


@dataclass(frozen=True)
class TransferReceipt:
    signature: str
    sender: str
    recipient: str
    amount: float
    mint: Optional[str] = None
    symbol: Optional[str] = None

    @property
    def explorer_url(self) -> str:
        return EXPLORER_TX_URL + self.signature

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "signature": self.signature,
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": self.amount,
            "explorerUrl": self.explorer_url,
        }
        if self.mint is not None:
            out["mint"] = self.mint
            out["symbol"] = self.symbol
        return out


class WalletService:
    def __init__(
        self,
        reader: ChainReader,
        writer: ChainWriter,
        tokens: Optional[TokenListCache] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.tokens = tokens or TokenListCache(logger=logger)
        self._log = logger or logging.getLogger("solvault.wallet.account")

    async def _label(self, account: TokenAccount) -> TokenBalance:
        info = await self.tokens.lookup(account.mint)
        symbol = info.symbol if info is not None else short_address(account.mint)
        name = info.name if info is not None else "Unknown Token"
        return TokenBalance(account.mint, symbol, name, account.amount, account.decimals)

    async def balance(self, address: str) -> WalletBalance:
        address = validate_address(address)
        lamports, accounts = await asyncio.gather(
            self.reader.get_account_balance(address),
            self.reader.get_token_accounts(address),
        )
        tokens = [await self._label(a) for a in accounts if a.amount > 0]
        self._log.debug("balance %s: %d lamports, %d tokens", address, lamports, len(tokens))
        return WalletBalance(address, lamports, tokens)

    async def send_sol(self, signer: Keypair, recipient: str, sol: Any) -> TransferReceipt:
        recipient = validate_address(recipient, field="recipient")
        lamports = sol_to_lamports(sol)
        available = await self.reader.get_account_balance(signer.public_key)
        if available < lamports + FEE_RESERVE_LAMPORTS:
            raise InsufficientBalanceError(
                (lamports + FEE_RESERVE_LAMPORTS) / LAMPORTS_PER_SOL, lamports_to_sol(available)
            )
        intent = Intent(IntentKind.TRANSFER_SOL, signer.public_key, recipient=recipient, lamports=lamports)
        signature = await submit_and_confirm(self.writer, intent, signer, logger=self._log)
        return TransferReceipt(signature, signer.public_key, recipient, lamports_to_sol(lamports))

    async def send_token(self, signer: Keypair, token: str, recipient: str, amount: Any) -> TransferReceipt:
        mint = resolve_mint(token)
        recipient = validate_address(recipient, field="recipient")
        ui_amount = validate_amount(amount)

        accounts = await self.reader.get_token_accounts(signer.public_key)
        source = next((a for a in accounts if a.mint == mint), None)
        if source is None:
            raise NotFoundError("token account", mint)
        info = await self.tokens.lookup(mint)
        symbol = info.symbol if info is not None else short_address(mint)

        raw = round(ui_amount * 10 ** source.decimals)
        if raw < 1:
            raise InvalidAmountError(amount)
        if raw > source.amount:
            raise InsufficientBalanceError(ui_amount, source.ui_amount, unit=symbol)

        intent = Intent(
            IntentKind.TRANSFER_TOKEN,
            signer.public_key,
            recipient=recipient,
            mint=mint,
            amount=raw,
            decimals=source.decimals,
        )
        signature = await submit_and_confirm(self.writer, intent, signer, logger=self._log)
        return TransferReceipt(signature, signer.public_key, recipient, ui_amount, mint=mint, symbol=symbol)


__all__ = [
    "EXPLORER_TX_URL",
    "FEE_RESERVE_LAMPORTS",
    "TokenBalance",
    "WalletBalance",
    "TransferReceipt",
    "WalletService",
]
