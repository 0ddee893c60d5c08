"""
Token metadata for display, and symbol -> mint resolution.

`TokenListCache` is an explicitly owned object: whoever renders balances
creates one and keeps it. The first `tokens()` call fetches the verified list
once; if that fails the built-in fallback is used for the cache's lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from .address import validate_address
from .config import DEFAULT_TOKEN_LIST_URL, Config


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    name: str
    decimals: int = 0
    logo_uri: Optional[str] = None

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> Optional["TokenInfo"]:
        """Accept both the legacy (`address`, `logoURI`) and v2 (`id`, `icon`) list shapes."""
        address = obj.get("address") or obj.get("id")
        symbol = obj.get("symbol")
        if not isinstance(address, str) or not isinstance(symbol, str):
            return None
        try:
            decimals = int(obj.get("decimals") or 0)
        except (TypeError, ValueError):
            decimals = 0
        return cls(
            address=address,
            symbol=symbol,
            name=str(obj.get("name") or symbol),
            decimals=decimals,
            logo_uri=obj.get("logoURI") or obj.get("icon"),
        )


# symbol -> mint, for amounts typed by a user ("10 USDC")
TOKEN_SYMBOLS: Dict[str, str] = {
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "WSOL": "So11111111111111111111111111111111111111112",
    "MSOL": "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
    "JTO": "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",
    "PYTH": "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
    "RENDER": "rndrizKT3MK1iimdxRdWabcF7Zg7AR5T4nud4EkHBof",
    "MEW": "MEW1gQWJ3nEXg2qgERiKu7FAFj79PHvQVREQUzScPP5",
    "DRIFT": "DriFtupJYLTosbwoN8koMbEYSx54aFAVLddWsbksjwg7",
    "TNSR": "TNSRxcUxoT9xBG3de7PiJyTDYu7kskLqcpddxnEJAS6",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
}


def _known(address: str, symbol: str, name: str) -> TokenInfo:
    # decimals unknown offline; the mint account is authoritative
    return TokenInfo(address=address, symbol=symbol, name=name)


KNOWN_TOKENS: Dict[str, TokenInfo] = {
    t.address: t
    for t in (
        _known("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USDC", "USD Coin"),
        _known("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", "USDT", "Tether USD"),
        _known("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", "BONK", "Bonk"),
        _known("JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", "JUP", "Jupiter"),
        _known("So11111111111111111111111111111111111111112", "wSOL", "Wrapped SOL"),
        _known("mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", "mSOL", "Marinade Staked SOL"),
        _known("HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3", "PYTH", "Pyth Network"),
        _known("rndrizKT3MK1iimdxRdWabcF7Zg7AR5T4nud4EkHBof", "RENDER", "Render Token"),
        _known("jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL", "JTO", "Jito"),
        _known("EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", "WIF", "dogwifhat"),
        _known("MEW1gQWJ3nEXg2qgERiKu7FAFj79PHvQVREQUzScPP5", "MEW", "cat in a dogs world"),
        _known("DriFtupJYLTosbwoN8koMbEYSx54aFAVLddWsbksjwg7", "DRIFT", "Drift"),
        _known("TNSRxcUxoT9xBG3de7PiJyTDYu7kskLqcpddxnEJAS6", "TNSR", "Tensor"),
        _known("4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", "RAY", "Raydium"),
        _known("orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE", "ORCA", "Orca"),
    )
}


def resolve_mint(symbol_or_mint: str) -> str:
    """Map a known symbol (case-insensitive) to its mint; otherwise require a valid mint address."""
    text = (symbol_or_mint or "").strip()
    mint = TOKEN_SYMBOLS.get(text.upper())
    if mint is not None:
        return mint
    return validate_address(text, field="mint")


class TokenListCache:
    def __init__(
        self,
        url: str = DEFAULT_TOKEN_LIST_URL,
        client: Optional[httpx.AsyncClient] = None,
        fallback: Optional[Mapping[str, TokenInfo]] = None,
        *,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.url = url
        self._client = client
        self._timeout = timeout
        self._fallback = dict(KNOWN_TOKENS if fallback is None else fallback)
        self._tokens: Optional[Dict[str, TokenInfo]] = None
        self._lock = asyncio.Lock()
        self._log = logger or logging.getLogger("solvault.tokens")
        self.from_fallback = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: Optional[httpx.AsyncClient] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "TokenListCache":
        return cls(config.token_list_url, client, timeout=config.request_timeout, logger=logger)

    async def _fetch(self) -> Dict[str, TokenInfo]:
        if self._client is not None:
            r = await self._client.get(self.url)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.get(self.url)
        r.raise_for_status()
        body = r.json()
        if not isinstance(body, list):
            raise ValueError("token list is not a JSON array")
        out: Dict[str, TokenInfo] = {}
        for obj in body:
            info = TokenInfo.from_json(obj) if isinstance(obj, Mapping) else None
            if info is not None:
                out[info.address] = info
        return out

    async def tokens(self) -> Dict[str, TokenInfo]:
        async with self._lock:
            if self._tokens is None:
                try:
                    self._tokens = await self._fetch()
                    self._log.info("loaded %d tokens from %s", len(self._tokens), self.url)
                except (httpx.HTTPError, ValueError) as e:
                    self._log.warning("using fallback token list: %s", e)
                    self._tokens = dict(self._fallback)
                    self.from_fallback = True
            return self._tokens

    async def lookup(self, mint: str) -> Optional[TokenInfo]:
        return (await self.tokens()).get(mint)

    def resolve_mint(self, symbol_or_mint: str) -> str:
        return resolve_mint(symbol_or_mint)


__all__ = ["TokenInfo", "TOKEN_SYMBOLS", "KNOWN_TOKENS", "resolve_mint", "TokenListCache"]
