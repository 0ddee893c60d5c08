"""
HTTP JSON-RPC chain reader (async).

- Uses httpx.AsyncClient against a Solana-compatible JSON-RPC 2.0 endpoint.
- Implements the read-only ChainReader protocol: getBalance,
  getTokenAccountsByOwner (SPL Token program, jsonParsed),
  getProgramAccounts and getAccountInfo (jsonParsed).
- Does not retry. Transport failures, non-JSON bodies and JSON-RPC error
  objects all surface as ChainUnavailableError; retrying is the caller's
  decision.
- The multisig program's byte layout is not decoded here. Accounts the node
  cannot parse are handed to an optional `parser` (typically the program
  SDK's account decoder); without one the raw bytes are returned.

Example:
    async with RpcChainReader("https://api.devnet.solana.com") as rpc:
        lamports = await rpc.get_account_balance(address)
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from itertools import count
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

import httpx

from ..config import Config
from ..errors import ChainUnavailableError
from ..version import __version__
from .base import TOKEN_PROGRAM_ID, ProgramAccount, TokenAccount

AccountParser = Callable[[bytes], Optional[Any]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _decode_data(data: Any) -> Any:
    """Turn an RPC `data` field into parsed JSON or raw bytes."""
    if isinstance(data, dict):
        return data.get("parsed", data)
    if isinstance(data, list) and len(data) == 2 and data[1] == "base64":
        try:
            return base64.b64decode(data[0])
        except (binascii.Error, TypeError):
            return None
    return data


class RpcChainReader:
    """Read-only JSON-RPC 2.0 client over HTTP."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        commitment: str = "confirmed",
        parser: Optional[AccountParser] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self.parser = parser
        self._ids: Iterator[int] = count(start=_now_ms())
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": f"solvault-python/{__version__}",
            },
        )
        self._log = logger or logging.getLogger("solvault.chain.rpc")

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        parser: Optional[AccountParser] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "RpcChainReader":
        return cls(config.rpc_url, timeout=config.request_timeout, parser=parser, client=client, logger=logger)

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "RpcChainReader":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- transport -------------------------------------------------------

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Perform a single JSON-RPC request and return `result` or raise ChainUnavailableError."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        try:
            r = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise ChainUnavailableError(f"RPC transport failed: {e}", method=method) from e
        try:
            resp = r.json()
        except ValueError as e:
            raise ChainUnavailableError(
                f"non-JSON response from RPC (HTTP {r.status_code}): {r.text[:256]}", method=method
            ) from e
        if not isinstance(resp, dict):
            raise ChainUnavailableError("invalid JSON-RPC response type", method=method)
        if resp.get("error") is not None:
            err = resp["error"] or {}
            raise ChainUnavailableError(
                f"RPC[{method}] {err.get('message', 'unknown error')}",
                method=method,
                rpc_code=err.get("code"),
            )
        if "result" not in resp:
            raise ChainUnavailableError("malformed JSON-RPC response", method=method)
        return resp["result"]

    # --- ChainReader -----------------------------------------------------

    def _parse(self, data: Any) -> Any:
        decoded = _decode_data(data)
        if isinstance(decoded, (bytes, bytearray)) and self.parser is not None:
            return self.parser(bytes(decoded))
        return decoded

    async def get_account_balance(self, address: str) -> int:
        result = await self.request("getBalance", [address, {"commitment": self.commitment}])
        value = result.get("value") if isinstance(result, dict) else result
        return int(value or 0)

    async def get_program_accounts(
        self, program_id: str, filters: Optional[Sequence[Mapping[str, Any]]] = None
    ) -> List[ProgramAccount]:
        opts: Dict[str, Any] = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            opts["filters"] = [dict(f) for f in filters]
        result = await self.request("getProgramAccounts", [program_id, opts])
        out: List[ProgramAccount] = []
        for item in result or []:
            if not isinstance(item, dict) or "pubkey" not in item:
                continue
            account = item.get("account") or {}
            out.append(
                ProgramAccount(
                    pubkey=str(item["pubkey"]),
                    data=self._parse(account.get("data")),
                    lamports=int(account.get("lamports") or 0),
                )
            )
        self._log.debug("getProgramAccounts(%s) -> %d accounts", program_id, len(out))
        return out

    async def get_parsed_account(self, address: str) -> Optional[Any]:
        result = await self.request(
            "getAccountInfo", [address, {"encoding": "jsonParsed", "commitment": self.commitment}]
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        return self._parse(value.get("data"))

    async def get_token_accounts(self, owner: str) -> List[TokenAccount]:
        result = await self.request(
            "getTokenAccountsByOwner",
            [owner, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        items = result.get("value") if isinstance(result, dict) else None
        out: List[TokenAccount] = []
        for item in items or []:
            account = _token_account(item)
            if account is not None:
                out.append(account)
        self._log.debug("getTokenAccountsByOwner(%s) -> %d accounts", owner, len(out))
        return out


def _token_account(item: Any) -> Optional[TokenAccount]:
    """Shape one jsonParsed token account; anything unexpected is dropped."""
    if not isinstance(item, dict) or "pubkey" not in item:
        return None
    data = (item.get("account") or {}).get("data")
    info = data.get("parsed", {}).get("info") if isinstance(data, dict) else None
    if not isinstance(info, dict) or not isinstance(info.get("mint"), str):
        return None
    amount = info.get("tokenAmount") or {}
    try:
        return TokenAccount(
            address=str(item["pubkey"]),
            mint=info["mint"],
            amount=int(amount.get("amount") or 0),
            decimals=int(amount.get("decimals") or 0),
        )
    except (TypeError, ValueError):
        return None


__all__ = ["RpcChainReader", "AccountParser"]
