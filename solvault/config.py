"""
solvault configuration: data directory, RPC endpoint, share-link base URL,
multisig program id, and KDF / proposal-window tuning.

- Loads sane defaults and supports overrides via environment variables
  (SOLVAULT_*; a few legacy names such as SOLANA_RPC_URL and APP_BASE_URL are
  honored as fallbacks).
- Validates values eagerly and raises ConfigError naming the variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .address import is_valid_address
from .errors import ConfigError

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_BASE_URL = "http://localhost:5173"
# Squads v4 multisig program
DEFAULT_PROGRAM_ID = "SQDS4ep65T869zMMBKyuUq6aD6EgTu8psMjkvj52pCf"
DEFAULT_TOKEN_LIST_URL = "https://api.jup.ag/tokens/v2/tag?query=verified"

MIN_KDF_ITERATIONS = 100_000


def _default_data_dir() -> Path:
    return Path.home() / ".solvault" / "wallet-data"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v not in (None, "") else default


def _ensure_scheme(var: str, url: str, allowed: tuple[str, ...]) -> str:
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ConfigError(var, f"URL must start with {allowed}, got {url!r}")
    return url


def _int(var: str, raw: Any, minimum: int) -> int:
    try:
        val = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(var, f"expected an integer, got {raw!r}") from None
    if val < minimum:
        raise ConfigError(var, f"must be >= {minimum}, got {val}")
    return val


def _float(var: str, raw: Any) -> float:
    try:
        val = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(var, f"expected a number, got {raw!r}") from None
    if val <= 0:
        raise ConfigError(var, f"must be > 0, got {val}")
    return val


@dataclass(slots=True)
class Config:
    data_dir: Path = field(default_factory=_default_data_dir)
    rpc_url: str = DEFAULT_RPC_URL
    base_url: str = DEFAULT_BASE_URL
    program_id: str = DEFAULT_PROGRAM_ID
    kdf_iterations: int = MIN_KDF_ITERATIONS
    proposal_window: int = 20
    request_timeout: float = 30.0
    token_list_url: str = DEFAULT_TOKEN_LIST_URL

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        _ensure_scheme("rpc_url", self.rpc_url, ("http", "https"))
        _ensure_scheme("base_url", self.base_url, ("http", "https"))
        self.base_url = self.base_url.rstrip("/")
        if not is_valid_address(self.program_id):
            raise ConfigError("program_id", f"not a base58 public key: {self.program_id!r}")
        self.kdf_iterations = _int("kdf_iterations", self.kdf_iterations, MIN_KDF_ITERATIONS)
        self.proposal_window = _int("proposal_window", self.proposal_window, 1)
        self.request_timeout = _float("request_timeout", self.request_timeout)

    @classmethod
    def from_env(cls, prefix: str = "SOLVAULT_") -> "Config":
        """
        Create config from environment variables:

        SOLVAULT_DATA_DIR         wallet + registry directory
        SOLVAULT_RPC_URL          (http/https), falls back to SOLANA_RPC_URL
        SOLVAULT_BASE_URL         share-link base, falls back to APP_BASE_URL
        SOLVAULT_PROGRAM_ID       multisig program id (base58)
        SOLVAULT_KDF_ITERS        PBKDF2 iterations (>= 100000)
        SOLVAULT_PROPOSAL_WINDOW  recent proposals to fetch (>= 1)
        SOLVAULT_TIMEOUT          HTTP timeout in seconds
        SOLVAULT_TOKEN_LIST_URL   token metadata endpoint
        """
        data_dir = _env(f"{prefix}DATA_DIR")
        return cls(
            data_dir=Path(data_dir) if data_dir else _default_data_dir(),
            rpc_url=_env(f"{prefix}RPC_URL", _env("SOLANA_RPC_URL", DEFAULT_RPC_URL)) or DEFAULT_RPC_URL,
            base_url=_env(f"{prefix}BASE_URL", _env("APP_BASE_URL", DEFAULT_BASE_URL)) or DEFAULT_BASE_URL,
            program_id=_env(f"{prefix}PROGRAM_ID", DEFAULT_PROGRAM_ID) or DEFAULT_PROGRAM_ID,
            kdf_iterations=_int(f"{prefix}KDF_ITERS", _env(f"{prefix}KDF_ITERS", str(MIN_KDF_ITERATIONS)), MIN_KDF_ITERATIONS),
            proposal_window=_int(f"{prefix}PROPOSAL_WINDOW", _env(f"{prefix}PROPOSAL_WINDOW", "20"), 1),
            request_timeout=_float(f"{prefix}TIMEOUT", _env(f"{prefix}TIMEOUT", "30.0")),
            token_list_url=_env(f"{prefix}TOKEN_LIST_URL", DEFAULT_TOKEN_LIST_URL) or DEFAULT_TOKEN_LIST_URL,
        )

    @classmethod
    def with_overrides(cls, base: Optional["Config"] = None, **overrides: Any) -> "Config":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_dir": self.data_dir,
            "rpc_url": self.rpc_url,
            "base_url": self.base_url,
            "program_id": self.program_id,
            "kdf_iterations": int(self.kdf_iterations),
            "proposal_window": int(self.proposal_window),
            "request_timeout": float(self.request_timeout),
            "token_list_url": self.token_list_url,
        }


__all__ = [
    "Config",
    "MIN_KDF_ITERATIONS",
    "DEFAULT_PROGRAM_ID",
    "DEFAULT_RPC_URL",
    "DEFAULT_BASE_URL",
    "DEFAULT_TOKEN_LIST_URL",
]
