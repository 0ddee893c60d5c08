"""
Share links.

    <base_url>/vault/<vault_address>
    <base_url>/vault/<vault_address>/proposal/<index>

The same base58 pattern (32-44 characters) is used to build, validate and
extract addresses, so anything produced here parses back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..address import is_valid_address, validate_address
from ..config import DEFAULT_BASE_URL
from ..errors import InvalidShareLinkError

ADDRESS_PATTERN = r"[A-HJ-NP-Za-km-z1-9]{32,44}"

_RAW_RE = re.compile(rf"^{ADDRESS_PATTERN}$")
_VAULT_RE = re.compile(rf"/vault/({ADDRESS_PATTERN})(?![A-HJ-NP-Za-km-z1-9])")
_PROPOSAL_RE = re.compile(rf"/vault/{ADDRESS_PATTERN}/proposal/(\d+)")


@dataclass(frozen=True)
class ShareLinkTarget:
    vault: str
    proposal: Optional[int] = None


def _base(base_url: str) -> str:
    return base_url.rstrip("/")


def vault_link(address: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{_base(base_url)}/vault/{validate_address(address, field='vault')}"


def proposal_link(address: str, index: int, base_url: str = DEFAULT_BASE_URL) -> str:
    if isinstance(index, bool) or not isinstance(index, int) or index < 1:
        raise ValueError(f"proposal index must be an integer >= 1, got {index!r}")
    return f"{vault_link(address, base_url)}/proposal/{index}"


def extract_vault_address(text: str) -> Optional[str]:
    """Return the vault address in a raw address or share link, or None."""
    text = (text or "").strip()
    if _RAW_RE.match(text):
        return text if is_valid_address(text) else None
    m = _VAULT_RE.search(text)
    if m and is_valid_address(m.group(1)):
        return m.group(1)
    return None


def parse_link(text: str) -> ShareLinkTarget:
    vault = extract_vault_address(text)
    if vault is None:
        raise InvalidShareLinkError(text)
    m = _PROPOSAL_RE.search(text)
    index = int(m.group(1)) if m else None
    return ShareLinkTarget(vault=vault, proposal=index if index else None)


__all__ = [
    "ADDRESS_PATTERN",
    "ShareLinkTarget",
    "vault_link",
    "proposal_link",
    "extract_vault_address",
    "parse_link",
]
