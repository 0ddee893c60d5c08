"""
Typed error classes for solvault.

Every error raised by the package derives from `SolvaultError` and carries a
machine-readable `code` plus an `ErrorCategory`, so callers can catch
specific failure modes while still being able to catch the base class:

- INPUT          malformed address, non-positive amount, weak password.
                 Rejected before any I/O; the message names the field.
- AUTHORIZATION  wrong password, not a member, insufficient permission.
- STATE          proposal not in the required status, already voted.
                 Both the current and required state are reported.
- AVAILABILITY   network/RPC failure, account not found (possibly not yet
                 confirmed). May be transient; retrying is the caller's call.
- FATAL          data-integrity problems, e.g. an authentic keystore blob
                 whose plaintext is not a valid secret key.

Front ends never see raw exceptions: `guard()` turns a failed operation into
an `Outcome` (success flag + code + human message) that a UI can render and a
CLI can map to a non-zero exit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Dict, Optional, Sequence

__all__ = [
    "ErrorCategory",
    "SolvaultError",
    "ConfigError",
    "InvalidAddressError",
    "InvalidAmountError",
    "WeakPasswordError",
    "InvalidShareLinkError",
    "InvalidThresholdError",
    "DuplicateMemberError",
    "NoPermissionError",
    "AuthenticationError",
    "InvalidPasswordError",
    "NotAMemberError",
    "InsufficientPermissionError",
    "ProposalStateError",
    "AlreadyVotedError",
    "AlreadyExistsError",
    "InsufficientBalanceError",
    "NotFoundError",
    "ChainUnavailableError",
    "TransactionFailedError",
    "CorruptedWalletError",
    "UnknownStatusError",
    "StorageError",
    "Outcome",
    "guard",
]


class ErrorCategory(str, Enum):
    INPUT = "input"
    AUTHORIZATION = "authorization"
    STATE = "state"
    AVAILABILITY = "availability"
    FATAL = "fatal"


class SolvaultError(Exception):
    """Base class for all solvault errors."""

    code: str = "SOLVAULT_ERROR"
    category: ErrorCategory = ErrorCategory.FATAL

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class ConfigError(SolvaultError, ValueError):
    code = "CONFIG_INVALID"
    category = ErrorCategory.INPUT

    def __init__(self, variable: str, reason: str) -> None:
        super().__init__(f"{variable}: {reason}", variable=variable)


# ----- Input ------------------------------------------------------------------


class InvalidAddressError(SolvaultError, ValueError):
    code = "INVALID_ADDRESS"
    category = ErrorCategory.INPUT

    def __init__(self, value: Any, field: str = "address") -> None:
        super().__init__(
            f"{field} is not a valid base58 public key: {value!r}",
            field=field,
            value=value,
        )


class InvalidAmountError(SolvaultError, ValueError):
    code = "INVALID_AMOUNT"
    category = ErrorCategory.INPUT

    def __init__(self, value: Any, field: str = "amount") -> None:
        super().__init__(
            f"{field} must be a positive finite number, got {value!r}",
            field=field,
            value=value,
        )


class WeakPasswordError(SolvaultError, ValueError):
    code = "WEAK_PASSWORD"
    category = ErrorCategory.INPUT

    def __init__(self, min_length: int = 8) -> None:
        super().__init__(
            f"password must be at least {min_length} characters",
            field="password",
            min_length=min_length,
        )


class InvalidShareLinkError(SolvaultError, ValueError):
    code = "INVALID_INPUT"
    category = ErrorCategory.INPUT

    def __init__(self, value: str) -> None:
        super().__init__(
            "could not extract a vault address (32-44 base58 characters) from input",
            field="input",
            value=value,
        )


class InvalidThresholdError(SolvaultError, ValueError):
    code = "INVALID_THRESHOLD"
    category = ErrorCategory.INPUT

    def __init__(self, threshold: Any, voters: int) -> None:
        super().__init__(
            f"threshold must satisfy 1 <= threshold <= {voters} (members with vote permission), "
            f"got {threshold!r}",
            field="threshold",
            threshold=threshold,
            voters=voters,
        )


class DuplicateMemberError(SolvaultError, ValueError):
    code = "DUPLICATE_MEMBER"
    category = ErrorCategory.INPUT

    def __init__(self, address: str) -> None:
        super().__init__(f"members: duplicate address {address}", field="members", address=address)


class NoPermissionError(SolvaultError, ValueError):
    code = "NO_PERMISSION"
    category = ErrorCategory.INPUT

    def __init__(self, address: str) -> None:
        super().__init__(
            f"members: {address} has none of propose/vote/execute",
            field="members",
            address=address,
        )


# ----- Authorization ----------------------------------------------------------


class AuthenticationError(SolvaultError):
    """AEAD tag check failed: wrong password or tampered/corrupted blob."""

    code = "AUTHENTICATION_FAILED"
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, message: str = "decryption failed (bad password or corrupted data)") -> None:
        super().__init__(message)


class InvalidPasswordError(SolvaultError):
    code = "INVALID_PASSWORD"
    category = ErrorCategory.AUTHORIZATION

    def __init__(self) -> None:
        super().__init__("Invalid wallet password.")


class NotAMemberError(SolvaultError):
    code = "NOT_A_MEMBER"
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, address: str, vault: str) -> None:
        super().__init__(
            f"{address} is not a member of multisig vault {vault}",
            address=address,
            vault=vault,
        )


class InsufficientPermissionError(SolvaultError):
    code = "INSUFFICIENT_PERMISSION"
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, address: str, permission: str) -> None:
        super().__init__(
            f"{address} lacks the {permission} permission",
            address=address,
            permission=permission,
        )


# ----- State ------------------------------------------------------------------


class ProposalStateError(SolvaultError):
    code = "PROPOSAL_STATE"
    category = ErrorCategory.STATE

    def __init__(self, index: int, current: str, required: Sequence[str]) -> None:
        need = "/".join(required)
        super().__init__(
            f"proposal #{index} is {current}, must be {need}",
            index=index,
            current=current,
            required=list(required),
        )
        self.current = current
        self.required = list(required)


class AlreadyVotedError(SolvaultError):
    code = "ALREADY_VOTED"
    category = ErrorCategory.STATE

    def __init__(self, address: str, index: int, vote: str) -> None:
        super().__init__(
            f"{address} already voted ({vote}) on proposal #{index}; votes cannot be changed",
            address=address,
            index=index,
            vote=vote,
        )


class AlreadyExistsError(SolvaultError):
    code = "WALLET_EXISTS"
    category = ErrorCategory.STATE

    def __init__(self, address: Optional[str] = None) -> None:
        super().__init__(
            "Wallet already exists. Delete it first if you want to create a new one.",
            address=address,
        )


class InsufficientBalanceError(SolvaultError):
    code = "INSUFFICIENT_BALANCE"
    category = ErrorCategory.STATE

    def __init__(self, required: float, available: float, unit: str = "SOL") -> None:
        super().__init__(
            f"Insufficient balance: need {required} {unit}, have {available} {unit}",
            required=required,
            available=available,
            unit=unit,
        )


# ----- Availability -----------------------------------------------------------


class NotFoundError(SolvaultError):
    code = "NOT_FOUND"
    category = ErrorCategory.AVAILABILITY

    def __init__(self, what: str, ref: Optional[str] = None) -> None:
        msg = f"{what} not found" + (f": {ref}" if ref else "")
        super().__init__(msg, what=what, ref=ref)


class ChainUnavailableError(SolvaultError):
    code = "CHAIN_UNAVAILABLE"
    category = ErrorCategory.AVAILABILITY

    def __init__(self, message: str, *, method: Optional[str] = None, rpc_code: Optional[int] = None) -> None:
        super().__init__(message, method=method, rpc_code=rpc_code)


class TransactionFailedError(SolvaultError):
    code = "TX_FAILED"
    category = ErrorCategory.AVAILABILITY

    def __init__(self, signature: str, action: str) -> None:
        super().__init__(
            f"{action} transaction {signature} was not confirmed",
            signature=signature,
            action=action,
        )


# ----- Fatal ------------------------------------------------------------------


class CorruptedWalletError(SolvaultError):
    code = "CORRUPTED_WALLET"
    category = ErrorCategory.FATAL

    def __init__(self, reason: str) -> None:
        super().__init__(f"wallet data is authentic but unreadable: {reason}", reason=reason)


class UnknownStatusError(SolvaultError):
    code = "UNKNOWN_STATUS"
    category = ErrorCategory.FATAL

    def __init__(self, raw: Any) -> None:
        super().__init__(f"unrecognized proposal status tag: {raw!r}", raw=repr(raw))


class StorageError(SolvaultError):
    code = "STORAGE_ERROR"
    category = ErrorCategory.FATAL


# ----- Structured results -----------------------------------------------------


@dataclass
class Outcome:
    """Structured result handed to UI/CLI code instead of an exception."""

    success: bool
    data: Any = None
    code: Optional[str] = None
    message: Optional[str] = None
    category: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> "Outcome":
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, err: SolvaultError) -> "Outcome":
        return cls(
            success=False,
            code=err.code,
            message=err.message,
            category=err.category.value,
            details={k: v for k, v in err.details.items() if v is not None},
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        out: Dict[str, Any] = {
            "success": False,
            "code": self.code,
            "message": self.message,
            "category": self.category,
        }
        if self.details:
            out["details"] = self.details
        return out


async def guard(op: Awaitable[Any]) -> Outcome:
    """
    Await `op` and wrap the result in an Outcome.

    Only `SolvaultError` is converted; anything else is a programming error and
    propagates.
    """
    try:
        return Outcome.ok(await op)
    except SolvaultError as e:
        return Outcome.from_error(e)
