"""
execution.errors — execution-layer exceptions for the quiz settlement ledger.

Contracts and the host ledger communicate failures via *typed exceptions*. A
failing call is rolled back as a whole by `execution.runtime.chain` and the very
same exception object is re-raised to the caller, so callers can branch on the
type (or the stable `code`) and read the contract's `reason` string.

Hierarchy
---------
ExecError (base)
 ├─ Revert              : Contract-triggered failure carrying a textual reason
 │   ├─ Unauthorized    : Caller is not the owner / authorized operator
 │   ├─ InvalidArgument : Null identities, empty type ids, empty submissions
 │   ├─ InsufficientFunds : Payment below fee, payout above remaining balance
 │   ├─ InvalidState    : Already ended, already recorded, not registered, re-init
 │   └─ Expired         : Acting after the quiz window without authorization
 └─ InvalidAccess       : Host-level misuse (unknown contract, non-external method)

Notes
-----
* Every `Revert` is a *semantic* failure of the call, not a host bug. Nothing is
  retried internally.
* These classes avoid importing other execution modules so they can be used from
  low-level code (journal, transfers) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional


@dataclass(eq=False)
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'REVERT', 'UNAUTHORIZED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and API error payloads."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Revert(ExecError):
    """
    Contract-triggered revert.

    The `reason` is the contract's revert string (e.g. "QuizEscrow: Quiz has
    ended") and is also used as the message.

    Usage:
        raise Revert("QuizEscrow: Quiz has ended")
        raise InsufficientFunds("QuizEscrow: Insufficient funds for payout",
                                data={"payout": 35, "remaining": 0})
    """

    CODE: ClassVar[str] = "REVERT"

    def __init__(self, reason: str = "reverted", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=reason, code=self.CODE, data=data)
        self.reason = reason


class Unauthorized(Revert):
    """Caller identity is not allowed to perform the operation."""

    CODE = "UNAUTHORIZED"


class InvalidArgument(Revert):
    """Malformed input: null identity, empty type id, zero-answer submission."""

    CODE = "INVALID_ARGUMENT"


class InsufficientFunds(Revert):
    """
    Economic guard failure: attached value below the required fee, a payout that
    would exceed the remaining balance, or a transfer from an underfunded account.
    """

    CODE = "INSUFFICIENT_FUNDS"


class InvalidState(Revert):
    """
    The target is in a state that forbids the operation (already ended, already
    recorded, handler not registered, already initialized).
    """

    CODE = "INVALID_STATE"


class Expired(Revert):
    """The operation is only valid inside the quiz window, which has elapsed."""

    CODE = "EXPIRED"


class InvalidAccess(ExecError):
    """
    Illegal use of the host ledger.

    Examples:
      - Calling an address that holds no contract
      - Invoking a method that is not marked external
      - Mutating contract state outside of a call frame
    """
    def __init__(
        self,
        message: str = "invalid access",
        *,
        op: Optional[str] = None,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if op is not None:
            d.setdefault("op", op)
        if address is not None:
            d.setdefault("address", address)
        super().__init__(message=message, code="INVALID_ACCESS", data=d or None)


# -------- helper utilities ---------------------------------------------------


def error_to_receipt_fields(err: ExecError) -> Dict[str, Any]:
    """
    Map an ExecError to canonical receipt-like fields.

    Returns:
        {
          "status": "REVERT" | "ERROR",
          "error":  {code, message, data?}
        }
    """
    status = "REVERT" if isinstance(err, Revert) else "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "ExecError",
    "Revert",
    "Unauthorized",
    "InvalidArgument",
    "InsufficientFunds",
    "InvalidState",
    "Expired",
    "InvalidAccess",
    "error_to_receipt_fields",
]
