"""
execution.state.accounts — Account records.

An Account holds three fields:

- nonce:      u256 creation counter (bumped each time the account creates a contract)
- balance:    u256 amount of wei
- code_hash:  32-byte hash identifying the contract class (all-zero for plain accounts)

This module intentionally avoids any journaling concerns; `execution.state.journal`
copies Account objects into overlays and applies them on commit.

All arithmetic is u256-bounded and exact. Unlike a fee-charging chain there is
no saturation: crediting past u256 is an error, not a clamp, because the ledger
must conserve value.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from execution.errors import InsufficientFunds, InvalidAccess

# --------------------------------------------------------------------------- #
# Constants & helpers
# --------------------------------------------------------------------------- #

U256_MAX: int = (1 << 256) - 1
EMPTY_CODE_HASH: bytes = b"\x00" * 32


def _ensure_u256(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    if value > U256_MAX:
        raise OverflowError(f"{name} exceeds u256")
    return value


def compute_code_hash(code_id: str) -> bytes:
    """
    Canonical code hash (SHA3-256) for a contract class identifier
    (``module:QualName``). Empty identifiers map to `EMPTY_CODE_HASH`.
    """
    if not code_id:
        return EMPTY_CODE_HASH
    return hashlib.sha3_256(code_id.encode("utf-8")).digest()


# --------------------------------------------------------------------------- #
# Account
# --------------------------------------------------------------------------- #

@dataclass(slots=True)
class Account:
    """
    A minimal account record.

    Invariants:
    - nonce and balance are u256
    - code_hash is exactly 32 bytes
    """
    nonce: int = 0
    balance: int = 0
    code_hash: bytes = EMPTY_CODE_HASH

    def __post_init__(self) -> None:
        self.nonce = _ensure_u256("nonce", self.nonce)
        self.balance = _ensure_u256("balance", self.balance)
        ch = bytes(self.code_hash)
        if len(ch) != 32:
            raise ValueError("code_hash must be 32 bytes")
        self.code_hash = ch

    @property
    def is_contract(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH

    # ----------------------- field operations ------------------------------ #

    def increment_nonce(self) -> None:
        if self.nonce == U256_MAX:
            raise InvalidAccess("nonce overflow (u256 max)", op="increment_nonce")
        self.nonce += 1

    def credit(self, amount: int) -> None:
        amt = _ensure_u256("amount", amount)
        if self.balance + amt > U256_MAX:
            raise OverflowError("balance exceeds u256")
        self.balance += amt

    def can_debit(self, amount: int) -> bool:
        return self.balance >= _ensure_u256("amount", amount)

    def debit(self, amount: int) -> None:
        """
        Decrease balance by `amount`; raises InsufficientFunds if the balance
        does not cover it. Never leaves a partial debit behind.
        """
        amt = _ensure_u256("amount", amount)
        if self.balance < amt:
            raise InsufficientFunds(
                "insufficient balance",
                data={"balance": self.balance, "amount": amt},
            )
        self.balance -= amt

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, balance=self.balance, code_hash=self.code_hash)

    # ----------------------- (de)serialization ----------------------------- #

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "balance": self.balance,
            "code_hash": self.code_hash.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        ch = data.get("code_hash", EMPTY_CODE_HASH)
        code_hash = bytes.fromhex(ch) if isinstance(ch, str) else bytes(ch)
        return cls(nonce=int(data["nonce"]), balance=int(data["balance"]), code_hash=code_hash)


__all__ = [
    "Account",
    "EMPTY_CODE_HASH",
    "U256_MAX",
    "compute_code_hash",
]
