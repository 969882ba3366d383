# -*- coding: utf-8 -*-
"""
contracts.stdlib.base
=====================

Base class and entrypoint decorators for quiz-ledger contracts.

A contract is a Python class deriving from :class:`Contract`. Instances carry no
state of their own: every field lives in the chain's journaled storage under a
deterministic byte key, so a reverted call takes its writes with it and two
objects for the same address always agree.

Entrypoints
-----------
- ``@external``  : callable by accounts and other contracts, runs in a call frame
- ``@payable``   : like ``@external`` and may receive value
- ``@view``      : read-only, callable directly on the object (``escrow.get_balance()``)
- ``constructor``: run once at creation (decorate with ``@payable`` to accept funding)

Anything else (including ``_private`` helpers) is unreachable from a transaction.

Storage helpers
---------------
Integers are 32-byte big-endian u256, booleans a single byte, addresses their
20 raw bytes, strings UTF-8. Arrays keep their length under ``prefix + b"#"`` and
elements under ``prefix + u256(index)``. Mappings concatenate ``prefix + key``.

Typical usage
-------------
    class Counter(Contract):
        @external
        def inc(self) -> int:
            n = self._get_u256(b"ctr:n") + 1
            self._set_u256(b"ctr:n", n)
            self.emit("Inc", value=n)
            return n

        @view
        def get(self) -> int:
            return self._get_u256(b"ctr:n")

    c = chain.deploy(Counter, sender=alice)
    c.connect(alice).inc()
"""
from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Callable, Final, List, Optional, Type, TypeVar

from execution.errors import InvalidAccess, InvalidArgument, Revert
from execution.runtime.chain import ABI_ATTR, AbiEntry, abi_entry
from execution.state.accounts import U256_MAX
from execution.types.address import (
    ZERO_ADDRESS,
    AddressLike,
    address_bytes,
    is_valid_address,
    is_zero_address,
    to_address,
)
from execution.types.context import CallContext

if TYPE_CHECKING:
    from execution.runtime.chain import Chain

__all__ = [
    "Contract",
    "BoundContract",
    "external",
    "payable",
    "view",
]

F = TypeVar("F", bound=Callable[..., Any])

_LEN_SUFFIX: Final[bytes] = b"#"


# --- Entrypoint decorators ----------------------------------------------------


def external(fn: F) -> F:
    """Mark a state-changing entrypoint (non-payable)."""
    setattr(fn, ABI_ATTR, AbiEntry(kind="external", payable=False))
    return fn


def payable(fn: F) -> F:
    """Mark a state-changing entrypoint that accepts value."""
    setattr(fn, ABI_ATTR, AbiEntry(kind="external", payable=True))
    return fn


def view(fn: F) -> F:
    """
    Mark a read-only entrypoint. Reads run under the chain lock so a view never
    observes a call half-way through.
    """

    @functools.wraps(fn)
    def wrapper(self: "Contract", *args: Any, **kwargs: Any) -> Any:
        with self._chain.lock:
            return fn(self, *args, **kwargs)

    setattr(wrapper, ABI_ATTR, AbiEntry(kind="view", payable=False))
    return wrapper  # type: ignore[return-value]


# --- Encoding helpers ---------------------------------------------------------


def _u256(x: int) -> bytes:
    if x < 0 or x > U256_MAX:
        raise InvalidArgument("u256 overflow", data={"value": x})
    return int(x).to_bytes(32, "big")


def _from_u256(b: bytes) -> int:
    return int.from_bytes(b, "big") if b else 0


# --- Proxy --------------------------------------------------------------------


class BoundContract:
    """
    A contract seen from one sender. Attribute access yields callables for the
    contract's external and view methods:

        escrow.connect(bot).record_result(player, 3, 1)
        factory.connect(alice).deploy_contract("QuizEscrow", params, value=fee)

    Inside a running call the same proxy produces a nested call, so contracts
    use it for contract→contract calls too.
    """

    __slots__ = ("_chain", "_target", "_sender")

    def __init__(self, chain: "Chain", target: "Contract", sender: AddressLike) -> None:
        self._chain = chain
        self._target = target
        self._sender = to_address(sender)

    @property
    def address(self) -> str:
        return self._target.address

    @property
    def sender(self) -> str:
        return self._sender

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_") or abi_entry(getattr(type(self._target), name, None)) is None:
            raise AttributeError(f"{type(self._target).__name__} has no external method {name!r}")

        def call(*args: Any, value: int = 0) -> Any:
            return self._chain.invoke(self._sender, self._target.address, name, args, value=value)

        call.__name__ = name
        return call

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"<{type(self._target).__name__} {self.address} as {self._sender}>"


# --- Contract base ------------------------------------------------------------


class Contract:
    """
    Base class for ledger contracts.

    Subclasses define ``constructor`` plus entrypoints, and keep their fields in
    storage through the ``_get_*`` / ``_set_*`` helpers below.
    """

    def __init__(self, chain: "Chain", address: AddressLike) -> None:
        self._chain = chain
        self.address = to_address(address)

    def constructor(self) -> None:
        """Creation hook; overridden by subclasses."""

    # ---------------------------------------------------------------- context

    @property
    def chain(self) -> "Chain":
        return self._chain

    @property
    def msg(self) -> CallContext:
        """The frame executing this contract (sender, value, timestamp)."""
        frame = self._chain.current_frame
        if frame is None or frame.to != self.address:
            raise InvalidAccess("contract is not executing", op="msg", address=self.address)
        return frame

    def now(self) -> int:
        return self._chain.now()

    def balance(self) -> int:
        return self._chain.balance_of(self.address)

    def connect(self, sender: AddressLike) -> BoundContract:
        return BoundContract(self._chain, self, sender)

    # ---------------------------------------------------------------- guards

    @staticmethod
    def require(cond: Any, reason: str, exc: Type[Revert] = Revert, **data: Any) -> None:
        """Raise `exc(reason)` unless `cond` holds."""
        if not cond:
            raise exc(reason, data=data or None)

    # ---------------------------------------------------------------- effects

    def emit(self, name: str, **args: Any) -> None:
        self._chain.emit(self.address, name, args)

    def _transfer(self, to: AddressLike, amount: int) -> None:
        self._chain.transfer_from(self.address, to, amount)

    def _after_commit(self, fn: Callable[[], None]) -> None:
        """Run `fn` once the current call has committed; dropped if it reverts."""
        self._chain.after_commit(self.address, fn)

    def _create(self, cls: Type["Contract"], *args: Any, value: int = 0) -> str:
        return self._chain.create_from(self.address, cls, args, value=value)

    def _contract(self, address: AddressLike) -> BoundContract:
        """Another contract, called with this contract as the sender."""
        return BoundContract(self._chain, self._chain.at(address), self.address)

    def _contract_at(self, address: AddressLike) -> Optional["Contract"]:
        if not is_valid_address(address) or is_zero_address(address) or not self._chain.is_contract(address):
            return None
        return self._chain.at(address)

    # ---------------------------------------------------------------- raw storage

    def _sget(self, key: bytes) -> bytes:
        return self._chain.storage_get(self.address, key)

    def _sset(self, key: bytes, value: bytes) -> None:
        self._chain.storage_set(self.address, key, value)

    # ---------------------------------------------------------------- typed storage

    def _get_u256(self, key: bytes) -> int:
        return _from_u256(self._sget(key))

    def _set_u256(self, key: bytes, value: int) -> None:
        self._sset(key, _u256(value) if value else b"")

    def _add_u256(self, key: bytes, delta: int) -> int:
        n = self._get_u256(key) + delta
        self._set_u256(key, n)
        return n

    def _get_bool(self, key: bytes) -> bool:
        return self._sget(key) == b"\x01"

    def _set_bool(self, key: bytes, flag: bool) -> None:
        self._sset(key, b"\x01" if flag else b"")

    def _get_address(self, key: bytes) -> str:
        raw = self._sget(key)
        return to_address(raw) if raw else ZERO_ADDRESS

    def _set_address(self, key: bytes, addr: AddressLike) -> None:
        raw = address_bytes(addr)
        self._sset(key, b"" if raw == bytes(20) else raw)

    def _get_str(self, key: bytes) -> str:
        return self._sget(key).decode("utf-8")

    def _set_str(self, key: bytes, value: str) -> None:
        self._sset(key, value.encode("utf-8"))

    # ---------------------------------------------------------------- arrays

    def _array_len(self, prefix: bytes) -> int:
        return self._get_u256(prefix + _LEN_SUFFIX)

    def _array_get(self, prefix: bytes, index: int) -> bytes:
        if index < 0 or index >= self._array_len(prefix):
            raise IndexError(f"array index {index} out of range")
        return self._sget(prefix + _u256(index))

    def _array_set(self, prefix: bytes, index: int, value: bytes) -> None:
        if index < 0 or index >= self._array_len(prefix):
            raise IndexError(f"array index {index} out of range")
        self._sset(prefix + _u256(index), value)

    def _array_push(self, prefix: bytes, value: bytes) -> int:
        n = self._array_len(prefix)
        self._sset(prefix + _u256(n), value)
        self._set_u256(prefix + _LEN_SUFFIX, n + 1)
        return n

    def _array_pop(self, prefix: bytes) -> bytes:
        n = self._array_len(prefix)
        if n == 0:
            raise IndexError("pop from empty array")
        last = self._sget(prefix + _u256(n - 1))
        self._sset(prefix + _u256(n - 1), b"")
        self._set_u256(prefix + _LEN_SUFFIX, n - 1)
        return last

    def _array_slice(self, prefix: bytes, offset: int = 0, limit: Optional[int] = None) -> List[bytes]:
        n = self._array_len(prefix)
        start = max(0, offset)
        stop = n if limit is None else min(n, start + max(0, limit))
        return [self._sget(prefix + _u256(i)) for i in range(start, stop)]

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"<{type(self).__name__} {self.address}>"
