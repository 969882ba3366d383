"""
execution.types.events — event/log record types for the settlement ledger.

`LogEvent` is the record a contract emits through `Contract.emit(...)`. Off-chain
consumers (the Discord bot, indexers) learn new escrow addresses and result
postings from these records, so the shape is intentionally close to a decoded
Solidity event: an emitter address, an event name, and named arguments.

Conventions
-----------
* `address` is the checksummed emitter address.
* `name` is the event name (e.g. "ContractDeployed").
* `args` maps argument names to plain Python values (str addresses, int amounts,
  str type ids, bool flags). The mapping is copied and frozen on construction.
* `tx_index` / `log_index` give the stable ordering: the N-th committed
  top-level call and the position inside that call.

Helpers
-------
* `to_dict()` / `from_dict()` convert to/from JSON-friendly mappings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class LogEvent:
    """
    A single event emitted during a call.

    Attributes:
        address:   str — emitter contract address (checksummed)
        name:      str — event name
        args:      Mapping[str, Any] — read-only named arguments
        tx_index:  int — index of the committed top-level call (-1 while pending)
        log_index: int — position within that call
    """

    address: str
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    tx_index: int = -1
    log_index: int = -1

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("event name must not be empty")
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    def get(self, key: str, default: Any = None) -> Any:
        return self.args.get(key, default)

    def with_position(self, tx_index: int, log_index: int) -> "LogEvent":
        """Copy of this event stamped with its committed position."""
        return LogEvent(
            address=self.address,
            name=self.name,
            args=self.args,
            tx_index=tx_index,
            log_index=log_index,
        )

    # --------------------- conversions ---------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "args": dict(self.args),
            "txIndex": self.tx_index,
            "logIndex": self.log_index,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LogEvent":
        args: Optional[Mapping[str, Any]] = d.get("args")
        if args is not None and not isinstance(args, Mapping):
            raise TypeError("args must be a mapping")
        return cls(
            address=str(d["address"]),
            name=str(d["name"]),
            args=dict(args or {}),
            tx_index=int(d.get("txIndex", -1)),
            log_index=int(d.get("logIndex", -1)),
        )

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        inner = ", ".join(f"{k}={v!r}" for k, v in self.args.items())
        return f"LogEvent({self.name}@{self.address[:10]}…, {inner})"


__all__ = ["LogEvent"]
