"""
execution.types.context — execution context for a single call frame.

Every external call (a top-level transaction or a nested contract→contract call)
runs inside a `CallContext`. Contracts read it as `self.msg`:

    self.msg.sender     # who is calling (checksummed address)
    self.msg.value      # wei attached to this call
    self.msg.timestamp  # block time, sampled once per top-level call

Conventions
-----------
* `timestamp` is Unix time in seconds (int). Nested frames inherit it from the
  top-level frame, so every check inside one logical operation sees the same time.
* `value` is an integer number of wei, never negative.
* `depth` is 0 for the top-level frame.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict


@dataclass(frozen=True)
class CallContext:
    """
    Attributes:
        sender:    str  — immediate caller (EOA or contract)
        to:        str  — callee contract address
        value:     int  — wei moved from sender to callee before the body runs
        timestamp: int  — block time for this logical operation
        method:    str  — entrypoint name (for logs/metrics)
        depth:     int  — nesting level (0 = top-level)
    """
    sender: str
    to: str
    value: int
    timestamp: int
    method: str = ""
    depth: int = 0

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("value must be non-negative")
        if self.timestamp < 0:
            raise ValueError("timestamp must be non-negative")
        if self.depth < 0:
            raise ValueError("depth must be non-negative")

    def nested(self, *, sender: str, to: str, value: int, method: str) -> "CallContext":
        """Child frame: same block time, one level deeper."""
        return replace(self, sender=sender, to=to, value=value, method=method, depth=self.depth + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "to": self.to,
            "value": self.value,
            "timestamp": self.timestamp,
            "method": self.method,
            "depth": self.depth,
        }


__all__ = ["CallContext"]
