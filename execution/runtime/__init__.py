"""
execution.runtime — call execution for the quiz settlement ledger.

Submodules (thin overview)
--------------------------
- env          : clocks and monotonic block time
- event_sink   : pending/committed events, subscriber fan-out
- chain        : the ledger itself (accounts, frames, deploy/transact)

Re-exports
----------
    from execution.runtime import Chain, ManualClock, SystemClock, EventSink

These are lazily loaded; importing this package does not import the chain (and
its metrics/logging dependencies) until an attribute is first accessed.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Tuple

# Submodules available for "from execution.runtime import env" style imports.
__all__ = (
    "env",
    "event_sink",
    "chain",
)

# Lazy symbol re-exports: name -> (module, attribute)
_EXPORTS: Dict[str, Tuple[str, str]] = {
    "Chain": ("chain", "Chain"),
    "BlockTime": ("env", "BlockTime"),
    "Clock": ("env", "Clock"),
    "ManualClock": ("env", "ManualClock"),
    "SystemClock": ("env", "SystemClock"),
    "EventSink": ("event_sink", "EventSink"),
}


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    # First, allow "from execution.runtime import env" to load submodule lazily.
    if name in __all__:
        return import_module(f".{name}", __name__)
    # Then, resolve convenience re-exports on first use.
    target = _EXPORTS.get(name)
    if target:
        mod, attr = target
        return getattr(import_module(f".{mod}", __name__), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(__all__) + list(_EXPORTS))
