"""
execution.types — canonical execution-layer types.

Small, dependency-light dataclasses shared by the journal, the chain runtime,
and the contracts package.

Public surface (re-exported):
    LogEvent       : Dataclass — (address, name, args, tx_index, log_index)
    CallContext    : Dataclass — per-call sender/value/timestamp
    ZERO_ADDRESS   : The null identity
    to_address, address_bytes, is_valid_address, is_zero_address, derive_contract_address
"""

from __future__ import annotations

from .address import (
    ZERO_ADDRESS,
    address_bytes,
    derive_contract_address,
    is_valid_address,
    is_zero_address,
    to_address,
)
from .context import CallContext
from .events import LogEvent

__all__ = [
    "LogEvent",
    "CallContext",
    "ZERO_ADDRESS",
    "to_address",
    "address_bytes",
    "is_valid_address",
    "is_zero_address",
    "derive_contract_address",
]
