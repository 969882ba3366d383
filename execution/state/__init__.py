"""
execution.state — state subsystem (accounts, storage, journal).

Submodules:
- accounts:  Account records (nonce, balance, code hash)
- storage:   Committed per-contract key/value storage
- journal:   Journaling writes with nested checkpoints, revert/commit
"""

from __future__ import annotations

from .accounts import EMPTY_CODE_HASH, U256_MAX, Account, compute_code_hash
from .journal import Journal
from .storage import StorageView

__all__ = [
    "Account",
    "EMPTY_CODE_HASH",
    "U256_MAX",
    "compute_code_hash",
    "Journal",
    "StorageView",
]
