"""
execution.state.journal — journaling writes, checkpoints, revert/commit.

This module provides an in-memory write journal layered over an accounts
mapping and a StorageView. It supports nested checkpoints via a stack of
overlays. Writes go to the top overlay; reads consult overlays from top → base.
`commit()` merges the top overlay into the next layer (or the base state if it
is the last layer). `revert()` discards the top overlay.

This is what makes a Registry → Handler → Escrow deployment all-or-nothing:
each call frame opens a checkpoint, and a failure anywhere down the chain
reverts balances, nonces, newly created contract accounts, and storage writes
made inside that frame.

Key properties
--------------
- Pure Python, no I/O.
- Copy-on-write for accounts (Account objects are copied into overlays).
- Storage overlay per (address, key) with explicit deletion markers.
- Nested checkpoints (begin/commit/revert) with O(changes) merge cost.

Intended usage
--------------
    j = Journal(base_accounts, base_storage)
    j.begin()                       # start a checkpoint
    acc = j.ensure_account_for_write(addr)
    acc.credit(123)
    j.storage_set(addr, b"key", b"value")
    j.commit()                      # apply to parent/base

Notes
-----
- This journal does not enforce economic rules; callers (the chain runtime)
  validate before writing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, MutableMapping, Optional, Set

from execution.errors import InvalidAccess

from .accounts import EMPTY_CODE_HASH, Account
from .storage import StorageView


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `storage`: staged storage changes. `None` means deletion for that key.
    """

    accounts: Dict[bytes, Account] = field(default_factory=dict)
    storage: Dict[bytes, Dict[bytes, Optional[bytes]]] = field(default_factory=dict)

    def storage_get_local(self, addr: bytes, key: bytes) -> tuple[bool, Optional[bytes]]:
        m = self.storage.get(addr)
        if m is None or key not in m:
            return False, None
        return True, m[key]

    def storage_set_local(self, addr: bytes, key: bytes, value: Optional[bytes]) -> None:
        self.storage.setdefault(addr, {})[key] = value


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    accounts : MutableMapping[bytes, Account]
        The base (committed) account mapping.
    storage : StorageView
        The base storage view.

    Reads consult overlays from top to bottom and then the base. Writes always
    target the top overlay.
    """

    def __init__(
        self,
        accounts: Optional[MutableMapping[bytes, Account]] = None,
        storage: Optional[StorageView] = None,
    ) -> None:
        self._base_accounts: MutableMapping[bytes, Account] = accounts if accounts is not None else {}
        self._base_storage = storage if storage is not None else StorageView()
        # Root overlay always present.
        self._layers: List[_Overlay] = [_Overlay()]

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """
        Commit the top overlay into its parent, or into the base state when
        only the root layer remains.
        """
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._apply_to_base(top)
            self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it is the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def flush(self) -> None:
        """Apply the root overlay to the base state (used after a top-level commit)."""
        if len(self._layers) != 1:
            raise InvalidAccess("cannot flush with open checkpoints", op="flush")
        self.commit()

    # --------------------------------------------------------------------- #
    # Account API
    # --------------------------------------------------------------------- #

    def _lookup_account_any(self, addr: bytes) -> Optional[Account]:
        for layer in reversed(self._layers):
            local = layer.accounts.get(addr)
            if local is not None:
                return local
        return self._base_accounts.get(addr)

    def get_account(self, address: bytes | bytearray | memoryview) -> Optional[Account]:
        """Readonly lookup. Do not mutate the returned object."""
        return self._lookup_account_any(_b(address, name="address"))

    def get_account_for_write(self, address: bytes | bytearray | memoryview) -> Optional[Account]:
        """
        Fetch an Account suitable for **mutation** in the top layer. A copy is
        promoted from lower layers/base when needed. Returns None if absent.
        """
        addr = _b(address, name="address")
        top = self._layers[-1]
        if addr in top.accounts:
            return top.accounts[addr]
        acc = self._lookup_account_any(addr)
        if acc is None:
            return None
        top.accounts[addr] = acc.copy()
        return top.accounts[addr]

    def ensure_account_for_write(self, address: bytes | bytearray | memoryview) -> Account:
        """Like `get_account_for_write`, creating a zeroed account if absent."""
        addr = _b(address, name="address")
        acc = self.get_account_for_write(addr)
        if acc is not None:
            return acc
        acc = Account()
        self._layers[-1].accounts[addr] = acc
        return acc

    def create_account(
        self,
        address: bytes | bytearray | memoryview,
        *,
        initial_balance: int = 0,
        code_hash: Optional[bytes] = None,
    ) -> Account:
        """
        Create a new account in the top overlay.

        An existing plain account with no code and a zero nonce may be
        upgraded in place (funds sent to a precomputed address are kept).
        Raises InvalidAccess if a contract already lives at the address.
        """
        addr = _b(address, name="address")
        existing = self._lookup_account_any(addr)
        if existing is not None and (existing.is_contract or existing.nonce):
            raise InvalidAccess("account already exists", op="create_account", address="0x" + addr.hex())
        acc = self.ensure_account_for_write(addr)
        acc.credit(initial_balance)
        acc.code_hash = EMPTY_CODE_HASH if code_hash is None else bytes(code_hash)
        return acc

    def balance_of(self, address: bytes | bytearray | memoryview) -> int:
        acc = self.get_account(address)
        return acc.balance if acc is not None else 0

    # --------------------------------------------------------------------- #
    # Storage API
    # --------------------------------------------------------------------- #

    def storage_get(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
        default: bytes = b"",
    ) -> bytes:
        """Read storage with overlay precedence. Returns `default` if absent."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        for layer in reversed(self._layers):
            found, local = layer.storage_get_local(addr, key_b)
            if found:
                return default if local is None else local
        return self._base_storage.get(addr, key_b, default=default)

    def storage_set(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
        value: bytes | bytearray | memoryview,
    ) -> None:
        """Stage a storage write in the top overlay. Empty value is a deletion."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        val_b = _b(value, name="value")
        self._layers[-1].storage_set_local(addr, key_b, val_b if val_b else None)

    def storage_delete(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
    ) -> None:
        self._layers[-1].storage_set_local(_b(address, name="address"), _b(key, name="key"), None)

    # --------------------------------------------------------------------- #
    # Internal merge/apply
    # --------------------------------------------------------------------- #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for addr, acc in src.accounts.items():
            dst.accounts[addr] = acc.copy()
        for addr, writes in src.storage.items():
            dm = dst.storage.setdefault(addr, {})
            dm.update(writes)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr, acc in layer.accounts.items():
            self._base_accounts[addr] = acc.copy()
        for addr, writes in layer.storage.items():
            for k, v in writes.items():
                if v is None:
                    self._base_storage.delete(addr, k)
                else:
                    self._base_storage.set(addr, k, v)

    # --------------------------------------------------------------------- #
    # Introspection
    # --------------------------------------------------------------------- #

    def pending_account_addrs(self) -> Set[bytes]:
        """Addresses with pending account mutations in any layer."""
        s: Set[bytes] = set()
        for layer in self._layers:
            s.update(layer.accounts.keys())
        return s

    def total_supply(self) -> int:
        """Sum of all visible balances (used by conservation checks)."""
        addrs = set(self._base_accounts.keys()) | self.pending_account_addrs()
        return sum(self.balance_of(a) for a in addrs)


__all__ = ["Journal"]
