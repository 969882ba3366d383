"""
execution.state.storage — per-contract storage (key/value)

A minimal key/value storage view keyed by contract address (`bytes`, 20) and
storage key (`bytes`) with `bytes` values. This is the *committed* layer that
`execution.state.journal.Journal` writes into on commit.

Design goals
------------
- Pure Python, no I/O.
- Bytes-in / bytes-out API (addresses, keys, values are bytes-like).
- "Empty means absent": storing an empty value deletes the key.
- Contract keys are prefixed byte strings (e.g. b"qz:r:" + participant), so
  there is no fixed key length.

Typical usage
-------------
    sv = StorageView()
    sv.set(addr, b"owner", owner_bytes)
    value = sv.get(addr, b"owner")  # bytes or default (b"" by default)
    sv.delete(addr, b"owner")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, MutableMapping, Optional, Tuple


def _as_bytes(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class StorageView:
    """
    A per-account key/value store.

    Parameters
    ----------
    backend :
        Optional external mapping to store state. If not provided, an internal
        dict is used. The shape is {address: {key: value}} with all entries as
        `bytes`.
    """
    backend: Optional[MutableMapping[bytes, Dict[bytes, bytes]]] = None

    _store: MutableMapping[bytes, Dict[bytes, bytes]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._store = self.backend if self.backend is not None else {}

    # ------------------------------ core ops --------------------------------

    def get(self, address: bytes | bytearray | memoryview,
            key: bytes | bytearray | memoryview,
            default: bytes = b"") -> bytes:
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        return self._store.get(addr_b, {}).get(key_b, default)

    def set(self, address: bytes | bytearray | memoryview,
            key: bytes | bytearray | memoryview,
            value: bytes | bytearray | memoryview) -> None:
        """
        Set value for (address, key). An empty value deletes the key.
        """
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        val_b = _as_bytes(value, name="value")

        if len(val_b) == 0:
            self.delete(addr_b, key_b)
            return

        acc = self._store.get(addr_b)
        if acc is None:
            acc = {}
            self._store[addr_b] = acc
        acc[key_b] = val_b

    def delete(self, address: bytes | bytearray | memoryview,
               key: bytes | bytearray | memoryview) -> bool:
        """
        Delete (address, key). Returns True if a key existed and was removed.
        """
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        acc = self._store.get(addr_b)
        if acc is None:
            return False
        removed = acc.pop(key_b, None) is not None
        if not acc:
            self._store.pop(addr_b, None)
        return removed

    def items(self, address: bytes | bytearray | memoryview) -> Iterator[Tuple[bytes, bytes]]:
        """
        Iterate (key, value) pairs for an address. Stable order: lexicographic by key.
        """
        addr_b = _as_bytes(address, name="address")
        acc = self._store.get(addr_b, {})
        for k in sorted(acc.keys()):
            yield k, acc[k]

    def total_keys(self) -> int:
        """Total number of keys across all accounts."""
        return sum(len(acc) for acc in self._store.values())


__all__ = [
    "StorageView",
]
