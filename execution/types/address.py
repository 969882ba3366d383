"""
execution.types.address — 20-byte account identities.

Identities are EVM-style addresses. At the API surface they are EIP-55
checksummed hex strings ("0xAbC…"); in storage they are the raw 20 bytes.
`eth-utils` does the validation and checksumming so addresses produced here
are interchangeable with the ones the Discord bot and block explorers use.

Contract addresses are derived from (deployer, deployer_nonce) with keccak-256
and keep the last 20 bytes, so the same deployment sequence always yields the
same addresses.
"""

from __future__ import annotations

from typing import Union

from eth_utils import is_address, keccak, to_canonical_address, to_checksum_address

AddressLike = Union[str, bytes, bytearray, memoryview]

ADDRESS_BYTES = 20
ZERO_ADDRESS: str = "0x" + "00" * ADDRESS_BYTES


def to_address(value: AddressLike) -> str:
    """
    Normalize hex-or-bytes into a checksummed address string.

    Raises:
        ValueError if `value` is not a 20-byte address.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != ADDRESS_BYTES:
            raise ValueError(f"address must be {ADDRESS_BYTES} bytes (got {len(raw)})")
        return to_checksum_address(raw)
    if isinstance(value, str) and is_address(value):
        return to_checksum_address(value)
    raise ValueError(f"invalid address: {value!r}")


def address_bytes(value: AddressLike) -> bytes:
    """Canonical 20-byte form used for journal keys and storage values."""
    return bytes(to_canonical_address(to_address(value)))


def is_valid_address(value: object) -> bool:
    """True for a 20-byte value or a hex address string; never raises."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(bytes(value)) == ADDRESS_BYTES
    return isinstance(value, str) and is_address(value)


def is_zero_address(value: AddressLike) -> bool:
    return address_bytes(value) == b"\x00" * ADDRESS_BYTES


def derive_contract_address(deployer: AddressLike, nonce: int) -> str:
    """
    Deterministic address for the `nonce`-th contract created by `deployer`.

    address = keccak256(b"create" || deployer(20) || u256(nonce))[12:]
    """
    if nonce < 0:
        raise ValueError("nonce must be non-negative")
    digest = keccak(b"create" + address_bytes(deployer) + nonce.to_bytes(32, "big"))
    return to_checksum_address(digest[-ADDRESS_BYTES:])


def address_from_label(label: str) -> str:
    """
    Stable pseudo-address for a human label (test accounts, fixtures).
    """
    return to_checksum_address(keccak(text=f"account:{label}")[-ADDRESS_BYTES:])


__all__ = [
    "AddressLike",
    "ADDRESS_BYTES",
    "ZERO_ADDRESS",
    "to_address",
    "address_bytes",
    "is_valid_address",
    "is_zero_address",
    "derive_contract_address",
    "address_from_label",
]
