# -*- coding: utf-8 -*-
"""
contracts.stdlib.access.ownable
================================

Single-owner access control for ledger contracts.

This mixin provides a focused owner storage and control surface:
- read the current owner (`owner`)
- set the owner once during construction/initialization (`_init_owner`)
- gate privileged entrypoints (`_only_owner`)
- transfer ownership to a new account (`transfer_ownership`)
- renounce ownership (`renounce_ownership`)

Conventions
-----------
- The owner is stored at ``OWNER_KEY = b"access:owner"``; an absent value means
  "no owner" and reads as the null address.
- Events:
    - "OwnershipTransferred" args: {"previousOwner": str, "newOwner": str}
- Reverts:
    - "OwnableUnauthorizedAccount" (Unauthorized) when the caller is not the owner
    - "OwnableInvalidOwner" (InvalidArgument) when transferring to the null address

Renouncing is a one-way valve: with the null owner every owner-gated
entrypoint fails forever.
"""
from __future__ import annotations

from typing import Final

from execution.errors import InvalidArgument, Unauthorized
from execution.types.address import ZERO_ADDRESS, AddressLike, is_zero_address, to_address

from ..base import Contract, external, view

__all__ = ["OWNER_KEY", "Ownable"]

OWNER_KEY: Final[bytes] = b"access:owner"


class Ownable(Contract):
    """Owner field plus the standard transfer/renounce entrypoints."""

    def _init_owner(self, owner: AddressLike) -> None:
        previous = self._get_address(OWNER_KEY)
        self._set_address(OWNER_KEY, owner)
        self.emit("OwnershipTransferred", previousOwner=previous, newOwner=to_address(owner))

    def _only_owner(self) -> None:
        sender = self.msg.sender
        self.require(
            not is_zero_address(self._get_address(OWNER_KEY)) and sender == self._get_address(OWNER_KEY),
            "OwnableUnauthorizedAccount",
            Unauthorized,
            account=sender,
        )

    @view
    def owner(self) -> str:
        return self._get_address(OWNER_KEY)

    @external
    def transfer_ownership(self, new_owner: AddressLike) -> None:
        self._only_owner()
        self.require(not is_zero_address(new_owner), "OwnableInvalidOwner", InvalidArgument, owner=ZERO_ADDRESS)
        self._init_owner(new_owner)

    @external
    def renounce_ownership(self) -> None:
        self._only_owner()
        previous = self._get_address(OWNER_KEY)
        self._set_address(OWNER_KEY, ZERO_ADDRESS)
        self.emit("OwnershipTransferred", previousOwner=previous, newOwner=ZERO_ADDRESS)
