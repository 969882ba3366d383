# -*- coding: utf-8 -*-
"""
contracts.stdlib.access.initializable
=====================================

One-shot initialization for contracts whose setup happens after creation
(the upgradeable-deployment pattern: create, then call ``initialize``).

A contract calls ``self._initializer()`` at the top of its ``initialize``
entrypoint. The first call flips ``INITIALIZED_KEY``; any later call reverts
with "InvalidInitialization" (InvalidState) and changes nothing.
"""
from __future__ import annotations

from typing import Final

from execution.errors import InvalidState

from ..base import Contract, view

__all__ = ["INITIALIZED_KEY", "Initializable"]

INITIALIZED_KEY: Final[bytes] = b"init:done"


class Initializable(Contract):
    def _initializer(self) -> None:
        self.require(not self._get_bool(INITIALIZED_KEY), "InvalidInitialization", InvalidState)
        self._set_bool(INITIALIZED_KEY, True)
        self.emit("Initialized", version=1)

    @view
    def is_initialized(self) -> bool:
        return self._get_bool(INITIALIZED_KEY)
