# -*- coding: utf-8 -*-
"""
contracts.stdlib.access
=======================

Access-control mixins for ledger contracts.

- :class:`Ownable`       : single owner with transfer/renounce
- :class:`Initializable` : ``initialize`` may run exactly once

Storage layout (by convention)
------------------------------
- Owner:       key ``b"access:owner"`` → 20-byte address, absent when unset/renounced
- Initialized: key ``b"init:done"``    → ``b"\\x01"`` once initialized

These keys are deterministic byte strings; *do not* change them after deploy.
"""
from __future__ import annotations

from .initializable import INITIALIZED_KEY, Initializable
from .ownable import OWNER_KEY, Ownable

__all__ = ["OWNER_KEY", "INITIALIZED_KEY", "Ownable", "Initializable"]
