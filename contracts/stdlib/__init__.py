# -*- coding: utf-8 -*-
"""
contracts.stdlib
================

Building blocks shared by the ledger contracts.

- :mod:`.base`   : :class:`Contract`, ``@external`` / ``@payable`` / ``@view``,
  and :class:`BoundContract` (a contract seen from one sender)
- :mod:`.access` : :class:`Ownable` and :class:`Initializable` mixins
- :mod:`.abi`    : Ethereum-ABI params blobs handed from registry to handler
"""
from __future__ import annotations

from .abi import decode_quiz_params, encode_quiz_params
from .base import BoundContract, Contract, external, payable, view

__all__ = [
    "__version__",
    "Contract",
    "BoundContract",
    "external",
    "payable",
    "view",
    "encode_quiz_params",
    "decode_quiz_params",
]

# Bump when stdlib layout/conventions change (not ABI of individual contracts).
__version__ = "0.1.0"
