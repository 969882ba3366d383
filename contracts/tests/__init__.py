# -*- coding: utf-8 -*-
"""
contracts.tests
================

Test package for the quiz contracts. Fixtures live in ``conftest.py``; the
small helpers below are importable from test modules.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Union

GENESIS_TIME = 1_725_000_000
INITIAL_BALANCE = 100 * 10**18


def ether(amount: Union[int, float, str, Decimal]) -> int:
    """Whole or fractional ether to wei, exactly (``ether("0.035")``)."""
    return int(Decimal(str(amount)) * 10**18)


__all__ = ["GENESIS_TIME", "INITIAL_BALANCE", "ether"]
