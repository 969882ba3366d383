# -*- coding: utf-8 -*-
"""
contracts.registry
==================

:class:`MotherFactory`, the registry that routes deployments to handlers.
"""
from __future__ import annotations

from .mother_factory import FactoryStats, MotherFactory

__all__ = ["FactoryStats", "MotherFactory"]
