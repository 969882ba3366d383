# -*- coding: utf-8 -*-
"""
contracts
=========

Quiz reward contracts for the settlement ledger:

- :mod:`contracts.registry` : ``MotherFactory``, the contract-type registry
- :mod:`contracts.quiz`     : ``QuizHandler`` and the per-quiz ``QuizEscrow``
- :mod:`contracts.indexer`  : off-chain view of deployments built from events
- :mod:`contracts.stdlib`   : contract base class, access mixins, params codec
"""
from __future__ import annotations

__version__ = "0.1.0"
