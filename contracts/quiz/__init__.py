# -*- coding: utf-8 -*-
"""
contracts.quiz
==============

The quiz contract type: :class:`QuizHandler` deploys one :class:`QuizEscrow`
per quiz.
"""
from __future__ import annotations

from .escrow import QUIZ_DURATION, ParticipantResult, QuizEscrow, QuizStats
from .handler import CONTRACT_TYPE, DEPLOYMENT_FEE, QuizHandler

__all__ = [
    "QUIZ_DURATION",
    "DEPLOYMENT_FEE",
    "CONTRACT_TYPE",
    "ParticipantResult",
    "QuizStats",
    "QuizEscrow",
    "QuizHandler",
]
