# -*- coding: utf-8 -*-
"""
contracts.quiz.handler
======================

Handler for the "QuizEscrow" contract type. The registry forwards a deployment
here with the full attached value; the handler keeps a fixed fee and creates
a :class:`~contracts.quiz.escrow.QuizEscrow` funded with the rest.

    value = DEPLOYMENT_FEE + funding
    handler balance += DEPLOYMENT_FEE
    escrow.funding_amount == funding

``deploy_contract`` is open to any caller; access policy (if any) lives in the
registry. Accumulated fees are the handler's own balance and only the
authorized bot may withdraw them, all at once.

Lifecycle
---------
Created, then ``initialize(bot)`` once (or pass ``bot`` to the constructor,
which initializes in the same call). The bot is immutable afterwards.

Events (names)
--------------
- "QuizDeployed"  {creator, quizAddress, correctReward, incorrectReward, fundingAmount, deploymentFee}
- "FeesWithdrawn" {to, amount}
"""
from __future__ import annotations

from typing import Final, Optional

from execution.errors import InsufficientFunds, InvalidArgument, InvalidState, Unauthorized
from execution.logging import get_logger
from execution.metrics import observe_payout
from execution.types.address import AddressLike, is_zero_address, to_address

from ..interfaces import HandlerInfo
from ..stdlib.abi import decode_quiz_params
from ..stdlib.access import Initializable
from ..stdlib.base import external, payable, view
from .escrow import QuizEscrow

__all__ = [
    "DEPLOYMENT_FEE",
    "VERSION",
    "CONTRACT_TYPE",
    "DESCRIPTION",
    "QuizHandler",
]

log = get_logger(__name__)

DEPLOYMENT_FEE: Final[int] = 10**15  # 0.001 ether
VERSION: Final[str] = "1.0.0"
CONTRACT_TYPE: Final[str] = "QuizEscrow"
DESCRIPTION: Final[str] = (
    "Deploys QuizEscrow contracts for Discord quiz games with bot-controlled result recording"
)

_K_BOT: Final[bytes] = b"qh:bot"


class QuizHandler(Initializable):
    DEPLOYMENT_FEE = DEPLOYMENT_FEE
    VERSION = VERSION
    CONTRACT_TYPE = CONTRACT_TYPE

    def constructor(self, authorized_bot: Optional[AddressLike] = None) -> None:
        if authorized_bot is not None:
            self._setup(authorized_bot)

    @external
    def initialize(self, authorized_bot: AddressLike) -> None:
        self._setup(authorized_bot)

    def _setup(self, authorized_bot: AddressLike) -> None:
        self._initializer()
        self.require(not is_zero_address(authorized_bot), "QuizHandler: Invalid bot address", InvalidArgument)
        self._set_address(_K_BOT, authorized_bot)

    # ------------------------------------------------------------------ handler capability

    @payable
    def deploy_contract(self, creator: AddressLike, params: bytes) -> str:
        """Create a funded QuizEscrow for `creator`. Returns its address."""
        correct_reward, incorrect_reward = decode_quiz_params(params)
        value = self.msg.value
        self.require(
            value >= DEPLOYMENT_FEE,
            "QuizHandler: Insufficient payment for deployment fee",
            InsufficientFunds,
            required=DEPLOYMENT_FEE,
            sent=value,
        )
        funding = value - DEPLOYMENT_FEE

        quiz = self._create(
            QuizEscrow,
            creator,
            self._get_address(_K_BOT),
            correct_reward,
            incorrect_reward,
            value=funding,
        )
        self.emit(
            "QuizDeployed",
            creator=to_address(creator),
            quizAddress=quiz,
            correctReward=correct_reward,
            incorrectReward=incorrect_reward,
            fundingAmount=funding,
            deploymentFee=DEPLOYMENT_FEE,
        )
        handler, creator = self.address, to_address(creator)
        self._after_commit(
            lambda: log.info("quiz_deployed", handler=handler, quiz=quiz, creator=creator, funding=funding)
        )
        return quiz

    @view
    def get_deployment_fee(self, params: bytes = b"") -> int:
        return DEPLOYMENT_FEE

    @view
    def get_handler_info(self) -> HandlerInfo:
        return HandlerInfo(contract_type=CONTRACT_TYPE, version=VERSION, description=DESCRIPTION)

    # ------------------------------------------------------------------ fees

    @external
    def withdraw_fees(self) -> int:
        bot = self._get_address(_K_BOT)
        self.require(
            self.msg.sender == bot,
            "QuizHandler: Only authorized bot can withdraw fees",
            Unauthorized,
            caller=self.msg.sender,
        )
        amount = self.balance()
        self.require(amount > 0, "QuizHandler: No fees to withdraw", InvalidState)

        self._transfer(bot, amount)
        self.emit("FeesWithdrawn", to=bot, amount=amount)
        handler = self.address

        def _settled() -> None:
            observe_payout(amount, kind="fees")
            log.info("fees_withdrawn", handler=handler, to=bot, amount=amount)

        self._after_commit(_settled)
        return amount

    @view
    def authorized_bot(self) -> str:
        return self._get_address(_K_BOT)

    @view
    def get_accumulated_fees(self) -> int:
        return self.balance()
