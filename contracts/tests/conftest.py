# -*- coding: utf-8 -*-
"""
contracts.tests.conftest
========================

Pytest fixtures for the quiz contracts.

Goals:
- Provide a **deterministic local ledger**: a `Chain` on a `ManualClock`, so
  expiry tests move time explicitly instead of sleeping.
- Expose **funded accounts** with stable addresses (owner, bot, alice, bob, carol).
- Bootstrap the full deployment path: a `QuizHandler` initialized with the bot
  and a `MotherFactory` owned by `owner` with the handler registered under
  "QuizEscrow".

Usage (inside a test file):
    def test_flow(chain, bot, alice, deploy_quiz):
        quiz = deploy_quiz(funding=ether(0.1))
        quiz.connect(bot).record_result(alice, 3, 1)
        assert quiz.get_participant_result(alice).has_participated
"""
from __future__ import annotations

from typing import Callable, Optional

import pytest

from contracts.quiz import DEPLOYMENT_FEE, QuizEscrow, QuizHandler
from contracts.registry import MotherFactory
from contracts.stdlib.abi import encode_quiz_params
from execution.runtime import Chain, ManualClock
from execution.types.address import address_from_label

from contracts.tests import GENESIS_TIME, INITIAL_BALANCE, ether


# --- ledger & accounts --------------------------------------------------------

@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(GENESIS_TIME)


@pytest.fixture()
def chain(clock: ManualClock) -> Chain:
    return Chain(clock)


def _account(chain: Chain, label: str) -> str:
    addr = address_from_label(label)
    chain.fund(addr, INITIAL_BALANCE)
    return addr


@pytest.fixture()
def owner(chain: Chain) -> str:
    return _account(chain, "owner")


@pytest.fixture()
def bot(chain: Chain) -> str:
    return _account(chain, "bot")


@pytest.fixture()
def alice(chain: Chain) -> str:
    return _account(chain, "alice")


@pytest.fixture()
def bob(chain: Chain) -> str:
    return _account(chain, "bob")


@pytest.fixture()
def carol(chain: Chain) -> str:
    return _account(chain, "carol")


# --- contracts ----------------------------------------------------------------

@pytest.fixture()
def handler(chain: Chain, owner: str, bot: str) -> QuizHandler:
    h = chain.deploy(QuizHandler, sender=owner)
    h.connect(owner).initialize(bot)
    return h


@pytest.fixture()
def factory(chain: Chain, owner: str, bot: str, handler: QuizHandler) -> MotherFactory:
    f = chain.deploy(MotherFactory, sender=owner)
    f.connect(owner).initialize(bot)
    f.connect(owner).register_handler("QuizEscrow", handler.address)
    return f


@pytest.fixture()
def deploy_quiz(chain: Chain, factory: MotherFactory, bot: str) -> Callable[..., QuizEscrow]:
    """
    Deploy a QuizEscrow through the factory and return the contract object.

    Defaults: 0.01 ether per correct answer, 0.005 per incorrect, 0.1 ether
    funding, created by the bot.
    """

    def _deploy(
        *,
        creator: Optional[str] = None,
        correct: int = ether("0.01"),
        incorrect: int = ether("0.005"),
        funding: int = ether("0.1"),
    ) -> QuizEscrow:
        sender = creator or bot
        params = encode_quiz_params(correct, incorrect)
        addr = factory.connect(sender).deploy_contract("QuizEscrow", params, value=DEPLOYMENT_FEE + funding)
        return chain.at(addr)

    return _deploy
