# -*- coding: utf-8 -*-
"""
End-to-end quiz flow through MotherFactory -> QuizHandler -> QuizEscrow.

Mirrors what the Discord bot does: deploy a funded quiz, post results as
players finish, end the quiz, and check that every wei is accounted for.
"""
from __future__ import annotations

import threading

import pytest

from contracts.quiz import DEPLOYMENT_FEE, QUIZ_DURATION, ParticipantResult
from contracts.stdlib.abi import encode_quiz_params
from contracts.tests import INITIAL_BALANCE, ether
from execution.errors import InsufficientFunds, InvalidState, Revert, Unauthorized


def test_deploy_through_registry(chain, bot, handler, factory):
    params = encode_quiz_params(ether("0.01"), ether("0.005"))
    addr = factory.connect(bot).deploy_contract("QuizEscrow", params, value=ether("0.101"))

    quiz = chain.at(addr)
    assert quiz.funding_amount() == ether("0.1")
    assert factory.total_deployed() == 1
    assert handler.get_accumulated_fees() == DEPLOYMENT_FEE


def test_first_result_pays_and_second_is_rejected(chain, bot, alice, deploy_quiz):
    quiz = deploy_quiz()

    quiz.connect(bot).record_result(alice, 3, 1)
    assert quiz.get_balance() == ether("0.065")
    assert quiz.get_participant_result(alice) == ParticipantResult(3, 1, ether("0.035"), True)

    with pytest.raises(InvalidState, match="Participant already recorded"):
        quiz.connect(bot).record_result(alice, 1, 0)
    assert quiz.get_balance() == ether("0.065")
    assert chain.balance_of(alice) == INITIAL_BALANCE + ether("0.035")


def test_zero_funding_quiz_cannot_pay(bot, alice, deploy_quiz):
    quiz = deploy_quiz(funding=0)
    assert quiz.get_balance() == 0
    with pytest.raises(InsufficientFunds, match="Insufficient funds for payout"):
        quiz.connect(bot).record_result(alice, 1, 0)
    assert not quiz.get_participant_result(alice).has_participated


def test_expired_quiz_swept_by_anyone(chain, clock, bob, carol, deploy_quiz):
    quiz = deploy_quiz(creator=carol)
    carol_before = chain.balance_of(carol)
    clock.advance(QUIZ_DURATION + 1)

    quiz.connect(bob).terminate()

    assert quiz.is_ended()
    assert chain.balance_of(carol) == carol_before + ether("0.1")


def test_non_owner_registration_leaves_registry_unchanged(alice, handler, factory):
    types = factory.get_contract_types()
    with pytest.raises(Unauthorized):
        factory.connect(alice).register_handler("Raffle", handler.address)
    assert factory.get_contract_types() == types
    assert factory.get_handler("Raffle") == "0x" + "00" * 20


def test_value_is_conserved_through_full_lifecycle(chain, bot, alice, bob, carol, handler, factory, deploy_quiz):
    supply = chain.total_supply()

    quizzes = [deploy_quiz(creator=carol, funding=ether(f"0.0{n}")) for n in (4, 5, 6)]
    assert handler.get_accumulated_fees() == 3 * DEPLOYMENT_FEE
    for quiz, n in zip(quizzes, (4, 5, 6)):
        assert quiz.funding_amount() == ether(f"0.0{n}")

    quizzes[0].connect(bot).record_result(alice, 3, 1)
    quizzes[1].connect(bot).record_result(bob, 2, 0)
    with pytest.raises(Revert):
        quizzes[0].connect(bot).record_result(bob, 1, 0)  # 0.01 > 0.005 left
    for quiz in quizzes:
        quiz.connect(bot).terminate()
    handler.connect(bot).withdraw_fees()

    assert chain.total_supply() == supply
    assert all(q.get_balance() == 0 for q in quizzes)
    assert chain.balance_of(factory.address) == 0
    assert chain.balance_of(handler.address) == 0


def test_racing_submissions_pay_once(chain, bot, alice, deploy_quiz):
    quiz = deploy_quiz(funding=ether(1))
    barrier = threading.Barrier(8)
    outcomes = []
    lock = threading.Lock()

    def submit():
        barrier.wait()
        try:
            quiz.connect(bot).record_result(alice, 3, 1)
            result = "paid"
        except InvalidState:
            result = "rejected"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["paid"] + ["rejected"] * 7
    assert chain.balance_of(alice) == INITIAL_BALANCE + ether("0.035")
    assert quiz.total_participants() == 1


def test_broken_subscriber_does_not_mask_a_committed_deployment(chain, alice, factory):
    seen = []

    def broken_indexer(_ev):
        raise RuntimeError("indexer crashed")

    chain.events.subscribe(broken_indexer)
    chain.events.subscribe(seen.append)

    params = encode_quiz_params(ether("0.01"), ether("0.005"))
    addr = factory.connect(alice).deploy_contract("QuizEscrow", params, value=DEPLOYMENT_FEE)

    assert chain.at(addr).creator() == alice
    assert factory.total_deployed() == 1
    assert "ContractDeployed" in [ev.name for ev in seen]
