# -*- coding: utf-8 -*-
"""
DeploymentIndexer / resolve_escrow_address tests

The bot learns new escrow addresses and result postings only from committed
events; reverted calls must never show up.
"""
from __future__ import annotations

import pytest

from contracts.indexer import DeploymentIndexer, resolve_escrow_address
from contracts.quiz import DEPLOYMENT_FEE
from contracts.stdlib.abi import encode_quiz_params
from contracts.tests import ether
from execution.errors import Revert

PARAMS = encode_quiz_params(ether("0.01"), ether("0.005"))


@pytest.fixture()
def indexer(chain, factory):
    idx = DeploymentIndexer(factory_address=factory.address)
    idx.attach(chain)
    yield idx
    idx.detach()


def test_resolve_from_registry_deployment(chain, alice, factory):
    addr = factory.connect(alice).deploy_contract("QuizEscrow", PARAMS, value=DEPLOYMENT_FEE)
    tx_events = [ev for ev in chain.events.logs if ev.tx_index == chain.events.logs[-1].tx_index]

    assert resolve_escrow_address(tx_events) == addr
    assert resolve_escrow_address(tx_events, factory=factory.address, expected_creator=alice) == addr
    assert resolve_escrow_address(tx_events, contract_type="Raffle") == addr  # QuizDeployed fallback
    assert resolve_escrow_address([]) is None


def test_resolve_from_direct_handler_call(chain, bob, handler):
    addr = handler.connect(bob).deploy_contract(bob, PARAMS, value=DEPLOYMENT_FEE)
    tx_events = chain.events.filter(tx_index=chain.events.logs[-1].tx_index)
    assert resolve_escrow_address(tx_events) == addr
    assert resolve_escrow_address(tx_events, expected_creator=handler.address) is None


def test_indexes_deployments_by_creator_and_tx(chain, alice, bob, indexer, deploy_quiz):
    a1 = deploy_quiz(creator=alice).address
    tx = chain.events.logs[-1].tx_index
    b1 = deploy_quiz(creator=bob).address
    a2 = deploy_quiz(creator=alice).address

    assert [d.address for d in indexer.deployments_by(alice)] == [a1, a2]
    assert [d.address for d in indexer.deployments_by(bob)] == [b1]
    assert indexer.escrow_for_tx(tx) == a1
    assert len(indexer) == 3
    dep = indexer.deployment(a1)
    assert dep.contract_type == "QuizEscrow"
    assert dep.fee_paid == DEPLOYMENT_FEE


def test_results_and_endings_are_tracked(bot, alice, bob, indexer, deploy_quiz):
    quiz = deploy_quiz()
    other = deploy_quiz()
    quiz.connect(bot).record_result(alice, 3, 1)
    quiz.connect(bot).record_result(bob, 0, 2)
    quiz.connect(bot).terminate()

    results = indexer.results_for(quiz.address)
    assert [(r.participant, r.payout) for r in results] == [(alice, ether("0.035")), (bob, ether("0.01"))]
    assert indexer.is_ended(quiz.address)
    assert indexer.returned_to_creator(quiz.address) == ether("0.055")
    assert indexer.active_escrows() == [other.address]


def test_reverted_calls_are_invisible(chain, bot, alice, indexer, deploy_quiz):
    quiz = deploy_quiz()
    quiz.connect(bot).record_result(alice, 1, 0)
    with pytest.raises(Revert):
        quiz.connect(bot).record_result(alice, 1, 0)
    with pytest.raises(Revert):
        chain.at(quiz.address).connect(alice).terminate()

    assert len(indexer.results_for(quiz.address)) == 1
    assert not indexer.is_ended(quiz.address)


def test_attach_replays_history(chain, alice, factory, deploy_quiz):
    addr = deploy_quiz(creator=alice).address
    late = DeploymentIndexer(factory_address=factory.address)
    late.attach(chain)
    assert late.deployment(addr) is not None

    late.detach()
    deploy_quiz(creator=alice)
    assert len(late) == 1


def test_escrows_from_other_factories_are_ignored(chain, bob, handler):
    idx = DeploymentIndexer(factory_address="0x" + "11" * 20)
    idx.attach(chain)
    handler.connect(bob).deploy_contract(bob, PARAMS, value=DEPLOYMENT_FEE)
    assert len(idx) == 0
