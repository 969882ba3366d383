# -*- coding: utf-8 -*-
"""
contracts.indexer
=================

Off-chain view of the quiz contracts, built only from committed events.

This is the integration point the Discord bot uses: after submitting a
deployment it needs the new escrow address, and later it wants to know which
results were posted and which quizzes ended. Both come from events:

- ``resolve_escrow_address(events, ...)`` picks the new escrow out of one
  committed call's events (``ContractDeployed`` from the registry, falling back
  to the handler's ``QuizDeployed``).
- :class:`DeploymentIndexer` subscribes to a chain's event sink and keeps
  lookups by creator, by transaction, and per escrow.

Usage
-----
    indexer = DeploymentIndexer(factory_address=factory.address)
    indexer.attach(chain)
    addr = factory.connect(bot).deploy_contract("QuizEscrow", params, value=v)
    assert indexer.deployments_by(bot)[-1].address == addr
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from execution.logging import get_logger
from execution.runtime.chain import Chain
from execution.types.address import AddressLike, to_address
from execution.types.events import LogEvent

__all__ = [
    "Deployment",
    "ResultPosting",
    "DeploymentIndexer",
    "resolve_escrow_address",
]

log = get_logger(__name__)


@dataclass(frozen=True)
class Deployment:
    address: str
    creator: str
    contract_type: str
    handler: str
    fee_paid: int
    tx_index: int


@dataclass(frozen=True)
class ResultPosting:
    escrow: str
    participant: str
    correct_count: int
    incorrect_count: int
    payout: int
    tx_index: int


def resolve_escrow_address(
    events: Iterable[LogEvent],
    *,
    factory: Optional[AddressLike] = None,
    expected_creator: Optional[AddressLike] = None,
    contract_type: str = "QuizEscrow",
) -> Optional[str]:
    """
    Address of the escrow created by one call, or None if it created none.

    ``ContractDeployed`` (optionally restricted to `factory`, the expected
    creator and `contract_type`) wins; a bare ``QuizDeployed`` is used when the
    handler was called directly.
    """
    events = list(events)
    factory_addr = to_address(factory) if factory is not None else None
    creator = to_address(expected_creator) if expected_creator is not None else None

    for ev in events:
        if ev.name != "ContractDeployed":
            continue
        if factory_addr is not None and ev.address != factory_addr:
            continue
        if ev.get("contractType") != contract_type:
            continue
        if creator is not None and ev.get("creator") != creator:
            continue
        return ev.get("contractAddress")

    for ev in events:
        if ev.name == "QuizDeployed" and (creator is None or ev.get("creator") == creator):
            return ev.get("quizAddress")
    return None


@dataclass
class _State:
    deployments: Dict[str, Deployment] = field(default_factory=dict)
    by_creator: Dict[str, List[str]] = field(default_factory=dict)
    by_tx: Dict[int, List[str]] = field(default_factory=dict)
    results: Dict[str, List[ResultPosting]] = field(default_factory=dict)
    ended: Set[str] = field(default_factory=set)
    returned: Dict[str, int] = field(default_factory=dict)


class DeploymentIndexer:
    """
    Event subscriber maintaining deployment and settlement lookups.

    If `factory_address` is given, only that registry's ``ContractDeployed``
    events are indexed; escrow events are indexed for escrows it has seen.
    """

    def __init__(self, factory_address: Optional[AddressLike] = None) -> None:
        self.factory_address = to_address(factory_address) if factory_address is not None else None
        self._state = _State()
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------ wiring

    def attach(self, chain: Chain, *, replay: bool = True) -> None:
        """Subscribe to `chain`; with `replay`, index already committed events first."""
        self.detach()
        if replay:
            for ev in chain.events.logs:
                self.on_event(ev)
        self._unsubscribe = chain.events.subscribe(self.on_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_event(self, ev: LogEvent) -> None:
        handler = _HANDLERS.get(ev.name)
        if handler is not None:
            with self._lock:
                handler(self, ev)

    # ------------------------------------------------------------------ event handlers

    def _on_deployed(self, ev: LogEvent) -> None:
        if self.factory_address is not None and ev.address != self.factory_address:
            return
        dep = Deployment(
            address=ev.get("contractAddress"),
            creator=ev.get("creator"),
            contract_type=ev.get("contractType"),
            handler=ev.get("handler"),
            fee_paid=int(ev.get("feePaid", 0)),
            tx_index=ev.tx_index,
        )
        s = self._state
        if dep.address in s.deployments:
            return
        s.deployments[dep.address] = dep
        s.by_creator.setdefault(dep.creator, []).append(dep.address)
        s.by_tx.setdefault(dep.tx_index, []).append(dep.address)
        log.debug("indexed_deployment", address=dep.address, creator=dep.creator, contract_type=dep.contract_type)

    def _known(self, escrow: str) -> bool:
        return self.factory_address is None or escrow in self._state.deployments

    def _on_result(self, ev: LogEvent) -> None:
        if not self._known(ev.address):
            return
        self._state.results.setdefault(ev.address, []).append(
            ResultPosting(
                escrow=ev.address,
                participant=ev.get("participant"),
                correct_count=int(ev.get("correctCount", 0)),
                incorrect_count=int(ev.get("incorrectCount", 0)),
                payout=int(ev.get("payout", 0)),
                tx_index=ev.tx_index,
            )
        )

    def _on_ended(self, ev: LogEvent) -> None:
        if self._known(ev.address):
            self._state.ended.add(ev.address)

    def _on_returned(self, ev: LogEvent) -> None:
        if self._known(ev.address):
            self._state.returned[ev.address] = int(ev.get("amount", 0))

    # ------------------------------------------------------------------ queries

    def deployment(self, address: AddressLike) -> Optional[Deployment]:
        with self._lock:
            return self._state.deployments.get(to_address(address))

    def deployments_by(self, creator: AddressLike) -> List[Deployment]:
        with self._lock:
            s = self._state
            return [s.deployments[a] for a in s.by_creator.get(to_address(creator), [])]

    def escrow_for_tx(self, tx_index: int) -> Optional[str]:
        """First contract deployed by committed call `tx_index`."""
        with self._lock:
            addrs = self._state.by_tx.get(tx_index)
            return addrs[0] if addrs else None

    def results_for(self, escrow: AddressLike) -> List[ResultPosting]:
        with self._lock:
            return list(self._state.results.get(to_address(escrow), []))

    def is_ended(self, escrow: AddressLike) -> bool:
        with self._lock:
            return to_address(escrow) in self._state.ended

    def returned_to_creator(self, escrow: AddressLike) -> int:
        with self._lock:
            return self._state.returned.get(to_address(escrow), 0)

    def active_escrows(self) -> List[str]:
        with self._lock:
            s = self._state
            return [a for a in s.deployments if a not in s.ended]

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.deployments)


_HANDLERS: Dict[str, Callable[[DeploymentIndexer, LogEvent], None]] = {
    "ContractDeployed": DeploymentIndexer._on_deployed,
    "QuizResultRecorded": DeploymentIndexer._on_result,
    "QuizEnded": DeploymentIndexer._on_ended,
    "UnclaimedFundsReturned": DeploymentIndexer._on_returned,
}
