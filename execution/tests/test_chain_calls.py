import threading

import pytest

from execution.errors import InsufficientFunds, InvalidAccess, InvalidArgument, Revert
from execution.runtime.chain import ABI_ATTR, AbiEntry, Chain
from execution.runtime.env import ManualClock
from execution.types.address import address_from_label, derive_contract_address

ALICE = address_from_label("alice")
BOB = address_from_label("bob")

T0 = 1_725_000_000


def _external(payable=False):
    def deco(fn):
        setattr(fn, ABI_ATTR, AbiEntry(kind="external", payable=payable))
        return fn
    return deco


def _view(fn):
    setattr(fn, ABI_ATTR, AbiEntry(kind="view"))
    return fn


# ----------------------- tiny contracts driving the host API directly -----------------------

class Vault:
    def __init__(self, chain, address):
        self.chain = chain
        self.address = address

    @_external(payable=True)
    def constructor(self, label=b""):
        self.chain.storage_set(self.address, b"label", label)

    @_external(payable=True)
    def deposit(self):
        frame = self.chain.current_frame
        self.chain.emit(self.address, "Deposited", {"from": frame.sender, "amount": frame.value})
        return self.chain.balance_of(self.address)

    @_external()
    def pay(self, to, amount):
        self.chain.transfer_from(self.address, to, amount)
        self.chain.emit(self.address, "Paid", {"to": to, "amount": amount})

    @_external()
    def pay_then_fail(self, to, amount):
        self.pay(to, amount)
        raise Revert("Vault: refused")

    @_external()
    def pay_noted(self, to, amount, notes):
        self.pay(to, amount)
        self.chain.after_commit(self.address, lambda: notes.append(("paid", self.chain.balance_of(to))))

    @_external()
    def stamp(self):
        return self.chain.current_frame.timestamp

    @_view
    def label(self):
        return self.chain.storage_get(self.address, b"label")

    def hidden(self):
        return "unreachable"


class Broken:
    def __init__(self, chain, address):
        self.chain = chain
        self.address = address

    @_external(payable=True)
    def constructor(self):
        self.chain.storage_set(self.address, b"x", b"\x01")
        raise Revert("Broken: constructor failed")


class Forwarder:
    def __init__(self, chain, address):
        self.chain = chain
        self.address = address

    def constructor(self):
        pass

    @_external()
    def forward(self, vault, to, amount, fail_after=False):
        self.chain.emit(self.address, "Forwarding", {"vault": vault})
        self.chain.call_from(self.address, vault, "pay", (to, amount))
        if fail_after:
            raise Revert("Forwarder: outer failure")

    @_external()
    def forward_noted(self, vault, to, amount, notes, fail_after=False):
        self.chain.after_commit(self.address, lambda: notes.append(("forwarded", amount)))
        self.chain.call_from(self.address, vault, "pay_noted", (to, amount, notes))
        if fail_after:
            raise Revert("Forwarder: outer failure")

    @_external()
    def try_forward(self, vault, to, amount):
        try:
            self.chain.call_from(self.address, vault, "pay_then_fail", (to, amount))
        except Revert:
            self.chain.emit(self.address, "InnerFailed", {})
        return self.chain.balance_of(vault)

    @_external()
    def spawn(self, label):
        return self.chain.create_from(self.address, Vault, (label,))

    @_external()
    def times(self, vault):
        return self.chain.current_frame.timestamp, self.chain.call_from(self.address, vault, "stamp")

    @_external()
    def fund_inside(self):
        self.chain.fund(self.address, 1)


@pytest.fixture()
def clock():
    return ManualClock(T0)


@pytest.fixture()
def chain(clock):
    c = Chain(clock)
    c.fund(ALICE, 1_000)
    c.fund(BOB, 1_000)
    return c


@pytest.fixture()
def vault(chain):
    return chain.deploy(Vault, b"main", sender=ALICE, value=100)


@pytest.fixture()
def forwarder(chain):
    return chain.deploy(Forwarder, sender=BOB)


# ===================================================
# Deployment
# ===================================================

def test_deploy_derives_address_and_bumps_nonce(chain):
    first = chain.deploy(Vault, b"a", sender=ALICE)
    second = chain.deploy(Vault, b"b", sender=ALICE)

    assert first.address == derive_contract_address(ALICE, 0)
    assert second.address == derive_contract_address(ALICE, 1)
    assert chain.nonce_of(ALICE) == 2
    assert chain.is_contract(first.address)
    assert first.label() == b"a"


def test_deploy_moves_funding_into_contract(chain, vault):
    assert chain.balance_of(vault.address) == 100
    assert chain.balance_of(ALICE) == 900
    assert chain.total_supply() == 2_000


def test_failed_constructor_leaves_no_trace(chain):
    with pytest.raises(Revert) as ei:
        chain.deploy(Broken, sender=ALICE, value=50)

    assert ei.value.reason == "Broken: constructor failed"
    would_be = derive_contract_address(ALICE, 0)
    assert chain.nonce_of(ALICE) == 0
    assert chain.balance_of(ALICE) == 1_000
    assert chain.balance_of(would_be) == 0
    assert not chain.is_contract(would_be)
    assert chain.storage_get(would_be, b"x") == b""


def test_constructor_value_rejected_unless_payable(chain):
    with pytest.raises(InvalidArgument):
        chain.deploy(Forwarder, sender=ALICE, value=1)
    assert chain.balance_of(ALICE) == 1_000


# ===================================================
# Entrypoint resolution
# ===================================================

def test_unmarked_private_and_unknown_methods_are_unreachable(chain, vault):
    for name in ("hidden", "_private", "missing"):
        with pytest.raises(InvalidAccess):
            chain.transact(ALICE, vault.address, name)


def test_calling_an_address_without_code_fails(chain):
    with pytest.raises(InvalidAccess):
        chain.transact(ALICE, BOB, "deposit", value=1)
    assert chain.balance_of(ALICE) == 1_000


def test_value_on_non_payable_method_is_rejected(chain, vault):
    with pytest.raises(InvalidArgument):
        chain.transact(ALICE, vault.address, "pay", BOB, 1, value=5)
    assert chain.balance_of(vault.address) == 100


def test_payable_call_moves_value_before_body(chain, vault):
    seen = chain.transact(BOB, vault.address, "deposit", value=40)
    assert seen == 140
    assert chain.balance_of(BOB) == 960
    ev = chain.events.filter(name="Deposited")[-1]
    assert ev.get("from") == BOB and ev.get("amount") == 40


def test_view_runs_without_frame_or_commit(chain, vault):
    before = len(chain.events.logs)
    assert chain.transact(BOB, vault.address, "label") == b"main"
    assert chain.current_frame is None
    assert len(chain.events.logs) == before


# ===================================================
# Atomicity
# ===================================================

def test_revert_discards_transfer_and_events(chain, vault):
    logs_before = chain.events.logs
    with pytest.raises(Revert):
        chain.transact(ALICE, vault.address, "pay_then_fail", BOB, 30)

    assert chain.balance_of(vault.address) == 100
    assert chain.balance_of(BOB) == 1_000
    assert chain.events.logs == logs_before
    assert chain.events.pending == []


def test_outer_failure_unwinds_completed_inner_call(chain, vault, forwarder):
    with pytest.raises(Revert, match="outer failure"):
        chain.transact(ALICE, forwarder.address, "forward", vault.address, BOB, 30, True)

    assert chain.balance_of(vault.address) == 100
    assert chain.balance_of(BOB) == 1_000
    assert chain.events.filter(name="Paid") == []
    assert chain.events.filter(name="Forwarding") == []


def test_nested_call_commits_with_its_parent(chain, vault, forwarder):
    chain.transact(ALICE, forwarder.address, "forward", vault.address, BOB, 30)
    assert chain.balance_of(vault.address) == 70
    assert chain.balance_of(BOB) == 1_030
    names = [ev.name for ev in chain.events.logs[-2:]]
    assert names == ["Forwarding", "Paid"]
    assert chain.events.logs[-1].address == vault.address


def test_caught_inner_revert_keeps_outer_effects(chain, vault, forwarder):
    remaining = chain.transact(ALICE, forwarder.address, "try_forward", vault.address, BOB, 30)
    assert remaining == 100
    assert chain.balance_of(BOB) == 1_000
    assert chain.events.filter(name="Paid") == []
    assert len(chain.events.filter(name="InnerFailed")) == 1


def test_overdrawn_transfer_raises_insufficient_funds(chain, vault):
    with pytest.raises(InsufficientFunds):
        chain.transact(ALICE, vault.address, "pay", BOB, 101)
    assert chain.balance_of(vault.address) == 100


def test_value_is_conserved_across_calls(chain, vault, forwarder):
    supply = chain.total_supply()
    chain.transact(BOB, vault.address, "deposit", value=10)
    chain.transact(ALICE, forwarder.address, "forward", vault.address, ALICE, 25)
    with pytest.raises(Revert):
        chain.transact(ALICE, vault.address, "pay_then_fail", BOB, 5)
    assert chain.total_supply() == supply
    chain.fund(BOB, 7)
    assert chain.total_supply() == supply + 7


# ===================================================
# Nested creation and block time
# ===================================================

def test_contract_creates_contract_with_its_own_nonce(chain, forwarder):
    child = chain.transact(ALICE, forwarder.address, "spawn", b"child")
    assert child == derive_contract_address(forwarder.address, 0)
    assert chain.nonce_of(forwarder.address) == 1
    assert chain.at(child).label() == b"child"


def test_nested_frames_share_the_call_timestamp(chain, clock, vault, forwarder):
    clock.advance(60)
    outer, inner = chain.transact(ALICE, forwarder.address, "times", vault.address)
    assert outer == inner == T0 + 60


def test_block_time_never_goes_backwards(chain, clock, vault):
    clock.advance(10)
    assert chain.transact(ALICE, vault.address, "stamp") == T0 + 10
    clock.set(T0)
    assert chain.transact(ALICE, vault.address, "stamp") == T0 + 10


# ===================================================
# Host guards
# ===================================================

def test_host_effects_require_the_executing_contract(chain, vault):
    with pytest.raises(InvalidAccess):
        chain.storage_set(vault.address, b"label", b"x")
    with pytest.raises(InvalidAccess):
        chain.transfer_from(vault.address, BOB, 1)
    with pytest.raises(InvalidAccess):
        chain.emit(vault.address, "Forged", {})
    assert vault.label() == b"main"


def test_fund_is_refused_inside_a_call(chain, forwarder):
    with pytest.raises(InvalidAccess):
        chain.transact(ALICE, forwarder.address, "fund_inside")
    assert chain.balance_of(forwarder.address) == 0


def test_subscribers_see_committed_events_with_positions(chain, vault):
    seen = []
    chain.events.subscribe(seen.append)
    chain.transact(BOB, vault.address, "deposit", value=1)
    chain.transact(BOB, vault.address, "deposit", value=2)
    assert [ev.get("amount") for ev in seen] == [1, 2]
    assert seen[1].tx_index == seen[0].tx_index + 1
    assert seen[0].log_index == 0


def test_concurrent_deposits_are_serialized(chain, vault):
    def deposit():
        for _ in range(20):
            chain.transact(BOB, vault.address, "deposit", value=1)

    threads = [threading.Thread(target=deposit) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert chain.balance_of(vault.address) == 180
    assert chain.balance_of(BOB) == 920
    assert len(chain.events.filter(name="Deposited")) == 80


# ===================================================
# Post-commit effects
# ===================================================

def test_after_commit_hooks_run_once_the_call_settles(chain, vault, forwarder):
    notes = []
    chain.transact(ALICE, forwarder.address, "forward_noted", vault.address, BOB, 30, notes)
    assert notes == [("forwarded", 30), ("paid", 1_030)]


def test_reverted_call_drops_its_after_commit_hooks(chain, vault, forwarder):
    notes = []
    with pytest.raises(Revert, match="outer failure"):
        chain.transact(ALICE, forwarder.address, "forward_noted", vault.address, BOB, 30, notes, True)
    assert notes == []

    chain.transact(ALICE, vault.address, "pay_noted", BOB, 5, notes)
    assert notes == [("paid", 1_005)]


def test_after_commit_requires_the_executing_contract(chain, vault):
    with pytest.raises(InvalidAccess):
        chain.after_commit(vault.address, lambda: None)


def test_failing_subscriber_does_not_fail_the_committed_call(chain, vault):
    seen = []

    def boom(_ev):
        raise RuntimeError("indexer bug")

    chain.events.subscribe(boom)
    chain.events.subscribe(seen.append)

    assert chain.transact(BOB, vault.address, "deposit", value=7) == 107
    assert chain.balance_of(vault.address) == 107
    assert [ev.name for ev in seen] == ["Deposited"]
