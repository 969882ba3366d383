"""
execution.runtime.chain — the in-process ledger that runs quiz contracts.

A `Chain` owns the journaled state (accounts + contract storage), the event sink
and block time, and executes *calls* against contract objects with ledger
semantics:

- Every external call, top-level or contract→contract, runs in its own journal
  checkpoint. Attached value moves from caller to callee before the callee body
  runs. If the body raises, the checkpoint is reverted (storage, balances, nonces,
  created accounts) together with every event emitted inside the frame, and the
  same exception propagates to the caller.
- A top-level call that returns normally is committed: the journal is flushed
  to the base state and pending events are published to subscribers.
- Side effects that must only happen for settled calls (payout metrics,
  success logs) are queued with `after_commit` and run once the top-level call
  has committed. A frame that reverts drops whatever it queued.
- One reentrant lock serializes every call and storage read. Concurrent
  submissions from several threads are therefore accepted in lock order; the
  second of two racing `record_result` calls for one participant sees the first
  one's effects and is rejected by the escrow's own guard.

Contracts are plain Python classes (see `contracts.stdlib.base.Contract`). The
chain only needs three things from them:

- the class, registered under a code hash derived from its import path;
- methods carrying an ``__abi__`` marker (external / view, payable or not);
- a ``constructor(*args)`` method run once at creation.

Typical use
-----------
    chain = Chain(ManualClock(1_725_000_000))
    chain.fund(alice, 10**18)
    factory = chain.deploy(MotherFactory, sender=owner)
    chain.transact(owner, factory.address, "initialize", bot)
    factory.connect(alice).deploy_contract("QuizEscrow", params, value=fee + funding)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from execution.config import ExecutionConfig, get_config
from execution.errors import ExecError, InvalidAccess, InvalidArgument, Revert
from execution.logging import bind_call_context, clear_call_context, get_logger
from execution.metrics import observe_call, time_call
from execution.runtime.env import BlockTime, Clock, ManualClock, SystemClock
from execution.runtime.event_sink import EventSink
from execution.state.accounts import Account, compute_code_hash
from execution.state.journal import Journal
from execution.types.address import (
    AddressLike,
    address_bytes,
    derive_contract_address,
    to_address,
)
from execution.types.context import CallContext
from execution.types.events import LogEvent

log = get_logger(__name__)

ABI_ATTR = "__abi__"


@dataclass(frozen=True)
class AbiEntry:
    """
    Marker attached to contract methods callable from outside the contract.

    kind:    "external" (state-changing, runs in a frame) or "view" (read-only)
    payable: whether the method may receive a nonzero value
    """
    kind: str = "external"
    payable: bool = False

    @property
    def is_view(self) -> bool:
        return self.kind == "view"


def abi_entry(fn: Any) -> Optional[AbiEntry]:
    entry = getattr(fn, ABI_ATTR, None)
    return entry if isinstance(entry, AbiEntry) else None


def code_id(cls: type) -> str:
    """Stable identity of a contract class (its import path)."""
    return f"{cls.__module__}:{cls.__qualname__}"


class Chain:
    """
    Single-node ledger with journaled state and nested call frames.

    Parameters
    ----------
    clock : Clock, optional
        Source of block time. Defaults to a `ManualClock` at
        ``config.start_time`` when that is set, otherwise a `SystemClock`.
    config : ExecutionConfig, optional
        Defaults to the cached environment config.
    """

    def __init__(self, clock: Optional[Clock] = None, *, config: Optional[ExecutionConfig] = None) -> None:
        self.config = config or get_config()
        if clock is None:
            clock = ManualClock(self.config.start_time) if self.config.start_time is not None else SystemClock()
        self.clock = clock
        self.block_time = BlockTime(clock)
        self.journal = Journal()
        self.events = EventSink()
        self._lock = threading.RLock()
        self._frames: List[CallContext] = []
        self._after_commit: List[Callable[[], None]] = []
        self._code: Dict[bytes, type] = {}
        self._instances: Dict[bytes, Any] = {}

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def chain_id(self) -> int:
        return self.config.chain_id

    @property
    def current_frame(self) -> Optional[CallContext]:
        return self._frames[-1] if self._frames else None

    def now(self) -> int:
        """Block time: the running call's timestamp, else a fresh sample."""
        frame = self.current_frame
        if frame is not None:
            return frame.timestamp
        return self.block_time.now()

    def get_account(self, address: AddressLike) -> Account:
        with self._lock:
            acc = self.journal.get_account(address_bytes(address))
            return acc.copy() if acc is not None else Account()

    def balance_of(self, address: AddressLike) -> int:
        with self._lock:
            return self.journal.balance_of(address_bytes(address))

    def nonce_of(self, address: AddressLike) -> int:
        return self.get_account(address).nonce

    def is_contract(self, address: AddressLike) -> bool:
        with self._lock:
            acc = self.journal.get_account(address_bytes(address))
            return acc is not None and acc.is_contract and acc.code_hash in self._code

    def total_supply(self) -> int:
        with self._lock:
            return self.journal.total_supply()

    # ------------------------------------------------------------------ #
    # Genesis / faucet
    # ------------------------------------------------------------------ #

    def fund(self, address: AddressLike, amount: int) -> int:
        """Credit `amount` wei out of thin air. The only source of new value."""
        if amount < 0:
            raise InvalidArgument("fund amount must be non-negative", data={"amount": amount})
        with self._lock:
            if self._frames:
                raise InvalidAccess("cannot fund while a call is executing", op="fund")
            self.journal.begin()
            try:
                acc = self.journal.ensure_account_for_write(address_bytes(address))
                acc.credit(amount)
            except BaseException:
                self.journal.revert()
                raise
            self.journal.commit()
            self.journal.flush()
            log.debug("account_funded", address=to_address(address), amount=amount, balance=acc.balance)
            return acc.balance

    # ------------------------------------------------------------------ #
    # Contract code registry
    # ------------------------------------------------------------------ #

    def register_class(self, cls: type) -> bytes:
        code_hash = compute_code_hash(code_id(cls))
        known = self._code.get(code_hash)
        if known is not None and known is not cls:
            raise InvalidAccess("code hash collision", op="register_class", data={"class": code_id(cls)})
        self._code[code_hash] = cls
        return code_hash

    def at(self, address: AddressLike) -> Any:
        """
        Contract object living at `address`.

        Raises InvalidAccess if the (current, journaled) account holds no code.
        """
        addr = to_address(address)
        raw = address_bytes(addr)
        with self._lock:
            acc = self.journal.get_account(raw)
            cls = self._code.get(acc.code_hash) if acc is not None and acc.is_contract else None
            if cls is None:
                raise InvalidAccess("no contract at address", op="at", address=addr)
            inst = self._instances.get(raw)
            if type(inst) is not cls:
                inst = cls(self, addr)
                self._instances[raw] = inst
            return inst

    # ------------------------------------------------------------------ #
    # Public entrypoints
    # ------------------------------------------------------------------ #

    def deploy(self, cls: Type[Any], *args: Any, sender: AddressLike, value: int = 0) -> Any:
        """Create a contract from an externally owned account. Returns the contract object."""
        sender_addr = to_address(sender)
        with self._lock:
            if self._frames:
                raise InvalidAccess("top-level deploy inside a running call", op="deploy")
            addr = self._execute_top(
                lambda ts: self._prepare_create(sender_addr, cls, args, value, parent=None, timestamp=ts),
                contract=cls.__name__,
                method="constructor",
            )
            return self.at(addr)

    def transact(self, sender: AddressLike, address: AddressLike, method: str, *args: Any, value: int = 0) -> Any:
        """
        Run one external call from an externally owned account.

        Views may be invoked this way too; they run without a frame and leave
        no trace.
        """
        sender_addr = to_address(sender)
        with self._lock:
            if self._frames:
                raise InvalidAccess("top-level call inside a running call", op="transact")
            inst = self.at(address)
            fn, entry = self._resolve(inst, method)
            self._check_value(entry, value, inst, method)
            if entry.is_view:
                return fn(*args)
            def prepare(ts: int) -> Tuple[CallContext, Callable[[], Any]]:
                ctx = CallContext(sender=sender_addr, to=inst.address, value=value, timestamp=ts, method=method)
                return ctx, lambda: fn(*args)

            return self._execute_top(prepare, contract=type(inst).__name__, method=method)

    def invoke(self, sender: AddressLike, address: AddressLike, method: str, args: Sequence[Any] = (),
               value: int = 0) -> Any:
        """
        Route a call as top-level or nested depending on whether a frame is
        running. Used by contract proxies.
        """
        with self._lock:
            if self._frames:
                return self.call_from(sender, address, method, args, value=value)
            return self.transact(sender, address, method, *args, value=value)

    # ------------------------------------------------------------------ #
    # Contract → contract (nested frames)
    # ------------------------------------------------------------------ #

    def call_from(self, caller: AddressLike, address: AddressLike, method: str, args: Sequence[Any] = (),
                  *, value: int = 0) -> Any:
        frame = self._require_executing(caller, op="call")
        inst = self.at(address)
        fn, entry = self._resolve(inst, method)
        self._check_value(entry, value, inst, method)
        if entry.is_view:
            return fn(*args)
        ctx = frame.nested(sender=frame.to, to=inst.address, value=value, method=method)
        return self._run_frame(ctx, lambda: fn(*args))

    def create_from(self, caller: AddressLike, cls: Type[Any], args: Sequence[Any] = (), *, value: int = 0) -> str:
        frame = self._require_executing(caller, op="create")
        ctx, run = self._prepare_create(frame.to, cls, tuple(args), value, parent=frame, timestamp=frame.timestamp)
        return self._run_frame(ctx, run)

    def transfer_from(self, caller: AddressLike, to: AddressLike, amount: int) -> None:
        """Move `amount` wei out of the executing contract."""
        frame = self._require_executing(caller, op="transfer")
        if amount < 0:
            raise InvalidArgument("transfer amount must be non-negative", data={"amount": amount})
        if amount:
            self._move(frame.to, to_address(to), amount)

    def emit(self, caller: AddressLike, name: str, args: Dict[str, Any]) -> None:
        frame = self._require_executing(caller, op="emit")
        self.events.emit(LogEvent(address=frame.to, name=name, args=args))

    def after_commit(self, caller: AddressLike, fn: Callable[[], None]) -> None:
        """Queue `fn` to run once the enclosing top-level call commits."""
        self._require_executing(caller, op="after_commit")
        self._after_commit.append(fn)

    # ------------------------------------------------------------------ #
    # Storage (contracts address their own slots)
    # ------------------------------------------------------------------ #

    def storage_get(self, address: AddressLike, key: bytes) -> bytes:
        with self._lock:
            return self.journal.storage_get(address_bytes(address), key)

    def storage_set(self, address: AddressLike, key: bytes, value: bytes) -> None:
        with self._lock:
            self._require_executing(address, op="storage_set")
            self.journal.storage_set(address_bytes(address), key, value)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require_executing(self, caller: AddressLike, *, op: str) -> CallContext:
        frame = self.current_frame
        if frame is None:
            raise InvalidAccess("no call is executing", op=op, address=to_address(caller))
        if address_bytes(frame.to) != address_bytes(caller):
            raise InvalidAccess("only the executing contract may act", op=op, address=to_address(caller))
        return frame

    @staticmethod
    def _resolve(inst: Any, method: str) -> Tuple[Callable[..., Any], AbiEntry]:
        attr = getattr(type(inst), method, None) if not method.startswith("_") else None
        entry = abi_entry(attr)
        if entry is None:
            raise InvalidAccess(
                "method is not externally callable",
                op="call",
                address=inst.address,
                data={"method": method},
            )
        return getattr(inst, method), entry

    @staticmethod
    def _check_value(entry: AbiEntry, value: int, inst: Any, method: str) -> None:
        if value < 0:
            raise InvalidArgument("value must be non-negative", data={"value": value})
        if value and not entry.payable:
            raise InvalidArgument(
                f"{type(inst).__name__}.{method} is not payable",
                data={"method": method, "value": value},
            )

    def _prepare_create(
        self,
        creator: str,
        cls: Type[Any],
        args: Tuple[Any, ...],
        value: int,
        *,
        parent: Optional[CallContext],
        timestamp: int,
    ) -> Tuple[CallContext, Callable[[], str]]:
        ctor = getattr(cls, "constructor", None)
        entry = abi_entry(ctor) or AbiEntry(kind="external", payable=False)
        if value < 0:
            raise InvalidArgument("value must be non-negative", data={"value": value})
        if value and not entry.payable:
            raise InvalidArgument(f"{cls.__name__} constructor is not payable", data={"value": value})

        code_hash = self.register_class(cls)
        creator_raw = address_bytes(creator)
        acc = self.journal.get_account(creator_raw)
        nonce = acc.nonce if acc is not None else 0
        new_addr = derive_contract_address(creator, nonce)

        if parent is None:
            ctx = CallContext(sender=creator, to=new_addr, value=value, timestamp=timestamp, method="constructor")
        else:
            ctx = parent.nested(sender=creator, to=new_addr, value=value, method="constructor")

        def run() -> str:
            self.journal.ensure_account_for_write(creator_raw).increment_nonce()
            self.journal.create_account(address_bytes(new_addr), code_hash=code_hash)
            self.at(new_addr).constructor(*args)
            log.debug("contract_created", contract=cls.__name__, address=new_addr, creator=creator, value=value)
            return new_addr

        return ctx, run

    def _move(self, frm: str, to: str, amount: int) -> None:
        src = self.journal.ensure_account_for_write(address_bytes(frm))
        src.debit(amount)
        self.journal.ensure_account_for_write(address_bytes(to)).credit(amount)

    def _run_frame(self, ctx: CallContext, body: Callable[[], Any]) -> Any:
        """Execute `body` inside a checkpoint; revert state and events on any exception."""
        self.journal.begin()
        mark = self.events.mark()
        queued = len(self._after_commit)
        self._frames.append(ctx)
        try:
            if ctx.value:
                self._move(ctx.sender, ctx.to, ctx.value)
            result = body()
        except BaseException:
            self._frames.pop()
            self.journal.revert()
            self.events.rollback(mark)
            del self._after_commit[queued:]
            raise
        self._frames.pop()
        self.journal.commit()
        return result

    def _execute_top(
        self,
        prepare: Callable[[int], Tuple[CallContext, Callable[[], Any]]],
        *,
        contract: str,
        method: str,
    ) -> Any:
        ctx, body = prepare(self.block_time.now())
        bind_call_context(sender=ctx.sender, contract=ctx.to, method=method)
        try:
            with time_call(contract=contract, method=method):
                try:
                    result = self._run_frame(ctx, body)
                except Revert as exc:
                    observe_call(contract=contract, method=method, result="revert")
                    log.info("call_reverted", code=exc.code, reason=exc.reason)
                    raise
                except ExecError as exc:
                    observe_call(contract=contract, method=method, result="error")
                    log.warning("call_failed", code=exc.code, error=exc.message)
                    raise
                except Exception as exc:
                    observe_call(contract=contract, method=method, result="error")
                    log.warning("call_failed", code=type(exc).__name__, error=str(exc))
                    raise
                self.journal.flush()
                committed = self.events.commit()
            observe_call(contract=contract, method=method, result="success")
            log.debug("call_committed", value=ctx.value, events=len(committed), timestamp=ctx.timestamp)
            self._run_after_commit()
            return result
        finally:
            self._after_commit.clear()
            clear_call_context("sender", "contract", "method")

    def _run_after_commit(self) -> None:
        hooks, self._after_commit = self._after_commit, []
        for fn in hooks:
            try:
                fn()
            except Exception:
                log.exception("after_commit_failed", hook=getattr(fn, "__qualname__", repr(fn)))


__all__ = ["Chain", "AbiEntry", "ABI_ATTR", "abi_entry", "code_id"]
