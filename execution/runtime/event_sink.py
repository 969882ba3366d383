"""
execution.runtime.event_sink — collect events, drop them on revert, publish on commit.

Contracts emit `LogEvent`s while a call runs. Those events are *pending* until the
top-level call commits:

- `mark()` returns the current pending position; the chain takes one per frame.
- `rollback(mark)` drops everything emitted after that position (the frame
  reverted, so its events never happened).
- `commit()` stamps pending events with (tx_index, log_index), appends them to
  the committed log, and notifies subscribers in emission order.

Subscribers are the off-chain side: indexers and the bot learn new escrow
addresses and result postings here. They only ever see committed events.
A subscriber that raises is logged and skipped; it cannot undo a committed call.

Typical use:
    sink = EventSink()
    sink.subscribe(indexer.on_event)
    m = sink.mark()
    sink.emit(LogEvent(address, "QuizCreated", {...}))
    sink.commit()            # or sink.rollback(m)
    sink.filter(name="QuizCreated")
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Optional

from execution.logging import get_logger
from execution.types.events import LogEvent

log = get_logger(__name__)

Subscriber = Callable[[LogEvent], None]


class EventSink:
    """
    Pending/committed event store for one chain.

    The chain serializes all mutating calls, so pending-buffer operations are
    only ever driven by one thread at a time; the lock guards the committed log
    and subscriber list against concurrent readers.
    """

    def __init__(self) -> None:
        self._pending: List[LogEvent] = []
        self._committed: List[LogEvent] = []
        self._subscribers: List[Subscriber] = []
        self._tx_count = 0
        self._lock = threading.Lock()

    # ------------------------ pending (in-flight) ------------------------

    def emit(self, event: LogEvent) -> int:
        """Append a pending event. Returns its position in the pending buffer."""
        self._pending.append(event)
        return len(self._pending) - 1

    def mark(self) -> int:
        return len(self._pending)

    def rollback(self, mark: int) -> int:
        """Drop pending events emitted after `mark`. Returns how many were dropped."""
        if mark < 0 or mark > len(self._pending):
            raise ValueError(f"invalid event mark {mark}")
        dropped = len(self._pending) - mark
        del self._pending[mark:]
        return dropped

    @property
    def pending(self) -> List[LogEvent]:
        return list(self._pending)

    # ------------------------ commit & publish ------------------------

    def commit(self) -> List[LogEvent]:
        """
        Stamp and publish all pending events as one committed call.
        Returns the stamped events (possibly empty).
        """
        with self._lock:
            tx_index = self._tx_count
            self._tx_count += 1
            stamped = [ev.with_position(tx_index, i) for i, ev in enumerate(self._pending)]
            self._pending.clear()
            self._committed.extend(stamped)
            subscribers = list(self._subscribers)

        for ev in stamped:
            for fn in subscribers:
                try:
                    fn(ev)
                except Exception:
                    log.exception("event_subscriber_failed", event_name=ev.name, address=ev.address)
        return stamped

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register a committed-event callback. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(fn)

        def _unsubscribe() -> None:
            with self._lock:
                if fn in self._subscribers:
                    self._subscribers.remove(fn)

        return _unsubscribe

    # ------------------------ queries ------------------------

    @property
    def logs(self) -> List[LogEvent]:
        with self._lock:
            return list(self._committed)

    def filter(self, *, address: Optional[str] = None, name: Optional[str] = None,
               tx_index: Optional[int] = None) -> List[LogEvent]:
        """Committed events matching every given criterion, in commit order."""
        with self._lock:
            items: Iterable[LogEvent] = list(self._committed)
        out = []
        for ev in items:
            if address is not None and ev.address.lower() != address.lower():
                continue
            if name is not None and ev.name != name:
                continue
            if tx_index is not None and ev.tx_index != tx_index:
                continue
            out.append(ev)
        return out

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._committed)


__all__ = ["EventSink", "Subscriber"]
