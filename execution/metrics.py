"""
execution.metrics — Prometheus counters & histograms for the quiz settlement ledger.

Design goals
------------
* Centralized registry: consumers can call `get_registry()` and `generate_latest_text()`
  to expose metrics via HTTP from whatever service embeds the ledger.
* Collection can be switched off with QUIZCHAIN_METRICS_ENABLED=0; helpers then
  return without touching the registry.
* Simple helpers: `observe_call(...)`, `time_call(...)`, `observe_payout(...)` and
  `observe_deployment(...)` cover the common paths.

Exposed metrics (names are prefixed with `quizchain_`):
  - calls_total{contract,method,result}  : Counter — external calls by outcome
  - call_seconds{contract,method}        : Histogram — wall time per top-level call
  - payout_wei_total{kind}               : Counter — wei moved out of escrows
  - deployments_total{contract_type}     : Counter — contracts deployed via the registry

Labels:
  - result ∈ {success, revert, error}
  - kind   ∈ {reward, refund, fees}
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from execution.config import get_config

# ------------------------------ configuration -------------------------------

_PREFIX = "quizchain_"

_CALL_SECONDS_BUCKETS = (
    0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0,
)


# ------------------------------ registry & ctor ------------------------------

_registry: Optional[CollectorRegistry] = None
_build_lock = threading.Lock()

# Metric singletons (bound during _build_metrics)
CALLS_TOTAL: Counter
CALL_SECONDS: Histogram
PAYOUT_WEI_TOTAL: Counter
DEPLOYMENTS_TOTAL: Counter


def set_registry(registry: CollectorRegistry) -> None:
    """
    Inject a custom CollectorRegistry (e.g., an app-global one shared across modules).
    Must be called before the first metric is recorded.
    """
    global _registry
    with _build_lock:
        if _registry is not None:
            return  # already initialized; callers should set registry early
        _registry = registry
        _build_metrics(registry)


def get_registry() -> CollectorRegistry:
    """
    Return the metrics registry, creating one on first use.
    """
    global _registry
    with _build_lock:
        if _registry is None:
            _registry = CollectorRegistry()
            _build_metrics(_registry)
        return _registry


def _build_metrics(reg: CollectorRegistry) -> None:
    """Instantiate metrics bound to `reg`. Called once per registry."""
    global CALLS_TOTAL, CALL_SECONDS, PAYOUT_WEI_TOTAL, DEPLOYMENTS_TOTAL

    CALLS_TOTAL = Counter(
        _PREFIX + "calls_total",
        "External contract calls executed (by contract, method and result).",
        labelnames=("contract", "method", "result"),
        registry=reg,
    )
    CALL_SECONDS = Histogram(
        _PREFIX + "call_seconds",
        "Wall time to execute a top-level call, including nested frames.",
        labelnames=("contract", "method"),
        buckets=_CALL_SECONDS_BUCKETS,
        registry=reg,
    )
    PAYOUT_WEI_TOTAL = Counter(
        _PREFIX + "payout_wei_total",
        "Wei transferred out of contracts (rewards, refunds to creators, fee withdrawals).",
        labelnames=("kind",),
        registry=reg,
    )
    DEPLOYMENTS_TOTAL = Counter(
        _PREFIX + "deployments_total",
        "Contracts deployed through the registry.",
        labelnames=("contract_type",),
        registry=reg,
    )


def _enabled() -> bool:
    return get_config().metrics_enabled


# ------------------------------ helpers -------------------------------------

def _norm_result(s: str) -> str:
    s = (s or "").strip().lower()
    if s in {"ok", "success", "s"}:
        return "success"
    if s in {"revert", "rv"}:
        return "revert"
    return "error"


def observe_call(*, contract: str, method: str, result: str) -> None:
    """
    Count one external call.

    Args:
        contract: contract class name (e.g. 'QuizEscrow')
        method:   method name invoked
        result:   logical outcome: {'success','revert','error'} (flexibly normalized)
    """
    if not _enabled():
        return
    get_registry()
    CALLS_TOTAL.labels(contract=contract, method=method, result=_norm_result(result)).inc()


def observe_payout(amount: int, *, kind: str = "reward") -> None:
    """Add `amount` wei to the payout counter. Zero amounts are not recorded."""
    if amount <= 0 or not _enabled():
        return
    get_registry()
    PAYOUT_WEI_TOTAL.labels(kind=kind).inc(amount)


def observe_deployment(contract_type: str) -> None:
    if not _enabled():
        return
    get_registry()
    DEPLOYMENTS_TOTAL.labels(contract_type=contract_type).inc()


@dataclass
class _TimerCtx:
    h: Optional[Histogram]
    labels: Dict[str, str]
    t0: float

    def stop(self) -> float:
        dt = max(0.0, time.perf_counter() - self.t0)
        if self.h is not None:
            self.h.labels(**self.labels).observe(dt)
        return dt

    # Context manager protocol
    def __enter__(self) -> "_TimerCtx":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def time_call(*, contract: str, method: str) -> _TimerCtx:
    """
    Context manager timing one top-level call.

    Example:
        with time_call(contract="QuizEscrow", method="record_result"):
            ...
    """
    hist: Optional[Histogram] = None
    if _enabled():
        get_registry()
        hist = CALL_SECONDS
    return _TimerCtx(
        h=hist,
        labels={"contract": contract, "method": method},
        t0=time.perf_counter(),
    )


# ------------------------------ exposition ----------------------------------

def generate_latest_text() -> bytes:
    """
    Return Prometheus exposition format for the current registry.
    Suitable for an ASGI/WSGI /metrics handler.
    """
    return generate_latest(get_registry())


__all__ = [
    "get_registry",
    "set_registry",
    "generate_latest_text",
    "observe_call",
    "observe_payout",
    "observe_deployment",
    "time_call",
    "CONTENT_TYPE_LATEST",
]
