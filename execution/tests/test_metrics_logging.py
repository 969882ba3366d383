import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from execution import metrics
from execution.config import get_config
from execution.errors import Revert
from execution.logging import bind_call_context, clear_call_context, get_logger, setup_logging
from execution.runtime.chain import ABI_ATTR, AbiEntry, Chain
from execution.runtime.env import ManualClock
from execution.types.address import address_from_label

ALICE = address_from_label("alice")


def _external(fn):
    setattr(fn, ABI_ATTR, AbiEntry(kind="external"))
    return fn


def _sample(name, **labels):
    return metrics.get_registry().get_sample_value(name, labels) or 0.0


class Gate:
    def __init__(self, chain, address):
        self.chain = chain
        self.address = address

    def constructor(self):
        pass

    @_external
    def open(self, ok):
        if not ok:
            raise Revert("Gate: closed")
        return True


# ===================================================
# Metrics
# ===================================================

def test_calls_are_counted_by_result():
    chain = Chain(ManualClock(1_000))
    gate = chain.deploy(Gate, sender=ALICE)
    ok0 = _sample("quizchain_calls_total", contract="Gate", method="open", result="success")
    rv0 = _sample("quizchain_calls_total", contract="Gate", method="open", result="revert")

    chain.transact(ALICE, gate.address, "open", True)
    try:
        chain.transact(ALICE, gate.address, "open", False)
    except Revert:
        pass

    assert _sample("quizchain_calls_total", contract="Gate", method="open", result="success") == ok0 + 1
    assert _sample("quizchain_calls_total", contract="Gate", method="open", result="revert") == rv0 + 1
    assert _sample("quizchain_call_seconds_count", contract="Gate", method="open") >= 2


def test_payouts_and_deployments_counted():
    p0 = _sample("quizchain_payout_wei_total", kind="reward")
    d0 = _sample("quizchain_deployments_total", contract_type="QuizEscrow")
    metrics.observe_payout(35, kind="reward")
    metrics.observe_payout(0, kind="reward")
    metrics.observe_deployment("QuizEscrow")
    assert _sample("quizchain_payout_wei_total", kind="reward") == p0 + 35
    assert _sample("quizchain_deployments_total", contract_type="QuizEscrow") == d0 + 1
    assert b"quizchain_payout_wei_total" in metrics.generate_latest_text()


def test_disabled_metrics_record_nothing(monkeypatch):
    monkeypatch.setenv("QUIZCHAIN_METRICS_ENABLED", "0")
    get_config.cache_clear()
    before = _sample("quizchain_deployments_total", contract_type="Off")
    metrics.observe_deployment("Off")
    with metrics.time_call(contract="Off", method="x") as timer:
        pass
    assert timer.h is None
    assert _sample("quizchain_deployments_total", contract_type="Off") == before


# ===================================================
# Logging
# ===================================================

@pytest.fixture()
def verbose_logs():
    saved = structlog.get_config()
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG))
    yield
    structlog.configure(**saved)


def test_call_outcomes_are_logged(verbose_logs):
    chain = Chain(ManualClock(1_000))
    gate = chain.deploy(Gate, sender=ALICE)
    with capture_logs() as logs:
        try:
            chain.transact(ALICE, gate.address, "open", False)
        except Revert:
            pass
    reverted = [e for e in logs if e["event"] == "call_reverted"]
    assert reverted and reverted[0]["reason"] == "Gate: closed"
    assert reverted[0]["code"] == "REVERT"


def test_call_context_is_cleared_after_call():
    chain = Chain(ManualClock(1_000))
    gate = chain.deploy(Gate, sender=ALICE)
    chain.transact(ALICE, gate.address, "open", True)
    assert "method" not in structlog.contextvars.get_contextvars()


def test_bind_and_clear_context():
    bind_call_context(method="record_result")
    assert structlog.contextvars.get_contextvars()["method"] == "record_result"
    clear_call_context()
    assert structlog.contextvars.get_contextvars() == {}
    assert get_logger(__name__) is not None


def test_setup_logging_renders_json_with_redaction(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    saved_config = structlog.get_config()
    try:
        setup_logging(service_name="quiz-bot", level="INFO", log_format="json")
        get_logger("quiz.test").info("fees_withdrawn", amount=10**15, api_key="abc")
        line = capsys.readouterr().err.strip().splitlines()[-1]
    finally:
        structlog.configure(**saved_config)
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)

    record = json.loads(line)
    assert record["event"] == "fees_withdrawn"
    assert record["service"] == "quiz-bot"
    assert record["logger"] == "quiz.test"
    assert record["level"] == "info"
    assert record["api_key"] == "***"
    assert record["amount"] == 10**15


def test_configured_level_applies_before_setup(monkeypatch, capsys):
    saved = structlog.get_config()
    monkeypatch.setenv("QUIZCHAIN_LOG_LEVEL", "WARNING")
    get_config.cache_clear()
    structlog.reset_defaults()
    try:
        log = get_logger("quiz.lib")
        log.info("quiet_line")
        log.warning("loud_line")
        out = capsys.readouterr().out
    finally:
        structlog.configure(**saved)

    assert "loud_line" in out
    assert "quiet_line" not in out
