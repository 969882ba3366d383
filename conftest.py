"""
Repository-wide pytest setup: stable environment defaults for the ledger.

Tests never read real wall-clock time through the config; chains built in
fixtures get an explicit ManualClock.
"""
import os

import pytest

os.environ.setdefault("TZ", "UTC")
os.environ.setdefault("QUIZCHAIN_CHAIN_ID", "31337")
os.environ.setdefault("QUIZCHAIN_LOG_LEVEL", "WARNING")
os.environ.setdefault("QUIZCHAIN_LOG_FORMAT", "console")
os.environ.setdefault("QUIZCHAIN_METRICS_ENABLED", "1")


@pytest.fixture(autouse=True)
def _fresh_config():
    """Drop the cached config around each test so env tweaks don't leak."""
    from execution.config import get_config

    get_config.cache_clear()
    yield
    get_config.cache_clear()
