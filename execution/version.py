"""
execution.version — semantic version string for the quiz settlement ledger.

This module is intentionally tiny and dependency-free so it can be imported very early
during process startup.

Usage:
    from execution.version import __version__, version_metadata
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "0.1.0"


@lru_cache(maxsize=1)
def version_metadata() -> Dict[str, str]:
    """
    Structured version info for logs / diagnostics.

    Keys:
        version  -> semantic version (from __version__)
        build    -> QUIZCHAIN_BUILD override if set (e.g. a container tag), else "local"
    """
    return {
        "version": __version__,
        "build": os.getenv("QUIZCHAIN_BUILD", "local").strip() or "local",
    }


__all__ = ["__version__", "version_metadata"]
