"""
Quiz settlement ledger — accounts, journaled state, call frames, block time, events.

This package exposes only lightweight metadata at import time. The runtime (`Chain`)
and state machinery should be imported explicitly from their subpackages.
"""

from .version import __version__, version_metadata

__all__ = ["__version__", "version_metadata"]
