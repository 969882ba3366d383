"""
execution.config — runtime configuration for the quiz settlement ledger.

This module centralizes knobs for:
  • Chain identity (chain id, optional fixed genesis time for replayable runs)
  • Logging (level and renderer)
  • Metrics (enable/disable Prometheus collection)
  • Limits (maximum page size for paginated registry reads)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box. Protocol constants (the deployment fee and the
24-hour quiz window) live with the contracts and are deliberately absent here.

Environment variables (all optional):
  QUIZCHAIN_CHAIN_ID          -> integer chain id (default: 84532, Base Sepolia)
  QUIZCHAIN_LOG_LEVEL         -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  QUIZCHAIN_LOG_FORMAT        -> json|console (default: json)
  QUIZCHAIN_METRICS_ENABLED   -> 0/1/true/false (default: 1)
  QUIZCHAIN_MAX_PAGE_SIZE     -> integer > 0 (default: 500)
  QUIZCHAIN_START_TIME        -> Unix seconds for a ManualClock genesis (default: unset)

Programmatic usage:
    from execution.config import get_config
    cfg = get_config()
    if cfg.metrics_enabled:
        ...
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMATS = {"json", "console"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    # Be forgiving: non-empty → True, empty → default
    return bool(v) if v != "" else default


def _int_value(raw: Union[str, int, None], *, name: str, default: Optional[int]) -> Optional[int]:
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return default
    try:
        return int(str(raw).strip(), 0) if isinstance(raw, str) else int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class ExecutionConfig:
    chain_id: int = 84532
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_enabled: bool = True
    max_page_size: int = 500
    start_time: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate(cfg: ExecutionConfig) -> ExecutionConfig:
    if cfg.chain_id <= 0:
        raise ValueError("chain_id must be > 0")
    if cfg.log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
    if cfg.log_format not in _LOG_FORMATS:
        raise ValueError(f"log_format must be one of {sorted(_LOG_FORMATS)}")
    if cfg.max_page_size <= 0:
        raise ValueError("max_page_size must be > 0")
    if cfg.start_time is not None and cfg.start_time < 0:
        raise ValueError("start_time must be ≥ 0")
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool, None]]] = None,
) -> ExecutionConfig:
    """
    Build an ExecutionConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'chain_id', 'log_level', 'log_format', 'metrics_enabled',
          'max_page_size', 'start_time'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    chain_id = _int_value(
        overrides.get("chain_id", env.get("QUIZCHAIN_CHAIN_ID")),
        name="chain_id",
        default=84532,
    )
    log_level = str(overrides.get("log_level", env.get("QUIZCHAIN_LOG_LEVEL", "INFO"))).strip().upper()
    log_format = str(overrides.get("log_format", env.get("QUIZCHAIN_LOG_FORMAT", "json"))).strip().lower()
    if "metrics_enabled" in overrides:
        metrics_enabled = bool(overrides["metrics_enabled"])
    else:
        metrics_enabled = _bool_env(env.get("QUIZCHAIN_METRICS_ENABLED"), True)
    max_page_size = _int_value(
        overrides.get("max_page_size", env.get("QUIZCHAIN_MAX_PAGE_SIZE")),
        name="max_page_size",
        default=500,
    )
    start_time = _int_value(
        overrides.get("start_time", env.get("QUIZCHAIN_START_TIME")),
        name="start_time",
        default=None,
    )

    return _validate(
        ExecutionConfig(
            chain_id=chain_id,  # type: ignore[arg-type]
            log_level=log_level,
            log_format=log_format,
            metrics_enabled=metrics_enabled,
            max_page_size=max_page_size,  # type: ignore[arg-type]
            start_time=start_time,
        )
    )


@lru_cache(maxsize=1)
def get_config() -> ExecutionConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def summary(cfg: Optional[ExecutionConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the ledger knobs.
    """
    cfg = cfg or get_config()
    start = "wall" if cfg.start_time is None else str(cfg.start_time)
    return (
        "quizchain{"
        f"chain_id={cfg.chain_id}, "
        f"log={cfg.log_level}/{cfg.log_format}, "
        f"metrics={int(cfg.metrics_enabled)}, "
        f"page={cfg.max_page_size}, "
        f"start={start}"
        "}"
    )


__all__ = [
    "ExecutionConfig",
    "load_config",
    "get_config",
    "summary",
]
