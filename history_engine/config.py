"""Environment-driven defaults for history engines."""
from __future__ import annotations

import os
from typing import Optional

from history_engine.models import EngineConfig


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def _int_env(name: str) -> Optional[int]:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


def _float_env(name: str) -> Optional[float]:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


def config_from_env() -> EngineConfig:
    """Builds an EngineConfig; unset variables keep the model defaults."""
    overrides = {
        "max_stack_size": _int_env("HISTORY_MAX_STACK_SIZE"),
        "snapshot_interval": _int_env("HISTORY_SNAPSHOT_INTERVAL"),
        "compress_threshold": _int_env("HISTORY_COMPRESS_THRESHOLD"),
        "merge_window": _float_env("HISTORY_MERGE_WINDOW_MS"),
    }
    return EngineConfig(**{k: v for k, v in overrides.items() if v is not None})
