"""Environment driven runtime settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

_CONCURRENCY_ENV = "FFUSION_CONCURRENCY"
_CACHE_TTL_ENV = "FFUSION_CACHE_TTL"
_HTTP_TIMEOUT_ENV = "FFUSION_HTTP_TIMEOUT"
_PRIORITY_ENV = "FFUSION_SOURCE_PRIORITY"
_BENCHMARKS_ENV = "FFUSION_BENCHMARKS_PATH"
_PROFILE_ENV = "FFUSION_PROFILE"

_CONCURRENCY_DEFAULT = 4
_CACHE_TTL_DEFAULT = 30 * 60.0
_HTTP_TIMEOUT_DEFAULT = 15.0


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    return Path(raw) if raw else None


@dataclass(frozen=True)
class FusionSettings:
    concurrency: int = _CONCURRENCY_DEFAULT
    cache_ttl: float = _CACHE_TTL_DEFAULT
    http_timeout: float = _HTTP_TIMEOUT_DEFAULT
    source_priority: Tuple[str, ...] = field(default_factory=tuple)
    benchmarks_path: Optional[Path] = None
    profile_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "FusionSettings":
        return cls(
            concurrency=_env_int(_CONCURRENCY_ENV, _CONCURRENCY_DEFAULT, min_value=1),
            cache_ttl=_env_float(_CACHE_TTL_ENV, _CACHE_TTL_DEFAULT, clamp_min=0.0),
            http_timeout=_env_float(_HTTP_TIMEOUT_ENV, _HTTP_TIMEOUT_DEFAULT, clamp_min=1.0),
            source_priority=_env_list(_PRIORITY_ENV),
            benchmarks_path=_env_path(_BENCHMARKS_ENV),
            profile_path=_env_path(_PROFILE_ENV),
        )
