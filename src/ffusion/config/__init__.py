"""Configuration helpers for positions and runtime settings."""

from .positions import (
    LOWER_IS_BETTER_STATS,
    POSITIONS,
    PositionRules,
    canonical_position,
    get_position,
    is_lower_better,
    iter_positions,
)
from .settings import FusionSettings

__all__ = [
    "FusionSettings",
    "LOWER_IS_BETTER_STATS",
    "POSITIONS",
    "PositionRules",
    "canonical_position",
    "get_position",
    "is_lower_better",
    "iter_positions",
]
