"""Weekly matchup context and situational signals."""

from .builder import ContextBuilder, injury_status, rate_difficulty, red_zone_role

__all__ = ["ContextBuilder", "injury_status", "rate_difficulty", "red_zone_role"]
