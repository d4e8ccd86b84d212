"""Matchup context and situational signals for a merged player."""

from __future__ import annotations

import logging
import re
import statistics
from typing import Dict, Iterable, List, Optional, Tuple

from ffusion.ingest.schedule import DefenseTable, ScheduleTable
from ffusion.models import (
    BYE_OPPONENT,
    UNKNOWN_OPPONENT,
    MatchupContext,
    NewsItem,
    PlayerRecord,
    SituationalSignals,
)


logger = logging.getLogger(__name__)

PRIMARY_RED_ZONE_PCT = 25.0
SECONDARY_RED_ZONE_PCT = 10.0

_INJURY_STATUS = re.compile(r"\b(out|doubtful|questionable|probable|limited)\b", re.IGNORECASE)


def rate_difficulty(allowed: Optional[float], distribution: List[float]) -> str:
    """Rank points allowed against every defense: stingy is hard, generous is easy."""

    if allowed is None or len(distribution) < 2:
        return "unrated"
    p25, _, p75 = statistics.quantiles(distribution, n=4, method="inclusive")
    if allowed <= p25:
        return "hard"
    if allowed > p75:
        return "easy"
    return "neutral"


def injury_status(news: Iterable[NewsItem]) -> Optional[str]:
    """Status word from the newest medium or high impact injury item."""

    for item in news:
        if item.category != "injury" or item.impact == "low":
            continue
        match = _INJURY_STATUS.search(f"{item.headline} {item.body}")
        if match:
            return match.group(1).title()
    return None


def red_zone_role(stats: Dict[str, float]) -> Optional[str]:
    share = stats.get("red_zone_attempt_pct")
    if share is None:
        return None
    if share >= PRIMARY_RED_ZONE_PCT:
        return "primary"
    if share >= SECONDARY_RED_ZONE_PCT:
        return "secondary"
    return "limited"


class ContextBuilder:
    """Builds ``MatchupContext`` values, cached per (team, week, position)."""

    def __init__(self, schedule: Optional[ScheduleTable] = None, defenses: Optional[DefenseTable] = None):
        self.schedule = schedule
        self.defenses = defenses
        self._cache: Dict[Tuple[str, int, str], MatchupContext] = {}

    def build_context(
        self,
        record: PlayerRecord,
        week: int,
        schedule: Optional[ScheduleTable] = None,
    ) -> MatchupContext:
        table = schedule if schedule is not None else self.schedule
        team = record.team or record.identity.team
        key = (team, week, record.position)
        cacheable = table is self.schedule
        if cacheable and key in self._cache:
            return self._cache[key]

        context = self._lookup(team, week, record.position, table)
        if cacheable:
            self._cache[key] = context
        return context

    def _lookup(self, team: str, week: int, position: str, table: Optional[ScheduleTable]) -> MatchupContext:
        entry = table.lookup(team, week) if (table is not None and team) else None
        if entry is None:
            logger.debug("No schedule entry for %s week %s", team or "?", week)
            return MatchupContext(team=team, week=week, opponent=UNKNOWN_OPPONENT)
        if entry.is_bye:
            return MatchupContext(team=team, week=week, opponent=BYE_OPPONENT)

        difficulty = "unrated"
        if self.defenses is not None:
            difficulty = rate_difficulty(
                self.defenses.allowed(entry.opponent, position),
                self.defenses.distribution(position),
            )
        return MatchupContext(
            team=team,
            week=week,
            opponent=entry.opponent,
            is_home=entry.is_home,
            difficulty=difficulty,
        )

    def build_signals(self, record: PlayerRecord, news: Iterable[NewsItem] = ()) -> SituationalSignals:
        items = list(news)
        flags = sorted({item.category for item in items if item.impact == "high"})
        bye = record.stats.get("bye_week")
        return SituationalSignals(
            injury_status=injury_status(items),
            red_zone_role=red_zone_role(record.stats),
            news_flags=flags,
            bye_week=int(bye) if bye else None,
        )

    def clear(self) -> None:
        self._cache.clear()
