"""Source readers that turn raw feeds into typed record sets."""

from .common import ParseResult, TableReader, canonical_team, coerce_number
from .fetch import Fetcher, file_fetcher, http_fetcher
from .news import InMemoryNewsStore, NewsReader, NewsStore, assess_impact, classify_news
from .projections import PROJECTION_STAT_MAP, ProjectionReader
from .research import AdpReader, MarketShareReader, RedZoneReader
from .schedule import (
    DefenseEntry,
    DefenseTable,
    DefenseVsPositionReader,
    ScheduleEntry,
    ScheduleReader,
    ScheduleTable,
)
from .stats import NFLVERSE_STATS_URL, SeasonStatsReader, season_totals

__all__ = [
    "AdpReader",
    "DefenseEntry",
    "DefenseTable",
    "DefenseVsPositionReader",
    "Fetcher",
    "InMemoryNewsStore",
    "MarketShareReader",
    "NFLVERSE_STATS_URL",
    "NewsReader",
    "NewsStore",
    "PROJECTION_STAT_MAP",
    "ParseResult",
    "ProjectionReader",
    "RedZoneReader",
    "ScheduleEntry",
    "ScheduleReader",
    "ScheduleTable",
    "SeasonStatsReader",
    "TableReader",
    "assess_impact",
    "canonical_team",
    "classify_news",
    "coerce_number",
    "file_fetcher",
    "http_fetcher",
    "season_totals",
]
