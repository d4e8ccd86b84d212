"""Build an ``Aggregator`` from a ``FeedProfile`` and runtime settings."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import httpx

from ffusion.benchmarks import BenchmarkTable, default_benchmarks, load_benchmarks
from ffusion.config import FusionSettings
from ffusion.config_loader import FeedProfile, FeedSpec
from ffusion.errors import SourceUnreadable
from ffusion.identity import IdentityStore
from ffusion.ingest import (
    AdpReader,
    DefenseTable,
    DefenseVsPositionReader,
    InMemoryNewsStore,
    MarketShareReader,
    NewsReader,
    ProjectionReader,
    RedZoneReader,
    ScheduleReader,
    ScheduleTable,
    SeasonStatsReader,
    file_fetcher,
    http_fetcher,
)
from ffusion.merge import SourcePriority

from .service import Aggregator, SourceFeed


logger = logging.getLogger(__name__)


def _reader_for(spec: FeedSpec):
    if spec.kind == "season_stats":
        return SeasonStatsReader(spec.source_id)
    if spec.kind == "adp":
        return AdpReader(spec.source_id)
    if spec.kind == "red_zone":
        return RedZoneReader(spec.source_id, spec.position or "")
    if spec.kind == "projections":
        return ProjectionReader(spec.source_id)
    return MarketShareReader(spec.source_id, spec.position or "")


def feed_from_spec(spec: FeedSpec, client: Optional[httpx.AsyncClient] = None) -> SourceFeed:
    if spec.url:
        if client is None:
            raise ValueError(f"{spec.source_id}: an HTTP client is required for url feeds")
        fetch = http_fetcher(spec.source_id, spec.url, client)
    else:
        fetch = file_fetcher(spec.source_id, Path(spec.path or ""))
    return SourceFeed(
        source_id=spec.source_id,
        category=spec.category,
        reader=_reader_for(spec),
        fetch=fetch,
        weekly=spec.kind == "season_stats",
        week_scoped=spec.kind == "projections",
    )


async def _read_optional(path: Optional[str], parse, label: str):
    if not path:
        return None
    try:
        payload = await file_fetcher(label, Path(path))()
        return parse(payload)
    except SourceUnreadable as exc:
        logger.warning("Optional %s unavailable: %s", label, exc.reason)
        return None


def _benchmarks(profile: FeedProfile, settings: FusionSettings) -> BenchmarkTable:
    path = settings.benchmarks_path or (Path(profile.benchmarks) if profile.benchmarks else None)
    if path is None:
        return default_benchmarks()
    return load_benchmarks(path)


async def build_aggregator(
    profile: FeedProfile,
    *,
    settings: Optional[FusionSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
    store: Optional[IdentityStore] = None,
) -> Aggregator:
    settings = settings or FusionSettings.from_env()
    schedule: Optional[ScheduleTable] = await _read_optional(
        profile.schedule, ScheduleReader().load_table, "schedule"
    )
    defenses: Optional[DefenseTable] = await _read_optional(
        profile.defense_vs_position, DefenseVsPositionReader().load_table, "defense_vs_position"
    )
    news_result = await _read_optional(profile.news, NewsReader().parse, "news")
    news = InMemoryNewsStore(news_result.records) if news_result is not None else None

    feeds = [feed_from_spec(spec, client) for spec in profile.feeds]
    order = list(settings.source_priority) or list(profile.source_priority) or [feed.source_id for feed in feeds]
    return Aggregator(
        feeds,
        store=store,
        benchmarks=_benchmarks(profile, settings),
        priority=SourcePriority(order),
        schedule=schedule,
        defenses=defenses,
        news=news,
        limiter=asyncio.Semaphore(settings.concurrency),
        cache_ttl=settings.cache_ttl,
        required_categories=profile.required_categories,
    )
