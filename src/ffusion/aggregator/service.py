"""Async orchestration of readers, resolver, merger, scoring and context."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    AsyncContextManager,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from ffusion.benchmarks import BenchmarkEngine, BenchmarkTable, default_benchmarks
from ffusion.config import canonical_position
from ffusion.context import ContextBuilder
from ffusion.errors import (
    AggregationError,
    MergeContractError,
    PlayerNotFound,
    SourceUnreadable,
)
from ffusion.identity import IdentityResolver, IdentityStore, normalize_name
from ffusion.ingest.common import ParseResult
from ffusion.ingest.fetch import Fetcher
from ffusion.ingest.news import NewsStore
from ffusion.ingest.schedule import DefenseTable, ScheduleTable
from ffusion.ingest.stats import season_totals
from ffusion.merge import SourcePriority, merge, order_records
from ffusion.models import (
    AggregationDiagnostics,
    GameLog,
    NewsItem,
    PlayerHint,
    PlayerIdentity,
    PlayerRecord,
    RawStatRecord,
    ScoreResult,
)


logger = logging.getLogger(__name__)

RECENT_GAMES = 5
NEWS_LIMIT = 5


class RecordReader(Protocol):
    def parse(self, payload: str | bytes) -> ParseResult[RawStatRecord]:
        ...


@dataclass(frozen=True)
class SourceFeed:
    """One feed: where to fetch it, how to parse it, which stat category it serves."""

    source_id: str
    category: str
    reader: RecordReader
    fetch: Fetcher
    weekly: bool = False
    week_scoped: bool = False


@dataclass(frozen=True)
class FeedSnapshot:
    source_id: str
    category: str
    loaded_at: float
    weekly: bool = False
    week_scoped: bool = False
    result: Optional[ParseResult[RawStatRecord]] = None
    error: Optional[str] = None
    by_name: Mapping[str, Tuple[RawStatRecord, ...]] = field(default_factory=dict)
    by_external: Mapping[str, Tuple[RawStatRecord, ...]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.result is not None


def _index(records: Iterable[RawStatRecord]) -> tuple[dict, dict]:
    by_name: Dict[str, List[RawStatRecord]] = defaultdict(list)
    by_external: Dict[str, List[RawStatRecord]] = defaultdict(list)
    for record in records:
        keys = set()
        for label in (record.name, record.display_name):
            if not label:
                continue
            try:
                keys.add(normalize_name(label))
            except ValueError:
                continue
        for key in keys:
            by_name[key].append(record)
        if record.external_id:
            by_external[record.external_id].append(record)
    return (
        {key: tuple(value) for key, value in by_name.items()},
        {key: tuple(value) for key, value in by_external.items()},
    )


class Aggregator:
    """Drives the pipeline for one player hint and week.

    Parsed feeds are cached for ``cache_ttl`` seconds and shared by concurrent
    calls. The identity store is the only shared mutable state.
    """

    def __init__(
        self,
        feeds: Sequence[SourceFeed],
        *,
        store: Optional[IdentityStore] = None,
        benchmarks: Optional[BenchmarkTable] = None,
        priority: Optional[SourcePriority] = None,
        schedule: Optional[ScheduleTable] = None,
        defenses: Optional[DefenseTable] = None,
        news: Optional[NewsStore] = None,
        limiter: Optional[AsyncContextManager] = None,
        cache_ttl: float = 30 * 60.0,
        required_categories: Iterable[str] = (),
    ):
        ids = [feed.source_id for feed in feeds]
        if len(ids) != len(set(ids)):
            raise ValueError("feed source ids must be unique")
        self.feeds = list(feeds)
        self.store = store if store is not None else IdentityStore()
        self.resolver = IdentityResolver(self.store)
        self.engine = BenchmarkEngine(benchmarks if benchmarks is not None else default_benchmarks())
        self.priority = priority or SourcePriority(ids)
        self.schedule = schedule
        self.context = ContextBuilder(schedule, defenses)
        self.news = news
        self.limiter = limiter
        self.cache_ttl = cache_ttl
        self.required_categories = tuple(required_categories)
        self._snapshots: Dict[str, FeedSnapshot] = {}

    # -- exposed operations -------------------------------------------------

    def resolve_identity(self, hint: PlayerHint) -> PlayerIdentity:
        return self.resolver.resolve(hint)

    def score(
        self,
        position: str,
        stat: str,
        value: float,
        games_played: float,
        lower_is_better: Optional[bool] = None,
    ) -> ScoreResult:
        return self.engine.score(position, stat, value, games_played, lower_is_better)

    async def aggregate(self, hint: PlayerHint, week: int) -> PlayerRecord:
        snapshots = await self.load_sources()
        self._check_required(snapshots)

        candidates = self._candidates(snapshots, hint)
        if not candidates:
            raise AggregationError("identity", f"no source reports a player named {hint.name!r}")
        hint = self._complete_hint(hint, candidates)

        try:
            resolution = self.resolver.resolve_detailed(hint)
        except PlayerNotFound as exc:
            raise AggregationError("identity", exc.reason) from exc
        identity = resolution.identity
        matched = self._matching_records(identity, candidates)

        season_records, weekly_records = self._split(snapshots, matched, week)
        try:
            record = merge(identity, season_records, priority=self.priority, week=week)
        except MergeContractError as exc:
            raise AggregationError("merge", str(exc)) from exc

        news = await self._news_for(matched)
        context = self.context.build_context(record, week)
        signals = self.context.build_signals(record, news)
        ratings = self._ratings(record)
        diagnostics = self._diagnostics(snapshots, resolution.ambiguous, context.is_known, ratings)
        return record.model_copy(
            update={
                "news": news,
                "context": context,
                "signals": signals,
                "ratings": {stat: result for stat, result in ratings.items() if result.status != "unknown_stat"},
                "recent_games": self._recent_games(weekly_records),
                "diagnostics": diagnostics,
            }
        )

    async def aggregate_many(self, hints: Sequence[PlayerHint], week: int) -> List[PlayerRecord]:
        await self.load_sources()
        return list(await asyncio.gather(*(self.aggregate(hint, week) for hint in hints)))

    # -- feed loading -------------------------------------------------------

    async def load_sources(self, *, refresh: bool = False) -> Dict[str, FeedSnapshot]:
        now = time.monotonic()
        stale = [
            feed
            for feed in self.feeds
            if refresh or not self._fresh(self._snapshots.get(feed.source_id), now)
        ]
        if stale:
            loaded = await asyncio.gather(*(self._load_feed(feed) for feed in stale))
            for snapshot in loaded:
                self._snapshots[snapshot.source_id] = snapshot
        return {feed.source_id: self._snapshots[feed.source_id] for feed in self.feeds}

    def _fresh(self, snapshot: Optional[FeedSnapshot], now: float) -> bool:
        if snapshot is None or self.cache_ttl <= 0:
            return False
        return now - snapshot.loaded_at < self.cache_ttl

    async def _load_feed(self, feed: SourceFeed) -> FeedSnapshot:
        limiter = self.limiter if self.limiter is not None else contextlib.nullcontext()
        try:
            async with limiter:
                payload = await feed.fetch()
            result = await asyncio.to_thread(feed.reader.parse, payload)
        except SourceUnreadable as exc:
            logger.warning("Source %s unreadable: %s", feed.source_id, exc.reason)
            return FeedSnapshot(
                source_id=feed.source_id,
                category=feed.category,
                loaded_at=time.monotonic(),
                weekly=feed.weekly,
                week_scoped=feed.week_scoped,
                error=exc.reason,
            )
        by_name, by_external = _index(result.records)
        logger.info("Loaded %d records from %s (%d skipped)", len(result), feed.source_id, result.skipped)
        return FeedSnapshot(
            source_id=feed.source_id,
            category=feed.category,
            loaded_at=time.monotonic(),
            weekly=feed.weekly,
            week_scoped=feed.week_scoped,
            result=result,
            by_name=by_name,
            by_external=by_external,
        )

    def _check_required(self, snapshots: Mapping[str, FeedSnapshot]) -> None:
        for category in self.required_categories:
            members = [snap for snap in snapshots.values() if snap.category == category]
            if members and not any(snap.ok for snap in members):
                failed = ",".join(sorted(snap.source_id for snap in members))
                reasons = "; ".join(f"{snap.source_id}: {snap.error}" for snap in members)
                raise AggregationError("ingest", f"every {category} source failed ({reasons})", source=failed)
            if not members:
                raise AggregationError("ingest", f"no feed configured for required category {category!r}")

    # -- matching -----------------------------------------------------------

    @staticmethod
    def _candidates(snapshots: Mapping[str, FeedSnapshot], hint: PlayerHint) -> List[RawStatRecord]:
        try:
            normalized = normalize_name(hint.name)
        except ValueError as exc:
            raise AggregationError("identity", str(exc)) from exc
        position = canonical_position(hint.position) if hint.position else None
        if hint.position and position is None:
            raise AggregationError("identity", f"unsupported position {hint.position!r}")

        found: Dict[int, RawStatRecord] = {}
        for snapshot in snapshots.values():
            hits = list(snapshot.by_name.get(normalized, ()))
            if hint.external_id:
                hits.extend(snapshot.by_external.get(hint.external_id, ()))
            for record in hits:
                if position is None or record.position == position:
                    found[id(record)] = record
        return list(found.values())

    @staticmethod
    def _complete_hint(hint: PlayerHint, candidates: Sequence[RawStatRecord]) -> PlayerHint:
        if hint.position:
            return hint
        positions = {record.position for record in candidates}
        if len(positions) == 1:
            return hint.model_copy(update={"position": positions.pop()})
        return hint

    def _matching_records(
        self, identity: PlayerIdentity, candidates: Sequence[RawStatRecord]
    ) -> List[RawStatRecord]:
        matched = []
        for record in order_records(candidates, self.priority):
            try:
                resolved = self.resolver.resolve(record.hint())
            except (PlayerNotFound, ValueError):
                continue
            if resolved.player_id == identity.player_id:
                matched.append(record)
        return matched

    @staticmethod
    def _split(
        snapshots: Mapping[str, FeedSnapshot], records: Sequence[RawStatRecord], week: int
    ) -> tuple[List[RawStatRecord], List[RawStatRecord]]:
        weekly_sources = {snap.source_id for snap in snapshots.values() if snap.weekly}
        scoped_sources = {snap.source_id for snap in snapshots.values() if snap.week_scoped}
        season: List[RawStatRecord] = []
        weekly: List[RawStatRecord] = []
        for record in records:
            if record.source in scoped_sources and record.week is not None:
                # only the requested week of a per-week feed applies
                if record.week == week:
                    season.append(record)
            elif record.source in weekly_sources and record.week is not None:
                if record.week <= week:
                    weekly.append(record)
            else:
                season.append(record)
        return season + season_totals(weekly), weekly

    # -- enrichment ---------------------------------------------------------

    async def _news_for(self, records: Sequence[RawStatRecord]) -> List[NewsItem]:
        if self.news is None:
            return []
        external_ids = sorted({record.external_id for record in records if record.external_id})
        batches = await asyncio.gather(*(self.news.news_for(ext, limit=NEWS_LIMIT) for ext in external_ids))
        seen = set()
        items: List[NewsItem] = []
        for item in (entry for batch in batches for entry in batch):
            key = (item.headline, item.published)
            if key not in seen:
                seen.add(key)
                items.append(item)
        items.sort(key=lambda item: (item.published is None, -(item.published.timestamp() if item.published else 0)))
        return items[:NEWS_LIMIT]

    def _ratings(self, record: PlayerRecord) -> Dict[str, ScoreResult]:
        games = record.stats.get("games", 0.0)
        ratings: Dict[str, ScoreResult] = {}
        for stat in sorted(record.stats):
            if stat == "games":
                continue
            value = record.stats[stat]
            if not self.engine.table.has(record.position, stat):
                ratings[stat] = ScoreResult(position=record.position, stat=stat, value=value, status="unknown_stat")
                continue
            per_game = value / games if games > 0 else value
            ratings[stat] = self.engine.try_score(record.position, stat, round(per_game, 4), games)
        return ratings

    def _recent_games(self, weekly: Sequence[RawStatRecord]) -> List[GameLog]:
        by_week: Dict[int, RawStatRecord] = {}
        for record in order_records(weekly, self.priority):
            if record.week is not None:
                by_week.setdefault(record.week, record)
        latest = sorted(by_week, reverse=True)[:RECENT_GAMES]
        return [GameLog(week=week, source=by_week[week].source, stats=dict(by_week[week].stats)) for week in latest]

    @staticmethod
    def _diagnostics(
        snapshots: Mapping[str, FeedSnapshot],
        ambiguous: bool,
        schedule_known: bool,
        ratings: Mapping[str, ScoreResult],
    ) -> AggregationDiagnostics:
        skipped = {}
        samples = {}
        unreadable = {}
        for source_id, snapshot in snapshots.items():
            if snapshot.result is None:
                unreadable[source_id] = snapshot.error or "unreadable"
                continue
            if snapshot.result.skipped:
                skipped[source_id] = snapshot.result.skipped
                samples[source_id] = list(snapshot.result.skipped_samples)
        return AggregationDiagnostics(
            skipped_rows=skipped,
            skipped_samples=samples,
            unreadable_sources=unreadable,
            identity_ambiguous=ambiguous,
            schedule_missing=not schedule_known,
            insufficient_sample=any(result.status == "insufficient_sample" for result in ratings.values()),
            unknown_stats=sorted(stat for stat, result in ratings.items() if result.status == "unknown_stat"),
        )
