"""Command-line interface for aggregating and scoring player data."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx

from ffusion.aggregator import build_aggregator
from ffusion.benchmarks import BenchmarkEngine, compute_benchmarks, default_benchmarks, load_benchmarks
from ffusion.config import FusionSettings
from ffusion.config_loader import FeedProfile
from ffusion.errors import AggregationError, BenchmarkUnknownStat, FusionError, PlayerNotFound
from ffusion.identity import IdentityResolver, IdentityStore
from ffusion.ingest import SeasonStatsReader, season_totals
from ffusion.models import PlayerHint
from ffusion.persistence import IdentityRepository


def _add_hint_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Player name as any source spells it")
    parser.add_argument("--team", default=None, help="Team code or name")
    parser.add_argument("--position", default=None, help="Position code (QB, RB, WR, TE, K, DEF)")
    parser.add_argument("--external-id", default=None, help="Provider player id")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fuse fantasy football player feeds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    aggregate = sub.add_parser("aggregate", help="Merge every feed for one player and week")
    _add_hint_arguments(aggregate)
    aggregate.add_argument("--week", type=int, required=True, help="Week number")
    aggregate.add_argument("--profile", type=Path, default=None, help="Feed profile JSON (default: FFUSION_PROFILE)")
    aggregate.add_argument("--db", type=Path, default=None, help="SQLite identity store to load and update")
    aggregate.add_argument("--output", type=Path, default=None, help="Write the merged record JSON here")

    score = sub.add_parser("score", help="Score one stat value against the benchmark table")
    score.add_argument("position")
    score.add_argument("stat")
    score.add_argument("value", type=float)
    score.add_argument("--games", type=float, required=True, help="Games played")
    score.add_argument("--lower-is-better", action="store_true", default=None)
    score.add_argument("--benchmarks", type=Path, default=None, help="Benchmark table JSON")

    resolve = sub.add_parser("resolve", help="Resolve a player hint to a canonical identity")
    _add_hint_arguments(resolve)
    resolve.add_argument("--db", type=Path, default=Path("ffusion.sqlite"), help="SQLite identity store")

    bench = sub.add_parser("benchmarks", help="Print the default table or recompute one from a stats file")
    bench.add_argument("--from-stats", type=Path, default=None, help="Weekly or season statistics CSV")
    bench.add_argument("--games-minimum", type=int, default=None, help="Games floor for every position")
    bench.add_argument("--output", type=Path, default=None, help="Write the table JSON here")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def _emit(payload: str, output: Optional[Path]) -> None:
    if output:
        output.write_text(payload, encoding="utf-8")
        print(f"Wrote {output}")
    else:
        print(payload)


async def _aggregate(args: argparse.Namespace, settings: FusionSettings) -> int:
    profile_path = args.profile or settings.profile_path
    if profile_path is None:
        raise SystemExit("a feed profile is required (--profile or FFUSION_PROFILE)")
    profile = FeedProfile.load(profile_path)

    store = IdentityStore()
    repository = IdentityRepository(args.db) if args.db else None
    if repository is not None:
        repository.load_into(store)

    hint = PlayerHint(name=args.name, team=args.team, position=args.position, external_id=args.external_id)
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        aggregator = await build_aggregator(profile, settings=settings, client=client, store=store)
        try:
            record = await aggregator.aggregate(hint, args.week)
        except AggregationError as exc:
            print(json.dumps({"error": exc.to_dict()}, indent=2), file=sys.stderr)
            return 1

    if repository is not None:
        repository.save(store)
    _emit(record.model_dump_json(indent=2), args.output)
    return 0


def _score(args: argparse.Namespace, settings: FusionSettings) -> int:
    path = args.benchmarks or settings.benchmarks_path
    table = load_benchmarks(path) if path else default_benchmarks()
    engine = BenchmarkEngine(table)
    try:
        result = engine.score(args.position, args.stat, args.value, args.games, args.lower_is_better)
    except BenchmarkUnknownStat as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(result.model_dump_json(indent=2))
    return 0


def _resolve(args: argparse.Namespace) -> int:
    repository = IdentityRepository(args.db)
    store = IdentityStore()
    repository.load_into(store)
    hint = PlayerHint(name=args.name, team=args.team, position=args.position, external_id=args.external_id)
    try:
        resolution = IdentityResolver(store).resolve_detailed(hint)
    except PlayerNotFound as exc:
        print(str(exc), file=sys.stderr)
        return 1
    repository.save(store)
    payload = resolution.identity.model_dump()
    payload["created"] = resolution.created
    payload["ambiguous"] = resolution.ambiguous
    print(json.dumps(payload, indent=2))
    return 0


def _benchmarks(args: argparse.Namespace) -> int:
    if args.from_stats is None:
        table = default_benchmarks()
    else:
        result = SeasonStatsReader("stats").parse_file(args.from_stats)
        table = compute_benchmarks(season_totals(result.records), games_minimum=args.games_minimum)
    _emit(json.dumps(table.to_dict(), indent=2), args.output)
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from ffusion.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = FusionSettings.from_env()

    try:
        if args.command == "aggregate":
            code = asyncio.run(_aggregate(args, settings))
        elif args.command == "score":
            code = _score(args, settings)
        elif args.command == "resolve":
            code = _resolve(args)
        elif args.command == "benchmarks":
            code = _benchmarks(args)
        else:
            code = _serve(args)
    except FusionError as exc:
        raise SystemExit(f"error: {exc}") from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()
