"""Per-position percentile tables used for scoring.

Tables are reference data loaded at startup from JSON, so a new season can be
recomputed and dropped in without touching code.
"""

from __future__ import annotations

import json
import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from ffusion.config import POSITIONS
from ffusion.errors import BenchmarkUnknownStat
from ffusion.models import RawStatRecord


logger = logging.getLogger(__name__)

DEFAULT_GAMES_MINIMUM = 6


@dataclass(frozen=True)
class StatBenchmark:
    p25: float
    p50: float
    p75: float

    def __post_init__(self) -> None:
        if not (self.p25 <= self.p50 <= self.p75):
            raise ValueError(f"percentiles must be ordered, got ({self.p25}, {self.p50}, {self.p75})")

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.p25, self.p50, self.p75)


@dataclass(frozen=True)
class PositionBenchmark:
    position: str
    games_minimum: int
    stats: Mapping[str, StatBenchmark] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.games_minimum < 0:
            raise ValueError(f"{self.position}: games_minimum must be non-negative")


class BenchmarkTable:
    """Immutable position -> ``PositionBenchmark`` mapping."""

    def __init__(self, positions: Iterable[PositionBenchmark]):
        self._positions: Dict[str, PositionBenchmark] = {item.position: item for item in positions}

    def positions(self) -> Tuple[str, ...]:
        return tuple(self._positions)

    def get(self, position: str) -> Optional[PositionBenchmark]:
        return self._positions.get(position)

    def games_minimum(self, position: str) -> int:
        entry = self._positions.get(position)
        if entry is None:
            raise BenchmarkUnknownStat(position, "*")
        return entry.games_minimum

    def lookup(self, position: str, stat: str) -> StatBenchmark:
        entry = self._positions.get(position)
        if entry is None or stat not in entry.stats:
            raise BenchmarkUnknownStat(position, stat)
        return entry.stats[stat]

    def has(self, position: str, stat: str) -> bool:
        entry = self._positions.get(position)
        return entry is not None and stat in entry.stats

    def to_dict(self) -> dict:
        return {
            "version": 1,
            "basis": "per_game",
            "positions": {
                code: {
                    "games_minimum": entry.games_minimum,
                    "stats": {stat: list(bench.as_tuple()) for stat, bench in sorted(entry.stats.items())},
                }
                for code, entry in self._positions.items()
            },
        }

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")


def parse_benchmarks(data: Mapping) -> BenchmarkTable:
    positions = data.get("positions")
    if not isinstance(positions, Mapping):
        raise ValueError("benchmark data must contain a 'positions' object")

    entries = []
    for code, payload in positions.items():
        if code not in POSITIONS:
            raise ValueError(f"unsupported position {code!r} in benchmark data")
        stats: Dict[str, StatBenchmark] = {}
        for stat, values in payload.get("stats", {}).items():
            if len(values) != 3:
                raise ValueError(f"{code}.{stat}: expected three percentiles, got {values!r}")
            stats[stat] = StatBenchmark(*(float(value) for value in values))
        entries.append(
            PositionBenchmark(
                position=code,
                games_minimum=int(payload.get("games_minimum", DEFAULT_GAMES_MINIMUM)),
                stats=stats,
            )
        )
    return BenchmarkTable(entries)


def load_benchmarks(path: Union[str, Path]) -> BenchmarkTable:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    table = parse_benchmarks(data)
    logger.info("Loaded benchmarks for %d positions from %s", len(table.positions()), path)
    return table


def default_benchmarks() -> BenchmarkTable:
    text = resources.files("ffusion.benchmarks").joinpath("data/default.json").read_text(encoding="utf-8")
    return parse_benchmarks(json.loads(text))


def compute_benchmarks(
    records: Iterable[RawStatRecord],
    *,
    games_minimum: Union[int, Mapping[str, int], None] = None,
    stats: Optional[Iterable[str]] = None,
) -> BenchmarkTable:
    """Recompute per-game percentile tuples from season-level records.

    Players below their position's games floor are left out. A stat needs at
    least two qualifying players to get a tuple.
    """

    wanted = set(stats) if stats is not None else None
    samples: Dict[str, Dict[str, list[float]]] = defaultdict(lambda: defaultdict(list))

    def floor_for(position: str) -> int:
        if isinstance(games_minimum, Mapping):
            return int(games_minimum.get(position, DEFAULT_GAMES_MINIMUM))
        if games_minimum is None:
            return DEFAULT_GAMES_MINIMUM
        return int(games_minimum)

    for record in records:
        games = record.stats.get("games", 0.0)
        if games <= 0 or games < floor_for(record.position):
            continue
        for stat, value in record.stats.items():
            if stat == "games" or (wanted is not None and stat not in wanted):
                continue
            samples[record.position][stat].append(value / games)

    entries = []
    for position in POSITIONS:
        if position not in samples:
            continue
        computed: Dict[str, StatBenchmark] = {}
        for stat, values in sorted(samples[position].items()):
            if len(values) < 2:
                continue
            p25, p50, p75 = statistics.quantiles(values, n=4, method="inclusive")
            computed[stat] = StatBenchmark(round(p25, 2), round(p50, 2), round(p75, 2))
        entries.append(PositionBenchmark(position=position, games_minimum=floor_for(position), stats=computed))
    return BenchmarkTable(entries)
