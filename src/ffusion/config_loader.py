"""Persist and load feed profiles describing which sources an aggregator reads."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


FEED_KINDS = ("season_stats", "adp", "red_zone", "market_share", "projections")


@dataclass
class FeedSpec:
    source_id: str
    kind: str
    category: str
    path: Optional[str] = None
    url: Optional[str] = None
    position: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in FEED_KINDS:
            raise ValueError(f"{self.source_id}: unknown feed kind {self.kind!r}")
        if bool(self.path) == bool(self.url):
            raise ValueError(f"{self.source_id}: exactly one of 'path' or 'url' is required")
        if self.kind in ("red_zone", "market_share") and not self.position:
            raise ValueError(f"{self.source_id}: {self.kind} feeds need a 'position'")

    def to_dict(self) -> Dict[str, str]:
        payload = {"source_id": self.source_id, "kind": self.kind, "category": self.category}
        for key in ("path", "url", "position"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        return payload


@dataclass
class FeedProfile:
    feeds: List[FeedSpec] = field(default_factory=list)
    source_priority: List[str] = field(default_factory=list)
    required_categories: List[str] = field(default_factory=list)
    schedule: Optional[str] = None
    defense_vs_position: Optional[str] = None
    news: Optional[str] = None
    benchmarks: Optional[str] = None

    @classmethod
    def load(cls, path: Path) -> "FeedProfile":
        data = json.loads(path.read_text(encoding="utf-8"))
        base = path.parent
        feeds = []
        for item in data.get("feeds", []):
            spec = FeedSpec(**item)
            if spec.path:
                spec.path = _resolve(base, spec.path)
            feeds.append(spec)
        return cls(
            feeds=feeds,
            source_priority=list(data.get("source_priority", [])),
            required_categories=list(data.get("required_categories", [])),
            schedule=_resolve(base, data.get("schedule")),
            defense_vs_position=_resolve(base, data.get("defense_vs_position")),
            news=_resolve(base, data.get("news")),
            benchmarks=_resolve(base, data.get("benchmarks")),
        )

    def save(self, path: Path) -> None:
        payload = {
            "feeds": [spec.to_dict() for spec in self.feeds],
            "source_priority": self.source_priority,
            "required_categories": self.required_categories,
            "schedule": self.schedule,
            "defense_vs_position": self.defense_vs_position,
            "news": self.news,
            "benchmarks": self.benchmarks,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def categories(self) -> List[str]:
        return sorted({spec.category for spec in self.feeds})


def _resolve(base: Path, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    candidate = Path(value)
    if candidate.is_absolute():
        return str(candidate)
    return str(base / candidate)
