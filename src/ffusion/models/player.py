"""Canonical player models shared across ingestion, merging and scoring."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


Position = Literal["QB", "RB", "WR", "TE", "K", "DEF"]
Difficulty = Literal["easy", "neutral", "hard", "unrated"]
Color = Literal["green", "yellow", "red"]
Comparison = Literal["above", "average", "below"]
ScoreStatus = Literal["scored", "insufficient_sample", "unknown_stat"]
NewsCategory = Literal["injury", "transaction", "performance", "general"]
NewsImpact = Literal["high", "medium", "low"]

UNKNOWN_OPPONENT = "UNKNOWN"
BYE_OPPONENT = "BYE"


class RawStatRecord(BaseModel):
    """One row from one source for one player-week (or season when ``week`` is None)."""

    source: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    external_id: Optional[str] = None
    team: str = ""
    position: Position
    week: Optional[int] = None
    season: Optional[int] = None
    stats: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def hint(self) -> "PlayerHint":
        return PlayerHint(
            name=self.name,
            team=self.team or None,
            position=self.position,
            external_id=self.external_id,
        )


class PlayerHint(BaseModel):
    name: str = Field(..., min_length=1)
    team: Optional[str] = None
    position: Optional[str] = None
    external_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PlayerIdentity(BaseModel):
    """Canonical join key for one real player."""

    player_id: str = Field(..., min_length=1)
    name: str
    normalized_name: str
    position: str
    team: str = ""

    model_config = ConfigDict(frozen=True)


class Discrepancy(BaseModel):
    stat: str
    rejected: float
    source: str
    accepted: float
    accepted_source: str

    model_config = ConfigDict(frozen=True)


class NewsItem(BaseModel):
    external_id: str
    headline: str
    body: str = ""
    published: Optional[datetime] = None
    category: NewsCategory = "general"
    impact: NewsImpact = "low"

    model_config = ConfigDict(frozen=True)


class MatchupContext(BaseModel):
    team: str
    week: int
    opponent: str = UNKNOWN_OPPONENT
    is_home: Optional[bool] = None
    difficulty: Difficulty = "unrated"

    model_config = ConfigDict(frozen=True)

    @property
    def is_known(self) -> bool:
        return self.opponent != UNKNOWN_OPPONENT


class SituationalSignals(BaseModel):
    injury_status: Optional[str] = None
    red_zone_role: Optional[Literal["primary", "secondary", "limited"]] = None
    news_flags: List[NewsCategory] = Field(default_factory=list)
    bye_week: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class ScoreResult(BaseModel):
    position: str
    stat: str
    value: float
    status: ScoreStatus
    percentile_bucket: Optional[Literal[25, 50, 75, 90]] = None
    color: Optional[Color] = None
    comparison: Optional[Comparison] = None

    model_config = ConfigDict(frozen=True)

    @property
    def scored(self) -> bool:
        return self.status == "scored"


class GameLog(BaseModel):
    week: int
    source: str
    stats: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class SkippedRowSample(BaseModel):
    line: int
    reason: str
    raw: str = ""

    model_config = ConfigDict(frozen=True)


class AggregationDiagnostics(BaseModel):
    skipped_rows: Dict[str, int] = Field(default_factory=dict)
    skipped_samples: Dict[str, List[SkippedRowSample]] = Field(default_factory=dict)
    unreadable_sources: Dict[str, str] = Field(default_factory=dict)
    identity_ambiguous: bool = False
    schedule_missing: bool = False
    insufficient_sample: bool = False
    unknown_stats: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class PlayerRecord(BaseModel):
    """Merged per-player view; recomputed per request."""

    identity: PlayerIdentity
    team: str = ""
    week: Optional[int] = None
    stats: Dict[str, float] = Field(default_factory=dict)
    sources: Dict[str, str] = Field(default_factory=dict)
    discrepancies: List[Discrepancy] = Field(default_factory=list)
    news: List[NewsItem] = Field(default_factory=list)
    context: Optional[MatchupContext] = None
    signals: Optional[SituationalSignals] = None
    ratings: Dict[str, ScoreResult] = Field(default_factory=dict)
    recent_games: List[GameLog] = Field(default_factory=list)
    diagnostics: AggregationDiagnostics = Field(default_factory=AggregationDiagnostics)

    model_config = ConfigDict(frozen=True)

    @property
    def position(self) -> str:
        return self.identity.position

    @property
    def games_played(self) -> int:
        return int(self.stats.get("games", 0))

    def discrepancies_for(self, stat: str) -> List[Discrepancy]:
        return [item for item in self.discrepancies if item.stat == stat]
