"""Pydantic models shared across the fusion pipeline."""

from .player import (
    BYE_OPPONENT,
    UNKNOWN_OPPONENT,
    AggregationDiagnostics,
    Discrepancy,
    GameLog,
    MatchupContext,
    NewsItem,
    PlayerHint,
    PlayerIdentity,
    PlayerRecord,
    RawStatRecord,
    ScoreResult,
    SituationalSignals,
    SkippedRowSample,
)

__all__ = [
    "AggregationDiagnostics",
    "BYE_OPPONENT",
    "Discrepancy",
    "GameLog",
    "MatchupContext",
    "NewsItem",
    "PlayerHint",
    "PlayerIdentity",
    "PlayerRecord",
    "RawStatRecord",
    "ScoreResult",
    "SituationalSignals",
    "SkippedRowSample",
    "UNKNOWN_OPPONENT",
]
