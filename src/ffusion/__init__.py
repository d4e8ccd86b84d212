"""Player data fusion engine.

Normalizes heterogeneous fantasy football feeds, reconciles player identities
across providers, merges per-source stats under a priority policy, scores them
against positional benchmarks and attaches weekly matchup context.
"""

from ffusion.aggregator import Aggregator, SourceFeed, build_aggregator
from ffusion.benchmarks import BenchmarkEngine, BenchmarkTable, default_benchmarks
from ffusion.errors import AggregationError, FusionError
from ffusion.identity import IdentityResolver, IdentityStore
from ffusion.merge import SourcePriority, merge
from ffusion.models import PlayerHint, PlayerIdentity, PlayerRecord, RawStatRecord, ScoreResult

__all__ = [
    "AggregationError",
    "Aggregator",
    "BenchmarkEngine",
    "BenchmarkTable",
    "FusionError",
    "IdentityResolver",
    "IdentityStore",
    "PlayerHint",
    "PlayerIdentity",
    "PlayerRecord",
    "RawStatRecord",
    "ScoreResult",
    "SourceFeed",
    "SourcePriority",
    "build_aggregator",
    "default_benchmarks",
    "merge",
]
