"""Score a stat value against its position's percentile tuple."""

from __future__ import annotations

from typing import Optional

from ffusion.config import canonical_position, is_lower_better
from ffusion.errors import BenchmarkUnknownStat
from ffusion.models import ScoreResult

from .tables import BenchmarkTable


# bucket -> (color, comparison)
_GRADES = {25: ("red", "below"), 50: ("yellow", "average"), 75: ("green", "above"), 90: ("green", "above")}
_REVERSE_GRADES = {25: ("green", "above"), 50: ("yellow", "average"), 75: ("yellow", "average"), 90: ("red", "below")}


def bucket_for(value: float, p25: float, p50: float, p75: float) -> int:
    """Boundary values fall into the lower bucket."""

    if value <= p25:
        return 25
    if value <= p50:
        return 50
    if value <= p75:
        return 75
    return 90


class BenchmarkEngine:
    def __init__(self, table: BenchmarkTable):
        self.table = table

    def score(
        self,
        position: str,
        stat: str,
        value: float,
        games_played: float,
        lower_is_better: Optional[bool] = None,
    ) -> ScoreResult:
        """Return a bucket, color and comparison for ``value``.

        Raises ``BenchmarkUnknownStat`` when the position has no tuple for the
        stat. Under-sampled players get an ``insufficient_sample`` result for
        every stat, known or not. For lower-is-better stats the bucket keeps its
        raw meaning; only the lowest bucket is green and the middle two are yellow.
        """

        code = canonical_position(position) or position
        if self.table.get(code) is None:
            raise BenchmarkUnknownStat(code, stat)
        if games_played < self.table.games_minimum(code):
            return ScoreResult(position=code, stat=stat, value=value, status="insufficient_sample")
        benchmark = self.table.lookup(code, stat)

        if lower_is_better is None:
            lower_is_better = is_lower_better(stat)
        bucket = bucket_for(value, *benchmark.as_tuple())
        color, comparison = (_REVERSE_GRADES if lower_is_better else _GRADES)[bucket]
        return ScoreResult(
            position=code,
            stat=stat,
            value=value,
            status="scored",
            percentile_bucket=bucket,
            color=color,
            comparison=comparison,
        )

    def try_score(
        self,
        position: str,
        stat: str,
        value: float,
        games_played: float,
        lower_is_better: Optional[bool] = None,
    ) -> ScoreResult:
        """Like ``score`` but reports an unknown stat as a result instead of raising."""

        try:
            return self.score(position, stat, value, games_played, lower_is_better)
        except BenchmarkUnknownStat:
            return ScoreResult(position=position, stat=stat, value=value, status="unknown_stat")
