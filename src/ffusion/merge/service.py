"""Merge per-source records for one player into a ``PlayerRecord``."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ffusion.config import POSITIONS
from ffusion.errors import MergeContractError
from ffusion.models import Discrepancy, PlayerIdentity, PlayerRecord, RawStatRecord

from .priority import SourcePriority


logger = logging.getLogger(__name__)

TOLERANCE = 1e-6


def _record_key(record: RawStatRecord, priority: SourcePriority) -> tuple:
    return (
        priority.rank(record.source),
        record.week if record.week is not None else -1,
        record.name,
        record.external_id or "",
        tuple(sorted(record.stats.items())),
    )


def order_records(records: Iterable[RawStatRecord], priority: SourcePriority) -> List[RawStatRecord]:
    """Sort records so the input order never influences the merge."""

    return sorted(records, key=lambda record: _record_key(record, priority))


def _same(left: float, right: float) -> bool:
    return math.isclose(left, right, rel_tol=0.0, abs_tol=TOLERANCE)


def merge_stats(
    records: Sequence[RawStatRecord],
) -> Tuple[Dict[str, float], Dict[str, str], List[Discrepancy]]:
    """Apply the per-stat conflict policy to records already in priority order."""

    stats: Dict[str, float] = {}
    sources: Dict[str, str] = {}
    discrepancies: List[Discrepancy] = []
    seen_losers: set[tuple[str, str, float]] = set()

    for record in records:
        for stat in sorted(record.stats):
            value = record.stats[stat]
            if stat not in stats:
                stats[stat] = value
                sources[stat] = record.source
                continue
            accepted = stats[stat]
            if _same(accepted, value):
                continue
            key = (stat, record.source, value)
            if key in seen_losers:
                continue
            seen_losers.add(key)
            discrepancies.append(
                Discrepancy(
                    stat=stat,
                    rejected=value,
                    source=record.source,
                    accepted=accepted,
                    accepted_source=sources[stat],
                )
            )
    return stats, sources, discrepancies


def merge(
    identity: PlayerIdentity,
    records: Iterable[RawStatRecord],
    *,
    priority: Optional[SourcePriority] = None,
    week: Optional[int] = None,
) -> PlayerRecord:
    """Join records from several sources for one player.

    A stat reported by one source is taken as is. Agreeing values keep the
    highest-priority reporter. Disagreeing values keep the highest-priority
    value and list every losing value as a ``Discrepancy``. Stats nobody
    reported are left out of the map.
    """

    if identity.position not in POSITIONS:
        raise MergeContractError(f"identity {identity.player_id} has unsupported position {identity.position!r}")

    priority = priority or SourcePriority()
    ordered = order_records(records, priority)
    stats, sources, discrepancies = merge_stats(ordered)
    if discrepancies:
        logger.debug("Merged %s with %d discrepancies", identity.player_id, len(discrepancies))

    team = next((record.team for record in ordered if record.team), identity.team)
    return PlayerRecord(
        identity=identity,
        team=team,
        week=week,
        stats=stats,
        sources=sources,
        discrepancies=discrepancies,
    )
