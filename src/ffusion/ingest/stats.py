"""Reader for the tabular season/weekly statistics feed (nflverse ``player_stats``)."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ffusion.errors import SourceUnreadable
from ffusion.models import RawStatRecord

from .common import (
    TableReader,
    canonical_team,
    clean_cell,
    coerce_int,
    coerce_number,
    require_name,
    require_position,
)


NFLVERSE_STATS_URL = (
    "https://github.com/nflverse/nflverse-data/releases/download/player_stats/player_stats_{season}.csv"
)

# provider column -> canonical stat name
STAT_COLUMNS: Mapping[str, str] = {
    "games": "games",
    "completions": "completions",
    "attempts": "passing_attempts",
    "passing_attempts": "passing_attempts",
    "passing_yards": "passing_yards",
    "passing_tds": "passing_tds",
    "interceptions": "interceptions",
    "sacks": "sacks",
    "sack_yards": "sack_yards",
    "carries": "rushing_attempts",
    "rushing_attempts": "rushing_attempts",
    "rushing_yards": "rushing_yards",
    "rushing_tds": "rushing_tds",
    "receptions": "receptions",
    "targets": "targets",
    "receiving_yards": "receiving_yards",
    "receiving_tds": "receiving_tds",
    "fantasy_points": "fantasy_points",
    "fantasy_points_ppr": "fantasy_points_ppr",
}

FUMBLE_COLUMNS = ("rushing_fumbles_lost", "receiving_fumbles_lost", "sack_fumbles_lost")

_NAME_COLUMNS = ("player_display_name", "player_name", "name")
_TEAM_COLUMNS = ("recent_team", "team")
_REGULAR_SEASON = "REG"


def _first(row: Mapping[str, str], columns: Sequence[str]) -> str:
    for column in columns:
        value = clean_cell(row.get(column))
        if value:
            return value
    return ""


class SeasonStatsReader(TableReader):
    """Parse weekly (or season) stat lines keyed by provider player id."""

    def check_header(self, header: Sequence[str]) -> None:
        if not any(column in header for column in _NAME_COLUMNS):
            raise SourceUnreadable(self.source_id, "statistics feed has no player name column")
        if "position" not in header:
            raise SourceUnreadable(self.source_id, "statistics feed has no position column")

    def parse_row(self, header: Sequence[str], cells: Sequence[str]) -> Optional[RawStatRecord]:
        row = dict(zip(header, cells))
        season_type = clean_cell(row.get("season_type")).upper()
        if season_type and season_type != _REGULAR_SEASON:
            return None

        name = require_name(_first(row, _NAME_COLUMNS))
        position = require_position(row.get("position", ""))

        stats: Dict[str, float] = {}
        for column, stat in STAT_COLUMNS.items():
            if column in row:
                stats[stat] = stats.get(stat, 0.0) + coerce_number(row[column])
        fumble_columns = [column for column in FUMBLE_COLUMNS if column in row]
        if fumble_columns:
            stats["fumbles_lost"] = sum(coerce_number(row[column]) for column in fumble_columns)

        short_name = clean_cell(row.get("player_name"))
        return RawStatRecord(
            source=self.source_id,
            name=name,
            display_name=short_name or None,
            external_id=clean_cell(row.get("player_id")) or None,
            team=canonical_team(_first(row, _TEAM_COLUMNS)),
            position=position,
            week=coerce_int(row.get("week")),
            season=coerce_int(row.get("season")),
            stats=stats,
        )


def season_totals(records: Iterable[RawStatRecord]) -> List[RawStatRecord]:
    """Fold weekly rows into one season record per (source, player, position).

    Season-level rows (``week is None``) pass through untouched. ``games`` is the
    number of weekly rows unless the feed reported a ``games`` column itself.
    """

    passthrough: List[RawStatRecord] = []
    grouped: Dict[tuple[str, str, str], List[RawStatRecord]] = defaultdict(list)
    for record in records:
        if record.week is None:
            passthrough.append(record)
            continue
        key = (record.source, record.external_id or record.name.lower(), record.position)
        grouped[key].append(record)

    folded: List[RawStatRecord] = []
    for key in sorted(grouped):
        weeks = sorted(grouped[key], key=lambda item: item.week or 0)
        totals: Dict[str, float] = {}
        for weekly in weeks:
            for stat, value in weekly.stats.items():
                totals[stat] = totals.get(stat, 0.0) + value
        if not any("games" in weekly.stats for weekly in weeks):
            totals["games"] = float(len(weeks))
        latest = weeks[-1]
        folded.append(
            latest.model_copy(update={"week": None, "stats": totals, "team": latest.team or weeks[0].team})
        )
    return passthrough + folded
