"""Weekly fantasy projections feed (``body.playerProjections`` JSON)."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional

from ffusion.errors import RowSkipped, SourceUnreadable
from ffusion.models import RawStatRecord

from .common import (
    ParseResult,
    _ResultBuilder,
    canonical_team,
    coerce_int,
    coerce_number,
    decode_payload,
    require_name,
    require_position,
)


# group -> {provider key: canonical stat}
PROJECTION_STAT_MAP: Dict[str, Dict[str, str]] = {
    "Passing": {
        "passYds": "passing_yards",
        "passTD": "passing_tds",
        "int": "interceptions",
        "passAttempts": "passing_attempts",
        "passCompletions": "completions",
    },
    "Rushing": {
        "rushYds": "rushing_yards",
        "rushTD": "rushing_tds",
        "carries": "rushing_attempts",
    },
    "Receiving": {
        "recYds": "receiving_yards",
        "recTD": "receiving_tds",
        "receptions": "receptions",
        "targets": "targets",
    },
}

_TOP_LEVEL_STATS = {"fumblesLost": "fumbles_lost", "twoPointConversion": "two_point_conversions"}

_FANTASY_POINT_KEYS = {"standard": "fantasy_points_standard", "halfPPR": "fantasy_points_half_ppr", "PPR": "fantasy_points_ppr"}

PREFIX = "proj_"


def _present(value: Any) -> bool:
    return value not in (None, "")


class ProjectionReader:
    """Turn a projections payload into per-week records with ``proj_*`` stats.

    Only stat groups present on a player are emitted. Fantasy point totals
    default to 0 when the provider leaves them blank.
    """

    def __init__(self, source_id: str, week: Optional[int] = None):
        self.source_id = source_id
        self.week = week

    def parse(self, payload: str | bytes) -> ParseResult[RawStatRecord]:
        text = decode_payload(payload, self.source_id)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceUnreadable(self.source_id, f"invalid JSON: {exc.msg}") from exc
        if not isinstance(data, Mapping):
            raise SourceUnreadable(self.source_id, "projection payload is not an object")

        body = data.get("body", data)
        if not isinstance(body, Mapping):
            raise SourceUnreadable(self.source_id, "projection payload has no body")
        players = body.get("playerProjections")
        if isinstance(players, Mapping):
            entries: Iterable[Any] = players.values()
        elif isinstance(players, list):
            entries = players
        else:
            raise SourceUnreadable(self.source_id, "projection payload has no playerProjections")

        week = coerce_int(str(body.get("week", ""))) or self.week
        season = coerce_int(str(body.get("season", "")))

        builder: _ResultBuilder[RawStatRecord] = _ResultBuilder(self.source_id)
        for index, entry in enumerate(entries, start=1):
            if not isinstance(entry, Mapping):
                builder.skip(index, "projection is not an object", str(entry)[:80])
                continue
            try:
                record = self._record(entry, week, season)
            except RowSkipped as exc:
                builder.skip(index, exc.reason, json.dumps(entry, default=str)[:80])
                continue
            builder.add(record)
        return builder.build()

    def _record(self, entry: Mapping[str, Any], week: Optional[int], season: Optional[int]) -> RawStatRecord:
        name = require_name(str(entry.get("longName") or entry.get("playerName") or ""))
        position = require_position(str(entry.get("pos") or entry.get("position") or ""))
        entry_week = coerce_int(str(entry.get("week", ""))) or week
        if entry_week is None:
            raise RowSkipped("projection has no week")

        stats: Dict[str, float] = {PREFIX + "fantasy_points": coerce_number(str(entry.get("fantasyPoints", "")))}
        defaults = entry.get("fantasyPointsDefault")
        defaults = defaults if isinstance(defaults, Mapping) else {}
        for key, stat in _FANTASY_POINT_KEYS.items():
            stats[PREFIX + stat] = coerce_number(str(defaults.get(key, "")))

        for group, columns in PROJECTION_STAT_MAP.items():
            block = entry.get(group)
            if not isinstance(block, Mapping):
                continue
            for key, stat in columns.items():
                if _present(block.get(key)):
                    stats[PREFIX + stat] = coerce_number(str(block[key]))
        for key, stat in _TOP_LEVEL_STATS.items():
            if _present(entry.get(key)):
                stats[PREFIX + stat] = coerce_number(str(entry[key]))

        player_id = entry.get("playerID") or entry.get("playerId")
        return RawStatRecord(
            source=self.source_id,
            name=name,
            external_id=str(player_id) if _present(player_id) else None,
            team=canonical_team(str(entry.get("team") or "")),
            position=position,
            week=entry_week,
            season=season,
            stats=stats,
        )
