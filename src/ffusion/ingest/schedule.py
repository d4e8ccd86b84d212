"""Schedule and defense-vs-position tables used to build matchup context."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ffusion.errors import RowSkipped, SourceUnreadable
from ffusion.models import BYE_OPPONENT

from .common import (
    ParseResult,
    _ResultBuilder,
    canonical_team,
    clean_cell,
    coerce_int,
    coerce_number,
    read_table,
    require_position,
)


_HOME_TOKENS = {"home", "h", "vs", "1", "true"}
_AWAY_TOKENS = {"away", "a", "@", "at", "0", "false"}


@dataclass(frozen=True)
class ScheduleEntry:
    team: str
    week: int
    opponent: str
    is_home: Optional[bool]

    @property
    def is_bye(self) -> bool:
        return self.opponent == BYE_OPPONENT


class ScheduleTable:
    """(team, week) -> opponent lookup. Immutable once built."""

    def __init__(self, entries: Iterable[ScheduleEntry] = ()):
        table: Dict[Tuple[str, int], ScheduleEntry] = {}
        mirrored: List[ScheduleEntry] = []
        for entry in entries:
            table[(entry.team, entry.week)] = entry
            if not entry.is_bye:
                mirrored.append(
                    ScheduleEntry(
                        team=entry.opponent,
                        week=entry.week,
                        opponent=entry.team,
                        is_home=None if entry.is_home is None else not entry.is_home,
                    )
                )
        for entry in mirrored:
            table.setdefault((entry.team, entry.week), entry)
        self._table: Mapping[Tuple[str, int], ScheduleEntry] = table

    def lookup(self, team: str, week: int) -> Optional[ScheduleEntry]:
        return self._table.get((canonical_team(team), week))

    def __len__(self) -> int:
        return len(self._table)


class ScheduleReader:
    """``team, week, opponent[, home_away]``; an ``@OPP`` opponent marks an away game."""

    def __init__(self, source_id: str = "schedule"):
        self.source_id = source_id

    def parse(self, payload: str | bytes) -> ParseResult[ScheduleEntry]:
        header, rows = read_table(payload, self.source_id)
        for column in ("team", "week", "opponent"):
            if column not in header:
                raise SourceUnreadable(self.source_id, f"schedule has no {column!r} column")
        builder: _ResultBuilder[ScheduleEntry] = _ResultBuilder(self.source_id)
        for line, cells in rows:
            try:
                builder.add(self._parse_row(dict(zip(header, cells))))
            except RowSkipped as exc:
                builder.skip(line, exc.reason, ",".join(cells))
        return builder.build()

    def parse_file(self, path: Path) -> ParseResult[ScheduleEntry]:
        try:
            return self.parse(path.read_bytes())
        except OSError as exc:
            raise SourceUnreadable(self.source_id, f"cannot read {path}: {exc}") from exc

    def load_table(self, payload: str | bytes) -> ScheduleTable:
        return ScheduleTable(self.parse(payload).records)

    def _parse_row(self, row: Mapping[str, str]) -> ScheduleEntry:
        team = canonical_team(row.get("team"))
        if not team:
            raise RowSkipped("missing team")
        week = coerce_int(row.get("week"))
        if week is None or week <= 0:
            raise RowSkipped(f"invalid week {row.get('week')!r}")

        opponent_raw = clean_cell(row.get("opponent"))
        is_home: Optional[bool] = None
        if opponent_raw.startswith("@"):
            is_home = False
            opponent_raw = opponent_raw[1:]
        elif opponent_raw.lower().startswith("vs "):
            is_home = True
            opponent_raw = opponent_raw[3:]
        if not opponent_raw:
            raise RowSkipped("missing opponent")
        if opponent_raw.upper() == BYE_OPPONENT:
            return ScheduleEntry(team=team, week=week, opponent=BYE_OPPONENT, is_home=None)

        flag = clean_cell(row.get("home_away")).lower()
        if flag in _HOME_TOKENS:
            is_home = True
        elif flag in _AWAY_TOKENS:
            is_home = False
        return ScheduleEntry(team=team, week=week, opponent=canonical_team(opponent_raw), is_home=is_home)


@dataclass(frozen=True)
class DefenseEntry:
    team: str
    position: str
    points_allowed: float


class DefenseTable:
    """Fantasy points each defense allows per game to each position."""

    def __init__(self, entries: Iterable[DefenseEntry] = ()):
        self._by_position: Dict[str, Dict[str, float]] = {}
        for entry in entries:
            self._by_position.setdefault(entry.position, {})[entry.team] = entry.points_allowed

    def allowed(self, team: str, position: str) -> Optional[float]:
        return self._by_position.get(position, {}).get(canonical_team(team))

    def distribution(self, position: str) -> List[float]:
        return sorted(self._by_position.get(position, {}).values())


class DefenseVsPositionReader:
    """``team, position, points_allowed``."""

    def __init__(self, source_id: str = "defense_vs_position"):
        self.source_id = source_id

    def parse(self, payload: str | bytes) -> ParseResult[DefenseEntry]:
        header, rows = read_table(payload, self.source_id)
        builder: _ResultBuilder[DefenseEntry] = _ResultBuilder(self.source_id)
        for line, cells in rows:
            try:
                builder.add(self._parse_row(header, cells))
            except RowSkipped as exc:
                builder.skip(line, exc.reason, ",".join(cells))
        return builder.build()

    def load_table(self, payload: str | bytes) -> DefenseTable:
        return DefenseTable(self.parse(payload).records)

    @staticmethod
    def _parse_row(header: Sequence[str], cells: Sequence[str]) -> DefenseEntry:
        row = dict(zip(header, cells))
        team = canonical_team(row.get("team"))
        if not team:
            raise RowSkipped("missing team")
        position = require_position(row.get("position", ""))
        return DefenseEntry(team=team, position=position, points_allowed=coerce_number(row.get("points_allowed")))
