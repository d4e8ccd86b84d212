"""Readers for the local research files: ADP, red-zone and market-share reports.

These files are positional (column order matters, header names vary between
exports), so each reader indexes cells rather than relying on header names.
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence

from ffusion.config import canonical_position
from ffusion.errors import RowSkipped
from ffusion.models import RawStatRecord

from .common import (
    TableReader,
    canonical_team,
    cell_at,
    coerce_number,
    require_name,
    require_position,
)


_POSITION_RANK = re.compile(r"\d+$")


def _fixed_position(position: str) -> str:
    code = canonical_position(position)
    if code is None:
        raise ValueError(f"unsupported position group {position!r}")
    return code


class AdpReader(TableReader):
    """``name, team, bye, position, <unused>, ppr``."""

    def parse_row(self, header: Sequence[str], cells: Sequence[str]) -> Optional[RawStatRecord]:
        if len(cells) < 4:
            raise RowSkipped(f"expected at least 4 columns, got {len(cells)}")
        name = require_name(cells[0])
        # Rank-suffixed labels such as "WR12" are common in ADP exports.
        position = require_position(_POSITION_RANK.sub("", cell_at(cells, 3)))
        stats: Dict[str, float] = {
            "adp_ppr": coerce_number(cell_at(cells, 5)),
            "bye_week": coerce_number(cell_at(cells, 2)),
        }
        return RawStatRecord(
            source=self.source_id,
            name=name,
            team=canonical_team(cell_at(cells, 1)),
            position=position,
            stats=stats,
        )


_RED_ZONE_COLUMNS = (
    "red_zone_attempts",
    "red_zone_attempt_pct",
    "red_zone_tds",
    "red_zone_td_pct",
    "red_zone_team_td_pct",
)
_GOAL_LINE_COLUMNS = (
    "goal_line_attempts",
    "goal_line_attempt_pct",
    "goal_line_tds",
    "goal_line_td_pct",
    "goal_line_team_td_pct",
)


class RedZoneReader(TableReader):
    """One file per position group; goal-line columns are optional."""

    def __init__(self, source_id: str, position: str):
        super().__init__(source_id)
        self.position = _fixed_position(position)

    def parse_row(self, header: Sequence[str], cells: Sequence[str]) -> Optional[RawStatRecord]:
        if len(cells) < 6:
            raise RowSkipped(f"expected at least 6 columns, got {len(cells)}")
        name = require_name(cells[0])
        stats = {stat: coerce_number(cell_at(cells, 2 + offset)) for offset, stat in enumerate(_RED_ZONE_COLUMNS)}
        if len(cells) >= 12:
            stats.update(
                {stat: coerce_number(cells[7 + offset]) for offset, stat in enumerate(_GOAL_LINE_COLUMNS)}
            )
        return RawStatRecord(
            source=self.source_id,
            name=name,
            team=canonical_team(cells[1]),
            position=self.position,
            stats=stats,
        )


_RB_SHARE_COLUMNS = (
    "share_rb_points_pct",
    "share_rush_attempt_pct",
    "share_rush_yard_pct",
    "share_rush_td_pct",
    "share_target_pct",
    "share_reception_pct",
)
_RECEIVER_SHARE_COLUMNS = (
    "share_target_pct",
    "share_reception_pct",
    "share_receiving_yard_pct",
    "share_receiving_td_pct",
)


class MarketShareReader(TableReader):
    """``name, team, games`` followed by the position group's share columns."""

    def __init__(self, source_id: str, position: str):
        super().__init__(source_id)
        self.position = _fixed_position(position)
        self.columns = _RB_SHARE_COLUMNS if self.position == "RB" else _RECEIVER_SHARE_COLUMNS

    def parse_row(self, header: Sequence[str], cells: Sequence[str]) -> Optional[RawStatRecord]:
        minimum = 3 + len(self.columns)
        if len(cells) < minimum:
            raise RowSkipped(f"expected at least {minimum} columns, got {len(cells)}")
        name = require_name(cells[0])
        stats = {"games": coerce_number(cells[2])}
        stats.update({stat: coerce_number(cells[3 + offset]) for offset, stat in enumerate(self.columns)})
        return RawStatRecord(
            source=self.source_id,
            name=name,
            team=canonical_team(cells[1]),
            position=self.position,
            stats=stats,
        )
