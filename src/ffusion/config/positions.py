"""Position rules shared by readers, the resolver and the benchmark engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class PositionRules:
    code: str
    aliases: FrozenSet[str]
    stat_groups: Tuple[str, ...]
    red_zone: bool


_POSITION_RULES: Dict[str, PositionRules] = {
    "QB": PositionRules(
        code="QB",
        aliases=frozenset({"QB"}),
        stat_groups=("passing", "rushing"),
        red_zone=True,
    ),
    "RB": PositionRules(
        code="RB",
        aliases=frozenset({"RB"}),
        stat_groups=("rushing", "receiving"),
        red_zone=True,
    ),
    "WR": PositionRules(
        code="WR",
        aliases=frozenset({"WR"}),
        stat_groups=("receiving",),
        red_zone=True,
    ),
    "TE": PositionRules(
        code="TE",
        aliases=frozenset({"TE"}),
        stat_groups=("receiving",),
        red_zone=True,
    ),
    "K": PositionRules(
        code="K",
        aliases=frozenset({"K", "PK"}),
        stat_groups=("kicking",),
        red_zone=False,
    ),
    "DEF": PositionRules(
        code="DEF",
        aliases=frozenset({"DEF", "DST", "D/ST", "D", "DEFENSE"}),
        stat_groups=("defense",),
        red_zone=False,
    ),
}

POSITIONS: Tuple[str, ...] = tuple(_POSITION_RULES)

# Stats where a smaller number is the better outcome.
LOWER_IS_BETTER_STATS: FrozenSet[str] = frozenset(
    {"interceptions", "sacks", "fumbles", "fumbles_lost"}
)


def _build_alias_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for code, rules in _POSITION_RULES.items():
        for alias in rules.aliases:
            lookup.setdefault(alias, code)
    return lookup


_ALIAS_LOOKUP: Mapping[str, str] = _build_alias_lookup()


def iter_positions() -> Iterable[PositionRules]:
    """Return an iterator of all configured position rules."""

    return _POSITION_RULES.values()


def get_position(code: str) -> PositionRules:
    """Fetch rules for a position code, raising KeyError if missing."""

    key = code.strip().upper()
    if key not in _POSITION_RULES:
        raise KeyError(f"No position rules configured for {code!r}")
    return _POSITION_RULES[key]


def canonical_position(raw: Optional[str]) -> Optional[str]:
    """Map a raw position label to its enumerated code, or None when unsupported."""

    if raw is None:
        return None
    token = " ".join(raw.strip().strip('"').upper().split())
    if not token:
        return None
    return _ALIAS_LOOKUP.get(token)


def is_lower_better(stat: str) -> bool:
    return stat in LOWER_IS_BETTER_STATS
