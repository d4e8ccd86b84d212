"""Shared reader machinery: table decoding, coercion and skip accounting."""

from __future__ import annotations

import csv
import logging
import math
import re
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from ffusion.config import canonical_position
from ffusion.errors import RowSkipped, SourceUnreadable
from ffusion.models import RawStatRecord, SkippedRowSample


logger = logging.getLogger(__name__)

T = TypeVar("T")

SKIP_SAMPLE_LIMIT = 5

# abbreviation -> (city, nickname, extra aliases); shared-market teams leave city
# blank so "Los Angeles" or "New York" alone never resolves.
_NFL_TEAMS: dict[str, tuple[str, str, tuple[str, ...]]] = {
    "ARI": ("Arizona", "Cardinals", ("ARZ",)),
    "ATL": ("Atlanta", "Falcons", ()),
    "BAL": ("Baltimore", "Ravens", ("BLT",)),
    "BUF": ("Buffalo", "Bills", ()),
    "CAR": ("Carolina", "Panthers", ()),
    "CHI": ("Chicago", "Bears", ()),
    "CIN": ("Cincinnati", "Bengals", ()),
    "CLE": ("Cleveland", "Browns", ("CLV",)),
    "DAL": ("Dallas", "Cowboys", ()),
    "DEN": ("Denver", "Broncos", ()),
    "DET": ("Detroit", "Lions", ()),
    "GB": ("Green Bay", "Packers", ("GNB",)),
    "HOU": ("Houston", "Texans", ("HST",)),
    "IND": ("Indianapolis", "Colts", ()),
    "JAX": ("Jacksonville", "Jaguars", ("JAC",)),
    "KC": ("Kansas City", "Chiefs", ("KAN",)),
    "LAC": ("", "Chargers", ("LA Chargers", "Los Angeles Chargers", "San Diego", "San Diego Chargers", "SD")),
    "LAR": ("", "Rams", ("LA", "LA Rams", "Los Angeles Rams", "St Louis", "St Louis Rams", "STL")),
    "LV": ("Las Vegas", "Raiders", ("LVR", "OAK", "Oakland", "Oakland Raiders")),
    "MIA": ("Miami", "Dolphins", ()),
    "MIN": ("Minnesota", "Vikings", ()),
    "NE": ("New England", "Patriots", ("NWE",)),
    "NO": ("New Orleans", "Saints", ("NOR",)),
    "NYG": ("", "Giants", ("NY Giants", "New York Giants")),
    "NYJ": ("", "Jets", ("NY Jets", "New York Jets")),
    "PHI": ("Philadelphia", "Eagles", ()),
    "PIT": ("Pittsburgh", "Steelers", ()),
    "SEA": ("Seattle", "Seahawks", ()),
    "SF": ("San Francisco", "49ers", ("SFO",)),
    "TB": ("Tampa Bay", "Buccaneers", ("TAM", "Bucs")),
    "TEN": ("Tennessee", "Titans", ()),
    "WAS": ("Washington", "Commanders", ("WSH", "Washington Football Team")),
}


def _team_token(value: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", value.upper())


def _build_team_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for abbr, (city, nickname, extras) in _NFL_TEAMS.items():
        variants = [abbr, nickname, *extras]
        if city:
            variants.extend([city, f"{city} {nickname}"])
        for variant in variants:
            key = _team_token(variant)
            if key:
                lookup.setdefault(key, abbr)
    return lookup


TEAM_LOOKUP = _build_team_lookup()

FREE_AGENT_TOKENS = {"", "FA", "NONE", "NULL"}


def canonical_team(raw: Optional[str]) -> str:
    """Return the canonical NFL abbreviation, or the upper-cased input when unknown."""

    if raw is None:
        return ""
    text = raw.strip().strip('"').strip()
    token = _team_token(text)
    if token in FREE_AGENT_TOKENS:
        return ""
    return TEAM_LOOKUP.get(token, text.upper())


def clean_cell(value: Optional[str]) -> str:
    if value is None:
        return ""
    return value.strip().strip('"').strip()


def coerce_number(value: Optional[str]) -> float:
    """Coerce a numeric-looking cell; anything unparsable becomes 0.0, never NaN."""

    text = clean_cell(value)
    if not text:
        return 0.0
    text = text.replace(",", "").replace("%", "").replace("$", "").strip()
    try:
        number = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def coerce_int(value: Optional[str]) -> Optional[int]:
    text = clean_cell(value)
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    source: str
    records: Tuple[T, ...]
    skipped: int = 0
    skipped_samples: Tuple[SkippedRowSample, ...] = ()
    filtered: int = 0

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class _ResultBuilder(Generic[T]):
    source: str
    records: List[T] = field(default_factory=list)
    skipped: int = 0
    samples: List[SkippedRowSample] = field(default_factory=list)
    filtered: int = 0

    def add(self, record: T) -> None:
        self.records.append(record)

    def skip(self, line: int, reason: str, raw: str) -> None:
        self.skipped += 1
        if len(self.samples) < SKIP_SAMPLE_LIMIT:
            self.samples.append(SkippedRowSample(line=line, reason=reason, raw=raw))

    def build(self) -> ParseResult[T]:
        if self.skipped:
            logger.debug("%s: skipped %d rows (%s)", self.source, self.skipped, self.samples[0].reason)
        return ParseResult(
            source=self.source,
            records=tuple(self.records),
            skipped=self.skipped,
            skipped_samples=tuple(self.samples),
            filtered=self.filtered,
        )


def decode_payload(payload: str | bytes, source: str) -> str:
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SourceUnreadable(source, f"payload is not valid UTF-8 ({exc.reason})") from exc
    else:
        text = payload.lstrip("\ufeff")
    if not text.strip():
        raise SourceUnreadable(source, "payload is empty")
    return text


def read_table(payload: str | bytes, source: str) -> tuple[list[str], list[tuple[int, list[str]]]]:
    """Split a delimited payload into a normalized header and numbered, non-blank rows."""

    text = decode_payload(payload, source)
    try:
        raw_rows = list(csv.reader(StringIO(text)))
    except csv.Error as exc:
        raise SourceUnreadable(source, f"malformed delimited text: {exc}") from exc

    numbered = [(index, row) for index, row in enumerate(raw_rows, start=1) if any(cell.strip() for cell in row)]
    if not numbered:
        raise SourceUnreadable(source, "payload has no rows")
    _, header_cells = numbered[0]
    header = [clean_cell(cell).lower() for cell in header_cells]
    if not any(header):
        raise SourceUnreadable(source, "missing header row")
    rows = [(line, [clean_cell(cell) for cell in cells]) for line, cells in numbered[1:]]
    return header, rows


class TableReader:
    """Base class for delimited-text readers producing ``RawStatRecord`` rows."""

    def __init__(self, source_id: str):
        self.source_id = source_id

    def parse(self, payload: str | bytes) -> ParseResult[RawStatRecord]:
        header, rows = read_table(payload, self.source_id)
        self.check_header(header)
        builder: _ResultBuilder[RawStatRecord] = _ResultBuilder(self.source_id)
        for line, cells in rows:
            try:
                record = self.parse_row(header, cells)
            except RowSkipped as exc:
                builder.skip(line, exc.reason, ",".join(cells))
                continue
            if record is None:
                builder.filtered += 1
                continue
            builder.add(record)
        return builder.build()

    def parse_file(self, path: Path) -> ParseResult[RawStatRecord]:
        try:
            payload = path.read_bytes()
        except OSError as exc:
            raise SourceUnreadable(self.source_id, f"cannot read {path}: {exc}") from exc
        return self.parse(payload)

    def check_header(self, header: Sequence[str]) -> None:
        """Hook for readers that need specific columns."""

    def parse_row(self, header: Sequence[str], cells: Sequence[str]) -> Optional[RawStatRecord]:
        raise NotImplementedError


def cell_at(cells: Sequence[str], index: int) -> str:
    return cells[index] if index < len(cells) else ""


def require_name(value: str) -> str:
    name = clean_cell(value)
    if not name:
        raise RowSkipped("missing player name")
    return name


def require_position(value: str) -> str:
    raw = clean_cell(value)
    if not raw:
        raise RowSkipped("missing position")
    position = canonical_position(raw)
    if position is None:
        raise RowSkipped(f"unsupported position {raw!r}")
    return position
