"""Error taxonomy for the fusion pipeline."""

from __future__ import annotations

from typing import Optional


class FusionError(Exception):
    """Base class for pipeline errors."""


class SourceUnreadable(FusionError):
    """A feed could not be fetched or parsed at all."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class RowSkipped(FusionError):
    """Raised by a reader for one bad row; never escapes ``parse``."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PlayerNotFound(FusionError, LookupError):
    def __init__(self, name: str, reason: str = "no matching identity"):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class BenchmarkUnknownStat(FusionError, LookupError):
    def __init__(self, position: str, stat: str):
        super().__init__(f"no benchmark for stat {stat!r} at position {position!r}")
        self.position = position
        self.stat = stat


class MergeContractError(FusionError, ValueError):
    pass


class AggregationError(FusionError):
    """Hard failure of one ``aggregate`` call."""

    def __init__(self, stage: str, reason: str, source: Optional[str] = None):
        where = f"{stage}/{source}" if source else stage
        super().__init__(f"{where}: {reason}")
        self.stage = stage
        self.source = source
        self.reason = reason

    def to_dict(self) -> dict:
        return {"stage": self.stage, "source": self.source, "reason": self.reason}
