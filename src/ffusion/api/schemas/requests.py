from __future__ import annotations

from pydantic import BaseModel, Field

from ffusion.models import PlayerHint


class AggregateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    team: str | None = None
    position: str | None = None
    external_id: str | None = None
    week: int = Field(..., ge=1, le=22)

    def hint(self) -> PlayerHint:
        return PlayerHint(name=self.name, team=self.team, position=self.position, external_id=self.external_id)


class AggregateBatchRequest(BaseModel):
    players: list[PlayerHint] = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=22)
