"""REST API for the player data fusion engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Request

from ffusion.aggregator import Aggregator, build_aggregator
from ffusion.api.schemas import (
    AggregateBatchRequest,
    AggregateRequest,
    ErrorDetail,
    SourcesResponse,
    SourceStatusResponse,
)
from ffusion.config import FusionSettings
from ffusion.config_loader import FeedProfile
from ffusion.errors import AggregationError, BenchmarkUnknownStat, PlayerNotFound
from ffusion.models import PlayerHint, PlayerIdentity, PlayerRecord, ScoreResult


logger = logging.getLogger(__name__)

_STAGE_STATUS = {"identity": 404, "ingest": 502, "merge": 500}


def _aggregation_http_error(exc: AggregationError) -> HTTPException:
    status = _STAGE_STATUS.get(exc.stage, 500)
    if status >= 500:
        logger.error("Aggregation failed at %s: %s", exc.stage, exc)
    detail = ErrorDetail(stage=exc.stage, source=exc.source, reason=exc.reason)
    return HTTPException(status_code=status, detail=detail.model_dump())


def _aggregator(request: Request) -> Aggregator:
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None:
        raise HTTPException(status_code=503, detail="aggregator is not configured")
    return aggregator


def create_app(aggregator: Optional[Aggregator] = None, settings: Optional[FusionSettings] = None) -> FastAPI:
    settings = settings or FusionSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.aggregator is not None:
            yield
            return
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            if settings.profile_path is not None:
                profile = FeedProfile.load(settings.profile_path)
                app.state.aggregator = await build_aggregator(profile, settings=settings, client=client)
                logger.info("Loaded feed profile %s", settings.profile_path)
            else:
                logger.warning("No feed profile configured; aggregate requests will have no sources")
                app.state.aggregator = Aggregator([], cache_ttl=settings.cache_ttl)
            yield

    app = FastAPI(title="ffusion player data fusion", lifespan=lifespan)
    app.state.aggregator = aggregator

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/players/aggregate", response_model=PlayerRecord)
    async def aggregate(payload: AggregateRequest, request: Request) -> PlayerRecord:
        service = _aggregator(request)
        try:
            return await service.aggregate(payload.hint(), payload.week)
        except AggregationError as exc:
            raise _aggregation_http_error(exc) from exc

    @app.post("/players/aggregate/batch", response_model=list[PlayerRecord])
    async def aggregate_batch(payload: AggregateBatchRequest, request: Request) -> list[PlayerRecord]:
        service = _aggregator(request)
        try:
            return await service.aggregate_many(payload.players, payload.week)
        except AggregationError as exc:
            raise _aggregation_http_error(exc) from exc

    @app.get("/score", response_model=ScoreResult)
    async def score(
        request: Request,
        position: str = Query(..., min_length=1),
        stat: str = Query(..., min_length=1),
        value: float = Query(...),
        games_played: float = Query(..., ge=0),
        lower_is_better: Optional[bool] = Query(None),
    ) -> ScoreResult:
        service = _aggregator(request)
        try:
            return service.score(position, stat, value, games_played, lower_is_better)
        except BenchmarkUnknownStat:
            return ScoreResult(position=position.upper(), stat=stat, value=value, status="unknown_stat")

    @app.post("/identity/resolve", response_model=PlayerIdentity)
    async def resolve_identity(hint: PlayerHint, request: Request) -> PlayerIdentity:
        service = _aggregator(request)
        try:
            return service.resolve_identity(hint)
        except PlayerNotFound as exc:
            raise HTTPException(status_code=404, detail={"name": exc.name, "reason": exc.reason}) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @app.get("/benchmarks")
    async def benchmarks(request: Request) -> dict:
        return _aggregator(request).engine.table.to_dict()

    @app.get("/sources", response_model=SourcesResponse)
    async def sources(request: Request, refresh: bool = False) -> SourcesResponse:
        snapshots = await _aggregator(request).load_sources(refresh=refresh)
        return SourcesResponse(
            sources=[
                SourceStatusResponse(
                    source_id=snapshot.source_id,
                    category=snapshot.category,
                    ok=snapshot.ok,
                    records=len(snapshot.result) if snapshot.result is not None else 0,
                    skipped=snapshot.result.skipped if snapshot.result is not None else 0,
                    filtered=snapshot.result.filtered if snapshot.result is not None else 0,
                    error=snapshot.error,
                )
                for snapshot in snapshots.values()
            ]
        )

    return app


__all__ = ["create_app"]
