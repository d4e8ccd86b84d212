import pytest
from httpx import ASGITransport, AsyncClient

from ffusion.api import create_app
from ffusion.config import FusionSettings


@pytest.fixture
async def client(make_aggregator):
    app = create_app(make_aggregator(), settings=FusionSettings())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest.mark.anyio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_aggregate_endpoint(client):
    response = await client.post(
        "/players/aggregate",
        json={"name": "Brian Robinson Jr.", "team": "WAS", "position": "RB", "week": 9},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["stats"]["rushing_attempts"] == 120
    assert payload["sources"]["rushing_attempts"] == "nflverse"
    assert payload["context"]["opponent"] == "NYG"
    assert payload["discrepancies"][0]["source"] == "backup"
    assert payload["diagnostics"]["unreadable_sources"] == {"rz_wr": "connection refused"}


@pytest.mark.anyio
async def test_aggregate_unknown_player_is_404(client):
    response = await client.post("/players/aggregate", json={"name": "Nobody", "position": "WR", "week": 2})
    assert response.status_code == 404
    assert response.json()["detail"]["stage"] == "identity"


@pytest.mark.anyio
async def test_aggregate_validates_week(client):
    response = await client.post("/players/aggregate", json={"name": "Brian Robinson", "week": 0})
    assert response.status_code == 422


@pytest.mark.anyio
async def test_aggregate_ingest_failure_is_502(make_aggregator):
    app = create_app(make_aggregator(stats_ok=False), settings=FusionSettings())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.post("/players/aggregate", json={"name": "Brian Robinson", "week": 9})
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["stage"] == "ingest"
    assert detail["source"] == "backup,nflverse"


@pytest.mark.anyio
async def test_aggregate_batch(client):
    response = await client.post(
        "/players/aggregate/batch",
        json={"week": 9, "players": [{"name": "Brian Robinson Jr.", "position": "RB"}, {"name": "Jonathan Taylor"}]},
    )
    assert response.status_code == 200
    assert [item["team"] for item in response.json()] == ["WAS", "IND"]


@pytest.mark.anyio
async def test_score_endpoint(client):
    response = await client.get(
        "/score", params={"position": "QB", "stat": "passing_yards", "value": 286, "games_played": 10}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["percentile_bucket"] == 90
    assert body["comparison"] == "above"
    assert body["color"] == "green"


@pytest.mark.anyio
async def test_score_unknown_stat_is_typed_result(client):
    response = await client.get(
        "/score", params={"position": "QB", "stat": "tackles", "value": 3, "games_played": 10}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "unknown_stat"


@pytest.mark.anyio
async def test_score_insufficient_sample(client):
    response = await client.get(
        "/score", params={"position": "QB", "stat": "interceptions", "value": 0, "games_played": 2}
    )
    assert response.json()["status"] == "insufficient_sample"


@pytest.mark.anyio
async def test_resolve_identity_endpoint(client):
    first = await client.post("/identity/resolve", json={"name": "AJ Brown", "team": "PHI", "position": "WR"})
    second = await client.post("/identity/resolve", json={"name": "A.J. Brown", "position": "WR"})

    assert first.status_code == 200
    assert first.json()["player_id"] == second.json()["player_id"]

    missing = await client.post("/identity/resolve", json={"name": "Unseen Player"})
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_sources_and_benchmarks(client):
    sources = (await client.get("/sources")).json()["sources"]
    by_id = {item["source_id"]: item for item in sources}
    assert by_id["nflverse"]["records"] == 9
    assert by_id["nflverse"]["filtered"] == 1
    assert by_id["rz_wr"]["ok"] is False

    table = (await client.get("/benchmarks")).json()
    assert table["positions"]["QB"]["stats"]["passing_yards"] == [180.0, 235.0, 285.0]
