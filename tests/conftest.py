from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Callable, Dict

import pytest

from ffusion.aggregator import Aggregator, SourceFeed
from ffusion.errors import SourceUnreadable
from ffusion.ingest import (
    AdpReader,
    DefenseVsPositionReader,
    InMemoryNewsStore,
    RedZoneReader,
    ScheduleReader,
    SeasonStatsReader,
)
from ffusion.merge import SourcePriority
from ffusion.models import NewsItem


ROBINSON_ID = "00-0037746"

WEEKLY_HEADER = (
    "player_id,player_name,player_display_name,position,recent_team,season,week,season_type,"
    "carries,rushing_yards,rushing_tds,receptions,targets,receiving_yards"
)


def weekly_stats_csv() -> str:
    lines = [WEEKLY_HEADER]
    for week in range(1, 9):
        tds = 1 if week <= 4 else 0
        lines.append(
            f"{ROBINSON_ID},B.Robinson,Brian Robinson Jr.,RB,WAS,2024,{week},REG,15,60,{tds},2,3,15"
        )
    lines.append(f"{ROBINSON_ID},B.Robinson,Brian Robinson Jr.,RB,WAS,2024,19,POST,20,90,1,1,1,5")
    lines.append("00-0036223,J.Taylor,Jonathan Taylor,RB,IND,2024,1,REG,20,100,1,2,2,10")
    return "\n".join(lines) + "\n"


def backup_stats_csv() -> str:
    return (
        "player_id,player_display_name,position,recent_team,games,carries,rushing_yards,rushing_tds\n"
        f"{ROBINSON_ID},Brian Robinson Jr.,RB,WAS,8,120,470,4\n"
    )


ADP_CSV = (
    "Name,Team,Bye,Position,Tier,PPR\n"
    "Brian Robinson Jr.,WAS,14,RB22,,85.3\n"
    "Jonathan Taylor,IND,14,RB5,,9.1\n"
)

RED_ZONE_CSV = (
    "Name,Team,RZ Att,RZ Att%,RZ TD,RZ TD%,Team TD%\n"
    "Brian Robinson Jr.,WAS,28,31.5%,5,17.9%,22%\n"
)

SCHEDULE_CSV = "team,week,opponent,home_away\nWAS,9,@NYG,\nIND,9,MIN,home\nWAS,14,BYE,\n"

DEFENSE_CSV = (
    "team,position,points_allowed\n"
    "NYG,RB,28\n"
    "DAL,RB,12\n"
    "MIN,RB,18\n"
    "PHI,RB,22\n"
)


def projections_json() -> str:
    def robinson(week, points, yards):
        return {
            "playerID": "4429795",
            "longName": "Brian Robinson Jr.",
            "team": "WSH",
            "pos": "RB",
            "week": str(week),
            "fantasyPoints": str(points),
            "fantasyPointsDefault": {"standard": str(points - 2), "halfPPR": str(points - 1), "PPR": str(points)},
            "Rushing": {"rushYds": str(yards), "rushTD": "0.5", "carries": "17"},
            "Receiving": {"receptions": "2", "recYds": "", "targets": "3"},
        }

    return json.dumps(
        {
            "statusCode": 200,
            "body": {
                "season": "2024",
                "playerProjections": {
                    "a": robinson(9, 14.5, 72),
                    "b": robinson(10, 11.0, 58),
                    "c": {"longName": "Long Snapper", "pos": "LS", "team": "KC", "week": "9"},
                },
            },
        }
    )


def static_fetcher(payload: str, counter: Dict[str, int] | None = None, key: str = "") -> Callable:
    async def fetch() -> bytes:
        if counter is not None:
            counter[key] = counter.get(key, 0) + 1
        return payload.encode("utf-8")

    return fetch


def failing_fetcher(source_id: str) -> Callable:
    async def fetch() -> bytes:
        raise SourceUnreadable(source_id, "connection refused")

    return fetch


def robinson_news() -> InMemoryNewsStore:
    return InMemoryNewsStore(
        [
            NewsItem(
                external_id=ROBINSON_ID,
                headline="Brian Robinson questionable with ankle injury",
                body="He was limited in practice on Wednesday.",
                published=datetime(2024, 10, 30, 12, 0, tzinfo=timezone.utc),
                category="injury",
                impact="medium",
            )
        ]
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_aggregator():
    def build(
        *,
        stats_ok: bool = True,
        counter: Dict[str, int] | None = None,
        extra_feeds: tuple = (),
        **overrides,
    ) -> Aggregator:
        stats_fetch = static_fetcher(weekly_stats_csv(), counter, "nflverse") if stats_ok else failing_fetcher("nflverse")
        backup_fetch = static_fetcher(backup_stats_csv(), counter, "backup") if stats_ok else failing_fetcher("backup")
        feeds = [
            SourceFeed("nflverse", "stats", SeasonStatsReader("nflverse"), stats_fetch, weekly=True),
            SourceFeed("backup", "stats", SeasonStatsReader("backup"), backup_fetch),
            SourceFeed("adp", "adp", AdpReader("adp"), static_fetcher(ADP_CSV, counter, "adp")),
            SourceFeed("rz_rb", "red_zone", RedZoneReader("rz_rb", "RB"), static_fetcher(RED_ZONE_CSV)),
            SourceFeed("rz_wr", "red_zone", RedZoneReader("rz_wr", "WR"), failing_fetcher("rz_wr")),
        ] + list(extra_feeds)
        options = dict(
            priority=SourcePriority(["nflverse", "backup", "adp"]),
            schedule=ScheduleReader().load_table(SCHEDULE_CSV),
            defenses=DefenseVsPositionReader().load_table(DEFENSE_CSV),
            news=robinson_news(),
            required_categories=["stats"],
        )
        options.update(overrides)
        return Aggregator(feeds, **options)

    return build
