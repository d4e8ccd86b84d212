from datetime import datetime, timezone

import pytest

from ffusion.context import ContextBuilder, injury_status, rate_difficulty, red_zone_role
from ffusion.ingest import DefenseEntry, DefenseTable, ScheduleEntry, ScheduleTable
from ffusion.models import NewsItem, PlayerIdentity, PlayerRecord


def _record(team="KC", position="WR", **stats):
    identity = PlayerIdentity(
        player_id="wr-test", name="Test Receiver", normalized_name="test receiver", position=position, team=team
    )
    return PlayerRecord(identity=identity, team=team, stats=stats)


@pytest.fixture
def schedule():
    return ScheduleTable(
        [
            ScheduleEntry(team="KC", week=1, opponent="BAL", is_home=True),
            ScheduleEntry(team="KC", week=6, opponent="BYE", is_home=None),
            ScheduleEntry(team="BUF", week=1, opponent="ARI", is_home=True),
        ]
    )


@pytest.fixture
def defenses():
    return DefenseTable(
        [
            DefenseEntry(team="BAL", position="WR", points_allowed=10),
            DefenseEntry(team="ARI", position="WR", points_allowed=25),
            DefenseEntry(team="DEN", position="WR", points_allowed=15),
            DefenseEntry(team="MIA", position="WR", points_allowed=20),
        ]
    )


def test_context_from_schedule(schedule, defenses):
    context = ContextBuilder(schedule, defenses).build_context(_record(), 1)

    assert context.opponent == "BAL"
    assert context.is_home is True
    assert context.difficulty == "hard"
    assert context.is_known


def test_mirrored_entry_resolves_opponent(schedule, defenses):
    context = ContextBuilder(schedule, defenses).build_context(_record(team="ARI"), 1)
    assert context.opponent == "BUF"
    assert context.is_home is False
    assert context.difficulty == "unrated"


def test_missing_schedule_entry_is_unknown_not_empty(schedule):
    context = ContextBuilder(schedule).build_context(_record(), 2)

    assert context.opponent == "UNKNOWN"
    assert context.is_home is None
    assert context.difficulty == "unrated"
    assert not context.is_known


def test_no_schedule_and_no_team_is_unknown():
    context = ContextBuilder().build_context(_record(team=""), 1)
    assert context.opponent == "UNKNOWN"


def test_bye_week(schedule, defenses):
    context = ContextBuilder(schedule, defenses).build_context(_record(), 6)
    assert context.opponent == "BYE"
    assert context.difficulty == "unrated"


def test_without_defense_data_difficulty_is_unrated(schedule):
    assert ContextBuilder(schedule).build_context(_record(), 1).difficulty == "unrated"


@pytest.mark.parametrize(("allowed", "expected"), [(10, "hard"), (13.75, "hard"), (15, "neutral"), (21.25, "neutral"), (25, "easy")])
def test_rate_difficulty_quartiles(allowed, expected):
    assert rate_difficulty(allowed, [10, 15, 20, 25]) == expected


def test_rate_difficulty_needs_two_teams():
    assert rate_difficulty(10, [10]) == "unrated"
    assert rate_difficulty(None, [10, 20]) == "unrated"


def test_context_cached_per_team_week_position(schedule, defenses):
    builder = ContextBuilder(schedule, defenses)
    first = builder.build_context(_record(), 1)
    assert builder.build_context(_record(), 1) is first
    other = ScheduleTable([ScheduleEntry(team="KC", week=1, opponent="DEN", is_home=False)])
    assert builder.build_context(_record(), 1, other).opponent == "DEN"


def test_signals():
    news = [
        NewsItem(
            external_id="1",
            headline="Receiver questionable with ankle injury",
            published=datetime(2024, 10, 2, tzinfo=timezone.utc),
            category="injury",
            impact="medium",
        ),
        NewsItem(external_id="1", headline="Receiver traded to Bills", category="transaction", impact="high"),
    ]
    signals = ContextBuilder().build_signals(_record(red_zone_attempt_pct=30.0, bye_week=12), news)

    assert signals.injury_status == "Questionable"
    assert signals.red_zone_role == "primary"
    assert signals.news_flags == ["transaction"]
    assert signals.bye_week == 12


def test_low_impact_injury_news_ignored():
    item = NewsItem(external_id="1", headline="Out of nowhere: a breakout", category="injury", impact="low")
    assert injury_status([item]) is None


@pytest.mark.parametrize(("share", "role"), [(25, "primary"), (24.9, "secondary"), (10, "secondary"), (9.9, "limited")])
def test_red_zone_role(share, role):
    assert red_zone_role({"red_zone_attempt_pct": share}) == role


def test_red_zone_role_absent():
    assert red_zone_role({}) is None
