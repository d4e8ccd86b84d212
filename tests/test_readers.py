import json

import pytest

from ffusion.errors import SourceUnreadable
from ffusion.ingest import (
    AdpReader,
    DefenseVsPositionReader,
    MarketShareReader,
    NewsReader,
    ProjectionReader,
    RedZoneReader,
    ScheduleReader,
    SeasonStatsReader,
    assess_impact,
    canonical_team,
    classify_news,
    coerce_number,
    season_totals,
)

from .conftest import ADP_CSV, RED_ZONE_CSV, WEEKLY_HEADER, projections_json, weekly_stats_csv


def _ten_rows_with_gap() -> str:
    lines = ["player_display_name,position,recent_team,week,season_type,passing_yards"]
    for idx in range(1, 11):
        position = "" if idx == 5 else "QB"
        lines.append(f"Passer {idx},{position},KC,1,REG,{200 + idx}")
    return "\n".join(lines)


def test_row_missing_position_is_skipped_not_fatal():
    result = SeasonStatsReader("nflverse").parse(_ten_rows_with_gap())

    assert len(result.records) == 9
    assert result.skipped == 1
    sample = result.skipped_samples[0]
    assert sample.line == 6
    assert sample.reason == "missing position"


def test_unsupported_position_dropped_not_defaulted():
    payload = "player_display_name,position,recent_team\nLong Snapper,LS,KC\nSafety Guy,S,KC\nKicker Guy,PK,KC\n"
    result = SeasonStatsReader("nflverse").parse(payload)

    assert [record.position for record in result.records] == ["K"]
    assert result.skipped == 2
    assert "unsupported position" in result.skipped_samples[0].reason


def test_fullback_and_halfback_rows_are_skipped():
    payload = "player_display_name,position,recent_team\nKyle Juszczyk,FB,SF\nSome Halfback,HB,KC\nReal Back,RB,KC\n"
    result = SeasonStatsReader("nflverse").parse(payload)

    assert [(record.name, record.position) for record in result.records] == [("Real Back", "RB")]
    assert result.skipped == 2


def test_stats_reader_maps_columns_and_filters_postseason():
    result = SeasonStatsReader("nflverse").parse(weekly_stats_csv())

    assert result.filtered == 1
    first = result.records[0]
    assert first.name == "Brian Robinson Jr."
    assert first.display_name == "B.Robinson"
    assert first.external_id == "00-0037746"
    assert first.team == "WAS"
    assert first.week == 1
    assert first.stats["rushing_attempts"] == 15
    assert "carries" not in first.stats
    assert "passing_yards" not in first.stats


def test_stats_reader_coerces_bad_cells_to_zero():
    payload = WEEKLY_HEADER + "\n" + "x1,A.B,Alpha Beta,RB,KC,2024,1,REG,n/a,,1,2,3,4\n"
    record = SeasonStatsReader("nflverse").parse(payload).records[0]

    assert record.stats["rushing_attempts"] == 0.0
    assert record.stats["rushing_yards"] == 0.0


def test_stats_reader_folds_fumble_columns():
    payload = (
        "player_display_name,position,rushing_fumbles_lost,receiving_fumbles_lost\n"
        "Fumbly Back,RB,1,2\n"
    )
    record = SeasonStatsReader("nflverse").parse(payload).records[0]
    assert record.stats["fumbles_lost"] == 3


def test_stats_reader_requires_name_and_position_columns():
    with pytest.raises(SourceUnreadable):
        SeasonStatsReader("nflverse").parse("team,week\nKC,1\n")


@pytest.mark.parametrize("payload", ["", "   \n\n", b"\xff\xfe\x00bad"])
def test_unreadable_payloads_raise(payload):
    with pytest.raises(SourceUnreadable):
        SeasonStatsReader("nflverse").parse(payload)


def test_season_totals_sums_weeks_and_counts_games():
    records = SeasonStatsReader("nflverse").parse(weekly_stats_csv()).records
    totals = {record.name: record for record in season_totals(records)}

    robinson = totals["Brian Robinson Jr."]
    assert robinson.week is None
    assert robinson.stats["games"] == 8
    assert robinson.stats["rushing_attempts"] == 120
    assert robinson.stats["rushing_tds"] == 4
    assert totals["Jonathan Taylor"].stats["games"] == 1


def test_adp_reader_strips_rank_suffix():
    result = AdpReader("adp").parse(ADP_CSV)

    robinson = result.records[0]
    assert robinson.position == "RB"
    assert robinson.stats == {"adp_ppr": 85.3, "bye_week": 14.0}


def test_red_zone_reader_strips_percent():
    record = RedZoneReader("rz_rb", "RB").parse(RED_ZONE_CSV).records[0]

    assert record.position == "RB"
    assert record.stats["red_zone_attempts"] == 28
    assert record.stats["red_zone_attempt_pct"] == pytest.approx(31.5)
    assert "goal_line_attempts" not in record.stats


def test_red_zone_reader_rejects_unknown_position_group():
    with pytest.raises(ValueError):
        RedZoneReader("rz", "LB")


def test_market_share_reader_layouts():
    rb = MarketShareReader("ms_rb", "RB").parse(
        "Name,Team,G,RB Pts%,Att%,Yd%,TD%,Tgt%,Rec%\nBijan Robinson,ATL,17,80%,70%,75%,60%,12%,11%\n"
    )
    wr = MarketShareReader("ms_wr", "WR").parse("Name,Team,G,Tgt%,Rec%,Yd%,TD%\nPuka Nacua,LA,11,30%,28%,33%,20%\n")

    assert rb.records[0].stats["share_rush_attempt_pct"] == 70
    assert rb.records[0].stats["games"] == 17
    assert wr.records[0].team == "LAR"
    assert wr.records[0].stats["share_target_pct"] == 30


def test_market_share_short_row_skipped():
    result = MarketShareReader("ms_wr", "WR").parse("Name,Team,G,Tgt%\nShort Row,KC,3\n")
    assert result.records == ()
    assert result.skipped == 1


def test_schedule_reader_mirrors_and_handles_bye():
    table = ScheduleReader().load_table("team,week,opponent,home_away\nKC,1,@BAL,\nBUF,1,ARI,home\nDAL,7,BYE,\n")

    kc = table.lookup("KC", 1)
    assert kc.opponent == "BAL" and kc.is_home is False
    bal = table.lookup("Baltimore Ravens", 1)
    assert bal.opponent == "KC" and bal.is_home is True
    assert table.lookup("ARI", 1).is_home is False
    assert table.lookup("DAL", 7).is_bye
    assert table.lookup("DAL", 8) is None


def test_schedule_reader_skips_bad_weeks():
    result = ScheduleReader().parse("team,week,opponent\nKC,zero,BAL\nKC,2,CIN\n")
    assert len(result.records) == 1
    assert result.skipped == 1


def test_defense_reader_distribution():
    table = DefenseVsPositionReader().load_table("team,position,points_allowed\nNYG,RB,28\nDAL,RB,12\nJAC,WR,30\n")

    assert table.allowed("Jacksonville Jaguars", "WR") == 30
    assert table.distribution("RB") == [12, 28]
    assert table.allowed("KC", "RB") is None


def test_news_reader_nested_and_flat_ids():
    payload = json.dumps(
        {
            "articles": [
                {
                    "headline": "Star receiver placed on IR after surgery",
                    "description": "Out for season.",
                    "published": "2024-10-01T15:00:00Z",
                    "categories": [{"type": "athlete", "athleteId": 4047646}, {"type": "team"}],
                },
                {"headline": "Running back signs extension", "player_id": "00-0037746"},
                {"headline": "League roundup"},
                "garbage",
            ]
        }
    )
    result = NewsReader().parse(payload)

    assert [item.external_id for item in result.records] == ["4047646", "00-0037746"]
    first = result.records[0]
    assert first.category == "injury"
    assert first.impact == "high"
    assert first.published.year == 2024
    assert result.records[1].category == "transaction"
    assert result.skipped == 2


def test_news_reader_rejects_invalid_json():
    with pytest.raises(SourceUnreadable):
        NewsReader().parse("{not json")


def test_news_classification_uses_word_boundaries():
    assert classify_news("Bucky Irving extends his streak") == "general"
    assert classify_news("Rookie has a breakout game") == "performance"
    assert classify_news("Rookie is out with a knee sprain") == "injury"
    assert assess_impact("Backup role expected", "") == "medium"
    assert assess_impact("Nice catch", "") == "low"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("JAC", "JAX"), ("Washington Commanders", "WAS"), ("LA", "LAR"), ("FA", ""), ("xyz", "XYZ")],
)
def test_canonical_team(raw, expected):
    assert canonical_team(raw) == expected


@pytest.mark.parametrize(("raw", "expected"), [("1,234", 1234.0), ("45%", 45.0), ("$12", 12.0), ("nan", 0.0), ("", 0.0)])
def test_coerce_number(raw, expected):
    assert coerce_number(raw) == expected


def test_projection_reader_emits_prefixed_weekly_stats():
    result = ProjectionReader("tank01").parse(projections_json())

    assert [record.week for record in result.records] == [9, 10]
    assert result.skipped == 1
    assert "unsupported position" in result.skipped_samples[0].reason
    week9 = result.records[0]
    assert week9.team == "WAS"
    assert week9.external_id == "4429795"
    assert week9.season == 2024
    assert week9.stats["proj_fantasy_points_ppr"] == 14.5
    assert week9.stats["proj_fantasy_points_standard"] == 12.5
    assert week9.stats["proj_rushing_yards"] == 72
    assert week9.stats["proj_rushing_attempts"] == 17
    assert "proj_receiving_yards" not in week9.stats
    assert "proj_passing_yards" not in week9.stats


def test_projection_reader_uses_body_week_for_list_payloads():
    payload = json.dumps(
        {"body": {"week": "4", "playerProjections": [{"longName": "Some Kicker", "pos": "PK", "team": "KC"}]}}
    )
    [record] = ProjectionReader("tank01").parse(payload).records

    assert record.week == 4
    assert record.position == "K"
    assert record.stats["proj_fantasy_points"] == 0


@pytest.mark.parametrize("payload", ['{"statusCode": 500}', "[1, 2]", "not json"])
def test_projection_reader_rejects_unusable_payloads(payload):
    with pytest.raises(SourceUnreadable):
        ProjectionReader("tank01").parse(payload)
