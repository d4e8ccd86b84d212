import itertools

import pytest

from ffusion.errors import MergeContractError
from ffusion.merge import SourcePriority, merge
from ffusion.models import PlayerIdentity, RawStatRecord


ROBINSON = PlayerIdentity(
    player_id="rb-brian-robinson-1",
    name="Brian Robinson Jr.",
    normalized_name="brian robinson",
    position="RB",
    team="WAS",
)


def _record(source: str, **stats: float) -> RawStatRecord:
    return RawStatRecord(source=source, name="Brian Robinson Jr.", team="WAS", position="RB", stats=stats)


def test_agreeing_sources_keep_first_reporter():
    records = [_record("A", rushing_attempts=24), _record("B", rushing_attempts=24)]

    merged = merge(ROBINSON, records, priority=SourcePriority(["A", "B"]))

    assert merged.stats["rushing_attempts"] == 24
    assert merged.sources["rushing_attempts"] == "A"
    assert merged.discrepancies_for("rushing_attempts") == []


def test_agreement_within_tolerance():
    records = [_record("A", share=0.1 + 0.2), _record("B", share=0.3)]
    merged = merge(ROBINSON, records, priority=SourcePriority(["A", "B"]))
    assert merged.discrepancies == []


def test_conflict_prefers_priority_and_records_loser():
    records = [_record("B", rushing_tds=6), _record("A", rushing_tds=7)]

    merged = merge(ROBINSON, records, priority=SourcePriority(["A", "B"]))

    assert merged.stats["rushing_tds"] == 7
    assert merged.sources["rushing_tds"] == "A"
    [discrepancy] = merged.discrepancies
    assert (discrepancy.stat, discrepancy.rejected, discrepancy.source) == ("rushing_tds", 6, "B")
    assert discrepancy.accepted == 7
    assert discrepancy.accepted_source == "A"


def test_single_reporter_used_even_if_low_priority():
    records = [_record("A", rushing_yards=900), _record("C", red_zone_attempts=40)]
    merged = merge(ROBINSON, records, priority=SourcePriority(["A", "B"]))
    assert merged.stats["red_zone_attempts"] == 40
    assert merged.sources["red_zone_attempts"] == "C"


def test_missing_stat_is_absent_and_zero_is_kept():
    records = [_record("A", receptions=0, rushing_yards=55)]
    merged = merge(ROBINSON, records, priority=SourcePriority(["A"]))

    assert "targets" not in merged.stats
    assert "receptions" in merged.stats
    assert merged.stats["receptions"] == 0


def test_merge_is_order_independent():
    records = [
        _record("A", rushing_tds=7, rushing_yards=1000),
        _record("B", rushing_tds=6, targets=40),
        _record("C", rushing_tds=5, targets=41, rushing_yards=1000),
        _record("zeta", receptions=30),
        _record("alpha", receptions=31),
    ]
    priority = SourcePriority(["A", "B", "C"])
    expected = merge(ROBINSON, records, priority=priority)

    for ordering in itertools.permutations(records):
        assert merge(ROBINSON, ordering, priority=priority) == expected

    assert expected.stats["receptions"] == 31
    assert expected.sources["receptions"] == "alpha"
    assert len(expected.discrepancies_for("rushing_tds")) == 2


def test_unlisted_sources_rank_after_listed_by_name():
    priority = SourcePriority(["nflverse"])
    assert list(priority.sort(["zeta", "nflverse", "alpha"])) == ["nflverse", "alpha", "zeta"]


def test_team_taken_from_highest_priority_reporter():
    records = [
        RawStatRecord(source="B", name="Brian Robinson Jr.", team="NE", position="RB", stats={}),
        RawStatRecord(source="A", name="Brian Robinson Jr.", team="", position="RB", stats={}),
    ]
    merged = merge(ROBINSON, records, priority=SourcePriority(["A", "B"]), week=3)
    assert merged.team == "NE"
    assert merged.week == 3


def test_unsupported_identity_position_is_contract_error():
    bad = ROBINSON.model_copy(update={"position": "LB"})
    with pytest.raises(MergeContractError):
        merge(bad, [_record("A", tackles=5)])
