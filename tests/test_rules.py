import datetime as dt
from decimal import Decimal

import pytest

from app.errors import DuplicatePositionError, IncompleteResultsError, PilotNotInRaceError
from app.rules import (
    DEFAULT_POINTS_TABLE,
    Pilot,
    PointsTable,
    Race,
    RaceResult,
    compute_points,
    compute_standings,
    points_for_result,
    race_breakdown,
    reassign_position,
    validate_race_submission,
)


A = Pilot(id=1, name="Carlos Silva", color="#ef4444")
B = Pilot(id=2, name="Ana Costa", color="#3b82f6")
C = Pilot(id=3, name="Joao Santos", color="#10b981")


def _race(race_id, results, pole=None, fastest=None):
    return Race(
        id=race_id,
        date=dt.date(2025, 3, race_id),
        results=tuple(RaceResult(pilot_id=pid, position=pos) for pid, pos in results),
        pole_pilot_id=pole,
        fastest_lap_pilot_id=fastest,
    )


def test_points_table_scale():
    expected = {1: 10, 2: 8, 3: 6, 4: 5, 5: 4, 6: 3, 7: 2, 8: 1, 9: 0, 10: 0}
    for position, points in expected.items():
        assert points_for_result(position, False, False) == points
    assert points_for_result(11, False, False) == 0


def test_out_of_table_positions_score_zero():
    assert points_for_result(0, False, False) == 0
    assert points_for_result(-3, False, False) == 0
    assert points_for_result(None, False, False) == 0
    assert points_for_result("abc", False, False) == 0
    assert points_for_result(float("inf"), False, False) == 0
    assert points_for_result(Decimal("Infinity"), False, False) == 0
    assert points_for_result(float("nan"), False, False) == 0
    # Bonuses still apply without base points.
    assert points_for_result(None, True, True) == 2


def test_fractional_positions_score_zero():
    assert points_for_result(3.9, False, False) == 0
    assert points_for_result(10.5, False, False) == 0
    assert points_for_result(Decimal("2.5"), False, False) == 0
    assert points_for_result(3.0, False, False) == 6
    assert points_for_result("3", False, False) == 6
    assert points_for_result(3.9, True, False) == 1


def test_bonuses_add_one_point_each():
    for position in range(1, 12):
        base = points_for_result(position, False, False)
        assert points_for_result(position, True, False) == base + 1
        assert points_for_result(position, False, True) == base + 1
        assert points_for_result(position, True, True) == base + 2


def test_custom_points_table():
    table = PointsTable(position_points={1: 25, 2: 18}, pole_bonus=3, fastest_lap_bonus=2)
    assert points_for_result(1, True, True, table) == 30
    assert points_for_result(3, False, True, table) == 2
    assert DEFAULT_POINTS_TABLE.position_points[1] == 10


def test_compute_points_ignores_pilot_without_result():
    race = _race(1, [(1, 1)], pole=2, fastest=2)
    assert compute_points(race, 1) == 10
    assert compute_points(race, 2) == 0


def test_standings_example():
    race1 = _race(1, [(1, 1), (2, 2)], pole=1)
    race2 = _race(2, [(1, 3)], fastest=1)

    standings = compute_standings([A, B], [race1, race2])

    assert [(s.pilot, s.total_points) for s in standings] == [(A, 18), (B, 8)]
    assert standings[0].races_scored == 2
    assert standings[1].races_scored == 1


def test_standings_pilot_without_races_has_zero():
    race1 = _race(1, [(1, 1), (2, 2)])
    standings = compute_standings([A, B, C], [race1])
    assert standings[-1].pilot == C
    assert standings[-1].total_points == 0


def test_standings_equal_totals_keep_input_order():
    race1 = _race(1, [(1, 2), (2, 1), (3, 3)])
    race2 = _race(2, [(1, 1), (2, 2), (3, 3)])

    # A and B both reach 18 points.
    assert [s.pilot for s in compute_standings([A, B, C], [race1, race2])] == [A, B, C]
    assert [s.pilot for s in compute_standings([B, A, C], [race1, race2])] == [B, A, C]


def test_standings_match_manual_sum():
    races = [
        _race(1, [(1, 4), (2, 1), (3, 9)], pole=3, fastest=1),
        _race(2, [(1, 2), (3, 1)], pole=1, fastest=3),
        _race(3, [(2, 12), (3, 5)], fastest=2),
    ]
    standings = compute_standings([A, B, C], races)
    for standing in standings:
        manual = sum(compute_points(r, standing.pilot.id) for r in races)
        assert standing.total_points == manual


def test_race_breakdown_sorted_by_position():
    race = _race(1, [(3, 3), (1, 2), (2, 1)], pole=1, fastest=3)
    rows = race_breakdown(race, [A, B, C])
    assert [r["pilot_id"] for r in rows] == [2, 1, 3]
    assert rows[1]["is_pole"] is True
    assert rows[1]["points"] == 9
    assert rows[2]["is_fastest_lap"] is True
    assert rows[2]["points"] == 7


def test_reassign_position_swaps_holder():
    results = (RaceResult(1, 1), RaceResult(2, 2))
    updated = reassign_position(results, pilot_id=1, position=2)
    assert {r.pilot_id: r.position for r in updated} == {1: 2, 2: 1}


def test_reassign_position_to_free_slot():
    results = (RaceResult(1, 1), RaceResult(2, 2))
    updated = reassign_position(results, pilot_id=2, position=5)
    assert {r.pilot_id: r.position for r in updated} == {1: 1, 2: 5}


def test_reassign_position_keeps_bonus_holders():
    race = _race(1, [(1, 1), (2, 2)], pole=1, fastest=2)
    swapped = Race(
        id=race.id,
        date=race.date,
        results=reassign_position(race.results, 1, 2),
        pole_pilot_id=race.pole_pilot_id,
        fastest_lap_pilot_id=race.fastest_lap_pilot_id,
    )
    assert compute_points(swapped, 1) == 8 + 1
    assert compute_points(swapped, 2) == 10 + 1


def test_reassign_position_unknown_pilot():
    with pytest.raises(PilotNotInRaceError):
        reassign_position((RaceResult(1, 1),), pilot_id=9, position=1)


def test_validate_submission_incomplete():
    participants = list(range(1, 11))
    positions = {pid: pid for pid in range(1, 10)}
    with pytest.raises(IncompleteResultsError) as excinfo:
        validate_race_submission(participants, positions)
    assert excinfo.value.missing_pilot_ids == [10]


def test_validate_submission_duplicate_position():
    with pytest.raises(DuplicatePositionError) as excinfo:
        validate_race_submission([1, 2, 3], {1: 1, 2: 2, 3: 2})
    assert excinfo.value.position == 2
    assert excinfo.value.pilot_ids == [2, 3]


def test_validate_submission_orders_by_position():
    results = validate_race_submission([1, 2, 3], {1: 3, 2: 1, 3: 2})
    assert [(r.pilot_id, r.position) for r in results] == [(2, 1), (3, 2), (1, 3)]
