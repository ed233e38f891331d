from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
import datetime as dt
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.errors import DuplicatePositionError, IncompleteResultsError, PilotNotInRaceError


@dataclass(frozen=True)
class PointsTable:
    position_points: Mapping[int, int]
    pole_bonus: int = 1
    fastest_lap_bonus: int = 1


DEFAULT_POINTS_TABLE = PointsTable(
    position_points=MappingProxyType(
        {1: 10, 2: 8, 3: 6, 4: 5, 5: 4, 6: 3, 7: 2, 8: 1, 9: 0, 10: 0}
    ),
    pole_bonus=1,
    fastest_lap_bonus=1,
)


@dataclass(frozen=True)
class Pilot:
    id: int
    name: str
    color: str = ""


@dataclass(frozen=True)
class RaceResult:
    pilot_id: int
    position: Optional[int]


@dataclass(frozen=True)
class Race:
    id: int
    date: Optional[dt.date]
    results: Tuple[RaceResult, ...] = ()
    pole_pilot_id: Optional[int] = None
    fastest_lap_pilot_id: Optional[int] = None
    name: str = ""
    location: str = ""

    def result_for(self, pilot_id: int) -> Optional[RaceResult]:
        for result in self.results:
            if result.pilot_id == pilot_id:
                return result
        return None


@dataclass(frozen=True)
class Standing:
    pilot: Pilot
    total_points: int
    races_scored: int = 0


def _as_position(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        pos = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # Fractional positions never match the table.
    if isinstance(value, (int, str)) or pos == value:
        return pos
    return None


def points_for_result(
    position: Any,
    is_pole: bool,
    is_fastest_lap: bool,
    table: PointsTable = DEFAULT_POINTS_TABLE,
) -> int:
    """
    Points for a single result.
    Positions missing from the table (or unparseable) score 0 base points.
    """
    pos = _as_position(position)
    points = table.position_points.get(pos, 0) if pos is not None else 0
    if is_pole:
        points += table.pole_bonus
    if is_fastest_lap:
        points += table.fastest_lap_bonus
    return points


def compute_points(race: Race, pilot_id: int, table: PointsTable = DEFAULT_POINTS_TABLE) -> int:
    result = race.result_for(pilot_id)
    if result is None:
        return 0
    return points_for_result(
        result.position,
        race.pole_pilot_id == pilot_id,
        race.fastest_lap_pilot_id == pilot_id,
        table,
    )


def compute_standings(
    pilots: Sequence[Pilot],
    races: Iterable[Race],
    table: PointsTable = DEFAULT_POINTS_TABLE,
) -> List[Standing]:
    """
    Sum every pilot's points over all races, highest total first.
    Equal totals keep the order in which pilots were given.
    """
    totals: Dict[int, int] = defaultdict(int)
    scored: Dict[int, int] = defaultdict(int)
    for race in races:
        for result in race.results:
            totals[result.pilot_id] += compute_points(race, result.pilot_id, table)
            scored[result.pilot_id] += 1

    standings = [
        Standing(pilot=p, total_points=totals.get(p.id, 0), races_scored=scored.get(p.id, 0))
        for p in pilots
    ]
    return sorted(standings, key=lambda s: -s.total_points)


def race_breakdown(
    race: Race,
    pilots: Sequence[Pilot],
    table: PointsTable = DEFAULT_POINTS_TABLE,
) -> List[Dict[str, Any]]:
    by_id = {p.id: p for p in pilots}
    rows: List[Dict[str, Any]] = []
    for result in race.results:
        pilot = by_id.get(result.pilot_id)
        if pilot is None:
            continue
        rows.append(
            {
                "pilot_id": pilot.id,
                "pilot_name": pilot.name,
                "color": pilot.color,
                "position": result.position,
                "is_pole": race.pole_pilot_id == pilot.id,
                "is_fastest_lap": race.fastest_lap_pilot_id == pilot.id,
                "points": compute_points(race, pilot.id, table),
            }
        )
    rows.sort(key=lambda r: (r["position"] is None, r["position"] or 0, r["pilot_id"]))
    return rows


def reassign_position(
    results: Sequence[RaceResult], pilot_id: int, position: int
) -> Tuple[RaceResult, ...]:
    """
    Move a pilot to a new position inside an edit draft.
    Whoever held that position takes the pilot's former one (swap).
    """
    current = next((r for r in results if r.pilot_id == pilot_id), None)
    if current is None:
        raise PilotNotInRaceError(pilot_id)

    previous = current.position
    updated: List[RaceResult] = []
    for r in results:
        if r.pilot_id == pilot_id:
            updated.append(replace(r, position=position))
        elif r.position is not None and r.position == position:
            updated.append(replace(r, position=previous))
        else:
            updated.append(r)
    return tuple(updated)


def validate_race_submission(
    participant_ids: Sequence[int], positions: Mapping[int, Optional[int]]
) -> Tuple[RaceResult, ...]:
    """
    Batch-submit check: every participant needs a position, no position twice.
    Returns the results ordered by position.
    """
    missing = [pid for pid in participant_ids if positions.get(pid) is None]
    if missing:
        raise IncompleteResultsError(missing)

    holders: Dict[int, List[int]] = defaultdict(list)
    for pid in participant_ids:
        holders[positions[pid]].append(pid)
    for pos in sorted(holders):
        if len(holders[pos]) > 1:
            raise DuplicatePositionError(pos, holders[pos])

    results = [RaceResult(pilot_id=pid, position=positions[pid]) for pid in participant_ids]
    results.sort(key=lambda r: r.position)
    return tuple(results)
