from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app import rules
from app.config import DEFAULT_RACE_LOCATION, PILOT_COLORS
from app.models import Pilot, Race, RaceResult


logger = logging.getLogger(__name__)


def get_or_404(db: Session, model: Any, obj_id: int, label: str):
    obj = db.get(model, obj_id)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def get_pilot_or_404(db: Session, pilot_id: int) -> Pilot:
    return get_or_404(db, Pilot, pilot_id, "Pilot")


def get_race_or_404(db: Session, race_id: int) -> Race:
    return get_or_404(db, Race, race_id, "Race")


def pilot_snapshot(pilot: Pilot) -> rules.Pilot:
    return rules.Pilot(id=pilot.id, name=pilot.name, color=pilot.color)


def race_snapshot(race: Race) -> rules.Race:
    return rules.Race(
        id=race.id,
        date=race.date,
        results=tuple(
            rules.RaceResult(pilot_id=r.pilot_id, position=r.position) for r in race.results
        ),
        pole_pilot_id=race.pole_pilot_id,
        fastest_lap_pilot_id=race.fastest_lap_pilot_id,
        name=race.name,
        location=race.location,
    )


def load_pilots(db: Session) -> list[rules.Pilot]:
    rows = db.scalars(select(Pilot).order_by(Pilot.id.asc())).all()
    return [pilot_snapshot(p) for p in rows]


def load_races(db: Session) -> list[rules.Race]:
    rows = db.scalars(
        select(Race).options(selectinload(Race.results)).order_by(Race.date.asc(), Race.id.asc())
    ).all()
    return [race_snapshot(r) for r in rows]


def _pilot_summary(pilot: Pilot) -> dict[str, Any]:
    return {
        "id": pilot.id,
        "name": pilot.name,
        "color": pilot.color,
        "cached_total_points": pilot.cached_total_points,
    }


def _race_summary(race: Race) -> dict[str, Any]:
    return {
        "id": race.id,
        "name": race.name,
        "date": race.date,
        "location": race.location,
        "pole_pilot_id": race.pole_pilot_id,
        "fastest_lap_pilot_id": race.fastest_lap_pilot_id,
        "result_count": len(race.results),
    }


def list_pilots(db: Session) -> list[dict[str, Any]]:
    rows = db.scalars(select(Pilot).order_by(Pilot.id.asc())).all()
    return [_pilot_summary(p) for p in rows]


def _require_text(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise HTTPException(status_code=400, detail=f"{label} must not be blank")
    return value


def _require_unique_pilot_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Pilot).where(Pilot.name == name)
    if exclude_id is not None:
        query = query.where(Pilot.id != exclude_id)
    if db.scalar(query):
        raise HTTPException(status_code=400, detail="Pilot name already exists")


def create_pilot(db: Session, name: str, color: Optional[str] = None) -> dict[str, Any]:
    name = _require_text(name, "Pilot name")
    _require_unique_pilot_name(db, name)
    if color is None:
        count = db.scalar(select(func.count()).select_from(Pilot)) or 0
        color = PILOT_COLORS[count % len(PILOT_COLORS)]
    pilot = Pilot(name=name, color=color, cached_total_points=0)
    db.add(pilot)
    db.flush()
    logger.info("Pilot %s created (%s)", pilot.id, pilot.name)
    return _pilot_summary(pilot)


def update_pilot(
    db: Session, pilot_id: int, name: Optional[str] = None, color: Optional[str] = None
) -> dict[str, Any]:
    pilot = get_pilot_or_404(db, pilot_id)
    if name is not None:
        name = _require_text(name, "Pilot name")
        _require_unique_pilot_name(db, name, exclude_id=pilot.id)
        if name != pilot.name:
            logger.info("Pilot %s renamed %r -> %r", pilot.id, pilot.name, name)
        pilot.name = name
    if color is not None:
        pilot.color = color
    db.flush()
    return _pilot_summary(pilot)


def delete_pilot(db: Session, pilot_id: int) -> None:
    pilot = get_pilot_or_404(db, pilot_id)
    races = db.scalars(
        select(Race).where(
            (Race.pole_pilot_id == pilot_id) | (Race.fastest_lap_pilot_id == pilot_id)
        )
    ).all()
    for race in races:
        if race.pole_pilot_id == pilot_id:
            race.pole_pilot_id = None
        if race.fastest_lap_pilot_id == pilot_id:
            race.fastest_lap_pilot_id = None
    db.flush()
    db.delete(pilot)
    db.flush()
    db.expire_all()
    logger.info("Pilot %s deleted with %d bonus references cleared", pilot_id, len(races))
    sync_cached_totals(db)


def list_races(db: Session) -> list[dict[str, Any]]:
    rows = db.scalars(
        select(Race).options(selectinload(Race.results)).order_by(Race.date.desc(), Race.id.desc())
    ).all()
    return [_race_summary(r) for r in rows]


def default_race_name(race_date: dt.date) -> str:
    return f"Race {race_date.strftime('%d/%m/%Y')}"


def create_race(
    db: Session,
    race_date: dt.date,
    name: Optional[str] = None,
    location: Optional[str] = None,
) -> dict[str, Any]:
    race = Race(
        date=race_date,
        name=(name or "").strip() or default_race_name(race_date),
        location=(location or "").strip() or DEFAULT_RACE_LOCATION,
    )
    db.add(race)
    db.flush()
    logger.info("Race %s created for %s", race.id, race.date.isoformat())
    return _race_summary(race)


def update_race(
    db: Session,
    race_id: int,
    race_date: Optional[dt.date] = None,
    name: Optional[str] = None,
    location: Optional[str] = None,
) -> dict[str, Any]:
    race = get_race_or_404(db, race_id)
    if name is not None:
        name = _require_text(name, "Race name")
    if location is not None:
        location = _require_text(location, "Race location")
    if race_date is not None:
        # Auto-generated names follow the date.
        if name is None and race.name == default_race_name(race.date):
            race.name = default_race_name(race_date)
        race.date = race_date
    if name is not None:
        race.name = name
    if location is not None:
        race.location = location
    db.flush()
    return _race_summary(race)


def delete_race(db: Session, race_id: int) -> None:
    race = get_race_or_404(db, race_id)
    db.delete(race)
    db.flush()
    db.expire_all()
    logger.info("Race %s deleted", race_id)
    sync_cached_totals(db)


def _replace_results(db: Session, race: Race, results: Iterable[rules.RaceResult]) -> None:
    race.results.clear()
    # Old rows must be gone before new ones claim their positions.
    db.flush()
    for result in results:
        race.results.append(RaceResult(pilot_id=result.pilot_id, position=result.position))
    db.flush()


def _require_known_pilot(pilot_id: Optional[int], known_ids: set[int], label: str) -> None:
    if pilot_id is not None and pilot_id not in known_ids:
        raise HTTPException(status_code=400, detail=f"{label} pilot does not exist")


def submit_race_results(
    db: Session,
    race_id: int,
    entries: Sequence[Tuple[int, Optional[int]]],
    pole_pilot_id: Optional[int] = None,
    fastest_lap_pilot_id: Optional[int] = None,
) -> dict[str, Any]:
    """
    Replace a race's whole result set, pole and fastest lap in one go.
    Every registered pilot takes part and needs a distinct position.
    """
    race = get_race_or_404(db, race_id)
    participant_ids = [p.id for p in load_pilots(db)]
    known_ids = set(participant_ids)

    positions: dict[int, Optional[int]] = {}
    for pilot_id, position in entries:
        if pilot_id not in known_ids:
            raise HTTPException(status_code=400, detail="Some pilot IDs do not exist")
        if pilot_id in positions:
            raise HTTPException(status_code=400, detail="Pilot listed more than once")
        positions[pilot_id] = position
    _require_known_pilot(pole_pilot_id, known_ids, "Pole position")
    _require_known_pilot(fastest_lap_pilot_id, known_ids, "Fastest lap")

    results = rules.validate_race_submission(participant_ids, positions)

    _replace_results(db, race, results)
    race.pole_pilot_id = pole_pilot_id
    race.fastest_lap_pilot_id = fastest_lap_pilot_id
    db.flush()
    logger.info(
        "Race %s results saved: %d pilots, pole=%s, fastest_lap=%s",
        race.id,
        len(results),
        pole_pilot_id,
        fastest_lap_pilot_id,
    )
    sync_cached_totals(db)
    return race_detail(db, race.id)


def reassign_race_position(db: Session, race_id: int, pilot_id: int, position: int) -> dict[str, Any]:
    race = get_race_or_404(db, race_id)
    snapshot = race_snapshot(race)
    updated = rules.reassign_position(snapshot.results, pilot_id, position)
    _replace_results(db, race, updated)
    logger.info("Race %s: pilot %s moved to position %d", race.id, pilot_id, position)
    sync_cached_totals(db)
    return race_detail(db, race.id)


def compute_race_points(db: Session, race_id: int, pilot_id: int) -> int:
    race = get_race_or_404(db, race_id)
    get_pilot_or_404(db, pilot_id)
    return rules.compute_points(race_snapshot(race), pilot_id)


def race_detail(db: Session, race_id: int) -> dict[str, Any]:
    race = get_race_or_404(db, race_id)
    payload = _race_summary(race)
    payload["results"] = rules.race_breakdown(race_snapshot(race), load_pilots(db))
    return payload


def championship_standings(db: Session) -> list[dict[str, Any]]:
    standings = rules.compute_standings(load_pilots(db), load_races(db))
    rows: List[dict[str, Any]] = []
    for idx, standing in enumerate(standings, start=1):
        rows.append(
            {
                "rank": idx,
                "pilot_id": standing.pilot.id,
                "pilot_name": standing.pilot.name,
                "color": standing.pilot.color,
                "total_points": standing.total_points,
                "races_scored": standing.races_scored,
            }
        )
    return rows


def sync_cached_totals(db: Session) -> None:
    """Rewrite every pilot's display total from the full race set."""
    standings = rules.compute_standings(load_pilots(db), load_races(db))
    totals = {s.pilot.id: s.total_points for s in standings}
    for pilot in db.scalars(select(Pilot)).all():
        pilot.cached_total_points = totals.get(pilot.id, 0)
    db.flush()
    logger.debug("Cached totals refreshed for %d pilots", len(totals))
