from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import ALLOWED_ORIGINS, LOG_LEVEL
from app.database import Base, engine, get_db
from app.errors import DuplicatePositionError, IncompleteResultsError, ResultsValidationError
from app.schemas import (
    PilotCreate,
    PilotUpdate,
    PositionReassign,
    RaceCreate,
    RaceResultsSubmit,
    RaceUpdate,
    StandingOut,
)
from app.services import (
    championship_standings,
    compute_race_points,
    create_pilot,
    create_race,
    delete_pilot,
    delete_race,
    list_pilots,
    list_races,
    race_detail,
    reassign_race_position,
    submit_race_results,
    update_pilot,
    update_race,
)


logger = logging.getLogger(__name__)

app = FastAPI(
    title="Kart Championship - Scoreboard",
    version="1.0.0",
    description=(
        "Race results per pilot, fixed points table with pole-position and "
        "fastest-lap bonuses, and the cumulative championship ranking."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    Base.metadata.create_all(bind=engine)


@app.exception_handler(ResultsValidationError)
async def results_validation_error(request: Request, exc: ResultsValidationError) -> JSONResponse:
    logger.info("Rejected results for %s: %s", request.url.path, exc)
    content: dict = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, IncompleteResultsError):
        content["missing_pilot_ids"] = exc.missing_pilot_ids
    elif isinstance(exc, DuplicatePositionError):
        content["position"] = exc.position
        content["pilot_ids"] = exc.pilot_ids
    return JSONResponse(status_code=400, content=content)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/pilots")
def get_pilots(db: Session = Depends(get_db)):
    return list_pilots(db)


@app.post("/pilots")
def add_pilot(payload: PilotCreate, db: Session = Depends(get_db)):
    pilot = create_pilot(db, payload.name, payload.color)
    db.commit()
    return pilot


@app.patch("/pilots/{pilot_id}")
def edit_pilot(pilot_id: int, payload: PilotUpdate, db: Session = Depends(get_db)):
    pilot = update_pilot(db, pilot_id, name=payload.name, color=payload.color)
    db.commit()
    return pilot


@app.delete("/pilots/{pilot_id}")
def remove_pilot(pilot_id: int, db: Session = Depends(get_db)):
    delete_pilot(db, pilot_id)
    db.commit()
    return {"deleted_pilot_id": pilot_id}


@app.get("/races")
def get_races(db: Session = Depends(get_db)):
    return list_races(db)


@app.post("/races")
def add_race(payload: RaceCreate, db: Session = Depends(get_db)):
    race = create_race(db, payload.date, name=payload.name, location=payload.location)
    db.commit()
    return race


@app.get("/races/{race_id}")
def get_race(race_id: int, db: Session = Depends(get_db)):
    return race_detail(db, race_id)


@app.patch("/races/{race_id}")
def edit_race(race_id: int, payload: RaceUpdate, db: Session = Depends(get_db)):
    race = update_race(
        db, race_id, race_date=payload.date, name=payload.name, location=payload.location
    )
    db.commit()
    return race


@app.delete("/races/{race_id}")
def remove_race(race_id: int, db: Session = Depends(get_db)):
    delete_race(db, race_id)
    db.commit()
    return {"deleted_race_id": race_id}


@app.put("/races/{race_id}/results")
def save_race_results(race_id: int, payload: RaceResultsSubmit, db: Session = Depends(get_db)):
    result = submit_race_results(
        db,
        race_id,
        [(entry.pilot_id, entry.position) for entry in payload.results],
        pole_pilot_id=payload.pole_pilot_id,
        fastest_lap_pilot_id=payload.fastest_lap_pilot_id,
    )
    db.commit()
    return result


@app.post("/races/{race_id}/results/reassign")
def reassign_position(race_id: int, payload: PositionReassign, db: Session = Depends(get_db)):
    result = reassign_race_position(db, race_id, payload.pilot_id, payload.position)
    db.commit()
    return result


@app.get("/races/{race_id}/points/{pilot_id}")
def get_race_points(race_id: int, pilot_id: int, db: Session = Depends(get_db)):
    return {
        "race_id": race_id,
        "pilot_id": pilot_id,
        "points": compute_race_points(db, race_id, pilot_id),
    }


@app.get("/standings", response_model=list[StandingOut])
def get_standings(db: Session = Depends(get_db)):
    return championship_standings(db)
