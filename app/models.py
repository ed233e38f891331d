from __future__ import annotations

import datetime as dt

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Pilot(Base):
    __tablename__ = "pilots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False)
    # Display mirror of the derived total; standings never read it.
    cached_total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    results: Mapped[list["RaceResult"]] = relationship(
        "RaceResult", back_populates="pilot", cascade="all, delete"
    )


class Race(Base):
    __tablename__ = "races"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(128), nullable=False)
    pole_pilot_id: Mapped[int | None] = mapped_column(ForeignKey("pilots.id"), nullable=True)
    fastest_lap_pilot_id: Mapped[int | None] = mapped_column(ForeignKey("pilots.id"), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    results: Mapped[list["RaceResult"]] = relationship(
        "RaceResult",
        back_populates="race",
        cascade="all, delete-orphan",
        order_by="RaceResult.position",
    )


class RaceResult(Base):
    __tablename__ = "race_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    race_id: Mapped[int] = mapped_column(ForeignKey("races.id"), nullable=False, index=True)
    pilot_id: Mapped[int] = mapped_column(ForeignKey("pilots.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based

    race: Mapped[Race] = relationship("Race", back_populates="results")
    pilot: Mapped[Pilot] = relationship("Pilot", back_populates="results")

    __table_args__ = (
        UniqueConstraint("race_id", "pilot_id", name="uq_race_result_pilot"),
        UniqueConstraint("race_id", "position", name="uq_race_result_position"),
    )
