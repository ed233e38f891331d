"""Input validation errors raised while editing or submitting race results."""

from __future__ import annotations


class ResultsValidationError(Exception):
    """User-correctable problem with a race's result set."""


class IncompleteResultsError(ResultsValidationError):
    def __init__(self, missing_pilot_ids: list[int]) -> None:
        self.missing_pilot_ids = missing_pilot_ids
        super().__init__("Every pilot needs a finishing position")


class DuplicatePositionError(ResultsValidationError):
    def __init__(self, position: int, pilot_ids: list[int]) -> None:
        self.position = position
        self.pilot_ids = pilot_ids
        super().__init__(f"Position {position} is assigned to more than one pilot")


class PilotNotInRaceError(ResultsValidationError):
    def __init__(self, pilot_id: int) -> None:
        self.pilot_id = pilot_id
        super().__init__(f"Pilot {pilot_id} has no result in this race")
