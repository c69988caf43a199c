"""
Court Flow API Routes
Continuous play: assign a match to a free court, complete it (optionally with
its result), and release cleaning courts. Round robin only.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from smashboard.models.court_state import COURT_READY
from smashboard.routes.tournaments import ScoreSubmissionRequest, get_tournament, http_error
from smashboard.services.errors import SchedulingError
from smashboard.store import TournamentStore, get_store

router = APIRouter()


class CourtCompleteRequest(BaseModel):
    next_status: str = COURT_READY  # "ready" | "cleaning"
    result: Optional[ScoreSubmissionRequest] = None


@router.get("/tournaments/{tournament_id}/courts")
def list_courts(tournament_id: str, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    return {"courts": [c.to_dict() for c in engine.courts.ordered()]}


@router.get("/tournaments/{tournament_id}/courts/queue")
def next_up_queue(tournament_id: str, store: TournamentStore = Depends(get_store)):
    """Waiting participants, highest priority first."""
    engine = get_tournament(tournament_id, store)
    return {"queue": engine.next_up()}


@router.post("/tournaments/{tournament_id}/courts/{court_number}/assign")
def assign_court(tournament_id: str, court_number: int, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    try:
        match = engine.assign_court(court_number)
    except SchedulingError as e:
        raise http_error(e)
    return match.to_dict()


@router.post("/tournaments/{tournament_id}/courts/{court_number}/complete")
def complete_court(
    tournament_id: str,
    court_number: int,
    request: Optional[CourtCompleteRequest] = None,
    store: TournamentStore = Depends(get_store),
):
    engine = get_tournament(tournament_id, store)
    request = request or CourtCompleteRequest()
    submission = request.result.to_submission() if request.result else None
    try:
        match = engine.complete_court(court_number, request.next_status, submission)
    except SchedulingError as e:
        raise http_error(e)
    return {"match": match.to_dict(), "court": engine.courts.get(court_number).to_dict()}


@router.post("/tournaments/{tournament_id}/courts/{court_number}/ready")
def mark_court_ready(tournament_id: str, court_number: int, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    try:
        court = engine.mark_court_ready(court_number)
    except SchedulingError as e:
        raise http_error(e)
    return court.to_dict()
