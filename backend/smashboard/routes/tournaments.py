"""
Tournament API Routes
Roster, configuration, round generation, results and read-only views for
in-memory tournaments.
"""

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from smashboard.models.player import Player
from smashboard.models.tournament import TournamentConfig
from smashboard.services.errors import (
    ConfigurationError,
    CourtStateError,
    InsufficientParticipantsError,
    SchedulingError,
    ScoreValidationError,
    UnknownCourtError,
    UnknownMatchError,
)
from smashboard.services.outcome_validator import ScoreSubmission
from smashboard.services.tournament_engine import TournamentEngine
from smashboard.store import TournamentStore, get_store
from smashboard.utils.roster import normalize_gender

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class TournamentConfigRequest(BaseModel):
    court_count: Optional[int] = None
    tournament_type: Optional[str] = None
    game_format: Optional[str] = None
    match_format: Optional[str] = None
    separate_by_skill: Optional[bool] = None
    kot_fixed_partners: Optional[bool] = None
    min_players_per_level: Optional[int] = None
    session_minutes: Optional[int] = None
    minutes_per_round: Optional[int] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PlayerRequest(BaseModel):
    id: Optional[str] = None
    name: str
    rating: float
    gender: Optional[str] = None
    present: bool = True


class PlayersRequest(BaseModel):
    players: List[PlayerRequest]


class BulkRosterRequest(BaseModel):
    text: str


class TeamRequest(BaseModel):
    id: Optional[str] = None
    player1_id: str
    player2_id: str


class TeamsRequest(BaseModel):
    teams: List[TeamRequest]


class ScoreSubmissionRequest(BaseModel):
    winner: Optional[str] = None  # "team1" | "team2"
    score1: Optional[int] = None
    score2: Optional[int] = None
    game1_score1: Optional[int] = None
    game1_score2: Optional[int] = None
    game2_score1: Optional[int] = None
    game2_score2: Optional[int] = None
    game3_score1: Optional[int] = None
    game3_score2: Optional[int] = None

    def to_submission(self) -> ScoreSubmission:
        return ScoreSubmission(**self.model_dump())


# ============================================================================
# Helpers
# ============================================================================


def http_error(exc: SchedulingError) -> HTTPException:
    """Map an engine error onto the HTTP status the UI expects."""
    if isinstance(exc, (UnknownMatchError, UnknownCourtError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (InsufficientParticipantsError, CourtStateError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (ScoreValidationError, ConfigurationError)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def get_tournament(tournament_id: str, store: TournamentStore) -> TournamentEngine:
    engine = store.get(tournament_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return engine


# ============================================================================
# Tournament + configuration
# ============================================================================


@router.post("/tournaments", status_code=201)
def create_tournament(request: TournamentConfigRequest, store: TournamentStore = Depends(get_store)):
    try:
        tournament_config = TournamentConfig(**{**store.default_config().to_dict(), **request.changes()})
        tournament_config.validate()
    except ConfigurationError as e:
        raise http_error(e)
    engine = store.create(tournament_config)
    return {"id": engine.id, "config": engine.config.to_dict()}


@router.get("/tournaments/{tournament_id}")
def get_tournament_snapshot(tournament_id: str, store: TournamentStore = Depends(get_store)):
    return get_tournament(tournament_id, store).snapshot()


@router.put("/tournaments/{tournament_id}/config")
def update_config(
    tournament_id: str,
    request: TournamentConfigRequest,
    store: TournamentStore = Depends(get_store),
):
    engine = get_tournament(tournament_id, store)
    try:
        engine.set_config(**request.changes())
    except ConfigurationError as e:
        raise http_error(e)
    return engine.config.to_dict()


# ============================================================================
# Roster + teams
# ============================================================================


@router.put("/tournaments/{tournament_id}/players")
def replace_players(tournament_id: str, request: PlayersRequest, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    players = [
        Player(
            id=p.id or uuid.uuid4().hex,
            name=p.name.strip(),
            rating=p.rating,
            gender=normalize_gender(p.gender),
            present=p.present,
        )
        for p in request.players
    ]
    try:
        engine.set_players(players)
    except ConfigurationError as e:
        raise http_error(e)
    return {"players": [p.to_dict() for p in engine.players]}


@router.post("/tournaments/{tournament_id}/players/bulk", status_code=201)
def add_players_bulk(tournament_id: str, request: BulkRosterRequest, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    try:
        added = engine.add_players_bulk(request.text)
    except ConfigurationError as e:
        raise http_error(e)
    return {"added": [p.to_dict() for p in added], "total": len(engine.players)}


@router.put("/tournaments/{tournament_id}/teams")
def replace_teams(tournament_id: str, request: TeamsRequest, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    try:
        teams = engine.set_teams([(t.id, t.player1_id, t.player2_id) for t in request.teams])
    except ConfigurationError as e:
        raise http_error(e)
    return {"teams": [t.to_dict() for t in teams]}


# ============================================================================
# Rounds + results
# ============================================================================


@router.post("/tournaments/{tournament_id}/rounds", status_code=201)
def generate_round(tournament_id: str, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    try:
        result = engine.generate_next_round()
    except SchedulingError as e:
        raise http_error(e)
    return {
        "round": engine.current_round,
        "matches": [m.to_dict() for m in result.matches],
        "fairness": result.fairness.to_dict() if result.fairness else None,
        "bumped_players": [
            {"player": b.player.to_dict(), "from": b.original_level, "to": b.bumped_level}
            for b in result.bumped_players
        ],
    }


@router.get("/tournaments/{tournament_id}/rounds")
def list_rounds(tournament_id: str, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    return {
        "current_round": engine.current_round,
        "rounds": [[m.to_dict() for m in r] for r in engine.rounds],
    }


@router.delete("/tournaments/{tournament_id}/rounds")
def clear_rounds(tournament_id: str, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    engine.clear_all_rounds()
    return {"cleared": True}


@router.post("/tournaments/{tournament_id}/rounds/{round_index}/matches/{match_index}/result")
def submit_result(
    tournament_id: str,
    round_index: int,
    match_index: int,
    request: ScoreSubmissionRequest,
    store: TournamentStore = Depends(get_store),
):
    """Record (or correct) a match result. Indices are 0-based."""
    engine = get_tournament(tournament_id, store)
    try:
        match = engine.record_result(round_index, match_index, request.to_submission())
    except SchedulingError as e:
        raise http_error(e)
    return match.to_dict()


# ============================================================================
# Read-only views
# ============================================================================


@router.get("/tournaments/{tournament_id}/stats")
def get_stats(tournament_id: str, store: TournamentStore = Depends(get_store)):
    return get_tournament(tournament_id, store).stats.to_dict()


@router.get("/tournaments/{tournament_id}/leaderboard")
def get_leaderboard(tournament_id: str, store: TournamentStore = Depends(get_store)):
    engine = get_tournament(tournament_id, store)
    return {"tournament_type": engine.config.tournament_type, "entries": engine.leaderboard()}


@router.get("/tournaments/{tournament_id}/export")
def export_results(tournament_id: str, store: TournamentStore = Depends(get_store)):
    return get_tournament(tournament_id, store).export()
