import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from smashboard.models.player import Player, average_rating

FORMAT_DOUBLES = "doubles"
FORMAT_TEAMED_DOUBLES = "teamed_doubles"
FORMAT_SINGLES = "singles"
GAME_FORMATS = (FORMAT_DOUBLES, FORMAT_TEAMED_DOUBLES, FORMAT_SINGLES)

MATCH_SINGLE = "single_match"
MATCH_BEST_OF_3 = "best_of_3"
MATCH_FORMATS = (MATCH_SINGLE, MATCH_BEST_OF_3)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"

SIDE_1 = "team1"
SIDE_2 = "team2"

COURT_LEVEL_KING = "KING"


def court_level_label(index_in_hierarchy: int) -> str:
    """0 -> KING, 1 -> Level 2, ..."""
    if index_in_hierarchy == 0:
        return COURT_LEVEL_KING
    return f"Level {index_in_hierarchy + 1}"


@dataclass
class Match:
    id: str
    court: int
    game_format: str = FORMAT_DOUBLES
    match_format: str = MATCH_SINGLE

    # Doubles / teamed / KOT
    team1: Optional[List[Player]] = None
    team2: Optional[List[Player]] = None
    team1_id: Optional[str] = None
    team2_id: Optional[str] = None
    team_gender: Optional[str] = None

    # Singles
    player1: Optional[Player] = None
    player2: Optional[Player] = None

    court_level: Optional[str] = None  # "KING" | "Level N" (KOT only)
    skill_level: Optional[str] = None  # label of the group that produced the match
    points_for_win: Optional[int] = None  # KOT only
    diff: float = 0.0

    # Single match totals (games won for best of 3)
    score1: Optional[int] = None
    score2: Optional[int] = None
    game1_score1: Optional[int] = None
    game1_score2: Optional[int] = None
    game2_score1: Optional[int] = None
    game2_score2: Optional[int] = None
    game3_score1: Optional[int] = None
    game3_score2: Optional[int] = None

    status: str = STATUS_PENDING
    winner: Optional[str] = None  # "team1" | "team2"
    points_awarded: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    @property
    def is_singles(self) -> bool:
        return self.game_format == FORMAT_SINGLES

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def side_players(self, side: str) -> List[Player]:
        if self.is_singles:
            p = self.player1 if side == SIDE_1 else self.player2
            return [p] if p is not None else []
        team = self.team1 if side == SIDE_1 else self.team2
        return list(team or [])

    def side_team_id(self, side: str) -> Optional[str]:
        return self.team1_id if side == SIDE_1 else self.team2_id

    def participant_ids(self) -> List[str]:
        """Player ids on both sides."""
        return [p.id for p in self.side_players(SIDE_1) + self.side_players(SIDE_2)]

    def team_ids(self) -> List[str]:
        return [t for t in (self.team1_id, self.team2_id) if t is not None]

    def involves(self, participant_id: str) -> bool:
        return participant_id in self.participant_ids() or participant_id in self.team_ids()

    def side_of(self, participant_id: str) -> Optional[str]:
        """Return which side a player or team id played on, if any."""
        for side in (SIDE_1, SIDE_2):
            if participant_id == self.side_team_id(side):
                return side
            if any(p.id == participant_id for p in self.side_players(side)):
                return side
        return None

    def to_dict(self) -> Dict[str, Any]:
        def _players(players: Optional[List[Player]]) -> List[Dict[str, Any]]:
            return [p.to_dict() for p in players or []]

        return {
            "id": self.id,
            "court": self.court,
            "court_level": self.court_level,
            "game_format": self.game_format,
            "match_format": self.match_format,
            "team1": _players(self.team1) if not self.is_singles else None,
            "team2": _players(self.team2) if not self.is_singles else None,
            "team1_id": self.team1_id,
            "team2_id": self.team2_id,
            "team_gender": self.team_gender,
            "player1": self.player1.to_dict() if self.player1 else None,
            "player2": self.player2.to_dict() if self.player2 else None,
            "skill_level": self.skill_level,
            "points_for_win": self.points_for_win,
            "diff": self.diff,
            "score1": self.score1,
            "score2": self.score2,
            "game1_score1": self.game1_score1,
            "game1_score2": self.game1_score2,
            "game2_score1": self.game2_score1,
            "game2_score2": self.game2_score2,
            "game3_score1": self.game3_score1,
            "game3_score2": self.game3_score2,
            "status": self.status,
            "winner": self.winner,
            "points_awarded": self.points_awarded,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_minutes": self.duration_minutes,
        }


def team_diff(team1: List[Player], team2: List[Player]) -> float:
    return abs(average_rating(team1) - average_rating(team2))


# A round is the ordered list of matches produced by one generation call
Round = List[Match]


def new_match_id() -> str:
    return uuid.uuid4().hex
