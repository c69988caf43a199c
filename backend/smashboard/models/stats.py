from dataclasses import dataclass, field
from typing import Dict, List, Optional


def _bump(counter: Dict[str, int], key: str, amount: int = 1) -> None:
    counter[key] = counter.get(key, 0) + amount


@dataclass
class PlayerStats:
    player_id: str
    rounds_played: int = 0
    rounds_sat_out: int = 0
    last_played_round: int = -1
    teammate_counts: Dict[str, int] = field(default_factory=dict)
    opponent_counts: Dict[str, int] = field(default_factory=dict)
    total_play_minutes: int = 0

    def times_teamed_with(self, other_id: str) -> int:
        return self.teammate_counts.get(other_id, 0)

    def times_faced(self, other_id: str) -> int:
        return self.opponent_counts.get(other_id, 0)

    def add_teammate(self, other_id: str) -> None:
        _bump(self.teammate_counts, other_id)

    def add_opponent(self, other_id: str) -> None:
        _bump(self.opponent_counts, other_id)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "rounds_played": self.rounds_played,
            "rounds_sat_out": self.rounds_sat_out,
            "last_played_round": self.last_played_round,
            "teammate_counts": dict(self.teammate_counts),
            "opponent_counts": dict(self.opponent_counts),
            "total_play_minutes": self.total_play_minutes,
        }


@dataclass
class TeamStats:
    team_id: str
    rounds_played: int = 0
    rounds_sat_out: int = 0
    last_played_round: int = -1
    opponent_counts: Dict[str, int] = field(default_factory=dict)
    total_play_minutes: int = 0

    def times_faced(self, other_id: str) -> int:
        return self.opponent_counts.get(other_id, 0)

    def add_opponent(self, other_id: str) -> None:
        _bump(self.opponent_counts, other_id)

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "rounds_played": self.rounds_played,
            "rounds_sat_out": self.rounds_sat_out,
            "last_played_round": self.last_played_round,
            "opponent_counts": dict(self.opponent_counts),
            "total_play_minutes": self.total_play_minutes,
        }


@dataclass
class KOTStats:
    """King-of-Court ladder record for a player or a team."""

    participant_id: str
    total_points: int = 0
    king_court_wins: int = 0
    current_court: Optional[int] = None
    court_history: List[int] = field(default_factory=list)
    rounds_played: int = 0
    rounds_sat_out: int = 0
    last_played_round: int = -1

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "total_points": self.total_points,
            "king_court_wins": self.king_court_wins,
            "current_court": self.current_court,
            "court_history": list(self.court_history),
            "rounds_played": self.rounds_played,
            "rounds_sat_out": self.rounds_sat_out,
            "last_played_round": self.last_played_round,
        }
