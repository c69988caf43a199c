"""
Read-only views over the tournament snapshot: leaderboards and the flat
export payload consumed by the reporting collaborator.

Nothing here mutates stats; calling a view twice with no mutation in
between returns identical output.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from smashboard.models.match import Match, Round
from smashboard.models.player import Player
from smashboard.models.stats import KOTStats, PlayerStats, TeamStats
from smashboard.services.stats_store import StatsStore

# (id, display name)
Entrant = Tuple[str, str]


def kot_leaderboard(entrants: Sequence[Entrant], stats: StatsStore) -> List[Dict[str, Any]]:
    """Sorted by total points, then King court wins."""
    rows = []
    for entrant_id, name in entrants:
        s = stats.kot_stats.get(entrant_id) or KOTStats(participant_id=entrant_id)
        rows.append(
            {
                "id": entrant_id,
                "name": name,
                "total_points": s.total_points,
                "king_court_wins": s.king_court_wins,
                "current_court": s.current_court,
                "rounds_played": s.rounds_played,
                "rounds_sat_out": s.rounds_sat_out,
                "court_history": list(s.court_history),
            }
        )
    rows.sort(key=lambda r: (-r["total_points"], -r["king_court_wins"]))
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return rows


def round_robin_leaderboard(
    entrants: Sequence[Entrant],
    all_stats: Dict[str, Any],
    total_rounds: int,
    teams: bool = False,
) -> List[Dict[str, Any]]:
    """Sorted by rounds sat out ascending, then rounds played descending."""
    rows = []
    for entrant_id, name in entrants:
        s = all_stats.get(entrant_id)
        if s is None:
            s = TeamStats(team_id=entrant_id) if teams else PlayerStats(player_id=entrant_id)
        rows.append(
            {
                "id": entrant_id,
                "name": name,
                "rounds_played": s.rounds_played,
                "rounds_sat_out": s.rounds_sat_out,
                "total_play_minutes": s.total_play_minutes,
                "total_rounds": total_rounds,
            }
        )
    rows.sort(key=lambda r: (r["rounds_sat_out"], -r["rounds_played"]))
    return rows


# ============================================================================
# Export payload
# ============================================================================


def _blank(value: Optional[Any]) -> Any:
    return "" if value is None else value


def _roster(players: Sequence[Player]) -> List[Dict[str, Any]]:
    return [{"id": p.id, "name": p.name, "rating": p.rating} for p in players]


def _export_row(round_number: int, match: Match) -> Dict[str, Any]:
    if match.is_singles:
        team1 = [match.player1] if match.player1 else []
        team2 = [match.player2] if match.player2 else []
    else:
        team1 = match.team1 or []
        team2 = match.team2 or []

    return {
        "round": round_number,
        "court": match.court,
        "court_level": match.court_level,
        "game_format": match.game_format,
        "team1": _roster(team1),
        "team2": _roster(team2),
        "score1": _blank(match.score1),
        "score2": _blank(match.score2),
        "game1_score1": _blank(match.game1_score1),
        "game1_score2": _blank(match.game1_score2),
        "game2_score1": _blank(match.game2_score1),
        "game2_score2": _blank(match.game2_score2),
        "game3_score1": _blank(match.game3_score1),
        "game3_score2": _blank(match.game3_score2),
        "match_format": match.match_format,
        "status": match.status,
        "winner": match.winner,
        "points_awarded": match.points_awarded,
        "start_time": match.start_time.isoformat() if match.start_time else "",
        "end_time": match.end_time.isoformat() if match.end_time else "",
        "duration_minutes": _blank(match.duration_minutes),
    }


def build_results(
    players: Sequence[Player],
    rounds: Sequence[Round],
    meta: Dict[str, Any],
    generated_at: datetime,
    kot_stats: Optional[Dict[str, KOTStats]] = None,
) -> Dict[str, Any]:
    """One row per match across every round, plus roster and KOT standings."""
    matches = [
        _export_row(round_index + 1, match)
        for round_index, round_matches in enumerate(rounds)
        for match in round_matches
    ]
    return {
        "generated_at": generated_at.isoformat(),
        "players": [p.to_dict() for p in players],
        "matches": matches,
        "meta": dict(meta),
        "king_of_court_stats": (
            {pid: s.to_dict() for pid, s in kot_stats.items()} if kot_stats is not None else None
        ),
    }
