"""
Stats Store - per-player / per-team play history

Entries are created lazily on first sight and never deleted, so history
survives a player leaving the roster. Only clear() resets them.
"""

import logging
from typing import Dict, Iterable, List

from smashboard.models.match import Match, SIDE_1, SIDE_2
from smashboard.models.player import Player, Team
from smashboard.models.stats import KOTStats, PlayerStats, TeamStats

logger = logging.getLogger(__name__)


class StatsStore:
    """Play history for round robin (players, teams) and King of Court."""

    def __init__(self):
        self.player_stats: Dict[str, PlayerStats] = {}
        self.team_stats: Dict[str, TeamStats] = {}
        self.kot_stats: Dict[str, KOTStats] = {}

    # ------------------------------------------------------------------ #
    # Lazy creation
    # ------------------------------------------------------------------ #

    def player(self, player_id: str) -> PlayerStats:
        if player_id not in self.player_stats:
            self.player_stats[player_id] = PlayerStats(player_id=player_id)
        return self.player_stats[player_id]

    def team(self, team_id: str) -> TeamStats:
        if team_id not in self.team_stats:
            self.team_stats[team_id] = TeamStats(team_id=team_id)
        return self.team_stats[team_id]

    def kot(self, participant_id: str) -> KOTStats:
        if participant_id not in self.kot_stats:
            self.kot_stats[participant_id] = KOTStats(participant_id=participant_id)
        return self.kot_stats[participant_id]

    def peek_player(self, player_id: str) -> PlayerStats:
        """Stats for player_id without registering a new entry."""
        return self.player_stats.get(player_id) or PlayerStats(player_id=player_id)

    def peek_team(self, team_id: str) -> TeamStats:
        return self.team_stats.get(team_id) or TeamStats(team_id=team_id)

    def ensure_players(self, players: Iterable[Player]) -> None:
        for p in players:
            if p.id not in self.player_stats:
                logger.debug("New player added to stats: %s (%s)", p.name, p.rating)
            self.player(p.id)

    def ensure_teams(self, teams: Iterable[Team]) -> None:
        for t in teams:
            self.team(t.id)

    def ensure_kot(self, participant_ids: Iterable[str]) -> None:
        for pid in participant_ids:
            self.kot(pid)

    # ------------------------------------------------------------------ #
    # Round updates (round robin)
    # ------------------------------------------------------------------ #

    def record_player_round(self, present: List[Player], matches: List[Match], round_index: int) -> None:
        """
        Advance played/sat-out counters for every present player, then bump
        teammate and opponent co-occurrence for every pair in the round.
        """
        playing = set()
        for m in matches:
            playing.update(m.participant_ids())

        for p in present:
            stats = self.player(p.id)
            if p.id in playing:
                stats.rounds_played += 1
                stats.last_played_round = round_index
            else:
                stats.rounds_sat_out += 1

        for m in matches:
            self.record_player_pairings(m)

    def record_player_pairings(self, match: Match) -> None:
        side1 = match.side_players(SIDE_1)
        side2 = match.side_players(SIDE_2)

        for team in (side1, side2):
            if len(team) == 2:
                a, b = team
                self.player(a.id).add_teammate(b.id)
                self.player(b.id).add_teammate(a.id)

        for a in side1:
            for b in side2:
                self.player(a.id).add_opponent(b.id)
                self.player(b.id).add_opponent(a.id)

    def record_team_round(self, teams: List[Team], matches: List[Match], round_index: int) -> None:
        playing = set()
        for m in matches:
            playing.update(m.team_ids())

        for t in teams:
            stats = self.team(t.id)
            if t.id in playing:
                stats.rounds_played += 1
                stats.last_played_round = round_index
            else:
                stats.rounds_sat_out += 1

        for m in matches:
            self.record_team_pairing(m)

    def record_team_pairing(self, match: Match) -> None:
        if match.team1_id is None or match.team2_id is None:
            return
        self.team(match.team1_id).add_opponent(match.team2_id)
        self.team(match.team2_id).add_opponent(match.team1_id)

    # ------------------------------------------------------------------ #
    # Continuous play (one match at a time, no sit-outs)
    # ------------------------------------------------------------------ #

    def record_court_match(self, match: Match, round_index: int) -> None:
        minutes = match.duration_minutes or 0
        if match.team1_id is not None and match.team2_id is not None:
            for team_id in match.team_ids():
                stats = self.team(team_id)
                stats.rounds_played += 1
                stats.last_played_round = round_index
                stats.total_play_minutes += minutes
            self.record_team_pairing(match)
            return

        for player_id in match.participant_ids():
            stats = self.player(player_id)
            stats.rounds_played += 1
            stats.last_played_round = round_index
            stats.total_play_minutes += minutes
        self.record_player_pairings(match)

    # ------------------------------------------------------------------ #
    # Snapshot / reset
    # ------------------------------------------------------------------ #

    def clear(self) -> None:
        self.player_stats.clear()
        self.team_stats.clear()
        self.kot_stats.clear()

    def to_dict(self) -> dict:
        return {
            "players": {pid: s.to_dict() for pid, s in self.player_stats.items()},
            "teams": {tid: s.to_dict() for tid, s in self.team_stats.items()},
            "king_of_court": {kid: s.to_dict() for kid, s in self.kot_stats.items()},
        }
