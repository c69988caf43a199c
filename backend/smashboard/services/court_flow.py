"""
Court Flow Controller - continuous (non round-locked) play, round robin only.

    ready --assign--> playing --complete--> cleaning --mark_ready--> ready
                               +--complete(next_status=ready)--> ready

Anyone referenced by a match on a court in playing or cleaning state is on
court and cannot be assigned anywhere else.
"""

import logging
import random
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from smashboard.models.court_state import (
    COURT_CLEANING,
    COURT_PLAYING,
    COURT_READY,
    CourtState,
)
from smashboard.models.match import (
    FORMAT_DOUBLES,
    FORMAT_SINGLES,
    FORMAT_TEAMED_DOUBLES,
    Match,
    new_match_id,
    team_diff,
)
from smashboard.models.player import TEAM_GENDER_LABELS, TEAM_GENDER_ORDER, Player, Team
from smashboard.services.errors import CourtStateError, InsufficientParticipantsError, UnknownCourtError
from smashboard.services.fairness import court_flow_order, next_up_priority
from smashboard.services.pairing import GROUP_SIZE, find_best_team_split, select_best_group_of_four
from smashboard.services.round_robin import SKILL_SEPARATION_MIN_PLAYERS, make_team_match
from smashboard.services.skill_grouping import can_play_together
from smashboard.services.stats_store import StatsStore

logger = logging.getLogger(__name__)

# Opponent scoring for teamed assignment
RATING_GAP_WEIGHT = 10
REMATCH_WEIGHT = 20
FRESHNESS_BASELINE = 5
FRESHNESS_WEIGHT = 2


class CourtFlowController:
    """Per-court state machine over courts 1..court_count."""

    def __init__(self, court_count: int):
        self.courts: Dict[int, CourtState] = {}
        self.reset(court_count)

    def reset(self, court_count: int) -> None:
        """Re-initialise every court to ready. In-progress matches are dropped."""
        self.courts = {n: CourtState(court_number=n) for n in range(1, court_count + 1)}

    def resize(self, court_count: int) -> None:
        """Keep courts 1..court_count as they are; add new courts as ready, drop the rest."""
        dropped = [n for n in self.courts if n > court_count and self.courts[n].current_match is not None]
        if dropped:
            logger.warning("Dropping matches on removed courts: %s", dropped)
        self.courts = {
            n: self.courts.get(n) or CourtState(court_number=n) for n in range(1, court_count + 1)
        }

    def get(self, court_number: int) -> CourtState:
        court = self.courts.get(court_number)
        if court is None:
            raise UnknownCourtError(f"Court {court_number} does not exist")
        return court

    def ordered(self) -> List[CourtState]:
        return [self.courts[n] for n in sorted(self.courts)]

    # ------------------------------------------------------------------ #
    # Eligibility
    # ------------------------------------------------------------------ #

    def on_court_ids(self) -> Set[str]:
        """Player and team ids held by playing or cleaning courts."""
        ids: Set[str] = set()
        for court in self.courts.values():
            if court.is_blocking:
                ids.update(court.current_match.participant_ids())
                ids.update(court.current_match.team_ids())
        return ids

    def available_players(self, present: List[Player]) -> List[Player]:
        busy = self.on_court_ids()
        return [p for p in present if p.id not in busy]

    def available_teams(self, teams: List[Team]) -> List[Team]:
        busy = self.on_court_ids()
        return [
            t for t in teams
            if t.id not in busy and t.player1.id not in busy and t.player2.id not in busy
        ]

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def assign(
        self,
        court_number: int,
        game_format: str,
        present: List[Player],
        teams: List[Team],
        stats: StatsStore,
        rng: random.Random,
        match_format: str,
        separate_by_skill: bool = True,
        now: Optional[datetime] = None,
    ) -> Match:
        """ready -> playing with a freshly selected match."""
        court = self.get(court_number)
        if court.status != COURT_READY:
            raise CourtStateError(f"Court {court_number} is {court.status}, not ready")

        if game_format == FORMAT_SINGLES:
            match = self._select_singles(present, stats, separate_by_skill)
        elif game_format == FORMAT_TEAMED_DOUBLES:
            match = self._select_teamed(teams, stats)
        else:
            match = self._select_doubles(present, stats, rng, separate_by_skill)

        match.court = court_number
        match.match_format = match_format
        match.start_time = now
        court.status = COURT_PLAYING
        court.current_match = match
        logger.info("Court %d: assigned %s match %s", court_number, game_format, match.id)
        return match

    def complete(self, court_number: int, next_status: str = COURT_READY) -> Match:
        """
        playing -> cleaning | ready. Returns the finished match.

        A cleaning court keeps its match so the participants stay blocked
        until mark_ready.
        """
        if next_status not in (COURT_READY, COURT_CLEANING):
            raise CourtStateError(f"Invalid next status: {next_status}")
        court = self.get(court_number)
        if court.status != COURT_PLAYING or court.current_match is None:
            raise CourtStateError(f"Court {court_number} has no match in progress")

        match = court.current_match
        court.status = next_status
        if next_status == COURT_READY:
            court.current_match = None
        logger.info("Court %d: match %s complete, court now %s", court_number, match.id, next_status)
        return match

    def mark_ready(self, court_number: int) -> CourtState:
        court = self.get(court_number)
        if court.status == COURT_PLAYING:
            raise CourtStateError(f"Court {court_number} has a match in progress")
        court.status = COURT_READY
        court.current_match = None
        return court

    # ------------------------------------------------------------------ #
    # Selection heuristics
    # ------------------------------------------------------------------ #

    def _select_singles(self, present: List[Player], stats: StatsStore, separate_by_skill: bool) -> Match:
        available = self.available_players(present)
        if len(available) < 2:
            raise InsufficientParticipantsError(
                "Need at least 2 available players (not currently playing)", required=2, available=len(available)
            )
        stats.ensure_players(available)
        ordered = court_flow_order(available, lambda p: stats.player(p.id))

        player1 = ordered[0]
        player2 = ordered[1]
        if separate_by_skill and len(present) >= SKILL_SEPARATION_MIN_PLAYERS:
            compatible = [p for p in ordered[1:] if can_play_together(player1, p)]
            if compatible:
                player2 = compatible[0]
            else:
                logger.warning("No skill-compatible opponent for %s, using mixed pairing", player1.name)

        return Match(
            id=new_match_id(),
            court=0,
            game_format=FORMAT_SINGLES,
            player1=player1,
            player2=player2,
            diff=abs(player1.rating - player2.rating),
        )

    def _select_doubles(
        self, present: List[Player], stats: StatsStore, rng: random.Random, separate_by_skill: bool
    ) -> Match:
        available = self.available_players(present)
        if len(available) < GROUP_SIZE:
            raise InsufficientParticipantsError(
                "Need at least 4 available players (not currently playing)",
                required=GROUP_SIZE,
                available=len(available),
            )
        stats.ensure_players(available)
        ordered = court_flow_order(available, lambda p: stats.player(p.id))

        pool = ordered
        if separate_by_skill and len(present) >= SKILL_SEPARATION_MIN_PLAYERS:
            compatible = [p for p in ordered if can_play_together(ordered[0], p)]
            if len(compatible) >= GROUP_SIZE:
                pool = compatible
            else:
                logger.warning("Not enough skill-compatible players for strict separation, using mixed selection")

        group = select_best_group_of_four(pool, stats.player_stats, rng)
        split = find_best_team_split(group, stats.player_stats)
        return Match(
            id=new_match_id(),
            court=0,
            game_format=FORMAT_DOUBLES,
            team1=split.team1,
            team2=split.team2,
            diff=team_diff(split.team1, split.team2),
        )

    def _select_teamed(self, teams: List[Team], stats: StatsStore) -> Match:
        available = self.available_teams(teams)
        if len(available) < 2:
            raise InsufficientParticipantsError(
                "Need at least 2 available teams (not currently playing)", required=2, available=len(available)
            )

        selected: List[Team] = []
        for gender in TEAM_GENDER_ORDER:
            selected = [t for t in available if t.gender == gender]
            if len(selected) >= 2:
                break
        else:
            raise InsufficientParticipantsError(
                "Need at least 2 teams of the same gender type available", required=2, available=0
            )

        stats.ensure_teams(selected)
        ordered = court_flow_order(selected, lambda t: stats.team(t.id))
        team1 = ordered[0]
        team2 = ordered[1]
        if len(ordered) >= 3:
            history = stats.team(team1.id)

            def _opponent_score(t: Team) -> float:
                return (
                    abs(team1.avg_rating - t.avg_rating) * RATING_GAP_WEIGHT
                    + history.times_faced(t.id) * REMATCH_WEIGHT
                    - (FRESHNESS_BASELINE - stats.team(t.id).rounds_played) * FRESHNESS_WEIGHT
                )

            team2 = min(ordered[1:], key=_opponent_score)

        return make_team_match(team1, team2, 0, "", skill_level=TEAM_GENDER_LABELS[team1.gender])

    # ------------------------------------------------------------------ #
    # Next-up queue
    # ------------------------------------------------------------------ #

    def next_up(
        self,
        game_format: str,
        present: List[Player],
        teams: List[Team],
        stats: StatsStore,
    ) -> List[Tuple[object, int]]:
        """Waiting participants, highest priority first."""
        if game_format == FORMAT_TEAMED_DOUBLES:
            waiting = [(t, next_up_priority(stats.peek_team(t.id))) for t in self.available_teams(teams)]
        else:
            waiting = [(p, next_up_priority(stats.peek_player(p.id))) for p in self.available_players(present)]
        waiting.sort(key=lambda item: item[1], reverse=True)
        return waiting
