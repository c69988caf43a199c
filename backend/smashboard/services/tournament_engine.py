"""
Tournament Engine - owns one tournament's in-memory snapshot.

Roster, config, teams, rounds, stats and court states live here; every public
method is one user action that runs to completion. Checks that can fail are
done before anything is mutated, so a refused action leaves the snapshot
exactly as it was.

Randomness and time are injected (rng, clock) so that runs are replayable.
"""

import logging
import random
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from smashboard.models.court_state import COURT_PLAYING, COURT_READY, CourtState
from smashboard.models.match import FORMAT_SINGLES, FORMAT_TEAMED_DOUBLES, Match, Round
from smashboard.models.player import Player, Team
from smashboard.models.tournament import TournamentConfig
from smashboard.services import king_of_court, round_robin
from smashboard.services.court_flow import CourtFlowController
from smashboard.services.errors import (
    ConfigurationError,
    CourtStateError,
    InsufficientParticipantsError,
    UnknownMatchError,
)
from smashboard.services.fairness import FairnessReport
from smashboard.services.leaderboard import build_results, kot_leaderboard, round_robin_leaderboard
from smashboard.services.outcome_validator import ScoreSubmission, record_outcome, validate_submission
from smashboard.services.round_robin import RoundResult
from smashboard.services.stats_store import StatsStore
from smashboard.utils.roster import is_valid_rating, parse_bulk_roster

logger = logging.getLogger(__name__)

# (team id or None, player1 id, player2 id)
TeamSpec = Tuple[Optional[str], str, str]


class TournamentEngine:
    def __init__(
        self,
        config: Optional[TournamentConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        tournament_id: Optional[str] = None,
    ):
        self.id = tournament_id or uuid.uuid4().hex
        self.config = config or TournamentConfig()
        self.config.validate()
        self.rng = rng or random.Random()
        self.clock = clock

        self.players: List[Player] = []
        self.teams: List[Team] = []
        self.kot_auto_teams: List[Team] = []
        self.rounds: List[Round] = []
        self.current_round = 0
        self.locked = False
        self.stats = StatsStore()
        self.courts = CourtFlowController(self.config.court_count)
        self.last_fairness: Optional[FairnessReport] = None
        self.updated_at = self.clock()

    def _touch(self) -> None:
        self.updated_at = self.clock()

    # ------------------------------------------------------------------ #
    # Roster
    # ------------------------------------------------------------------ #

    @property
    def present_players(self) -> List[Player]:
        return [p for p in self.players if p.present]

    def _present_ids(self) -> set:
        return {p.id for p in self.present_players}

    def _present(self, teams: Sequence[Team]) -> List[Team]:
        """A team is present when both of its players are on the roster and present."""
        present = self._present_ids()
        return [t for t in teams if t.player1.id in present and t.player2.id in present]

    @property
    def present_teams(self) -> List[Team]:
        return self._present(self.teams)

    def set_players(self, players: List[Player]) -> List[Player]:
        """
        Replace the roster. Stats for players no longer listed are kept.

        Raises:
            ConfigurationError: duplicate id, blank name or rating outside 2.0-5.5
        """
        seen = set()
        for p in players:
            if p.id in seen:
                raise ConfigurationError(f"Duplicate player id: {p.id}")
            seen.add(p.id)
            if not p.name or not p.name.strip():
                raise ConfigurationError("Player name is required")
            if not is_valid_rating(float(p.rating)):
                raise ConfigurationError(f"{p.name}: rating must be between 2.0 and 5.5, got {p.rating}")

        self.players = list(players)
        by_id = {p.id: p for p in self.players}
        # Keep team members pointing at the current roster entries
        self.teams = [
            Team.from_players(t.id, by_id[t.player1.id], by_id[t.player2.id], t.is_auto_generated)
            if t.player1.id in by_id and t.player2.id in by_id
            else t
            for t in self.teams
        ]
        self._touch()
        return self.players

    def add_players_bulk(self, text: str) -> List[Player]:
        added = parse_bulk_roster(text)
        if not added:
            raise ConfigurationError("Nothing to add. Use: Name, Rating, Gender")
        self.players.extend(added)
        logger.info("Added %d players from bulk roster", len(added))
        self._touch()
        return added

    def set_teams(self, specs: List[TeamSpec]) -> List[Team]:
        """
        Replace the explicit team list used by teamed doubles.

        Raises:
            ConfigurationError: unknown player, player paired with self, or
                player in more than one team
        """
        by_id = {p.id: p for p in self.players}
        used = set()
        teams: List[Team] = []
        for team_id, p1_id, p2_id in specs:
            for pid in (p1_id, p2_id):
                if pid not in by_id:
                    raise ConfigurationError(f"Unknown player: {pid}")
                if pid in used:
                    raise ConfigurationError(f"{by_id[pid].name} is already on a team")
            if p1_id == p2_id:
                raise ConfigurationError("A team needs two different players")
            used.update((p1_id, p2_id))
            teams.append(Team.from_players(team_id or uuid.uuid4().hex, by_id[p1_id], by_id[p2_id]))

        self.teams = teams
        self._touch()
        return self.teams

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def set_config(self, **changes: Any) -> TournamentConfig:
        """
        Apply config changes. A tournament type or game format change clears
        all rounds when any exist. A court count change keeps the surviving
        courts as they are and drops any match on a removed court.
        """
        new_config = replace(self.config, **changes)
        new_config.validate()

        courts_changed = new_config.court_count != self.config.court_count
        format_changed = (
            new_config.tournament_type != self.config.tournament_type
            or new_config.game_format != self.config.game_format
        )
        if courts_changed and self.locked and not format_changed:
            raise ConfigurationError("Court count is locked while rounds exist; clear all rounds first")

        self.config = new_config
        if format_changed:
            if self.rounds:
                logger.warning("Format changed with %d rounds played; clearing rounds", len(self.rounds))
                self.clear_all_rounds()
            self.kot_auto_teams = []
        if courts_changed:
            self.courts.resize(new_config.court_count)
        self._touch()
        return self.config

    # ------------------------------------------------------------------ #
    # Round generation
    # ------------------------------------------------------------------ #

    def _require(self, available: int, required: int, what: str) -> None:
        if available < required:
            raise InsufficientParticipantsError(
                f"Need at least {required} present {what} (have {available})",
                required=required,
                available=available,
            )

    def _kot_fixed_teams(self) -> List[Team]:
        """Present auto teams, snake-drafting a fresh set when none exist yet."""
        if self.kot_auto_teams:
            teams = self._present(self.kot_auto_teams)
            self._require(len(teams), 2, "King of Court teams")
            return teams

        teams = king_of_court.generate_balanced_teams(self.present_players)
        self._require(len(teams), 2, "King of Court teams")
        logger.info(
            "Generated %d balanced teams for King of Court: %s",
            len(teams),
            ", ".join(f"{t.name} ({t.avg_rating:.1f})" for t in teams),
        )
        self.kot_auto_teams = teams
        return teams

    def _generate(self, round_index: int, now: datetime) -> RoundResult:
        cfg = self.config
        present = self.present_players
        previous = self.rounds[-1] if self.rounds else None

        if cfg.is_king_of_court:
            if cfg.game_format == FORMAT_TEAMED_DOUBLES:
                teams = self.present_teams
                self._require(len(teams), 2, "teams")
            elif cfg.kot_fixed_partners:
                self._require(len(present), 4, "players")
                teams = self._kot_fixed_teams()
            else:
                self._require(len(present), 4, "players")
                return king_of_court.generate_kot_player_round(
                    present, cfg.court_count, self.stats, round_index, previous, self.rng,
                    cfg.separate_by_skill, cfg.min_players_per_level, now,
                )
            return king_of_court.generate_kot_team_round(
                teams, cfg.court_count, self.stats, round_index, previous, self.rng, cfg.separate_by_skill, now
            )

        if cfg.game_format == FORMAT_SINGLES:
            self._require(len(present), 2, "players")
            return round_robin.generate_singles_round(
                present, cfg.court_count, self.stats, round_index, self.rng, cfg.match_format, now
            )
        if cfg.game_format == FORMAT_TEAMED_DOUBLES:
            teams = self.present_teams
            self._require(len(teams), 2, "teams")
            return round_robin.generate_teamed_doubles_round(
                teams, cfg.court_count, self.stats, round_index, self.rng, cfg.match_format, now
            )
        self._require(len(present), 4, "players")
        return round_robin.generate_doubles_round(
            present, cfg.court_count, self.stats, round_index, self.rng,
            cfg.separate_by_skill, cfg.match_format, cfg.min_players_per_level, now,
        )

    def generate_next_round(self) -> RoundResult:
        """
        Build the next round and append it.

        Raises:
            InsufficientParticipantsError: before any state is touched
        """
        # A continuous-play round in progress is closed first
        if len(self.rounds) > self.current_round:
            self.current_round = len(self.rounds)

        round_index = self.current_round
        result = self._generate(round_index, self.clock())

        self.rounds.append(result.matches)
        self.current_round += 1
        self.locked = True
        self.last_fairness = result.fairness
        self._touch()
        return result

    def clear_all_rounds(self) -> None:
        self.rounds = []
        self.current_round = 0
        self.stats.clear()
        self.kot_auto_teams = []
        self.courts.reset(self.config.court_count)
        self.locked = False
        self.last_fairness = None
        self._touch()
        logger.info("Cleared all rounds and statistics for tournament %s", self.id)

    # ------------------------------------------------------------------ #
    # Results
    # ------------------------------------------------------------------ #

    def get_match(self, round_index: int, match_index: int) -> Match:
        if not 0 <= round_index < len(self.rounds):
            raise UnknownMatchError(f"Round {round_index} does not exist")
        round_matches = self.rounds[round_index]
        if not 0 <= match_index < len(round_matches):
            raise UnknownMatchError(f"Match {match_index} does not exist in round {round_index}")
        return round_matches[match_index]

    def record_result(self, round_index: int, match_index: int, submission: ScoreSubmission) -> Match:
        """
        Validate and store a result. Re-submitting on a completed match
        replaces it and reverses any King of Court points it had earned.

        Raises:
            UnknownMatchError, ScoreValidationError: match left untouched
        """
        match = self.get_match(round_index, match_index)
        validate_submission(match.match_format, submission)

        if match.is_completed:
            logger.info("Correcting result for round %d match %d", round_index + 1, match_index + 1)
            king_of_court.revoke_points(self.stats, match)

        record_outcome(match, submission, self.clock())
        if self.config.is_king_of_court:
            king_of_court.award_points(self.stats, match)
        self._touch()
        return match

    # ------------------------------------------------------------------ #
    # Continuous play
    # ------------------------------------------------------------------ #

    def _require_round_robin(self) -> None:
        if self.config.is_king_of_court:
            raise CourtStateError('King of Court mode uses full round generation. Use "Generate Next Round" instead.')

    def assign_court(self, court_number: int) -> Match:
        self._require_round_robin()
        cfg = self.config
        match = self.courts.assign(
            court_number,
            cfg.game_format,
            self.present_players,
            self.present_teams,
            self.stats,
            self.rng,
            cfg.match_format,
            cfg.separate_by_skill,
            self.clock(),
        )
        self._touch()
        return match

    def complete_court(
        self,
        court_number: int,
        next_status: str = COURT_READY,
        submission: Optional[ScoreSubmission] = None,
    ) -> Match:
        """
        Finish the match on a court, optionally with its result, and file it
        under the current round.
        """
        self._require_round_robin()
        court = self.courts.get(court_number)
        if court.status != COURT_PLAYING or court.current_match is None:
            raise CourtStateError(f"Court {court_number} has no match in progress")
        if submission is not None:
            validate_submission(court.current_match.match_format, submission)

        match = self.courts.complete(court_number, next_status)
        if submission is not None:
            record_outcome(match, submission, self.clock())

        if len(self.rounds) <= self.current_round:
            self.rounds.append([match])
        else:
            self.rounds[self.current_round].append(match)
        self.stats.record_court_match(match, self.current_round)
        self.locked = True
        self._touch()
        return match

    def mark_court_ready(self, court_number: int) -> CourtState:
        court = self.courts.mark_ready(court_number)
        self._touch()
        return court

    def next_up(self) -> List[Dict[str, Any]]:
        cfg = self.config
        queue = self.courts.next_up(cfg.game_format, self.present_players, self.present_teams, self.stats)
        return [
            {"id": entrant.id, "name": entrant.name, "priority": priority}
            for entrant, priority in queue
        ]

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def _kot_entrants(self) -> List[Team]:
        if self.config.game_format == FORMAT_TEAMED_DOUBLES:
            return self.teams
        if self.config.kot_fixed_partners:
            return self.kot_auto_teams
        return []

    def leaderboard(self) -> List[Dict[str, Any]]:
        cfg = self.config
        if cfg.is_king_of_court:
            teams = self._kot_entrants()
            if teams:
                entrants = [(t.id, t.name) for t in teams]
            else:
                entrants = [(p.id, p.name) for p in self.players]
            return kot_leaderboard(entrants, self.stats)

        if cfg.game_format == FORMAT_TEAMED_DOUBLES:
            entrants = [(t.id, t.name) for t in self.present_teams]
            return round_robin_leaderboard(entrants, self.stats.team_stats, len(self.rounds), teams=True)
        entrants = [(p.id, p.name) for p in self.present_players]
        return round_robin_leaderboard(entrants, self.stats.player_stats, len(self.rounds))

    def export(self) -> Dict[str, Any]:
        """Export payload; stamped with the last mutation time so repeated calls match."""
        cfg = self.config
        meta = {
            "courts": cfg.court_count,
            "session_minutes": cfg.session_minutes,
            "minutes_per_round": cfg.minutes_per_round,
            "tournament_type": cfg.tournament_type,
            "game_format": cfg.game_format,
            "match_format": cfg.match_format,
            "separate_by_skill": cfg.separate_by_skill,
            "current_round": self.current_round,
        }
        kot_stats = self.stats.kot_stats if cfg.is_king_of_court else None
        return build_results(self.players, self.rounds, meta, self.updated_at, kot_stats)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "config": self.config.to_dict(),
            "players": [p.to_dict() for p in self.players],
            "teams": [t.to_dict() for t in self.teams],
            "kot_auto_teams": [t.to_dict() for t in self.kot_auto_teams],
            "rounds": [[m.to_dict() for m in r] for r in self.rounds],
            "current_round": self.current_round,
            "locked": self.locked,
            "courts": [c.to_dict() for c in self.courts.ordered()],
            "stats": self.stats.to_dict(),
            "fairness": self.last_fairness.to_dict() if self.last_fairness else None,
            "updated_at": self.updated_at.isoformat(),
        }
