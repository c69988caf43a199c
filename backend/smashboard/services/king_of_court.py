"""
King-of-Court Ladder

Each skill group (or gender class, for team ladders) gets its own court
hierarchy numbered from the King court downward. Round 1 is a random shuffle;
later rounds reorder the pool from the previous round's results:

1. Sort by (last court asc, winners first, total points desc)
2. Per court from King down: winners who stay, plus (King only) promoted
   winners from the court directly below, then this court's losers, then
   any still-unassigned participant.

Promotion into King: up to 2 players on the player ladder, 1 team on the team
ladder. A win on hierarchy position i of H courts is worth (H - i) * 2, where H
is the number of courts handed to the hierarchy (all requested courts for an
unseparated pool), even when fewer are filled.
"""

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, TypeVar

from smashboard.models.match import (
    COURT_LEVEL_KING,
    FORMAT_DOUBLES,
    MATCH_SINGLE,
    Match,
    Round,
    court_level_label,
    new_match_id,
    team_diff,
)
from smashboard.models.player import TEAM_GENDER_LABELS, TEAM_GENDER_ORDER, Player, Team
from smashboard.models.stats import KOTStats
from smashboard.services.fairness import select_for_round, validate_fairness
from smashboard.services.pairing import GROUP_SIZE, find_best_team_split
from smashboard.services.round_robin import SKILL_SEPARATION_MIN_PLAYERS, RoundResult, make_team_match
from smashboard.services.skill_grouping import DEFAULT_MIN_PLAYERS_PER_LEVEL, separate_players_by_skill
from smashboard.services.stats_store import StatsStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLAYER_SEATS_PER_COURT = 4
TEAM_SEATS_PER_COURT = 2
PLAYER_PROMOTIONS_TO_KING = 2
TEAM_PROMOTIONS_TO_KING = 1
TEAM_SEPARATION_MIN_TEAMS = 4
KOT_MATCH_FORMAT = MATCH_SINGLE


def court_points(index_in_hierarchy: int, courts_in_hierarchy: int) -> int:
    """Points for a win; index 0 is the King court."""
    return (courts_in_hierarchy - index_in_hierarchy) * 2


# ============================================================================
# Fixed partnerships (snake draft)
# ============================================================================


def generate_balanced_teams(players: Sequence[Player]) -> List[Team]:
    """
    Snake-draft players into floor(N/2) teams by rating.

    Strongest first: team 1..k take one player each, then k..1, and so on.
    With an odd count the lowest-rated player is left out.
    """
    if len(players) < 2:
        return []

    ranked = sorted(players, key=lambda p: float(p.rating), reverse=True)
    num_teams = len(players) // 2
    slots: List[List[Player]] = [[] for _ in range(num_teams)]

    current = 0
    direction = 1
    for player in ranked:
        if len(slots[current]) < 2:
            slots[current].append(player)

        current += direction
        if current >= num_teams:
            current = num_teams - 1
            direction = -1
        elif current < 0:
            current = 0
            direction = 1

    return [
        Team.from_players(uuid.uuid4().hex, slot[0], slot[1], is_auto_generated=True)
        for slot in slots
        if len(slot) == 2
    ]


# ============================================================================
# Ladder advancement
# ============================================================================


@dataclass
class _LadderResult:
    participant: object
    won: bool
    last_court: int
    total_points: int


def assign_to_courts(
    participants: Sequence[T],
    get_id: Callable[[T], str],
    kot_stats: StatsStore,
    previous_round: Optional[Round],
    num_courts: int,
    starting_court: int,
    seats_per_court: int,
    max_promoted: int,
) -> List[T]:
    """
    Reorder participants so that consecutive slices of seats_per_court fill
    the hierarchy courts from King downward. Anyone without a completed match
    in the previous round is treated as coming from the bottom court.
    """
    if not previous_round:
        return list(participants)

    bottom_court = starting_court + num_courts - 1
    results: List[_LadderResult] = []
    for p in participants:
        pid = get_id(p)
        won = False
        last_court = None
        for match in previous_round:
            if not match.is_completed:
                continue
            side = match.side_of(pid)
            if side is not None:
                last_court = match.court
                won = match.winner == side
        results.append(
            _LadderResult(
                participant=p,
                won=won,
                last_court=last_court if last_court is not None else bottom_court,
                total_points=kot_stats.kot(pid).total_points,
            )
        )

    results.sort(key=lambda r: (r.last_court, not r.won, -r.total_points))

    ordered: List[T] = []
    assigned = set()

    def _free(pred) -> List[_LadderResult]:
        return [r for r in results if id(r) not in assigned and pred(r)]

    for court_idx in range(num_courts):
        court_number = starting_court + court_idx

        seats = _free(lambda r: r.last_court == court_number and r.won)
        if court_idx == 0 and court_idx < num_courts - 1:
            seats += _free(lambda r: r.last_court == court_number + 1 and r.won)[:max_promoted]

        if len(seats) < seats_per_court:
            taken = {id(r) for r in seats}
            losers = _free(lambda r: r.last_court == court_number and not r.won and id(r) not in taken)
            seats += losers[: seats_per_court - len(seats)]

        if len(seats) < seats_per_court:
            taken = {id(r) for r in seats}
            backfill = _free(lambda r: id(r) not in taken)
            seats += backfill[: seats_per_court - len(seats)]

        for r in seats[:seats_per_court]:
            assigned.add(id(r))
            ordered.append(r.participant)

    ordered.extend(r.participant for r in results if id(r) not in assigned)
    return ordered


# ============================================================================
# Ladder round generation
# ============================================================================


def _record_ladder_seat(stats: KOTStats, court: int, round_index: int) -> None:
    stats.current_court = court
    stats.court_history.append(court)
    stats.rounds_played += 1
    stats.last_played_round = round_index


def _generate_ladder_group(
    participants: List[T],
    get_id: Callable[[T], str],
    stats: StatsStore,
    num_courts: int,
    starting_court: int,
    round_index: int,
    previous_round: Optional[Round],
    label: str,
    seats_per_court: int,
    max_promoted: int,
    make_match: Callable[[List[T], int, int, int], Match],
    rng: random.Random,
) -> List[Match]:
    actual_courts = min(num_courts, len(participants) // seats_per_court)
    if actual_courts <= 0:
        return []
    capacity = actual_courts * seats_per_court

    to_assign = participants
    if len(participants) > capacity:
        logger.info("%s: selecting %d of %d by priority", label, capacity, len(participants))
        to_assign = select_for_round(
            participants, get_id, stats.kot_stats, stats.kot, capacity, round_index, rng
        )

    if round_index == 0 or not previous_round:
        pool = list(to_assign)
        rng.shuffle(pool)
    else:
        pool = assign_to_courts(
            to_assign,
            get_id,
            stats,
            previous_round,
            actual_courts,
            starting_court,
            seats_per_court,
            max_promoted,
        )

    matches: List[Match] = []
    for court_idx in range(actual_courts):
        court = starting_court + court_idx
        seated = pool[court_idx * seats_per_court:(court_idx + 1) * seats_per_court]
        if len(seated) < seats_per_court:
            break
        for p in seated:
            _record_ladder_seat(stats.kot(get_id(p)), court, round_index)
        # Hierarchy size is the courts given to this group, filled or not
        points = court_points(court_idx, num_courts)
        logger.debug("%s court %d (index %d): %d pts/win", label, court, court_idx, points)
        matches.append(make_match(seated, court, court_idx, points))

    return matches


def _mark_sitters(pool: Sequence[T], get_id: Callable[[T], str], matches: List[Match], stats: StatsStore) -> None:
    playing = set()
    for m in matches:
        playing.update(m.participant_ids())
        playing.update(m.team_ids())
    for p in pool:
        if get_id(p) not in playing:
            stats.kot(get_id(p)).rounds_sat_out += 1


def generate_kot_player_round(
    present: List[Player],
    court_count: int,
    stats: StatsStore,
    round_index: int,
    previous_round: Optional[Round],
    rng: random.Random,
    separate_by_skill: bool = True,
    min_players_per_level: int = DEFAULT_MIN_PLAYERS_PER_LEVEL,
    now: Optional[datetime] = None,
) -> RoundResult:
    """Individual-player ladder; partners are re-split on every court."""
    logger.info("Generating King of Court round %d with %d players", round_index + 1, len(present))
    stats.ensure_kot(p.id for p in present)

    def _make(group_label: str) -> Callable[[List[Player], int, int, int], Match]:
        def _build(seated: List[Player], court: int, court_idx: int, points: int) -> Match:
            split = find_best_team_split(seated, {})
            return Match(
                id=new_match_id(),
                court=court,
                court_level=court_level_label(court_idx),
                game_format=FORMAT_DOUBLES,
                match_format=KOT_MATCH_FORMAT,
                team1=split.team1,
                team2=split.team2,
                diff=team_diff(split.team1, split.team2),
                skill_level=group_label,
                points_for_win=points,
                start_time=now,
            )

        return _build

    matches: List[Match] = []
    if separate_by_skill and len(present) >= SKILL_SEPARATION_MIN_PLAYERS:
        grouping = separate_players_by_skill(present, min_players_per_level)
        court = 1
        for group in grouping.groups:
            if len(group.players) < GROUP_SIZE:
                continue
            group_courts = min(len(group.players) // GROUP_SIZE, court_count - court + 1)
            if group_courts <= 0:
                continue
            group_matches = _generate_ladder_group(
                group.players, lambda p: p.id, stats, group_courts, court, round_index, previous_round,
                group.label, PLAYER_SEATS_PER_COURT, PLAYER_PROMOTIONS_TO_KING, _make(group.label), rng,
            )
            matches.extend(group_matches)
            court += len(group_matches)
    else:
        matches = _generate_ladder_group(
            present, lambda p: p.id, stats, court_count, 1, round_index, previous_round,
            "Mixed", PLAYER_SEATS_PER_COURT, PLAYER_PROMOTIONS_TO_KING, _make("Mixed"), rng,
        )

    _mark_sitters(present, lambda p: p.id, matches, stats)
    report = validate_fairness(present, lambda p: p.id, lambda p: p.name, stats.kot_stats, round_index)
    logger.info("KOT round %d summary: courts used %d", round_index + 1, len(matches))
    return RoundResult(matches=matches, fairness=report)


def generate_kot_team_round(
    teams: List[Team],
    court_count: int,
    stats: StatsStore,
    round_index: int,
    previous_round: Optional[Round],
    rng: random.Random,
    separate_by_skill: bool = True,
    now: Optional[datetime] = None,
) -> RoundResult:
    """Fixed-team ladder. With separation on, each gender class is its own hierarchy."""
    logger.info("Generating King of Court team round %d with %d teams", round_index + 1, len(teams))
    stats.ensure_kot(t.id for t in teams)

    def _make(group_label: str) -> Callable[[List[Team], int, int, int], Match]:
        def _build(seated: List[Team], court: int, court_idx: int, points: int) -> Match:
            return make_team_match(
                seated[0],
                seated[1],
                court,
                KOT_MATCH_FORMAT,
                now,
                court_level=court_level_label(court_idx),
                points_for_win=points,
                skill_level=group_label,
            )

        return _build

    matches: List[Match] = []
    if separate_by_skill and len(teams) >= TEAM_SEPARATION_MIN_TEAMS:
        court = 1
        for gender in TEAM_GENDER_ORDER:
            label = TEAM_GENDER_LABELS[gender]
            gender_teams = [t for t in teams if t.gender == gender]
            if len(gender_teams) < TEAM_SEATS_PER_COURT:
                continue
            group_courts = min(len(gender_teams) // TEAM_SEATS_PER_COURT, court_count - court + 1)
            if group_courts <= 0:
                continue
            group_matches = _generate_ladder_group(
                gender_teams, lambda t: t.id, stats, group_courts, court, round_index, previous_round,
                label, TEAM_SEATS_PER_COURT, TEAM_PROMOTIONS_TO_KING, _make(label), rng,
            )
            matches.extend(group_matches)
            court += len(group_matches)
    else:
        matches = _generate_ladder_group(
            teams, lambda t: t.id, stats, court_count, 1, round_index, previous_round,
            "All Teams", TEAM_SEATS_PER_COURT, TEAM_PROMOTIONS_TO_KING, _make("All Teams"), rng,
        )

    _mark_sitters(teams, lambda t: t.id, matches, stats)
    report = validate_fairness(teams, lambda t: t.id, lambda t: t.name, stats.kot_stats, round_index)
    logger.info("KOT team round %d summary: courts used %d", round_index + 1, len(matches))
    return RoundResult(matches=matches, fairness=report)


# ============================================================================
# Point awards
# ============================================================================


def _winning_ids(match: Match) -> List[str]:
    if match.team1_id is not None and match.team2_id is not None:
        team_id = match.side_team_id(match.winner)
        return [team_id] if team_id is not None else []
    return [p.id for p in match.side_players(match.winner)]


def award_points(stats: StatsStore, match: Match) -> int:
    """Credit a completed KOT match. Returns the points awarded per winner."""
    if not match.is_completed or not match.winner or not match.points_for_win:
        return 0
    for pid in _winning_ids(match):
        s = stats.kot(pid)
        s.total_points += match.points_for_win
        if match.court_level == COURT_LEVEL_KING:
            s.king_court_wins += 1
    match.points_awarded = match.points_for_win
    return match.points_for_win


def revoke_points(stats: StatsStore, match: Match) -> None:
    """Undo award_points for a match about to be re-scored."""
    if not match.is_completed or not match.winner or not match.points_awarded:
        return
    for pid in _winning_ids(match):
        s = stats.kot(pid)
        s.total_points -= match.points_awarded
        if match.court_level == COURT_LEVEL_KING:
            s.king_court_wins -= 1
    match.points_awarded = None
