"""
Round-Robin Generator - one independent round per call.

Doubles (random pairing):
- Skill separation on and >= 8 present: courts split across skill groups
  (integer division, remainder to the first groups), each group runs
  select -> group of four -> split; leftover courts are filled from every
  still-idle player as "Mixed (Overflow)".
- Otherwise the whole roster is one pool.

Teamed doubles: teams matched strictly within gender class, opponent chosen by
rating gap + 2 per previous meeting.

Singles: fairness selection, then greedy smallest-rating-gap pairing.

Every generator updates the stats store before returning.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from smashboard.models.match import (
    FORMAT_DOUBLES,
    FORMAT_SINGLES,
    FORMAT_TEAMED_DOUBLES,
    MATCH_SINGLE,
    Match,
    new_match_id,
    team_diff,
)
from smashboard.models.player import TEAM_GENDER_LABELS, TEAM_GENDER_ORDER, Player, Team
from smashboard.services.fairness import (
    FairnessReport,
    select_for_round,
    select_players_for_round,
    validate_fairness,
)
from smashboard.services.pairing import GROUP_SIZE, find_best_team_split, select_best_group_of_four
from smashboard.services.skill_grouping import (
    DEFAULT_MIN_PLAYERS_PER_LEVEL,
    BumpedPlayer,
    separate_players_by_skill,
)
from smashboard.services.stats_store import StatsStore

logger = logging.getLogger(__name__)

SKILL_SEPARATION_MIN_PLAYERS = 8
OVERFLOW_LABEL = "Mixed (Overflow)"
MIXED_LABEL = "Mixed"
REPEAT_MEETING_PENALTY = 2


@dataclass
class RoundResult:
    matches: List[Match]
    fairness: Optional[FairnessReport] = None
    bumped_players: List[BumpedPlayer] = field(default_factory=list)


# ============================================================================
# Doubles (random pairing)
# ============================================================================


def create_balanced_matches(
    players: List[Player],
    stats: StatsStore,
    max_courts: int,
    starting_court: int,
    group_label: str,
    match_format: str,
    rng: random.Random,
    now: Optional[datetime] = None,
) -> List[Match]:
    """Carve min(max_courts, len(players) // 4) doubles matches out of players."""
    matches: List[Match] = []
    used = set()
    courts = min(max_courts, len(players) // GROUP_SIZE)

    for court_offset in range(courts):
        remaining = [p for p in players if p.id not in used]
        if len(remaining) < GROUP_SIZE:
            break

        group = select_best_group_of_four(remaining, stats.player_stats, rng)
        if len(group) < GROUP_SIZE:
            break
        split = find_best_team_split(group, stats.player_stats)
        used.update(p.id for p in group)

        matches.append(
            Match(
                id=new_match_id(),
                court=starting_court + court_offset,
                game_format=FORMAT_DOUBLES,
                match_format=match_format,
                team1=split.team1,
                team2=split.team2,
                diff=team_diff(split.team1, split.team2),
                skill_level=group_label,
                start_time=now,
            )
        )

    return matches


def generate_matches_for_group(
    group_players: List[Player],
    stats: StatsStore,
    max_courts: int,
    starting_court: int,
    round_index: int,
    group_label: str,
    match_format: str,
    rng: random.Random,
    now: Optional[datetime] = None,
) -> List[Match]:
    playing = select_players_for_round(
        group_players, stats.player_stats, max_courts * GROUP_SIZE, round_index, rng
    )
    playing_ids = {p.id for p in playing}
    logger.debug("%s - playing: %s", group_label, ", ".join(f"{p.name}({p.rating})" for p in playing))
    logger.debug(
        "%s - sitting out: %s",
        group_label,
        ", ".join(f"{p.name}({p.rating})" for p in group_players if p.id not in playing_ids),
    )
    return create_balanced_matches(
        playing, stats, max_courts, starting_court, group_label, match_format, rng, now
    )


def generate_doubles_round(
    present: List[Player],
    court_count: int,
    stats: StatsStore,
    round_index: int,
    rng: random.Random,
    separate_by_skill: bool = True,
    match_format: str = MATCH_SINGLE,
    min_players_per_level: int = DEFAULT_MIN_PLAYERS_PER_LEVEL,
    now: Optional[datetime] = None,
) -> RoundResult:
    logger.info("Generating round robin round %d with %d present players", round_index + 1, len(present))
    stats.ensure_players(present)
    matches: List[Match] = []
    bumped: List[BumpedPlayer] = []

    if separate_by_skill and len(present) >= SKILL_SEPARATION_MIN_PLAYERS:
        grouping = separate_players_by_skill(present, min_players_per_level)
        bumped = grouping.bumped_players
        groups = grouping.groups

        court = 1
        per_group = court_count // max(1, len(groups))
        extra = court_count % max(1, len(groups))

        for group in groups:
            if len(group.players) < GROUP_SIZE:
                continue
            group_courts = per_group + (1 if extra > 0 else 0)
            if extra > 0:
                extra -= 1
            group_matches = generate_matches_for_group(
                group.players, stats, group_courts, court, round_index, group.label, match_format, rng, now
            )
            matches.extend(group_matches)
            court += len(group_matches)

        if len(matches) < court_count:
            playing = set()
            for m in matches:
                playing.update(m.participant_ids())
            idle = [p for p in present if p.id not in playing]
            remaining_courts = court_count - len(matches)
            if len(idle) >= GROUP_SIZE and remaining_courts > 0:
                logger.info(
                    "Filling %d extra court(s) with %d remaining players (%s)",
                    remaining_courts,
                    len(idle),
                    OVERFLOW_LABEL,
                )
                matches.extend(
                    create_balanced_matches(
                        idle, stats, remaining_courts, court, OVERFLOW_LABEL, match_format, rng, now
                    )
                )
    else:
        matches = generate_matches_for_group(
            present, stats, court_count, 1, round_index, MIXED_LABEL, match_format, rng, now
        )

    stats.record_player_round(present, matches, round_index)
    report = validate_fairness(present, lambda p: p.id, lambda p: p.name, stats.player_stats, round_index)

    playing_count = len(matches) * GROUP_SIZE
    logger.info(
        "Round %d summary: courts requested %d, used %d, playing %d, sitting %d",
        round_index + 1,
        court_count,
        len(matches),
        playing_count,
        len(present) - playing_count,
    )
    if len(matches) < court_count:
        logger.warning("Only using %d of %d courts", len(matches), court_count)

    return RoundResult(matches=matches, fairness=report, bumped_players=bumped)


# ============================================================================
# Teamed doubles
# ============================================================================


def _best_team_matchup(teams: List[Team], stats: StatsStore) -> Optional[List[Team]]:
    best = None
    best_score = float("inf")
    for i in range(len(teams) - 1):
        for j in range(i + 1, len(teams)):
            gap = abs(teams[i].avg_rating - teams[j].avg_rating)
            score = gap + stats.team(teams[i].id).times_faced(teams[j].id) * REPEAT_MEETING_PENALTY
            if score < best_score:
                best_score = score
                best = [teams[i], teams[j]]
    return best


def make_team_match(
    team1: Team,
    team2: Team,
    court: int,
    match_format: str,
    now: Optional[datetime] = None,
    **extra,
) -> Match:
    return Match(
        id=new_match_id(),
        court=court,
        game_format=FORMAT_TEAMED_DOUBLES,
        match_format=match_format,
        team1=team1.players,
        team2=team2.players,
        team1_id=team1.id,
        team2_id=team2.id,
        team_gender=team1.gender,
        diff=abs(team1.avg_rating - team2.avg_rating),
        start_time=now,
        **extra,
    )


def generate_teamed_doubles_round(
    teams: List[Team],
    court_count: int,
    stats: StatsStore,
    round_index: int,
    rng: random.Random,
    match_format: str = MATCH_SINGLE,
    now: Optional[datetime] = None,
) -> RoundResult:
    logger.info("Generating teamed doubles round %d with %d teams", round_index + 1, len(teams))
    stats.ensure_teams(teams)
    matches: List[Match] = []
    court_idx = 0

    for gender in TEAM_GENDER_ORDER:
        label = TEAM_GENDER_LABELS[gender]
        gender_teams = [t for t in teams if t.gender == gender]
        if len(gender_teams) < 2:
            logger.debug("Not enough %s teams (need 2, have %d)", label, len(gender_teams))
            continue

        max_teams = min(len(gender_teams), (court_count - court_idx) * 2)
        selected = select_for_round(
            gender_teams, lambda t: t.id, stats.team_stats, stats.team, max_teams, round_index, rng
        )
        logger.debug("%s - playing: %s", label, ", ".join(t.name for t in selected))

        remaining = list(selected)
        while len(remaining) >= 2 and court_idx < court_count:
            pair = _best_team_matchup(remaining, stats)
            if pair is None:
                break
            court_idx += 1
            matches.append(make_team_match(pair[0], pair[1], court_idx, match_format, now, skill_level=label))
            remaining.remove(pair[0])
            remaining.remove(pair[1])

    stats.record_team_round(teams, matches, round_index)
    report = validate_fairness(teams, lambda t: t.id, lambda t: t.name, stats.team_stats, round_index)
    logger.info(
        "Teamed round %d summary: courts used %d, teams playing %d, sitting %d",
        round_index + 1,
        len(matches),
        len(matches) * 2,
        len(teams) - len(matches) * 2,
    )
    return RoundResult(matches=matches, fairness=report)


# ============================================================================
# Singles
# ============================================================================


def generate_singles_round(
    present: List[Player],
    court_count: int,
    stats: StatsStore,
    round_index: int,
    rng: random.Random,
    match_format: str = MATCH_SINGLE,
    now: Optional[datetime] = None,
) -> RoundResult:
    logger.info("Generating singles round %d with %d present players", round_index + 1, len(present))
    stats.ensure_players(present)
    playing = select_players_for_round(present, stats.player_stats, court_count * 2, round_index, rng)

    matches: List[Match] = []
    used = set()
    for court_offset in range(court_count):
        remaining = [p for p in playing if p.id not in used]
        if len(remaining) < 2:
            break

        best_pair = None
        smallest_gap = float("inf")
        for i in range(len(remaining) - 1):
            for j in range(i + 1, len(remaining)):
                gap = abs(remaining[i].rating - remaining[j].rating)
                if gap < smallest_gap:
                    smallest_gap = gap
                    best_pair = (remaining[i], remaining[j])

        p1, p2 = best_pair
        used.update((p1.id, p2.id))
        matches.append(
            Match(
                id=new_match_id(),
                court=court_offset + 1,
                game_format=FORMAT_SINGLES,
                match_format=match_format,
                player1=p1,
                player2=p2,
                diff=abs(p1.rating - p2.rating),
                start_time=now,
            )
        )

    stats.record_player_round(present, matches, round_index)
    report = validate_fairness(present, lambda p: p.id, lambda p: p.name, stats.player_stats, round_index)
    logger.info(
        "Singles round %d summary: courts used %d, playing %d, sitting %d",
        round_index + 1,
        len(matches),
        len(matches) * 2,
        len(present) - len(matches) * 2,
    )
    return RoundResult(matches=matches, fairness=report)
