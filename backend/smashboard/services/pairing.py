"""
Pairing & Group Selection - balanced groups of four and their 2v2 split.

Bounded effort: up to GROUP_ATTEMPTS randomized greedy constructions, best
evaluate_group_quality() penalty wins. Not globally optimal.
"""

import random
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from smashboard.models.player import Player, average_rating
from smashboard.models.stats import PlayerStats
from smashboard.services.skill_grouping import can_play_together, get_skill_level, skill_level_index

GROUP_SIZE = 4
GROUP_ATTEMPTS = 20
TOP_CANDIDATES = 3

# Candidate scoring (higher is better)
VARIETY_BASE = 5
SKILL_COMPATIBLE_BONUS = 2
CANDIDATE_JITTER = 2

# Group penalty (lower is better)
RATING_SPREAD_WEIGHT = 2
REPEAT_TEAMMATE_PENALTY = 10
ADJACENT_TIER_PENALTY = 5
WIDE_TIER_PENALTY = 25

# Split score (lower is better)
SPLIT_RATING_WEIGHT = 10
SPLIT_HISTORY_WEIGHT = 15
SAME_TIER_TEAM_BONUS = 3


def _times_teamed(stats: Mapping[str, PlayerStats], a: Player, b: Player) -> int:
    s = stats.get(a.id)
    return s.times_teamed_with(b.id) if s else 0


def _candidate_score(
    candidate: Player,
    group: List[Player],
    stats: Mapping[str, PlayerStats],
    rng: random.Random,
) -> float:
    score = 0.0
    for existing in group:
        score += max(0, VARIETY_BASE - _times_teamed(stats, existing, candidate))
    if all(can_play_together(existing, candidate) for existing in group):
        score += SKILL_COMPATIBLE_BONUS
    score += rng.random() * CANDIDATE_JITTER
    return score


def evaluate_group_quality(group: Sequence[Player], stats: Mapping[str, PlayerStats]) -> float:
    """
    Penalty for a group of four (lower is better).

    rating_spread * 2
    + 10 per prior teammate pairing inside the group
    + 5 if adjacent tiers are mixed, 25 if non-adjacent tiers are mixed
    """
    ratings = [p.rating for p in group]
    penalty = (max(ratings) - min(ratings)) * RATING_SPREAD_WEIGHT

    for i in range(len(group)):
        for j in range(i + 1, len(group)):
            penalty += _times_teamed(stats, group[i], group[j]) * REPEAT_TEAMMATE_PENALTY

    tiers = [skill_level_index(p.rating) for p in group]
    if len(set(tiers)) > 1:
        penalty += WIDE_TIER_PENALTY if max(tiers) - min(tiers) > 1 else ADJACENT_TIER_PENALTY

    return penalty


def select_best_group_of_four(
    available: Sequence[Player],
    stats: Mapping[str, PlayerStats],
    rng: random.Random,
) -> List[Player]:
    """
    Pick four players from the pool.

    Each attempt seeds with one random player, then repeatedly takes one of
    the top-3 scored remaining candidates. Attempts = min(20, pool size).
    """
    if len(available) <= GROUP_SIZE:
        return list(available)

    best_group: Optional[List[Player]] = None
    best_score = float("inf")
    attempts = min(GROUP_ATTEMPTS, len(available))

    for _ in range(attempts):
        candidates = list(available)
        group = [candidates.pop(rng.randrange(len(candidates)))]

        while len(group) < GROUP_SIZE and candidates:
            scored = [(_candidate_score(c, group, stats, rng), c) for c in candidates]
            scored.sort(key=lambda item: item[0], reverse=True)
            chosen = scored[rng.randrange(min(TOP_CANDIDATES, len(scored)))][1]
            group.append(chosen)
            candidates.remove(chosen)

        if len(group) == GROUP_SIZE:
            score = evaluate_group_quality(group, stats)
            if score < best_score:
                best_score = score
                best_group = list(group)

    return best_group or list(available[:GROUP_SIZE])


@dataclass
class TeamSplit:
    team1: List[Player]
    team2: List[Player]
    score: float


def find_best_team_split(group: Sequence[Player], stats: Mapping[str, PlayerStats]) -> TeamSplit:
    """
    Best of the three 2v2 partitions of a group of four.

    score = |avg1 - avg2| * 10 + prior teammate history * 15
            - 3 for each team whose two members share a tier
    Ties keep the earliest partition.
    """
    p1, p2, p3, p4 = group
    options: List[Tuple[List[Player], List[Player]]] = [
        ([p1, p2], [p3, p4]),
        ([p1, p3], [p2, p4]),
        ([p1, p4], [p2, p3]),
    ]

    best: Optional[TeamSplit] = None
    for team1, team2 in options:
        score = abs(average_rating(team1) - average_rating(team2)) * SPLIT_RATING_WEIGHT
        history = _times_teamed(stats, team1[0], team1[1]) + _times_teamed(stats, team2[0], team2[1])
        score += history * SPLIT_HISTORY_WEIGHT
        for a, b in (team1, team2):
            if get_skill_level(a.rating).key == get_skill_level(b.rating).key:
                score -= SAME_TIER_TEAM_BONUS
        if best is None or score < best.score:
            best = TeamSplit(team1=team1, team2=team2, score=score)

    return best
