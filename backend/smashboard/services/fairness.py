"""
Fairness priority - who plays when demand exceeds court capacity.

priority = rounds_sat_out * 500
         + rounds_since_last_played * 200   (or +1000 if never played)
         + (average_rounds_played - rounds_played) * 100
         + jitter in [0, 1)

The jitter is the only tie-break; pass a seeded random.Random for replayable runs.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Sequence, TypeVar, Union

from smashboard.models.player import Player
from smashboard.models.stats import KOTStats, PlayerStats, TeamStats

logger = logging.getLogger(__name__)

SAT_OUT_WEIGHT = 500
ROUNDS_SINCE_PLAYED_WEIGHT = 200
NEVER_PLAYED_BONUS = 1000
CATCH_UP_WEIGHT = 100

# Advisory thresholds
SIT_OUT_SPREAD_LIMIT = 2
NEVER_PLAYED_AFTER_ROUND = 2

T = TypeVar("T")
AnyStats = Union[PlayerStats, TeamStats, KOTStats]


def average_rounds_played(all_stats: Mapping[str, AnyStats], round_index: int) -> float:
    """Mean rounds played over every stats entry (including departed players); 0 in round 1."""
    if round_index <= 0 or not all_stats:
        return 0.0
    return sum(s.rounds_played for s in all_stats.values()) / len(all_stats)


def fairness_priority(
    stats: AnyStats,
    round_index: int,
    avg_rounds_played: float,
    rng: random.Random,
) -> float:
    priority = stats.rounds_sat_out * SAT_OUT_WEIGHT
    if stats.last_played_round >= 0:
        priority += (round_index - stats.last_played_round) * ROUNDS_SINCE_PLAYED_WEIGHT
    else:
        priority += NEVER_PLAYED_BONUS
    priority += (avg_rounds_played - stats.rounds_played) * CATCH_UP_WEIGHT
    priority += rng.random()
    return priority


def select_for_round(
    candidates: Sequence[T],
    get_id: Callable[[T], str],
    all_stats: Mapping[str, AnyStats],
    stats_factory: Callable[[str], AnyStats],
    max_slots: int,
    round_index: int,
    rng: random.Random,
) -> List[T]:
    """
    Keep the max_slots candidates with the highest fairness priority.

    When everyone fits, the pool is returned unchanged (same order).

    Args:
        candidates: Players or teams eligible this round
        get_id: Stats key for a candidate
        all_stats: Every stats entry for the pool's kind (drives the catch-up average)
        stats_factory: Returns (creating if needed) the stats for an id
        max_slots: Seats available
        round_index: 0-based index of the round being generated
        rng: Jitter source
    """
    if len(candidates) <= max_slots:
        return list(candidates)

    avg_played = average_rounds_played(all_stats, round_index)
    scored = []
    for c in candidates:
        stats = stats_factory(get_id(c))
        scored.append((fairness_priority(stats, round_index, avg_played, rng), c))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [c for _, c in scored[:max_slots]]


def select_players_for_round(
    pool: Sequence[Player],
    player_stats: Dict[str, PlayerStats],
    max_slots: int,
    round_index: int,
    rng: random.Random,
) -> List[Player]:
    """Player flavour of select_for_round over the round-robin stats."""

    def _stats(pid: str) -> PlayerStats:
        return player_stats.get(pid) or PlayerStats(player_id=pid)

    return select_for_round(pool, lambda p: p.id, player_stats, _stats, max_slots, round_index, rng)


def court_flow_order(candidates: Sequence[T], get_stats: Callable[[T], AnyStats]) -> List[T]:
    """Continuous-play order: fewest rounds played first, then most sat out."""
    return sorted(
        candidates,
        key=lambda c: (get_stats(c).rounds_played, -get_stats(c).rounds_sat_out),
    )


def next_up_priority(stats: AnyStats) -> int:
    return stats.rounds_sat_out * 100 + (10 - stats.rounds_played)


# ============================================================================
# Advisory fairness check
# ============================================================================


@dataclass
class FairnessReport:
    round_index: int
    max_sat_out: int = 0
    min_sat_out: int = 0
    never_played: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def sit_out_spread(self) -> int:
        return self.max_sat_out - self.min_sat_out

    @property
    def is_balanced(self) -> bool:
        return self.sit_out_spread <= 1

    def to_dict(self) -> dict:
        return {
            "round_index": self.round_index,
            "max_sat_out": self.max_sat_out,
            "min_sat_out": self.min_sat_out,
            "sit_out_spread": self.sit_out_spread,
            "never_played": list(self.never_played),
            "warnings": list(self.warnings),
            "is_balanced": self.is_balanced,
        }


def validate_fairness(
    participants: Sequence[T],
    get_id: Callable[[T], str],
    get_name: Callable[[T], str],
    all_stats: Mapping[str, AnyStats],
    round_index: int,
) -> FairnessReport:
    """
    Check sit-out balance after a round. Never blocks generation.

    Warns when the max-min sat-out spread exceeds 2, and flags anyone who has
    not played at all from the third round on as critical.
    """
    report = FairnessReport(round_index=round_index)
    if round_index == 0 or not participants:
        return report

    rows = []
    for p in participants:
        stats = all_stats.get(get_id(p))
        played = stats.rounds_played if stats else 0
        sat_out = stats.rounds_sat_out if stats else 0
        rows.append((get_name(p), played, sat_out))

    if round_index >= NEVER_PLAYED_AFTER_ROUND:
        report.never_played = [name for name, played, _ in rows if played == 0]
        if report.never_played:
            msg = (
                f"Critical fairness issue: {len(report.never_played)} participant(s) have not played "
                f"after {round_index + 1} rounds: {', '.join(report.never_played)}"
            )
            logger.error(msg)
            report.warnings.append(msg)

    report.max_sat_out = max(sat_out for _, _, sat_out in rows)
    report.min_sat_out = min(sat_out for _, _, sat_out in rows)
    if report.sit_out_spread > SIT_OUT_SPREAD_LIMIT:
        most = [name for name, _, sat_out in rows if sat_out == report.max_sat_out]
        msg = (
            f"Sit-out imbalance: max {report.max_sat_out}, min {report.min_sat_out}; "
            f"sitting out most: {', '.join(most)}"
        )
        logger.warning(msg)
        report.warnings.append(msg)

    return report
