"""
Skill Grouping - partition a roster into skill tiers

Seven fixed DUPR bands. Undersized bands are repaired by merging:
1. Bump up: low -> high, undersized band joins the nearest nonempty higher band
2. Bump down: high -> low, still-undersized band joins the nearest nonempty lower band
3. Orphans: anything still undersized joins the surviving group with the closest
   average rating; if nothing survived, one "Mixed" group holds everyone
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from smashboard.models.player import Player

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillLevel:
    key: str
    label: str
    min_rating: float
    max_rating: float


# Ordered low -> high
SKILL_LEVELS: List[SkillLevel] = [
    SkillLevel("BEGINNER", "Beginner", 2.0, 2.9),
    SkillLevel("ADVANCED_BEGINNER", "Advanced Beginner", 3.0, 3.4),
    SkillLevel("INTERMEDIATE", "Intermediate", 3.5, 3.9),
    SkillLevel("ADVANCED_INTERMEDIATE", "Advanced Intermediate", 4.0, 4.4),
    SkillLevel("ADVANCED", "Advanced", 4.5, 4.9),
    SkillLevel("EXPERT", "Expert", 5.0, 5.4),
    SkillLevel("EXPERT_PRO", "Expert Pro", 5.5, 6.0),
]

LEVEL_INDEX: Dict[str, int] = {level.key: i for i, level in enumerate(SKILL_LEVELS)}

MIXED_LEVEL_KEY = "MIXED"
MIXED_LEVEL_LABEL = "Mixed"
DEFAULT_MIN_PLAYERS_PER_LEVEL = 4


def get_skill_level(rating: float) -> SkillLevel:
    """
    Band for a rating. A band covers [min_rating, next band's min_rating), so
    ratings between the published one-decimal bounds (e.g. 3.45) stay in the
    lower band. Out-of-range ratings clamp to the first/last band.
    """
    rating = float(rating)
    current = SKILL_LEVELS[0]
    for level in SKILL_LEVELS:
        if rating >= level.min_rating:
            current = level
        else:
            break
    return current


def skill_level_index(rating: float) -> int:
    return LEVEL_INDEX[get_skill_level(rating).key]


def can_play_together(player1: Player, player2: Player) -> bool:
    """Players in the same or adjacent tiers."""
    return abs(skill_level_index(player1.rating) - skill_level_index(player2.rating)) <= 1


@dataclass
class SkillGroup:
    level: str
    label: str
    players: List[Player] = field(default_factory=list)
    min_rating: float = 0.0
    max_rating: float = 0.0

    @property
    def avg_rating(self) -> float:
        # Midpoint of the observed range, used to place orphans
        return (self.min_rating + self.max_rating) / 2

    def add(self, player: Player) -> None:
        self.players.append(player)
        self.min_rating = min(self.min_rating, player.rating)
        self.max_rating = max(self.max_rating, player.rating)


@dataclass
class BumpedPlayer:
    player: Player
    original_level: str
    bumped_level: str


@dataclass
class GroupingResult:
    groups: List[SkillGroup]
    bumped_players: List[BumpedPlayer]


def _make_group(level: str, label: str, players: List[Player]) -> SkillGroup:
    ratings = [p.rating for p in players]
    return SkillGroup(
        level=level,
        label=label,
        players=list(players),
        min_rating=min(ratings),
        max_rating=max(ratings),
    )


def _nearest_nonempty(buckets: List[List[Player]], start: int, step: int) -> Optional[int]:
    idx = start + step
    while 0 <= idx < len(buckets):
        if buckets[idx]:
            return idx
        idx += step
    return None


def separate_players_by_skill(
    players: List[Player],
    min_players_per_level: int = DEFAULT_MIN_PLAYERS_PER_LEVEL,
) -> GroupingResult:
    """
    Partition players into skill groups.

    Every input player lands in exactly one output group. A group smaller than
    min_players_per_level only appears as the "Mixed" fallback, which then
    holds every player.

    Args:
        players: Present players to group
        min_players_per_level: Minimum size of a surviving group

    Returns:
        GroupingResult with ordered groups (low -> high) and relocated players
    """
    if not players:
        return GroupingResult(groups=[], bumped_players=[])

    buckets: List[List[Player]] = [[] for _ in SKILL_LEVELS]
    for player in players:
        buckets[skill_level_index(player.rating)].append(player)

    for i, bucket in enumerate(buckets):
        if bucket:
            logger.debug(
                "%s: %d players - %s",
                SKILL_LEVELS[i].label,
                len(bucket),
                ", ".join(f"{p.name}({p.rating})" for p in bucket),
            )

    bumped: List[BumpedPlayer] = []

    def _merge(src: int, dst: int, direction: str) -> None:
        moving = buckets[src]
        logger.info(
            "Bumping %s: %s from %s to %s",
            direction,
            ", ".join(p.name for p in moving),
            SKILL_LEVELS[src].label,
            SKILL_LEVELS[dst].label,
        )
        buckets[dst].extend(moving)
        bumped.extend(
            BumpedPlayer(player=p, original_level=SKILL_LEVELS[src].key, bumped_level=SKILL_LEVELS[dst].key)
            for p in moving
        )
        buckets[src] = []

    # Pass 1: bump up
    for i in range(len(buckets)):
        if 0 < len(buckets[i]) < min_players_per_level:
            target = _nearest_nonempty(buckets, i, +1)
            if target is not None:
                _merge(i, target, "up")

    # Pass 2: bump down
    for i in range(len(buckets) - 1, -1, -1):
        if 0 < len(buckets[i]) < min_players_per_level:
            target = _nearest_nonempty(buckets, i, -1)
            if target is not None:
                _merge(i, target, "down")

    groups: List[SkillGroup] = []
    orphans: List[Player] = []
    for i, bucket in enumerate(buckets):
        if len(bucket) >= min_players_per_level:
            groups.append(_make_group(SKILL_LEVELS[i].key, SKILL_LEVELS[i].label, bucket))
        elif bucket:
            orphans.extend(bucket)

    if orphans:
        logger.warning("%d orphaned players: %s", len(orphans), ", ".join(p.name for p in orphans))
        if groups:
            for orphan in orphans:
                closest = min(groups, key=lambda g: abs(orphan.rating - g.avg_rating))
                closest.add(orphan)
                bumped.append(
                    BumpedPlayer(
                        player=orphan,
                        original_level=get_skill_level(orphan.rating).key,
                        bumped_level=closest.level,
                    )
                )
        else:
            logger.info("Creating mixed group with all %d players", len(players))
            groups = [_make_group(MIXED_LEVEL_KEY, MIXED_LEVEL_LABEL, players)]

    for idx, group in enumerate(groups, start=1):
        logger.info(
            "Group %d - %s: %d players (%.1f-%.1f)",
            idx,
            group.label,
            len(group.players),
            group.min_rating,
            group.max_rating,
        )

    return GroupingResult(groups=groups, bumped_players=bumped)
