"""
Roster bulk-text parser.

One player per line: "Name, Rating, Gender". Gender is optional and
normalised (f/female/woman/w -> female, anything else including
m/male/man/men -> male). Lines without a name or with a rating that is
not a number in 2.0-5.5 are skipped.
"""
import math
import uuid
from typing import Callable, List, Optional

from smashboard.models.player import GENDER_FEMALE, GENDER_MALE, MAX_RATING, MIN_RATING, Player

FEMALE_ALIASES = {"f", "female", "woman", "w"}


def normalize_gender(raw: Optional[str]) -> str:
    if not raw:
        return GENDER_MALE
    s = str(raw).strip().lower()
    if s in FEMALE_ALIASES:
        return GENDER_FEMALE
    return GENDER_MALE


def is_valid_rating(rating: float) -> bool:
    return MIN_RATING <= rating <= MAX_RATING


def _parse_rating(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def parse_bulk_roster(text: str, id_factory: Callable[[], str] = lambda: uuid.uuid4().hex) -> List[Player]:
    """Parse pasted roster text. Returns an empty list when nothing is usable."""
    players: List[Player] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = [p.strip() for p in line.split(",")]
        name = parts[0]
        rating = _parse_rating(parts[1]) if len(parts) > 1 else None
        if not name or rating is None or not is_valid_rating(rating):
            continue
        gender = normalize_gender(parts[2] if len(parts) > 2 else None)
        players.append(Player(id=id_factory(), name=name, rating=rating, gender=gender, present=True))
    return players
