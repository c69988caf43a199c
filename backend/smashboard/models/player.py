from dataclasses import dataclass
from typing import List

GENDER_MALE = "male"
GENDER_FEMALE = "female"

TEAM_MALE_MALE = "male_male"
TEAM_FEMALE_FEMALE = "female_female"
TEAM_MIXED = "mixed"

# Order in which gender classes are scheduled
TEAM_GENDER_ORDER = [TEAM_MALE_MALE, TEAM_FEMALE_FEMALE, TEAM_MIXED]
TEAM_GENDER_LABELS = {
    TEAM_MALE_MALE: "Male/Male",
    TEAM_FEMALE_FEMALE: "Female/Female",
    TEAM_MIXED: "Mixed",
}

MIN_RATING = 2.0
MAX_RATING = 5.5


@dataclass
class Player:
    id: str
    name: str
    rating: float  # DUPR 2.0 - 5.5
    gender: str = GENDER_MALE
    present: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "gender": self.gender,
            "present": self.present,
        }


def classify_team_gender(player1: Player, player2: Player) -> str:
    if player1.gender == GENDER_MALE and player2.gender == GENDER_MALE:
        return TEAM_MALE_MALE
    if player1.gender == GENDER_FEMALE and player2.gender == GENDER_FEMALE:
        return TEAM_FEMALE_FEMALE
    return TEAM_MIXED


@dataclass
class Team:
    """Fixed two-player partnership. Immutable once created."""

    id: str
    player1: Player
    player2: Player
    gender: str = TEAM_MIXED
    avg_rating: float = 0.0
    is_auto_generated: bool = False

    @classmethod
    def from_players(
        cls,
        team_id: str,
        player1: Player,
        player2: Player,
        is_auto_generated: bool = False,
    ) -> "Team":
        return cls(
            id=team_id,
            player1=player1,
            player2=player2,
            gender=classify_team_gender(player1, player2),
            avg_rating=(float(player1.rating) + float(player2.rating)) / 2,
            is_auto_generated=is_auto_generated,
        )

    @property
    def players(self) -> List[Player]:
        return [self.player1, self.player2]

    @property
    def name(self) -> str:
        return f"{self.player1.name}/{self.player2.name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict(),
            "gender": self.gender,
            "avg_rating": self.avg_rating,
            "is_auto_generated": self.is_auto_generated,
        }


def average_rating(players: List[Player]) -> float:
    if not players:
        return 0.0
    return sum(float(p.rating) for p in players) / len(players)
