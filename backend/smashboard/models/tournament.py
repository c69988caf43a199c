from dataclasses import asdict, dataclass

from smashboard.models.match import FORMAT_DOUBLES, FORMAT_SINGLES, GAME_FORMATS, MATCH_FORMATS, MATCH_SINGLE
from smashboard.services.errors import ConfigurationError

ROUND_ROBIN = "round_robin"
KING_OF_COURT = "king_of_court"
TOURNAMENT_TYPES = (ROUND_ROBIN, KING_OF_COURT)


@dataclass
class TournamentConfig:
    court_count: int = 4
    tournament_type: str = ROUND_ROBIN
    game_format: str = FORMAT_DOUBLES
    match_format: str = MATCH_SINGLE
    separate_by_skill: bool = True
    kot_fixed_partners: bool = True  # KOT doubles: snake-drafted fixed teams
    min_players_per_level: int = 4
    session_minutes: int = 120
    minutes_per_round: int = 20

    def validate(self) -> None:
        if not isinstance(self.court_count, int) or self.court_count < 1:
            raise ConfigurationError(f"court_count must be an integer >= 1, got {self.court_count!r}")
        if self.tournament_type not in TOURNAMENT_TYPES:
            raise ConfigurationError(f"Invalid tournament_type: {self.tournament_type}")
        if self.game_format not in GAME_FORMATS:
            raise ConfigurationError(f"Invalid game_format: {self.game_format}")
        if self.match_format not in MATCH_FORMATS:
            raise ConfigurationError(f"Invalid match_format: {self.match_format}")
        if self.tournament_type == KING_OF_COURT and self.game_format == FORMAT_SINGLES:
            raise ConfigurationError("King of Court supports doubles and teamed doubles only")
        if self.min_players_per_level < 1:
            raise ConfigurationError("min_players_per_level must be >= 1")

    @property
    def is_king_of_court(self) -> bool:
        return self.tournament_type == KING_OF_COURT

    def to_dict(self) -> dict:
        return asdict(self)
