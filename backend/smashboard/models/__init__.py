from smashboard.models.court_state import CourtState
from smashboard.models.match import Match, Round
from smashboard.models.player import Player, Team
from smashboard.models.stats import KOTStats, PlayerStats, TeamStats
from smashboard.models.tournament import TournamentConfig

__all__ = [
    "Player",
    "Team",
    "Match",
    "Round",
    "CourtState",
    "PlayerStats",
    "TeamStats",
    "KOTStats",
    "TournamentConfig",
]
