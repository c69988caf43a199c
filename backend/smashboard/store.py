"""
In-memory tournament registry. Nothing is persisted; restarting the process
drops every tournament.
"""
import logging
import random
from typing import Dict, Optional

from smashboard import config
from smashboard.models.tournament import TournamentConfig
from smashboard.services.tournament_engine import TournamentEngine

logger = logging.getLogger(__name__)


class TournamentStore:
    def __init__(self, seed: Optional[int] = None):
        self._tournaments: Dict[str, TournamentEngine] = {}
        self._seed = seed

    def _rng(self) -> random.Random:
        return random.Random(self._seed) if self._seed is not None else random.Random()

    def default_config(self) -> TournamentConfig:
        return TournamentConfig(court_count=config.default_court_count())

    def create(self, tournament_config: Optional[TournamentConfig] = None) -> TournamentEngine:
        engine = TournamentEngine(config=tournament_config or self.default_config(), rng=self._rng())
        self._tournaments[engine.id] = engine
        logger.info("Created tournament %s", engine.id)
        return engine

    def get(self, tournament_id: str) -> Optional[TournamentEngine]:
        return self._tournaments.get(tournament_id)

    def __len__(self) -> int:
        return len(self._tournaments)


_store = TournamentStore(seed=config.random_seed())


def get_store() -> TournamentStore:
    """FastAPI dependency; overridden in tests."""
    return _store
