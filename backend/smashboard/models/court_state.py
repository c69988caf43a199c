from dataclasses import dataclass
from typing import Optional

from smashboard.models.match import Match

COURT_READY = "ready"
COURT_PLAYING = "playing"
COURT_CLEANING = "cleaning"
COURT_STATUSES = (COURT_READY, COURT_PLAYING, COURT_CLEANING)

# Both statuses keep the match's participants off the available pool
BLOCKING_STATUSES = (COURT_PLAYING, COURT_CLEANING)


@dataclass
class CourtState:
    court_number: int
    status: str = COURT_READY
    current_match: Optional[Match] = None

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES and self.current_match is not None

    def to_dict(self) -> dict:
        return {
            "court_number": self.court_number,
            "status": self.status,
            "current_match": self.current_match.to_dict() if self.current_match else None,
        }
