"""Errors raised by the scheduling engine. All are reported to the caller; none are fatal."""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling engine errors"""
    pass


class ConfigurationError(SchedulingError):
    """Tournament configuration is invalid"""
    pass


class InsufficientParticipantsError(SchedulingError):
    """Fewer players/teams than the format needs. Raised before any state is mutated."""

    def __init__(self, message: str, required: Optional[int] = None, available: Optional[int] = None):
        super().__init__(message)
        self.required = required
        self.available = available


class ScoreValidationError(SchedulingError):
    """Submitted scores are incomplete, tied, or disagree with the selected winner"""
    pass


class CourtStateError(SchedulingError):
    """Court flow action not allowed in the court's current state"""
    pass


class UnknownMatchError(SchedulingError):
    """Round or match index does not exist"""
    pass


class UnknownCourtError(CourtStateError):
    """Court number is outside 1..court_count"""
    pass
