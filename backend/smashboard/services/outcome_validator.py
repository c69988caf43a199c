"""
Match Outcome Validator

Accepts a submitted result, checks it against the match format and the
caller-selected winner, and only then writes it onto the Match.

single_match: both scores present, non-negative and unequal; the higher
              score's side must be the selected winner.
best_of_3:    games 1 and 2 required and non-tied; game 3 required on a 1-1
              split and forbidden after a 2-0; game-count winner must be the
              selected winner. score1/score2 become the game counts.

Nothing is mutated when validation fails.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from smashboard.models.match import MATCH_BEST_OF_3, SIDE_1, SIDE_2, STATUS_COMPLETED, Match
from smashboard.services.errors import ScoreValidationError

logger = logging.getLogger(__name__)

SIDES = (SIDE_1, SIDE_2)
GameScore = Tuple[Optional[int], Optional[int]]


@dataclass
class ScoreSubmission:
    winner: Optional[str] = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    game1_score1: Optional[int] = None
    game1_score2: Optional[int] = None
    game2_score1: Optional[int] = None
    game2_score2: Optional[int] = None
    game3_score1: Optional[int] = None
    game3_score2: Optional[int] = None

    def games(self) -> List[GameScore]:
        return [
            (self.game1_score1, self.game1_score2),
            (self.game2_score1, self.game2_score2),
            (self.game3_score1, self.game3_score2),
        ]


@dataclass
class ValidatedOutcome:
    winner: str
    score1: int
    score2: int
    games: List[Optional[Tuple[int, int]]]


def _side_label(side: str) -> str:
    return "Team 1" if side == SIDE_1 else "Team 2"


def _check_winner_selected(winner: Optional[str]) -> str:
    if winner not in SIDES:
        raise ScoreValidationError("Please select a winner (team1 or team2)")
    return winner


def _check_score(value: Optional[int], what: str) -> int:
    if value is None:
        raise ScoreValidationError(f"Please enter {what}")
    if value < 0:
        raise ScoreValidationError(f"{what[0].upper()}{what[1:]} cannot be negative")
    return value


def _is_blank(game: GameScore) -> bool:
    return game[0] is None and game[1] is None


def validate_single_match(score1: Optional[int], score2: Optional[int], winner: Optional[str]) -> ValidatedOutcome:
    winner = _check_winner_selected(winner)
    s1 = _check_score(score1, "a score for Team 1")
    s2 = _check_score(score2, "a score for Team 2")
    if s1 == s2:
        raise ScoreValidationError("Scores cannot be tied")

    by_score = SIDE_1 if s1 > s2 else SIDE_2
    if by_score != winner:
        raise ScoreValidationError(
            f"Score mismatch: {_side_label(by_score)} has the higher score but "
            f"{_side_label(winner)} was selected as the winner"
        )
    return ValidatedOutcome(winner=winner, score1=s1, score2=s2, games=[None, None, None])


def validate_best_of_3(games: List[GameScore], winner: Optional[str]) -> ValidatedOutcome:
    winner = _check_winner_selected(winner)
    played: List[Optional[Tuple[int, int]]] = []
    wins = {SIDE_1: 0, SIDE_2: 0}

    for number in (1, 2):
        a, b = games[number - 1]
        a = _check_score(a, f"both scores for Game {number}")
        b = _check_score(b, f"both scores for Game {number}")
        if a == b:
            raise ScoreValidationError(f"Game {number} cannot be tied")
        wins[SIDE_1 if a > b else SIDE_2] += 1
        played.append((a, b))

    game3 = games[2] if len(games) > 2 else (None, None)
    if wins[SIDE_1] == 2 or wins[SIDE_2] == 2:
        if not _is_blank(game3):
            raise ScoreValidationError("Game 3 should not be played after a 2-0 result")
        played.append(None)
    else:
        a = _check_score(game3[0], "both scores for Game 3 (match is tied 1-1)")
        b = _check_score(game3[1], "both scores for Game 3 (match is tied 1-1)")
        if a == b:
            raise ScoreValidationError("Game 3 cannot be tied")
        wins[SIDE_1 if a > b else SIDE_2] += 1
        played.append((a, b))

    by_games = SIDE_1 if wins[SIDE_1] > wins[SIDE_2] else SIDE_2
    if by_games != winner:
        raise ScoreValidationError(
            f"Score mismatch: {_side_label(by_games)} won {wins[by_games]} games but "
            f"{_side_label(winner)} was selected as the winner"
        )
    return ValidatedOutcome(winner=winner, score1=wins[SIDE_1], score2=wins[SIDE_2], games=played)


def validate_submission(match_format: str, submission: ScoreSubmission) -> ValidatedOutcome:
    if match_format == MATCH_BEST_OF_3:
        return validate_best_of_3(submission.games(), submission.winner)
    return validate_single_match(submission.score1, submission.score2, submission.winner)


def duration_minutes(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / 60)


def record_outcome(match: Match, submission: ScoreSubmission, now: datetime) -> ValidatedOutcome:
    """Validate and write a result onto match. Overwrites any previous result."""
    outcome = validate_submission(match.match_format, submission)

    match.score1 = outcome.score1
    match.score2 = outcome.score2
    g1, g2, g3 = outcome.games
    match.game1_score1, match.game1_score2 = g1 if g1 else (None, None)
    match.game2_score1, match.game2_score2 = g2 if g2 else (None, None)
    match.game3_score1, match.game3_score2 = g3 if g3 else (None, None)
    match.winner = outcome.winner
    match.status = STATUS_COMPLETED
    match.end_time = now
    match.duration_minutes = duration_minutes(match.start_time, now)

    logger.info(
        "Result recorded on court %d: %s wins %d-%d",
        match.court,
        outcome.winner,
        outcome.score1,
        outcome.score2,
    )
    return outcome
