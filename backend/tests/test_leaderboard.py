"""
Tests for leaderboards and the export payload.
"""

from datetime import datetime

from smashboard.models.match import FORMAT_SINGLES, MATCH_BEST_OF_3, SIDE_1, Match
from smashboard.models.tournament import KING_OF_COURT, TournamentConfig
from smashboard.services.leaderboard import build_results, kot_leaderboard, round_robin_leaderboard
from smashboard.services.outcome_validator import ScoreSubmission
from smashboard.services.stats_store import StatsStore
from smashboard.services.tournament_engine import TournamentEngine
from tests.factories import make_players


class TestKOTLeaderboard:
    def test_sorted_by_points_then_king_wins(self):
        stats = StatsStore()
        stats.kot("a").total_points = 8
        stats.kot("b").total_points = 8
        stats.kot("b").king_court_wins = 2
        stats.kot("c").total_points = 12

        rows = kot_leaderboard([("a", "A"), ("b", "B"), ("c", "C"), ("d", "D")], stats)

        assert [r["id"] for r in rows] == ["c", "b", "a", "d"]
        assert [r["rank"] for r in rows] == [1, 2, 3, 4]
        assert rows[-1]["total_points"] == 0
        assert "d" not in stats.kot_stats


class TestRoundRobinLeaderboard:
    def test_fewest_sat_out_then_most_played(self):
        stats = StatsStore()
        stats.player("a").rounds_sat_out = 1
        stats.player("a").rounds_played = 2
        stats.player("b").rounds_played = 3
        stats.player("c").rounds_sat_out = 1
        stats.player("c").rounds_played = 1

        rows = round_robin_leaderboard([("a", "A"), ("b", "B"), ("c", "C")], stats.player_stats, 3)

        assert [r["id"] for r in rows] == ["b", "a", "c"]
        assert rows[0]["total_rounds"] == 3


class TestExport:
    def _engine(self, rng, clock, **config):
        engine = TournamentEngine(config=TournamentConfig(court_count=2, **config), rng=rng, clock=clock)
        engine.set_players(make_players([3.0, 3.2, 3.4, 3.6, 4.0, 4.2, 4.4, 4.6]))
        return engine

    def test_pending_scores_are_blank(self, rng, clock):
        engine = self._engine(rng, clock, separate_by_skill=False)
        engine.generate_next_round()

        row = engine.export()["matches"][0]
        assert row["round"] == 1
        assert row["score1"] == "" and row["game3_score2"] == ""
        assert row["end_time"] == ""
        assert row["status"] == "pending"
        assert len(row["team1"]) == 2

    def test_best_of_3_totals_are_game_counts(self, rng, clock):
        engine = self._engine(rng, clock, separate_by_skill=False, match_format=MATCH_BEST_OF_3)
        engine.generate_next_round()
        engine.record_result(0, 0, ScoreSubmission(
            winner=SIDE_1, game1_score1=11, game1_score2=8, game2_score1=6, game2_score2=11,
            game3_score1=11, game3_score2=9,
        ))

        row = engine.export()["matches"][0]
        assert (row["score1"], row["score2"]) == (2, 1)
        assert row["winner"] == SIDE_1
        assert row["duration_minutes"] != ""

    def test_export_and_leaderboard_idempotent(self, rng, clock):
        engine = self._engine(rng, clock, tournament_type=KING_OF_COURT)
        engine.generate_next_round()
        engine.record_result(0, 0, ScoreSubmission(winner=SIDE_1, score1=11, score2=4))

        assert engine.export() == engine.export()
        assert engine.leaderboard() == engine.leaderboard()
        assert engine.export()["king_of_court_stats"] is not None

    def test_round_robin_has_no_kot_stats(self, rng, clock):
        engine = self._engine(rng, clock)
        assert engine.export()["king_of_court_stats"] is None

    def test_singles_rows_use_single_player_lists(self):
        a, b = make_players([3.0, 3.5])
        match = Match(id="m", court=1, game_format=FORMAT_SINGLES, player1=a, player2=b)
        payload = build_results([a, b], [[match]], {"courts": 1}, datetime(2024, 6, 1))

        assert payload["matches"][0]["team1"] == [{"id": "p1", "name": "P1", "rating": 3.0}]
        assert payload["generated_at"] == "2024-06-01T00:00:00"
