"""
Tests for the King-of-Court ladder: points, snake draft, court advancement,
round generation and point awards.
"""

import pytest

from smashboard.models.match import COURT_LEVEL_KING, SIDE_1, SIDE_2, Match, new_match_id
from smashboard.services.king_of_court import (
    assign_to_courts,
    award_points,
    court_points,
    generate_balanced_teams,
    generate_kot_player_round,
    generate_kot_team_round,
    revoke_points,
)
from smashboard.services.round_robin import make_team_match
from smashboard.services.stats_store import StatsStore
from tests.factories import complete, make_players, make_team


def _teams(n, rating=3.5):
    players = make_players([rating] * (n * 2))
    return [make_team(f"t{i + 1}", players[2 * i], players[2 * i + 1]) for i in range(n)]


class TestCourtPoints:
    @pytest.mark.parametrize("courts", range(1, 8))
    def test_strictly_decreasing(self, courts):
        points = [court_points(i, courts) for i in range(courts)]
        assert all(points[i] > points[i + 1] for i in range(courts - 1))

    def test_values(self):
        assert [court_points(i, 3) for i in range(3)] == [6, 4, 2]


class TestSnakeDraft:
    def test_four_players(self):
        players = make_players([2.0, 5.0, 3.0, 4.0])
        teams = generate_balanced_teams(players)

        assert [sorted(p.rating for p in t.players) for t in teams] == [[2.0, 5.0], [3.0, 4.0]]
        assert all(t.is_auto_generated for t in teams)
        assert all(t.avg_rating == 3.5 for t in teams)

    def test_six_players_snake(self):
        players = make_players([5.0, 4.5, 4.0, 3.5, 3.0, 2.5])
        teams = generate_balanced_teams(players)

        assert [[p.rating for p in t.players] for t in teams] == [[5.0, 2.5], [4.5, 3.0], [4.0, 3.5]]

    def test_odd_player_left_out(self):
        teams = generate_balanced_teams(make_players([5.0, 4.0, 3.0, 2.5, 2.0]))
        assert len(teams) == 2
        drafted = {p.rating for t in teams for p in t.players}
        assert 2.0 not in drafted

    def test_fewer_than_two(self):
        assert generate_balanced_teams(make_players([3.0])) == []


class TestAssignToCourts:
    def test_team_ladder_promotes_one(self):
        a, b, c, d, e, f = _teams(6)
        previous = [
            complete(make_team_match(a, b, 1, "single_match"), SIDE_1),
            complete(make_team_match(c, d, 2, "single_match"), SIDE_1),
            complete(make_team_match(e, f, 3, "single_match"), SIDE_1),
        ]

        ordered = assign_to_courts(
            [a, b, c, d, e, f], lambda t: t.id, StatsStore(), previous, 3, 1, 2, 1
        )

        # King: stayer + court 2 winner; court 2: its loser + King's loser
        assert [t.id for t in ordered] == ["t1", "t3", "t4", "t2", "t5", "t6"]

    def test_player_ladder_promotes_two(self):
        p = make_players([3.5] * 8)
        previous = [
            complete(Match(id=new_match_id(), court=1, team1=p[0:2], team2=p[2:4]), SIDE_1),
            complete(Match(id=new_match_id(), court=2, team1=p[4:6], team2=p[6:8]), SIDE_1),
        ]

        ordered = assign_to_courts(p, lambda x: x.id, StatsStore(), previous, 2, 1, 4, 2)

        assert [x.id for x in ordered] == ["p1", "p2", "p5", "p6", "p7", "p8", "p3", "p4"]

    def test_no_participant_seated_twice(self):
        teams = _teams(6)
        previous = [
            complete(make_team_match(teams[0], teams[1], 1, "single_match"), SIDE_2),
            complete(make_team_match(teams[2], teams[3], 2, "single_match"), SIDE_2),
            complete(make_team_match(teams[4], teams[5], 3, "single_match"), SIDE_1),
        ]
        ordered = assign_to_courts(teams, lambda t: t.id, StatsStore(), previous, 3, 1, 2, 1)
        assert sorted(t.id for t in ordered) == sorted(t.id for t in teams)

    def test_newcomer_treated_as_bottom_court(self):
        a, b, c, d, newcomer = _teams(5)
        previous = [
            complete(make_team_match(a, b, 1, "single_match"), SIDE_1),
            complete(make_team_match(c, d, 2, "single_match"), SIDE_1),
        ]
        ordered = assign_to_courts([newcomer, a, b, c, d], lambda t: t.id, StatsStore(), previous, 2, 1, 2, 1)
        assert [t.id for t in ordered[:2]] == ["t1", "t3"]

    def test_points_break_ties(self):
        p = make_players([3.5] * 4)
        stats = StatsStore()
        stats.kot("p2").total_points = 10
        previous = [complete(Match(id=new_match_id(), court=1, team1=p[0:2], team2=p[2:4]), SIDE_1)]

        ordered = assign_to_courts(p, lambda x: x.id, stats, previous, 1, 1, 4, 2)
        assert [x.id for x in ordered] == ["p2", "p1", "p3", "p4"]

    def test_no_previous_round_keeps_order(self):
        teams = _teams(4)
        ordered = assign_to_courts(teams, lambda t: t.id, StatsStore(), [], 2, 1, 2, 1)
        assert ordered == teams


class TestTeamLadderRound:
    def test_first_round_hierarchy(self, rng, clock):
        teams = _teams(4)
        stats = StatsStore()
        result = generate_kot_team_round(teams, 2, stats, 0, None, rng, separate_by_skill=False, now=clock())

        assert [m.court for m in result.matches] == [1, 2]
        assert [m.court_level for m in result.matches] == [COURT_LEVEL_KING, "Level 2"]
        assert [m.points_for_win for m in result.matches] == [4, 2]
        assert all(m.match_format == "single_match" for m in result.matches)
        for t in teams:
            assert stats.kot(t.id).rounds_played == 1
            assert stats.kot(t.id).court_history == [stats.kot(t.id).current_court]

    def test_extra_team_sits_out(self, rng):
        teams = _teams(5)
        stats = StatsStore()
        result = generate_kot_team_round(teams, 2, stats, 0, None, rng, separate_by_skill=False)

        assert len(result.matches) == 2
        assert sum(stats.kot(t.id).rounds_sat_out for t in teams) == 1

    def test_gender_hierarchies(self, rng):
        men = make_players([3.5] * 4, gender="male", prefix="m")
        women = make_players([3.5] * 4, gender="female", prefix="w")
        teams = [
            make_team("mm1", men[0], men[1]),
            make_team("mm2", men[2], men[3]),
            make_team("ff1", women[0], women[1]),
            make_team("ff2", women[2], women[3]),
        ]
        result = generate_kot_team_round(teams, 4, StatsStore(), 0, None, rng, separate_by_skill=True)

        assert len(result.matches) == 2
        # Each gender class is its own one-court hierarchy
        assert all(m.court_level == COURT_LEVEL_KING for m in result.matches)
        assert [m.team_gender for m in result.matches] == ["male_male", "female_female"]
        assert [m.court for m in result.matches] == [1, 2]
        assert [m.points_for_win for m in result.matches] == [2, 2]

    def test_points_scale_with_requested_courts(self, rng):
        result = generate_kot_team_round(_teams(4), 4, StatsStore(), 0, None, rng, separate_by_skill=False)

        # Two of four courts filled; King is still worth the top of a four-court ladder
        assert [m.points_for_win for m in result.matches] == [8, 6]


class TestPlayerLadderRound:
    def test_individual_ladder(self, rng):
        players = make_players([3.5] * 9)
        stats = StatsStore()
        result = generate_kot_player_round(players, 2, stats, 0, None, rng, separate_by_skill=False)

        assert len(result.matches) == 2
        assert all(m.team1_id is None for m in result.matches)
        assert [m.points_for_win for m in result.matches] == [4, 2]
        ids = [pid for m in result.matches for pid in m.participant_ids()]
        assert len(set(ids)) == 8
        assert sum(stats.kot(p.id).rounds_sat_out for p in players) == 1

    def test_points_scale_with_requested_courts(self, rng):
        players = make_players([3.5] * 8)
        result = generate_kot_player_round(players, 4, StatsStore(), 0, None, rng, separate_by_skill=False)

        assert len(result.matches) == 2
        assert [m.points_for_win for m in result.matches] == [8, 6]


class TestPointAwards:
    def test_king_win_counts(self):
        a, b = _teams(2)
        stats = StatsStore()
        match = make_team_match(a, b, 1, "single_match", court_level=COURT_LEVEL_KING, points_for_win=4)
        complete(match, SIDE_1)

        assert award_points(stats, match) == 4
        assert stats.kot("t1").total_points == 4
        assert stats.kot("t1").king_court_wins == 1
        assert stats.kot("t2").total_points == 0

        revoke_points(stats, match)
        assert stats.kot("t1").total_points == 0
        assert stats.kot("t1").king_court_wins == 0
        assert match.points_awarded is None

    def test_player_ladder_credits_both_partners(self):
        p = make_players([3.5] * 4)
        stats = StatsStore()
        match = Match(id="m", court=2, team1=p[0:2], team2=p[2:4], court_level="Level 2", points_for_win=2)
        complete(match, SIDE_2)
        award_points(stats, match)

        assert stats.kot("p3").total_points == 2
        assert stats.kot("p4").total_points == 2
        assert stats.kot("p3").king_court_wins == 0

    def test_pending_match_awards_nothing(self):
        a, b = _teams(2)
        match = make_team_match(a, b, 1, "single_match", points_for_win=4)
        assert award_points(StatsStore(), match) == 0
