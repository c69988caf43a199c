"""
Tests for group-of-four selection and 2v2 splitting.
"""

import random

import pytest

from smashboard.models.stats import PlayerStats
from smashboard.services.pairing import evaluate_group_quality, find_best_team_split, select_best_group_of_four
from tests.factories import make_players


def _teamed(stats, a, b, times=1):
    stats.setdefault(a.id, PlayerStats(player_id=a.id)).teammate_counts[b.id] = times
    stats.setdefault(b.id, PlayerStats(player_id=b.id)).teammate_counts[a.id] = times


class TestEvaluateGroupQuality:
    def test_identical_ratings_no_history(self):
        assert evaluate_group_quality(make_players([3.0, 3.0, 3.0, 3.0]), {}) == 0

    def test_adjacent_tiers_penalised(self):
        group = make_players([3.0, 3.0, 3.5, 3.5])
        assert evaluate_group_quality(group, {}) == pytest.approx(0.5 * 2 + 5)

    def test_non_adjacent_tiers_penalised_more(self):
        group = make_players([3.0, 3.0, 4.0, 4.0])
        assert evaluate_group_quality(group, {}) == pytest.approx(1.0 * 2 + 25)

    def test_repeat_teammates_penalised(self):
        group = make_players([3.0, 3.0, 3.0, 3.0])
        stats = {}
        _teamed(stats, group[0], group[1], times=2)
        # Counted once per unordered pair
        assert evaluate_group_quality(group, stats) == 20


class TestFindBestTeamSplit:
    def test_balances_ratings(self):
        p1, p2, p3, p4 = make_players([4.0, 4.0, 3.0, 3.0])
        split = find_best_team_split([p1, p2, p3, p4], {})

        assert split.team1 == [p1, p3]
        assert split.team2 == [p2, p4]
        assert split.score == 0

    def test_avoids_repeat_partners(self):
        p1, p2, p3, p4 = make_players([3.0, 3.0, 3.0, 3.0])
        stats = {}
        _teamed(stats, p1, p2)
        split = find_best_team_split([p1, p2, p3, p4], stats)

        assert {p.id for p in split.team1} != {p1.id, p2.id}
        assert {p.id for p in split.team2} != {p1.id, p2.id}

    def test_same_tier_teams_preferred_on_equal_balance(self):
        p1, p2, p3, p4 = make_players([3.0, 3.0, 3.0, 3.0])
        split = find_best_team_split([p1, p2, p3, p4], {})
        # All partitions tie at -6; the first one is kept
        assert split.team1 == [p1, p2]
        assert split.score == -6


class TestSelectBestGroupOfFour:
    def test_small_pool_returned_whole(self, rng):
        pool = make_players([3.0, 3.5, 4.0])
        assert select_best_group_of_four(pool, {}, rng) == pool

    @pytest.mark.parametrize("seed", range(10))
    def test_four_distinct_members_of_pool(self, seed):
        pool = make_players([2.5, 3.0, 3.2, 3.6, 4.0, 4.4, 4.8, 5.2, 5.5])
        group = select_best_group_of_four(pool, {}, random.Random(seed))

        assert len(group) == 4
        assert len({p.id for p in group}) == 4
        assert all(p in pool for p in group)

    def test_replayable_with_same_seed(self):
        pool = make_players([2.5, 3.0, 3.2, 3.6, 4.0, 4.4, 4.8, 5.2])
        first = select_best_group_of_four(pool, {}, random.Random(7))
        second = select_best_group_of_four(pool, {}, random.Random(7))
        assert [p.id for p in first] == [p.id for p in second]
