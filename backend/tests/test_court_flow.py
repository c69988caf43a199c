"""
Tests for the continuous-play court state machine.

Regression focus: participants of a match on a cleaning court must stay
blocked until the court is marked ready.
"""

import pytest

from smashboard.models.court_state import COURT_CLEANING, COURT_PLAYING, COURT_READY
from smashboard.models.match import FORMAT_DOUBLES, FORMAT_SINGLES, FORMAT_TEAMED_DOUBLES
from smashboard.services import court_flow
from smashboard.services.court_flow import CourtFlowController
from smashboard.services.errors import CourtStateError, InsufficientParticipantsError, UnknownCourtError
from smashboard.services.stats_store import StatsStore
from tests.factories import make_players, make_team


def _assign(flow, court, players, stats, rng, game_format=FORMAT_DOUBLES, teams=None, separate=False):
    return flow.assign(court, game_format, players, teams or [], stats, rng, "single_match", separate)


class TestTransitions:
    def test_ready_playing_ready(self, rng, clock):
        flow = CourtFlowController(2)
        players = make_players([3.0] * 4)
        now = clock()

        match = flow.assign(1, FORMAT_DOUBLES, players, [], StatsStore(), rng, "best_of_3", False, now)
        assert flow.get(1).status == COURT_PLAYING
        assert match.court == 1
        assert match.match_format == "best_of_3"
        assert match.start_time == now

        done = flow.complete(1, COURT_READY)
        assert done is match
        assert flow.get(1).status == COURT_READY
        assert flow.get(1).current_match is None

    def test_assign_requires_ready_court(self, rng):
        flow = CourtFlowController(1)
        players = make_players([3.0] * 8)
        _assign(flow, 1, players, StatsStore(), rng)
        with pytest.raises(CourtStateError):
            _assign(flow, 1, players, StatsStore(), rng)

    def test_complete_requires_match(self):
        with pytest.raises(CourtStateError):
            CourtFlowController(1).complete(1)

    def test_invalid_next_status(self, rng):
        flow = CourtFlowController(1)
        _assign(flow, 1, make_players([3.0] * 4), StatsStore(), rng)
        with pytest.raises(CourtStateError):
            flow.complete(1, "closed")
        assert flow.get(1).status == COURT_PLAYING

    def test_unknown_court(self):
        with pytest.raises(UnknownCourtError):
            CourtFlowController(2).get(3)

    def test_mark_ready_refuses_playing_court(self, rng):
        flow = CourtFlowController(1)
        _assign(flow, 1, make_players([3.0] * 4), StatsStore(), rng)
        with pytest.raises(CourtStateError):
            flow.mark_ready(1)

    def test_reset_drops_matches(self, rng):
        flow = CourtFlowController(2)
        _assign(flow, 1, make_players([3.0] * 4), StatsStore(), rng)
        flow.reset(3)
        assert [c.status for c in flow.ordered()] == [COURT_READY] * 3
        assert flow.on_court_ids() == set()

    def test_state_diagram_has_no_backslashes(self):
        assert "\\" not in court_flow.__doc__
        assert "+--complete(next_status=ready)--> ready" in court_flow.__doc__

    def test_resize_keeps_surviving_courts(self, rng):
        flow = CourtFlowController(2)
        match = _assign(flow, 1, make_players([3.0] * 4), StatsStore(), rng)
        flow.resize(3)

        assert [c.status for c in flow.ordered()] == [COURT_PLAYING, COURT_READY, COURT_READY]
        assert flow.get(1).current_match is match
        assert flow.on_court_ids() == set(match.participant_ids())

    def test_resize_drops_removed_courts(self, rng):
        flow = CourtFlowController(2)
        players = make_players([3.0] * 8)
        first = _assign(flow, 1, players, StatsStore(), rng)
        _assign(flow, 2, players, StatsStore(), rng)
        flow.resize(1)

        assert [c.court_number for c in flow.ordered()] == [1]
        assert flow.on_court_ids() == set(first.participant_ids())


class TestCleaningBlocksParticipants:
    def test_cleaning_court_players_not_reassigned(self, rng):
        flow = CourtFlowController(3)
        players = make_players([3.0] * 8)
        stats = StatsStore()

        first = _assign(flow, 1, players, stats, rng)
        flow.complete(1, COURT_CLEANING)
        assert flow.get(1).status == COURT_CLEANING
        assert flow.get(1).current_match is first

        second = _assign(flow, 2, players, stats, rng)
        assert set(first.participant_ids()).isdisjoint(second.participant_ids())

        # Everyone is on court 1 (cleaning) or court 2 (playing)
        with pytest.raises(InsufficientParticipantsError):
            _assign(flow, 3, players, stats, rng)

    def test_mark_ready_releases_players(self, rng):
        flow = CourtFlowController(2)
        players = make_players([3.0] * 8)
        first = _assign(flow, 1, players, StatsStore(), rng)
        flow.complete(1, COURT_CLEANING)
        assert len(flow.available_players(players)) == 4

        flow.mark_ready(1)
        assert flow.get(1).current_match is None
        assert len(flow.available_players(players)) == 8
        assert set(first.participant_ids()) <= {p.id for p in flow.available_players(players)}

    def test_cleaning_blocks_singles(self, rng):
        flow = CourtFlowController(2)
        players = make_players([3.0, 3.0, 3.0])
        first = _assign(flow, 1, players, StatsStore(), rng, game_format=FORMAT_SINGLES)
        flow.complete(1, COURT_CLEANING)

        with pytest.raises(InsufficientParticipantsError):
            _assign(flow, 2, players, StatsStore(), rng, game_format=FORMAT_SINGLES)
        assert len(first.participant_ids()) == 2

    def test_cleaning_blocks_teams(self, rng):
        flow = CourtFlowController(2)
        p = make_players([3.0] * 8)
        teams = [make_team(f"t{i}", p[2 * i], p[2 * i + 1]) for i in range(4)]
        first = _assign(flow, 1, p, StatsStore(), rng, game_format=FORMAT_TEAMED_DOUBLES, teams=teams)
        flow.complete(1, COURT_CLEANING)

        second = _assign(flow, 2, p, StatsStore(), rng, game_format=FORMAT_TEAMED_DOUBLES, teams=teams)
        assert set(first.team_ids()).isdisjoint(second.team_ids())


class TestSelection:
    def test_singles_prefers_compatible_opponent(self, rng):
        players = make_players([3.0, 5.0, 5.2, 5.4, 5.1, 4.9, 3.2, 5.3])
        stats = StatsStore()
        # p1 has played least; p7 (3.2) is the only compatible opponent
        for p in players[1:]:
            stats.player(p.id).rounds_played = 1
        stats.player("p7").rounds_played = 2

        match = _assign(CourtFlowController(1), 1, players, stats, rng, game_format=FORMAT_SINGLES, separate=True)
        assert {match.player1.id, match.player2.id} == {"p1", "p7"}

    def test_singles_without_separation_takes_next_in_line(self, rng):
        players = make_players([3.0, 5.0, 3.2])
        stats = StatsStore()
        stats.player("p3").rounds_played = 1
        match = _assign(CourtFlowController(1), 1, players, stats, rng, game_format=FORMAT_SINGLES)
        assert {match.player1.id, match.player2.id} == {"p1", "p2"}

    def test_teamed_same_gender_only(self, rng):
        men = make_players([3.0] * 2, gender="male", prefix="m")
        women = make_players([3.0] * 4, gender="female", prefix="w")
        mixed = make_players([3.0], gender="male", prefix="x") + make_players([3.0], gender="female", prefix="y")
        teams = [
            make_team("mm", men[0], men[1]),
            make_team("ff1", women[0], women[1]),
            make_team("ff2", women[2], women[3]),
            make_team("mx", mixed[0], mixed[1]),
        ]
        match = _assign(CourtFlowController(1), 1, men + women + mixed, StatsStore(), rng,
                        game_format=FORMAT_TEAMED_DOUBLES, teams=teams)
        assert {match.team1_id, match.team2_id} == {"ff1", "ff2"}

    def test_teamed_avoids_rematch(self, rng):
        p = make_players([3.0] * 6)
        teams = [make_team(f"t{i}", p[2 * i], p[2 * i + 1]) for i in range(3)]
        stats = StatsStore()
        stats.team("t0").add_opponent("t1")
        match = _assign(CourtFlowController(1), 1, p, stats, rng, game_format=FORMAT_TEAMED_DOUBLES, teams=teams)
        assert {match.team1_id, match.team2_id} == {"t0", "t2"}


class TestNextUp:
    def test_priority_order_and_excludes_on_court(self, rng):
        flow = CourtFlowController(1)
        players = make_players([3.0] * 6)
        stats = StatsStore()
        match = _assign(flow, 1, players, stats, rng)

        waiting_ids = [p.id for p in players if p.id not in match.participant_ids()]
        stats.player(waiting_ids[1]).rounds_sat_out = 2

        queue = flow.next_up(FORMAT_DOUBLES, players, [], stats)
        assert [p.id for p, _ in queue] == [waiting_ids[1], waiting_ids[0]]
        assert queue[0][1] == 210
