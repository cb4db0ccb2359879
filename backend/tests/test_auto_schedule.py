"""
Tests for automatic scheduling — pool draw, round robin, greedy slot filling, playoff timing.
"""
import pytest

from tourney.models.game import Game
from tourney.services.auto_schedule import (
    AutoScheduleError,
    assign_to_pools,
    plan_playoff_schedule,
    pool_distribution,
    pool_names,
    round_robin_matchups,
    round_robin_rounds,
    schedule_matchups,
    verify_round_robin,
)
from tourney.services.slot_scheduler import ScheduleConfig, find_schedule_conflicts


def _config(start="09:00", end="17:00", fields=("Field 1", "Field 2")) -> ScheduleConfig:
    return ScheduleConfig(
        tournament_start=start,
        tournament_end=end,
        game_duration_minutes=45,
        break_duration_minutes=10,
        field_names=fields,
    )


class TestPoolDistribution:
    def test_default_pool_count(self):
        assert pool_distribution(16) == [4, 4, 4, 4]

    def test_uneven_split_puts_larger_pools_first(self):
        assert pool_distribution(14, 4) == [4, 4, 3, 3]

    def test_sizes_differ_by_at_most_one(self):
        for total in range(8, 30):
            sizes = pool_distribution(total)
            assert sum(sizes) == total
            assert max(sizes) - min(sizes) <= 1

    def test_too_few_teams_rejected(self):
        with pytest.raises(AutoScheduleError):
            pool_distribution(5, 3)

    def test_names(self):
        assert pool_names(3) == ["Pool A", "Pool B", "Pool C"]
        assert pool_names(2, ["North", ""]) == ["North", "Pool B"]

    def test_assign_to_pools(self):
        assert assign_to_pools([1, 2, 3, 4, 5], [3, 2]) == [[1, 2, 3], [4, 5]]
        with pytest.raises(AutoScheduleError):
            assign_to_pools([1, 2, 3], [2, 2])


class TestRoundRobin:
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6])
    def test_every_pair_once(self, n):
        team_ids = list(range(1, n + 1))
        matchups = round_robin_matchups(team_ids)

        assert len(matchups) == n * (n - 1) // 2
        assert verify_round_robin(team_ids, matchups)

    def test_earlier_listed_team_at_home(self):
        matchups = round_robin_matchups([30, 10, 20])

        order = {30: 0, 10: 1, 20: 2}
        assert all(order[home] < order[away] for home, away in matchups)

    def test_no_team_twice_in_a_round(self):
        for rnd in round_robin_rounds([1, 2, 3, 4, 5, 6]):
            teams = [t for pair in rnd for t in pair]
            assert len(teams) == len(set(teams))

    def test_verify_detects_missing_pair(self):
        assert not verify_round_robin([1, 2, 3], [(1, 2), (1, 3)])

    def test_single_team_rejected(self):
        with pytest.raises(AutoScheduleError):
            round_robin_matchups([1])


class TestScheduleMatchups:
    def test_placements_never_conflict(self):
        config = _config()
        matchups = round_robin_matchups([1, 2, 3, 4]) + round_robin_matchups([5, 6, 7, 8])
        run = schedule_matchups(matchups, config)

        assert run.unplaced == []
        placed = [
            Game(id=i, tournament_id=1, home_team_id=p.home_team_id, away_team_id=p.away_team_id,
                 field=p.field, scheduled_start_time=p.scheduled_start_time)
            for i, p in enumerate(run.placed, start=1)
        ]
        assert find_schedule_conflicts(placed, config) == []

    def test_existing_games_respected(self):
        existing = [Game(id=1, tournament_id=1, home_team_id=1, away_team_id=9,
                         field="Field 1", scheduled_start_time="09:00")]
        run = schedule_matchups([(1, 2)], _config(), existing)

        [placement] = run.placed
        assert placement.scheduled_start_time == "09:55"

    def test_overflow_reported_not_dropped(self):
        config = _config(start="09:00", end="10:00", fields=("Field 1",))
        run = schedule_matchups([(1, 2), (3, 4)], config)

        assert len(run.placed) == 1
        assert run.unplaced == [(3, 4)]
        assert run.to_dict()["unplaced"] == [[3, 4]]


class TestPlayoffPlan:
    def test_without_pool_games_starts_at_day_start(self):
        plan = plan_playoff_schedule(_config(fields=("A", "B", "C", "D")), 60)
        by_slot = {(p.playoff_round, p.position): p for p in plan}

        assert {by_slot[("quarterfinal", i)].start_time for i in range(1, 5)} == {"09:00"}
        assert [by_slot[("quarterfinal", i)].field for i in range(1, 5)] == ["A", "B", "C", "D"]
        # game (45) + round break (60)
        assert by_slot[("semifinal", 1)].start_time == "10:45"
        assert by_slot[("final", 1)].start_time == "12:30"
        assert by_slot[("final", 1)].field == "A"

    def test_starts_after_last_pool_game(self):
        pool_games = [Game(id=1, tournament_id=1, home_team_id=1, away_team_id=2,
                           field="A", scheduled_start_time="13:00")]
        plan = plan_playoff_schedule(_config(fields=("A", "B", "C", "D")), 30, pool_games)

        assert plan[0].start_time == "14:15"

    def test_fewer_fields_spill_into_waves(self):
        plan = plan_playoff_schedule(_config(fields=("A", "B")), 60)
        qf = [p for p in plan if p.playoff_round == "quarterfinal"]

        assert [(p.field, p.start_time) for p in qf] == [
            ("A", "09:00"), ("B", "09:00"), ("A", "09:55"), ("B", "09:55"),
        ]
        semis = [p for p in plan if p.playoff_round == "semifinal"]
        assert {p.start_time for p in semis} == {"11:40"}

    def test_negative_break_rejected(self):
        with pytest.raises(AutoScheduleError):
            plan_playoff_schedule(_config(), -1)

    def test_plan_running_past_midnight_rejected(self):
        config = _config(start="09:00", end="23:00", fields=("Field 1",))
        late_pool_game = [Game(id=1, tournament_id=1, home_team_id=1, away_team_id=2,
                               field="Field 1", scheduled_start_time="22:00")]

        # QF1 fits at 23:45, QF2 would need 24:40
        with pytest.raises(AutoScheduleError, match="QF2 would kick off past midnight"):
            plan_playoff_schedule(config, 60, late_pool_game)
