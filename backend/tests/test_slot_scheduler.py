"""
Tests for the slot scheduler — start-time grid, team/field double-booking checks.
"""
import pytest

from tourney.models.game import Game
from tourney.services.slot_scheduler import (
    CONFLICT_FIELD,
    CONFLICT_OUTSIDE_HOURS,
    CONFLICT_SELF_MATCH,
    CONFLICT_TEAM,
    CONFLICT_UNKNOWN_FIELD,
    ProposedGame,
    ScheduleConfig,
    ScheduleConfigError,
    SchedulingError,
    build_schedule_grid,
    check_placement_bounds,
    find_schedule_conflicts,
    format_time,
    list_available_start_times,
    parse_time,
    validate_assignment,
)


def _config(start="09:00", end="17:00", game=45, brk=10, fields=("Field 1", "Field 2")) -> ScheduleConfig:
    return ScheduleConfig(
        tournament_start=start,
        tournament_end=end,
        game_duration_minutes=game,
        break_duration_minutes=brk,
        field_names=fields,
    )


def _game(gid, home, away, field, start) -> Game:
    return Game(id=gid, tournament_id=1, home_team_id=home, away_team_id=away, field=field, scheduled_start_time=start)


class TestTimes:
    def test_parse_and_format(self):
        assert parse_time("09:05") == 545
        assert parse_time("9:05") == 545
        assert format_time(545) == "09:05"

    def test_invalid_time_rejected(self):
        with pytest.raises(SchedulingError):
            parse_time("25:00")
        with pytest.raises(SchedulingError):
            parse_time("noon")

    def test_format_stays_within_one_day(self):
        assert format_time(23 * 60 + 59) == "23:59"
        with pytest.raises(SchedulingError):
            format_time(24 * 60)
        with pytest.raises(SchedulingError):
            format_time(-5)


class TestConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start": "bad"},
            {"end": "08:00"},
            {"game": 0},
            {"brk": -5},
            {"fields": ()},
        ],
    )
    def test_invalid_config_rejected(self, kwargs):
        with pytest.raises(ScheduleConfigError):
            _config(**kwargs)

    def test_slot_minutes(self):
        assert _config().slot_minutes == 55


class TestStartTimes:
    def test_single_slot_hour(self):
        assert list_available_start_times(_config(start="09:00", end="10:00")) == ["09:00"]

    def test_steps_by_game_plus_break(self):
        times = list_available_start_times(_config(start="09:00", end="12:00"))

        assert times == ["09:00", "09:55", "10:50"]

    def test_last_game_may_end_exactly_at_close(self):
        times = list_available_start_times(_config(start="09:00", end="10:40"))

        assert times == ["09:00", "09:55"]


class TestValidateAssignment:
    def test_field_overlap_conflicts(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=3, away_team_id=4, field="Field 1", scheduled_start_time="09:30")

        conflict = validate_assignment(proposed, existing, _config())

        assert conflict is not None
        assert conflict.kind == CONFLICT_FIELD
        assert conflict.conflicting_game_id == 1
        assert "Field 1" in conflict.message
        assert "09:00 to 09:55" in conflict.message

    def test_back_to_back_is_fine(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=1, away_team_id=3, field="Field 1", scheduled_start_time="09:55")

        assert validate_assignment(proposed, existing, _config()) is None

    def test_back_to_back_fine_even_past_closing(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=3, away_team_id=4, field="Field 1", scheduled_start_time="09:55")

        assert validate_assignment(proposed, existing, _config(start="09:00", end="10:00")) is None

    def test_team_overlap_on_other_field_conflicts(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=3, away_team_id=2, field="Field 2", scheduled_start_time="09:30")

        conflict = validate_assignment(proposed, existing, _config(), team_names={2: "Bravo"})

        assert conflict.kind == CONFLICT_TEAM
        assert conflict.team_id == 2
        assert conflict.message == "Team conflict: Bravo is already playing at 09:00"

    def test_team_conflict_reported_before_field_conflict(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=1, away_team_id=3, field="Field 1", scheduled_start_time="09:00")

        assert validate_assignment(proposed, existing, _config()).kind == CONFLICT_TEAM

    def test_edited_game_excluded_by_id(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        moved = ProposedGame(id=1, home_team_id=1, away_team_id=2, field="Field 1", scheduled_start_time="09:30")

        assert validate_assignment(moved, existing, _config()) is None

    def test_untimed_games_ignored(self):
        existing = [_game(1, 1, 2, None, None)]
        proposed = ProposedGame(home_team_id=1, away_team_id=2, field="Field 1", scheduled_start_time="09:00")

        assert validate_assignment(proposed, existing, _config()) is None

    def test_self_match_rejected(self):
        proposed = ProposedGame(home_team_id=5, away_team_id=5, field="Field 1", scheduled_start_time="09:00")

        assert validate_assignment(proposed, [], _config()).kind == CONFLICT_SELF_MATCH

    def test_missing_placement_is_an_error(self):
        proposed = ProposedGame(home_team_id=1, away_team_id=2, field="", scheduled_start_time="09:00")

        with pytest.raises(SchedulingError):
            validate_assignment(proposed, [], _config())

    def test_interval_ending_after_midnight_is_still_reported(self):
        existing = [_game(1, 1, 2, "Field 1", "23:10")]
        proposed = ProposedGame(home_team_id=3, away_team_id=4, field="Field 1", scheduled_start_time="23:12")

        conflict = validate_assignment(proposed, existing, _config(end="23:59"))

        assert conflict.kind == CONFLICT_FIELD
        assert conflict.message == "Field conflict: Field 1 is already booked from 23:10 to 24:05"

    def test_existing_games_not_mutated(self):
        existing = [_game(1, 1, 2, "Field 1", "09:00")]
        proposed = ProposedGame(home_team_id=3, away_team_id=4, field="Field 1", scheduled_start_time="09:30")
        validate_assignment(proposed, existing, _config())

        assert (existing[0].field, existing[0].scheduled_start_time) == ("Field 1", "09:00")


class TestPlacementBounds:
    def test_unknown_field(self):
        proposed = ProposedGame(home_team_id=1, away_team_id=2, field="Field 9", scheduled_start_time="09:00")

        assert check_placement_bounds(proposed, _config()).kind == CONFLICT_UNKNOWN_FIELD

    def test_game_must_end_by_close(self):
        proposed = ProposedGame(home_team_id=1, away_team_id=2, field="Field 1", scheduled_start_time="16:30")

        assert check_placement_bounds(proposed, _config()).kind == CONFLICT_OUTSIDE_HOURS

    def test_inside_hours(self):
        proposed = ProposedGame(home_team_id=1, away_team_id=2, field="Field 1", scheduled_start_time="16:15")

        assert check_placement_bounds(proposed, _config()) is None


class TestGridAndAudit:
    def test_grid_marks_occupied_slots(self):
        config = _config(start="09:00", end="11:00")
        slots = build_schedule_grid(config, [_game(7, 1, 2, "Field 2", "09:00")])

        assert len(slots) == 4  # 2 start times x 2 fields
        by_key = {(s.start_time, s.field): s for s in slots}
        assert by_key[("09:00", "Field 2")].game_id == 7
        assert not by_key[("09:00", "Field 2")].available
        assert by_key[("09:00", "Field 1")].available
        assert by_key[("09:55", "Field 2")].available

    def test_off_grid_game_blocks_overlapping_slots(self):
        config = _config(start="09:00", end="11:00")
        slots = build_schedule_grid(config, [_game(7, 1, 2, "Field 1", "09:30")])
        by_key = {(s.start_time, s.field): s for s in slots}

        assert not by_key[("09:00", "Field 1")].available
        assert not by_key[("09:55", "Field 1")].available
        assert by_key[("09:00", "Field 1")].game_id is None

    def test_audit_finds_every_pair(self):
        games = [
            _game(1, 1, 2, "Field 1", "09:00"),
            _game(2, 1, 3, "Field 2", "09:20"),  # team 1 twice
            _game(3, 4, 5, "Field 1", "09:40"),  # Field 1 overlap with game 1
        ]
        conflicts = find_schedule_conflicts(games, _config())

        kinds = sorted((c.kind, c.conflicting_game_id, c.game_id) for c in conflicts)
        assert kinds == [(CONFLICT_FIELD, 1, 3), (CONFLICT_TEAM, 1, 2)]

    def test_clean_timetable_has_no_conflicts(self):
        games = [
            _game(1, 1, 2, "Field 1", "09:00"),
            _game(2, 3, 4, "Field 2", "09:00"),
            _game(3, 1, 3, "Field 1", "09:55"),
        ]
        assert find_schedule_conflicts(games, _config()) == []
