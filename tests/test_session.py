"""Tests for catrat.core.session – the game state machine."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pytest

from catrat.core.graph import LevelDataError
from catrat.core.levels import LevelRepository, Point
from catrat.core.movement import Direction, is_valid_move, step_position
from catrat.core.progress import ProgressTracker
from catrat.core.session import (
    GameEvent,
    GamePhase,
    GameSession,
    GameSnapshot,
    LevelLockedError,
    MoveResult,
)
from conftest import sample_level


@pytest.fixture()
def session(catalog: LevelRepository, tracker: ProgressTracker) -> GameSession:
    return GameSession(catalog, progress=tracker)


@pytest.fixture()
def two_levels(levels_dir: Path, write_level, tracker: ProgressTracker) -> GameSession:
    """A two-level catalog of the small test house, every level unlocked."""
    write_level("level1", sample_level())
    write_level("level2", sample_level(id=2, name="Second House"))
    return GameSession(LevelRepository(levels_dir), progress=tracker, unlock_all=True)


def walk(session: GameSession, directions: Iterable[str]) -> GameSnapshot:
    """Move in each direction in turn, stopping once the rat is caught."""
    snap = session.snapshot()
    for direction in directions:
        snap = session.move(direction)
        if snap.target_found:
            break
    return snap


def catch_level_one(session: GameSession) -> GameSnapshot:
    return walk(session, ["right"] * 10)


def catch_level_two(session: GameSession) -> GameSnapshot:
    return walk(session, ["right"] * 6 + ["down"] * 6)


# ---------------------------------------------------------------------------
# setup_level
# ---------------------------------------------------------------------------

class TestSetupLevel:
    def test_initial_state(self, session: GameSession):
        snap = session.snapshot()
        assert snap.level_index == 0
        assert snap.remaining_time == 30
        assert snap.agent == Point(0.3, 0.3)
        assert snap.level_score == 0
        assert snap.total_score == 0
        assert snap.unlocked_levels == 1
        assert snap.phase is GamePhase.PLAYING
        assert snap.countdown_running is True
        assert snap.message == "Find the rat in the BEGINNER'S HOUSE! You have 30 seconds..."

    def test_start_room_highlighted(self, session: GameSession):
        snap = session.snapshot()
        assert snap.highlighted_room is not None
        assert snap.highlighted_room.name == "LIVING"
        assert sum(room.highlighted for room in snap.rooms) == 1

    @pytest.mark.parametrize("index", range(6))
    def test_single_target(self, session: GameSession, catalog: LevelRepository, index: int):
        snap = session.setup_level(index)
        targets = [room for room in snap.rooms if room.contains_target]
        assert len(targets) == 1
        assert targets[0].id == catalog.at(index).target_room
        assert snap.remaining_time == catalog.at(index).time_limit

    def test_catalog_rooms_untouched(self, session: GameSession, catalog: LevelRepository):
        assert not any(room.contains_target for room in catalog.at(0).rooms)
        assert not any(room.highlighted for room in catalog.at(0).rooms)

    def test_out_of_range(self, session: GameSession):
        with pytest.raises(IndexError):
            session.setup_level(6)

    def test_corridors_built(self, session: GameSession):
        snap = session.setup_level(2)
        assert len(snap.corridors) == 7

    def test_target_visible_until_caught(self, session: GameSession):
        assert session.snapshot().target_visible is True
        assert catch_level_one(session).target_visible is False


class TestBrokenLevelData:
    def test_unknown_room_aborts_setup(self, levels_dir: Path, write_level):
        data = sample_level()
        data["rooms"][0]["connected"] = [2, 42]
        write_level("level1", data)
        with pytest.raises(LevelDataError):
            GameSession(LevelRepository(levels_dir))

    def test_failed_setup_keeps_running_level(self, levels_dir: Path, write_level):
        write_level("level1", sample_level())
        broken = sample_level(name="Broken")
        broken["rooms"][1]["connected"] = [5]
        write_level("level2", broken)
        session = GameSession(LevelRepository(levels_dir))
        session.move("right")
        before = session.snapshot()
        with pytest.raises(LevelDataError):
            session.setup_level(1)
        after = session.snapshot()
        assert after.level_index == 0
        assert after.agent == before.agent
        assert after.level_name == "Test House"


# ---------------------------------------------------------------------------
# move
# ---------------------------------------------------------------------------

class TestMove:
    def test_walk_through_corridor_to_target(self, session: GameSession):
        ticks = 0
        corridor_steps = 0
        snap = session.snapshot()
        for _ in range(10):
            snap = session.move("right")
            if snap.target_found:
                break
            if snap.last_move is MoveResult.CORRIDOR:
                corridor_steps += 1
                assert snap.message == "Moving through corridor..."
                assert snap.highlighted_room is None
            session.tick()
            ticks += 1
        assert snap.target_found
        assert snap.last_move is MoveResult.ROOM
        assert corridor_steps >= 1
        assert snap.highlighted_room.name == "KITCHEN"
        assert snap.level_score == 100 + 10 * (30 - ticks)
        assert snap.total_score == snap.level_score
        assert snap.message == f"FOUND THE RAT! You earned {snap.level_score} points!"

    def test_wrong_room_message(self, session: GameSession):
        snap = session.move("right")
        assert snap.last_move is MoveResult.ROOM
        assert snap.message == "No rat in LIVING. Keep searching!"
        assert snap.level_score == 0

    def test_rejected_move_keeps_state(self, session: GameSession):
        previous = session.snapshot()
        snap = previous
        for _ in range(5):
            snap = session.move("up")
            if snap.last_move is MoveResult.REJECTED:
                break
            previous = snap
        assert snap.last_move is MoveResult.REJECTED
        assert snap.message == "Can't move that way!"
        assert snap.agent == previous.agent
        assert snap.rooms == previous.rooms
        assert snap.remaining_time == previous.remaining_time

    def test_move_matches_validator(self, session: GameSession):
        session.setup_level(2)
        pattern = ["right", "right", "down", "left", "down", "down", "right", "up", "left", "down"] * 3
        for name in pattern:
            before = session.snapshot()
            if before.target_found:
                break
            candidate = step_position(before.agent, Direction.from_name(name))
            expected = is_valid_move(before.rooms, before.corridors, before.agent, candidate)
            after = session.move(name)
            if expected:
                assert after.agent == candidate
            else:
                assert after.agent == before.agent

    def test_up_at_top_edge(self, session: GameSession):
        snap = session.setup_level(3)
        assert snap.agent == Point(0.3, 0.1)
        snap = session.move("up")
        assert snap.last_move is MoveResult.ROOM
        assert snap.agent == Point(0.3, 0.1)
        assert snap.message == "No rat in RECEPTION. Keep searching!"

    def test_blocked_while_paused(self, session: GameSession):
        session.toggle_pause()
        snap = session.move(Direction.RIGHT)
        assert snap.last_move is MoveResult.BLOCKED
        assert snap.agent == Point(0.3, 0.3)
        assert snap.message == "Game Paused"

    def test_blocked_after_capture(self, session: GameSession):
        caught = catch_level_one(session)
        snap = session.move("left")
        assert snap.last_move is MoveResult.BLOCKED
        assert snap.agent == caught.agent
        assert snap.total_score == caught.total_score

    def test_unknown_direction(self, session: GameSession):
        with pytest.raises(ValueError):
            session.move("diagonal")

    def test_distance_tracked(self, session: GameSession):
        session.move("right")
        session.move("right")
        assert session.snapshot().stats.distance_travelled == pytest.approx(0.1)


# ---------------------------------------------------------------------------
# tick
# ---------------------------------------------------------------------------

class TestTick:
    def test_game_over_after_exactly_time_limit(self, session: GameSession):
        for _ in range(29):
            snap = session.tick()
            assert not snap.game_over
        assert snap.remaining_time == 1
        snap = session.tick()
        assert snap.remaining_time == 0
        assert snap.game_over
        assert snap.phase is GamePhase.GAME_OVER
        assert snap.countdown_running is False
        assert snap.events == (GameEvent.GAME_OVER,)
        assert snap.message == "Time's up! The rat escaped!"

    def test_ticks_after_game_over_do_nothing(self, session: GameSession):
        for _ in range(30):
            session.tick()
        snap = session.tick()
        assert snap.remaining_time == 0
        assert snap.events == ()
        assert snap.stats.games_played == 1

    def test_warning_messages(self, session: GameSession):
        session.setup_level(1)
        for _ in range(30):
            snap = session.tick()
        assert snap.remaining_time == 30
        assert snap.message == "30 seconds remaining! Hurry up!"
        for _ in range(20):
            snap = session.tick()
        assert snap.message == "10 seconds left! Find the rat quickly!"
        snap = session.tick()
        assert snap.message == "10 seconds left! Find the rat quickly!"
        for _ in range(4):
            snap = session.tick()
        assert snap.remaining_time == 5
        assert snap.message == "5 seconds left!"

    def test_no_ticks_after_capture(self, session: GameSession):
        caught = catch_level_one(session)
        snap = session.tick()
        assert snap.remaining_time == caught.remaining_time
        assert snap.countdown_running is False

    def test_move_blocked_after_game_over(self, session: GameSession):
        for _ in range(30):
            session.tick()
        assert session.move("right").last_move is MoveResult.BLOCKED


# ---------------------------------------------------------------------------
# toggle_pause
# ---------------------------------------------------------------------------

class TestPause:
    def test_paused_ticks_do_not_count(self, session: GameSession):
        session.tick()
        snap = session.toggle_pause()
        assert snap.paused and snap.phase is GamePhase.PAUSED
        assert snap.countdown_running is False
        assert snap.events == (GameEvent.BUTTON,)
        for _ in range(10):
            snap = session.tick()
        assert snap.remaining_time == 29

    def test_resume(self, session: GameSession):
        session.toggle_pause()
        snap = session.toggle_pause()
        assert not snap.paused
        assert snap.message == "Game Resumed"
        assert session.tick().remaining_time == 29

    def test_pause_keeps_position_and_score(self, session: GameSession):
        session.move("right")
        before = session.snapshot()
        after = session.toggle_pause()
        assert after.agent == before.agent
        assert after.total_score == before.total_score

    def test_countdown_reaches_zero_after_t_unpaused_ticks(self, session: GameSession):
        unpaused = 0
        for i in range(80):
            if i % 7 == 3:
                session.toggle_pause()
            before = session.remaining_time
            snap = session.tick()
            if snap.paused:
                assert snap.remaining_time == before
            else:
                unpaused += 1
            if snap.game_over:
                break
        assert snap.game_over
        assert unpaused == 30


# ---------------------------------------------------------------------------
# Scoring & progression
# ---------------------------------------------------------------------------

class TestProgression:
    def test_capture_signals(self, session: GameSession):
        snap = catch_level_one(session)
        assert snap.level_complete is True
        assert snap.phase is GamePhase.LEVEL_COMPLETE
        assert GameEvent.TARGET_CAUGHT in snap.events
        assert snap.unlocked_levels == 2
        assert session.consume_level_complete() is True
        assert session.consume_level_complete() is False

    def test_total_is_sum_of_level_scores(self, session: GameSession):
        first = catch_level_one(session)
        session.next_level()
        second = catch_level_two(session)
        assert second.target_found
        assert second.level_score == 200 + 10 * 60
        assert second.total_score == first.level_score + second.level_score
        assert second.unlocked_levels == 3

    def test_recapture_does_not_lower_unlocks(self, session: GameSession):
        catch_level_one(session)
        session.next_level()
        catch_level_two(session)
        session.select_level(0)
        snap = catch_level_one(session)
        assert snap.unlocked_levels == 3

    def test_achievements_unlocked_on_first_catch(self, session: GameSession):
        snap = catch_level_one(session)
        ids = {a.id for a in snap.new_achievements}
        assert {1, 10, 11} <= ids
        assert GameEvent.ACHIEVEMENT_UNLOCKED in snap.events
        assert snap.bonus_score >= 50 + 150 + 300
        assert snap.total_score == snap.level_score

    def test_stats_after_capture(self, session: GameSession):
        snap = catch_level_one(session)
        assert snap.stats.targets_caught == 1
        assert snap.stats.fastest_completion == {1: 0}
        assert snap.stats.completed_levels == {0}


# ---------------------------------------------------------------------------
# Level navigation
# ---------------------------------------------------------------------------

class TestNavigation:
    def test_locked_level(self, session: GameSession):
        with pytest.raises(LevelLockedError):
            session.select_level(1)

    def test_unlock_all(self, catalog: LevelRepository):
        session = GameSession(catalog, unlock_all=True)
        assert session.select_level(5).level_name == "MYSTERY PALACE"

    def test_select_out_of_range(self, session: GameSession):
        with pytest.raises(IndexError):
            session.select_level(9)

    def test_next_level_advances(self, session: GameSession):
        catch_level_one(session)
        snap = session.next_level()
        assert snap.level_index == 1
        assert snap.remaining_time == 60
        assert snap.level_score == 0

    def test_next_level_ignored_before_capture(self, session: GameSession):
        session.move("right")
        before = session.snapshot()
        snap = session.next_level()
        assert snap.level_index == 0
        assert snap.unlocked_levels == 1
        assert snap.phase is GamePhase.PLAYING
        assert snap.agent == before.agent
        assert snap.message == before.message
        assert snap.events == ()

    def test_next_level_ignored_after_game_over(self, session: GameSession):
        for _ in range(30):
            session.tick()
        snap = session.next_level()
        assert snap.level_index == 0
        assert snap.phase is GamePhase.GAME_OVER

    def test_game_complete_after_last_level(self, two_levels: GameSession):
        two_levels.setup_level(1)
        assert walk(two_levels, ["right"] * 10).target_found
        snap = two_levels.next_level()
        assert snap.game_complete is True
        assert snap.phase is GamePhase.GAME_COMPLETE
        assert snap.level_index == 1
        assert two_levels.consume_game_complete() is True
        assert two_levels.consume_game_complete() is False

    def test_last_level_not_complete_without_capture(self, two_levels: GameSession):
        two_levels.setup_level(1)
        snap = two_levels.next_level()
        assert snap.phase is GamePhase.PLAYING
        assert snap.game_complete is False
        assert "Every rat is caught" not in snap.message
        assert two_levels.consume_game_complete() is False

    def test_game_complete_phase_outlives_signal(self, two_levels: GameSession):
        two_levels.setup_level(1)
        walk(two_levels, ["right"] * 10)
        two_levels.next_level()
        assert two_levels.consume_game_complete() is True
        snap = two_levels.toggle_pause()
        assert snap.phase is GamePhase.GAME_COMPLETE
        assert two_levels.next_level().phase is GamePhase.GAME_COMPLETE
        assert two_levels.consume_game_complete() is False

    def test_restart_leaves_game_complete(self, two_levels: GameSession):
        two_levels.setup_level(1)
        walk(two_levels, ["right"] * 10)
        two_levels.next_level()
        assert two_levels.setup_level(0).phase is GamePhase.PLAYING

    def test_reset_game_discards_level_progress(self, session: GameSession):
        session.move("right")
        session.tick()
        snap = session.reset_game()
        assert snap.agent == Point(0.3, 0.3)
        assert snap.remaining_time == 30
        assert snap.level_index == 0

    def test_reset_game_keeps_total(self, session: GameSession):
        caught = catch_level_one(session)
        snap = session.reset_game()
        assert snap.total_score == caught.total_score
        assert snap.target_found is False

    def test_exit_to_menu(self, session: GameSession):
        session.toggle_pause()
        snap = session.exit_to_menu()
        assert snap.phase is GamePhase.MENU
        assert snap.paused is False
        assert session.tick().remaining_time == 30
        assert session.move("right").last_move is MoveResult.BLOCKED
        assert session.setup_level(0).phase is GamePhase.PLAYING

    def test_reset_all_progress(self, session: GameSession):
        catch_level_one(session)
        session.next_level()
        snap = session.reset_all_progress()
        assert snap.level_index == 0
        assert snap.total_score == 0
        assert snap.bonus_score == 0
        assert snap.unlocked_levels == 1
        assert snap.stats.targets_caught == 0
