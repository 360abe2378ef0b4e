from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from catrat.core.achievements import Achievement
from catrat.core.challenges import DailyChallenge
from catrat.core.graph import Corridor, build_corridors
from catrat.core.levels import LevelDefinition, LevelRepository, Point, Room
from catrat.core.movement import Direction, distance, is_valid_move, room_at, step_position
from catrat.core.progress import ProgressTracker
from catrat.core.rules import DEFAULT_RULES, GameRules
from catrat.core.scoring import level_score, unlock_after
from catrat.core.stats import UserStats

logger = logging.getLogger(__name__)


class LevelLockedError(ValueError):
    """Raised when selecting a level that has not been unlocked yet."""


class GamePhase(Enum):
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    LEVEL_COMPLETE = "level_complete"
    GAME_OVER = "game_over"
    GAME_COMPLETE = "game_complete"


class MoveResult(Enum):
    ROOM = "room"
    CORRIDOR = "corridor"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class GameEvent(Enum):
    """Moments an audio or notification collaborator may react to."""

    TARGET_CAUGHT = "rat_caught"
    GAME_OVER = "game_over"
    BUTTON = "button_click"
    ACHIEVEMENT_UNLOCKED = "achievement"


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of the session after a command."""

    level_names: Tuple[str, ...]
    level_index: int
    level_name: str
    level_description: str
    time_limit: int
    rooms: Tuple[Room, ...]
    corridors: Tuple[Corridor, ...]
    agent: Point
    remaining_time: int
    paused: bool
    game_over: bool
    target_found: bool
    level_complete: bool
    game_complete: bool
    level_score: int
    total_score: int
    bonus_score: int
    unlocked_levels: int
    message: str
    phase: GamePhase
    countdown_running: bool
    last_move: Optional[MoveResult]
    events: Tuple[GameEvent, ...]
    new_achievements: Tuple[Achievement, ...]
    stats: UserStats
    challenge: DailyChallenge

    @property
    def highlighted_room(self) -> Optional[Room]:
        return next((room for room in self.rooms if room.highlighted), None)

    @property
    def target_visible(self) -> bool:
        """The target is drawn until it has been caught."""
        return not self.target_found


class GameSession:
    """Runtime state for one playthrough of the level catalog.

    Commands are synchronous and must be called from a single thread (the
    Qt driver serializes them on its event loop). Each command returns a
    fresh ``GameSnapshot``; the session itself holds no timers, the caller
    delivers ``tick()`` once per second while ``countdown_running`` is true.
    """

    def __init__(
        self,
        levels: LevelRepository,
        rules: GameRules = DEFAULT_RULES,
        progress: Optional[ProgressTracker] = None,
        unlock_all: bool = False,
        start_index: int = 0,
    ) -> None:
        self._levels = levels
        self._rules = rules
        self._progress = progress or ProgressTracker()
        self._unlock_all = unlock_all
        self._index = start_index
        self._total_score = 0
        self._unlocked_levels = 1
        self._game_complete = False
        self._finished = False
        self._clear_command_output()
        self.setup_level(start_index)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def level_index(self) -> int:
        return self._index

    @property
    def level(self) -> LevelDefinition:
        return self._level

    @property
    def rooms(self) -> Tuple[Room, ...]:
        return tuple(self._rooms)

    @property
    def corridors(self) -> Tuple[Corridor, ...]:
        return self._corridors

    @property
    def agent(self) -> Point:
        return self._agent

    @property
    def remaining_time(self) -> int:
        return self._remaining

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def target_found(self) -> bool:
        return self._target_found

    @property
    def game_over(self) -> bool:
        return self._game_over

    @property
    def total_score(self) -> int:
        return self._total_score

    @property
    def unlocked_levels(self) -> int:
        return self._unlocked_levels

    @property
    def message(self) -> str:
        return self._message

    @property
    def progress(self) -> ProgressTracker:
        return self._progress

    @property
    def countdown_running(self) -> bool:
        return (
            self._active
            and not self._paused
            and not self._target_found
            and not self._game_over
            and self._remaining > 0
        )

    @property
    def phase(self) -> GamePhase:
        if self._finished:
            return GamePhase.GAME_COMPLETE
        if self._target_found:
            return GamePhase.LEVEL_COMPLETE
        if self._game_over:
            return GamePhase.GAME_OVER
        if not self._active:
            return GamePhase.MENU
        if self._paused:
            return GamePhase.PAUSED
        return GamePhase.PLAYING

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def setup_level(self, index: Optional[int] = None) -> GameSnapshot:
        """Start (or restart) the level at ``index``; the current level when omitted.

        Raises ``IndexError`` for an index outside the catalog and
        ``LevelDataError`` when the level's room graph is inconsistent. In
        both cases the running level is left untouched.
        """
        self._clear_command_output()
        target_index = self._index if index is None else index
        level = self._levels.at(target_index)
        try:
            corridors = build_corridors(level.rooms)
        except ValueError:
            logger.error("Cannot set up level %s (%s)", level.key, level.name)
            raise

        self._index = target_index
        self._level = level
        self._rooms: List[Room] = [
            replace(room, contains_target=room.id == level.target_room, highlighted=False)
            for room in level.rooms
        ]
        self._corridors = corridors
        self._agent = level.agent_start
        self._target_found = False
        self._level_score = 0
        self._remaining = level.time_limit
        self._paused = False
        self._game_over = False
        self._game_complete = False
        self._finished = False
        self._level_complete = False
        self._wrong_rooms = 0
        self._active = True
        self._message = f"Find the rat in the {level.name}! You have {self._remaining} seconds..."
        self._highlight_room_at(self._agent)
        logger.info(
            "Level %d set up: %s (%d rooms, %d corridors, %ds)",
            target_index + 1,
            level.name,
            len(self._rooms),
            len(corridors),
            level.time_limit,
        )
        return self.snapshot()

    def select_level(self, index: int) -> GameSnapshot:
        """Start a level from the level list, honouring unlock progress."""
        if index < 0 or index >= len(self._levels):
            raise IndexError(f"Level index out of range: {index}")
        if not self._unlock_all and index >= self._unlocked_levels:
            logger.warning("Level %d requested but only %d unlocked", index + 1, self._unlocked_levels)
            raise LevelLockedError(f"Level {index + 1} is locked")
        return self.setup_level(index)

    def move(self, direction: Union[Direction, str]) -> GameSnapshot:
        """Step the agent one unit in ``direction``.

        Blocked while paused, in the menu, after the target is found or after
        time ran out. A rejected move leaves every piece of state as it was
        apart from the status message.
        """
        self._clear_command_output()
        if isinstance(direction, str):
            direction = Direction.from_name(direction)
        if self._target_found or self._paused or self._game_over or not self._active:
            self._last_move = MoveResult.BLOCKED
            return self.snapshot()

        candidate = step_position(self._agent, direction, self._rules)
        if not is_valid_move(self._rooms, self._corridors, self._agent, candidate, self._rules):
            logger.debug("Rejected move %s from %s", direction.name, self._agent)
            self._message = "Can't move that way!"
            self._last_move = MoveResult.REJECTED
            return self.snapshot()

        self._progress.record_distance(distance(self._agent, candidate))
        self._agent = candidate
        room = self._highlight_room_at(candidate)
        if room is not None:
            self._last_move = MoveResult.ROOM
            self._on_room_entered(room)
        else:
            self._last_move = MoveResult.CORRIDOR
            self._message = "Moving through corridor..."
        return self.snapshot()

    def tick(self) -> GameSnapshot:
        """Advance the countdown by one second."""
        self._clear_command_output()
        if not self.countdown_running:
            return self.snapshot()

        self._remaining -= 1
        remaining = self._remaining
        marks = self._rules.warning_marks
        if marks and remaining == marks[0]:
            self._message = f"{remaining} seconds remaining! Hurry up!"
        elif remaining in marks:
            self._message = f"{remaining} seconds left! Find the rat quickly!"
        elif remaining <= self._rules.final_countdown:
            self._message = f"{remaining} seconds left!"
        logger.debug("Tick: %ds left", remaining)

        if remaining <= 0:
            self._end_in_game_over()
        return self.snapshot()

    def toggle_pause(self) -> GameSnapshot:
        self._clear_command_output()
        self._paused = not self._paused
        self._message = "Game Paused" if self._paused else "Game Resumed"
        self._events.append(GameEvent.BUTTON)
        return self.snapshot()

    def next_level(self) -> GameSnapshot:
        """Move on to the next level, or flag the whole game as complete.

        Only honoured once the rat of the current level has been caught;
        otherwise nothing changes.
        """
        if not self._target_found or self._finished:
            self._clear_command_output()
            return self.snapshot()
        if self._index < len(self._levels) - 1:
            logger.info("Advancing to level %d", self._index + 2)
            return self.setup_level(self._index + 1)
        self._clear_command_output()
        self._game_complete = True
        self._finished = True
        self._active = False
        self._message = f"Every rat is caught! Final score: {self._total_score}"
        logger.info("Game complete with %d points", self._total_score)
        return self.snapshot()

    def reset_game(self) -> GameSnapshot:
        """Restart the current level, dropping any progress made in it."""
        return self.setup_level(self._index)

    def exit_to_menu(self) -> GameSnapshot:
        self._clear_command_output()
        self._active = False
        self._paused = False
        return self.snapshot()

    def reset_all_progress(self) -> GameSnapshot:
        """Forget scores, unlocks, stats and achievements and restart at level 1."""
        self._total_score = 0
        self._unlocked_levels = 1
        self._progress.reset()
        logger.info("All progress reset")
        return self.setup_level(0)

    def consume_level_complete(self) -> bool:
        """Return the one-shot level-complete signal and clear it."""
        fired, self._level_complete = self._level_complete, False
        return fired

    def consume_game_complete(self) -> bool:
        """Return the one-shot game-complete signal and clear it."""
        fired, self._game_complete = self._game_complete, False
        return fired

    def snapshot(self) -> GameSnapshot:
        level = self._level
        return GameSnapshot(
            level_names=tuple(lv.name for lv in self._levels.all()),
            level_index=self._index,
            level_name=level.name,
            level_description=level.description,
            time_limit=level.time_limit,
            rooms=tuple(self._rooms),
            corridors=self._corridors,
            agent=self._agent,
            remaining_time=self._remaining,
            paused=self._paused,
            game_over=self._game_over,
            target_found=self._target_found,
            level_complete=self._level_complete,
            game_complete=self._game_complete,
            level_score=self._level_score,
            total_score=self._total_score,
            bonus_score=self._progress.bonus_score,
            unlocked_levels=self._unlocked_levels,
            message=self._message,
            phase=self.phase,
            countdown_running=self.countdown_running,
            last_move=self._last_move,
            events=tuple(self._events),
            new_achievements=self._new_achievements,
            stats=self._progress.stats.copy(),
            challenge=self._progress.challenge,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clear_command_output(self) -> None:
        self._events: List[GameEvent] = []
        self._new_achievements: Tuple[Achievement, ...] = ()
        self._last_move: Optional[MoveResult] = None

    def _highlight_room_at(self, position: Point) -> Optional[Room]:
        found = room_at(self._rooms, position, self._rules.room_radius)
        self._rooms = [
            replace(room, highlighted=found is not None and room.id == found.id)
            for room in self._rooms
        ]
        if found is None:
            return None
        return next(room for room in self._rooms if room.id == found.id)

    def _on_room_entered(self, room: Room) -> None:
        if not room.contains_target:
            self._wrong_rooms += 1
            self._message = f"No rat in {room.name}. Keep searching!"
            return

        level = self._level
        self._target_found = True
        self._level_score = level_score(
            level.base_points, self._remaining, self._rules.time_bonus_per_second
        )
        self._total_score += self._level_score
        self._level_complete = True
        self._unlocked_levels = unlock_after(self._unlocked_levels, self._index, len(self._levels))

        seconds = level.time_limit - self._remaining
        unlocked = self._progress.record_capture(
            level_index=self._index,
            level_key=level.key,
            level_id=level.id,
            score=self._level_score,
            seconds=seconds,
            perfect=self._wrong_rooms == 0,
            total_score=self._total_score,
        )
        self._new_achievements = tuple(unlocked)
        self._events.append(GameEvent.TARGET_CAUGHT)
        if unlocked:
            self._events.append(GameEvent.ACHIEVEMENT_UNLOCKED)
        self._message = f"FOUND THE RAT! You earned {self._level_score} points!"
        logger.info(
            "Rat caught in %s after %ds: +%d (total %d)",
            level.name,
            seconds,
            self._level_score,
            self._total_score,
        )

    def _end_in_game_over(self) -> None:
        if self._game_over:
            return
        self._game_over = True
        self._message = "Time's up! The rat escaped!"
        self._events.append(GameEvent.GAME_OVER)
        self._progress.record_loss()
        logger.info("Time ran out on %s", self._level.name)
