"""Qt glue that feeds a GameSession from the event loop."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from catrat.core.session import GameEvent, GameSession, GameSnapshot, LevelLockedError

logger = logging.getLogger(__name__)


class GameDriver(QObject):
    """Owns the one-second countdown timer and publishes session snapshots.

    All commands arrive through Qt slots, so the event loop serializes moves,
    pause toggles and timer ticks. After every command the timer is started
    or stopped from ``snapshot.countdown_running``; a stopped timer never
    delivers another tick.
    """

    snapshotChanged = Signal(object)
    soundRequested = Signal(str)
    achievementUnlocked = Signal(str)
    levelCompleted = Signal(int)
    gameCompleted = Signal()

    def __init__(self, session: GameSession, parent: Optional[QObject] = None, interval_ms: int = 1000) -> None:
        super().__init__(parent)
        self._session = session
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.tick)
        self._last_snapshot = session.snapshot()
        self._sync_timer(self._last_snapshot)

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def last_snapshot(self) -> GameSnapshot:
        return self._last_snapshot

    def is_timer_active(self) -> bool:
        return self._timer.isActive()

    @Slot(str)
    def move(self, direction: str) -> None:
        self._publish(self._session.move(direction))

    @Slot()
    def tick(self) -> None:
        self._publish(self._session.tick())

    @Slot()
    def toggle_pause(self) -> None:
        self._publish(self._session.toggle_pause())

    @Slot()
    def next_level(self) -> None:
        self._publish(self._session.next_level())

    @Slot()
    def reset_game(self) -> None:
        self._publish(self._session.reset_game())

    @Slot()
    def exit_to_menu(self) -> None:
        self._publish(self._session.exit_to_menu())

    @Slot()
    def reset_all_progress(self) -> None:
        self._publish(self._session.reset_all_progress())

    @Slot(int, result=bool)
    def select_level(self, index: int) -> bool:
        try:
            snapshot = self._session.select_level(index)
        except (LevelLockedError, IndexError) as e:
            logger.warning("Cannot open level %d: %s", index + 1, e)
            return False
        self._publish(snapshot)
        return True

    def _sync_timer(self, snapshot: GameSnapshot) -> None:
        if snapshot.countdown_running:
            if not self._timer.isActive():
                self._timer.start()
        elif self._timer.isActive():
            self._timer.stop()

    def _publish(self, snapshot: GameSnapshot) -> None:
        self._sync_timer(snapshot)
        self._last_snapshot = snapshot
        for event in snapshot.events:
            if event is not GameEvent.ACHIEVEMENT_UNLOCKED:
                self.soundRequested.emit(event.value)
        for achievement in snapshot.new_achievements:
            self.achievementUnlocked.emit(achievement.title)
        self.snapshotChanged.emit(snapshot)
        if self._session.consume_level_complete():
            self.levelCompleted.emit(snapshot.level_index)
        if self._session.consume_game_complete():
            self.gameCompleted.emit()
