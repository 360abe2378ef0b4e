"""Application entry point: a headless console driver for the Cat & Rat engine."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QCoreApplication, QSocketNotifier

from catrat.core.levels import LevelRepository
from catrat.core.progress import ProgressTracker
from catrat.core.session import GameSession, GameSnapshot
from catrat.ui.driver import GameDriver

KEY_COMMANDS = {
    "w": ("move", "up"),
    "s": ("move", "down"),
    "a": ("move", "left"),
    "d": ("move", "right"),
    "p": ("toggle_pause", None),
    "n": ("next_level", None),
    "r": ("reset_game", None),
    "m": ("exit_to_menu", None),
}


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    level_name = os.environ.get("CATRAT_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def levels_dir_from_env() -> Optional[Path]:
    value = os.environ.get("CATRAT_LEVELS_DIR")
    return Path(value) if value else None


def dispatch(driver: GameDriver, line: str) -> bool:
    """Run the command bound to each key in ``line``; return False on quit."""
    for key in line.strip().lower():
        if key == "q":
            return False
        if key.isdigit() and key != "0":
            driver.select_level(int(key) - 1)
            continue
        command = KEY_COMMANDS.get(key)
        if command is None:
            logging.info("Unknown key %r (w/a/s/d move, p pause, n next, r reset, m menu, 1-9 level, q quit)", key)
            continue
        name, arg = command
        handler = getattr(driver, name)
        if arg is None:
            handler()
        else:
            handler(arg)
    return True


def log_snapshot(snapshot: GameSnapshot) -> None:
    room = snapshot.highlighted_room
    logging.info(
        "[%s] %s | %ds | (%.2f, %.2f) %s | score %d (+%d bonus)",
        snapshot.phase.value,
        snapshot.message,
        snapshot.remaining_time,
        snapshot.agent.x,
        snapshot.agent.y,
        room.name if room is not None else "corridor",
        snapshot.total_score,
        snapshot.bonus_score,
    )


def run() -> None:
    """Load the catalog, start a session and read key commands from stdin."""
    configure_logging()
    app = QCoreApplication(sys.argv)
    app.setApplicationName("CatRat")

    levels = LevelRepository(levels_dir_from_env())
    session = GameSession(
        levels,
        progress=ProgressTracker(),
        unlock_all=os.environ.get("CATRAT_UNLOCK_ALL") == "1",
    )
    driver = GameDriver(session)
    driver.snapshotChanged.connect(log_snapshot)
    driver.soundRequested.connect(lambda name: logging.debug("Sound cue: %s", name))
    driver.achievementUnlocked.connect(lambda title: logging.info("Achievement: %s", title))
    driver.gameCompleted.connect(lambda: logging.info("All levels cleared. Press q to quit."))
    log_snapshot(driver.last_snapshot)

    notifier = QSocketNotifier(sys.stdin.fileno(), QSocketNotifier.Type.Read)

    def _on_input() -> None:
        line = sys.stdin.readline()
        if not line or not dispatch(driver, line):
            notifier.setEnabled(False)
            app.quit()

    notifier.activated.connect(_on_input)

    sys.exit(app.exec())
