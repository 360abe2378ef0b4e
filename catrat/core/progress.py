from __future__ import annotations

import datetime as dt
import logging
import random
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from catrat.core.achievements import Achievement, newly_unlocked
from catrat.core.challenges import DailyChallenge, advance_challenge, generate_challenge
from catrat.core.stats import UserStats

logger = logging.getLogger(__name__)


@dataclass
class LevelProgress:
    completed: int = 0
    best_score: int = 0
    best_seconds: Optional[int] = None


class ProgressTracker:
    """Keeps level, achievement and daily-challenge progress for the running session.

    Nothing is written to disk; a new tracker starts from scratch.
    Rewards from achievements and challenges go to ``bonus_score`` so the
    level-score total stays the plain sum of captured level scores.
    """

    def __init__(self, today: Optional[dt.date] = None, rng: Optional[random.Random] = None) -> None:
        self._today = today
        self._rng = rng
        self._init_state()

    def _init_state(self) -> None:
        self._progress: Dict[str, LevelProgress] = {}
        self._stats = UserStats()
        self._unlocked: set[int] = set()
        self._bonus_score = 0
        self._challenge = generate_challenge(self._today or dt.date.today(), self._rng)

    @property
    def stats(self) -> UserStats:
        return self._stats

    @property
    def bonus_score(self) -> int:
        return self._bonus_score

    @property
    def unlocked_achievements(self) -> FrozenSet[int]:
        return frozenset(self._unlocked)

    @property
    def challenge(self) -> DailyChallenge:
        return self._challenge

    def get_level_progress(self, level_key: str) -> LevelProgress:
        return self._progress.get(level_key, LevelProgress())

    def record_distance(self, travelled: float) -> None:
        self._stats.distance_travelled += travelled

    def record_loss(self) -> None:
        self._stats.record_loss()

    def record_capture(
        self,
        level_index: int,
        level_key: str,
        level_id: int,
        score: int,
        seconds: int,
        perfect: bool,
        total_score: int,
    ) -> List[Achievement]:
        """Record a caught target and return the achievements it unlocked."""
        current = self._progress.get(level_key, LevelProgress())
        current.completed += 1
        current.best_score = max(current.best_score, score)
        if current.best_seconds is None or seconds < current.best_seconds:
            current.best_seconds = seconds
        self._progress[level_key] = current

        self._stats.record_completion(level_index, level_id, seconds, perfect)

        unlocked = newly_unlocked(self._stats, total_score, self._unlocked)
        for achievement in unlocked:
            self._unlocked.add(achievement.id)
            self._bonus_score += achievement.points_reward
            logger.info("Achievement unlocked: %s (+%d)", achievement.title, achievement.points_reward)

        was_completed = self._challenge.completed
        self._challenge = advance_challenge(self._challenge, score, seconds, perfect)
        if self._challenge.completed and not was_completed:
            self._bonus_score += self._challenge.reward_points
            logger.info(
                "Daily challenge complete: %s (+%d)",
                self._challenge.title,
                self._challenge.reward_points,
            )
        return unlocked

    def reset(self) -> None:
        """Clear all progress, achievements and the daily challenge."""
        self._init_state()
