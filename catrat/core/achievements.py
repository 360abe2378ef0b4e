from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Tuple

from catrat.core.stats import UserStats


class AchievementCategory(Enum):
    LEVEL_COMPLETION = "level_completion"
    SCORE = "score"
    SPEED = "speed"
    PERFECTION = "perfection"
    SPECIAL = "special"


@dataclass(frozen=True)
class Achievement:
    id: int
    title: str
    description: str
    requirement: str
    points_reward: int
    category: AchievementCategory
    check: Callable[[UserStats, int], bool]


def _completed(level_index: int) -> Callable[[UserStats, int], bool]:
    return lambda stats, total: level_index in stats.completed_levels


def _score_at_least(points: int) -> Callable[[UserStats, int], bool]:
    return lambda stats, total: total >= points


def _faster_than(seconds: int) -> Callable[[UserStats, int], bool]:
    return lambda stats, total: any(t < seconds for t in stats.fastest_completion.values())


ACHIEVEMENTS: Tuple[Achievement, ...] = (
    Achievement(1, "First Hunt", "Complete your first level", "Complete Level 1", 50,
                AchievementCategory.LEVEL_COMPLETION, lambda stats, total: stats.targets_caught >= 1),
    Achievement(2, "Apartment Explorer", "Complete the Cozy Apartment", "Complete Level 2", 100,
                AchievementCategory.LEVEL_COMPLETION, _completed(1)),
    Achievement(3, "Family Hunter", "Complete the Family House", "Complete Level 3", 150,
                AchievementCategory.LEVEL_COMPLETION, _completed(2)),
    Achievement(4, "Office Raider", "Complete the Office Building", "Complete Level 4", 200,
                AchievementCategory.LEVEL_COMPLETION, _completed(3)),
    Achievement(5, "Hotel Conqueror", "Complete the Grand Hotel", "Complete Level 5", 250,
                AchievementCategory.LEVEL_COMPLETION, _completed(4)),
    Achievement(6, "Palace Master", "Complete the Mystery Palace", "Complete Level 6", 500,
                AchievementCategory.LEVEL_COMPLETION, _completed(5)),
    Achievement(7, "Score Starter", "Reach 500 total points", "500 total points", 100,
                AchievementCategory.SCORE, _score_at_least(500)),
    Achievement(8, "Score Hunter", "Reach 2000 total points", "2000 total points", 250,
                AchievementCategory.SCORE, _score_at_least(2000)),
    Achievement(9, "Score Master", "Reach 5000 total points", "5000 total points", 500,
                AchievementCategory.SCORE, _score_at_least(5000)),
    Achievement(10, "Speedy Cat", "Complete any level in under 30 seconds", "Finish level in < 30s", 150,
                AchievementCategory.SPEED, _faster_than(30)),
    Achievement(11, "Lightning Hunter", "Complete any level in under 15 seconds", "Finish level in < 15s", 300,
                AchievementCategory.SPEED, _faster_than(15)),
    Achievement(12, "Perfect Hunter", "Find the rat on first try", "First try success", 200,
                AchievementCategory.PERFECTION, lambda stats, total: bool(stats.perfect_runs)),
    Achievement(15, "Master Hunter", "Catch 50 rats total", "50 rats caught", 1000,
                AchievementCategory.SPECIAL, lambda stats, total: stats.targets_caught >= 50),
)


def newly_unlocked(
    stats: UserStats, total_score: int, already: frozenset[int] | set[int]
) -> List[Achievement]:
    """Achievements whose requirement now holds and that were not unlocked before."""
    return [a for a in ACHIEVEMENTS if a.id not in already and a.check(stats, total_score)]
