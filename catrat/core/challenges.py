from __future__ import annotations

import datetime as dt
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class ChallengeType(Enum):
    COMPLETE_LEVELS = "complete_levels"
    SCORE_POINTS = "score_points"
    QUICK_COMPLETION = "quick_completion"
    PERFECT_RUN = "perfect_run"


QUICK_COMPLETION_SECONDS = 60


@dataclass(frozen=True)
class DailyChallenge:
    id: int
    title: str
    description: str
    challenge_type: ChallengeType
    target: int
    reward_points: int
    date: dt.date
    progress: int = 0
    completed: bool = False


def generate_challenge(today: dt.date, rng: Optional[random.Random] = None) -> DailyChallenge:
    """Pick one challenge for ``today``."""
    rng = rng or random.Random()
    kind = rng.choice(list(ChallengeType))
    if kind is ChallengeType.COMPLETE_LEVELS:
        target = rng.randint(1, 3)
        return DailyChallenge(1, "Level Master", f"Complete {target} levels today",
                              kind, target, target * 50, today)
    if kind is ChallengeType.SCORE_POINTS:
        target = rng.choice([500, 1000, 1500])
        return DailyChallenge(2, "Score Collector", f"Score {target} points today",
                              kind, target, target // 2, today)
    if kind is ChallengeType.QUICK_COMPLETION:
        target = rng.randint(1, 3)
        return DailyChallenge(3, "Speed Demon",
                              f"Complete {target} levels in under {QUICK_COMPLETION_SECONDS} seconds",
                              kind, target, 200, today)
    return DailyChallenge(4, "Perfect Hunter", "Complete a level without wrong rooms",
                          kind, 1, 300, today)


def advance_challenge(
    challenge: DailyChallenge, score: int, seconds: int, perfect: bool
) -> DailyChallenge:
    """Return the challenge with one level completion applied."""
    if challenge.completed:
        return challenge
    gained = 0
    if challenge.challenge_type is ChallengeType.COMPLETE_LEVELS:
        gained = 1
    elif challenge.challenge_type is ChallengeType.SCORE_POINTS:
        gained = score
    elif challenge.challenge_type is ChallengeType.QUICK_COMPLETION:
        gained = 1 if seconds < QUICK_COMPLETION_SECONDS else 0
    elif challenge.challenge_type is ChallengeType.PERFECT_RUN:
        gained = 1 if perfect else 0
    progress = challenge.progress + gained
    return replace(challenge, progress=progress, completed=progress >= challenge.target)
