from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Set


@dataclass
class UserStats:
    """Play statistics gathered over one process lifetime."""

    games_played: int = 0
    targets_caught: int = 0
    distance_travelled: float = 0.0
    # level id -> seconds taken on the quickest capture
    fastest_completion: Dict[int, int] = field(default_factory=dict)
    # level ids captured without entering a wrong room first
    perfect_runs: Set[int] = field(default_factory=set)
    # 0-based catalog indices of completed levels
    completed_levels: Set[int] = field(default_factory=set)

    def record_completion(self, level_index: int, level_id: int, seconds: int, perfect: bool) -> None:
        self.games_played += 1
        self.targets_caught += 1
        self.completed_levels.add(level_index)
        current = self.fastest_completion.get(level_id)
        if current is None or seconds < current:
            self.fastest_completion[level_id] = seconds
        if perfect:
            self.perfect_runs.add(level_id)

    def record_loss(self) -> None:
        self.games_played += 1

    def copy(self) -> "UserStats":
        return UserStats(
            games_played=self.games_played,
            targets_caught=self.targets_caught,
            distance_travelled=self.distance_travelled,
            fastest_completion=dict(self.fastest_completion),
            perfect_runs=set(self.perfect_runs),
            completed_levels=set(self.completed_levels),
        )
