"""Score and unlock arithmetic for completed levels."""

from __future__ import annotations


def level_score(base_points: int, remaining_seconds: int, per_second: int = 10) -> int:
    """Base points plus a bonus for every second left on the clock."""
    return base_points + max(0, remaining_seconds) * per_second


def unlock_after(unlocked_levels: int, level_index: int, level_count: int) -> int:
    """Unlock count after completing ``level_index`` (0-based).

    Completing a level makes the one after it playable. The count never
    decreases and never exceeds the catalog size.
    """
    return max(unlocked_levels, min(level_index + 2, level_count))
