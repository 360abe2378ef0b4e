from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class GameRules:
    """Movement and timing constants shared by the validator and the session.

    All distances are in normalized board space (0..1 on both axes).
    The clamp band for move candidates (``move_min``..``move_max``) is
    narrower than the band the validator accepts (``field_min``..``field_max``);
    both are kept as authored.
    """

    step: float = 0.05
    move_min: float = 0.1
    move_max: float = 0.9
    field_min: float = 0.05
    field_max: float = 0.95
    room_radius: float = 0.1
    corridor_radius: float = 0.1
    time_bonus_per_second: int = 10
    warning_marks: Tuple[int, ...] = (30, 10)
    final_countdown: int = 5


DEFAULT_RULES = GameRules()
