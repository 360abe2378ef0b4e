from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Sequence, Tuple

from catrat.core.graph import Corridor, connects
from catrat.core.levels import Point, Room
from catrat.core.rules import DEFAULT_RULES, GameRules


class Direction(Enum):
    """Board directions; y grows downwards."""

    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def vector(self) -> Tuple[int, int]:
        return self.value

    @staticmethod
    def from_name(name: str) -> "Direction":
        try:
            return Direction[name.strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown direction: {name}") from exc


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def point_segment_distance(point: Point, start: Point, end: Point) -> float:
    """Euclidean distance from ``point`` to the segment ``start``-``end``."""
    seg_x = end.x - start.x
    seg_y = end.y - start.y
    length_sq = seg_x * seg_x + seg_y * seg_y
    if length_sq == 0:
        return distance(point, start)
    t = ((point.x - start.x) * seg_x + (point.y - start.y) * seg_y) / length_sq
    t = max(0.0, min(1.0, t))
    return distance(point, Point(start.x + t * seg_x, start.y + t * seg_y))


def room_at(rooms: Sequence[Room], point: Point, radius: float) -> Optional[Room]:
    """Nearest room whose centre lies strictly within ``radius`` of ``point``."""
    best: Optional[Room] = None
    best_distance = radius
    for room in rooms:
        d = distance(room.position, point)
        if d < best_distance:
            best, best_distance = room, d
    return best


def step_position(position: Point, direction: Direction, rules: GameRules = DEFAULT_RULES) -> Point:
    dx, dy = direction.vector
    x = min(rules.move_max, max(rules.move_min, position.x + dx * rules.step)) if dx else position.x
    y = min(rules.move_max, max(rules.move_min, position.y + dy * rules.step)) if dy else position.y
    return Point(x, y)


def within_field(point: Point, rules: GameRules = DEFAULT_RULES) -> bool:
    return (
        rules.field_min <= point.x <= rules.field_max
        and rules.field_min <= point.y <= rules.field_max
    )


def is_valid_move(
    rooms: Sequence[Room],
    corridors: Sequence[Corridor],
    origin: Point,
    target: Point,
    rules: GameRules = DEFAULT_RULES,
) -> bool:
    """Decide whether the agent may step from ``origin`` to ``target``.

    Room-to-room steps need a corridor between the two rooms. A step that does
    not land in a room is allowed only close to some corridor segment.
    """
    if not within_field(target, rules):
        return False

    current_room = room_at(rooms, origin, rules.room_radius)
    target_room = room_at(rooms, target, rules.room_radius)

    if current_room is not None and target_room is not None:
        if current_room.id == target_room.id:
            return True
        return connects(corridors, current_room.id, target_room.id)

    return any(
        point_segment_distance(target, corridor.start, corridor.end) < rules.corridor_radius
        for corridor in corridors
    )
