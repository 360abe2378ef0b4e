from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Sequence, Tuple

from catrat.core.levels import Point, Room


class LevelDataError(ValueError):
    """Raised when a level's room graph references rooms that do not exist."""


def corridor_key(a: int, b: int) -> Tuple[int, int]:
    """Canonical identity of the undirected connection between two rooms."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class Corridor:
    room_a: int
    room_b: int
    start: Point
    end: Point
    midpoint: Point
    horizontal: bool

    @property
    def key(self) -> Tuple[int, int]:
        return corridor_key(self.room_a, self.room_b)

    def joins(self, a: int, b: int) -> bool:
        return self.key == corridor_key(a, b)


def _make_corridor(room: Room, other: Room) -> Corridor:
    dx = room.position.x - other.position.x
    dy = room.position.y - other.position.y
    return Corridor(
        room_a=room.id,
        room_b=other.id,
        start=room.position,
        end=other.position,
        midpoint=Point(
            (room.position.x + other.position.x) / 2,
            (room.position.y + other.position.y) / 2,
        ),
        horizontal=abs(dx) > abs(dy),
    )


def build_corridors(rooms: Sequence[Room]) -> Tuple[Corridor, ...]:
    """Return one corridor per connected room pair, in order of first appearance.

    A pair authored from one side or from both sides yields a single corridor.
    """
    by_id: Dict[int, Room] = {room.id: room for room in rooms}
    corridors: Dict[Tuple[int, int], Corridor] = {}
    for room in rooms:
        for other_id in room.connected:
            if other_id == room.id:
                continue
            other = by_id.get(other_id)
            if other is None:
                raise LevelDataError(
                    f"Room {room.id} ({room.name}) is connected to unknown room {other_id}"
                )
            key = corridor_key(room.id, other_id)
            if key not in corridors:
                corridors[key] = _make_corridor(room, other)
    return tuple(corridors.values())


def connects(corridors: Iterable[Corridor], a: int, b: int) -> bool:
    key = corridor_key(a, b)
    return any(corridor.key == key for corridor in corridors)
