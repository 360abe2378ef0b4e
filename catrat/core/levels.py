from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Room:
    """A node of the level graph.

    ``contains_target`` and ``highlighted`` are never authored; the session
    sets them on its working copy.
    """

    id: int
    name: str
    position: Point
    connected: Tuple[int, ...] = ()
    contains_target: bool = False
    highlighted: bool = False


@dataclass(frozen=True)
class LevelDefinition:
    key: str
    id: int
    name: str
    rooms: Tuple[Room, ...]
    agent_start: Point
    target_room: int
    base_points: int
    time_limit: int
    description: str = ""
    optimal_path_length: int = 0


def default_levels_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "data" / "levels"


class LevelRepository:
    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else default_levels_dir()
        self._levels = self._load_levels()

    def all(self) -> List[LevelDefinition]:
        return list(self._levels.values())

    def get(self, key: str) -> LevelDefinition:
        return self._levels[key]

    def at(self, index: int) -> LevelDefinition:
        if index < 0 or index >= len(self._levels):
            raise IndexError(f"Level index out of range: {index}")
        return self.all()[index]

    def __len__(self) -> int:
        return len(self._levels)

    def _load_levels(self) -> Dict[str, LevelDefinition]:
        base_dir = self._base_dir
        if not base_dir.exists():
            raise FileNotFoundError(f"Levels directory not found: {base_dir}")

        levels: Dict[str, LevelDefinition] = {}

        def _sort_key(p: Path) -> tuple[int, str]:
            m = re.match(r"^level(\d+)$", p.stem)
            if m:
                return (int(m.group(1)), p.stem)
            return (10**9, p.stem)

        for level_path in sorted(base_dir.glob("level*.yaml"), key=_sort_key):
            raw = yaml.safe_load(level_path.read_text(encoding="utf-8"))
            levels[level_path.stem] = _parse_level(level_path.name, level_path.stem, raw)

        if not levels:
            raise ValueError(f"No level files (level*.yaml) found in {base_dir}")
        logger.debug("Loaded %d levels from %s", len(levels), base_dir)
        return levels


def _parse_point(source: str, field: str, value: Any) -> Point:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{source}: '{field}' must be a pair [x, y]")
    try:
        x, y = float(value[0]), float(value[1])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{source}: '{field}' must hold numbers") from exc
    if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
        raise ValueError(f"{source}: '{field}' must lie within [0, 1]")
    return Point(x, y)


def _require_int(source: str, raw: Dict[str, Any], field: str) -> int:
    value = raw.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{source}: missing or invalid '{field}'")
    return value


def _parse_room(source: str, raw: Any) -> Room:
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: each room must be a mapping")
    room_id = _require_int(source, raw, "id")
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise ValueError(f"{source}: room {room_id} has a missing or invalid 'name'")
    connected = raw.get("connected") or []
    if not isinstance(connected, list) or not all(
        isinstance(c, int) and not isinstance(c, bool) for c in connected
    ):
        raise ValueError(f"{source}: room {room_id} 'connected' must be a list of room ids")
    position = _parse_point(source, f"rooms[{room_id}].position", raw.get("position"))
    return Room(id=room_id, name=name.strip(), position=position, connected=tuple(connected))


def _parse_level(source: str, key: str, raw: Any) -> LevelDefinition:
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"{source}: expected YAML mapping with 'name' and 'rooms'")
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise ValueError(f"{source}: missing or invalid 'name'")
    room_list = raw.get("rooms")
    if not room_list or not isinstance(room_list, list):
        raise ValueError(f"{source}: 'rooms' has no rooms")

    rooms = tuple(_parse_room(source, item) for item in room_list)
    ids = [room.id for room in rooms]
    if len(set(ids)) != len(ids):
        raise ValueError(f"{source}: duplicate room ids")

    target_room = _require_int(source, raw, "target_room")
    if target_room not in ids:
        raise ValueError(f"{source}: target_room {target_room} is not one of the rooms")

    base_points = _require_int(source, raw, "base_points")
    if base_points < 0:
        raise ValueError(f"{source}: 'base_points' must not be negative")
    time_limit = _require_int(source, raw, "time_limit")
    if time_limit <= 0:
        raise ValueError(f"{source}: 'time_limit' must be positive")

    return LevelDefinition(
        key=key,
        id=_require_int(source, raw, "id"),
        name=name.strip(),
        rooms=rooms,
        agent_start=_parse_point(source, "agent_start", raw.get("agent_start")),
        target_room=target_room,
        base_points=base_points,
        time_limit=time_limit,
        description=str(raw.get("description") or "").strip(),
        optimal_path_length=int(raw.get("optimal_path_length") or 0),
    )
