# mapgen/world/paint.py
"""Carving helpers shared by the builders: symmetric brushes, rooms, tunnels."""
from enum import Enum, auto
from typing import List, Set, Tuple

import structlog

from mapgen.world.game_map import TILE_ID_FLOOR, GameMap
from mapgen.world.geometry import Rect

log = structlog.get_logger()


class Symmetry(Enum):
    NONE = auto()
    HORIZONTAL = auto()
    VERTICAL = auto()
    BOTH = auto()


def symmetry_points(
    game_map: GameMap, symmetry: Symmetry, x: int, y: int
) -> List[Tuple[int, int]]:
    """Source point plus its mirrors across the map's center lines.

    A point lying on an axis is returned once. Mirrors that fall outside the
    map are dropped.
    """
    center_x = game_map.width // 2
    center_y = game_map.height // 2
    xs = [x]
    ys = [y]
    if symmetry in (Symmetry.HORIZONTAL, Symmetry.BOTH) and x != center_x:
        xs.append(2 * center_x - x)
    if symmetry in (Symmetry.VERTICAL, Symmetry.BOTH) and y != center_y:
        ys.append(2 * center_y - y)

    points = []
    for py in ys:
        for px in xs:
            if game_map.in_bounds(px, py):
                points.append((px, py))
    return points


def apply_paint(game_map: GameMap, brush_size: int, x: int, y: int) -> Set[int]:
    """Sets the brush footprint at ``(x, y)`` to floor; returns indices touched."""
    touched: Set[int] = set()
    if brush_size <= 1:
        if game_map.in_bounds(x, y):
            idx = game_map.xy_idx(x, y)
            game_map.tiles[idx] = TILE_ID_FLOOR
            touched.add(idx)
        return touched

    half = brush_size // 2
    x_start = max(1, x - half)
    x_end = min(game_map.width - 1, x - half + brush_size)
    y_start = max(1, y - half)
    y_end = min(game_map.height - 1, y - half + brush_size)
    if x_start >= x_end or y_start >= y_end:
        return touched
    game_map.grid[y_start:y_end, x_start:x_end] = TILE_ID_FLOOR
    for brush_y in range(y_start, y_end):
        row = brush_y * game_map.width
        touched.update(range(row + x_start, row + x_end))
    return touched


def paint(
    game_map: GameMap, symmetry: Symmetry, brush_size: int, x: int, y: int
) -> Set[int]:
    touched: Set[int] = set()
    for px, py in symmetry_points(game_map, symmetry, x, y):
        touched |= apply_paint(game_map, brush_size, px, py)
    return touched


def apply_room_to_map(game_map: GameMap, room: Rect) -> None:
    """Carves the interior of ``room`` (everything right of x1 and below y1)."""
    x_start = max(1, room.x1 + 1)
    x_end = min(game_map.width - 1, room.x2 + 1)
    y_start = max(1, room.y1 + 1)
    y_end = min(game_map.height - 1, room.y2 + 1)
    if x_start < x_end and y_start < y_end:
        game_map.grid[y_start:y_end, x_start:x_end] = TILE_ID_FLOOR
    else:
        log.warning("Attempted to carve zero-size room", rect=room)


def apply_horizontal_tunnel(game_map: GameMap, x1: int, x2: int, y: int) -> List[int]:
    carved = []
    for x in range(min(x1, x2), max(x1, x2) + 1):
        idx = game_map.xy_idx(x, y)
        if 0 < idx < game_map.size and game_map.tiles[idx] != TILE_ID_FLOOR:
            game_map.tiles[idx] = TILE_ID_FLOOR
            carved.append(idx)
    return carved


def apply_vertical_tunnel(game_map: GameMap, y1: int, y2: int, x: int) -> List[int]:
    carved = []
    for y in range(min(y1, y2), max(y1, y2) + 1):
        idx = game_map.xy_idx(x, y)
        if 0 < idx < game_map.size and game_map.tiles[idx] != TILE_ID_FLOOR:
            game_map.tiles[idx] = TILE_ID_FLOOR
            carved.append(idx)
    return carved


def carve_l_tunnel(
    game_map: GameMap,
    start: Tuple[int, int],
    end: Tuple[int, int],
    horizontal_first: bool,
) -> List[int]:
    """L-shaped corridor between two points using one axis order."""
    (x1, y1), (x2, y2) = start, end
    if horizontal_first:
        carved = apply_horizontal_tunnel(game_map, x1, x2, y1)
        carved += apply_vertical_tunnel(game_map, y1, y2, x2)
    else:
        carved = apply_vertical_tunnel(game_map, y1, y2, x1)
        carved += apply_horizontal_tunnel(game_map, x1, x2, y2)
    log.debug(
        "Carved tunnel",
        start_pos=start,
        end_pos=end,
        horizontal_first=horizontal_first,
        carved=len(carved),
    )
    return carved


def draw_corridor(game_map: GameMap, x1: int, y1: int, x2: int, y2: int) -> List[int]:
    """Walks from ``(x1, y1)`` to ``(x2, y2)`` one axis step at a time.

    Returns the indices converted to floor, in the order they were carved.
    """
    corridor = []
    x, y = x1, y1
    while x != x2 or y != y2:
        if x < x2:
            x += 1
        elif x > x2:
            x -= 1
        elif y < y2:
            y += 1
        elif y > y2:
            y -= 1

        idx = game_map.xy_idx(x, y)
        if game_map.tiles[idx] != TILE_ID_FLOOR:
            corridor.append(idx)
            game_map.tiles[idx] = TILE_ID_FLOOR
    return corridor
