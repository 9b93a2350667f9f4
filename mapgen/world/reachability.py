# mapgen/world/reachability.py
from collections import deque
from typing import Final, Iterable, List, Optional

import numpy as np
import structlog

from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL, GameMap

log = structlog.get_logger()

UNREACHABLE: Final[int] = -1


def distance_map(game_map: GameMap, starts: Iterable[int]) -> np.ndarray:
    """Breadth-first path distance from ``starts`` over walkable cells.

    Movement is cardinal only. Cells that cannot be reached hold ``UNREACHABLE``.
    """
    walkable = game_map.walkable()
    distances = np.full(game_map.size, UNREACHABLE, dtype=np.int32)
    width, height = game_map.width, game_map.height

    queue: deque[int] = deque()
    for start in starts:
        if walkable[start] and distances[start] == UNREACHABLE:
            distances[start] = 0
            queue.append(start)

    while queue:
        idx = queue.popleft()
        x, y = idx % width, idx // width
        next_distance = distances[idx] + 1
        for nx, ny in ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)):
            if 0 <= nx < width and 0 <= ny < height:
                n_idx = ny * width + nx
                if walkable[n_idx] and distances[n_idx] == UNREACHABLE:
                    distances[n_idx] = next_distance
                    queue.append(n_idx)
    return distances


def most_distant(distances: np.ndarray) -> Optional[int]:
    """Index with the greatest distance; the lowest index wins ties."""
    if not np.any(distances > 0):
        return None
    return int(np.argmax(distances))


def cull_unreachable(game_map: GameMap, start_idx: int) -> Optional[int]:
    """Walls off floor not reachable from ``start_idx``.

    Returns the most distant reachable cell, the natural exit candidate.
    """
    distances = distance_map(game_map, [start_idx])
    unreachable_floor = (game_map.tiles == TILE_ID_FLOOR) & (distances == UNREACHABLE)
    culled = int(np.count_nonzero(unreachable_floor))
    game_map.tiles[unreachable_floor] = TILE_ID_WALL
    exit_idx = most_distant(distances)
    log.debug(
        "Culled unreachable floor",
        start=game_map.idx_xy(start_idx),
        culled=culled,
        exit_candidate=exit_idx,
    )
    return exit_idx


def nearest_walkable(game_map: GameMap, x: int, y: int) -> int:
    """Walkable cell closest to ``(x, y)`` by straight-line distance."""
    candidates = np.flatnonzero(game_map.walkable())
    if candidates.size == 0:
        log.error("No walkable cells on map", target=(x, y))
        raise GenerationFailedError("No valid floors to start on")
    cx = candidates % game_map.width
    cy = candidates // game_map.width
    dist_sq = (cx - x) ** 2 + (cy - y) ** 2
    return int(candidates[np.argmin(dist_sq)])


def shortest_path(game_map: GameMap, start: int, goal: int) -> List[int]:
    """Cell indices from ``start`` to ``goal`` inclusive; empty if unreachable."""
    distances = distance_map(game_map, [goal])
    if distances[start] == UNREACHABLE:
        return []
    width = game_map.width
    path = [start]
    idx = start
    while distances[idx] > 0:
        x, y = idx % width, idx // width
        for nx, ny in ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)):
            if game_map.in_bounds(nx, ny):
                n_idx = ny * width + nx
                if distances[n_idx] == distances[idx] - 1:
                    idx = n_idx
                    break
        path.append(idx)
    return path
