# mapgen/spawning/spawner.py
"""Turns rooms and regions into (cell index, content tag) spawn requests.

Generation never creates entities itself; it only appends to a spawn list
that the game loop hands to its own entity factory afterwards.
"""
from typing import Callable, Final, List, Optional, Sequence, Tuple

import structlog

from game_rng import GameRNG
from mapgen.spawning.random_table import RandomTable
from mapgen.world.game_map import TILE_ID_FLOOR, GameMap
from mapgen.world.geometry import Rect

log = structlog.get_logger()

MAX_SPAWNS: Final[int] = 4

SpawnList = List[Tuple[int, str]]
TableFactory = Callable[[int], RandomTable]


def room_table(depth: int) -> RandomTable:
    """Default spawn table; deeper levels favour the nastier entries."""
    return (
        RandomTable()
        .add("Goblin", 10)
        .add("Orc", 1 + depth)
        .add("Health Potion", 7)
        .add("Fireball Scroll", 2 + depth)
        .add("Confusion Scroll", 2 + depth)
        .add("Magic Missile Scroll", 4)
        .add("Dagger", 3)
        .add("Shield", 3)
        .add("Longsword", depth - 1)
        .add("Tower Shield", depth - 1)
        .add("Rations", 10)
        .add("Magic Mapping Scroll", 2)
        .add("Bear Trap", 5)
    )


def spawn_room(
    game_map: GameMap,
    rng: GameRNG,
    room: Rect,
    depth: int,
    spawn_list: SpawnList,
    table_factory: Optional[TableFactory] = None,
) -> None:
    """Fills the unoccupied floor inside ``room`` (its walls excluded)."""
    occupied = {idx for idx, _ in spawn_list}
    possible_targets = []
    for y in range(room.y1 + 1, room.y2):
        for x in range(room.x1 + 1, room.x2):
            if not game_map.in_bounds(x, y):
                continue
            idx = game_map.xy_idx(x, y)
            if game_map.tiles[idx] == TILE_ID_FLOOR and idx not in occupied:
                possible_targets.append(idx)
    spawn_region(rng, possible_targets, depth, spawn_list, table_factory)


def spawn_region(
    rng: GameRNG,
    area: Sequence[int],
    depth: int,
    spawn_list: SpawnList,
    table_factory: Optional[TableFactory] = None,
) -> None:
    """Draws a depth-scaled number of distinct cells from ``area``."""
    if not area:
        return
    spawn_table = (table_factory or room_table)(depth)
    areas = list(area)
    num_spawns = min(len(areas), rng.roll_dice(1, MAX_SPAWNS + 3) + (depth - 1) - 3)
    if num_spawns <= 0:
        return

    for _ in range(num_spawns):
        array_index = 0 if len(areas) == 1 else rng.roll_dice(1, len(areas)) - 1
        map_idx = areas.pop(array_index)
        spawn_list.append((map_idx, spawn_table.roll(rng)))
    log.debug("Spawned region", depth=depth, area=len(area), spawns=num_spawns)
