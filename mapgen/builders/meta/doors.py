# mapgen/builders/meta/doors.py
from typing import Final

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL

log = structlog.get_logger()

DOOR: Final[str] = "Door"
MIN_CORRIDOR_LENGTH: Final[int] = 3


class DoorPlacement(MetaMapBuilder):
    """Requests doors where corridors meet rooms.

    With recorded corridors the first cell of each long enough corridor is
    tried. Otherwise every floor chokepoint gets a one-in-three chance.
    """

    def door_possible(self, build_data: BuilderMap, idx: int) -> bool:
        if any(spawn[0] == idx for spawn in build_data.spawn_list):
            return False
        game_map = build_data.map
        tiles = game_map.tiles
        w = game_map.width
        x, y = game_map.idx_xy(idx)
        if tiles[idx] != TILE_ID_FLOOR:
            return False
        if not (1 < x < game_map.width - 2 and 1 < y < game_map.height - 2):
            return False

        west, east, north, south = tiles[idx - 1], tiles[idx + 1], tiles[idx - w], tiles[idx + w]
        east_west = (
            west == TILE_ID_FLOOR and east == TILE_ID_FLOOR
            and north == TILE_ID_WALL and south == TILE_ID_WALL
        )
        north_south = (
            west == TILE_ID_WALL and east == TILE_ID_WALL
            and north == TILE_ID_FLOOR and south == TILE_ID_FLOOR
        )
        return east_west or north_south

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        before = len(build_data.spawn_list)
        if build_data.corridors is not None:
            for hall in build_data.corridors:
                if len(hall) >= MIN_CORRIDOR_LENGTH and self.door_possible(build_data, hall[0]):
                    build_data.spawn_list.append((hall[0], DOOR))
        else:
            floor = (build_data.map.tiles == TILE_ID_FLOOR).nonzero()[0]
            for idx in floor.tolist():
                if self.door_possible(build_data, idx) and rng.roll_dice(1, 3) == 1:
                    build_data.spawn_list.append((idx, DOOR))
        log.debug("Doors placed", doors=len(build_data.spawn_list) - before)
