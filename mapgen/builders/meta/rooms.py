# mapgen/builders/meta/rooms.py
"""Meta-builders that reorder, draw or reshape the recorded rooms."""
from enum import Enum, auto
from typing import Final

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.builders.drunkard import stagger
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL, GameMap
from mapgen.world.geometry import DistanceAlg, Rect
from mapgen.world.paint import apply_room_to_map

log = structlog.get_logger()

EXPLODER_LIFETIME: Final[int] = 20


class RoomSort(Enum):
    LEFTMOST = auto()
    RIGHTMOST = auto()
    TOPMOST = auto()
    BOTTOMMOST = auto()
    CENTRAL = auto()


class RoomSorter(MetaMapBuilder):
    """Reorders rooms so that later room-based stages see them in a new order.

    Sorting is stable; rooms with equal keys keep their previous order.
    """

    def __init__(self, sort_by: RoomSort):
        self.sort_by = sort_by

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        if self.sort_by is RoomSort.LEFTMOST:
            rooms.sort(key=lambda r: r.x1)
        elif self.sort_by is RoomSort.RIGHTMOST:
            rooms.sort(key=lambda r: -r.x2)
        elif self.sort_by is RoomSort.TOPMOST:
            rooms.sort(key=lambda r: r.y1)
        elif self.sort_by is RoomSort.BOTTOMMOST:
            rooms.sort(key=lambda r: -r.y2)
        else:
            map_center = (build_data.width // 2, build_data.height // 2)
            rooms.sort(key=lambda r: DistanceAlg.PYTHAGORAS.distance2d(r.center, map_center))
        log.debug("Rooms sorted", sort_by=self.sort_by.name, rooms=len(rooms))


def draw_circle(game_map: GameMap, room: Rect) -> None:
    radius = min(room.width, room.height) / 2.0
    center = room.center
    for y in range(max(1, room.y1), min(game_map.height - 1, room.y2 + 1)):
        for x in range(max(1, room.x1), min(game_map.width - 1, room.x2 + 1)):
            if DistanceAlg.PYTHAGORAS.distance2d(center, (x, y)) <= radius:
                game_map.tiles[game_map.xy_idx(x, y)] = TILE_ID_FLOOR


class RoomDrawer(MetaMapBuilder):
    """Carves recorded rooms; one in four comes out circular."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        game_map = build_data.map
        circles = 0
        for room in rooms:
            if rng.roll_dice(1, 4) == 1:
                draw_circle(game_map, room)
                circles += 1
            else:
                apply_room_to_map(game_map, room)
            build_data.take_snapshot()
        game_map.rooms = list(rooms)
        log.debug("Rooms drawn", rooms=len(rooms), circular=circles)


class RoomExploder(MetaMapBuilder):
    """Sends short-lived drunkards out from each room's centre."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        game_map = build_data.map
        for room in rooms:
            n_diggers = rng.roll_dice(1, 20) - 5
            for _ in range(max(n_diggers, 0)):
                x, y = room.center
                did_something = False
                for _ in range(EXPLODER_LIFETIME):
                    idx = game_map.xy_idx(x, y)
                    if game_map.tiles[idx] == TILE_ID_WALL:
                        did_something = True
                    game_map.tiles[idx] = TILE_ID_FLOOR
                    x, y = stagger(game_map, rng, x, y)
                if did_something:
                    build_data.take_snapshot()


class RoomCornerRounder(MetaMapBuilder):
    """Walls in room corners that sit between exactly two walls."""

    def _fill_if_corner(self, game_map: GameMap, x: int, y: int) -> None:
        if not (0 < x < game_map.width - 1 and 0 < y < game_map.height - 1):
            return
        tiles = game_map.tiles
        idx = game_map.xy_idx(x, y)
        w = game_map.width
        neighbour_walls = sum(
            1 for n in (idx - 1, idx + 1, idx - w, idx + w) if tiles[n] == TILE_ID_WALL
        )
        if neighbour_walls == 2:
            tiles[idx] = TILE_ID_WALL

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        game_map = build_data.map
        for room in rooms:
            self._fill_if_corner(game_map, room.x1 + 1, room.y1 + 1)
            self._fill_if_corner(game_map, room.x2, room.y1 + 1)
            self._fill_if_corner(game_map, room.x1 + 1, room.y2)
            self._fill_if_corner(game_map, room.x2, room.y2)
            build_data.take_snapshot()
