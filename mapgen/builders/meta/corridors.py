# mapgen/builders/meta/corridors.py
"""Corridor strategies that join the recorded rooms.

Each one replaces ``corridors`` with the cells it carved, one list per
corridor, so corridor spawning and door placement can follow.
"""
from typing import List, Optional, Set

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.world.game_map import TILE_ID_FLOOR, GameMap
from mapgen.world.geometry import DistanceAlg, Rect, line2d
from mapgen.world.paint import carve_l_tunnel, draw_corridor

log = structlog.get_logger()


def _random_point_in(rng: GameRNG, game_map: GameMap, room: Rect) -> tuple[int, int]:
    """A random floor cell inside ``room``, or its centre if it has none."""
    floor = [
        (x, y)
        for y in range(room.y1 + 1, room.y2 + 1)
        for x in range(room.x1 + 1, room.x2 + 1)
        if game_map.in_bounds(x, y) and game_map.tiles[game_map.xy_idx(x, y)] == TILE_ID_FLOOR
    ]
    if not floor:
        return room.center
    return floor[rng.roll_dice(1, len(floor)) - 1]


def _nearest_unconnected(rooms: List[Rect], i: int, connected: Set[int]) -> Optional[int]:
    """Closest room by centre distance; the earliest room wins ties."""
    center = rooms[i].center
    best = None
    best_distance = 0.0
    for j, other in enumerate(rooms):
        if j == i or j in connected:
            continue
        distance = DistanceAlg.PYTHAGORAS.distance2d(center, other.center)
        if best is None or distance < best_distance:
            best, best_distance = j, distance
    return best


class DoglegCorridors(MetaMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        corridors = []
        for prev, room in zip(rooms, rooms[1:]):
            horizontal_first = rng.range(0, 2) == 1
            corridors.append(
                carve_l_tunnel(build_data.map, prev.center, room.center, horizontal_first)
            )
            build_data.take_snapshot()
        build_data.corridors = corridors


class BspCorridors(MetaMapBuilder):
    """Joins consecutive rooms between random points inside each."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        corridors = []
        for room, next_room in zip(rooms, rooms[1:]):
            start_x, start_y = _random_point_in(rng, build_data.map, room)
            end_x, end_y = _random_point_in(rng, build_data.map, next_room)
            corridors.append(draw_corridor(build_data.map, start_x, start_y, end_x, end_y))
            build_data.take_snapshot()
        build_data.corridors = corridors


class NearestCorridors(MetaMapBuilder):
    """Each room digs to its nearest room that has not dug yet."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        connected: Set[int] = set()
        corridors = []
        for i, room in enumerate(rooms):
            target = _nearest_unconnected(rooms, i, connected)
            if target is None:
                continue
            (x1, y1), (x2, y2) = room.center, rooms[target].center
            corridors.append(draw_corridor(build_data.map, x1, y1, x2, y2))
            connected.add(i)
            build_data.take_snapshot()
        build_data.corridors = corridors


class StraightLineCorridors(MetaMapBuilder):
    """Like ``NearestCorridors`` but digs a straight Bresenham line.

    Diagonal steps also carve the corner cell so the corridor stays
    passable with cardinal movement.
    """

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        game_map = build_data.map
        connected: Set[int] = set()
        corridors = []
        for i, room in enumerate(rooms):
            target = _nearest_unconnected(rooms, i, connected)
            if target is None:
                continue
            corridor = []
            previous = None
            for cell in line2d(*room.center, *rooms[target].center):
                cells = [cell]
                if previous is not None and previous.x != cell.x and previous.y != cell.y:
                    cells.insert(0, (cell.x, previous.y))
                for x, y in cells:
                    idx = game_map.xy_idx(x, y)
                    if game_map.tiles[idx] != TILE_ID_FLOOR:
                        game_map.tiles[idx] = TILE_ID_FLOOR
                        corridor.append(idx)
                previous = cell
            corridors.append(corridor)
            connected.add(i)
            build_data.take_snapshot()
        build_data.corridors = corridors
        log.debug("Straight corridors dug", corridors=len(corridors))
