# mapgen/builders/meta/room_based.py
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.errors import GenerationFailedError
from mapgen.spawning.spawner import spawn_room
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS
from mapgen.world.geometry import Position

log = structlog.get_logger()


class RoomBasedStartingPosition(MetaMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        if not rooms:
            log.error("Room list is empty", stage=type(self).__name__)
            raise GenerationFailedError("No rooms to start in")
        build_data.starting_position = Position(*rooms[0].center)


class RoomBasedStairs(MetaMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        if not rooms:
            log.error("Room list is empty", stage=type(self).__name__)
            raise GenerationFailedError("No rooms to place stairs in")
        game_map = build_data.map
        game_map.tiles[game_map.xy_idx(*rooms[-1].center)] = TILE_ID_DOWN_STAIRS
        build_data.take_snapshot()


class RoomBasedSpawner(MetaMapBuilder):
    """Populates every room except the first, where the player starts."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        rooms = build_data.require_rooms(type(self).__name__)
        game_map = build_data.map
        before = len(build_data.spawn_list)
        for room in rooms[1:]:
            spawn_room(game_map, rng, room, game_map.depth, build_data.spawn_list)
        log.debug("Rooms populated", rooms=max(len(rooms) - 1, 0), spawns=len(build_data.spawn_list) - before)
