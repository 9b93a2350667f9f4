# mapgen/builders/simple_map.py
from typing import Final, List

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.world.geometry import Rect
from mapgen.world.paint import apply_room_to_map, carve_l_tunnel

log = structlog.get_logger()

MAX_ROOMS: Final[int] = 30
MIN_SIZE: Final[int] = 6
MAX_SIZE: Final[int] = 10


class SimpleMapBuilder(InitialMapBuilder):
    """Rooms and corridors: non-overlapping random rooms joined by L tunnels.

    With ``draw=False`` only the room rectangles are recorded, leaving
    carving to ``RoomDrawer`` and one of the corridor meta-builders.
    """

    def __init__(self, draw: bool = True, max_rooms: int = MAX_ROOMS):
        self.draw = draw
        self.max_rooms = max_rooms

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        rooms: List[Rect] = []
        corridors: List[List[int]] = []

        for _ in range(self.max_rooms):
            w = rng.range(MIN_SIZE, MAX_SIZE)
            h = rng.range(MIN_SIZE, MAX_SIZE)
            if w >= game_map.width - 2 or h >= game_map.height - 2:
                continue
            x = rng.roll_dice(1, game_map.width - w - 1) - 1
            y = rng.roll_dice(1, game_map.height - h - 1) - 1
            new_room = Rect.from_size(x, y, w, h)
            if any(new_room.intersects(other) for other in rooms):
                continue

            if self.draw:
                apply_room_to_map(game_map, new_room)
                if rooms:
                    horizontal_first = rng.range(0, 2) == 1
                    corridors.append(
                        carve_l_tunnel(
                            game_map, rooms[-1].center, new_room.center, horizontal_first
                        )
                    )
            rooms.append(new_room)
            build_data.take_snapshot()

        log.info("Rooms placed", count=len(rooms), attempts=self.max_rooms, drawn=self.draw)
        build_data.rooms = rooms
        game_map.rooms = list(rooms)
        if self.draw:
            build_data.corridors = corridors
