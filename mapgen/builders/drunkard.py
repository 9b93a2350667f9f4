# mapgen/builders/drunkard.py
from dataclasses import dataclass
from enum import Enum, auto
from typing import Final

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.meta.cull import cull_from_start
from mapgen.world.game_map import GameMap
from mapgen.world.geometry import Position
from mapgen.world.paint import Symmetry, paint

log = structlog.get_logger()

DEFAULT_MAX_DIGGERS: Final[int] = 1000


class DrunkSpawnMode(Enum):
    STARTING_POINT = auto()
    RANDOM = auto()
    PREVIOUS = auto()


@dataclass(frozen=True)
class DrunkardSettings:
    spawn_mode: DrunkSpawnMode
    drunken_lifetime: int
    floor_percent: float
    brush_size: int
    symmetry: Symmetry
    max_diggers: int = DEFAULT_MAX_DIGGERS


def stagger(game_map: GameMap, rng: GameRNG, x: int, y: int) -> Position:
    """One random cardinal step, kept two cells clear of the map edge."""
    direction = rng.roll_dice(1, 4)
    if direction == 1:
        if x > 2:
            x -= 1
    elif direction == 2:
        if x < game_map.width - 2:
            x += 1
    elif direction == 3:
        if y > 2:
            y -= 1
    elif y < game_map.height - 2:
        y += 1
    return Position(x, y)


class DrunkardsWalkBuilder(InitialMapBuilder):
    def __init__(self, settings: DrunkardSettings):
        self.settings = settings

    @classmethod
    def open_area(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.STARTING_POINT, 400, 0.5, 1, Symmetry.NONE))

    @classmethod
    def open_halls(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.RANDOM, 400, 0.5, 1, Symmetry.NONE))

    @classmethod
    def winding_passages(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.RANDOM, 400, 0.4, 1, Symmetry.NONE))

    @classmethod
    def fat_passages(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.RANDOM, 400, 0.4, 2, Symmetry.NONE))

    @classmethod
    def fearful_symmetry(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.RANDOM, 400, 0.4, 1, Symmetry.BOTH))

    @classmethod
    def wandering_tunnels(cls) -> "DrunkardsWalkBuilder":
        return cls(DrunkardSettings(DrunkSpawnMode.PREVIOUS, 100, 0.35, 1, Symmetry.NONE))

    def _spawn_point(
        self, rng: GameRNG, game_map: GameMap, start: Position, previous: Position, digger: int
    ) -> Position:
        mode = self.settings.spawn_mode
        if digger == 0 or mode is DrunkSpawnMode.STARTING_POINT:
            return start
        if mode is DrunkSpawnMode.PREVIOUS:
            return previous
        return Position(
            rng.roll_dice(1, game_map.width - 3) + 1,
            rng.roll_dice(1, game_map.height - 3) + 1,
        )

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        settings = self.settings
        game_map = build_data.map
        start = Position(game_map.width // 2, game_map.height // 2)
        build_data.starting_position = start
        paint(game_map, Symmetry.NONE, 1, start.x, start.y)

        total_tiles = game_map.width * game_map.height
        desired_floor_tiles = int(settings.floor_percent * total_tiles)
        floor_tile_count = game_map.floor_count()
        digger_count = 0
        last_position = start

        while floor_tile_count < desired_floor_tiles and digger_count < settings.max_diggers:
            drunk = self._spawn_point(rng, game_map, start, last_position, digger_count)
            for _ in range(settings.drunken_lifetime):
                paint(game_map, settings.symmetry, settings.brush_size, drunk.x, drunk.y)
                last_position = drunk
                drunk = stagger(game_map, rng, drunk.x, drunk.y)
            build_data.take_snapshot()

            digger_count += 1
            floor_tile_count = game_map.floor_count()

        cull_from_start(build_data, type(self).__name__)
        last_idx = game_map.xy_idx(*last_position)
        # The last digger may have been walled off; culling already chose a fallback.
        if game_map.is_walkable(*last_position):
            build_data.exit_candidate = last_idx
        log.info(
            "Drunkard's walk finished",
            diggers=digger_count,
            floor=game_map.floor_count(),
            target=desired_floor_tiles,
            mode=settings.spawn_mode.name,
            exit_candidate=build_data.exit_candidate,
        )
