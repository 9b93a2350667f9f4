# mapgen/builders/dla.py
from dataclasses import dataclass
from enum import Enum, auto
from typing import Final

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.drunkard import stagger
from mapgen.builders.meta.cull import cull_from_start
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL
from mapgen.world.geometry import Position, line2d
from mapgen.world.paint import Symmetry, paint

log = structlog.get_logger()

# Bounds a single walker; the blob keeps growing as long as walkers stick.
WALKER_STEP_FACTOR: Final[int] = 4
MAX_WALKERS: Final[int] = 20000


class DLAAlgorithm(Enum):
    WALK_INWARDS = auto()
    WALK_OUTWARDS = auto()
    CENTRAL_ATTRACTOR = auto()


@dataclass(frozen=True)
class DLASettings:
    algorithm: DLAAlgorithm
    brush_size: int
    symmetry: Symmetry
    floor_percent: float


class DLABuilder(InitialMapBuilder):
    """Diffusion-limited aggregation: walkers stick where they touch the blob."""

    def __init__(self, settings: DLASettings, max_walkers: int = MAX_WALKERS):
        self.settings = settings
        self.max_walkers = max_walkers

    @classmethod
    def walk_inwards(cls) -> "DLABuilder":
        return cls(DLASettings(DLAAlgorithm.WALK_INWARDS, 1, Symmetry.NONE, 0.25))

    @classmethod
    def walk_outwards(cls) -> "DLABuilder":
        return cls(DLASettings(DLAAlgorithm.WALK_OUTWARDS, 2, Symmetry.NONE, 0.25))

    @classmethod
    def central_attractor(cls) -> "DLABuilder":
        return cls(DLASettings(DLAAlgorithm.CENTRAL_ATTRACTOR, 2, Symmetry.NONE, 0.25))

    @classmethod
    def insectoid(cls) -> "DLABuilder":
        return cls(DLASettings(DLAAlgorithm.CENTRAL_ATTRACTOR, 2, Symmetry.HORIZONTAL, 0.25))

    @classmethod
    def heavy_erosion(cls) -> "DLABuilder":
        return cls(DLASettings(DLAAlgorithm.WALK_INWARDS, 2, Symmetry.NONE, 0.35))

    def _random_interior(self, rng: GameRNG, build_data: BuilderMap) -> Position:
        return Position(
            rng.roll_dice(1, build_data.width - 3) + 1,
            rng.roll_dice(1, build_data.height - 3) + 1,
        )

    def _walk_inwards(self, rng: GameRNG, build_data: BuilderMap, max_steps: int) -> None:
        game_map = build_data.map
        digger = self._random_interior(rng, build_data)
        prev = digger
        steps = 0
        while game_map.tiles[game_map.xy_idx(*digger)] == TILE_ID_WALL:
            if steps >= max_steps:
                return
            prev = digger
            digger = stagger(game_map, rng, digger.x, digger.y)
            steps += 1
        paint(game_map, self.settings.symmetry, self.settings.brush_size, prev.x, prev.y)

    def _walk_outwards(
        self, rng: GameRNG, build_data: BuilderMap, center: Position, max_steps: int
    ) -> None:
        game_map = build_data.map
        digger = center
        steps = 0
        while game_map.tiles[game_map.xy_idx(*digger)] == TILE_ID_FLOOR:
            if steps >= max_steps:
                return
            digger = stagger(game_map, rng, digger.x, digger.y)
            steps += 1
        paint(game_map, self.settings.symmetry, self.settings.brush_size, digger.x, digger.y)

    def _central_attractor(
        self, rng: GameRNG, build_data: BuilderMap, center: Position
    ) -> None:
        game_map = build_data.map
        digger = self._random_interior(rng, build_data)
        prev = digger
        # The first point of the line is the digger itself.
        for point in line2d(digger.x, digger.y, center.x, center.y)[1:]:
            if game_map.tiles[game_map.xy_idx(*digger)] != TILE_ID_WALL:
                break
            prev = digger
            digger = point
        paint(game_map, self.settings.symmetry, self.settings.brush_size, prev.x, prev.y)

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        center = Position(game_map.width // 2, game_map.height // 2)
        start_idx = game_map.xy_idx(*center)
        build_data.take_snapshot()
        seed_cells = (
            start_idx,
            start_idx - 1,
            start_idx + 1,
            start_idx - game_map.width,
            start_idx + game_map.width,
        )
        for idx in seed_cells:
            game_map.tiles[idx] = TILE_ID_FLOOR
        build_data.starting_position = center

        desired_floor_tiles = int(self.settings.floor_percent * game_map.size)
        max_steps = game_map.size * WALKER_STEP_FACTOR
        walkers = 0
        while game_map.floor_count() < desired_floor_tiles and walkers < self.max_walkers:
            algorithm = self.settings.algorithm
            if algorithm is DLAAlgorithm.WALK_INWARDS:
                self._walk_inwards(rng, build_data, max_steps)
            elif algorithm is DLAAlgorithm.WALK_OUTWARDS:
                self._walk_outwards(rng, build_data, center, max_steps)
            else:
                self._central_attractor(rng, build_data, center)
            walkers += 1
            build_data.take_snapshot()

        cull_from_start(build_data, type(self).__name__)
        log.info(
            "DLA growth finished",
            algorithm=self.settings.algorithm.name,
            walkers=walkers,
            floor=game_map.floor_count(),
        )
