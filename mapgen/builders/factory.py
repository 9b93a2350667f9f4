# mapgen/builders/factory.py
"""Ready-made builder chains.

``level_builder`` picks the chain for a depth: the town on the surface,
``random_builder`` below it, which rolls a whole chain the way a normal
dungeon level is made. ``named_builder`` builds a fixed chain around one
registered algorithm, which is what the command line and the tests use.
"""
from pathlib import Path
from typing import Callable, Dict, Final, List, NamedTuple, Optional, Tuple, Union

import structlog

from game_rng import GameRNG
from mapgen.builders.bsp import BspDungeonBuilder, BspInteriorBuilder
from mapgen.builders.cellular_automata import CellularAutomataBuilder
from mapgen.builders.chain import BuilderChain, InitialMapBuilder, MetaMapBuilder
from mapgen.builders.dla import DLABuilder
from mapgen.builders.drunkard import DrunkardsWalkBuilder
from mapgen.builders.maze import MazeBuilder
from mapgen.builders.meta.area_points import AreaStartingPosition, XStart, YStart
from mapgen.builders.meta.corridors import (
    BspCorridors,
    DoglegCorridors,
    NearestCorridors,
    StraightLineCorridors,
)
from mapgen.builders.meta.cull import CullUnreachable
from mapgen.builders.meta.doors import DoorPlacement
from mapgen.builders.meta.exits import CandidateExit, DistantExit
from mapgen.builders.meta.region_spawning import CorridorSpawner, VoronoiSpawning
from mapgen.builders.meta.room_based import (
    RoomBasedSpawner,
    RoomBasedStairs,
    RoomBasedStartingPosition,
)
from mapgen.builders.meta.rooms import (
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSort,
    RoomSorter,
)
from mapgen.builders.prefab.builder import PrefabBuilder
from mapgen.builders.prefab.levels import GUARD_BARRACKS, GUARD_POST
from mapgen.builders.simple_map import SimpleMapBuilder
from mapgen.builders.town import TownBuilder
from mapgen.builders.voronoi import VoronoiCellBuilder
from mapgen.builders.wfc.builder import DEFAULT_MAX_RETRIES, WaveFunctionCollapseBuilder
from mapgen.errors import BuilderConfigurationError

log = structlog.get_logger()

ROOMS: Final[str] = "rooms"
SHAPE: Final[str] = "shape"
CANDIDATE: Final[str] = "candidate"
LEVEL: Final[str] = "level"


class BuilderEntry(NamedTuple):
    """A registered starting algorithm and the kind of chain it needs."""
    factory: Callable[[], InitialMapBuilder]
    family: str


INITIAL_BUILDERS: Final[Dict[str, BuilderEntry]] = {
    "simple_map": BuilderEntry(SimpleMapBuilder, ROOMS),
    "bsp_dungeon": BuilderEntry(BspDungeonBuilder, ROOMS),
    "bsp_interior": BuilderEntry(BspInteriorBuilder, ROOMS),
    "cellular_automata": BuilderEntry(CellularAutomataBuilder, CANDIDATE),
    "drunkard_open_area": BuilderEntry(DrunkardsWalkBuilder.open_area, CANDIDATE),
    "drunkard_open_halls": BuilderEntry(DrunkardsWalkBuilder.open_halls, CANDIDATE),
    "drunkard_winding_passages": BuilderEntry(DrunkardsWalkBuilder.winding_passages, CANDIDATE),
    "drunkard_fat_passages": BuilderEntry(DrunkardsWalkBuilder.fat_passages, CANDIDATE),
    "drunkard_fearful_symmetry": BuilderEntry(DrunkardsWalkBuilder.fearful_symmetry, CANDIDATE),
    "drunkard_wandering_tunnels": BuilderEntry(DrunkardsWalkBuilder.wandering_tunnels, CANDIDATE),
    "maze": BuilderEntry(MazeBuilder, CANDIDATE),
    "dla_walk_inwards": BuilderEntry(DLABuilder.walk_inwards, SHAPE),
    "dla_walk_outwards": BuilderEntry(DLABuilder.walk_outwards, SHAPE),
    "dla_central_attractor": BuilderEntry(DLABuilder.central_attractor, SHAPE),
    "dla_insectoid": BuilderEntry(DLABuilder.insectoid, SHAPE),
    "dla_heavy_erosion": BuilderEntry(DLABuilder.heavy_erosion, SHAPE),
    "voronoi_pythagoras": BuilderEntry(VoronoiCellBuilder.pythagoras, SHAPE),
    "voronoi_manhattan": BuilderEntry(VoronoiCellBuilder.manhattan, SHAPE),
    "voronoi_chebyshev": BuilderEntry(VoronoiCellBuilder.chebyshev, SHAPE),
    "wfc": BuilderEntry(
        lambda: WaveFunctionCollapseBuilder.derived_map(CellularAutomataBuilder()), SHAPE
    ),
    "prefab_guard_barracks": BuilderEntry(lambda: PrefabBuilder.constant(GUARD_BARRACKS), LEVEL),
}
REX_LEVEL: Final[str] = "rex_level"
TOWN: Final[str] = "town"
TOWN_DEPTH: Final[int] = 1


def random_start_position(rng: GameRNG) -> Tuple[XStart, YStart]:
    x_roll = rng.roll_dice(1, 3)
    if x_roll == 1:
        x_start = XStart.LEFT
    elif x_roll == 2:
        x_start = XStart.CENTER
    else:
        x_start = XStart.RIGHT

    y_roll = rng.roll_dice(1, 3)
    if y_roll == 1:
        y_start = YStart.BOTTOM
    elif y_roll == 2:
        y_start = YStart.CENTER
    else:
        y_start = YStart.TOP
    return x_start, y_start


def random_room_builder(rng: GameRNG, builder: BuilderChain) -> None:
    build_roll = rng.roll_dice(1, 3)
    if build_roll == 1:
        builder.start_with(SimpleMapBuilder(draw=False))
    elif build_roll == 2:
        builder.start_with(BspDungeonBuilder(draw=False))
    else:
        builder.start_with(BspInteriorBuilder())

    # BSP interiors carve their own rooms and doorways.
    if build_roll != 3:
        sort_roll = rng.roll_dice(1, 5)
        sort_by = (
            RoomSort.LEFTMOST,
            RoomSort.RIGHTMOST,
            RoomSort.TOPMOST,
            RoomSort.BOTTOMMOST,
            RoomSort.CENTRAL,
        )[sort_roll - 1]
        builder.with_meta(RoomSorter(sort_by))
        builder.with_meta(RoomDrawer())

        corridor_roll = rng.roll_dice(1, 4)
        if corridor_roll == 1:
            builder.with_meta(DoglegCorridors())
        elif corridor_roll == 2:
            builder.with_meta(NearestCorridors())
        elif corridor_roll == 3:
            builder.with_meta(StraightLineCorridors())
        else:
            builder.with_meta(BspCorridors())

        if rng.roll_dice(1, 2) == 1:
            builder.with_meta(CorridorSpawner())

        modifier_roll = rng.roll_dice(1, 6)
        if modifier_roll == 1:
            builder.with_meta(RoomExploder())
        elif modifier_roll == 2:
            builder.with_meta(RoomCornerRounder())

    if rng.roll_dice(1, 2) == 1:
        builder.with_meta(RoomBasedStartingPosition())
    else:
        builder.with_meta(AreaStartingPosition(*random_start_position(rng)))
    builder.with_meta(CullUnreachable())

    if rng.roll_dice(1, 2) == 1:
        builder.with_meta(RoomBasedStairs())
    else:
        builder.with_meta(DistantExit())

    if rng.roll_dice(1, 2) == 1:
        builder.with_meta(RoomBasedSpawner())
    else:
        builder.with_meta(VoronoiSpawning())


def random_shape_builder(rng: GameRNG, builder: BuilderChain) -> None:
    builder_roll = rng.roll_dice(1, 16)
    starters: List[Callable[[], InitialMapBuilder]] = [
        CellularAutomataBuilder,
        DrunkardsWalkBuilder.open_area,
        DrunkardsWalkBuilder.open_halls,
        DrunkardsWalkBuilder.winding_passages,
        DrunkardsWalkBuilder.fat_passages,
        DrunkardsWalkBuilder.fearful_symmetry,
        MazeBuilder,
        DLABuilder.walk_inwards,
        DLABuilder.walk_outwards,
        DLABuilder.central_attractor,
        DLABuilder.insectoid,
        VoronoiCellBuilder.pythagoras,
        VoronoiCellBuilder.manhattan,
    ]
    barracks = builder_roll > len(starters)
    if barracks:
        builder.start_with(PrefabBuilder.constant(GUARD_BARRACKS))
    else:
        builder.start_with(starters[builder_roll - 1]())

    builder.with_meta(AreaStartingPosition(XStart.CENTER, YStart.CENTER))
    builder.with_meta(CullUnreachable())
    builder.with_meta(AreaStartingPosition(*random_start_position(rng)))
    builder.with_meta(VoronoiSpawning())
    # The barracks template already has its stairs.
    if not barracks:
        builder.with_meta(DistantExit())


def random_builder(
    depth: int,
    rng: GameRNG,
    width: int,
    height: int,
    record_history: bool = False,
    wfc_max_retries: int = DEFAULT_MAX_RETRIES,
) -> BuilderChain:
    """Rolls a complete chain; the rolls themselves draw from ``rng``."""
    builder = BuilderChain(depth, width, height, "New Map", record_history)
    if rng.roll_dice(1, 2) == 1:
        random_room_builder(rng, builder)
    else:
        random_shape_builder(rng, builder)

    if rng.roll_dice(1, 3) == 1:
        builder.with_meta(WaveFunctionCollapseBuilder(max_retries=wfc_max_retries))
        builder.with_meta(AreaStartingPosition(*random_start_position(rng)))
        builder.with_meta(VoronoiSpawning())
        builder.with_meta(DistantExit())

    if rng.roll_dice(1, 20) == 1:
        builder.with_meta(PrefabBuilder.sectional(GUARD_POST))

    builder.with_meta(DoorPlacement())
    builder.with_meta(PrefabBuilder.vaults())
    log.info(
        "Random chain composed",
        depth=depth,
        starter=type(builder.starter).__name__,
        stages=len(builder.builders),
    )
    return builder


def town_builder(depth: int, width: int, height: int, record_history: bool = False) -> BuilderChain:
    builder = BuilderChain(depth, width, height, "Town", record_history)
    builder.start_with(TownBuilder())
    return builder


def level_builder(
    depth: int,
    rng: GameRNG,
    width: int,
    height: int,
    record_history: bool = False,
    wfc_max_retries: int = DEFAULT_MAX_RETRIES,
) -> BuilderChain:
    """Chain for the level at ``depth``: the town on top, rolled dungeon below."""
    if depth == TOWN_DEPTH:
        log.info("Town level selected", depth=depth)
        return town_builder(depth, width, height, record_history)
    return random_builder(depth, rng, width, height, record_history, wfc_max_retries)


def _family_stages(family: str) -> List[MetaMapBuilder]:
    if family == ROOMS:
        return [RoomBasedStartingPosition(), CullUnreachable(), RoomBasedStairs(), RoomBasedSpawner()]
    if family == CANDIDATE:
        return [CandidateExit(), VoronoiSpawning()]
    if family == SHAPE:
        return [
            AreaStartingPosition(XStart.CENTER, YStart.CENTER),
            CullUnreachable(),
            VoronoiSpawning(),
            DistantExit(),
        ]
    return []


def named_builder(
    name: str,
    depth: int,
    width: int,
    height: int,
    record_history: bool = False,
    wfc_max_retries: int = DEFAULT_MAX_RETRIES,
    prefab_path: Optional[Union[str, Path]] = None,
) -> BuilderChain:
    """Chain around one registered algorithm, finished with start, exit and spawns."""
    if name == TOWN:
        return town_builder(depth, width, height, record_history)
    builder = BuilderChain(depth, width, height, name, record_history)
    if name == REX_LEVEL:
        if prefab_path is None:
            log.error("REX level requested without a prefab path")
            raise BuilderConfigurationError("Algorithm 'rex_level' needs a prefab_path")
        builder.start_with(PrefabBuilder.rex_level(prefab_path))
        return builder
    entry = INITIAL_BUILDERS.get(name)
    if entry is None:
        log.error("Unknown map algorithm", algorithm=name, known=sorted(INITIAL_BUILDERS))
        raise BuilderConfigurationError(f"Unknown map algorithm: {name!r}")

    starter = entry.factory()
    if isinstance(starter, WaveFunctionCollapseBuilder):
        starter.max_retries = wfc_max_retries
    builder.start_with(starter)
    for stage in _family_stages(entry.family):
        builder.with_meta(stage)
    return builder
