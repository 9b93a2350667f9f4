# mapgen/builders/chain.py
"""Builder chain: one initial builder followed by ordered meta-builders.

Every stage receives the same ``BuilderMap`` and the same ``GameRNG``. The
chain owns the ``BuilderMap`` for the whole run; stages mutate it in place.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from game_rng import GameRNG
from mapgen.errors import BuilderConfigurationError, BuilderOrderingError
from mapgen.world.game_map import GameMap
from mapgen.world.geometry import Position, Rect

log = structlog.get_logger()


@dataclass
class BuilderMap:
    """Mutable state threaded through one generation run."""
    map: GameMap
    starting_position: Optional[Position] = None
    rooms: Optional[List[Rect]] = None
    corridors: Optional[List[List[int]]] = None
    noise_areas: Optional[Dict[int, List[int]]] = None
    exit_candidate: Optional[int] = None
    spawn_list: List[Tuple[int, str]] = field(default_factory=list)
    history: List[GameMap] = field(default_factory=list)
    record_history: bool = False

    @property
    def width(self) -> int:
        return self.map.width

    @property
    def height(self) -> int:
        return self.map.height

    def take_snapshot(self) -> None:
        if not self.record_history:
            return
        snapshot = self.map.copy()
        snapshot.revealed[:] = True
        self.history.append(snapshot)

    def require_rooms(self, stage: str) -> List[Rect]:
        if self.rooms is None:
            log.error("Stage requires rooms but none were built", stage=stage)
            raise BuilderOrderingError(f"{stage} requires a builder with room structures")
        return self.rooms

    def require_corridors(self, stage: str) -> List[List[int]]:
        if self.corridors is None:
            log.error("Stage requires corridors but none were built", stage=stage)
            raise BuilderOrderingError(f"{stage} only works after corridors have been created")
        return self.corridors

    def require_start(self, stage: str) -> Position:
        if self.starting_position is None:
            log.error("Stage requires a starting position", stage=stage)
            raise BuilderOrderingError(f"{stage} requires a starting position")
        return self.starting_position


class InitialMapBuilder(ABC):
    """Produces a first-draft map from an all-wall ``BuilderMap``."""

    @abstractmethod
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None: ...


class MetaMapBuilder(ABC):
    """Transforms an already produced ``BuilderMap`` in place."""

    @abstractmethod
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None: ...


class BuilderChain:
    def __init__(
        self,
        depth: int,
        width: int,
        height: int,
        name: str = "New Map",
        record_history: bool = False,
    ):
        self.depth = depth
        self.starter: Optional[InitialMapBuilder] = None
        self.builders: List[MetaMapBuilder] = []
        self.build_data = BuilderMap(
            map=GameMap(width, height, depth, name), record_history=record_history
        )
        self._built = False

    def start_with(self, starter: InitialMapBuilder) -> "BuilderChain":
        if self.starter is not None:
            log.error(
                "Second starting builder rejected",
                existing=type(self.starter).__name__,
                rejected=type(starter).__name__,
            )
            raise BuilderConfigurationError("You can only have one starting builder.")
        self.starter = starter
        return self

    def with_meta(self, metabuilder: MetaMapBuilder) -> "BuilderChain":
        self.builders.append(metabuilder)
        return self

    def build_map(self, rng: GameRNG) -> BuilderMap:
        if self.starter is None:
            log.error("Builder chain executed without a starting builder")
            raise BuilderConfigurationError(
                "Cannot run a map builder chain without a starting build system"
            )

        log.info(
            "Building map",
            depth=self.depth,
            width=self.build_data.width,
            height=self.build_data.height,
            starter=type(self.starter).__name__,
            meta_builders=[type(b).__name__ for b in self.builders],
        )
        self.starter.build_map(rng, self.build_data)
        for metabuilder in self.builders:
            log.debug("Running meta builder", builder=type(metabuilder).__name__)
            metabuilder.build_map(rng, self.build_data)

        self.build_data.map.populate_blocked()
        self._built = True
        log.info(
            "Map built",
            floor=self.build_data.map.floor_count(),
            start=self.build_data.starting_position,
            spawns=len(self.build_data.spawn_list),
            snapshots=len(self.build_data.history),
        )
        return self.build_data

    @property
    def map(self) -> GameMap:
        if not self._built:
            raise BuilderConfigurationError("Map requested before build_map completed")
        return self.build_data.map

    def spawn_entities(self, spawn_entity: Callable[[Position, str], object]) -> None:
        """Forwards every accumulated spawn request to ``spawn_entity``."""
        game_map = self.map
        for idx, name in self.build_data.spawn_list:
            spawn_entity(Position(*game_map.idx_xy(idx)), name)
