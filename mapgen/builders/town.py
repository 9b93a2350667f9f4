# mapgen/builders/town.py
"""The surface town at the top of the dungeon.

Grass everywhere, a shoreline with piers down the west edge and a walled
town to the east. A single road runs through a gap in the town walls and
ends at the stairs down. Buildings stand on the gravel inside the walls;
each gets a door on the side facing the road and a path to the nearest
road cell. The largest buildings are the pub, temple and shops, and every
building is furnished according to its role.
"""
import math
from enum import Enum, auto
from typing import Dict, Final, Iterator, List, NamedTuple, Optional, Set, Tuple

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.meta.doors import DOOR
from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import (
    TILE_ID_BRIDGE,
    TILE_ID_DEEP_WATER,
    TILE_ID_DOWN_STAIRS,
    TILE_ID_FLOOR,
    TILE_ID_GRASS,
    TILE_ID_GRAVEL,
    TILE_ID_ROAD,
    TILE_ID_SHALLOW_WATER,
    TILE_ID_WALL,
    TILE_ID_WOOD_FLOOR,
)
from mapgen.world.geometry import Position, Rect
from mapgen.world.reachability import shortest_path

log = structlog.get_logger()

# --- Configuration ---
TOWN_WALL_X: Final[int] = 30
MIN_TOWN_WIDTH: Final[int] = 48
MIN_TOWN_HEIGHT: Final[int] = 20
MAX_BUILDINGS: Final[int] = 12
BUILDING_ATTEMPTS: Final[int] = 2000
SHALLOWS_WIDTH: Final[int] = 3


class BuildingRole(Enum):
    PUB = auto()
    TEMPLE = auto()
    BLACKSMITH = auto()
    CLOTHIER = auto()
    ALCHEMIST = auto()
    PLAYER_HOUSE = auto()
    HOVEL = auto()
    ABANDONED = auto()


# Handed out largest building first.
NAMED_ROLES: Final[Tuple[BuildingRole, ...]] = (
    BuildingRole.PUB,
    BuildingRole.TEMPLE,
    BuildingRole.BLACKSMITH,
    BuildingRole.CLOTHIER,
    BuildingRole.ALCHEMIST,
    BuildingRole.PLAYER_HOUSE,
)

FURNISHINGS: Final[Dict[BuildingRole, Tuple[str, ...]]] = {
    BuildingRole.PUB: (
        "Barkeep",
        "Shady Salesman",
        "Patron",
        "Patron",
        "Keg",
        "Table",
        "Chair",
        "Table",
        "Chair",
    ),
    BuildingRole.TEMPLE: ("Priest", "Parishioner", "Parishioner", "Chair", "Chair", "Candle", "Candle"),
    BuildingRole.BLACKSMITH: ("Blacksmith", "Anvil", "Water Trough", "Weapon Rack", "Armor Stand"),
    BuildingRole.CLOTHIER: ("Clothier", "Cabinet", "Table", "Loom", "Hide Rack"),
    BuildingRole.ALCHEMIST: ("Alchemist", "Chemistry Set", "Dead Thing", "Chair", "Table"),
    BuildingRole.PLAYER_HOUSE: ("Mom", "Bed", "Cabinet", "Chair", "Table"),
    BuildingRole.HOVEL: ("Peasant", "Bed", "Chair", "Table"),
}
ABANDONED_VERMIN: Final[str] = "Rat"


class Building(NamedTuple):
    """Footprint of one building; ``width`` and ``height`` count cells."""
    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    def cells(self) -> Iterator[Tuple[int, int]]:
        for y in range(self.y, self.y + self.height):
            for x in range(self.x, self.x + self.width):
                yield x, y

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.x + self.width - 1, self.y + self.height - 1)


def assign_roles(buildings: List[Building]) -> List[BuildingRole]:
    """Role for each building, in the order given.

    The biggest building is the pub, the next the temple, and so on down
    ``NAMED_ROLES``. Everything after that is a hovel, except the smallest,
    which is abandoned. Equal areas keep placement order.
    """
    order = sorted(range(len(buildings)), key=lambda i: buildings[i].area, reverse=True)
    roles = [BuildingRole.HOVEL] * len(buildings)
    for rank, index in enumerate(order[: len(NAMED_ROLES)]):
        roles[index] = NAMED_ROLES[rank]
    if len(buildings) > len(NAMED_ROLES):
        roles[order[-1]] = BuildingRole.ABANDONED
    return roles


class TownBuilder(InitialMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        if game_map.width < MIN_TOWN_WIDTH or game_map.height < MIN_TOWN_HEIGHT:
            log.error(
                "Map too small for the town",
                size=(game_map.width, game_map.height),
                minimum=(MIN_TOWN_WIDTH, MIN_TOWN_HEIGHT),
            )
            raise GenerationFailedError(
                f"Town needs at least {MIN_TOWN_WIDTH}x{MIN_TOWN_HEIGHT}, "
                f"got {game_map.width}x{game_map.height}"
            )

        game_map.tiles[:] = TILE_ID_GRASS
        build_data.take_snapshot()
        self._water_and_piers(rng, build_data)
        available, wall_gap_y = self._town_walls(rng, build_data)
        buildings = self._buildings(rng, build_data, available)
        if not buildings:
            log.error("No building fitted inside the town walls", attempts=BUILDING_ATTEMPTS)
            raise GenerationFailedError("Town has no buildings")
        doors = self._add_doors(rng, build_data, buildings, wall_gap_y)
        self._add_paths(build_data, doors)

        game_map.tiles[game_map.xy_idx(game_map.width - 5, wall_gap_y)] = TILE_ID_DOWN_STAIRS

        roles = assign_roles(buildings)
        pub = buildings[roles.index(BuildingRole.PUB)]
        build_data.starting_position = Position(*pub.center)
        for building, role in zip(buildings, roles):
            self._furnish(rng, build_data, building, role)

        build_data.rooms = [building.to_rect() for building in buildings]
        game_map.rooms = list(build_data.rooms)
        build_data.take_snapshot()
        log.info(
            "Town built",
            buildings=len(buildings),
            wall_gap_y=wall_gap_y,
            start=build_data.starting_position,
            spawns=len(build_data.spawn_list),
        )

    def _water_and_piers(self, rng: GameRNG, build_data: BuilderMap) -> None:
        grid = build_data.map.grid
        height = build_data.map.height
        # The shoreline follows a slow sine wave with a little noise per row.
        n = rng.roll_dice(1, 65535) / 65535
        water_width: List[int] = []
        for y in range(height):
            n_water = int(math.sin(n) * 10.0) + 14 + rng.roll_dice(1, 6)
            water_width.append(n_water)
            n += 0.1
            grid[y, :n_water] = TILE_ID_DEEP_WATER
            grid[y, n_water : n_water + SHALLOWS_WIDTH] = TILE_ID_SHALLOW_WATER
        build_data.take_snapshot()

        for _ in range(rng.roll_dice(1, 4) + 6):
            y = rng.roll_dice(1, height) - 1
            grid[y, 2 + rng.roll_dice(1, 6) : water_width[y] + 4] = TILE_ID_BRIDGE
        build_data.take_snapshot()

    def _town_walls(self, rng: GameRNG, build_data: BuilderMap) -> Tuple[Set[int], int]:
        """Walls, gravel and the road. Returns the buildable cells and the road row."""
        game_map = build_data.map
        grid = game_map.grid
        width, height = game_map.width, game_map.height
        available: Set[int] = set()
        wall_gap_y = rng.roll_dice(1, height - 8) + 5
        for y in range(1, height - 2):
            if wall_gap_y - 4 < y < wall_gap_y + 4:
                grid[y, TOWN_WALL_X:] = TILE_ID_ROAD
                continue
            grid[y, TOWN_WALL_X - 1] = TILE_ID_FLOOR
            grid[y, TOWN_WALL_X] = TILE_ID_WALL
            grid[y, width - 2] = TILE_ID_WALL
            grid[y, TOWN_WALL_X + 1 : width - 2] = TILE_ID_GRAVEL
            if 2 < y < height - 1:
                available.update(
                    game_map.xy_idx(x, y) for x in range(TOWN_WALL_X + 1, width - 2)
                )
        build_data.take_snapshot()

        grid[1, TOWN_WALL_X : width - 1] = TILE_ID_WALL
        grid[height - 2, TOWN_WALL_X : width - 1] = TILE_ID_WALL
        build_data.take_snapshot()
        return available, wall_gap_y

    def _buildings(
        self, rng: GameRNG, build_data: BuilderMap, available: Set[int]
    ) -> List[Building]:
        game_map = build_data.map
        width, height = game_map.width, game_map.height
        buildings: List[Building] = []
        for _ in range(BUILDING_ATTEMPTS):
            if len(buildings) >= MAX_BUILDINGS:
                break
            building = Building(
                rng.roll_dice(1, width - 32) + 30,
                rng.roll_dice(1, height) - 2,
                rng.roll_dice(1, 8) + 4,
                rng.roll_dice(1, 8) + 4,
            )
            if not all(
                game_map.in_bounds(x, y) and game_map.xy_idx(x, y) in available
                for x, y in building.cells()
            ):
                continue
            buildings.append(building)
            for x, y in building.cells():
                idx = game_map.xy_idx(x, y)
                game_map.tiles[idx] = TILE_ID_WOOD_FLOOR
                # Keep a gravel gap between neighbouring buildings.
                available.difference_update((idx, idx - 1, idx + 1, idx - width, idx + width))
            build_data.take_snapshot()
        if len(buildings) < MAX_BUILDINGS:
            log.warning("Town ran out of building space", placed=len(buildings), wanted=MAX_BUILDINGS)

        # Wood floor touching anything else becomes wall.
        grid = game_map.grid
        wood = grid == TILE_ID_WOOD_FLOOR
        exposed = np.zeros_like(wood)
        exposed[1:-1, 1:-1] = wood[1:-1, 1:-1] & ~(
            wood[:-2, 1:-1] & wood[2:, 1:-1] & wood[1:-1, :-2] & wood[1:-1, 2:]
        )
        window = np.zeros_like(wood)
        window[2 : height - 2, TOWN_WALL_X + 2 : width - 2] = True
        grid[exposed & window] = TILE_ID_WALL
        build_data.take_snapshot()
        return buildings

    def _add_doors(
        self,
        rng: GameRNG,
        build_data: BuilderMap,
        buildings: List[Building],
        wall_gap_y: int,
    ) -> List[int]:
        """Puts a door in the wall facing the road: north below it, south above it."""
        game_map = build_data.map
        doors: List[int] = []
        for building in buildings:
            door_x = building.x + 1 + rng.roll_dice(1, building.width - 3)
            _, cy = building.center
            door_y = building.y if cy > wall_gap_y else building.y + building.height - 1
            idx = game_map.xy_idx(door_x, door_y)
            game_map.tiles[idx] = TILE_ID_FLOOR
            build_data.spawn_list.append((idx, DOOR))
            doors.append(idx)
        build_data.take_snapshot()
        return doors

    def _add_paths(self, build_data: BuilderMap, doors: List[int]) -> None:
        game_map = build_data.map
        roads: List[int] = [int(idx) for idx in np.flatnonzero(game_map.tiles == TILE_ID_ROAD)]
        for door in doors:
            door_x, door_y = game_map.idx_xy(door)
            road_cells = np.array(roads)
            dist_sq = (road_cells % game_map.width - door_x) ** 2 + (
                road_cells // game_map.width - door_y
            ) ** 2
            destination = int(road_cells[np.argmin(dist_sq)])
            path = shortest_path(game_map, door, destination)
            if not path:
                log.debug(
                    "Door has no path to the road",
                    door=(door_x, door_y),
                    road=game_map.idx_xy(destination),
                )
                continue
            # The door cell itself stays a doorway.
            for idx in path[1:]:
                game_map.tiles[idx] = TILE_ID_ROAD
                roads.append(idx)
            build_data.take_snapshot()

    def _furnish(
        self, rng: GameRNG, build_data: BuilderMap, building: Building, role: BuildingRole
    ) -> None:
        game_map = build_data.map
        spawn_list = build_data.spawn_list
        if role is BuildingRole.ABANDONED:
            for x, y in building.cells():
                idx = game_map.xy_idx(x, y)
                if game_map.tiles[idx] == TILE_ID_WOOD_FLOOR and rng.roll_dice(1, 2) == 1:
                    spawn_list.append((idx, ABANDONED_VERMIN))
            return

        start = build_data.starting_position
        player_idx: Optional[int] = game_map.xy_idx(*start) if start is not None else None
        to_place = list(FURNISHINGS[role])
        for x, y in building.cells():
            if not to_place:
                break
            idx = game_map.xy_idx(x, y)
            if (
                game_map.tiles[idx] == TILE_ID_WOOD_FLOOR
                and idx != player_idx
                and rng.roll_dice(1, 3) == 1
            ):
                spawn_list.append((idx, to_place.pop(0)))
        if to_place:
            log.debug("Building left partly empty", role=role.name, unplaced=len(to_place))
