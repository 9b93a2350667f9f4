# mapgen/world/game_map.py
from typing import Final, List, NamedTuple, Optional, Set, Tuple

import numpy as np
import structlog

from mapgen.world.geometry import Rect

log = structlog.get_logger()

TILE_ID_FLOOR: Final[int] = 0
TILE_ID_WALL: Final[int] = 1
TILE_ID_DOWN_STAIRS: Final[int] = 2
TILE_ID_BRIDGE: Final[int] = 3
TILE_ID_GRASS: Final[int] = 4
TILE_ID_SHALLOW_WATER: Final[int] = 5
TILE_ID_DEEP_WATER: Final[int] = 6
TILE_ID_WOOD_FLOOR: Final[int] = 7
TILE_ID_ROAD: Final[int] = 8
TILE_ID_GRAVEL: Final[int] = 9


class TileType(NamedTuple):
    name: str
    walkable: bool
    transparent: bool
    glyph: str


TILE_TYPES: Final[dict[int, TileType]] = {
    TILE_ID_FLOOR: TileType(name="floor", walkable=True, transparent=True, glyph="."),
    TILE_ID_WALL: TileType(name="wall", walkable=False, transparent=False, glyph="#"),
    TILE_ID_DOWN_STAIRS: TileType(
        name="down_stairs", walkable=True, transparent=True, glyph=">"
    ),
    TILE_ID_BRIDGE: TileType(name="bridge", walkable=True, transparent=True, glyph="="),
    # Outdoor terrain used by the town level.
    TILE_ID_GRASS: TileType(name="grass", walkable=True, transparent=True, glyph='"'),
    TILE_ID_SHALLOW_WATER: TileType(
        name="shallow_water", walkable=True, transparent=True, glyph="~"
    ),
    TILE_ID_DEEP_WATER: TileType(name="deep_water", walkable=False, transparent=True, glyph="≈"),
    TILE_ID_WOOD_FLOOR: TileType(name="wood_floor", walkable=True, transparent=True, glyph="_"),
    TILE_ID_ROAD: TileType(name="road", walkable=True, transparent=True, glyph=":"),
    TILE_ID_GRAVEL: TileType(name="gravel", walkable=True, transparent=True, glyph=";"),
}

_WALKABLE_LUT: Final[np.ndarray] = np.zeros(256, dtype=bool)
for _tile_id, _tile_type in TILE_TYPES.items():
    _WALKABLE_LUT[_tile_id] = _tile_type.walkable


def tile_walkable(tile_id: int) -> bool:
    tile_type = TILE_TYPES.get(int(tile_id))
    return tile_type is not None and tile_type.walkable


def walkable_mask(tiles: np.ndarray) -> np.ndarray:
    """Boolean array, True where the tile id is walkable."""
    return _WALKABLE_LUT[tiles]


class GameMap:
    """The tile grid every builder mutates.

    All per-cell arrays are flat and indexed through :meth:`xy_idx`, so
    ``tiles[map.xy_idx(x, y)]`` and ``map.grid[y, x]`` always agree.
    """

    def __init__(self, width: int, height: int, depth: int = 1, name: str = "New Map"):
        if width < 3 or height < 3:
            raise ValueError(f"Map must be at least 3x3, got {width}x{height}")
        self.width: int = width
        self.height: int = height
        self.depth: int = depth
        self.name: str = name
        size = width * height
        self.tiles: np.ndarray = np.full(size, TILE_ID_WALL, dtype=np.uint8)
        self.revealed: np.ndarray = np.zeros(size, dtype=bool)
        self.visible: np.ndarray = np.zeros(size, dtype=bool)
        self.blocked: np.ndarray = np.zeros(size, dtype=bool)
        self.rooms: Optional[List[Rect]] = None
        self.bloodstains: Set[int] = set()
        self.view_blocked: Set[int] = set()
        self.tile_content: List[list] = [[] for _ in range(size)]
        log.debug("GameMap initialized", width=width, height=height, depth=depth)

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def grid(self) -> np.ndarray:
        """``(height, width)`` view onto ``tiles``; writes go through."""
        return self.tiles.reshape(self.height, self.width)

    def xy_idx(self, x: int, y: int) -> int:
        return y * self.width + x

    def idx_xy(self, idx: int) -> Tuple[int, int]:
        return idx % self.width, idx // self.width

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_walkable(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        return tile_walkable(self.tiles[self.xy_idx(x, y)])

    def walkable(self) -> np.ndarray:
        return walkable_mask(self.tiles)

    def floor_count(self) -> int:
        return int(np.count_nonzero(self.tiles == TILE_ID_FLOOR))

    def populate_blocked(self) -> None:
        self.blocked[:] = ~self.walkable()

    def clear_content_index(self) -> None:
        for content in self.tile_content:
            content.clear()

    def copy(self) -> "GameMap":
        clone = GameMap.__new__(GameMap)
        clone.width = self.width
        clone.height = self.height
        clone.depth = self.depth
        clone.name = self.name
        clone.tiles = self.tiles.copy()
        clone.revealed = self.revealed.copy()
        clone.visible = self.visible.copy()
        clone.blocked = self.blocked.copy()
        clone.rooms = list(self.rooms) if self.rooms is not None else None
        clone.bloodstains = set(self.bloodstains)
        clone.view_blocked = set(self.view_blocked)
        clone.tile_content = [list(content) for content in self.tile_content]
        return clone

    def to_ascii(self) -> str:
        glyphs = np.array(
            [TILE_TYPES[i].glyph if i in TILE_TYPES else "?" for i in range(256)]
        )
        rows = glyphs[self.grid]
        return "\n".join("".join(row) for row in rows)
