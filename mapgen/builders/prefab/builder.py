# mapgen/builders/prefab/builder.py
from enum import Enum, auto
from pathlib import Path
from typing import Dict, Final, List, Optional, Sequence, Set, Union

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder, MetaMapBuilder
from mapgen.builders.meta.cull import cull_from_start, start_near
from mapgen.builders.prefab.levels import (
    MASTER_VAULT_LIST,
    HorizontalPlacement,
    PrefabLevel,
    PrefabRoom,
    PrefabSection,
    VerticalPlacement,
    read_ascii,
)
from mapgen.builders.prefab.rex import TRANSPARENT_BG, XpFile
from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import (
    TILE_ID_BRIDGE,
    TILE_ID_DOWN_STAIRS,
    TILE_ID_FLOOR,
    TILE_ID_WALL,
)
from mapgen.world.geometry import Position, Rect

log = structlog.get_logger()

GLYPH_TILES: Final[Dict[str, int]] = {
    " ": TILE_ID_FLOOR,
    "#": TILE_ID_WALL,
    ">": TILE_ID_DOWN_STAIRS,
    "~": TILE_ID_BRIDGE,
}
GLYPH_SPAWNS: Final[Dict[str, str]] = {
    "g": "Goblin",
    "o": "Orc",
    "^": "Bear Trap",
    "%": "Rations",
    "!": "Health Potion",
}
START_GLYPH: Final[str] = "@"


class PrefabMode(Enum):
    REX_LEVEL = auto()
    CONSTANT = auto()
    SECTIONAL = auto()
    ROOM_VAULTS = auto()


class PrefabBuilder(InitialMapBuilder, MetaMapBuilder):
    """Stamps hand-made content onto the map.

    Level modes (``rex_level``, ``constant``) build a whole map and work as
    initial builders. ``sectional`` and ``vaults`` decorate an existing map.
    """

    def __init__(
        self,
        mode: PrefabMode,
        level: Optional[PrefabLevel] = None,
        section: Optional[PrefabSection] = None,
        rex_image: Optional[XpFile] = None,
        vault_list: Sequence[PrefabRoom] = MASTER_VAULT_LIST,
    ):
        self.mode = mode
        self.level = level
        self.section = section
        self.rex_image = rex_image
        self.vault_list = tuple(vault_list)

    @classmethod
    def rex_level(cls, source: Union[str, Path, bytes, XpFile]) -> "PrefabBuilder":
        if isinstance(source, XpFile):
            image = source
        elif isinstance(source, bytes):
            image = XpFile.from_bytes(source)
        else:
            image = XpFile.from_path(source)
        return cls(PrefabMode.REX_LEVEL, rex_image=image)

    @classmethod
    def constant(cls, level: PrefabLevel) -> "PrefabBuilder":
        return cls(PrefabMode.CONSTANT, level=level)

    @classmethod
    def sectional(cls, section: PrefabSection) -> "PrefabBuilder":
        return cls(PrefabMode.SECTIONAL, section=section)

    @classmethod
    def vaults(cls, vault_list: Sequence[PrefabRoom] = MASTER_VAULT_LIST) -> "PrefabBuilder":
        return cls(PrefabMode.ROOM_VAULTS, vault_list=vault_list)

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        if self.mode is PrefabMode.REX_LEVEL:
            self._load_rex_map(build_data)
            self._finish_level(build_data)
        elif self.mode is PrefabMode.CONSTANT:
            self._load_ascii_map(build_data)
            self._finish_level(build_data)
        elif self.mode is PrefabMode.SECTIONAL:
            self._apply_sectional(build_data)
        else:
            self._apply_room_vaults(rng, build_data)
        build_data.take_snapshot()

    # ------------------------------------------------------------------
    # glyph handling
    # ------------------------------------------------------------------
    def _char_to_map(self, build_data: BuilderMap, ch: str, idx: int) -> None:
        game_map = build_data.map
        if ch in GLYPH_TILES:
            game_map.tiles[idx] = GLYPH_TILES[ch]
        elif ch == START_GLYPH:
            game_map.tiles[idx] = TILE_ID_FLOOR
            build_data.starting_position = Position(*game_map.idx_xy(idx))
        elif ch in GLYPH_SPAWNS:
            game_map.tiles[idx] = TILE_ID_FLOOR
            build_data.spawn_list.append((idx, GLYPH_SPAWNS[ch]))
        else:
            log.debug("Unknown glyph loading map", glyph=repr(ch), position=game_map.idx_xy(idx))

    def _stamp(self, build_data: BuilderMap, rows: List[str], x0: int, y0: int) -> None:
        game_map = build_data.map
        for ty, row in enumerate(rows):
            for tx, ch in enumerate(row):
                x, y = x0 + tx, y0 + ty
                if 0 < x < game_map.width - 1 and 0 < y < game_map.height - 1:
                    self._char_to_map(build_data, ch, game_map.xy_idx(x, y))

    # ------------------------------------------------------------------
    # whole levels
    # ------------------------------------------------------------------
    def _load_rex_map(self, build_data: BuilderMap) -> None:
        game_map = build_data.map
        for layer_number, layer in enumerate(self.rex_image.layers):
            glyphs = layer.glyphs()
            backgrounds = layer.cells["bg"].reshape(layer.width, layer.height, 3)
            for y in range(min(layer.height, game_map.height)):
                for x in range(min(layer.width, game_map.width)):
                    if layer_number > 0 and tuple(backgrounds[x, y]) == TRANSPARENT_BG:
                        continue
                    code = int(glyphs[y, x])
                    if not 0 <= code < 0x110000:
                        log.debug("Glyph code out of range", code=code, position=(x, y))
                        continue
                    self._char_to_map(build_data, chr(code), game_map.xy_idx(x, y))

    def _load_ascii_map(self, build_data: BuilderMap) -> None:
        game_map = build_data.map
        rows = read_ascii(self.level.template, self.level.width, self.level.height)
        for y, row in enumerate(rows[: game_map.height]):
            for x, ch in enumerate(row[: game_map.width]):
                self._char_to_map(build_data, ch, game_map.xy_idx(x, y))

    def _finish_level(self, build_data: BuilderMap) -> None:
        game_map = build_data.map
        if build_data.starting_position is None:
            start_x, y = game_map.width // 2, game_map.height // 2
            x = start_x
            while not game_map.is_walkable(x, y):
                x -= 1
                if x < 0:
                    log.error("Prefab start scan reached the map edge", row=y, from_x=start_x)
                    raise GenerationFailedError(
                        f"No walkable cell left of ({start_x}, {y}) to start on"
                    )
            build_data.starting_position = Position(x, y)
        build_data.take_snapshot()
        cull_from_start(build_data, type(self).__name__)
        log.info("Prefab level loaded", mode=self.mode.name, start=build_data.starting_position)

    # ------------------------------------------------------------------
    # decorations
    # ------------------------------------------------------------------
    def _apply_sectional(self, build_data: BuilderMap) -> None:
        section = self.section
        game_map = build_data.map
        horizontal, vertical = section.placement
        if horizontal is HorizontalPlacement.LEFT:
            chunk_x = 0
        elif horizontal is HorizontalPlacement.CENTER:
            chunk_x = game_map.width // 2 - section.width // 2
        else:
            chunk_x = (game_map.width - 1) - section.width
        if vertical is VerticalPlacement.TOP:
            chunk_y = 0
        elif vertical is VerticalPlacement.CENTER:
            chunk_y = game_map.height // 2 - section.height // 2
        else:
            chunk_y = (game_map.height - 1) - section.height

        area = Rect(chunk_x, chunk_y, chunk_x + section.width - 1, chunk_y + section.height - 1)
        build_data.spawn_list[:] = [
            spawn for spawn in build_data.spawn_list
            if not area.contains(*game_map.idx_xy(spawn[0]))
        ]
        rows = read_ascii(section.template, section.width, section.height)
        self._stamp(build_data, rows, chunk_x, chunk_y)
        log.info("Prefab section applied", position=(chunk_x, chunk_y), size=(section.width, section.height))
        start = build_data.starting_position
        if start is not None:
            if not game_map.is_walkable(start.x, start.y):
                moved = start_near(build_data, start.x, start.y)
                log.debug("Start walled in by section, moved", old=start, new=moved)
            cull_from_start(build_data, type(self).__name__)

    def _vault_positions(self, build_data: BuilderMap, vault: PrefabRoom, used: Set[int]) -> List[Position]:
        """Top-left corners where ``vault`` fits entirely on unused floor."""
        game_map = build_data.map
        free = (game_map.tiles == TILE_ID_FLOOR)
        if used:
            free[list(used)] = False
        grid = free.reshape(game_map.height, game_map.width).astype(np.int32)
        summed = np.zeros((game_map.height + 1, game_map.width + 1), dtype=np.int32)
        summed[1:, 1:] = grid.cumsum(axis=0).cumsum(axis=1)

        vw, vh = vault.width, vault.height
        positions = []
        for y in range(2, game_map.height - 2 - vh):
            for x in range(2, game_map.width - 2 - vw):
                window = (
                    summed[y + vh, x + vw] - summed[y, x + vw] - summed[y + vh, x] + summed[y, x]
                )
                if window == vw * vh:
                    positions.append(Position(x, y))
        return positions

    def _apply_room_vaults(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        vault_roll = rng.roll_dice(1, 6) + game_map.depth
        if vault_roll < 4:
            return

        possible_vaults = [
            v for v in self.vault_list if v.first_depth <= game_map.depth <= v.last_depth
        ]
        if not possible_vaults:
            return

        n_vaults = min(rng.roll_dice(1, 3), len(possible_vaults))
        used: Set[int] = set()
        if build_data.starting_position is not None:
            used.add(game_map.xy_idx(*build_data.starting_position))

        placed = 0
        for _ in range(n_vaults):
            vault_index = 0 if len(possible_vaults) == 1 else rng.roll_dice(1, len(possible_vaults)) - 1
            vault = possible_vaults.pop(vault_index)
            positions = self._vault_positions(build_data, vault, used)
            if not positions:
                log.debug("No room for vault", size=(vault.width, vault.height))
                continue

            pos_idx = 0 if len(positions) == 1 else rng.roll_dice(1, len(positions)) - 1
            pos = positions[pos_idx]
            area = Rect(pos.x, pos.y, pos.x + vault.width - 1, pos.y + vault.height - 1)
            build_data.spawn_list[:] = [
                spawn for spawn in build_data.spawn_list
                if not area.contains(*game_map.idx_xy(spawn[0]))
            ]
            self._stamp(build_data, read_ascii(vault.template, vault.width, vault.height), pos.x, pos.y)
            for y in range(area.y1, area.y2 + 1):
                for x in range(area.x1, area.x2 + 1):
                    used.add(game_map.xy_idx(x, y))
            placed += 1
            build_data.take_snapshot()

        log.info("Room vaults placed", placed=placed, requested=n_vaults)
        if placed and build_data.starting_position is not None:
            cull_from_start(build_data, type(self).__name__)
