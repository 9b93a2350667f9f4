# mapgen/builders/bsp.py
"""Binary space partition builders.

Both variants split the map interior recursively, alternating the split axis
at every level. The dungeon variant places one inset room per leaf; the
interior variant turns each leaf into a room, leaving a single wall between
neighbouring leaves, which suits building interiors.
"""
from typing import Final, Iterator, List, Optional, Union

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import GameMap
from mapgen.world.geometry import Rect
from mapgen.world.paint import apply_room_to_map, carve_l_tunnel, draw_corridor

log = structlog.get_logger()

# --- Configuration ---
DUNGEON_MIN_LEAF_SIZE: Final[int] = 8
INTERIOR_MIN_LEAF_SIZE: Final[int] = 4
ROOM_MIN_SIZE: Final[int] = 3
MAX_BSP_DEPTH: Final[int] = 10


class BSPNode:
    """A node in the BSP tree. ``rect`` bounds are inclusive cell ranges."""

    def __init__(self, rect: Rect):
        self.rect: Rect = rect
        self.left: Union["BSPNode", None] = None
        self.right: Union["BSPNode", None] = None
        self.room: Union[Rect, None] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def get_leaves(self) -> Iterator["BSPNode"]:
        if self.is_leaf:
            yield self
        else:
            if self.left:
                yield from self.left.get_leaves()
            if self.right:
                yield from self.right.get_leaves()

    def get_room(self) -> Union[Rect, None]:
        if self.room:
            return self.room
        room = None
        if self.left:
            room = self.left.get_room()
        if not room and self.right:
            room = self.right.get_room()
        return room


def _span(rect: Rect, horizontal: bool) -> int:
    return rect.y2 - rect.y1 + 1 if horizontal else rect.x2 - rect.x1 + 1


def split_node_recursive(
    node: BSPNode,
    rng: GameRNG,
    split_horizontally: bool,
    min_leaf_size: int,
    gap: int = 0,
    depth: int = 0,
) -> bool:
    """Splits ``node`` and its children. Returns True if ``node`` was split.

    A horizontal split divides along y. ``gap`` cells between the halves are
    left out of both children.
    """
    if depth >= MAX_BSP_DEPTH:
        log.debug("Split aborted: Max depth reached", depth=depth)
        return False

    min_required = min_leaf_size * 2 + gap
    if _span(node.rect, split_horizontally) < min_required:
        # Alternate when possible, but fall back to the other axis before giving up.
        split_horizontally = not split_horizontally
        if _span(node.rect, split_horizontally) < min_required:
            log.debug("Split aborted: Node too small", rect=node.rect, depth=depth)
            return False

    x1, y1, x2, y2 = node.rect
    if split_horizontally:
        split_y = rng.get_int(y1 + min_leaf_size, y2 - gap - min_leaf_size + 1)
        node.left = BSPNode(Rect(x1, y1, x2, split_y - 1))
        node.right = BSPNode(Rect(x1, split_y + gap, x2, y2))
    else:
        split_x = rng.get_int(x1 + min_leaf_size, x2 - gap - min_leaf_size + 1)
        node.left = BSPNode(Rect(x1, y1, split_x - 1, y2))
        node.right = BSPNode(Rect(split_x + gap, y1, x2, y2))
    log.debug(
        "Split node",
        depth=depth,
        horizontal=split_horizontally,
        left_rect=node.left.rect,
        right_rect=node.right.rect,
    )

    split_node_recursive(
        node.left, rng, not split_horizontally, min_leaf_size, gap, depth + 1
    )
    split_node_recursive(
        node.right, rng, not split_horizontally, min_leaf_size, gap, depth + 1
    )
    return True


def _partition(game_map: GameMap, rng: GameRNG, min_leaf_size: int, gap: int) -> BSPNode:
    root = BSPNode(Rect(1, 1, game_map.width - 2, game_map.height - 2))
    split_node_recursive(root, rng, rng.coin_flip(), min_leaf_size, gap)
    return root


def _connect_rooms(
    node: BSPNode,
    game_map: GameMap,
    rng: Optional[GameRNG],
    corridors: List[List[int]],
) -> None:
    """Joins the rooms of sibling subtrees, bottom-up.

    With an rng the join is an L tunnel of random axis order, otherwise a
    stepped ``draw_corridor``.
    """
    if node.is_leaf:
        return
    if node.left:
        _connect_rooms(node.left, game_map, rng, corridors)
    if node.right:
        _connect_rooms(node.right, game_map, rng, corridors)

    left_room = node.left.get_room() if node.left else None
    right_room = node.right.get_room() if node.right else None
    if left_room and right_room:
        if rng is not None:
            corridors.append(
                carve_l_tunnel(
                    game_map, left_room.center, right_room.center, rng.coin_flip()
                )
            )
        else:
            (lx, ly), (rx, ry) = left_room.center, right_room.center
            corridors.append(draw_corridor(game_map, lx, ly, rx, ry))
    else:
        log.debug("Skipping connection: sibling without a room", rect=node.rect)


class BspDungeonBuilder(InitialMapBuilder):
    def __init__(self, draw: bool = True, min_leaf_size: int = DUNGEON_MIN_LEAF_SIZE):
        self.draw = draw
        self.min_leaf_size = min_leaf_size

    def _create_room(self, leaf: BSPNode, rng: GameRNG) -> Optional[Rect]:
        # One cell of wall is kept on every side of the leaf.
        inner_w = leaf.rect.x2 - leaf.rect.x1 - 1
        inner_h = leaf.rect.y2 - leaf.rect.y1 - 1
        if inner_w < ROOM_MIN_SIZE or inner_h < ROOM_MIN_SIZE:
            log.debug("Skipped room creation (too small)", leaf_rect=leaf.rect)
            return None
        room_w = rng.get_int(ROOM_MIN_SIZE, inner_w)
        room_h = rng.get_int(ROOM_MIN_SIZE, inner_h)
        floor_x1 = rng.get_int(leaf.rect.x1 + 1, leaf.rect.x2 - room_w)
        floor_y1 = rng.get_int(leaf.rect.y1 + 1, leaf.rect.y2 - room_h)
        return Rect.from_size(floor_x1 - 1, floor_y1 - 1, room_w, room_h)

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        root = _partition(game_map, rng, self.min_leaf_size, gap=0)

        rooms: List[Rect] = []
        for leaf in root.get_leaves():
            leaf.room = self._create_room(leaf, rng)
            if leaf.room is None:
                continue
            rooms.append(leaf.room)
            if self.draw:
                apply_room_to_map(game_map, leaf.room)
                build_data.take_snapshot()

        if not rooms:
            log.error("BSP generation failed to create any rooms!")
            raise GenerationFailedError("BSP generation failed to create any rooms!")

        if self.draw:
            corridors: List[List[int]] = []
            _connect_rooms(root, game_map, rng, corridors)
            build_data.corridors = corridors
            build_data.take_snapshot()

        log.info("BSP dungeon rooms defined", count=len(rooms), drawn=self.draw)
        build_data.rooms = rooms
        game_map.rooms = list(rooms)


class BspInteriorBuilder(InitialMapBuilder):
    def __init__(self, min_leaf_size: int = INTERIOR_MIN_LEAF_SIZE):
        self.min_leaf_size = min_leaf_size

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        root = _partition(game_map, rng, self.min_leaf_size, gap=1)

        rooms: List[Rect] = []
        for leaf in root.get_leaves():
            # The leaf's cells are the room floor; the Rect sits one cell up-left.
            leaf.room = Rect(
                leaf.rect.x1 - 1, leaf.rect.y1 - 1, leaf.rect.x2, leaf.rect.y2
            )
            apply_room_to_map(game_map, leaf.room)
            rooms.append(leaf.room)
            build_data.take_snapshot()

        corridors: List[List[int]] = []
        _connect_rooms(root, game_map, None, corridors)
        build_data.take_snapshot()

        log.info("BSP interior rooms carved", count=len(rooms))
        build_data.rooms = rooms
        build_data.corridors = corridors
        game_map.rooms = list(rooms)
