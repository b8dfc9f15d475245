# --- tmap_lib/compose/structural.py ---
"""
Structural composition: each environment lays out explicit structure (rooms
and corridors, noise fields, city blocks) and then draws a tile for every
cell from the matching pool.

All randomness goes through the `random.Random` handle passed in, so a seeded
handle reproduces the same map.
"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from tmap_lib.constants import ENV_ABSTRACT, ENV_AUTO, ENV_BASIC, ENV_CITY, ENV_DUNGEON, ENV_NATURE
from tmap_lib.errors import UnknownEnvironment
from tmap_lib.schema import EnabledLayers, Layer, MapCell
from .pools import TilePools, pick_tile

log = logging.getLogger("tmap.compose")

Grid = List[List[MapCell]]

CITY_BLOCK_SIZE = 6
CITY_STREET_WIDTH = 2


class _Canvas:
    """Mutable cell grid that turns layer decisions into tile picks."""

    def __init__(
        self,
        width: int,
        height: int,
        pools: TilePools,
        rng: random.Random,
        enabled: EnabledLayers,
    ):
        self.width = width
        self.height = height
        self.pools = pools
        self.rng = rng
        self.enabled = enabled
        self.cells: List[List[Optional[MapCell]]] = [[None] * width for _ in range(height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def paint(self, x: int, y: int, layer: Layer) -> None:
        if not self.in_bounds(x, y):
            return
        if layer != Layer.FLOOR and not self.enabled.allows(layer):
            layer = Layer.FLOOR
        if layer == Layer.FLOOR and not self.enabled.floors:
            tile_id = None
        else:
            tile_id = pick_tile(self.pools.floor_fallback(layer), self.rng.random())
        self.cells[y][x] = MapCell(x=x, y=y, tile_id=tile_id, layer=layer)

    def layer_at(self, x: int, y: int) -> Optional[Layer]:
        cell = self.cells[y][x]
        return cell.layer if cell else None

    def fill(self, layer: Layer) -> None:
        for y in range(self.height):
            for x in range(self.width):
                self.paint(x, y, layer)

    def grid(self) -> Grid:
        return [list(row) for row in self.cells]


@dataclass(frozen=True)
class _Room:
    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2


def dungeon_layout(
    width: int,
    height: int,
    pools: TilePools,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    """Solid rock, carved rooms chained by L-shaped corridors, one prop per room at most."""
    canvas = _Canvas(width, height, pools, rng, enabled)
    canvas.fill(Layer.WALL)

    rooms: List[_Room] = []
    for _ in range((width * height) // 100 + 2):
        # Rooms keep a one-cell margin on every side.
        room_w = min(rng.randrange(4, 10), width - 3)
        room_h = min(rng.randrange(4, 10), height - 3)
        if room_w < 1 or room_h < 1:
            continue
        room = _Room(
            x=rng.randrange(width - room_w - 2) + 1,
            y=rng.randrange(height - room_h - 2) + 1,
            width=room_w,
            height=room_h,
        )
        for y in range(room.y, room.y + room.height):
            for x in range(room.x, room.x + room.width):
                canvas.paint(x, y, Layer.FLOOR)
        rooms.append(room)

    for prev, cur in zip(rooms, rooms[1:]):
        prev_x, prev_y = prev.center
        cur_x, cur_y = cur.center
        for x in range(min(prev_x, cur_x), max(prev_x, cur_x) + 1):
            canvas.paint(x, prev_y, Layer.FLOOR)
        for y in range(min(prev_y, cur_y), max(prev_y, cur_y) + 1):
            canvas.paint(cur_x, y, Layer.FLOOR)

    for room in rooms:
        if rng.random() < 0.7:
            deco_x = room.x + rng.randrange(max(1, room.width - 2)) + 1
            deco_y = room.y + rng.randrange(max(1, room.height - 2)) + 1
            if canvas.in_bounds(deco_x, deco_y) and canvas.layer_at(deco_x, deco_y) == Layer.FLOOR:
                canvas.paint(deco_x, deco_y, Layer.DECORATION)

    log.debug("Dungeon: carved %d rooms.", len(rooms))
    return canvas.grid()


def nature_noise(x: int, y: int) -> float:
    return math.sin(x * 0.1) * math.cos(y * 0.1) + math.sin(x * 0.05) * math.cos(y * 0.05)


def nature_layout(
    width: int,
    height: int,
    pools: TilePools,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    """Organic field: trees/rocks on noise peaks, bushes scattered on the slopes."""
    canvas = _Canvas(width, height, pools, rng, enabled)
    for y in range(height):
        for x in range(width):
            noise = nature_noise(x, y)
            if noise > 0.5:
                canvas.paint(x, y, Layer.WALL)
            elif noise > 0.2 and rng.random() < 0.3:
                canvas.paint(x, y, Layer.DECORATION)
            else:
                canvas.paint(x, y, Layer.FLOOR)
    return canvas.grid()


def city_layout(
    width: int,
    height: int,
    pools: TilePools,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    """Street floor with hollow 6x6 buildings every 8 cells; 20% of interiors furnished."""
    canvas = _Canvas(width, height, pools, rng, enabled)
    canvas.fill(Layer.FLOOR)

    step = CITY_BLOCK_SIZE + CITY_STREET_WIDTH
    last = CITY_BLOCK_SIZE - 1
    for by in range(0, height, step):
        for bx in range(0, width, step):
            for y in range(by, min(by + CITY_BLOCK_SIZE, height)):
                for x in range(bx, min(bx + CITY_BLOCK_SIZE, width)):
                    if x in (bx, bx + last) or y in (by, by + last):
                        canvas.paint(x, y, Layer.WALL)
                    elif rng.random() < 0.2:
                        canvas.paint(x, y, Layer.DECORATION)
    return canvas.grid()


def abstract_pattern(x: int, y: int) -> float:
    return math.sin(x * 0.2) * math.cos(y * 0.2) + math.sin((x + y) * 0.15)


def abstract_layout(
    width: int,
    height: int,
    pools: TilePools,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    """Two interfering sinusoid fields: walls on the crests, decorations on the slopes."""
    canvas = _Canvas(width, height, pools, rng, enabled)
    for y in range(height):
        for x in range(width):
            combined = abstract_pattern(x, y)
            if combined > 1:
                canvas.paint(x, y, Layer.WALL)
            elif combined > 0:
                canvas.paint(x, y, Layer.DECORATION)
            else:
                canvas.paint(x, y, Layer.FLOOR)
    return canvas.grid()


def basic_layout(
    width: int,
    height: int,
    pools: TilePools,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    """Border walls around a floor with roughly 10% decorations."""
    canvas = _Canvas(width, height, pools, rng, enabled)
    for y in range(height):
        for x in range(width):
            if x in (0, width - 1) or y in (0, height - 1):
                canvas.paint(x, y, Layer.WALL)
            elif rng.random() < 0.1:
                canvas.paint(x, y, Layer.DECORATION)
            else:
                canvas.paint(x, y, Layer.FLOOR)
    return canvas.grid()


Strategy = Callable[[int, int, TilePools, random.Random, EnabledLayers], Grid]

STRATEGIES: Dict[str, Strategy] = {
    ENV_DUNGEON: dungeon_layout,
    ENV_NATURE: nature_layout,
    ENV_CITY: city_layout,
    ENV_ABSTRACT: abstract_layout,
    ENV_BASIC: basic_layout,
}


def select_auto_strategy(pools: TilePools) -> str:
    """Guesses an environment from which pools the atlas can fill."""
    if pools.wall and pools.decoration:
        return ENV_NATURE
    if len(pools.wall) > len(pools.floor):
        return ENV_DUNGEON
    return ENV_ABSTRACT


def compose_structural(
    width: int,
    height: int,
    pools: TilePools,
    environment: str,
    rng: random.Random,
    enabled: EnabledLayers = EnabledLayers(),
) -> Grid:
    name = select_auto_strategy(pools) if environment == ENV_AUTO else environment
    strategy = STRATEGIES.get(name)
    if strategy is None:
        raise UnknownEnvironment(
            f"No structural strategy named '{name}'.", field="environmentType"
        )
    log.debug("Structural composition: %dx%d strategy=%s pools=%s", width, height, name, pools.sizes())
    return strategy(width, height, pools, rng, enabled)
