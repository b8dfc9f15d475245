# --- tmap_lib/compose/seeded.py ---
"""
Seeded per-cell composition.

Every cell owns a position-seeded RNG, so a cell's outcome depends only on
(seed, x, y) and the map is reproducible for a given seed. The RNG is drawn
in a fixed order: interior-wall test, then (if the cell is not a wall and
decorations are enabled) the decoration test, then the tile pick.
"""
import logging
from typing import Callable, Dict, List

from tmap_lib.constants import ENV_CITY, ENV_DUNGEON, ENV_NATURE
from tmap_lib.schema import EnabledLayers, Layer, MapCell
from .pools import TilePools, pick_tile
from .rng import PositionRNG, create_seeded_rng

log = logging.getLogger("tmap.compose")

WallRule = Callable[[int, int, PositionRNG], bool]


def _dungeon_wall(x: int, y: int, rng: PositionRNG) -> bool:
    # Maze-like lattice
    return (x % 4 == 0 or y % 4 == 0) and rng() > 0.7


def _city_wall(x: int, y: int, rng: PositionRNG) -> bool:
    # Building corners
    return ((x % 8 == 0 and y % 8 == 0) or (x % 6 == 3 and y % 6 == 3)) and rng() > 0.5


def _nature_wall(x: int, y: int, rng: PositionRNG) -> bool:
    return rng() > 0.9


def _default_wall(x: int, y: int, rng: PositionRNG) -> bool:
    return rng() > 0.85


INTERIOR_WALL_RULES: Dict[str, WallRule] = {
    ENV_DUNGEON: _dungeon_wall,
    ENV_CITY: _city_wall,
    ENV_NATURE: _nature_wall,
}

DECORATION_THRESHOLDS: Dict[str, float] = {
    ENV_NATURE: 0.8,
    ENV_CITY: 0.9,
    ENV_DUNGEON: 0.95,
}
DEFAULT_DECORATION_THRESHOLD = 0.85


def is_perimeter(x: int, y: int, width: int, height: int) -> bool:
    return x == 0 or x == width - 1 or y == 0 or y == height - 1


def compose_cell(
    x: int,
    y: int,
    width: int,
    height: int,
    environment: str,
    seed: float,
    enabled: EnabledLayers,
    pools: TilePools,
) -> MapCell:
    rng = create_seeded_rng(seed, x, y)

    # Always evaluated so the RNG stream does not depend on the perimeter test.
    interior_wall = INTERIOR_WALL_RULES.get(environment, _default_wall)(x, y, rng)

    if enabled.walls and (is_perimeter(x, y, width, height) or interior_wall):
        layer = Layer.WALL
    elif enabled.decorations and rng() > DECORATION_THRESHOLDS.get(
        environment, DEFAULT_DECORATION_THRESHOLD
    ):
        layer = Layer.DECORATION
    elif not enabled.floors:
        return MapCell(x=x, y=y, tile_id=None, layer=Layer.FLOOR)
    else:
        layer = Layer.FLOOR

    tile_id = pick_tile(pools.any_tile_fallback(layer), rng())
    return MapCell(x=x, y=y, tile_id=tile_id, layer=layer)


def compose_seeded(
    width: int,
    height: int,
    pools: TilePools,
    environment: str,
    seed: float,
    enabled: EnabledLayers = EnabledLayers(),
) -> List[List[MapCell]]:
    log.debug(
        "Seeded composition: %dx%d env=%s seed=%s layers=%s",
        width,
        height,
        environment,
        seed,
        enabled,
    )
    return [
        [compose_cell(x, y, width, height, environment, seed, enabled, pools) for x in range(width)]
        for y in range(height)
    ]
