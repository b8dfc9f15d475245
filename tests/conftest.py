from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from tmap_lib.schema import GridSpec, Layer, SourceRect, Tile, TileAtlas


def block_color(i):
    """A distinct, clearly non-grey colour for grid block i."""
    return ((i * 15) % 256, 255 - (i * 15) % 256, 40)


def make_grid_png(cols=4, rows=4, cell=32, overrides=None, mode="RGB"):
    """Builds an atlas image of solid-coloured blocks in row-major order."""
    overrides = overrides or {}
    img = Image.new(mode, (cols * cell, rows * cell))
    for row in range(rows):
        for col in range(cols):
            i = row * cols + col
            color = overrides.get(i, block_color(i))
            block = Image.new(mode, (cell, cell), color=color)
            img.paste(block, (col * cell, row * cell))
    byte_io = BytesIO()
    img.save(byte_io, format="PNG")
    return byte_io.getvalue()


@pytest.fixture
def atlas_png():
    return make_grid_png()


@pytest.fixture
def small_atlas():
    """A hand-built atlas with one solid 8x8 tile per class."""
    def tile(tile_id, layer, color, index):
        pixels = np.zeros((8, 8, 4), dtype=np.uint8)
        pixels[:, :] = color
        return Tile(
            id=tile_id,
            classification=layer,
            confidence=0.8,
            source_rect=SourceRect(x=index * 8, y=0, width=8, height=8),
            pixels=pixels,
        )

    tiles = [
        tile("f1", Layer.FLOOR, (0, 200, 0, 255), 0),
        tile("w1", Layer.WALL, (60, 60, 60, 255), 1),
        tile("d1", Layer.DECORATION, (200, 0, 200, 255), 2),
    ]
    return TileAtlas(
        id="atlas-1",
        name="Test Atlas",
        grid=GridSpec(cols=3, rows=1, tile_width=8, tile_height=8),
        original_width=24,
        original_height=8,
        tile_size=8,
        tiles=tiles,
    )
