# --- tmap_lib/rendering.py ---
import logging
from typing import List, Optional

import numpy as np

from tmap_lib import imaging
from tmap_lib.constants import APP_CONFIG, ERROR_MESSAGES
from tmap_lib.errors import NotFoundError, ValidationError
from tmap_lib.schema import GeneratedMap, Layer, TileAtlas

log = logging.getLogger("tmap.render")

LAYER_CHARS = {Layer.WALL: "#", Layer.FLOOR: ".", Layer.DECORATION: "*"}


class ASCIIRenderer:
    """Renders a text preview of a generated map for debugging."""

    def __init__(self, with_rulers: bool = False):
        self.canvas: List[List[str]] = []
        self.width = 0
        self.height = 0
        self.with_rulers = with_rulers

    def render(self, generated_map: GeneratedMap):
        self.width = generated_map.width
        self.height = generated_map.height
        self.canvas = [
            [LAYER_CHARS[cell.layer] if cell.tile_id is not None else " " for cell in row]
            for row in generated_map.cells
        ]

    def get_output(self) -> str:
        if not self.canvas:
            return ""
        if not self.with_rulers:
            return "\n".join("".join(row) for row in self.canvas)

        RULER_WIDTH = 4
        tens = [" "] * self.width
        units = [" "] * self.width
        for x in range(self.width):
            s_x = str(x)
            if len(s_x) >= 2:
                tens[x] = s_x[-2]
            units[x] = s_x[-1]
        ruler_prefix = " " * RULER_WIDTH
        output_lines = [ruler_prefix + "".join(tens), ruler_prefix + "".join(units)]
        for y, row in enumerate(self.canvas):
            output_lines.append(f"{y:>{RULER_WIDTH - 1}} " + "".join(row))
        return "\n".join(output_lines)


def render_ascii(generated_map: GeneratedMap, with_rulers: bool = False) -> str:
    renderer = ASCIIRenderer(with_rulers=with_rulers)
    renderer.render(generated_map)
    return renderer.get_output()


def render_map_png(
    generated_map: GeneratedMap,
    atlas: Optional[TileAtlas],
    max_pixels: int = APP_CONFIG["MAX_RENDER_PIXELS"],
) -> bytes:
    """
    Composites a generated map into a PNG using its atlas's tile pixels.

    Cells without a tile stay transparent. Tiles are resized with
    nearest-neighbour when the atlas was sliced at a different tile size.

    Raises:
        NotFoundError: If the atlas is missing or a cell references an
            unknown tile id.
        ValidationError: If the image would exceed `max_pixels`.
    """
    if atlas is None:
        raise NotFoundError("atlas", generated_map.atlas_id or "<none>")

    size = generated_map.tile_size
    out_w, out_h = generated_map.width * size, generated_map.height * size
    if out_w * out_h > max_pixels:
        raise ValidationError(
            ERROR_MESSAGES["RENDER_TOO_LARGE"].format(width=out_w, height=out_h, max=max_pixels),
            field="tileSize",
        )
    canvas = np.zeros((out_h, out_w, 4), dtype=np.uint8)
    cache = {}
    for row in generated_map.cells:
        for cell in row:
            if cell.tile_id is None:
                continue
            pixels = cache.get(cell.tile_id)
            if pixels is None:
                tile = atlas.find_tile(cell.tile_id)
                if tile is None or tile.pixels is None:
                    raise NotFoundError("tile", cell.tile_id)
                pixels = imaging.resize_nearest(tile.pixels, size)
                cache[cell.tile_id] = pixels
            y0, x0 = cell.y * size, cell.x * size
            canvas[y0 : y0 + size, x0 : x0 + size] = pixels

    log.info(
        "Rendered map %s to %dx%d PNG from %d distinct tiles.",
        generated_map.id,
        canvas.shape[1],
        canvas.shape[0],
        len(cache),
    )
    return imaging.encode_png(canvas)
