# --- tmap_lib/analysis/extractor.py ---
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional

from tmap_lib import imaging
from tmap_lib.errors import ProcessingError
from tmap_lib.schema import GenerationLimits, SourceRect, Tile, TileAtlas
from .classifier import classify
from .features import extract_features, is_meaningful_tile
from .grid import GridConfig, calculate_grid, tile_rects

log = logging.getLogger("tmap.extract")


class TileExtractor:
    """Slices an atlas image into tiles and classifies each one."""

    def __init__(self, limits: Optional[GenerationLimits] = None, workers: int = 1):
        self.limits = limits or GenerationLimits()
        self.workers = max(1, workers)

    def _process_cell(
        self, image: imaging.DecodedImage, row: int, col: int, rect: SourceRect, tile_size: int
    ) -> Optional[Tile]:
        """Extracts one grid cell; returns None when the cell is skipped."""
        try:
            pixels = imaging.extract_region(
                image, rect.x, rect.y, rect.width, rect.height, tile_size
            )
        except ValueError as e:
            log.warning("Failed to extract tile at %d,%d: %s", col, row, e)
            return None

        if not is_meaningful_tile(pixels):
            log.debug("Tile at %d,%d has no meaningful content; dropped.", col, row)
            return None

        features = extract_features(pixels)
        classification, confidence = classify(features)
        return Tile(
            id=str(uuid.uuid4()),
            classification=classification,
            confidence=confidence,
            source_rect=rect,
            pixels=pixels,
            features=features,
        )

    def extract(
        self,
        image_bytes: bytes,
        grid_config: Any,
        tile_size: int,
        name: Optional[str] = None,
    ) -> TileAtlas:
        """
        Runs the full pipeline on one atlas image.

        Args:
            image_bytes: The encoded source image.
            grid_config: A GridConfig or anything GridConfig.from_value accepts.
            tile_size: Edge length, in pixels, every tile is resized to.
            name: Display name for the atlas.

        Returns:
            A TileAtlas holding the meaningful tiles in row-major order.
        """
        tile_size = self.limits.check_tile_size(tile_size)
        if not isinstance(grid_config, GridConfig):
            grid_config = GridConfig.from_value(grid_config)

        image = imaging.decode(image_bytes)
        grid = calculate_grid(image.width, image.height, grid_config)
        log.info(
            "Extracting %dx%d grid (%dx%d px cells) from %dx%d image at tile size %d...",
            grid.cols,
            grid.rows,
            grid.tile_width,
            grid.tile_height,
            image.width,
            image.height,
            tile_size,
        )

        cells = list(tile_rects(grid))
        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(
                    pool.map(lambda c: self._process_cell(image, c[0], c[1], c[2], tile_size), cells)
                )
        else:
            results = [self._process_cell(image, row, col, rect, tile_size) for row, col, rect in cells]

        tiles: List[Tile] = [t for t in results if t is not None]
        if not tiles:
            raise ProcessingError("No meaningful tiles found in image.")

        counts = {}
        for tile in tiles:
            counts[tile.classification.value] = counts.get(tile.classification.value, 0) + 1
        log.info(
            "Kept %d of %d candidate tiles (%s).",
            len(tiles),
            len(cells),
            ", ".join(f"{k}={v}" for k, v in sorted(counts.items())),
        )

        return TileAtlas(
            id=str(uuid.uuid4()),
            name=name or f"Atlas-{int(time.time() * 1000)}",
            grid=grid,
            original_width=image.width,
            original_height=image.height,
            tile_size=tile_size,
            tiles=tiles,
            image_data=imaging.to_data_url(imaging.encode_png(image.pixels)),
        )


def extract_tiles(
    image_bytes: bytes,
    grid_config: Any,
    tile_size: int,
    name: Optional[str] = None,
    limits: Optional[GenerationLimits] = None,
    workers: int = 1,
) -> TileAtlas:
    """Convenience wrapper around TileExtractor.extract."""
    return TileExtractor(limits, workers).extract(image_bytes, grid_config, tile_size, name)
