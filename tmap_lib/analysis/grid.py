# --- tmap_lib/analysis/grid.py ---
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

from tmap_lib.constants import APP_CONFIG, COMMON_GRIDS, FALLBACK_GRID, GRID_PRESETS, GRID_TYPES
from tmap_lib.errors import InvalidGridConfig
from tmap_lib.schema import GridSpec, SourceRect

log = logging.getLogger("tmap.grid")


@dataclass(frozen=True)
class GridConfig:
    """How the caller wants an atlas partitioned: 'auto', or explicit cols/rows."""

    type: str = "auto"
    cols: Optional[int] = None
    rows: Optional[int] = None

    @classmethod
    def from_value(cls, value: Any) -> "GridConfig":
        """
        Accepts a dict ({"type": "custom", "cols": 4, "rows": 4}), its JSON
        string form, a preset token such as "8x8", or "auto"/None.
        """
        if value is None:
            return cls()
        if isinstance(value, str):
            token = value.strip().lower()
            if token == "auto":
                return cls()
            if token in GRID_PRESETS:
                cols, rows = GRID_PRESETS[token]
                return cls(type="preset", cols=cols, rows=rows)
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                raise InvalidGridConfig(
                    f"Unrecognised grid configuration: {value!r}", field="gridConfig"
                ) from None
        if not isinstance(value, dict):
            raise InvalidGridConfig("Grid configuration must be an object.", field="gridConfig")

        grid_type = value.get("type")
        if grid_type not in GRID_TYPES:
            raise InvalidGridConfig(
                f"Grid type must be one of {', '.join(GRID_TYPES)}.", field="gridConfig.type"
            )
        config = cls(type=grid_type, cols=value.get("cols"), rows=value.get("rows"))
        config.validate()
        return config

    def validate(self) -> None:
        if self.type == "auto":
            return
        max_cells = APP_CONFIG["MAX_GRID_CELLS"]
        for name in ("cols", "rows"):
            count = getattr(self, name)
            if isinstance(count, bool) or not isinstance(count, int):
                raise InvalidGridConfig(
                    f"A {self.type} grid needs an integer '{name}'.", field=f"gridConfig.{name}"
                )
            if not 1 <= count <= max_cells:
                raise InvalidGridConfig(
                    f"'{name}' must be between 1 and {max_cells}.", field=f"gridConfig.{name}"
                )


def detect_optimal_grid(
    width: int,
    height: int,
    min_tile: int = APP_CONFIG["MIN_TILE_SIZE"],
    max_tile: int = APP_CONFIG["MAX_TILE_SIZE"],
) -> GridSpec:
    """Picks the first common grid with in-range tile sizes that divides the image exactly."""
    for cols, rows in COMMON_GRIDS:
        tile_w = width / cols
        tile_h = height / rows
        if not (min_tile <= tile_w <= max_tile and min_tile <= tile_h <= max_tile):
            continue
        if width % cols == 0 and height % rows == 0:
            log.info(
                "Auto-detected grid: %dx%d (tile size: %dx%d)", cols, rows, tile_w, tile_h
            )
            return GridSpec(cols=cols, rows=rows, tile_width=width // cols, tile_height=height // rows)

    cols, rows = FALLBACK_GRID
    log.info("No clean grid fit for %dx%d; falling back to %dx%d.", width, height, cols, rows)
    return GridSpec(cols=cols, rows=rows, tile_width=width // cols, tile_height=height // rows)


def calculate_grid(width: int, height: int, config: GridConfig) -> GridSpec:
    if config.type == "auto":
        grid = detect_optimal_grid(width, height)
    else:
        config.validate()
        grid = GridSpec(
            cols=config.cols,
            rows=config.rows,
            tile_width=width // config.cols,
            tile_height=height // config.rows,
        )
    if grid.tile_width <= 0 or grid.tile_height <= 0:
        raise InvalidGridConfig(
            f"A {grid.cols}x{grid.rows} grid leaves no pixels per tile on a "
            f"{width}x{height} image.",
            field="gridConfig",
        )
    log.debug("Using grid %s for %dx%d image.", grid, width, height)
    return grid


def tile_rects(grid: GridSpec) -> Iterator[Tuple[int, int, SourceRect]]:
    """Yields (row, col, rect) in row-major order."""
    for row in range(grid.rows):
        for col in range(grid.cols):
            yield row, col, SourceRect(
                x=col * grid.tile_width,
                y=row * grid.tile_height,
                width=grid.tile_width,
                height=grid.tile_height,
            )
