# --- tmap_lib/schema.py ---
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from tmap_lib import imaging
from tmap_lib.constants import APP_CONFIG, DISCIPLINE_SEEDED, ERROR_MESSAGES
from tmap_lib.errors import ValidationError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Layer(str, Enum):
    """The role a tile plays: also the layer a map cell is drawn on."""

    FLOOR = "floor"
    WALL = "wall"
    DECORATION = "decoration"

    @classmethod
    def parse(cls, value: Any, field_name: str = "classification") -> "Layer":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise ValidationError(
                f"Invalid classification type: {value!r}", field=field_name
            ) from None


@dataclass(frozen=True)
class SourceRect:
    """Pixel rectangle of a tile inside its atlas image."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class RGB:
    r: float
    g: float
    b: float


@dataclass(frozen=True)
class TileFeatures:
    """Pixel statistics of one tile, as consumed by the classifier."""

    dominant_color: RGB  # channel-wise mean, not a mode
    brightness: float
    variance: float
    edges: int
    has_transparency: bool
    color_complexity: int


@dataclass
class Tile:
    """A single tile sliced from an atlas."""

    id: str
    classification: Layer
    confidence: float
    source_rect: SourceRect
    pixels: Optional[np.ndarray] = field(default=None, repr=False, compare=False)
    features: Optional[TileFeatures] = field(default=None, repr=False, compare=False)

    def reclassify(self, classification: Any, confidence: Optional[float] = None) -> None:
        """Manual override of the heuristic classification."""
        layer = Layer.parse(classification)
        if confidence is None:
            confidence = 1.0
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ValidationError("Confidence must be a number.", field="confidence")
        self.classification = layer
        self.confidence = min(1.0, max(0.0, float(confidence)))


@dataclass(frozen=True)
class GridSpec:
    cols: int
    rows: int
    tile_width: int
    tile_height: int


@dataclass
class TileAtlas:
    """The tiles extracted from one source image, in (row, col) scan order."""

    id: str
    name: str
    grid: GridSpec
    original_width: int
    original_height: int
    tile_size: int
    tiles: List[Tile]
    image_data: str = field(default="", repr=False)
    created_at: datetime = field(default_factory=_now)

    def find_tile(self, tile_id: str) -> Optional[Tile]:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None

    def tiles_by_type(self) -> Dict[str, List[str]]:
        pools = {layer.value: [] for layer in Layer}
        for tile in self.tiles:
            pools[tile.classification.value].append(tile.id)
        return pools


@dataclass(frozen=True)
class GenerationLimits:
    """Inclusive bounds enforced on caller-supplied sizes."""

    min_tile_size: int = APP_CONFIG["MIN_TILE_SIZE"]
    max_tile_size: int = APP_CONFIG["MAX_TILE_SIZE"]
    min_map_size: int = APP_CONFIG["MIN_MAP_SIZE"]
    max_map_size: int = APP_CONFIG["MAX_MAP_SIZE"]

    def check_tile_size(self, tile_size: Any, field_name: str = "tileSize") -> int:
        if isinstance(tile_size, bool) or not isinstance(tile_size, int):
            raise ValidationError("Tile size must be an integer.", field=field_name)
        if not self.min_tile_size <= tile_size <= self.max_tile_size:
            raise ValidationError(
                ERROR_MESSAGES["INVALID_TILE_SIZE"].format(
                    min=self.min_tile_size, max=self.max_tile_size
                ),
                field=field_name,
            )
        return tile_size


@dataclass(frozen=True)
class EnabledLayers:
    floors: bool = True
    walls: bool = True
    decorations: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EnabledLayers":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("enabledLayers must be an object.", field="enabledLayers")
        values = {}
        for key in ("floors", "walls", "decorations"):
            value = data.get(key, True)
            if not isinstance(value, bool):
                raise ValidationError(
                    f"enabledLayers.{key} must be a boolean.", field=f"enabledLayers.{key}"
                )
            values[key] = value
        return cls(**values)

    def allows(self, layer: Layer) -> bool:
        return {
            Layer.FLOOR: self.floors,
            Layer.WALL: self.walls,
            Layer.DECORATION: self.decorations,
        }[layer]


def _require_int(data: Dict[str, Any], key: str, required: bool = True) -> Optional[int]:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError(f"Missing required field '{key}'.", field=key)
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{key}' must be an integer.", field=key)
    return value


def _parse_tiles_by_type(data: Any) -> Optional[Dict[str, List[str]]]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValidationError("tilesByType must be an object.", field="tilesByType")
    pools = {}
    for key, ids in data.items():
        layer = Layer.parse(key, field_name="tilesByType")
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValidationError(
                f"tilesByType.{key} must be a list of tile ids.", field=f"tilesByType.{key}"
            )
        pools[layer.value] = list(ids)
    return pools


@dataclass
class MapGenerationParams:
    width: int
    height: int
    tile_size: int
    environment_type: str
    atlas_id: Optional[str] = None
    seed: Optional[int] = None
    enabled_layers: EnabledLayers = field(default_factory=EnabledLayers)
    tiles_by_type: Optional[Dict[str, List[str]]] = None
    discipline: str = DISCIPLINE_SEEDED
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapGenerationParams":
        """Builds params from the camelCase request body of the HTTP API."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        env = data.get("environmentType")
        if not isinstance(env, str):
            raise ValidationError(
                "Missing required field 'environmentType'.", field="environmentType"
            )
        atlas_id = data.get("atlasId")
        if atlas_id is not None and not isinstance(atlas_id, str):
            raise ValidationError("'atlasId' must be a string.", field="atlasId")
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValidationError("'name' must be a string.", field="name")
        discipline = data.get("discipline", DISCIPLINE_SEEDED)
        if not isinstance(discipline, str):
            raise ValidationError("'discipline' must be a string.", field="discipline")
        return cls(
            width=_require_int(data, "width"),
            height=_require_int(data, "height"),
            tile_size=_require_int(data, "tileSize"),
            environment_type=env,
            atlas_id=atlas_id,
            seed=_require_int(data, "seed", required=False),
            enabled_layers=EnabledLayers.from_dict(data.get("enabledLayers")),
            tiles_by_type=_parse_tiles_by_type(data.get("tilesByType")),
            discipline=discipline,
            name=name,
        )


@dataclass(frozen=True)
class MapCell:
    x: int
    y: int
    tile_id: Optional[str]
    layer: Layer


@dataclass
class GeneratedMap:
    id: str
    name: str
    width: int
    height: int
    tile_size: int
    cells: List[List[MapCell]]
    environment_type: str
    atlas_id: Optional[str]
    created_at: datetime = field(default_factory=_now)
    seed: Optional[int] = None
    discipline: str = DISCIPLINE_SEEDED


# --- Serialization ---


def tile_to_dict(tile: Tile, include_image: bool = True) -> Dict[str, Any]:
    rect = tile.source_rect
    data = {
        "id": tile.id,
        "classification": tile.classification.value,
        "confidence": round(tile.confidence, 4),
        "metadata": {
            "sourceX": rect.x,
            "sourceY": rect.y,
            "width": rect.width,
            "height": rect.height,
        },
    }
    if include_image and tile.pixels is not None:
        data["imageData"] = imaging.to_data_url(imaging.encode_png(tile.pixels))
    return data


def atlas_to_dict(atlas: TileAtlas, include_images: bool = True) -> Dict[str, Any]:
    return {
        "id": atlas.id,
        "name": atlas.name,
        "imageData": atlas.image_data if include_images else None,
        "originalImage": {"width": atlas.original_width, "height": atlas.original_height},
        "grid": {
            "cols": atlas.grid.cols,
            "rows": atlas.grid.rows,
            "tileWidth": atlas.grid.tile_width,
            "tileHeight": atlas.grid.tile_height,
        },
        "tileSize": atlas.tile_size,
        "tiles": [tile_to_dict(t, include_images) for t in atlas.tiles],
        "createdAt": atlas.created_at.isoformat(),
    }


def map_to_dict(generated_map: GeneratedMap) -> Dict[str, Any]:
    return {
        "id": generated_map.id,
        "name": generated_map.name,
        "width": generated_map.width,
        "height": generated_map.height,
        "tileSize": generated_map.tile_size,
        "cells": [
            [
                {"x": c.x, "y": c.y, "tileId": c.tile_id, "layer": c.layer.value}
                for c in row
            ]
            for row in generated_map.cells
        ],
        "environmentType": generated_map.environment_type,
        "atlasId": generated_map.atlas_id,
        "createdAt": generated_map.created_at.isoformat(),
        "seed": generated_map.seed,
        "discipline": generated_map.discipline,
    }


def map_from_dict(data: Dict[str, Any]) -> GeneratedMap:
    cells = [
        [
            MapCell(x=c["x"], y=c["y"], tile_id=c.get("tileId"), layer=Layer.parse(c["layer"]))
            for c in row
        ]
        for row in data["cells"]
    ]
    return GeneratedMap(
        id=data["id"],
        name=data["name"],
        width=data["width"],
        height=data["height"],
        tile_size=data["tileSize"],
        cells=cells,
        environment_type=data["environmentType"],
        atlas_id=data.get("atlasId"),
        created_at=datetime.fromisoformat(data["createdAt"]),
        seed=data.get("seed"),
        discipline=data.get("discipline", DISCIPLINE_SEEDED),
    )


def save_json(data: Dict[str, Any], output_path: str) -> None:
    """
    Writes an already-serialized atlas or map dictionary to a JSON file.

    Args:
        data: The output of atlas_to_dict or map_to_dict.
        output_path: The path to the output .json file.
    """
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def load_map_json(input_path: str) -> GeneratedMap:
    """
    Deserializes a JSON file written from map_to_dict into a GeneratedMap.

    Args:
        input_path: The path to the input .json file.

    Returns:
        A GeneratedMap object representing the content of the JSON file.
    """
    with open(input_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return map_from_dict(data)
