# --- tmap_lib/compose/pools.py ---
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tmap_lib.schema import Layer, TileAtlas


@dataclass
class TilePools:
    """Tile ids grouped by classification, the sampling universe of a map."""

    floor: List[str] = field(default_factory=list)
    wall: List[str] = field(default_factory=list)
    decoration: List[str] = field(default_factory=list)
    all_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_atlas(cls, atlas: TileAtlas) -> "TilePools":
        pools = atlas.tiles_by_type()
        return cls(
            floor=pools[Layer.FLOOR.value],
            wall=pools[Layer.WALL.value],
            decoration=pools[Layer.DECORATION.value],
            all_ids=[t.id for t in atlas.tiles],
        )

    @classmethod
    def from_mapping(cls, mapping: Dict[str, List[str]]) -> "TilePools":
        floor = list(mapping.get(Layer.FLOOR.value, []))
        wall = list(mapping.get(Layer.WALL.value, []))
        decoration = list(mapping.get(Layer.DECORATION.value, []))
        return cls(floor=floor, wall=wall, decoration=decoration, all_ids=floor + wall + decoration)

    def get(self, layer: Layer) -> List[str]:
        return getattr(self, layer.value)

    def is_empty(self) -> bool:
        return not self.all_ids

    def any_tile_fallback(self, layer: Layer) -> List[str]:
        """The layer's pool, or every tile when that pool is empty."""
        return self.get(layer) or self.all_ids

    def floor_fallback(self, layer: Layer) -> List[str]:
        """The layer's pool, else the floor pool, else every tile."""
        return self.get(layer) or self.floor or self.all_ids

    def sizes(self) -> Dict[str, int]:
        return {layer.value: len(self.get(layer)) for layer in Layer}


def pick_tile(candidates: List[str], r: float) -> Optional[str]:
    """Uniform pick using a float in [0, 1)."""
    if not candidates:
        return None
    return candidates[min(int(r * len(candidates)), len(candidates) - 1)]
