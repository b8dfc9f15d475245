# --- tmap_lib/store.py ---
import logging
import threading
from typing import Any, Dict, Optional

from tmap_lib.errors import NotFoundError
from tmap_lib.schema import GeneratedMap, Tile, TileAtlas

log = logging.getLogger("tmap.store")


class MemoryStore:
    """
    Holds atlases and generated maps for the lifetime of the process.

    Lookups are by exact id only. Every access goes through one lock so
    concurrent requests always read their own writes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._atlases: Dict[str, TileAtlas] = {}
        self._maps: Dict[str, GeneratedMap] = {}

    def put_atlas(self, atlas: TileAtlas) -> None:
        with self._lock:
            self._atlases[atlas.id] = atlas
        log.debug("Stored atlas %s (%d tiles).", atlas.id, len(atlas.tiles))

    def get_atlas(self, atlas_id: str) -> Optional[TileAtlas]:
        with self._lock:
            return self._atlases.get(atlas_id)

    def put_map(self, generated_map: GeneratedMap) -> None:
        with self._lock:
            self._maps[generated_map.id] = generated_map
        log.debug("Stored map %s.", generated_map.id)

    def get_map(self, map_id: str) -> Optional[GeneratedMap]:
        with self._lock:
            return self._maps.get(map_id)

    def update_tile_classification(
        self,
        atlas_id: str,
        tile_id: str,
        classification: Any,
        confidence: Optional[float] = None,
    ) -> Tile:
        """
        Manually overrides a tile's classification.

        Raises:
            NotFoundError: If the atlas or the tile does not exist.
            ValidationError: If the classification or confidence is invalid.
        """
        with self._lock:
            atlas = self._atlases.get(atlas_id)
            if atlas is None:
                raise NotFoundError("atlas", atlas_id)
            tile = atlas.find_tile(tile_id)
            if tile is None:
                raise NotFoundError("tile", tile_id)
            tile.reclassify(classification, confidence)
        log.info(
            "Tile %s in atlas %s reclassified as %s (%.2f).",
            tile_id,
            atlas_id,
            tile.classification.value,
            tile.confidence,
        )
        return tile
