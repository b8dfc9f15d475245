# --- tmap_lib/compose/composer.py ---
import logging
import random
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from tmap_lib.constants import (
    DEFAULT_SEED,
    DISCIPLINE_SEEDED,
    DISCIPLINE_STRUCTURAL,
    ENVIRONMENT_TYPES,
    ERROR_MESSAGES,
)
from tmap_lib.errors import (
    AtlasNotFound,
    EmptyTilePool,
    InvalidDimensions,
    ProcessingError,
    UnknownEnvironment,
    ValidationError,
)
from tmap_lib.schema import GeneratedMap, GenerationLimits, MapCell, MapGenerationParams
from .pools import TilePools
from .rng import make_random
from .seeded import compose_seeded
from .structural import compose_structural

log = logging.getLogger("tmap.compose")

Grid = List[List[MapCell]]


def _run_seeded(
    params: MapGenerationParams, pools: TilePools, rng: Optional[random.Random]
) -> Grid:
    seed = params.seed or DEFAULT_SEED
    return compose_seeded(
        params.width, params.height, pools, params.environment_type, seed, params.enabled_layers
    )


def _run_structural(
    params: MapGenerationParams, pools: TilePools, rng: Optional[random.Random]
) -> Grid:
    if rng is None:
        rng = make_random(params.seed)
    return compose_structural(
        params.width, params.height, pools, params.environment_type, rng, params.enabled_layers
    )


DISCIPLINE_HANDLERS: Dict[
    str, Callable[[MapGenerationParams, TilePools, Optional[random.Random]], Grid]
] = {
    DISCIPLINE_SEEDED: _run_seeded,
    DISCIPLINE_STRUCTURAL: _run_structural,
}


class MapComposer:
    """
    Turns generation parameters and classified tile pools into a GeneratedMap.

    The composer reads atlases from the store it is given but never writes;
    persisting the result is left to the caller.
    """

    def __init__(self, store: Any = None, limits: Optional[GenerationLimits] = None):
        self.store = store
        self.limits = limits or GenerationLimits()

    def _check_dimension(self, value: Any, field_name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDimensions(f"'{field_name}' must be an integer.", field=field_name)
        if not self.limits.min_map_size <= value <= self.limits.max_map_size:
            raise InvalidDimensions(
                ERROR_MESSAGES["INVALID_MAP_SIZE"].format(
                    min=self.limits.min_map_size, max=self.limits.max_map_size
                ),
                field=field_name,
            )

    def validate(self, params: MapGenerationParams) -> None:
        """Raises a ValidationError subclass for the first invalid field."""
        self._check_dimension(params.width, "width")
        self._check_dimension(params.height, "height")
        self.limits.check_tile_size(params.tile_size)
        if params.environment_type not in ENVIRONMENT_TYPES:
            raise UnknownEnvironment(
                f"Unknown environment type '{params.environment_type}'. "
                f"Expected one of: {', '.join(ENVIRONMENT_TYPES)}",
                field="environmentType",
            )
        if params.discipline not in DISCIPLINE_HANDLERS:
            raise ValidationError(
                f"Unknown discipline '{params.discipline}'.", field="discipline"
            )
        if params.seed is not None and (
            isinstance(params.seed, bool) or not isinstance(params.seed, int)
        ):
            raise ValidationError("'seed' must be an integer.", field="seed")

    def resolve_pools(self, params: MapGenerationParams) -> TilePools:
        """
        Builds the tile pools for one generation.

        An explicit tilesByType mapping wins over the atlas's own
        classification, but a referenced atlas must still exist.
        """
        atlas = None
        if params.atlas_id is not None:
            atlas = self.store.get_atlas(params.atlas_id) if self.store else None
            if atlas is None:
                raise AtlasNotFound(params.atlas_id)

        if params.tiles_by_type is not None:
            pools = TilePools.from_mapping(params.tiles_by_type)
        elif atlas is not None:
            pools = TilePools.from_atlas(atlas)
        else:
            raise ValidationError(
                "Either 'atlasId' or 'tilesByType' is required.", field="atlasId"
            )

        if pools.is_empty() and params.enabled_layers.floors:
            raise EmptyTilePool("No tiles available for any classification.")
        log.debug("Resolved tile pools: %s", pools.sizes())
        return pools

    def compose(
        self,
        discipline: str,
        params: MapGenerationParams,
        pools: TilePools,
        rng: Optional[random.Random] = None,
    ) -> Grid:
        handler = DISCIPLINE_HANDLERS.get(discipline)
        if handler is None:
            raise ValidationError(f"Unknown discipline '{discipline}'.", field="discipline")
        return handler(params, pools, rng)

    def generate_map(self, params: MapGenerationParams) -> GeneratedMap:
        self.validate(params)
        pools = self.resolve_pools(params)
        log.info(
            "Generating %dx%d '%s' map (discipline=%s, seed=%s)...",
            params.width,
            params.height,
            params.environment_type,
            params.discipline,
            params.seed,
        )

        cells = self.compose(params.discipline, params, pools)
        if len(cells) != params.height or any(len(row) != params.width for row in cells):
            raise ProcessingError("Composed grid does not match the requested dimensions.")

        now = datetime.now()
        generated = GeneratedMap(
            id=str(uuid.uuid4()),
            name=params.name or f"Generated Map {now.strftime('%Y-%m-%d %H:%M:%S')}",
            width=params.width,
            height=params.height,
            tile_size=params.tile_size,
            cells=cells,
            environment_type=params.environment_type,
            atlas_id=params.atlas_id,
            seed=params.seed,
            discipline=params.discipline,
        )
        log.info("Map '%s' generated (%s).", generated.name, generated.id)
        return generated


def generate_map(
    params: MapGenerationParams,
    store: Any = None,
    limits: Optional[GenerationLimits] = None,
) -> GeneratedMap:
    """Convenience wrapper around MapComposer.generate_map."""
    return MapComposer(store, limits).generate_map(params)
