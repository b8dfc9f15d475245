import pytest

from tmap_lib.compose.composer import MapComposer, generate_map
from tmap_lib.errors import (
    AtlasNotFound,
    EmptyTilePool,
    InvalidDimensions,
    NotFoundError,
    ProcessingError,
    UnknownEnvironment,
    ValidationError,
)
from tmap_lib.schema import EnabledLayers, GenerationLimits, Layer, MapGenerationParams
from tmap_lib.store import MemoryStore

TILES_BY_TYPE = {"floor": ["f1", "f2"], "wall": ["w1"], "decoration": ["d1"]}


def params(**overrides):
    values = dict(
        width=10,
        height=10,
        tile_size=32,
        environment_type="dungeon",
        seed=1,
        tiles_by_type=TILES_BY_TYPE,
    )
    values.update(overrides)
    return MapGenerationParams(**values)


@pytest.fixture
def store(small_atlas):
    s = MemoryStore()
    s.put_atlas(small_atlas)
    return s


def test_dungeon_map_has_wall_border():
    generated = generate_map(params())

    assert generated.width == generated.height == 10
    for y, row in enumerate(generated.cells):
        for x, cell in enumerate(row):
            if x in (0, 9) or y in (0, 9):
                assert cell.layer == Layer.WALL


def test_generation_is_deterministic():
    a = generate_map(params(environment_type="nature", seed=99))
    b = generate_map(params(environment_type="nature", seed=99))

    assert a.id != b.id
    assert a.cells == b.cells


def test_missing_seed_uses_default():
    assert generate_map(params(seed=None)).cells == generate_map(params(seed=42)).cells


def test_seed_zero_uses_default():
    zero = generate_map(params(environment_type="dungeon", seed=0))
    assert zero.cells == generate_map(params(environment_type="dungeon", seed=42)).cells
    assert zero.seed == 0


def test_record_fields():
    generated = generate_map(params(name="Crypt", environment_type="city"))

    assert generated.name == "Crypt"
    assert generated.environment_type == "city"
    assert generated.tile_size == 32
    assert generated.seed == 1
    assert generated.discipline == "seeded"


def test_default_name():
    assert generate_map(params()).name.startswith("Generated Map ")


@pytest.mark.parametrize(
    "field, value",
    [("width", 0), ("width", 7), ("width", 129), ("height", -1), ("height", 500)],
)
def test_out_of_range_dimensions(field, value):
    with pytest.raises(InvalidDimensions) as excinfo:
        generate_map(params(**{field: value}))
    assert excinfo.value.field == field


def test_custom_limits_are_enforced():
    composer = MapComposer(limits=GenerationLimits(max_map_size=16))
    with pytest.raises(InvalidDimensions):
        composer.generate_map(params(width=20))


def test_tile_size_is_checked():
    with pytest.raises(ValidationError) as excinfo:
        generate_map(params(tile_size=4))
    assert excinfo.value.field == "tileSize"


def test_unknown_environment():
    with pytest.raises(UnknownEnvironment) as excinfo:
        generate_map(params(environment_type="space"))
    assert excinfo.value.field == "environmentType"


def test_unknown_discipline():
    with pytest.raises(ValidationError) as excinfo:
        generate_map(params(discipline="fractal"))
    assert excinfo.value.field == "discipline"


def test_unknown_atlas(store):
    with pytest.raises(AtlasNotFound):
        MapComposer(store).generate_map(params(atlas_id="nope", tiles_by_type=None))


def test_atlas_id_must_resolve_even_with_pools():
    with pytest.raises(NotFoundError):
        MapComposer(MemoryStore()).generate_map(params(atlas_id="nope"))


def test_pools_or_atlas_required():
    with pytest.raises(ValidationError) as excinfo:
        generate_map(params(tiles_by_type=None))
    assert excinfo.value.field == "atlasId"


def test_empty_pools_with_floors_enabled():
    with pytest.raises(EmptyTilePool):
        generate_map(params(tiles_by_type={"floor": [], "wall": [], "decoration": []}))


def test_empty_pools_are_fine_without_floors():
    generated = generate_map(
        params(
            tiles_by_type={},
            enabled_layers=EnabledLayers(floors=False, walls=False, decorations=False),
        )
    )
    assert all(c.tile_id is None for row in generated.cells for c in row)


def test_empty_pool_is_a_processing_error():
    assert issubclass(EmptyTilePool, ProcessingError)


def test_atlas_classification_drives_pools(store):
    generated = MapComposer(store).generate_map(params(atlas_id="atlas-1", tiles_by_type=None))

    expected = {Layer.FLOOR: "f1", Layer.WALL: "w1", Layer.DECORATION: "d1"}
    assert generated.atlas_id == "atlas-1"
    for row in generated.cells:
        for cell in row:
            assert cell.tile_id == expected[cell.layer]


def test_explicit_pools_win_over_atlas(store):
    generated = MapComposer(store).generate_map(
        params(atlas_id="atlas-1", tiles_by_type={"floor": ["x"], "wall": ["x"]})
    )
    assert {c.tile_id for row in generated.cells for c in row} == {"x"}


def test_reclassified_tile_moves_pools(store):
    store.update_tile_classification("atlas-1", "d1", "wall")
    generated = MapComposer(store).generate_map(
        params(atlas_id="atlas-1", tiles_by_type=None, environment_type="nature")
    )
    for row in generated.cells:
        for cell in row:
            if cell.layer == Layer.WALL:
                assert cell.tile_id in ("w1", "d1")


def test_structural_discipline_is_reproducible_with_seed():
    a = generate_map(params(discipline="structural", environment_type="dungeon", seed=5, width=30, height=30))
    b = generate_map(params(discipline="structural", environment_type="dungeon", seed=5, width=30, height=30))
    assert a.cells == b.cells


def test_compose_dispatches_on_discipline(mocker):
    fake = mocker.patch("tmap_lib.compose.composer.compose_structural", return_value=[])
    composer = MapComposer()
    p = params(discipline="structural")
    pools = composer.resolve_pools(p)

    assert composer.compose("structural", p, pools) == []
    fake.assert_called_once()


def test_shape_mismatch_is_a_processing_error(mocker):
    mocker.patch("tmap_lib.compose.composer.compose_seeded", return_value=[[]])
    with pytest.raises(ProcessingError):
        generate_map(params())


def test_params_from_request_body():
    p = MapGenerationParams.from_dict(
        {
            "width": 12,
            "height": 14,
            "tileSize": 16,
            "environmentType": "city",
            "seed": 3,
            "atlasId": "a",
            "enabledLayers": {"decorations": False},
            "tilesByType": {"floor": ["f"]},
            "discipline": "structural",
        }
    )
    assert (p.width, p.height, p.tile_size) == (12, 14, 16)
    assert p.enabled_layers == EnabledLayers(decorations=False)
    assert p.tiles_by_type == {"floor": ["f"]}
    assert p.discipline == "structural"


@pytest.mark.parametrize(
    "body, field",
    [
        ({"height": 10, "tileSize": 32, "environmentType": "city"}, "width"),
        ({"width": True, "height": 10, "tileSize": 32, "environmentType": "city"}, "width"),
        ({"width": 10, "height": 10, "tileSize": 32}, "environmentType"),
        (
            {"width": 10, "height": 10, "tileSize": 32, "environmentType": "city",
             "enabledLayers": {"walls": "no"}},
            "enabledLayers.walls",
        ),
        (
            {"width": 10, "height": 10, "tileSize": 32, "environmentType": "city",
             "tilesByType": {"lava": []}},
            "tilesByType",
        ),
        (
            {"width": 10, "height": 10, "tileSize": 32, "environmentType": "city", "name": 7},
            "name",
        ),
    ],
)
def test_params_from_bad_request_body(body, field):
    with pytest.raises(ValidationError) as excinfo:
        MapGenerationParams.from_dict(body)
    assert excinfo.value.field == field
