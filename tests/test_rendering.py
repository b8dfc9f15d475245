from io import BytesIO

import pytest
from PIL import Image

from tmap_lib.errors import NotFoundError, ValidationError
from tmap_lib.rendering import ASCIIRenderer, render_ascii, render_map_png
from tmap_lib.schema import GeneratedMap, Layer, MapCell, load_map_json, map_to_dict, save_json


@pytest.fixture
def tiny_map():
    rows = [
        [("w1", Layer.WALL), ("f1", Layer.FLOOR), ("d1", Layer.DECORATION)],
        [("w1", Layer.WALL), (None, Layer.FLOOR), ("f1", Layer.FLOOR)],
    ]
    cells = [
        [MapCell(x=x, y=y, tile_id=tid, layer=layer) for x, (tid, layer) in enumerate(row)]
        for y, row in enumerate(rows)
    ]
    return GeneratedMap(
        id="map-1",
        name="Tiny",
        width=3,
        height=2,
        tile_size=16,
        cells=cells,
        environment_type="dungeon",
        atlas_id="atlas-1",
    )


def test_ascii_preview(tiny_map):
    assert render_ascii(tiny_map) == "#.*\n# ."


def test_ascii_preview_with_rulers(tiny_map):
    renderer = ASCIIRenderer(with_rulers=True)
    renderer.render(tiny_map)
    lines = renderer.get_output().split("\n")

    assert len(lines) == 4
    assert lines[1].endswith("012")
    assert lines[2].endswith("#.*")


def test_empty_renderer_output():
    assert ASCIIRenderer().get_output() == ""


def test_png_render(tiny_map, small_atlas):
    png = render_map_png(tiny_map, small_atlas)
    img = Image.open(BytesIO(png))

    assert img.size == (48, 32)
    assert img.mode == "RGBA"
    assert img.getpixel((0, 0)) == (60, 60, 60, 255)
    assert img.getpixel((20, 5)) == (0, 200, 0, 255)
    assert img.getpixel((40, 10)) == (200, 0, 200, 255)
    # The null tile stays transparent.
    assert img.getpixel((20, 20))[3] == 0


def test_png_render_unknown_tile(tiny_map, small_atlas):
    small_atlas.tiles = [t for t in small_atlas.tiles if t.id != "d1"]
    with pytest.raises(NotFoundError):
        render_map_png(tiny_map, small_atlas)


def test_png_render_without_atlas(tiny_map):
    with pytest.raises(NotFoundError):
        render_map_png(tiny_map, None)


def test_map_json_round_trip(tiny_map, tmp_path):
    path = tmp_path / "map.json"
    save_json(map_to_dict(tiny_map), str(path))
    loaded = load_map_json(str(path))

    assert loaded.cells == tiny_map.cells
    assert loaded.created_at == tiny_map.created_at
    assert render_ascii(loaded) == render_ascii(tiny_map)


def test_png_render_over_pixel_budget(tiny_map, small_atlas, mocker):
    zeros = mocker.patch("tmap_lib.rendering.np.zeros")

    with pytest.raises(ValidationError) as excinfo:
        render_map_png(tiny_map, small_atlas, max_pixels=48 * 32 - 1)

    assert excinfo.value.field == "tileSize"
    assert "48x32" in str(excinfo.value)
    zeros.assert_not_called()
