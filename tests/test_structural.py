import random

import pytest

from tmap_lib.compose.pools import TilePools
from tmap_lib.compose.structural import (
    STRATEGIES,
    _Room,
    abstract_pattern,
    compose_structural,
    nature_noise,
    select_auto_strategy,
)
from tmap_lib.errors import UnknownEnvironment
from tmap_lib.schema import EnabledLayers, Layer

FLOORS = ["f1", "f2"]
WALLS = ["w1", "w2", "w3"]
DECORATIONS = ["d1"]


@pytest.fixture
def pools():
    return TilePools.from_mapping({"floor": FLOORS, "wall": WALLS, "decoration": DECORATIONS})


def layers(cells):
    return [[c.layer for c in row] for row in cells]


@pytest.mark.parametrize(
    "mapping, expected",
    [
        ({"floor": ["f"], "wall": ["w"], "decoration": ["d"]}, "nature"),
        ({"floor": ["f"], "wall": ["w1", "w2"], "decoration": []}, "dungeon"),
        ({"floor": ["f1", "f2"], "wall": ["w"], "decoration": []}, "abstract"),
        ({"floor": ["f"], "wall": [], "decoration": ["d"]}, "abstract"),
    ],
)
def test_select_auto_strategy(mapping, expected):
    assert select_auto_strategy(TilePools.from_mapping(mapping)) == expected


@pytest.mark.parametrize("name", sorted(STRATEGIES))
def test_strategies_fill_every_cell(pools, name):
    cells = compose_structural(17, 13, pools, name, random.Random(1))

    assert len(cells) == 13
    for y, row in enumerate(cells):
        assert len(row) == 17
        for x, cell in enumerate(row):
            assert (cell.x, cell.y) == (x, y)
            assert cell.tile_id is not None


@pytest.mark.parametrize("name", sorted(STRATEGIES))
def test_seeded_handle_reproduces_the_map(pools, name):
    a = compose_structural(20, 20, pools, name, random.Random(9))
    b = compose_structural(20, 20, pools, name, random.Random(9))
    assert a == b


def test_dungeon_keeps_solid_border_and_carves_rooms(pools):
    cells = compose_structural(20, 20, pools, "dungeon", random.Random(3))
    grid = layers(cells)

    for i in range(20):
        assert grid[0][i] == grid[19][i] == Layer.WALL
        assert grid[i][0] == grid[i][19] == Layer.WALL
    assert any(layer == Layer.FLOOR for row in grid for layer in row)


def test_dungeon_on_tiny_map_is_all_wall(pools):
    cells = compose_structural(3, 3, pools, "dungeon", random.Random(3))
    assert all(layer == Layer.WALL for row in layers(cells) for layer in row)


def test_city_blocks_and_streets(pools):
    grid = layers(compose_structural(16, 16, pools, "city", random.Random(2)))

    assert grid[0][0] == Layer.WALL
    assert grid[0][5] == Layer.WALL
    assert grid[5][0] == Layer.WALL
    # Columns 6 and 7 are the street between blocks.
    assert grid[0][6] == Layer.FLOOR
    assert grid[3][7] == Layer.FLOOR
    assert grid[0][8] == Layer.WALL
    assert grid[2][2] in (Layer.FLOOR, Layer.DECORATION)


def test_abstract_follows_the_pattern(pools):
    grid = layers(compose_structural(24, 24, pools, "abstract", random.Random(0)))
    for y in range(24):
        for x in range(24):
            value = abstract_pattern(x, y)
            if value > 1:
                assert grid[y][x] == Layer.WALL
            elif value > 0:
                assert grid[y][x] == Layer.DECORATION
            else:
                assert grid[y][x] == Layer.FLOOR


def test_nature_walls_follow_the_noise_field(pools):
    grid = layers(compose_structural(40, 40, pools, "nature", random.Random(0)))
    for y in range(40):
        for x in range(40):
            noise = nature_noise(x, y)
            if noise > 0.5:
                assert grid[y][x] == Layer.WALL
            elif noise <= 0.2:
                assert grid[y][x] == Layer.FLOOR


def test_basic_has_border_walls(pools):
    grid = layers(compose_structural(10, 8, pools, "basic", random.Random(0)))
    assert all(layer == Layer.WALL for layer in grid[0] + grid[-1])
    assert all(row[0] == row[-1] == Layer.WALL for row in grid)


def test_auto_resolves_through_pools(pools):
    auto = compose_structural(16, 16, pools, "auto", random.Random(4))
    nature = compose_structural(16, 16, pools, "nature", random.Random(4))
    assert auto == nature


def test_disabled_walls_are_demoted_to_floor(pools):
    cells = compose_structural(
        20, 20, pools, "dungeon", random.Random(1), EnabledLayers(walls=False)
    )
    for row in cells:
        for cell in row:
            assert cell.layer != Layer.WALL
            if cell.layer == Layer.FLOOR:
                assert cell.tile_id in FLOORS


def test_disabled_floors_leave_null_tiles(pools):
    cells = compose_structural(
        16, 16, pools, "city", random.Random(1), EnabledLayers(floors=False)
    )
    for row in cells:
        for cell in row:
            if cell.layer == Layer.FLOOR:
                assert cell.tile_id is None
            else:
                assert cell.tile_id is not None


def test_empty_pools_fall_back_to_floor():
    pools = TilePools.from_mapping({"floor": FLOORS})
    cells = compose_structural(12, 12, pools, "basic", random.Random(1))
    assert all(c.tile_id in FLOORS for row in cells for c in row)


def test_unknown_strategy(pools):
    with pytest.raises(UnknownEnvironment):
        compose_structural(10, 10, pools, "space", random.Random(1))


@pytest.fixture
def carved_rooms(mocker):
    spy = mocker.patch("tmap_lib.compose.structural._Room", wraps=_Room)

    def rooms():
        return [_Room(**call.kwargs) for call in spy.call_args_list]

    return rooms


def reachable(grid, start):
    seen = {start}
    stack = [start]
    while stack:
        x, y = stack.pop()
        for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if (nx, ny) in seen or not (0 <= ny < len(grid) and 0 <= nx < len(grid[0])):
                continue
            if grid[ny][nx] != Layer.WALL:
                seen.add((nx, ny))
                stack.append((nx, ny))
    return seen


@pytest.mark.parametrize("seed", [1, 7, 23])
def test_dungeon_corridors_connect_consecutive_rooms(pools, carved_rooms, seed):
    grid = layers(compose_structural(40, 30, pools, "dungeon", random.Random(seed)))
    rooms = carved_rooms()

    assert len(rooms) == 40 * 30 // 100 + 2
    for prev, cur in zip(rooms, rooms[1:]):
        (px, py), (cx, cy) = prev.center, cur.center
        for x in range(min(px, cx), max(px, cx) + 1):
            assert grid[py][x] != Layer.WALL
        for y in range(min(py, cy), max(py, cy) + 1):
            assert grid[y][cx] != Layer.WALL

    connected = reachable(grid, rooms[0].center)
    assert all(room.center in connected for room in rooms)


@pytest.mark.parametrize("seed", [2, 5, 11])
def test_dungeon_decorations_sit_inside_rooms(pools, carved_rooms, seed):
    cells = compose_structural(40, 30, pools, "dungeon", random.Random(seed))
    rooms = carved_rooms()
    decorations = [
        (cell.x, cell.y) for row in cells for cell in row if cell.layer == Layer.DECORATION
    ]

    assert 0 < len(decorations) <= len(rooms)
    for x, y in decorations:
        assert any(
            room.x < x < room.x + room.width - 1 and room.y < y < room.y + room.height - 1
            for room in rooms
        )
