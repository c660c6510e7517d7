import random

import pytest

from hexham.core import map_generators
from hexham.core.grid import HexGrid
from hexham.core.map_generators import (
    GENERATORS, backtrack_maze, ensure_path_exists, find_path, generate, generate_empty, generate_maze,
    generate_rooms, generate_scattered, lattice_to_grid, SCATTER_CLEAR_RADIUS,
)
from hexham.core.types import Tile


def endpoint_counts(grid):
    values = list(grid.tiles.values())
    return values.count(Tile.START), values.count(Tile.END)


@pytest.mark.parametrize("key", sorted(GENERATORS))
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_every_generated_map_is_solvable(key, seed):
    grid = HexGrid()
    generate(grid, key, random.Random(seed))
    assert grid.start is not None and grid.end is not None
    assert grid.start != grid.end
    assert endpoint_counts(grid) == (1, 1)
    assert grid.classify(*grid.start) is Tile.START
    assert grid.classify(*grid.end) is Tile.END
    assert Tile.OPEN not in grid.tiles.values()
    assert find_path(grid, grid.start, grid.end) is not None


@pytest.mark.parametrize("key", sorted(GENERATORS))
def test_same_seed_same_map(key):
    a, b = HexGrid(), HexGrid()
    generate(a, key, random.Random(42))
    generate(b, key, random.Random(42))
    assert a.tiles == b.tiles
    assert (a.start, a.end) == (b.start, b.end)


def test_generation_notifies_once_and_clears_run_state():
    grid = HexGrid()
    grid.record_visit((0, 0), 0)
    seen = []
    grid.add_listener(seen.append)
    generate_maze(grid, random.Random(5))
    assert seen == [grid]
    assert grid.visited == {}


def test_empty_map():
    grid = HexGrid()
    grid.set_tile(3, 3, Tile.WALL)
    generate_empty(grid)
    assert grid.start == (5, 5)
    assert grid.end == (94, 94)
    assert set(grid.tiles) == {(5, 5), (94, 94)}


def test_maze_corridors_sit_on_odd_lattice():
    grid = HexGrid()
    generate_maze(grid, random.Random(9))
    assert grid.start == (1, 1)
    assert grid.end[0] % 2 == 1 and grid.end[1] % 2 == 1
    # every lattice cell is carved, so walls remain only between them
    for mr in range(50):
        for mc in range(50):
            assert not grid.is_wall((mc * 2 + 1, mr * 2 + 1))
    # even/even cells are never corridors
    assert grid.is_wall((0, 0)) and grid.is_wall((2, 2)) and grid.is_wall((98, 98))


def test_maze_end_is_deepest_cell_of_the_carved_tree():
    depth, parent = backtrack_maze(10, 10, random.Random(3))
    assert len(depth) == 100
    assert set(parent) == set(depth)
    assert parent[(0, 0)] is None
    for cell, prev in parent.items():
        if prev is None:
            continue
        assert abs(cell[0] - prev[0]) + abs(cell[1] - prev[1]) == 1
        assert depth[cell] == depth[prev] + 1

    grid = HexGrid(20, 20)
    generate_maze(grid, random.Random(3))
    deepest = max(depth.values())
    assert grid.end == lattice_to_grid(*max(depth, key=depth.get))
    assert depth[((grid.end[0] - 1) // 2, (grid.end[1] - 1) // 2)] == deepest
    # every tree edge is open in the finished grid
    for cell, prev in parent.items():
        if prev is not None:
            (c1, r1), (c2, r2) = lattice_to_grid(*cell), lattice_to_grid(*prev)
            assert not grid.is_wall(((c1 + c2) // 2, (r1 + r2) // 2))


def test_maze_on_a_small_grid():
    grid = HexGrid(20, 20)
    generate_maze(grid, random.Random(3))
    assert grid.start == (1, 1)
    assert grid.end != grid.start
    route = find_path(grid, grid.start, grid.end)
    assert len(route) - 1 >= 2


def test_scattered_keeps_clear_zones():
    grid = HexGrid()
    generate_scattered(grid, random.Random(11))
    walls = [c for c, t in grid.tiles.items() if t is Tile.WALL]
    assert len(walls) > 1000
    r = SCATTER_CLEAR_RADIUS
    for col, row in (grid.start, grid.end):
        for dr in range(-r, r + 1):
            for dc in range(-r, r + 1):
                assert not grid.is_wall((col + dc, row + dr))


def test_rooms_put_endpoints_in_open_space():
    grid = HexGrid()
    generate_rooms(grid, random.Random(4))
    open_cells = grid.width * grid.height - len(grid.tiles)
    assert open_cells > 6 * 6
    for c in (grid.start, grid.end):
        assert not grid.is_wall(c)


def test_ensure_path_exists_carves_through_walls():
    grid = HexGrid(20, 20)
    grid.place_endpoints((2, 2), (15, 15))
    for c in grid.neighbors((15, 15)):
        grid.build_wall(c)
    assert find_path(grid, grid.start, grid.end) is None

    carved = ensure_path_exists(grid)

    assert carved == 1
    assert find_path(grid, grid.start, grid.end) is not None


def test_ensure_path_prefers_cheap_route_through_few_walls():
    grid = HexGrid(20, 20)
    grid.place_endpoints((2, 10), (17, 10))
    # full-height double wall between them
    for row in range(20):
        grid.build_wall((9, row))
        grid.build_wall((10, row))
    assert ensure_path_exists(grid) == 2
    assert ensure_path_exists(grid) == 0


def test_ensure_path_without_endpoints_is_a_no_op():
    grid = HexGrid(10, 10)
    grid.fill_walls()
    assert ensure_path_exists(grid) == 0


def test_unknown_generator():
    with pytest.raises(ValueError):
        generate(HexGrid(), "caves")


def test_default_rng_is_used_when_none_given():
    grid = HexGrid()
    for gen in (generate_maze, generate_scattered, generate_rooms):
        gen(grid)
        assert find_path(grid, grid.start, grid.end) is not None
    assert map_generators.ROOM_COUNT == 12
