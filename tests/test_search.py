import random
from collections import deque

import pytest

from hexham.core.grid import HexGrid
from hexham.core.hex_geometry import hex_distance
from hexham.core.map_generators import generate
from hexham.core.pacing import PacedRunner, SPEED_PRESETS
from hexham.core.search import ALGORITHMS, SearchRun, make_algo
from hexham.core.types import Tile, DONE, NO_PATH, CANCELLED, IDLE, RUNNING


def make_grid(w, h, start, end, walls=()):
    grid = HexGrid(w, h)
    grid.set_tile(*start, Tile.START)
    grid.set_tile(*end, Tile.END)
    for c in walls:
        grid.set_tile(*c, Tile.WALL)
    return grid


def solve(grid, key, **kw):
    run = SearchRun(grid, key, **kw)
    assert run.start()
    res = PacedRunner(run, SPEED_PRESETS["instant"]).run_to_completion()
    return run, res


def ordered_path(grid, res):
    assert res.path[0] == grid.start and res.path[-1] == grid.end
    assert set(res.path) == grid.path
    return res.path


def assert_valid_path(grid, path):
    for a, b in zip(path, path[1:]):
        assert b in grid.neighbors(a)
    assert not any(grid.is_wall(c) for c in path)


def true_distance(grid):
    dist = {grid.start: 0}
    queue = deque([grid.start])
    while queue:
        u = queue.popleft()
        for v in grid.passable_neighbors(u):
            if v not in dist:
                dist[v] = dist[u] + 1
                queue.append(v)
    return dist.get(grid.end)


@pytest.mark.parametrize("key", ["bfs", "astar", "greedy"])
def test_open_grid_paths_match_hex_distance(key):
    grid = make_grid(100, 100, (5, 5), (94, 94))
    run, res = solve(grid, key)
    assert res.status == DONE
    path = ordered_path(grid, res)
    assert len(path) - 1 == hex_distance((5, 5), (94, 94))
    assert_valid_path(grid, path)


def test_dfs_still_reaches_the_end():
    grid = make_grid(100, 100, (5, 5), (94, 94))
    run, res = solve(grid, "dfs")
    assert res.status == DONE
    path = ordered_path(grid, res)
    assert len(path) - 1 >= hex_distance((5, 5), (94, 94))
    assert_valid_path(grid, path)


# a wall across the middle with a single gap near the right edge
BARRIER = [(col, 10) for col in range(0, 18)]


@pytest.mark.parametrize("key", ["bfs", "astar"])
def test_bfs_and_astar_are_optimal_around_walls(key):
    grid = make_grid(20, 20, (2, 2), (3, 17), BARRIER)
    run, res = solve(grid, key)
    assert res.status == DONE
    path = ordered_path(grid, res)
    assert_valid_path(grid, path)
    assert len(path) - 1 == true_distance(grid)
    assert len(path) - 1 > hex_distance(grid.start, grid.end)


@pytest.mark.parametrize("key", ["dfs", "greedy"])
def test_dfs_and_greedy_paths_are_valid_around_walls(key):
    grid = make_grid(20, 20, (2, 2), (3, 17), BARRIER)
    run, res = solve(grid, key)
    assert res.status == DONE
    path = ordered_path(grid, res)
    assert_valid_path(grid, path)
    assert len(path) - 1 >= true_distance(grid)


@pytest.mark.parametrize("key", sorted(ALGORITHMS))
def test_visit_orders_are_gapless_and_skip_walls(key):
    grid = make_grid(20, 20, (2, 2), (3, 17), BARRIER)
    run, res = solve(grid, key)
    orders = sorted(grid.visited.values())
    assert orders == list(range(len(orders)))
    assert grid.max_visit_order == len(orders) - 1
    assert not any(grid.is_wall(c) for c in grid.visited)
    assert grid.visited[grid.start] == 0


@pytest.mark.parametrize("key", sorted(ALGORITHMS))
def test_walled_off_end_means_no_path(key):
    end = (10, 10)
    ring = HexGrid(20, 20).neighbors(end)
    grid = make_grid(20, 20, (2, 2), end, ring)
    run, res = solve(grid, key)
    assert res.status == NO_PATH
    assert not res.found
    assert grid.path == set()
    assert grid.searching is False
    assert end not in grid.visited


def test_missing_endpoint_is_a_no_op():
    grid = HexGrid(10, 10)
    grid.set_tile(1, 1, Tile.START)
    run = SearchRun(grid, "bfs")
    assert run.start() is False
    assert run.state == IDLE
    assert grid.searching is False


def test_start_clears_previous_run_state():
    grid = make_grid(10, 10, (1, 1), (8, 8))
    grid.record_visit((9, 9), 0)
    grid.mark_path([(9, 9)])
    run = SearchRun(grid, "bfs")
    run.start()
    assert grid.visited == {}
    assert grid.path == set()
    assert grid.searching is True


def test_second_start_refused_while_running():
    grid = make_grid(10, 10, (1, 1), (8, 8))
    run = SearchRun(grid, "astar")
    assert run.start()
    assert run.start() is False
    assert run.state == RUNNING


def test_each_step_finalizes_one_cell():
    grid = make_grid(30, 30, (1, 1), (28, 28))
    run = SearchRun(grid, "dfs")
    run.start()
    res = run.advance(7)
    assert res.status == RUNNING
    assert len(res.visited) == 7
    assert [grid.visited[c] for c in res.visited] == list(range(7))


def test_cancel_keeps_partial_visits():
    grid = make_grid(30, 30, (1, 1), (28, 28))
    run = SearchRun(grid, "bfs")
    run.start()
    run.advance(5)
    run.cancel()
    res = run.advance(100)
    assert res.status == CANCELLED
    assert run.state == CANCELLED
    assert grid.searching is False
    assert grid.path == set()
    assert len(grid.visited) == 5
    # terminal runs ignore further advances
    assert run.advance(10).status == CANCELLED
    assert len(grid.visited) == 5


def test_direct_grid_edit_cancels_running_search():
    grid = make_grid(30, 30, (1, 1), (28, 28))
    run = SearchRun(grid, "bfs")
    run.start()
    run.advance(5)
    grid.set_tile(15, 15, Tile.WALL)
    res = run.advance(5)
    assert res.status == CANCELLED
    assert res.visited == []
    assert grid.visited == {}
    assert grid.searching is False
    assert run._on_grid_change not in grid._listeners

    # a fresh run numbers its visits from 0 again
    assert run.start()
    res = run.advance(5)
    assert [grid.visited[c] for c in res.visited] == list(range(5))


def test_generating_a_map_cancels_running_search():
    grid = make_grid(30, 30, (1, 1), (28, 28))
    run = SearchRun(grid, "astar")
    run.start()
    run.advance(3)
    generate(grid, "maze", random.Random(2))
    assert run.advance(10).status == CANCELLED
    assert grid.visited == {}
    assert grid.start == (1, 1)


def test_finished_run_stops_listening():
    grid = make_grid(10, 10, (1, 1), (8, 8))
    run, res = solve(grid, "bfs")
    assert res.status == DONE
    grid.set_tile(4, 4, Tile.WALL)
    assert run.state == DONE
    assert run.advance(5).status == DONE


def test_cancel_after_reaching_end_keeps_the_path():
    grid = make_grid(10, 10, (1, 1), (2, 1))
    run = SearchRun(grid, "bfs")
    run.start()
    res = run.advance(50)
    assert res.status == DONE
    run.cancel()
    assert run.advance(1).status == DONE
    assert grid.path == {(1, 1), (2, 1)}


def test_callbacks_fire_at_start_each_yield_and_finish():
    grid = make_grid(30, 30, (1, 1), (28, 28))
    calls = {"render": 0, "refresh": 0}

    def render():
        calls["render"] += 1

    def refresh():
        calls["refresh"] += 1

    run = SearchRun(grid, "greedy", render=render, refresh=refresh)
    run.start()
    assert calls == {"render": 1, "refresh": 1}
    run.advance(3)
    assert calls == {"render": 2, "refresh": 1}
    run.cancel()
    run.advance(3)
    assert calls == {"render": 3, "refresh": 2}


def test_refresh_sees_searching_flag():
    grid = make_grid(10, 10, (1, 1), (8, 8))
    seen = []
    run = SearchRun(grid, "bfs", refresh=lambda: seen.append(grid.searching))
    run.start()
    PacedRunner(run, SPEED_PRESETS["instant"]).run_to_completion()
    assert seen == [True, False]


@pytest.mark.parametrize("key", ["astar", "greedy"])
def test_heap_tie_break_is_deterministic(key):
    first = make_grid(25, 25, (3, 3), (20, 21), BARRIER)
    second = make_grid(25, 25, (3, 3), (20, 21), BARRIER)
    solve(first, key)
    solve(second, key)
    assert first.visited == second.visited
    assert first.path == second.path


def test_metrics_report_path_moves():
    grid = make_grid(10, 10, (1, 1), (6, 1))
    run, res = solve(grid, "bfs")
    assert res.metrics["path_len"] == 5
    assert res.metrics["visited"] == len(grid.visited)
    assert res.metrics["algo"] == "Breadth First Search"


def test_unknown_algorithm():
    with pytest.raises(ValueError):
        make_algo("dijkstra")
    with pytest.raises(ValueError):
        SearchRun(HexGrid(5, 5), "dijkstra")
