# hexham/core/map_generators.py
#!/usr/bin/env python3
"""
Map generators. Each one resets the grid, lays out walls, places start/end,
then makes sure a start->end route exists before notifying listeners.

Tuning constants are fixed per generator; the rng is injectable so tests can
pin a seed.
"""

import heapq
import logging
import random
from collections import deque
from math import inf
from typing import Callable, Dict, List, Optional, Tuple

from hexham.core.grid import HexGrid
from hexham.core.hex_geometry import hex_distance
from hexham.core.types import Cell

logger = logging.getLogger(__name__)

ENDPOINT_MARGIN = 5          # start/end offset from the corners
SCATTER_DENSITY = 0.3
SCATTER_CLUSTER_CHANCE = 0.6
SCATTER_SPREAD_CHANCE = 0.4
SCATTER_CLEAR_RADIUS = 3
ROOM_COUNT = 12
ROOM_MIN, ROOM_SPREAD = 6, 10  # room side in [6, 15]
WALL_CARVE_COST = 5

Room = Tuple[int, int, int, int]  # (x, y, w, h)


# -------------------- connectivity --------------------

def find_path(grid: HexGrid, start: Cell, end: Cell) -> Optional[List[Cell]]:
    """BFS from start to end with walls impassable. None if unreachable."""
    parent: Dict[Cell, Optional[Cell]] = {start: None}
    queue = deque([start])
    while queue:
        u = queue.popleft()
        if u == end:
            path: List[Cell] = []
            cur: Optional[Cell] = u
            while cur is not None:
                path.append(cur)
                cur = parent[cur]
            path.reverse()
            return path
        for v in grid.neighbors(u):
            if v in parent or grid.is_wall(v):
                continue
            parent[v] = u
            queue.append(v)
    return None


def _cheapest_route(grid: HexGrid, start: Cell, end: Cell) -> List[Cell]:
    """A* where walls are passable at WALL_CARVE_COST and open ground costs 1."""
    g: Dict[Cell, int] = {start: 0}
    parent: Dict[Cell, Optional[Cell]] = {start: None}
    closed = set()
    seq = 0
    open_pq: List[Tuple[int, int, Cell]] = [(hex_distance(start, end), seq, start)]
    while open_pq:
        _, _, u = heapq.heappop(open_pq)
        if u in closed:
            continue
        if u == end:
            break
        closed.add(u)
        for v in grid.neighbors(u):
            alt = g[u] + (WALL_CARVE_COST if grid.is_wall(v) else 1)
            if alt < g.get(v, inf):
                g[v] = alt
                parent[v] = u
                seq += 1
                heapq.heappush(open_pq, (alt + hex_distance(v, end), seq, v))

    route: List[Cell] = []
    cur: Optional[Cell] = end
    while cur is not None:
        route.append(cur)
        cur = parent[cur]
    route.reverse()
    return route


def ensure_path_exists(grid: HexGrid) -> int:
    """Carve walls out of the cheapest route if start and end are cut off. Returns cells carved."""
    if grid.start is None or grid.end is None:
        return 0
    if find_path(grid, grid.start, grid.end) is not None:
        return 0

    carved = 0
    for c in _cheapest_route(grid, grid.start, grid.end):
        if grid.is_wall(c):
            grid.carve(c)
            carved += 1
    logger.info("carved %d wall cells to connect %s -> %s", carved, grid.start, grid.end)
    return carved


def _finish(grid: HexGrid, start: Cell, end: Cell) -> None:
    grid.place_endpoints(start, end)
    ensure_path_exists(grid)
    grid.notify()


def _corner_endpoints(grid: HexGrid) -> Tuple[Cell, Cell]:
    return ((ENDPOINT_MARGIN, ENDPOINT_MARGIN),
            (grid.width - 1 - ENDPOINT_MARGIN, grid.height - 1 - ENDPOINT_MARGIN))


# -------------------- generators --------------------

def generate_empty(grid: HexGrid, rng: random.Random = None) -> None:
    grid.reset()
    start, end = _corner_endpoints(grid)
    _finish(grid, start, end)


def lattice_to_grid(mc: int, mr: int) -> Cell:
    """Maze lattice coordinates to grid cells; corridors sit on odd col/row."""
    return mc * 2 + 1, mr * 2 + 1


def backtrack_maze(cols: int, rows: int,
                   rng: random.Random) -> Tuple[Dict[Cell, int], Dict[Cell, Optional[Cell]]]:
    """
    Recursive backtracker over a cols x rows lattice, rooted at (0, 0).

    Returns (depth, parent) in lattice coordinates: depth is the edge count from
    the root along the carved tree, parent the cell each one was carved from.
    Both keep insertion order, which is the carving order.
    """
    depth: Dict[Cell, int] = {(0, 0): 0}
    parent: Dict[Cell, Optional[Cell]] = {(0, 0): None}
    stack: List[Cell] = [(0, 0)]

    while stack:
        mc, mr = stack[-1]
        options = []
        for dmc, dmr in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nxt = (mc + dmc, mr + dmr)
            if 0 <= nxt[0] < cols and 0 <= nxt[1] < rows and nxt not in depth:
                options.append(nxt)
        if not options:
            stack.pop()
            continue

        nxt = rng.choice(options)
        depth[nxt] = depth[(mc, mr)] + 1
        parent[nxt] = (mc, mr)
        stack.append(nxt)

    return depth, parent


def generate_maze(grid: HexGrid, rng: random.Random = None) -> None:
    """
    Recursive backtracker on every other cell, so corridors are one cell wide.

    The end goes on the cell deepest in the carved tree (edge count from the
    origin), which is usually far from the Euclidean far corner.
    """
    rng = rng or random.Random()
    grid.reset()
    grid.fill_walls()

    depth, parent = backtrack_maze(grid.width // 2, grid.height // 2, rng)
    for cell, prev in parent.items():
        col, row = lattice_to_grid(*cell)
        grid.carve((col, row))
        if prev is not None:
            pcol, prow = lattice_to_grid(*prev)
            grid.carve(((col + pcol) // 2, (row + prow) // 2))  # passage between the two

    deepest = max(depth, key=depth.get)  # first carved wins a tie
    logger.debug("maze: %d cells carved, deepest %s at depth %d", len(depth), deepest, depth[deepest])
    _finish(grid, lattice_to_grid(0, 0), lattice_to_grid(*deepest))


def _clear_area(grid: HexGrid, center: Cell, radius: int) -> None:
    col, row = center
    for dr in range(-radius, radius + 1):
        for dc in range(-radius, radius + 1):
            grid.carve((col + dc, row + dr))


def generate_scattered(grid: HexGrid, rng: random.Random = None) -> None:
    """Random walls with some clustering, a clear zone around both endpoints."""
    rng = rng or random.Random()
    grid.reset()
    start, end = _corner_endpoints(grid)

    for row in range(grid.height):
        for col in range(grid.width):
            if rng.random() >= SCATTER_DENSITY:
                continue
            grid.build_wall((col, row))
            if rng.random() < SCATTER_CLUSTER_CHANCE:
                for n in grid.neighbors((col, row)):
                    if rng.random() < SCATTER_SPREAD_CHANCE:
                        grid.build_wall(n)

    _clear_area(grid, start, SCATTER_CLEAR_RADIUS)
    _clear_area(grid, end, SCATTER_CLEAR_RADIUS)
    _finish(grid, start, end)


def _room_center(room: Room) -> Cell:
    x, y, w, h = room
    return x + w // 2, y + h // 2


def generate_rooms(grid: HexGrid, rng: random.Random = None) -> None:
    """Rectangular rooms in solid rock, chained by two-wide L-shaped corridors."""
    rng = rng or random.Random()
    grid.reset()
    grid.fill_walls()

    rooms: List[Room] = []
    for _ in range(ROOM_COUNT):
        w = ROOM_MIN + rng.randrange(ROOM_SPREAD)
        h = ROOM_MIN + rng.randrange(ROOM_SPREAD)
        x = 2 + rng.randrange(max(1, grid.width - w - 4))
        y = 2 + rng.randrange(max(1, grid.height - h - 4))
        rooms.append((x, y, w, h))
        for row in range(y, y + h):
            for col in range(x, x + w):
                grid.carve((col, row))

    for prev, room in zip(rooms, rooms[1:]):
        x1, y1 = _room_center(prev)
        x2, y2 = _room_center(room)
        cx = x1
        while cx != x2:
            grid.carve((cx, y1))
            grid.carve((cx, y1 + 1))
            cx += 1 if cx < x2 else -1
        cy = y1
        while cy != y2:
            grid.carve((x2, cy))
            grid.carve((x2 + 1, cy))
            cy += 1 if cy < y2 else -1

    start, end = _room_center(rooms[0]), _room_center(rooms[-1])
    if end == start:
        end = (end[0] + 1, end[1])
    _finish(grid, start, end)


GENERATORS: Dict[str, Callable[[HexGrid, random.Random], None]] = {
    "empty": generate_empty,
    "maze": generate_maze,
    "scatter": generate_scattered,
    "rooms": generate_rooms,
}

LABELS = {
    "empty": "Empty",
    "maze": "Maze",
    "scatter": "Scattered",
    "rooms": "Rooms",
}


def generate(grid: HexGrid, key: str, rng: random.Random = None) -> None:
    try:
        gen = GENERATORS[key]
    except KeyError:
        raise ValueError(f"unknown map {key!r}; expected one of {sorted(GENERATORS)}") from None
    gen(grid, rng)
    logger.info("generated %s map: %r", key, grid)
