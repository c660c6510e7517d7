# hexham/core/grid.py
#!/usr/bin/env python3
"""
Grid model: sparse tile store plus the byproducts of the current search run.

Only non-open cells are stored. Start/end are unique; placing a new one turns
the previous holder back into open ground. Every edit through set_tile()
invalidates the run state and notifies listeners.
"""

import logging
from typing import Callable, Dict, List, Optional, Set, Union

from hexham.core import hex_geometry
from hexham.core.types import Cell, Tile, GRID_WIDTH, GRID_HEIGHT

logger = logging.getLogger(__name__)

Listener = Callable[["HexGrid"], None]


class HexGrid:
    def __init__(self, width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> None:
        self.width = width
        self.height = height
        self.tiles: Dict[Cell, Tile] = {}
        self.start: Optional[Cell] = None
        self.end: Optional[Cell] = None

        # run state
        self.visited: Dict[Cell, int] = {}   # cell -> visit order
        self.path: Set[Cell] = set()
        self.searching = False
        self.max_visit_order = 0

        self._listeners: List[Listener] = []

    # -------------------- queries --------------------

    def in_bounds(self, c: Cell) -> bool:
        return hex_geometry.in_bounds(c[0], c[1], self.width, self.height)

    def classify(self, col: int, row: int) -> Tile:
        return self.tiles.get((col, row), Tile.OPEN)

    def is_wall(self, c: Cell) -> bool:
        return self.tiles.get(c) is Tile.WALL

    def neighbors(self, c: Cell) -> List[Cell]:
        return hex_geometry.neighbors(c[0], c[1], self.width, self.height)

    def passable_neighbors(self, c: Cell) -> List[Cell]:
        return [n for n in self.neighbors(c) if not self.is_wall(n)]

    def visit_order(self, c: Cell) -> Optional[int]:
        return self.visited.get(c)

    def is_visited(self, c: Cell) -> bool:
        return c in self.visited

    # -------------------- observers --------------------

    def add_listener(self, callback: Listener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def notify(self) -> None:
        for cb in list(self._listeners):
            cb(self)

    # -------------------- edits --------------------

    def set_tile(self, col: int, row: int, tile: Union[Tile, str]) -> bool:
        """
        Classify (col, row) as `tile`. Returns True if the classification changed.

        Always clears the run state, even when nothing changed.
        """
        tile = Tile(tile)
        c = (col, row)
        if not self.in_bounds(c):
            raise ValueError(f"cell {c} outside {self.width}x{self.height} grid")
        before = self.classify(col, row)

        if tile is Tile.START:
            if self.start is not None:
                self.tiles.pop(self.start, None)
            self.start = c
        elif tile is Tile.END:
            if self.end is not None:
                self.tiles.pop(self.end, None)
            self.end = c

        # overwriting a start/end drops the stale reference
        if self.start == c and tile is not Tile.START:
            self.start = None
        if self.end == c and tile is not Tile.END:
            self.end = None

        if tile is Tile.OPEN:
            self.tiles.pop(c, None)
        else:
            self.tiles[c] = tile

        self.clear_run()
        self.notify()
        return before is not tile

    def reset(self) -> None:
        self.tiles.clear()
        self.start = None
        self.end = None
        self.clear_run()
        logger.debug("grid %dx%d reset", self.width, self.height)

    # Bulk edits used by the map generators. They skip listeners and the
    # start/end bookkeeping; callers finish with place_endpoints() + notify().

    def fill_walls(self) -> None:
        for row in range(self.height):
            for col in range(self.width):
                self.tiles[(col, row)] = Tile.WALL

    def build_wall(self, c: Cell) -> None:
        if self.in_bounds(c):
            self.tiles[c] = Tile.WALL

    def carve(self, c: Cell) -> None:
        self.tiles.pop(c, None)

    def place_endpoints(self, start: Cell, end: Cell) -> None:
        for c in (self.start, self.end):
            if c is not None and self.tiles.get(c) in (Tile.START, Tile.END):
                del self.tiles[c]
        self.start, self.end = start, end
        self.tiles[start] = Tile.START
        self.tiles[end] = Tile.END

    # -------------------- run state --------------------

    def clear_run(self) -> None:
        self.visited.clear()
        self.path.clear()
        self.searching = False
        self.max_visit_order = 0

    def record_visit(self, c: Cell, order: int) -> None:
        self.visited[c] = order
        if order > self.max_visit_order:
            self.max_visit_order = order

    def mark_path(self, cells: List[Cell]) -> None:
        self.path.update(cells)

    def __repr__(self) -> str:
        return (f"HexGrid({self.width}x{self.height}, walls={sum(1 for t in self.tiles.values() if t is Tile.WALL)}, "
                f"start={self.start}, end={self.end})")
