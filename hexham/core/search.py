# hexham/core/search.py
#!/usr/bin/env python3
"""
Search algorithms, one finalized cell per step() for animation.

Every algorithm implements the API driven by SearchRun:
- init(grid) - reset() - step() -> StepResult

They share the bookkeeping (visit order, predecessor map, path walk-back) and
differ only in frontier discipline and revisit policy:

  bfs     FIFO queue, a cell is enqueued once (guarded by the parent map)
  dfs     LIFO stack, a cell may be pushed many times, finalized once
  astar   heap on (g+h, h, seq); re-pushed when g improves
  greedy  heap on (h, seq); pushed once, ignores path length

Tie-breaking in the heaps: lower h first (A* only), then FIFO by seq.
Walls are never expanded into. A run ends the moment the end cell is popped.
"""

import heapq
import logging
from collections import deque
from dataclasses import dataclass, field
from math import inf
from typing import Callable, Deque, Dict, List, Optional, Tuple

from hexham.core.grid import HexGrid
from hexham.core.hex_geometry import hex_distance
from hexham.core.types import (
    Cell, StepResult, IDLE, RUNNING, DONE, NO_PATH, CANCELLED, TERMINAL,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchAlgo:
    name: str = "search"

    grid: Optional[HexGrid] = None
    parent: Dict[Cell, Optional[Cell]] = field(default_factory=dict)  # start -> None
    visit_count: int = 0
    done: bool = False
    no_path: bool = False
    goal_cell: Optional[Cell] = None
    path: List[Cell] = field(default_factory=list)

    # -------------------- lifecycle --------------------

    def init(self, grid: HexGrid) -> None:
        """Attach to a grid and seed the frontier with its start cell."""
        self.grid = grid
        self.reset()

    def reset(self) -> None:
        if self.grid is None or self.grid.start is None:
            return
        self._clear_frontier()
        self.parent.clear()
        self.visit_count = 0
        self.done = False
        self.no_path = False
        self.goal_cell = self.grid.end
        self.path = []

        s = self.grid.start
        self.parent[s] = None
        self._push_start(s)

    # -------------------- frontier policy --------------------

    def _clear_frontier(self) -> None:
        raise NotImplementedError

    def _push_start(self, s: Cell) -> None:
        raise NotImplementedError

    def _pop(self) -> Optional[Cell]:
        """Next frontier cell, or None when the frontier is empty."""
        raise NotImplementedError

    def _expand(self, u: Cell) -> None:
        raise NotImplementedError

    def frontier_size(self) -> int:
        raise NotImplementedError

    # -------------------- shared stepping --------------------

    def _next_unvisited(self) -> Optional[Cell]:
        while True:
            u = self._pop()
            if u is None or not self.grid.is_visited(u):
                return u

    def _reconstruct_path(self, end: Cell) -> List[Cell]:
        path: List[Cell] = []
        cur: Optional[Cell] = end
        while cur is not None:
            path.append(cur)
            cur = self.parent[cur]
        path.reverse()
        return path

    def step(self) -> StepResult:
        """
        Finalize ONE cell:
          - Pop until an unvisited cell comes out (stale entries are dropped).
          - Record its visit order on the grid.
          - If it is the end cell, walk the parent map back and mark the path.
          - Else push its neighbors per the frontier policy.
        """
        if self.grid is None:
            return StepResult(status=IDLE, metrics={"algo": self.name})

        if self.done:
            return StepResult(status=DONE, path=list(self.path), metrics=self.metrics())

        if self.no_path:
            return StepResult(status=NO_PATH, metrics=self.metrics())

        u = self._next_unvisited()
        if u is None:
            self.no_path = True
            return StepResult(status=NO_PATH, metrics=self.metrics())

        self.grid.record_visit(u, self.visit_count)
        self.visit_count += 1

        if u == self.goal_cell:
            self.done = True
            self.path = self._reconstruct_path(u)
            self.grid.mark_path(self.path)
            return StepResult(status=DONE, visited=[u], current=u, path=list(self.path),
                              metrics=self.metrics())

        self._expand(u)
        return StepResult(status=RUNNING, visited=[u], current=u, metrics=self.metrics())

    # -------------------- metrics --------------------

    def metrics(self) -> dict:
        return {
            "algo": self.name,
            "visited": self.visit_count,
            "open_size": self.frontier_size(),
            "path_len": max(0, len(self.path) - 1),  # moves, not cells
        }


@dataclass
class BreadthFirst(SearchAlgo):
    name: str = "Breadth First Search"
    queue: Deque[Cell] = field(default_factory=deque)

    def _clear_frontier(self) -> None:
        self.queue.clear()

    def _push_start(self, s: Cell) -> None:
        self.queue.append(s)

    def _pop(self) -> Optional[Cell]:
        return self.queue.popleft() if self.queue else None

    def _expand(self, u: Cell) -> None:
        for v in self.grid.neighbors(u):
            if v in self.parent or self.grid.is_wall(v):
                continue
            self.parent[v] = u
            self.queue.append(v)

    def frontier_size(self) -> int:
        return len(self.queue)


@dataclass
class DepthFirst(SearchAlgo):
    name: str = "Depth First Search"
    stack: List[Cell] = field(default_factory=list)

    def _clear_frontier(self) -> None:
        self.stack.clear()

    def _push_start(self, s: Cell) -> None:
        self.stack.append(s)

    def _pop(self) -> Optional[Cell]:
        return self.stack.pop() if self.stack else None

    def _expand(self, u: Cell) -> None:
        for v in self.grid.neighbors(u):
            if self.grid.is_visited(v) or self.grid.is_wall(v):
                continue
            # first discoverer wins
            self.parent.setdefault(v, u)
            self.stack.append(v)

    def frontier_size(self) -> int:
        return len(self.stack)


@dataclass
class AStar(SearchAlgo):
    name: str = "A*"
    open_pq: List[Tuple[int, int, int, Cell]] = field(default_factory=list)  # (f, h, seq, cell)
    g: Dict[Cell, int] = field(default_factory=dict)
    seq: int = 0  # monotonic counter for PQ stability

    def _bump(self) -> int:
        self.seq += 1
        return self.seq

    def _h(self, c: Cell) -> int:
        return hex_distance(c, self.goal_cell)

    def _clear_frontier(self) -> None:
        self.open_pq.clear()
        self.g.clear()
        self.seq = 0

    def _push_start(self, s: Cell) -> None:
        self.g[s] = 0
        h0 = self._h(s)
        heapq.heappush(self.open_pq, (h0, h0, self._bump(), s))

    def _pop(self) -> Optional[Cell]:
        if not self.open_pq:
            return None
        return heapq.heappop(self.open_pq)[3]

    def _expand(self, u: Cell) -> None:
        for v in self.grid.passable_neighbors(u):
            if self.grid.is_visited(v):
                continue
            alt = self.g[u] + 1
            if alt < self.g.get(v, inf):
                self.g[v] = alt
                self.parent[v] = u
                h = self._h(v)
                heapq.heappush(self.open_pq, (alt + h, h, self._bump(), v))

    def frontier_size(self) -> int:
        return len(self.open_pq)


@dataclass
class GreedyBestFirst(SearchAlgo):
    name: str = "Greedy Best-First"
    open_pq: List[Tuple[int, int, Cell]] = field(default_factory=list)  # (h, seq, cell)
    seq: int = 0

    def _bump(self) -> int:
        self.seq += 1
        return self.seq

    def _clear_frontier(self) -> None:
        self.open_pq.clear()
        self.seq = 0

    def _push_start(self, s: Cell) -> None:
        heapq.heappush(self.open_pq, (hex_distance(s, self.goal_cell), self._bump(), s))

    def _pop(self) -> Optional[Cell]:
        if not self.open_pq:
            return None
        return heapq.heappop(self.open_pq)[2]

    def _expand(self, u: Cell) -> None:
        for v in self.grid.passable_neighbors(u):
            if self.grid.is_visited(v) or v in self.parent:
                continue
            self.parent[v] = u
            heapq.heappush(self.open_pq, (hex_distance(v, self.goal_cell), self._bump(), v))

    def frontier_size(self) -> int:
        return len(self.open_pq)


ALGORITHMS = {
    "bfs": BreadthFirst,
    "dfs": DepthFirst,
    "astar": AStar,
    "greedy": GreedyBestFirst,
}


def make_algo(key: str) -> SearchAlgo:
    try:
        return ALGORITHMS[key]()
    except KeyError:
        raise ValueError(f"unknown algorithm {key!r}; expected one of {sorted(ALGORITHMS)}") from None


Callback = Optional[Callable[[], None]]


class SearchRun:
    """
    One pathfinding run over a grid: idle -> running -> done | no_path | cancelled.

    advance(n) is the only suspension point. It does up to n algorithm steps
    and hands control back; whoever drives it decides the pacing. A pending
    cancel() is honoured at the top of the next advance(), keeping whatever
    visit data was recorded so far.

    While running, the run listens on its grid; any edit that notifies
    listeners requests a cancel before the next step can write a visit.
    """

    def __init__(self, grid: HexGrid, algorithm: str = "bfs",
                 render: Callback = None, refresh: Callback = None) -> None:
        self.grid = grid
        self.algo = make_algo(algorithm)
        self.render = render
        self.refresh = refresh
        self.state = IDLE
        self.steps = 0
        self.last = StepResult(status=IDLE, metrics={"algo": self.algo.name})
        self._cancel_requested = False

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL

    def start(self) -> bool:
        """Begin the run. False (and nothing touched) if already running or start/end unset."""
        if self.running:
            logger.debug("%s: refusing to start, run already in progress", self.algo.name)
            return False
        if self.grid.start is None or self.grid.end is None:
            logger.debug("%s: start or end not set, nothing to do", self.algo.name)
            return False

        self._cancel_requested = False
        self.steps = 0
        self.grid.clear_run()
        self.grid.searching = True
        self.state = RUNNING
        self.algo.init(self.grid)
        self.grid.add_listener(self._on_grid_change)
        self.last = StepResult(status=RUNNING, metrics=self.algo.metrics())
        logger.info("%s: search %s -> %s", self.algo.name, self.grid.start, self.grid.end)

        self._fire(self.refresh)
        self._fire(self.render)
        return True

    def cancel(self) -> None:
        if self.running:
            self._cancel_requested = True

    def _on_grid_change(self, _grid: HexGrid) -> None:
        if self.running and not self._cancel_requested:
            logger.info("%s: grid changed mid-search, cancelling", self.algo.name)
        self.cancel()

    def advance(self, max_steps: int) -> StepResult:
        if not self.running:
            return self.last

        if self._cancel_requested:
            return self._finish(CANCELLED, [])

        visited: List[Cell] = []
        res: Optional[StepResult] = None
        for _ in range(max_steps):
            res = self.algo.step()
            self.steps += 1
            visited.extend(res.visited)
            if res.finished:
                return self._finish(res.status, visited, res)

        self.last = StepResult(status=RUNNING, visited=visited,
                               current=res.current if res else None,
                               metrics=self._metrics())
        self._fire(self.render)
        return self.last

    def _finish(self, status: str, visited: List[Cell], res: Optional[StepResult] = None) -> StepResult:
        self.state = status
        self.grid.searching = False
        self.grid.remove_listener(self._on_grid_change)
        self.last = StepResult(status=status, visited=visited,
                               current=res.current if res else None,
                               path=res.path if res else None,
                               metrics=self._metrics())
        logger.info("%s: %s after %d visits (path_len=%d)", self.algo.name, status,
                    self.algo.visit_count, self.last.metrics["path_len"])
        self._fire(self.refresh)
        self._fire(self.render)
        return self.last

    def _metrics(self) -> dict:
        m = self.algo.metrics()
        m["steps"] = self.steps
        m["max_visit_order"] = self.grid.max_visit_order
        return m

    @staticmethod
    def _fire(cb: Callback) -> None:
        if cb is not None:
            cb()
