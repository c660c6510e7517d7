# hexham/core/session.py
#!/usr/bin/env python3
"""
Session: the one place that owns the grid, the rng, the pacing and the single
active search run. Front ends go through it so that an edit or a new map can
never race a run that is still writing visit orders.
"""

import logging
import random
from typing import Callable, Optional, Union

from hexham.core import map_generators
from hexham.core.grid import HexGrid
from hexham.core.pacing import PacedRunner, PacingConfig, SPEED_PRESETS, DEFAULT_SPEED
from hexham.core.search import ALGORITHMS, SearchRun
from hexham.core.types import GRID_WIDTH, GRID_HEIGHT, StepResult, Tile

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, width: int = GRID_WIDTH, height: int = GRID_HEIGHT,
                 pacing: Optional[PacingConfig] = None, seed: Optional[int] = None) -> None:
        self.grid = HexGrid(width, height)
        self.rng = random.Random(seed)
        self.pacing = pacing or SPEED_PRESETS[DEFAULT_SPEED]
        self.algorithm = "bfs"
        self.run: Optional[SearchRun] = None
        self.runner: Optional[PacedRunner] = None

    # -------------------- state --------------------

    @property
    def searching(self) -> bool:
        return self.run is not None and self.run.running

    def can_search(self) -> bool:
        return self.grid.start is not None and self.grid.end is not None and not self.searching

    def search_hint(self) -> str:
        has_start = self.grid.start is not None
        has_end = self.grid.end is not None
        if self.searching:
            return "Searching..."
        if has_start and has_end:
            return "Find path from start to end"
        if not has_start and not has_end:
            return "Set a start and end point first"
        if not has_start:
            return "Set a start point first"
        return "Set an end point first"

    def select_algorithm(self, key: str) -> None:
        if key not in ALGORITHMS:
            raise ValueError(f"unknown algorithm {key!r}; expected one of {sorted(ALGORITHMS)}")
        self.algorithm = key

    def set_pacing(self, pacing: PacingConfig) -> None:
        self.pacing = pacing
        if self.runner is not None:
            self.runner.pacing = pacing

    # -------------------- mutations --------------------

    def edit(self, col: int, row: int, tile: Union[Tile, str]) -> bool:
        self._stop_run()
        return self.grid.set_tile(col, row, tile)

    def generate(self, key: str) -> None:
        self._stop_run()
        map_generators.generate(self.grid, key, self.rng)

    def reset(self) -> None:
        self._stop_run()
        self.grid.reset()
        self.grid.notify()

    # -------------------- search --------------------

    def start_search(self, algorithm: Optional[str] = None,
                     render: Optional[Callable[[], None]] = None,
                     refresh: Optional[Callable[[], None]] = None) -> Optional[SearchRun]:
        """Start a run with the selected algorithm. None if one is running or start/end are missing."""
        if self.searching:
            logger.debug("search already running; start refused")
            return None
        if algorithm is not None:
            self.select_algorithm(algorithm)
        run = SearchRun(self.grid, self.algorithm, render=render, refresh=refresh)
        previous = self.run
        # visible to the start callbacks, so can_search() already reads False
        self.run = run
        if not run.start():
            self.run = previous
            return None
        self.runner = PacedRunner(run, self.pacing)
        return run

    def tick(self) -> Optional[StepResult]:
        if self.runner is None:
            return None
        return self.runner.tick()

    def finish(self) -> Optional[StepResult]:
        """Run the active search to the end without throttling."""
        if self.runner is None:
            return None
        return self.runner.run_to_completion()

    def cancel(self) -> bool:
        """Request cancellation; the runner sees it at its next yield."""
        if not self.searching:
            return False
        self.run.cancel()
        return True

    def _stop_run(self) -> None:
        if self.searching:
            self.run.cancel()
            self.run.advance(0)
            logger.info("in-flight search cancelled by a grid change")
