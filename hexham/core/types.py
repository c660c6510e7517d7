# hexham/core/types.py
#!/usr/bin/env python3
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Optional, Dict, Any

Cell = Tuple[int, int]  # (col, row)

# Grid configuration
GRID_WIDTH = 100
GRID_HEIGHT = 100
HEX_SIZE = 12.0

# Pointy-topped hexagon geometry
HEX_WIDTH = math.sqrt(3.0) * HEX_SIZE
HEX_HEIGHT = 2.0 * HEX_SIZE
HORIZ_SPACING = HEX_WIDTH
VERT_SPACING = HEX_HEIGHT * 0.75

# StepResult.status values
IDLE = "idle"
RUNNING = "running"
DONE = "done"
NO_PATH = "no_path"
CANCELLED = "cancelled"
TERMINAL = (DONE, NO_PATH, CANCELLED)


class Tile(Enum):
    OPEN = "open"
    WALL = "wall"
    START = "start"
    END = "end"


@dataclass
class StepResult:
    status: str                   # "idle" | "running" | "done" | "no_path" | "cancelled"
    visited: List[Cell] = field(default_factory=list)
    current: Optional[Cell] = None
    path: Optional[List[Cell]] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def finished(self) -> bool:
        return self.status in TERMINAL

    @property
    def found(self) -> bool:
        return self.status == DONE
