# hexham/core/hex_geometry.py
#!/usr/bin/env python3
"""
Pointy-topped hex math for an "odd-r" offset grid.

Odd rows are pushed right by half a column, so the neighbor deltas depend on
row parity. Distances go through cube coordinates.
"""

import math
from typing import List, Optional, Tuple

from hexham.core.types import (
    Cell, GRID_WIDTH, GRID_HEIGHT, HEX_SIZE, HEX_WIDTH, HORIZ_SPACING, VERT_SPACING,
)

# (dcol, drow) per row parity
EVEN_ROW_DIRECTIONS: Tuple[Cell, ...] = (
    (+1, 0), (0, -1), (-1, -1),
    (-1, 0), (-1, +1), (0, +1),
)
ODD_ROW_DIRECTIONS: Tuple[Cell, ...] = (
    (+1, 0), (+1, -1), (0, -1),
    (-1, 0), (0, +1), (+1, +1),
)


def in_bounds(col: int, row: int, width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> bool:
    return 0 <= col < width and 0 <= row < height


def to_pixel(col: int, row: int) -> Tuple[float, float]:
    """World-space center of (col, row). Cell (0, 0) touches the origin."""
    x = HEX_WIDTH / 2 + col * HORIZ_SPACING + (row % 2) * (HORIZ_SPACING / 2)
    y = HEX_SIZE + row * VERT_SPACING
    return x, y


def to_coordinate(px: float, py: float,
                  offset_x: float = 0.0, offset_y: float = 0.0, scale: float = 1.0,
                  width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> Optional[Cell]:
    """
    Screen point -> cell under it, or None.

    The viewport transform (offset, scale) is undone first. The offset layout
    makes a plain rounding ambiguous, so the 3x3 block around the approximate
    row/col is searched for the nearest center within one hex radius.
    """
    if scale == 0:
        raise ValueError("scale must be non-zero")
    wx = (px - offset_x) / scale
    wy = (py - offset_y) / scale

    approx_row = round((wy - HEX_SIZE) / VERT_SPACING)
    best: Optional[Cell] = None
    best_d = math.inf
    for row in range(approx_row - 1, approx_row + 2):
        if row < 0 or row >= height:
            continue
        row_shift = (row % 2) * (HORIZ_SPACING / 2)
        approx_col = round((wx - HEX_WIDTH / 2 - row_shift) / HORIZ_SPACING)
        for col in range(approx_col - 1, approx_col + 2):
            if col < 0 or col >= width:
                continue
            cx, cy = to_pixel(col, row)
            d = math.hypot(wx - cx, wy - cy)
            if d < best_d and d < HEX_SIZE:
                best_d = d
                best = (col, row)
    return best


def neighbors(col: int, row: int, width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> List[Cell]:
    """Up to six adjacent cells, clipped to the grid (no wraparound)."""
    deltas = EVEN_ROW_DIRECTIONS if row % 2 == 0 else ODD_ROW_DIRECTIONS
    out: List[Cell] = []
    for dc, dr in deltas:
        nc, nr = col + dc, row + dr
        if in_bounds(nc, nr, width, height):
            out.append((nc, nr))
    return out


def to_cube(col: int, row: int) -> Tuple[int, int, int]:
    x = col - (row - (row & 1)) // 2
    z = row
    return x, -x - z, z


def hex_distance(a: Cell, b: Cell) -> int:
    """Exact step count between two cells on an open grid (admissible for A*)."""
    ax, ay, az = to_cube(*a)
    bx, by, bz = to_cube(*b)
    return (abs(ax - bx) + abs(ay - by) + abs(az - bz)) // 2


def hex_polygon(col: int, row: int, size: float = HEX_SIZE) -> List[Tuple[float, float]]:
    """Six world-space corners of a pointy-topped hex."""
    cx, cy = to_pixel(col, row)
    pts: List[Tuple[float, float]] = []
    for i in range(6):
        angle = math.pi / 3 * i - math.pi / 6
        pts.append((cx + size * math.cos(angle), cy + size * math.sin(angle)))
    return pts


def grid_world_size(width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> Tuple[float, float]:
    """World-space extent of the whole grid, used to fit it into a viewport."""
    return HEX_WIDTH + width * HORIZ_SPACING, HEX_SIZE * 2 + height * VERT_SPACING
