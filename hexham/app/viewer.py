# hexham/app/viewer.py
#!/usr/bin/env python3
"""
Hexham Viewer: paint a hex grid, pick an algorithm, watch it search.

- Keyboard:
    [1]..[5]        -> tool: move / start / end / wall / erase
    [SPACE]/[ENTER] -> go (run the selected search)
    [ESC]           -> cancel a running search
    [B]/[D]/[A]/[G] -> algorithm: BFS / DFS / A* / Greedy
    [F1]..[F4]      -> generate map: empty / maze / scattered / rooms
    [+]/[-]         -> speed preset
    [R]             -> fit grid to view
    [Q]             -> quit
- Mouse: drag to pan (move tool) or paint, wheel to zoom.

Settings (env, overridden by --flag=value):
    HEXHAM_SPEED / --speed=      slow | normal | fast | instant
    HEXHAM_SEED  / --seed=       integer seed for the map generators
    HEXHAM_MAP   / --map=        empty | maze | scatter | rooms
    HEXHAM_LOG_LEVEL / --log-level=
"""

import logging
import os
import sys
from typing import Dict, List, Optional, Tuple

import pygame

from hexham.core import hex_geometry
from hexham.core.map_generators import GENERATORS, LABELS as MAP_LABELS
from hexham.core.pacing import SPEED_PRESETS, SPEED_ORDER, DEFAULT_SPEED
from hexham.core.search import ALGORITHMS
from hexham.core.session import Session
from hexham.core.types import Cell, Tile, HEX_SIZE, HORIZ_SPACING, VERT_SPACING

logger = logging.getLogger(__name__)


# ---------- Settings resolution ----------
def resolve_setting(flag: str, env: str, default: str, argv: Optional[List[str]] = None) -> str:
    value = os.getenv(env, default)
    for arg in (sys.argv if argv is None else argv):
        if arg.startswith(f"--{flag}="):
            value = arg.split("=", 1)[1]
    return value


def resolve_speed(argv: Optional[List[str]] = None) -> str:
    speed = resolve_setting("speed", "HEXHAM_SPEED", DEFAULT_SPEED, argv).lower()
    if speed not in SPEED_PRESETS:
        logger.warning("unknown speed %r, using %r", speed, DEFAULT_SPEED)
        return DEFAULT_SPEED
    return speed


def resolve_seed(argv: Optional[List[str]] = None) -> Optional[int]:
    raw = resolve_setting("seed", "HEXHAM_SEED", "", argv)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("seed %r is not an integer, ignoring", raw)
        return None


def resolve_map(argv: Optional[List[str]] = None) -> str:
    key = resolve_setting("map", "HEXHAM_MAP", "empty", argv).lower()
    if key not in GENERATORS:
        logger.warning("unknown map %r, using 'empty'", key)
        return "empty"
    return key


# ---------- Config ----------
PANEL_W = 300            # right band: metrics + buttons
GRID_PADDING = 20
MIN_SCALE = 0.1
MAX_SCALE = 5.0
ZOOM_STEP = 1.03
CLICK_SLOP = 5           # px a start/end click may drift
FONT_NAME = None  # default pygame font

TOOLS = ["move", "start", "end", "wall", "open"]
TOOL_KEYS = {pygame.K_1: "move", pygame.K_2: "start", pygame.K_3: "end",
             pygame.K_4: "wall", pygame.K_5: "open"}
ALGO_KEYS = {pygame.K_b: "bfs", pygame.K_d: "dfs", pygame.K_a: "astar", pygame.K_g: "greedy"}
MAP_KEYS = {pygame.K_F1: "empty", pygame.K_F2: "maze", pygame.K_F3: "scatter", pygame.K_F4: "rooms"}
ALGO_LABELS = {"bfs": "BFS", "dfs": "DFS", "astar": "A*", "greedy": "Greedy"}

# Colors (fill, stroke)
BACKGROUND  = ( 26, 26, 46)
TILE_COLORS: Dict[Tile, Tuple[Tuple[int, int, int], Tuple[int, int, int]]] = {
    Tile.OPEN:  (( 42,  42,  74), ( 74,  74, 106)),
    Tile.WALL:  (( 26,  26,  26), ( 51,  51,  51)),
    Tile.START: (( 46, 204, 113), ( 39, 174,  96)),
    Tile.END:   ((231,  76,  60), (192,  57,  43)),
}
PATH_COLORS = ((255, 8, 232), (204, 6, 185))
HOVER_OUTLINE = (255, 255, 255)

CARD_BG     = (24,28,36,220)
CARD_HI     = (255,255,255,18)
TEXT_LIGHT  = (230,235,240)
TEXT_DIM    = (150,156,168)
ACCENT_GOLD = (255,210,0)


def visited_colors(order: int) -> Tuple[pygame.Color, pygame.Color]:
    """Hue cycles 2.5 degrees per visit, so ~150 visits per lap."""
    hue = (order * 2.5) % 360
    fill = pygame.Color(0, 0, 0)
    fill.hsva = (hue, 45, 45, 100)
    stroke = pygame.Color(0, 0, 0)
    stroke.hsva = (hue, 50, 58, 100)
    return fill, stroke


def lighten(color, amount: int = 30) -> Tuple[int, int, int]:
    return tuple(min(255, c + amount) for c in tuple(color)[:3])


# ---------- Simple UI Button ----------
class UIButton:
    def __init__(self, label: str, rect: pygame.Rect, callback, *, togglable: bool = False):
        self.label = label
        self.rect = rect
        self.callback = callback
        self.hover = False
        self.togglable = togglable
        self.active = False   # highlight state
        self.enabled = True

    def set_active(self, value: bool):
        self.active = bool(value)

    def draw(self, screen: pygame.Surface, font: pygame.font.Font):
        base = pygame.Surface(self.rect.size, pygame.SRCALPHA)
        if not self.enabled:
            bg = (30, 33, 40, 160)
        elif self.active and self.togglable:
            bg = (58, 86, 160, 235)   # bluish active
        elif self.hover:
            bg = (46, 50, 60, 230)
        else:
            bg = (36, 40, 48, 220)
        pygame.draw.rect(base, bg, base.get_rect(), border_radius=8)
        screen.blit(base, self.rect.topleft)

        if self.active and self.togglable:
            pygame.draw.rect(screen, (120, 170, 255, 255), self.rect, width=2, border_radius=8)

        color = (235, 238, 242) if self.enabled else TEXT_DIM
        text = font.render(self.label, True, color)
        screen.blit(text, text.get_rect(center=self.rect.center))

    def handle_mouse(self, event: pygame.event.Event) -> bool:
        """True if the event was a click on this button."""
        if event.type == pygame.MOUSEMOTION:
            self.hover = self.rect.collidepoint(event.pos)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                if self.enabled:
                    self.callback()
                return True
        return False


# ---------- Viewer ----------
class Viewer:
    def __init__(self, session: Session, speed: str = DEFAULT_SPEED, size: Tuple[int, int] = (1280, 800)):
        pygame.init()

        self.session = session
        self.grid = session.grid
        self.speed = speed
        self.session.set_pacing(SPEED_PRESETS[speed])
        self.grid.add_listener(self._on_grid_change)

        self.font_small = pygame.font.Font(FONT_NAME, 16)
        self.font = pygame.font.Font(FONT_NAME, 20)
        self.font_big = pygame.font.Font(FONT_NAME, 24)

        self.screen = pygame.display.set_mode(size, pygame.RESIZABLE)
        pygame.display.set_caption("Hexham: Pathfinding on a Hex Grid")
        self.clock = pygame.time.Clock()

        # view transform
        self.offset_x = float(GRID_PADDING)
        self.offset_y = float(GRID_PADDING)
        self.scale = 1.0

        # interaction
        self.tool = "move"
        self.hovered: Optional[Cell] = None
        self._mouse_down = False
        self._down_pos: Optional[Tuple[int, int]] = None
        self._pan_anchor: Tuple[float, float] = (0.0, 0.0)
        self._last_painted: Optional[Cell] = None
        self.selected_map_key = "empty"
        self.quit_requested = False

        self._buttons: List[UIButton] = []
        self._layout(*size)
        self.fit_grid_to_view()

    # ---------- layout ----------
    def _layout(self, win_w: int, win_h: int):
        """Grid canvas on the left, control band of PANEL_W on the right."""
        self.canvas_rect = pygame.Rect(0, 0, max(1, win_w - PANEL_W), win_h)
        self._right_band = pygame.Rect(self.canvas_rect.right, 0, PANEL_W, win_h)
        self._build_buttons()

    # ---------- viewport ----------
    def fit_grid_to_view(self):
        world_w, world_h = hex_geometry.grid_world_size(self.grid.width, self.grid.height)
        avail_w = self.canvas_rect.width - GRID_PADDING * 2
        avail_h = self.canvas_rect.height - GRID_PADDING * 2
        scale = min(avail_w / world_w, avail_h / world_h, MAX_SCALE)
        self.scale = max(scale, MIN_SCALE)
        self.offset_x = float(GRID_PADDING)
        self.offset_y = float(GRID_PADDING)

    def zoom_toward(self, new_scale: float, fx: float, fy: float):
        new_scale = min(MAX_SCALE, max(MIN_SCALE, new_scale))
        change = new_scale / self.scale
        self.offset_x = fx - (fx - self.offset_x) * change
        self.offset_y = fy - (fy - self.offset_y) * change
        self.scale = new_scale

    def cell_at(self, pos: Tuple[int, int]) -> Optional[Cell]:
        if not self.canvas_rect.collidepoint(pos):
            return None
        return hex_geometry.to_coordinate(pos[0], pos[1], self.offset_x, self.offset_y, self.scale,
                                          self.grid.width, self.grid.height)

    def _to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y

    def _visible_range(self) -> Tuple[int, int, int, int]:
        inv = 1.0 / self.scale
        left = -self.offset_x * inv
        top = -self.offset_y * inv
        right = left + self.canvas_rect.width * inv
        bottom = top + self.canvas_rect.height * inv
        min_col = max(0, int(left // HORIZ_SPACING) - 1)
        max_col = min(self.grid.width - 1, int(right // HORIZ_SPACING) + 1)
        min_row = max(0, int(top // VERT_SPACING) - 1)
        max_row = min(self.grid.height - 1, int(bottom // VERT_SPACING) + 1)
        return min_col, max_col, min_row, max_row

    # ---------- main loop ----------
    def run(self):
        while not self.quit_requested:
            self._handle_events()
            self._tick_search()
            self._draw()
            self.clock.tick(60)
        pygame.quit()

    def _tick_search(self):
        try:
            self.session.tick()
        except Exception:
            logger.exception("search step failed; cancelling")
            self.session.cancel()

    # ---------- actions ----------
    def go(self):
        if not self.session.can_search():
            return
        self.session.start_search(refresh=self._refresh_active_states)

    def cancel(self):
        if self.session.cancel():
            logger.info("search cancel requested")

    def switch_algo(self, key: str):
        self.session.select_algorithm(key)
        self._refresh_active_states()

    def generate_map(self, key: str):
        try:
            self.session.generate(key)
            self.selected_map_key = key
        except Exception:
            logger.exception("failed to generate map %s", key)
        self._refresh_active_states()

    def set_tool(self, tool: str):
        self.tool = tool
        self._refresh_active_states()

    def bump_speed(self, dv: int):
        i = SPEED_ORDER.index(self.speed)
        self.speed = SPEED_ORDER[max(0, min(len(SPEED_ORDER) - 1, i + dv))]
        self.session.set_pacing(SPEED_PRESETS[self.speed])

    def _paint(self, cell: Cell):
        self.session.edit(cell[0], cell[1], self.tool)
        self._last_painted = cell

    def _on_grid_change(self, _grid):
        self._refresh_active_states()

    # ---------- events ----------
    def _handle_events(self):
        for e in pygame.event.get():
            if e.type == pygame.QUIT:
                self.quit_requested = True
            elif e.type == pygame.KEYDOWN:
                self.handle_key(e)
            elif e.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.set_mode((e.w, e.h), pygame.RESIZABLE)
                self._layout(e.w, e.h)
            elif e.type in (pygame.MOUSEMOTION, pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP,
                            pygame.MOUSEWHEEL):
                self.handle_mouse(e)

    def handle_key(self, e: pygame.event.Event):
        if e.key == pygame.K_q:
            self.quit_requested = True
        elif e.key == pygame.K_ESCAPE:
            self.cancel()
        elif e.key in (pygame.K_SPACE, pygame.K_RETURN):
            self.go()
        elif e.key == pygame.K_r:
            self.fit_grid_to_view()
        elif e.key in TOOL_KEYS:
            self.set_tool(TOOL_KEYS[e.key])
        elif e.key in ALGO_KEYS:
            self.switch_algo(ALGO_KEYS[e.key])
        elif e.key in MAP_KEYS:
            self.generate_map(MAP_KEYS[e.key])
        elif e.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            self.bump_speed(+1)
        elif e.key in (pygame.K_MINUS, pygame.K_UNDERSCORE, pygame.K_KP_MINUS):
            self.bump_speed(-1)

    def handle_mouse(self, e: pygame.event.Event):
        if e.type == pygame.MOUSEWHEEL:
            mx, my = pygame.mouse.get_pos()
            if self.canvas_rect.collidepoint((mx, my)):
                factor = ZOOM_STEP if e.y > 0 else 1 / ZOOM_STEP
                self.zoom_toward(self.scale * factor, mx, my)
            return

        clicked_button = False
        for b in self._buttons:
            clicked_button = b.handle_mouse(e) or clicked_button
        if clicked_button:
            return

        if e.type == pygame.MOUSEBUTTONDOWN and e.button == 1:
            if not self.canvas_rect.collidepoint(e.pos):
                return
            self._mouse_down = True
            self._down_pos = e.pos
            if self.tool == "move":
                self._pan_anchor = (e.pos[0] - self.offset_x, e.pos[1] - self.offset_y)
            elif self.tool in ("wall", "open"):
                cell = self.cell_at(e.pos)
                if cell is not None:
                    self._paint(cell)

        elif e.type == pygame.MOUSEMOTION:
            self.hovered = self.cell_at(e.pos)
            if not self._mouse_down:
                return
            if self.tool == "move":
                self.offset_x = e.pos[0] - self._pan_anchor[0]
                self.offset_y = e.pos[1] - self._pan_anchor[1]
            elif self.tool in ("wall", "open"):
                cell = self.hovered
                if cell is not None and cell != self._last_painted:
                    self._paint(cell)

        elif e.type == pygame.MOUSEBUTTONUP and e.button == 1:
            if self._down_pos is not None and self.tool in ("start", "end"):
                dx = e.pos[0] - self._down_pos[0]
                dy = e.pos[1] - self._down_pos[1]
                if dx * dx + dy * dy < CLICK_SLOP * CLICK_SLOP:
                    cell = self.cell_at(e.pos)
                    if cell is not None:
                        self._paint(cell)
            self._mouse_down = False
            self._down_pos = None
            self._last_painted = None

    # ---------- drawing ----------
    def _draw(self):
        self.screen.fill(BACKGROUND)
        self._draw_grid()
        self._draw_metrics_and_buttons()
        pygame.display.flip()

    def _cell_colors(self, cell: Cell, tile: Tile):
        if cell in self.grid.path and tile not in (Tile.START, Tile.END):
            return PATH_COLORS
        order = self.grid.visit_order(cell)
        if order is not None and tile is Tile.OPEN:
            return visited_colors(order)
        return TILE_COLORS[tile]

    def _draw_grid(self):
        self.screen.set_clip(self.canvas_rect)
        min_col, max_col, min_row, max_row = self._visible_range()
        outline = max(1, int(round(self.scale)))
        for row in range(min_row, max_row + 1):
            for col in range(min_col, max_col + 1):
                cell = (col, row)
                tile = self.grid.classify(col, row)
                fill, stroke = self._cell_colors(cell, tile)
                pts = [self._to_screen(x, y) for x, y in hex_geometry.hex_polygon(col, row, HEX_SIZE)]
                if cell == self.hovered:
                    pygame.draw.polygon(self.screen, lighten(fill), pts)
                    pygame.draw.polygon(self.screen, HOVER_OUTLINE, pts, outline + 1)
                else:
                    pygame.draw.polygon(self.screen, fill, pts)
                    pygame.draw.polygon(self.screen, stroke, pts, outline)
        self.screen.set_clip(None)

    # ---------- buttons + metrics ----------
    def _build_buttons(self):
        self._buttons.clear()
        rb = self._right_band
        x = rb.x + 16
        y = rb.y + 230  # leaves space for metrics card above
        w = max(160, rb.width - 32)
        h = 30
        gap = 6
        half = (w - 8) // 2

        def add(label, cb, rect, *, togglable=False, store_as: Optional[str] = None):
            btn = UIButton(label, rect, cb, togglable=togglable)
            self._buttons.append(btn)
            if store_as:
                setattr(self, store_as, btn)

        add("Go", self.go, pygame.Rect(x, y, half, h), store_as="btn_go")
        add("Cancel", self.cancel, pygame.Rect(x + half + 8, y, half, h), store_as="btn_cancel")
        y += h + gap * 2

        self.btn_tools: Dict[str, UIButton] = {}
        for i, tool in enumerate(TOOLS):
            rect = pygame.Rect(x + (i % 2) * (half + 8), y, half, h)
            add(f"{i + 1}: {tool.title()}", lambda t=tool: self.set_tool(t), rect, togglable=True)
            self.btn_tools[tool] = self._buttons[-1]
            if i % 2 == 1:
                y += h + gap
        y += h + gap * 2

        self.btn_algos: Dict[str, UIButton] = {}
        for i, key in enumerate(ALGORITHMS):
            rect = pygame.Rect(x + (i % 2) * (half + 8), y, half, h)
            add(ALGO_LABELS[key], lambda k=key: self.switch_algo(k), rect, togglable=True)
            self.btn_algos[key] = self._buttons[-1]
            if i % 2 == 1:
                y += h + gap
        y += gap

        self.btn_maps: Dict[str, UIButton] = {}
        for i, key in enumerate(GENERATORS):
            rect = pygame.Rect(x + (i % 2) * (half + 8), y, half, h)
            add(MAP_LABELS[key], lambda k=key: self.generate_map(k), rect, togglable=True)
            self.btn_maps[key] = self._buttons[-1]
            if i % 2 == 1:
                y += h + gap
        y += gap

        add("Speed -", lambda: self.bump_speed(-1), pygame.Rect(x, y, half, h))
        add("Speed +", lambda: self.bump_speed(+1), pygame.Rect(x + half + 8, y, half, h))

        # after any rebuild (e.g., on resize), refresh which ones are active
        self._refresh_active_states()

    def _refresh_active_states(self):
        if hasattr(self, "btn_go"):
            self.btn_go.enabled = self.session.can_search()
            self.btn_cancel.enabled = self.session.searching
        for tool, btn in getattr(self, "btn_tools", {}).items():
            btn.set_active(tool == self.tool)
        for key, btn in getattr(self, "btn_algos", {}).items():
            btn.set_active(key == self.session.algorithm)
        for key, btn in getattr(self, "btn_maps", {}).items():
            btn.set_active(key == self.selected_map_key)

    def _draw_metrics_and_buttons(self):
        rb = self._right_band
        pygame.draw.rect(self.screen, (18, 20, 28), rb)

        # ---- METRICS CARD (top) ----
        card_h = 210
        card = pygame.Surface((rb.width - 20, card_h), pygame.SRCALPHA)
        pygame.draw.rect(card, CARD_BG, card.get_rect(), border_radius=14)
        hi = pygame.Surface((card.get_width(), 24), pygame.SRCALPHA)
        pygame.draw.rect(hi, CARD_HI, hi.get_rect(), border_radius=14)
        card.blit(hi, (0,0))
        self.screen.blit(card, (rb.x + 10, rb.y + 10))

        x0 = rb.x + 24
        y0 = rb.y + 18

        def line(text, big=False, color=TEXT_LIGHT):
            nonlocal y0
            f = self.font_big if big else self.font
            surf = f.render(text, True, color)
            self.screen.blit(surf, (x0, y0))
            y0 += surf.get_height() + 5

        run = self.session.run
        m = run.last.metrics if run is not None else {}
        state = run.state if run is not None else "idle"
        line("Metrics", big=True, color=ACCENT_GOLD)
        line(f"State: {state.replace('_', ' ')}")
        line(f"Visited: {len(self.grid.visited)}")
        line(f"Frontier: {m.get('open_size', 0)}")
        line(f"Path Len: {max(0, len(self.grid.path) - 1)}")
        line(f"Algo: {ALGO_LABELS[self.session.algorithm]}")
        line(f"Speed: {self.speed}")
        line(self.session.search_hint(), color=TEXT_DIM)

        for b in self._buttons:
            b.draw(self.screen, self.font_small)


# ---------- main ----------
def main(argv: Optional[List[str]] = None):
    level = resolve_setting("log-level", "HEXHAM_LOG_LEVEL", "INFO", argv).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    session = Session(seed=resolve_seed(argv))
    viewer = Viewer(session, speed=resolve_speed(argv))
    viewer.generate_map(resolve_map(argv))
    viewer.run()


if __name__ == "__main__":
    main()
