# hexham/core/pacing.py
#!/usr/bin/env python3
"""
Pacing for a SearchRun: how many steps per yield and how often to yield.

The run itself never sleeps or reads a clock. PacedRunner is the scheduler a
frame loop calls once per frame; it decides whether enough time has passed to
hand the run another batch.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from hexham.core.search import SearchRun
from hexham.core.types import StepResult


@dataclass(frozen=True)
class PacingConfig:
    steps_per_yield: int = 10
    frame_interval: float = 0.005  # seconds between yields; 0 = never throttle

    def __post_init__(self) -> None:
        if self.steps_per_yield < 1:
            raise ValueError("steps_per_yield must be >= 1")
        if self.frame_interval < 0:
            raise ValueError("frame_interval must be >= 0")


SPEED_PRESETS: Dict[str, PacingConfig] = {
    "slow":    PacingConfig(steps_per_yield=2,    frame_interval=0.03),
    "normal":  PacingConfig(steps_per_yield=10,   frame_interval=0.005),
    "fast":    PacingConfig(steps_per_yield=50,   frame_interval=0.005),
    "instant": PacingConfig(steps_per_yield=1000, frame_interval=0.0),
}
SPEED_ORDER = ["slow", "normal", "fast", "instant"]
DEFAULT_SPEED = "normal"


class PacedRunner:
    def __init__(self, run: SearchRun, pacing: PacingConfig,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.run = run
        self.pacing = pacing
        self.clock = clock
        self._last_yield: Optional[float] = None

    def tick(self) -> Optional[StepResult]:
        """Advance one batch if due. None when throttled or the run is over."""
        if not self.run.running:
            return None
        now = self.clock()
        if (self._last_yield is not None and self.pacing.frame_interval > 0
                and now - self._last_yield < self.pacing.frame_interval):
            return None
        self._last_yield = now
        return self.run.advance(self.pacing.steps_per_yield)

    def run_to_completion(self, sleep: Optional[Callable[[float], None]] = None) -> StepResult:
        """Drive the run to a terminal state, optionally sleeping between batches."""
        res = self.run.last
        while self.run.running:
            res = self.run.advance(self.pacing.steps_per_yield)
            if sleep is not None and self.run.running and self.pacing.frame_interval > 0:
                sleep(self.pacing.frame_interval)
        return res
