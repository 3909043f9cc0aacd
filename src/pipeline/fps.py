"""
Frame-rate measurement for the detection overlay.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

# Zero-length intervals would divide by zero; cap the reading at 1000 fps
MIN_ELAPSED_MS = 1.0


class FpsTracker:
    """
    Measures the interval between successive postprocess passes.

    The baseline is construction time, so the first reading reflects the time
    since startup rather than since a previous tick.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.last_timestamp = clock()
        self.fps: Optional[float] = None

    def tick(self) -> float:
        now = self._clock()
        elapsed_ms = max((now - self.last_timestamp) * 1000.0, MIN_ELAPSED_MS)
        self.last_timestamp = now
        self.fps = round(1000.0 / elapsed_ms, 1)
        return self.fps
