"""
Render loop and frame sampler.

Both run as tasks on the same event loop. The render loop repaints the live
frame at display rate; the sampler fires an inference tick on a fixed period.
Ticks never overlap: while one is in flight, later firings are skipped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from display.surface import DrawingSurface
from inference.preprocess import preprocess
from models.detection import Overlay
from runtime.errors import InferenceFailure
from .postprocess import PostProcessor, draw_overlay

if TYPE_CHECKING:
    from runtime.context import DetectionContext


@dataclass
class SamplerStats:
    """Runtime statistics for the frame sampler."""
    ticks: int = 0
    completed: int = 0
    skipped: int = 0
    failed: int = 0
    malformed: int = 0
    last_inference_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "ticks": self.ticks,
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": self.failed,
            "malformed": self.malformed,
            "last_inference_ms": self.last_inference_ms,
        }


class FrameSampler:
    """
    Fixed-period inference scheduler.

    Each firing checks its preconditions (model session loaded, stream
    active) and, if they hold and no tick is in flight, starts one tick:
    off-screen render -> preprocess -> infer -> postprocess.
    """

    def __init__(self, ctx: DetectionContext, postprocessor: PostProcessor, interval_ms: int = 100):
        self.ctx = ctx
        self.postprocessor = postprocessor
        self.interval_ms = interval_ms
        self.stats = SamplerStats()
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def fire(self) -> Optional[asyncio.Task]:
        """Start one tick, or return None when it is a no-op or skipped."""
        if self.ctx.session is None or not self.ctx.stream_active:
            return None
        if self.busy:
            self.stats.skipped += 1
            logging.debug("Previous tick still in flight; skipping")
            return None

        self.stats.ticks += 1
        task = asyncio.get_running_loop().create_task(self.tick(), name=f"tick:{self.stats.ticks}")
        task.add_done_callback(self._log_tick_error)
        self._in_flight = task
        return task

    async def tick(self) -> Optional[Overlay]:
        ctx = self.ctx
        frame_data = ctx.current_frame
        if frame_data is None or ctx.session is None:
            return None

        tensor = preprocess(ctx.offscreen.render(frame_data), ctx.offscreen.size)
        logging.debug(f"Input Tensor Shape: {list(tensor.shape)}")

        started = time.perf_counter()
        try:
            result = await ctx.session.run(tensor)
        except InferenceFailure as e:
            self.stats.failed += 1
            logging.error(str(e))
            return None
        self.stats.last_inference_ms = (time.perf_counter() - started) * 1000.0

        if not ctx.stream_active:
            logging.debug("Stream stopped during inference; discarding result")
            return None

        overlay = self.postprocessor.process(result, ctx.current_frame, ctx.surface)
        if overlay is None:
            self.stats.malformed += 1
            return None

        ctx.last_overlay = overlay
        self.stats.completed += 1
        return overlay

    def _log_tick_error(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.stats.failed += 1
            logging.error(f"Tick failed: {exc!r}")

    async def cancel_in_flight(self) -> None:
        task, self._in_flight = self._in_flight, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def run(self) -> None:
        """Fire every interval_ms until cancelled; cancels the in-flight tick on exit."""
        loop = asyncio.get_running_loop()
        period = self.interval_ms / 1000.0
        next_at = loop.time()
        try:
            while True:
                self.fire()
                next_at += period
                delay = next_at - loop.time()
                if delay < 0:
                    # Fell behind (suspended loop); restart the cadence from now
                    next_at = loop.time()
                    delay = 0.0
                await asyncio.sleep(delay)
        finally:
            await self.cancel_in_flight()


class RenderLoop:
    """
    Display-rate repaint of the live frame.

    Stops by itself as soon as the stream has no frame to give (stopped or
    ended); no error is raised. on_frame, if set, is called after every
    paint and returning False ends the loop with quit_requested set.
    """

    def __init__(
        self,
        ctx: DetectionContext,
        refresh_hz: int = 60,
        on_frame: Optional[Callable[[DrawingSurface], bool]] = None,
    ):
        self.ctx = ctx
        self.refresh_hz = refresh_hz
        self.on_frame = on_frame
        self.frames = 0
        self.quit_requested = False

    def paint(self) -> bool:
        frame_data = self.ctx.current_frame
        if frame_data is None:
            return False
        surface = self.ctx.surface
        with surface.batch():
            surface.draw_image(frame_data.frame)
            if self.ctx.last_overlay is not None:
                draw_overlay(surface, self.ctx.last_overlay)
        self.frames += 1
        return True

    async def run(self) -> None:
        period = 1.0 / self.refresh_hz
        self.quit_requested = False
        while self.ctx.stream_active:
            if not self.paint():
                break
            if self.on_frame is not None and not self.on_frame(self.ctx.surface):
                self.quit_requested = True
                break
            await asyncio.sleep(period)
        logging.debug(f"Render loop stopped after {self.frames} frames")
