"""
Start/stop control for the overlay.

The controller owns the task lifecycle: start acquires the camera and spawns
the render loop and frame sampler; stop cancels both (including any
in-flight tick) and releases the camera. It backs the web UI buttons and the
CLI autostart.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from display.surface import DrawingSurface
from observation.base import ObservationSource
from observation.stream import VideoStream
from pipeline.postprocess import PostProcessor
from pipeline.scheduler import FrameSampler, RenderLoop
from .context import DetectionContext
from .errors import AcquisitionFailure, PlaybackFailure


class OverlayController:
    def __init__(
        self,
        ctx: DetectionContext,
        source_factory: Callable[[], ObservationSource],
        postprocessor: Optional[PostProcessor] = None,
        on_frame: Optional[Callable[[DrawingSurface], bool]] = None,
    ):
        self.ctx = ctx
        self._source_factory = source_factory
        if postprocessor is None:
            postprocessor = self._default_postprocessor(ctx)
        self.sampler = (
            FrameSampler(ctx, postprocessor, interval_ms=ctx.config.sampler.interval_ms)
            if postprocessor is not None
            else None
        )
        self.render_loop = RenderLoop(ctx, refresh_hz=ctx.config.display.refresh_hz, on_frame=on_frame)
        self.start_enabled = True
        self.last_error: Optional[str] = None
        self._sampler_task: Optional[asyncio.Task] = None
        self._render_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None

    @staticmethod
    def _default_postprocessor(ctx: DetectionContext) -> Optional[PostProcessor]:
        if ctx.session is None:
            return None
        return PostProcessor.from_config(
            ctx.config.detection,
            boxes_output=ctx.session.boxes_output,
            scores_output=ctx.session.scores_output,
            fps_tracker=ctx.fps,
        )

    @property
    def running(self) -> bool:
        return self.ctx.stream_active

    async def start(self) -> bool:
        """
        Acquire the camera and start rendering and sampling.

        Returns False if a start is already in progress or the camera could
        not be acquired; the failure is logged and the start control is
        re-enabled either way.
        """
        if not self.start_enabled:
            logging.warning("Start requested while a start is already in progress")
            return False
        self.start_enabled = False
        try:
            if self.ctx.stream is not None:
                await self.stop()

            stream = VideoStream(self._source_factory())
            try:
                await stream.start()
            except (AcquisitionFailure, PlaybackFailure) as e:
                self.last_error = str(e)
                logging.error(self.last_error)
                return False
        finally:
            self.start_enabled = True

        self.last_error = None
        self.ctx.stream = stream
        loop = asyncio.get_running_loop()
        self._render_task = loop.create_task(self.render_loop.run(), name="render-loop")
        self._render_task.add_done_callback(self._on_render_done)
        if self.sampler is not None:
            self._sampler_task = loop.create_task(self.sampler.run(), name="frame-sampler")
        else:
            logging.warning("No model session; showing live video without detections")
        return True

    def _on_render_done(self, task: asyncio.Task) -> None:
        if self.render_loop.quit_requested and task is self._render_task:
            logging.info("Quit requested from preview window")
            self._stop_task = asyncio.get_running_loop().create_task(self.stop(), name="preview-quit-stop")

    async def stop(self) -> None:
        """Stop sampling and rendering and release the camera. Idempotent."""
        tasks = [t for t in (self._sampler_task, self._render_task) if t is not None]
        self._sampler_task = None
        self._render_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        stream, self.ctx.stream = self.ctx.stream, None
        self.ctx.last_overlay = None
        if stream is not None:
            await stream.stop()
            logging.info("Stream stopped")

    def status(self) -> Dict[str, Any]:
        fps = self.ctx.fps.fps
        frame = self.ctx.current_frame
        return {
            "running": self.running,
            "start_enabled": self.start_enabled,
            "model_loaded": self.ctx.session is not None,
            "source": frame.source if frame is not None else None,
            "fps": fps,
            "render_frames": self.render_loop.frames,
            "sampler": self.sampler.stats.to_dict() if self.sampler is not None else None,
            "detections": len(self.ctx.last_overlay) if self.ctx.last_overlay is not None else 0,
            "last_error": self.last_error,
        }
