"""
Live video stream.

VideoStream turns a blocking ObservationSource into a continuously updating
frame on the event loop: a pump task reads on the default executor and keeps
only the latest FrameData. Consumers (render loop, frame sampler) read
current_frame without waiting on the camera.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from models.frame import FrameData
from runtime.errors import AcquisitionFailure, PlaybackFailure
from .base import ObservationSource


class VideoStream:
    """
    Acquired camera stream.

    Lifecycle:
        stream = VideoStream(source)
        await stream.start()   # opens the source and waits for the first frame
        stream.current_frame   # latest frame, refreshed by the pump task
        await stream.stop()    # idempotent
    """

    def __init__(
        self,
        source: ObservationSource,
        max_consecutive_failures: int = 10,
        retry_delay: float = 0.05,
        stop_timeout: float = 2.0,
    ):
        self.source = source
        self.max_consecutive_failures = max_consecutive_failures
        self.retry_delay = retry_delay
        self.stop_timeout = stop_timeout
        self._latest: Optional[FrameData] = None
        self._active = False
        self._task: Optional[asyncio.Task] = None
        self._io_lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def current_frame(self) -> Optional[FrameData]:
        """Latest frame while the stream is active, else None."""
        if not self._active:
            return None
        return self._latest

    async def start(self) -> FrameData:
        """
        Open the source and wait for playback to begin.

        Raises:
            AcquisitionFailure: The source could not be opened.
            PlaybackFailure: The source opened but produced no frame.
        """
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.source.open)
        except RuntimeError as e:
            raise AcquisitionFailure(f"Error accessing the camera: {e}") from e

        first = await loop.run_in_executor(None, self.source.read)
        if first is None:
            await loop.run_in_executor(None, self.source.close)
            raise PlaybackFailure(f"No frames from source {self.source.source_id}")

        self._latest = first
        self._active = True
        self._task = loop.create_task(self._pump(), name=f"stream:{self.source.source_id}")
        logging.info(
            f"Video playback started: source={self.source.source_id}, "
            f"size={first.width}x{first.height}"
        )
        return first

    async def _pump(self) -> None:
        loop = asyncio.get_running_loop()
        failures = 0
        try:
            while self._active:
                try:
                    frame_data = await loop.run_in_executor(None, self._read)
                except Exception as e:
                    logging.error(f"Read from {self.source.source_id} failed: {e!r}")
                    frame_data = None
                if not self._active:
                    break
                if frame_data is None:
                    failures += 1
                    if failures >= self.max_consecutive_failures:
                        logging.warning(
                            f"Stream {self.source.source_id} ended after {failures} failed reads"
                        )
                        break
                    await asyncio.sleep(self.retry_delay)
                    continue
                failures = 0
                self._latest = frame_data
        finally:
            self._active = False

    def _read(self) -> Optional[FrameData]:
        with self._io_lock:
            return self.source.read()

    def _close(self) -> None:
        # Blocks until any read still running on a worker thread returns
        with self._io_lock:
            if self.source.is_open:
                self.source.close()

    async def stop(self) -> None:
        """Stop pumping and release the source. Safe to call repeatedly."""
        self._active = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            done, _ = await asyncio.wait({task}, timeout=self.stop_timeout)
            if not done:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        if self.source.is_open:
            closing = asyncio.get_running_loop().run_in_executor(None, self._close)
            done, _ = await asyncio.wait({closing}, timeout=self.stop_timeout)
            if not done:
                logging.warning(
                    f"Read from {self.source.source_id} still pending; release deferred until it returns"
                )
        self._latest = None
