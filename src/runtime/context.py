from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from display.surface import DrawingSurface
from inference.preprocess import OffscreenBuffer
from inference.session import ModelSession
from models.config import Config
from models.detection import Overlay
from models.frame import FrameData
from observation.stream import VideoStream
from pipeline.fps import FpsTracker


@dataclass
class DetectionContext:
    """Holds the state shared by the render loop and frame sampler; avoids global singletons."""

    config: Config
    surface: DrawingSurface
    offscreen: OffscreenBuffer
    fps: FpsTracker
    session: Optional[ModelSession] = None
    stream: Optional[VideoStream] = None

    # Detections from the last successful tick, re-stamped by the render loop
    last_overlay: Optional[Overlay] = None

    @classmethod
    def from_config(cls, config: Config, session: Optional[ModelSession] = None) -> "DetectionContext":
        return cls(
            config=config,
            surface=DrawingSurface(config.display.width, config.display.height),
            offscreen=OffscreenBuffer(tuple(config.model.input_size)),
            fps=FpsTracker(),
            session=session,
        )

    @property
    def stream_active(self) -> bool:
        return self.stream is not None and self.stream.active

    @property
    def current_frame(self) -> Optional[FrameData]:
        if self.stream is None:
            return None
        return self.stream.current_frame
