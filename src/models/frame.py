"""
FrameData model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass
class FrameData:
    """
    A captured video frame and its capture metadata.

    Attributes:
        frame: The raw frame data as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since the stream was opened.
        source: Identifier for the camera/video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def scaled(self, width: int, height: int) -> np.ndarray:
        """Return the BGR frame resized to (width, height)."""
        if (self.width, self.height) == (width, height):
            return self.frame
        return cv2.resize(self.frame, (width, height), interpolation=cv2.INTER_LINEAR)

    def to_rgba(self, width: int, height: int) -> np.ndarray:
        """Return the frame resized to (width, height) as interleaved RGBA bytes."""
        return cv2.cvtColor(self.scaled(width, height), cv2.COLOR_BGR2RGBA)
