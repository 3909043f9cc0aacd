"""
ObservationSource interface for live video sources.

A source is the camera side of the overlay: the controller opens it on start,
the VideoStream pumps frames out of it, and it is released on stop. Any
source that can hand out BGR frames works: USB webcams, IP cameras or a
recorded video file used for demos and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier used in logs and FrameData.source.
        resolution: Requested capture resolution as (width, height). None = device default.
        fps: Requested capture rate. None = device default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. open() acquires the device (may raise RuntimeError)
        3. read() returns the next frame, or None when none is available
        4. close() releases the device; safe to call more than once
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the source.

        Raises:
            RuntimeError: If the device cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the next frame, or None if no frame is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
