"""
Observation layer for live video sources.

Sources implement the ObservationSource interface and return FrameData
objects; VideoStream keeps the latest frame of an open source available to
the render loop and the frame sampler.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config
from .stream import VideoStream

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
    "VideoStream",
]
