"""
Typed models for the detection overlay application.
"""

from .frame import FrameData
from .detection import Detection, InferenceResult, Overlay
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    SamplerConfig,
    DisplayConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "InferenceResult",
    "Overlay",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "SamplerConfig",
    "DisplayConfig",
    "WebConfig",
]
