"""
Per-frame detection pipeline.

- postprocess: score normalization, thresholding, clamping, capping, drawing
- fps: frame-interval measurement
- scheduler: display-rate render loop and fixed-period frame sampler
"""

from .fps import FpsTracker
from .postprocess import PostProcessor, normalize_scores, clamp_box, select_detections, draw_overlay
from .scheduler import FrameSampler, RenderLoop, SamplerStats

__all__ = [
    "FpsTracker",
    "PostProcessor",
    "normalize_scores",
    "clamp_box",
    "select_detections",
    "draw_overlay",
    "FrameSampler",
    "RenderLoop",
    "SamplerStats",
]
