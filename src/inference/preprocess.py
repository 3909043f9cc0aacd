"""
Frame -> model input tensor.

The off-screen buffer snapshots the live frame at the model's fixed input
resolution as interleaved RGBA bytes; preprocess() turns that into a planar
float32 tensor [1, 3, H, W] scaled by 1/255. The /255 scale is the whole
normalization policy: no mean/std, no clipping.
"""

from __future__ import annotations

import logging
from typing import Tuple

import cv2
import numpy as np

from models.frame import FrameData

INPUT_SIZE: Tuple[int, int] = (640, 640)


class OffscreenBuffer:
    """Fixed-size RGBA render target for the inference path."""

    def __init__(self, size: Tuple[int, int] = INPUT_SIZE):
        self.width, self.height = int(size[0]), int(size[1])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def render(self, frame_data: FrameData) -> np.ndarray:
        """Draw the frame scaled to the buffer size; returns (H, W, 4) uint8 RGBA."""
        return frame_data.to_rgba(self.width, self.height)


def ensure_input_size(pixels: np.ndarray, size: Tuple[int, int] = INPUT_SIZE) -> np.ndarray:
    """
    Return pixels at exactly size=(width, height), resizing if needed.

    Raises:
        ValueError: If pixels is not an (H, W, C>=3) uint8 buffer.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] < 3:
        raise ValueError(f"Expected an (H, W, 3|4) pixel buffer, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixel bytes, got {pixels.dtype}")

    width, height = size
    if pixels.shape[:2] != (height, width):
        logging.debug(f"Resizing pixel buffer {pixels.shape[1]}x{pixels.shape[0]} -> {width}x{height}")
        pixels = cv2.resize(pixels, (width, height), interpolation=cv2.INTER_LINEAR)
    return pixels


def preprocess(pixels: np.ndarray, size: Tuple[int, int] = INPUT_SIZE) -> np.ndarray:
    """
    Interleaved RGBA/RGB bytes -> float32 tensor of shape [1, 3, H, W].

    All R values come first, then G, then B, each in row-major order.
    Alpha is dropped.
    """
    pixels = ensure_input_size(pixels, size)
    rgb = pixels[:, :, :3].astype(np.float32) / 255.0
    return np.ascontiguousarray(rgb.transpose(2, 0, 1))[np.newaxis, ...]
