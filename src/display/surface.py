"""
Visible drawing surface.

A fixed-size BGR raster with a small canvas-style API (clear, scaled blit,
rectangle outline, filled rectangle, text, stroke/fill color, line width).
The render loop and the postprocessor both paint here; readers (preview
window, MJPEG stream) take snapshots. Multi-step paints run inside batch()
so a snapshot never shows a half-drawn frame.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple, Union

import cv2
import numpy as np

Color = Union[str, Tuple[int, int, int]]

# BGR
COLORS = {
    "red": (0, 0, 255),
    "green": (0, 255, 0),
    "blue": (255, 0, 0),
    "white": (255, 255, 255),
    "black": (0, 0, 0),
    "yellow": (0, 255, 255),
}


def to_bgr(color: Color) -> Tuple[int, int, int]:
    if isinstance(color, str):
        try:
            return COLORS[color.lower()]
        except KeyError:
            raise ValueError(f"Unknown color: {color}") from None
    b, g, r = color
    return (int(b), int(g), int(r))


class DrawingSurface:
    def __init__(self, width: int, height: int, font_scale: float = 0.5):
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.font_scale = font_scale
        self._pixels = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self._lock = threading.RLock()
        self._stroke = COLORS["red"]
        self._fill = COLORS["black"]
        self._line_width = 1
        self._version = 0

    @property
    def version(self) -> int:
        """Incremented after every completed batch."""
        return self._version

    @property
    def line_width(self) -> int:
        return self._line_width

    @contextmanager
    def batch(self) -> Iterator["DrawingSurface"]:
        with self._lock:
            try:
                yield self
            finally:
                self._version += 1

    def set_stroke_color(self, color: Color) -> None:
        self._stroke = to_bgr(color)

    def set_fill_color(self, color: Color) -> None:
        self._fill = to_bgr(color)

    def set_line_width(self, width: float) -> None:
        self._line_width = max(1, int(round(width)))

    def clear(self, x: int = 0, y: int = 0, w: Optional[int] = None, h: Optional[int] = None) -> None:
        w = self.width if w is None else w
        h = self.height if h is None else h
        with self._lock:
            region = self._region(x, y, w, h)
            if region is not None:
                x0, y0, x1, y1 = region
                self._pixels[y0:y1, x0:x1] = 0

    def draw_image(
        self,
        image: np.ndarray,
        x: int = 0,
        y: int = 0,
        w: Optional[int] = None,
        h: Optional[int] = None,
    ) -> None:
        """Blit a BGR (or gray/BGRA) image scaled to w x h at (x, y)."""
        w = self.width if w is None else int(w)
        h = self.height if h is None else int(h)
        x, y = int(x), int(y)
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        if image.shape[:2] != (h, w):
            image = cv2.resize(image, (w, h), interpolation=cv2.INTER_LINEAR)

        with self._lock:
            region = self._region(x, y, w, h)
            if region is None:
                return
            x0, y0, x1, y1 = region
            self._pixels[y0:y1, x0:x1] = image[y0 - y:y1 - y, x0 - x:x1 - x]

    def stroke_rect(self, x: float, y: float, w: float, h: float) -> None:
        with self._lock:
            cv2.rectangle(
                self._pixels,
                (int(x), int(y)),
                (int(x + w), int(y + h)),
                self._stroke,
                self._line_width,
            )

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        with self._lock:
            cv2.rectangle(
                self._pixels,
                (int(x), int(y)),
                (int(x + w), int(y + h)),
                self._fill,
                cv2.FILLED,
            )

    def fill_text(self, text: str, x: float, y: float) -> None:
        """Draw text with its baseline-left corner at (x, y)."""
        with self._lock:
            cv2.putText(
                self._pixels,
                text,
                (int(x), int(y)),
                cv2.FONT_HERSHEY_SIMPLEX,
                self.font_scale,
                self._fill,
                1,
                cv2.LINE_AA,
            )

    def snapshot(self) -> np.ndarray:
        with self._lock:
            return self._pixels.copy()

    def encode_jpeg(self, quality: int = 80) -> bytes:
        ok, buf = cv2.imencode(".jpg", self.snapshot(), [int(cv2.IMWRITE_JPEG_QUALITY), quality])
        if not ok:
            raise RuntimeError("Failed to encode JPEG")
        return buf.tobytes()

    def _region(self, x: int, y: int, w: int, h: int) -> Optional[Tuple[int, int, int, int]]:
        x0, y0 = max(int(x), 0), max(int(y), 0)
        x1, y1 = min(int(x) + int(w), self.width), min(int(y) + int(h), self.height)
        if x1 <= x0 or y1 <= y0:
            return None
        return x0, y0, x1, y1
