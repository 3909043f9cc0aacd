"""
Raw engine outputs -> drawn detections.

Selection policy, in order: frame-relative score normalization, fixed
confidence threshold, per-coordinate clamping to the surface, and a cap on
the number of boxes drawn per tick. Candidates are visited in score-buffer
order; overlapping boxes are not merged unless a suppress hook is supplied.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from display.surface import DrawingSurface
from models.config import DetectionConfig
from models.detection import Detection, InferenceResult, Overlay
from models.frame import FrameData
from runtime.errors import MalformedResult
from .fps import FpsTracker

Suppressor = Callable[[List[Detection]], List[Detection]]

BOX_COLOR = "red"
BOX_LINE_WIDTH = 2
# FPS badge: white box at (10, 10), black text at (20, 25)
FPS_BOX = (10, 10, 100, 20)
FPS_TEXT_ORIGIN = (20, 25)


def normalize_scores(scores: Sequence[float]) -> np.ndarray:
    """
    Divide every score by the frame's maximum score.

    The top-scoring candidate always reads 1.0. If the maximum is not
    positive (or not finite) every score is reported as 0.0.
    """
    scores = np.asarray(scores, dtype=np.float64).ravel()
    if scores.size == 0:
        return scores
    max_score = float(np.max(scores))
    if not np.isfinite(max_score) or max_score <= 0:
        return np.zeros_like(scores)
    return scores / max_score


def clamp(value: float, upper: float) -> float:
    return min(max(float(value), 0.0), float(upper))


def clamp_box(box: Sequence[float], width: float, height: float) -> Tuple[float, float, float, float]:
    x1, y1, x2, y2 = box
    return (clamp(x1, width), clamp(y1, height), clamp(x2, width), clamp(y2, height))


def select_detections(
    boxes: Sequence[float],
    scores: Sequence[float],
    width: float,
    height: float,
    confidence_threshold: float = 0.9,
    max_detections: int = 100,
    suppress: Optional[Suppressor] = None,
) -> List[Detection]:
    """
    Pick the detections to draw.

    boxes is a flat buffer holding [x1, y1, x2, y2] for candidate i at
    [4*i, 4*i + 4). Candidates whose window runs past the end of the buffer
    are skipped.
    """
    boxes = np.asarray(boxes, dtype=np.float64).ravel()
    accepted: List[Detection] = []

    for i, score in enumerate(scores):
        if suppress is None and len(accepted) >= max_detections:
            break
        if score < confidence_threshold:
            continue
        window = boxes[4 * i:4 * i + 4]
        if window.size < 4:
            logging.debug(f"No box for candidate {i} (box buffer has {boxes.size} values)")
            continue
        x1, y1, x2, y2 = clamp_box(window, width, height)
        accepted.append(Detection(x1=x1, y1=y1, x2=x2, y2=y2, score=float(score), index=i))

    if suppress is not None:
        accepted = suppress(accepted)
    return accepted[:max_detections]


def draw_overlay(surface: DrawingSurface, overlay: Overlay) -> None:
    """Stamp boxes, score labels and the FPS badge onto the surface."""
    surface.set_stroke_color(BOX_COLOR)
    surface.set_line_width(BOX_LINE_WIDTH)
    surface.set_fill_color(BOX_COLOR)
    for d in overlay.detections:
        surface.stroke_rect(d.x1, d.y1, d.width, d.height)
        surface.fill_text(d.label, d.x1, d.y1 - 5)

    if overlay.fps_label is not None:
        surface.set_fill_color("white")
        surface.fill_rect(*FPS_BOX)
        surface.set_fill_color("black")
        surface.fill_text(overlay.fps_label, *FPS_TEXT_ORIGIN)


class PostProcessor:
    """
    Interprets one InferenceResult and repaints the visible surface.

    Example:
        post = PostProcessor("boxes", "scores", fps_tracker=FpsTracker())
        overlay = post.process(result, stream.current_frame, surface)
    """

    def __init__(
        self,
        boxes_output: str,
        scores_output: str,
        confidence_threshold: float = 0.9,
        max_detections: int = 100,
        normalize: str = "frame_max",
        suppress: Optional[Suppressor] = None,
        fps_tracker: Optional[FpsTracker] = None,
    ):
        if normalize not in ("frame_max", "none"):
            raise ValueError(f"Unknown score normalization: {normalize}")
        self.boxes_output = boxes_output
        self.scores_output = scores_output
        self.confidence_threshold = confidence_threshold
        self.max_detections = max_detections
        self.normalize = normalize
        self.suppress = suppress
        self.fps_tracker = fps_tracker or FpsTracker()
        self._ticks = 0

    @classmethod
    def from_config(
        cls,
        cfg: DetectionConfig,
        boxes_output: str,
        scores_output: str,
        fps_tracker: Optional[FpsTracker] = None,
        suppress: Optional[Suppressor] = None,
    ) -> "PostProcessor":
        return cls(
            boxes_output=boxes_output,
            scores_output=scores_output,
            confidence_threshold=cfg.confidence_threshold,
            max_detections=cfg.max_detections,
            normalize=cfg.normalize,
            suppress=suppress,
            fps_tracker=fps_tracker,
        )

    def extract(self, result: InferenceResult) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return the flat (boxes, scores) buffers.

        Raises:
            MalformedResult: If either output is missing or empty.
        """
        boxes = result.flat(self.boxes_output)
        scores = result.flat(self.scores_output)
        if boxes is None or scores is None or boxes.size == 0 or scores.size == 0:
            raise MalformedResult(
                "Missing expected result data",
                payload={
                    "boxes_output": self.boxes_output,
                    "scores_output": self.scores_output,
                    "outputs": result.describe(),
                },
            )
        return boxes, scores

    def scores_for(self, raw_scores: np.ndarray) -> np.ndarray:
        if self.normalize == "frame_max":
            return normalize_scores(raw_scores)
        return np.asarray(raw_scores, dtype=np.float64)

    def process(
        self,
        result: InferenceResult,
        frame_data: Optional[FrameData],
        surface: DrawingSurface,
    ) -> Optional[Overlay]:
        """
        Select detections and repaint the surface (background + overlay).

        Returns None, leaving the surface untouched, when the result is
        malformed.
        """
        try:
            boxes, raw_scores = self.extract(result)
        except MalformedResult as e:
            logging.error(f"{e}: {e.payload}")
            return None

        scores = self.scores_for(raw_scores)
        detections = select_detections(
            boxes,
            scores,
            surface.width,
            surface.height,
            confidence_threshold=self.confidence_threshold,
            max_detections=self.max_detections,
            suppress=self.suppress,
        )
        for d in detections:
            logging.debug(f"Drawing box: [{d.x1}, {d.y1}, {d.x2}, {d.y2}] with score: {d.score}")

        self._ticks += 1
        overlay = Overlay(detections=detections, tick=self._ticks)
        with surface.batch():
            surface.clear()
            if frame_data is not None:
                surface.draw_image(frame_data.frame)
            draw_overlay(surface, overlay)
            overlay.fps_label = f"FPS: {self.fps_tracker.tick():.1f}"
            draw_overlay(surface, Overlay(fps_label=overlay.fps_label))

        return overlay
