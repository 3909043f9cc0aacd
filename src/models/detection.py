"""
Detection models for the overlay pipeline.

Detections live only for the duration of a single postprocess/draw pass;
the Overlay keeps the last accepted set so the render loop can re-stamp it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Detection:
    """
    A single detection in canvas pixel space.

    Attributes:
        x1: Left edge x coordinate (clamped to the surface).
        y1: Top edge y coordinate (clamped to the surface).
        x2: Right edge x coordinate (clamped to the surface).
        y2: Bottom edge y coordinate (clamped to the surface).
        score: Normalized confidence in [0, 1].
        index: Position of the detection in the model's score buffer.
    """
    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    index: int = 0

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def label(self) -> str:
        return f"Score: {self.score:.2f}"

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))


class InferenceResult(Mapping[str, np.ndarray]):
    """
    Output of one engine run: output name -> numeric buffer.

    Iteration order follows the engine's declared output order.
    """

    def __init__(self, outputs: Dict[str, np.ndarray]):
        self._outputs = dict(outputs)

    @classmethod
    def from_lists(cls, names: List[str], values: List[np.ndarray]) -> "InferenceResult":
        return cls({name: np.asarray(value) for name, value in zip(names, values)})

    def __getitem__(self, name: str) -> np.ndarray:
        return self._outputs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

    def __len__(self) -> int:
        return len(self._outputs)

    def flat(self, name: str) -> Optional[np.ndarray]:
        """Return the named output flattened to 1-D, or None if absent."""
        value = self._outputs.get(name)
        if value is None:
            return None
        return np.asarray(value).ravel()

    def describe(self) -> Dict[str, object]:
        """Diagnostic payload: output name -> shape and dtype."""
        return {
            name: {"shape": list(np.shape(value)), "dtype": str(np.asarray(value).dtype)}
            for name, value in self._outputs.items()
        }


@dataclass
class Overlay:
    """Detections drawn in one tick, plus the FPS label shown alongside them."""
    detections: List[Detection] = field(default_factory=list)
    fps_label: Optional[str] = None
    tick: int = 0

    def __len__(self) -> int:
        return len(self.detections)
