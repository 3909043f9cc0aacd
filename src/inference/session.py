"""
Inference invocation.

ModelSession wraps a loaded onnxruntime session: it is created once at
startup, never mutated afterwards, and shared read-only by every tick.
Outputs are read by name; the boxes/scores names come from config or, when
unset, from the session's declared output order at load time.
"""

from __future__ import annotations

import asyncio
import glob
import logging
import os
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

import numpy as np
import onnxruntime as ort

from models.config import ModelConfig
from models.detection import InferenceResult
from runtime.errors import InferenceFailure, StartupFailure

RUNTIME_LIBRARY_PATTERNS = ("*.so", "*.dll", "*.dylib")


class Engine(Protocol):
    """The subset of onnxruntime.InferenceSession the overlay relies on."""

    def get_inputs(self) -> Sequence[Any]:
        ...

    def get_outputs(self) -> Sequence[Any]:
        ...

    def run(self, output_names: Optional[List[str]], input_feed: dict) -> List[np.ndarray]:
        ...


class ModelSession:
    def __init__(
        self,
        engine: Engine,
        boxes_output: Optional[str] = None,
        scores_output: Optional[str] = None,
    ):
        self._engine = engine
        self.input_names: List[str] = [i.name for i in engine.get_inputs()]
        self.output_names: List[str] = [o.name for o in engine.get_outputs()]
        if not self.input_names:
            raise StartupFailure("Model declares no inputs")
        self.boxes_output, self.scores_output = self._resolve_outputs(boxes_output, scores_output)

    def _resolve_outputs(
        self, boxes: Optional[str], scores: Optional[str]
    ) -> Tuple[str, str]:
        for name in (boxes, scores):
            if name is not None and name not in self.output_names:
                raise StartupFailure(
                    f"Model has no output named {name!r}; declared outputs: {self.output_names}"
                )

        if boxes is None or scores is None:
            remaining = [n for n in self.output_names if n not in (boxes, scores)]
            needed = (boxes is None) + (scores is None)
            if len(remaining) < needed:
                raise StartupFailure(
                    f"Model declares {len(self.output_names)} outputs; boxes and scores outputs required"
                )
            boxes = boxes if boxes is not None else remaining.pop(0)
            scores = scores if scores is not None else remaining.pop(0)
            logging.info(f"Outputs resolved by declared order: boxes={boxes}, scores={scores}")

        return boxes, scores

    def run_sync(self, tensor: np.ndarray) -> InferenceResult:
        """
        Run the engine on one input tensor.

        Raises:
            InferenceFailure: If the engine raises (e.g. wrong tensor shape).
        """
        feeds = {self.input_names[0]: tensor}
        try:
            outputs = self._engine.run(None, feeds)
        except Exception as e:
            raise InferenceFailure(f"Error during inference: {e}") from e
        return InferenceResult.from_lists(self.output_names, list(outputs))

    async def run(self, tensor: np.ndarray) -> InferenceResult:
        """run_sync on the default executor so the event loop keeps rendering."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run_sync, tensor)


def _runtime_libraries(runtime_dir: str) -> List[str]:
    if not os.path.isdir(runtime_dir):
        raise StartupFailure(f"Runtime directory not found: {runtime_dir}")
    libraries: List[str] = []
    for pattern in RUNTIME_LIBRARY_PATTERNS:
        libraries.extend(sorted(glob.glob(os.path.join(runtime_dir, pattern))))
    return libraries


def _select_providers(requested: Sequence[str]) -> List[str]:
    available = ort.get_available_providers()
    chosen = [p for p in requested if p in available]
    missing = [p for p in requested if p not in available]
    if missing:
        logging.warning(f"Execution providers not available: {missing}; available: {available}")
    return chosen or ["CPUExecutionProvider"]


def session_options(cfg: ModelConfig) -> ort.SessionOptions:
    """
    SessionOptions with the custom-op libraries found in cfg.runtime_dir.

    A library that fails to register (e.g. a plain runtime DLL sitting in the
    same directory) is logged and skipped.
    """
    options = ort.SessionOptions()
    if cfg.runtime_dir:
        for library in _runtime_libraries(cfg.runtime_dir):
            try:
                options.register_custom_ops_library(library)
            except Exception as e:
                logging.error(f"Skipping runtime library {library}: {e}")
                continue
            logging.info(f"Registered runtime library: {library}")
    return options


def create_engine(cfg: ModelConfig) -> ort.InferenceSession:
    """Configure the runtime and create an onnxruntime session for cfg.path."""
    if not os.path.exists(cfg.path):
        raise StartupFailure(f"Model not found: {cfg.path}")

    return ort.InferenceSession(
        cfg.path, sess_options=session_options(cfg), providers=_select_providers(cfg.providers)
    )


def load_session(
    cfg: ModelConfig,
    engine_factory: Callable[[ModelConfig], Engine] = create_engine,
) -> Optional[ModelSession]:
    """
    Load the model once at startup.

    Returns None on failure; the failure is logged and every later tick
    becomes a no-op.
    """
    try:
        session = ModelSession(engine_factory(cfg), cfg.boxes_output, cfg.scores_output)
    except Exception as e:
        logging.error(f"Error loading the model: {e}")
        return None

    logging.info(f"Model loaded: {cfg.path}")
    logging.info(f"Input Names: {session.input_names}")
    logging.info(f"Output Names: {session.output_names}")
    return session
