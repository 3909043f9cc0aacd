"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import time
from types import SimpleNamespace

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import Config  # noqa: E402
from models.frame import FrameData  # noqa: E402
from observation.base import ObservationConfig, ObservationSource  # noqa: E402


class FakeEngine:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(self, outputs=None, input_names=("images",), delay=0.0, error=None):
        self.outputs = dict(outputs) if outputs is not None else {
            "boxes": np.array([[0, 0, 10, 10]], dtype=np.float32),
            "scores": np.array([1.0], dtype=np.float32),
        }
        self.input_names = list(input_names)
        self.delay = delay
        self.error = error
        self.calls = []

    def get_inputs(self):
        return [SimpleNamespace(name=n) for n in self.input_names]

    def get_outputs(self):
        return [SimpleNamespace(name=n) for n in self.outputs]

    def run(self, output_names, input_feed):
        self.calls.append(input_feed)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [np.asarray(v) for v in self.outputs.values()]


class FakeSource(ObservationSource):
    """Observation source serving a constant frame."""

    def __init__(self, frame=None, fail_open=False, max_frames=None, read_delay=0.001):
        super().__init__(ObservationConfig(source_id="fake-cam"))
        self.frame = frame if frame is not None else np.full((480, 640, 3), 64, dtype=np.uint8)
        self.fail_open = fail_open
        self.max_frames = max_frames
        self.read_delay = read_delay
        self.close_calls = 0

    def open(self) -> None:
        if self.fail_open:
            raise RuntimeError("Failed to open device fake")
        self._is_open = True
        self._frame_index = 0

    def read(self):
        if not self._is_open:
            return None
        if self.max_frames is not None and self._frame_index >= self.max_frames:
            return None
        time.sleep(self.read_delay)
        self._frame_index += 1
        return FrameData.from_numpy(
            self.frame, timestamp=time.time(), frame_index=self._frame_index, source=self.source_id
        )

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False


class StubStream:
    """Minimal VideoStream stand-in with a fixed current frame."""

    def __init__(self, frame=None, active=True):
        frame = frame if frame is not None else np.full((480, 640, 3), 64, dtype=np.uint8)
        self.frame_data = FrameData.from_numpy(frame, timestamp=time.time(), frame_index=1, source="stub")
        self.active = active

    @property
    def current_frame(self):
        return self.frame_data if self.active else None

    async def stop(self):
        self.active = False


@pytest.fixture
def app_config():
    """Typed config with a small surface and a fast sampler."""
    return Config.from_dict({
        "display": {"width": 640, "height": 480, "refresh_hz": 100},
        "sampler": {"interval_ms": 10},
    })


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "model/test.onnx"
  providers: ["CPUExecutionProvider"]

detection:
  confidence_threshold: 0.9
  max_detections: 100

sampler:
  interval_ms: 100

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "model": {
            "path": "model/yolov9-c.onnx",
            "providers": ["CPUExecutionProvider"],
            "input_size": [640, 640],
        },
        "detection": {
            "confidence_threshold": 0.9,
            "max_detections": 100,
            "normalize": "frame_max",
        },
        "sampler": {"interval_ms": 100},
        "display": {"width": 640, "height": 480, "refresh_hz": 60},
        "web": {"enabled": True, "port": 5000},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
