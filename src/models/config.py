"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0),
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class ModelConfig:
    """
    Inference model configuration.

    boxes_output / scores_output name the engine outputs to read. When left
    unset they are resolved from the session's declared output order at load
    time (first = boxes, second = scores).
    """
    path: str = "model/yolov9-c.onnx"
    runtime_dir: Optional[str] = None
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    input_size: List[int] = field(default_factory=lambda: [640, 640])
    boxes_output: Optional[str] = None
    scores_output: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "model/yolov9-c.onnx"),
            runtime_dir=d.get("runtime_dir"),
            providers=d.get("providers") or ["CPUExecutionProvider"],
            input_size=d.get("input_size", [640, 640]),
            boxes_output=d.get("boxes_output"),
            scores_output=d.get("scores_output"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "providers": self.providers,
            "input_size": self.input_size,
        }
        if self.runtime_dir is not None:
            d["runtime_dir"] = self.runtime_dir
        if self.boxes_output is not None:
            d["boxes_output"] = self.boxes_output
        if self.scores_output is not None:
            d["scores_output"] = self.scores_output
        return d


@dataclass
class DetectionConfig:
    """Postprocessing policy."""
    confidence_threshold: float = 0.9
    max_detections: int = 100
    normalize: str = "frame_max"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            confidence_threshold=d.get("confidence_threshold", 0.9),
            max_detections=d.get("max_detections", 100),
            normalize=d.get("normalize", "frame_max"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence_threshold": self.confidence_threshold,
            "max_detections": self.max_detections,
            "normalize": self.normalize,
        }


@dataclass
class SamplerConfig:
    """Inference cadence."""
    interval_ms: int = 100

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SamplerConfig":
        return cls(interval_ms=d.get("interval_ms", 100))

    def to_dict(self) -> Dict[str, Any]:
        return {"interval_ms": self.interval_ms}


@dataclass
class DisplayConfig:
    """Visible drawing surface and local preview window."""
    width: int = 640
    height: int = 480
    refresh_hz: int = 60
    window: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        return cls(
            width=d.get("width", 640),
            height=d.get("height", 480),
            refresh_hz=d.get("refresh_hz", 60),
            window=d.get("window", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "refresh_hz": self.refresh_hz,
            "window": self.window,
        }


@dataclass
class WebConfig:
    """HTTP control/preview server."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000
    stream_fps: int = 15

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
            stream_fps=d.get("stream_fps", 15),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
            "stream_fps": self.stream_fps,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/detection_overlay.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            sampler=SamplerConfig.from_dict(d.get("sampler", {}) or {}),
            display=DisplayConfig.from_dict(d.get("display", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/detection_overlay.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "sampler": self.sampler.to_dict(),
            "display": self.display.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
