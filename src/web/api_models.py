from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SamplerStatsModel(BaseModel):
    ticks: int
    completed: int
    skipped: int
    failed: int
    malformed: int
    last_inference_ms: Optional[float] = None


class StatusResponse(BaseModel):
    running: bool
    start_enabled: bool = Field(..., description="False while a start is in progress")
    model_loaded: bool
    source: Optional[str] = None
    fps: Optional[float] = None
    render_frames: int
    sampler: Optional[SamplerStatsModel] = None
    detections: int
    last_error: Optional[str] = None


class ControlResponse(BaseModel):
    ok: bool
    running: bool
