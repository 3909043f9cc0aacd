"""
Failure types for the overlay runtime.

Each one is caught and logged at the boundary of the call or tick that
raised it; none of them stops the process.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class OverlayError(RuntimeError):
    """Base class for overlay runtime failures."""


class StartupFailure(OverlayError):
    """The model session could not be created."""


class AcquisitionFailure(OverlayError):
    """The camera could not be opened."""


class PlaybackFailure(OverlayError):
    """The camera opened but never produced a frame."""


class InferenceFailure(OverlayError):
    """The engine raised during a run call."""


class MalformedResult(OverlayError):
    """Expected output buffers were missing or empty."""

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.payload = payload or {}
