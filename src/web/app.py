"""
FastAPI application factory for the detection overlay.

Routes:
- / -> control page (Start/Stop buttons + live MJPEG view)
- /api/* -> REST control/status API and the MJPEG stream
"""

from __future__ import annotations

from fastapi import FastAPI

from runtime.controller import OverlayController
from .routes import pages, api


def create_app(controller: OverlayController, stream_fps: int = 15) -> FastAPI:
    """Create the FastAPI app bound to a running controller."""
    app = FastAPI(
        title="Detection Overlay",
        version="0.1.0",
        description="Real-time object-detection overlay on a live video stream",
    )
    app.state.controller = controller
    app.state.stream_fps = stream_fps

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)

    return app
