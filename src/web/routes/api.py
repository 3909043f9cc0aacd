from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from runtime.controller import OverlayController
from ..api_models import ControlResponse, StatusResponse

router = APIRouter()


def _controller(request: Request) -> OverlayController:
    return request.app.state.controller


@router.get("/status", response_model=StatusResponse)
async def status(request: Request):
    return _controller(request).status()


@router.post("/start", response_model=ControlResponse)
async def start(request: Request):
    """Start control: 409 while a start is already in progress, 503 if the camera fails."""
    controller = _controller(request)
    if not controller.start_enabled:
        raise HTTPException(status_code=409, detail="Start already in progress")

    ok = await controller.start()
    if not ok:
        raise HTTPException(status_code=503, detail=controller.last_error or "Camera unavailable")
    return {"ok": True, "running": controller.running}


@router.post("/stop", response_model=ControlResponse)
async def stop(request: Request):
    await _controller(request).stop()
    return {"ok": True, "running": False}


@router.get("/snapshot.jpg")
async def snapshot(request: Request):
    surface = _controller(request).ctx.surface
    try:
        jpeg_bytes = surface.encode_jpeg()
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return StreamingResponse(
        iter([jpeg_bytes]),
        media_type="image/jpeg",
        headers={"Cache-Control": "no-store"},
    )


@router.get("/stream.mjpg")
async def stream(request: Request, fps: Optional[int] = None):
    """MJPEG view of the visible surface; only re-encodes when the surface changed."""
    controller = _controller(request)
    surface = controller.ctx.surface
    fps = fps or request.app.state.stream_fps
    delay = 1.0 / max(1, min(60, int(fps)))

    async def gen():
        last_version = -1
        while not await request.is_disconnected():
            if surface.version != last_version:
                last_version = surface.version
                try:
                    jpg = surface.encode_jpeg()
                except RuntimeError as e:
                    logging.warning(f"MJPEG encode failed: {e}")
                else:
                    yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            await asyncio.sleep(delay)

    return StreamingResponse(gen(), media_type="multipart/x-mixed-replace; boundary=frame")
