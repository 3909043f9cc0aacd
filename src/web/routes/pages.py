"""
Page routes: a single control page with Start/Stop buttons and the live view.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    controller = request.app.state.controller
    surface = controller.ctx.surface
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "width": surface.width,
            "height": surface.height,
            "model_loaded": controller.ctx.session is not None,
        },
    )
