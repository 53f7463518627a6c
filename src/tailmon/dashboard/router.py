from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

_dir = Path(__file__).parent
templates = Jinja2Templates(directory=str(_dir / "templates"))

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# --- Pages ---

@router.get("", response_class=HTMLResponse)
async def dashboard_index(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "devices_markup": request.app.state.surface.markup,
            "refresh_interval_ms": request.app.state.refresh_interval_ms,
        },
    )


# --- Partials ---

@router.get("/partials/devices", response_class=HTMLResponse)
async def devices_partial(request: Request):
    surface = request.app.state.surface
    return HTMLResponse(
        surface.markup,
        headers={"x-render-sequence": str(surface.sequence)},
    )


def get_static_files_app():
    return StaticFiles(directory=str(_dir / "static"))
