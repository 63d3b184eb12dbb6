from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import get_service
from services.analysis import analyze
from services.sensors import SensorService


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    service: SensorService = Depends(get_service),
) -> HTMLResponse:
    snapshot = service.snapshot()
    assessments = {item.sensor_id: item for item in analyze(snapshot.sensors)}
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "sensors": snapshot.sensors,
            "assessments": assessments,
            "alerts": service.alerts.recent(limit=10),
            "generated_at": snapshot.generated_at,
        },
    )
