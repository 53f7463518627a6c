from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


def _upstream_status(poller) -> dict:
    if poller is None:
        return {"status": "disabled"}
    error = poller.last_cycle_error or poller.last_fetch_error
    if error is not None:
        return {
            "status": "error",
            "error": error,
            "running": poller.running,
            "applied_sequence": poller.applied_sequence,
        }
    if poller.applied_sequence == 0:
        return {"status": "pending", "running": poller.running}
    return {
        "status": "ok",
        "running": poller.running,
        "applied_sequence": poller.applied_sequence,
        "last_applied_at": poller.last_applied_at.isoformat() if poller.last_applied_at else None,
    }


@router.get("/health")
async def health(request: Request):
    upstream = _upstream_status(request.app.state.poller)
    surface = request.app.state.surface

    overall = "degraded" if upstream["status"] == "error" else "ok"
    status_code = 200 if overall == "ok" else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall,
            "devices": surface.device_count,
            "dependencies": {
                "metrics_server": upstream,
            },
        },
    )
