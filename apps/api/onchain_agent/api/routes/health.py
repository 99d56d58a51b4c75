"""Health check endpoints for monitoring and load balancers."""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", summary="Liveness check")
async def health():
    """Returns 200 while the process is serving."""
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "ok"})


@router.get("/ready", summary="Readiness probe")
async def readiness(request: Request):
    """
    Readiness probe.

    Returns:
    - 200: lifecycle controller is listening (MongoDB connected)
    - 503: starting up, shutting down, or not run under the controller
    """
    controller = getattr(request.app.state, "lifecycle", None)
    if controller is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "unmanaged"},
        )

    content = {
        "status": "ready" if controller.is_ready else "not_ready",
        "state": controller.state.value,
        "resources": {r.name: r.get_metrics() for r in controller.resources},
    }
    status_code = status.HTTP_200_OK if controller.is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=content)
