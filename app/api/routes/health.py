"""
Health API Routes
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.database import database_health

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Application, database and sync loop health"""
    db = database_health()
    ok = bool(db.get("ok"))
    scheduler = getattr(request.app.state, "sync_scheduler", None)
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
            "sync_loop_running": bool(scheduler and scheduler.running),
        },
    )
