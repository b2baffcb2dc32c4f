from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from rolodex.database import db_healthcheck

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> JSONResponse:
    ok, error = db_healthcheck()
    if not ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "database": error},
        )
    return JSONResponse(content={"status": "ok", "database": "ok"})
