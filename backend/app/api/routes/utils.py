from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.deps import DatabaseDep
from app.core.health import liveness_check, readiness_check

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/liveness/", response_model=None)
def liveness() -> bool | JSONResponse:
    """
    Liveness probe: is the process alive and responsive?

    Lightweight: no DB I/O.  If this fails the container should be
    restarted by the orchestrator.
    """
    ok, failures = liveness_check()
    if not ok:
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Process unhealthy", "data": failures},
        )
    return True


@router.get("/health-check/", response_model=None)
def health_check(db: DatabaseDep) -> bool | JSONResponse:
    """
    Readiness probe: can the service handle traffic?

    Returns 200 with true if the database answers; 503 otherwise.
    """
    ok, failures = readiness_check(db)
    if not ok:
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Service not ready", "data": failures},
        )
    return True


@router.get("/pool-stats/")
def pool_stats(db: DatabaseDep) -> dict[str, int | bool]:
    """Connection pool counters for monitoring."""
    return db.stats()
