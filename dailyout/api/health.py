import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dailyout.api.deps import get_services
from dailyout.core.container import Services

logger = logging.getLogger("dailyout")

router = APIRouter(tags=["health"])


@router.get("/health")
def health(services: Services = Depends(get_services)):
    return {
        "status": "ok",
        "time": services.clock.now().isoformat(),
        "day": services.clock.today().isoformat(),
        "day_policy": services.clock.tz_label,
    }


@router.get("/healthz")
def healthz():
    """Liveness (no dependencies)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(services: Services = Depends(get_services)):
    """Readiness: database reachable, tables present, catalog seeded."""
    if not services.db.check_connection():
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    missing = services.db.missing_tables()
    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning("readyz.not_ready", extra={"detail": detail})
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

    if services.catalog.count_active() == 0:
        logger.warning("readyz.not_ready", extra={"detail": "no active challenges"})
        return JSONResponse(status_code=503, content={"status": "error", "detail": "no active challenges"})

    return {"status": "ok"}
