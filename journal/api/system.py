"""System API: health check and price watch status."""

from fastapi import APIRouter, Depends

from journal.api.deps import get_current_user

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/scheduler", dependencies=[Depends(get_current_user)])
def scheduler_status():
    """Current price watch jobs and viewer counts."""
    from journal.engine.price_watch import get_scheduler_status
    return get_scheduler_status()
