"""System API: health check, scheduler status, manual DCA sweep."""

from fastapi import APIRouter, Depends

from hyperdca.api.deps import require_operator

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/scheduler", dependencies=[Depends(require_operator)])
def scheduler_status():
    """Current scheduler state with job details."""
    from hyperdca.engine.scheduler import get_scheduler_status
    return get_scheduler_status()


@router.post("/dca/run", dependencies=[Depends(require_operator)])
async def trigger_dca_sweep():
    """Manually run one DCA sweep over all due plans. Operator only."""
    from hyperdca.engine.scheduler import run_dca_sweep
    results = await run_dca_sweep()
    return {"status": "ok", "executed_plans": len(results), "results": results}
