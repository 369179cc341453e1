"""
Pin Sweep API Routes
"""

from fastapi import APIRouter, Depends, HTTPException
import logging

from pinkeeper.api.deps import get_runtime
from pinkeeper.models.api_responses import SweepResponse
from pinkeeper.models.pins import PinAction
from pinkeeper.services.runtime import BotRuntime

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(runtime: BotRuntime = Depends(get_runtime)):
    """
    Run one sweep cycle over every monitored channel now.

    Waits for a scheduled cycle in progress to finish first.
    """
    if runtime.scheduler is None:
        raise HTTPException(status_code=503, detail="Bot is not running")

    try:
        results = await runtime.scheduler.run_cycle()
    except Exception as e:
        logger.error(f"On-demand sweep failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"success": False, "message": f"Sweep failed: {str(e)}"},
        )

    actions_taken = sum(
        1
        for decisions in results.values()
        for d in decisions
        if d.applied and d.action != PinAction.DO_NOTHING
    )
    return SweepResponse(status="success", channels=results, actions_taken=actions_taken)
