"""
Sync Routes
Manual trigger for one sales sync run
"""
import logging
import httpx
from fastapi import APIRouter, Depends, HTTPException

from salesync.core.dependencies import get_http_client, get_sync_lock
from salesync.models.schemas.sync import SyncResponse
from salesync.services.sync.orchestration.sales_sync import run_sales_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post("/sales", response_model=SyncResponse)
async def trigger_sales_sync(http_client: httpx.AsyncClient = Depends(get_http_client)):
    """
    Run one sales sync pass and return its audit record.

    Only one run may be active per process; a second request while a run
    is in progress gets 409.
    """
    lock = get_sync_lock()
    if lock.locked():
        logger.warning("Sales sync requested while a run is already in progress")
        raise HTTPException(status_code=409, detail="A sales sync run is already in progress")

    async with lock:
        logger.info("Manual sales sync requested")
        summary = await run_sales_sync(http_client)

    return SyncResponse(status=summary.status.value, message=summary.message)


@router.post("/sales/queue", status_code=202)
async def queue_sales_sync():
    """
    Queue one sales sync run on the background worker.

    Returns:
        {"status": "queued", "message_id": ...}
    """
    from salesync.services.jobs.tasks import sync_sales_task

    message = sync_sales_task.send()
    logger.info(f"Queued sales sync job {message.message_id}")
    return {"status": "queued", "message_id": message.message_id}
