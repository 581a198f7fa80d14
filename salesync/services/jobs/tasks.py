"""
Dramatiq Background Tasks
Runs the sales sync outside the request cycle

Workers must run with a single process and thread (dramatiq worker -p 1 -t 1):
overlapping runs would race on upload marking.
"""
import asyncio
import logging
import dramatiq

from salesync.services.jobs.broker import broker  # noqa: F401 (registers the broker)

logger = logging.getLogger(__name__)


@dramatiq.actor(max_retries=0, queue_name="sales_sync")
def sync_sales_task():
    """
    Background job for one sales sync run.

    Returns:
        The run summary (status, message, context) as a dict
    """
    from salesync.services.sync.orchestration.sales_sync import run_sales_sync

    logger.info("🚀 Starting sales sync job")

    try:
        summary = asyncio.run(run_sales_sync())
    except Exception as e:
        logger.error(f"❌ Sales sync job failed: {e}", exc_info=True)
        raise

    logger.info(f"✅ Sales sync job complete: {summary.status.value} - {summary.message}")
    return summary.model_dump(mode="json")
