"""
CLI Entry Point for the Sales Sync
Called by cron, one run at a time, e.g. */15 * * * *

    python -m salesync.services.jobs.run_sales_sync
"""
import asyncio
import sys
import logging

logger = logging.getLogger(__name__)


def main():
    """
    Run one sales sync pass.

    Exit code 0 unless the run's summary record is an ERROR.
    """
    from salesync.core.observability import configure_logging, init_sentry
    from salesync.models.schemas.sales import LogStatus
    from salesync.services.sync.orchestration.sales_sync import run_sales_sync

    configure_logging(logging.INFO)
    init_sentry("cron")

    logger.info("🌙 Sales sync cron job started")

    try:
        summary = asyncio.run(run_sales_sync())
    except Exception as e:
        logger.error(f"❌ Sales sync cron job failed: {e}", exc_info=True)
        sys.exit(1)

    if summary.status == LogStatus.ERROR:
        logger.error(f"❌ Sales sync finished with error: {summary.message}")
        sys.exit(1)

    logger.info(f"✅ Sales sync finished: {summary.status.value} - {summary.message}")
    sys.exit(0)


if __name__ == "__main__":
    main()
