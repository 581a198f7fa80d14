"""
SaleSync - POS Sales Uploader
=============================
Version: 1.0.0

HTTP front door for the sales sync: health checks plus manual and queued
sync triggers. Scheduled runs go through the cron CLI
(salesync/services/jobs/run_sales_sync.py) or the Dramatiq worker.

Layout:
- salesync/core/: settings, HTTP client, retry, validation, logging/Sentry
- salesync/middleware/: request logging, error handling
- salesync/models/schemas/: pydantic records and responses
- salesync/services/sync/: readers, payload assembly, OAuth, dispatch,
  upload marking, audit log, orchestration
- salesync/services/jobs/: Dramatiq broker/actor, cron entry point
- salesync/api/v1/routes/: endpoints
"""
import sys
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI

# Import failures are printed before logging exists
try:
    from salesync.core.config import settings
    from salesync.core.observability import configure_logging, init_sentry

    from salesync.middleware.error_handler import ErrorHandlerMiddleware
    from salesync.middleware.logging import RequestLoggingMiddleware

    from salesync.api.v1.routes.health import router as health_router, VERSION
    from salesync.api.v1.routes.sync import router as sync_router

except Exception as e:
    print(f"🚨 FATAL STARTUP ERROR: {e}", file=sys.stderr)
    print(f"Traceback:\n{traceback.format_exc()}", file=sys.stderr)
    sys.exit(1)

configure_logging()
logger = logging.getLogger(__name__)

init_sentry("api", with_fastapi=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective targets on startup."""
    logger.info("=" * 80)
    logger.info(f"SaleSync API {VERSION} starting ({settings.environment}, port {settings.port})")
    logger.info(f"Primary DB: {settings.db_server}:{settings.db_port}/{settings.primary_database}")
    logger.info(f"Site DB name: {settings.site_database}")
    logger.info(f"Commit gate: first response {settings.success_field} == {settings.success_value!r}")
    logger.info("=" * 80)

    yield

    logger.info("SaleSync API stopped")


app = FastAPI(
    title="SaleSync API",
    description="Uploads POS sales from customer site databases to tenant sales APIs",
    version=VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    lifespan=lifespan
)

# Added last = outermost, so it also catches errors raised in request logging
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ErrorHandlerMiddleware)

app.include_router(health_router)
app.include_router(sync_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
