"""
Observability
Process logging and Sentry setup shared by the API, the worker and the cron CLI
"""
import logging
from typing import List, Optional

from salesync.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[int] = None) -> None:
    """
    Configure root logging once per process.

    Args:
        level: Explicit level; defaults to INFO in production, DEBUG elsewhere
    """
    if level is None:
        level = logging.INFO if settings.environment == "production" else logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def init_sentry(component: str, with_fastapi: bool = False) -> bool:
    """
    Initialize Sentry when SENTRY_DSN is set.

    Every ERROR log record becomes a Sentry event, so run log errors
    (token failures, unreachable sites, failed commits) are reported too.

    Args:
        component: Name used in log lines ("api", "worker", "cron")
        with_fastapi: Add the FastAPI integration (API process only)

    Returns:
        True if Sentry was initialized
    """
    if not settings.sentry_dsn:
        logger.info(f"ℹ️  Sentry not configured for {component} (SENTRY_DSN not set)")
        return False

    try:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration

        integrations: List = [LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)]
        if with_fastapi:
            from sentry_sdk.integrations.fastapi import FastApiIntegration
            integrations.append(FastApiIntegration())

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
            integrations=integrations,
        )
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry for {component}: {e}")
        return False

    logger.info(f"✅ Sentry initialized for {component}")
    return True
