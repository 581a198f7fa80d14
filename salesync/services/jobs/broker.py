"""
Dramatiq Redis Broker Configuration
Handles the background queue for scheduled sales sync runs
"""
import logging
import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit, Callbacks, Pipelines,
    Retries, ShutdownNotifications
)

from salesync.core.config import settings

logger = logging.getLogger(__name__)

if not settings.redis_url:
    logger.warning("⚠️  REDIS_URL not set - background jobs will not work")
    redis_broker = RedisBroker()
else:
    # A sync run is never retried, the next scheduled run picks up
    # whatever is still unuploaded
    redis_broker = RedisBroker(
        url=settings.redis_url,
        middleware=[
            AgeLimit(),
            Retries(max_retries=0),
            Callbacks(),
            Pipelines(),
            ShutdownNotifications(),
        ]
    )
    logger.info(f"✅ Redis broker initialized: {settings.redis_url[:20]}...")

dramatiq.set_broker(redis_broker)
broker = redis_broker
