"""
Dramatiq Background Worker
Processes queued and scheduled sales sync runs

Usage:
    dramatiq worker -p 1 -t 1

A single process and thread is required: two overlapping runs would race
on the upload markers.
"""
import logging

from salesync.core.observability import configure_logging, init_sentry

configure_logging(logging.INFO)
logger = logging.getLogger(__name__)

init_sentry("worker")

# Importing the actor module registers the broker and sync_sales_task
from salesync.services.jobs.broker import broker  # noqa: E402,F401
from salesync.services.jobs.tasks import sync_sales_task  # noqa: E402,F401

logger.info(f"✅ SaleSync worker ready, actors: {', '.join(broker.get_declared_actors())}")
