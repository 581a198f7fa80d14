"""
Dependency Injection
Provides reusable clients for the sync engine and FastAPI routes

DEPENDENCIES:
- HTTP client (tenant OAuth + sales API calls, IPv4 only)
- Sync run lock (one run per process at a time)
"""
import asyncio
import logging
from typing import AsyncGenerator, Optional
import httpx

from salesync.core.config import settings

logger = logging.getLogger(__name__)

# Binding the local side to 0.0.0.0 restricts outgoing connections to IPv4
IPV4_LOCAL_ADDRESS = "0.0.0.0"

# ============================================================================
# GLOBAL STATE (initialized once, reused across requests)
# ============================================================================

_sync_lock: Optional[asyncio.Lock] = None


def create_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Create the async HTTP client used for token exchange and API dispatch.

    Args:
        transport: Optional transport override (tests pass httpx.MockTransport)

    Returns:
        httpx.AsyncClient with the configured timeout and an IPv4-only transport
    """
    if transport is None:
        transport = httpx.AsyncHTTPTransport(local_address=IPV4_LOCAL_ADDRESS)
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
    )


def get_sync_lock() -> asyncio.Lock:
    """
    Process-wide lock serializing sync runs.

    Runs switch database connections and mark rows as uploaded, so two
    overlapping runs must never interleave.
    """
    global _sync_lock
    if _sync_lock is None:
        _sync_lock = asyncio.Lock()
    return _sync_lock


# ============================================================================
# DEPENDENCY FUNCTIONS (injected into routes)
# ============================================================================

async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Get HTTP client for external API calls.

    Yields:
        httpx.AsyncClient (auto-closed after request)
    """
    client = create_http_client()
    try:
        yield client
    finally:
        await client.aclose()
