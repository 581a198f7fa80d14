"""
Tenant OAuth client
Exchanges tenant client credentials for a bearer token
"""
import logging
from typing import Any, Optional

import httpx

from salesync.models.schemas.sales import SyncErrorKind, TenantConfig
from salesync.services.sync.run_log import RunLog

logger = logging.getLogger(__name__)


def _error_detail(error: Exception) -> Any:
    """Upstream error payload when the server answered, the exception text otherwise."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            return error.response.json()
        except ValueError:
            return error.response.text
    return str(error)


# ============================================================================
# CLIENT CREDENTIALS TOKEN
# ============================================================================

async def get_access_token(
    http_client: httpx.AsyncClient,
    tenant: TenantConfig,
    run_log: RunLog
) -> Optional[str]:
    """
    Get an access token for a tenant via OAuth2 client credentials.

    Args:
        http_client: Async HTTP client instance (IPv4 transport, fixed timeout)
        tenant: Tenant whose credentials and token URL are used
        run_log: Run log receiving the outcome

    Returns:
        Access token string, or None when the exchange failed for any reason
    """
    data = {
        "client_id": tenant.client_id,
        "client_secret": tenant.client_secret,
        "grant_type": "client_credentials",
    }

    try:
        response = await http_client.post(
            tenant.oauth_token_url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        response.raise_for_status()

        token = response.json().get("access_token")
        if not token:
            raise ValueError(f"access_token missing from token response: {response.text[:200]}")

        run_log.success("Access token fetched", {"AppCode": tenant.app_code})
        return token

    except (httpx.HTTPError, httpx.InvalidURL, ValueError, AttributeError) as e:
        run_log.error("Error fetching token", {
            "AppCode": tenant.app_code,
            "error": _error_detail(e),
            "kind": SyncErrorKind.AUTH_FAILURE.value,
        })
        return None
