"""
Tenant sales API client
Posts an assembled sales payload to a tenant's endpoint

Exactly one attempt per tenant per run: a failed dispatch is recorded and
the rows stay unuploaded, so the next run sends them again.
"""
import logging
from typing import Any, Dict

import httpx

from salesync.models.schemas.sales import SyncErrorKind, TenantConfig
from salesync.services.sync.run_log import RunLog

logger = logging.getLogger(__name__)


class DispatchFailure(dict):
    """Error marker {"error": message} recorded in place of a response body."""

    def __init__(self, message: str):
        super().__init__(error=message)

    @property
    def message(self) -> str:
        return self["error"]


def _failure_detail(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.text or f"HTTP {error.response.status_code}"
    return str(error) or type(error).__name__


async def dispatch_payload(
    http_client: httpx.AsyncClient,
    tenant: TenantConfig,
    body: str,
    token: str,
    run_log: RunLog
) -> Dict[str, Any]:
    """
    POST a pre-serialized payload to the tenant API.

    Args:
        http_client: Async HTTP client (IPv4 transport, fixed timeout)
        tenant: Target tenant
        body: JSON text from serialize_payload(), sent as-is
        token: Bearer token from get_access_token()
        run_log: Run log receiving the outcome

    Returns:
        Parsed response body on success, DispatchFailure on failure
    """
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    run_log.info("Calling external API", {"AppCode": tenant.app_code, "endpoint": tenant.api_endpoint})

    try:
        response = await http_client.post(tenant.api_endpoint, content=body.encode("utf-8"), headers=headers)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        message = f"API Call Failed for tenant {tenant.app_code}: {_failure_detail(e)}"
        run_log.error(message, {"AppCode": tenant.app_code, "kind": SyncErrorKind.DISPATCH_FAILURE.value})
        return DispatchFailure(message)

    try:
        result = response.json()
    except ValueError:
        logger.warning(f"Non-JSON response from {tenant.api_endpoint} for tenant {tenant.app_code}")
        result = {"raw": response.text}
    if not isinstance(result, dict):
        result = {"data": result}

    run_log.success("API Call Successful", {"AppCode": tenant.app_code})
    return result
