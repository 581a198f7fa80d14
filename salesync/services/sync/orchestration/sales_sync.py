"""
Sales sync engine
Coordinates one fan-out pass over every customer site

For each site in the directory:
1. Connect to the site database
2. Read tenant configs, aggregated payments and item lines
3. Close the site connection
4. Per tenant: assemble payload → fetch OAuth token → POST to tenant API

After the fan-out, a success signal in the first API response marks the
payment and item rows as uploaded (one transaction). The run log is then
reduced to one record and written to the audit table.

Failures are recorded and never abort sibling work. Only a site
connectivity failure (skips that site) and a failed commit (rolled back)
end a larger unit early.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
import psycopg

from salesync.core.config import settings
from salesync.core.dependencies import create_http_client
from salesync.core.validation import parse_site_connection
from salesync.models.schemas.sales import (
    CommitResult,
    FetchError,
    ItemRecord,
    LogStatus,
    PaymentRecord,
    RunResult,
    RunSummary,
    SiteConnection,
    SyncErrorKind,
    TenantConfig,
)
from salesync.services.sync.database import (
    DatabaseConnectionError,
    commit_uploads,
    list_aggregated_payments,
    list_items,
    list_site_connections,
    list_tenant_configs,
    primary_connection,
    save_run_summary,
    site_connection,
)
from salesync.services.sync.oauth import get_access_token
from salesync.services.sync.payload import (
    ReceiptKey,
    build_tenant_payload,
    receipt_key,
    serialize_payload,
)
from salesync.services.sync.providers.sales_api import DispatchFailure, dispatch_payload
from salesync.services.sync.run_log import RunLog

logger = logging.getLogger(__name__)


# ============================================================================
# PER-SITE PIPELINE
# ============================================================================

def collect_items(
    conn: psycopg.Connection,
    payments: Sequence[PaymentRecord],
    run_log: RunLog,
    result: RunResult
) -> Dict[ReceiptKey, List[ItemRecord]]:
    """
    Look up item lines once per payment.

    A failed lookup leaves the receipt out of the map (its Items become
    empty) and records the error; the other receipts are unaffected.
    """
    items_by_receipt: Dict[ReceiptKey, List[ItemRecord]] = {}
    for payment in payments:
        items = list_items(conn, run_log, payment.receipt_date, payment.receipt_no)
        if isinstance(items, FetchError):
            run_log.error(items.error, {
                "ReceiptDate": str(payment.receipt_date),
                "ReceiptNo": payment.receipt_no,
            })
            result.errors.append(items.error)
            continue
        items_by_receipt[receipt_key(payment)] = items
    return items_by_receipt


async def sync_tenant(
    http_client: httpx.AsyncClient,
    tenant: TenantConfig,
    payments: Sequence[PaymentRecord],
    items_by_receipt: Dict[ReceiptKey, List[ItemRecord]],
    run_log: RunLog,
    result: RunResult
) -> None:
    """Assemble, authenticate and dispatch the payload of one tenant."""
    payload = build_tenant_payload(tenant, payments, items_by_receipt)

    token = await get_access_token(http_client, tenant, run_log)
    if not token:
        message = f"Skipping API call for tenant {tenant.app_code} due to token error."
        run_log.error(message, {"AppCode": tenant.app_code, "kind": SyncErrorKind.AUTH_FAILURE.value})
        result.errors.append(message)
        return

    response = await dispatch_payload(http_client, tenant, serialize_payload(payload), token, run_log)
    result.api_responses.append(response)
    if isinstance(response, DispatchFailure):
        result.errors.append(response.message)


async def sync_site(
    http_client: httpx.AsyncClient,
    site: SiteConnection,
    run_log: RunLog,
    result: RunResult
) -> None:
    """
    Process one customer site to completion.

    All reads happen while the site connection is open; the connection is
    closed before any tenant is dispatched.
    """
    server = {"server": site.address, "port": site.port}

    try:
        run_log.info("Connecting to sync DB", server)
        with site_connection(site) as conn:
            run_log.success("Connected to sync DB", server)

            tenants = list_tenant_configs(conn, run_log)
            if not tenants:
                message = f"No users found for IP: {site.address}"
                run_log.warn(message)
                result.errors.append(message)
                return

            payments = list_aggregated_payments(conn, run_log)
            if isinstance(payments, FetchError):
                run_log.error(payments.error)
                result.errors.append(payments.error)
                return

            items_by_receipt = collect_items(conn, payments, run_log, result)

        run_log.info("Closed connection for this customer", {"server": site.address})

    except (DatabaseConnectionError, psycopg.Error) as e:
        message = f"Database Connection Error for IP {site.address}: {e}"
        run_log.error(message, {"kind": SyncErrorKind.CONNECTIVITY.value})
        result.errors.append(message)
        return

    for tenant in tenants:
        try:
            await sync_tenant(http_client, tenant, payments, items_by_receipt, run_log, result)
        except Exception as e:
            message = f"Unexpected error for tenant {tenant.app_code}: {e}"
            run_log.error(message, {"AppCode": tenant.app_code})
            logger.exception(message)
            result.errors.append(message)


# ============================================================================
# FAN-OUT
# ============================================================================

async def sync_sales(http_client: httpx.AsyncClient, run_log: RunLog) -> RunResult:
    """
    Run the fan-out over every site in the directory.

    Args:
        http_client: Async HTTP client for token exchange and dispatch
        run_log: Run log shared by every stage

    Returns:
        RunResult with API responses (in dispatch order), errors and log entries
    """
    run_log.info("Starting sales sync")
    result = RunResult()

    try:
        run_log.info("Connecting to primary DB", {"server": settings.db_server})
        with primary_connection() as conn:
            run_log.success("Connected to primary DB", {"server": settings.db_server})
            rows = list_site_connections(conn, run_log)

        if not rows:
            message = "No customer data found."
            run_log.warn(message)
            result.errors.append(message)
            result.log_entries = run_log.entries
            return result

        for row in rows:
            try:
                site = parse_site_connection(row)
            except ValueError as e:
                run_log.error(str(e), {"customer": dict(row)})
                result.errors.append(str(e))
                continue

            await sync_site(http_client, site, run_log, result)

        run_log.info("Sales sync finished")

    except DatabaseConnectionError as e:
        message = f"Database Connection Error for primary DB {settings.db_server}: {e}"
        run_log.error(message, {"kind": SyncErrorKind.CONNECTIVITY.value})
        result.errors.append(message)

    except Exception as e:
        run_log.error("Unexpected error in sales sync", {"error": str(e)})
        logger.exception("Unexpected error in sales sync")
        return RunResult(errors=[str(e)], log_entries=run_log.entries)

    result.log_entries = run_log.entries
    return result


# ============================================================================
# COMMIT GATE
# ============================================================================

def _reports_success(response: Dict[str, Any]) -> bool:
    return response.get(settings.success_field) == settings.success_value


def is_global_success(api_responses: Sequence[Dict[str, Any]]) -> bool:
    """
    Decide whether the run's rows may be marked as uploaded.

    Only the FIRST dispatched response is inspected. When later responses
    did not report success the decision is kept but flagged in the process
    log, since their rows will be marked as uploaded too.
    """
    if not api_responses or not _reports_success(api_responses[0]):
        return False

    failed = [response for response in api_responses[1:] if not _reports_success(response)]
    if failed:
        logger.warning(
            f"⚠️  Upload commit gated on the first API response only: "
            f"{len(failed)} of {len(api_responses) - 1} later responses did not report success"
        )
    return True


def mark_uploaded(run_log: RunLog) -> CommitResult:
    """Run the commit step against the primary database."""
    try:
        with primary_connection() as conn:
            return commit_uploads(conn, run_log)
    except DatabaseConnectionError as e:
        result = CommitResult(status=LogStatus.ERROR, message="Could not update tables")
        run_log.error(result.message, {"error": str(e), "kind": SyncErrorKind.CONNECTIVITY.value})
        return result


def persist_summary(summary: RunSummary) -> bool:
    """Write the audit row; an unreachable primary database is logged only."""
    try:
        with primary_connection() as conn:
            return save_run_summary(conn, summary)
    except DatabaseConnectionError as e:
        logger.error(f"❌ Audit log not written, primary DB unreachable: {e}")
        return False


# ============================================================================
# ENTRY POINT
# ============================================================================

async def run_sales_sync(http_client: Optional[httpx.AsyncClient] = None) -> RunSummary:
    """
    Run one complete sales sync: fan-out, gated commit, audit record.

    Args:
        http_client: Optional client; one is created (and closed) if omitted

    Returns:
        The summary record written to the audit table
    """
    run_log = RunLog()
    owns_client = http_client is None
    if owns_client:
        http_client = create_http_client()

    try:
        result = await sync_sales(http_client, run_log)

        if is_global_success(result.api_responses):
            run_log.success("Sales sync completed successfully")

            commit_result = mark_uploaded(run_log)
            if commit_result.status == LogStatus.SUCCESS:
                run_log.success("Tables updated successfully", commit_result.model_dump(mode="json"))
            else:
                run_log.error("Error updating tables", commit_result.model_dump(mode="json"))
        else:
            run_log.warn("Sales sync had some issues", {
                "responses": [dict(response) for response in result.api_responses],
                "errors": result.errors,
            })

    except Exception as e:
        run_log.error("Sales sync failed", {"error": str(e)})
        logger.exception("Sales sync failed")

    finally:
        if owns_client:
            await http_client.aclose()

    summary = run_log.summarize()

    logger.info("=" * 80)
    logger.info(f"Sales sync run finished: {summary.status.value} - {summary.message}")
    logger.info(f"Log entries: {len(run_log)}")
    logger.info("=" * 80)

    persist_summary(summary)
    return summary
