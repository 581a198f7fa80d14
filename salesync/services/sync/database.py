"""
Database helper functions for the sales sync
Handles connections, directory/site reads, upload marking and the audit log

Exactly one connection is open at a time: callers use the context managers
below and finish with one database before opening the next.
"""
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Union

import psycopg
from psycopg.rows import dict_row
from pydantic import ValidationError

from salesync.core.circuit_breakers import with_connect_retry
from salesync.core.config import settings
from salesync.models.schemas.sales import (
    CommitResult,
    FetchError,
    ItemRecord,
    LogStatus,
    PaymentRecord,
    RunSummary,
    SiteConnection,
    SyncErrorKind,
    TenantConfig,
)
from salesync.services.sync.run_log import RunLog

logger = logging.getLogger(__name__)

DIRECTORY_TABLE = "tb_syncdb_users"
TENANT_TABLE = "tb_ogfmain"
PAYMENT_TABLE = "tb_ogfpayment"
ITEM_TABLE = "tb_ogfitemsale"
AUDIT_TABLE = "tb_sync_log"


class DatabaseConnectionError(Exception):
    """A database could not be reached after all connect attempts."""

    def __init__(self, host: str, port: int, database: str, cause: Exception):
        self.host = host
        self.port = port
        self.database = database
        self.cause = cause
        super().__init__(str(cause).strip() or type(cause).__name__)


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

def _connect(host: str, port: int, database: str) -> psycopg.Connection:
    return psycopg.connect(
        host=host,
        port=port,
        dbname=database,
        user=settings.db_user,
        password=settings.db_password,
        connect_timeout=settings.db_connect_timeout,
        row_factory=dict_row,
        autocommit=True,
    )


@contextmanager
def open_connection(host: str, port: int, database: str) -> Iterator[psycopg.Connection]:
    """
    Open a connection and close it when the block exits.

    Autocommit is on; multi-statement units use conn.transaction().

    Raises:
        DatabaseConnectionError: If every connect attempt failed
    """
    connect = with_connect_retry(max_attempts=settings.db_connect_attempts)(_connect)
    try:
        conn = connect(host, port, database)
    except psycopg.OperationalError as e:
        raise DatabaseConnectionError(host, port, database, e) from e

    try:
        yield conn
    finally:
        conn.close()


def primary_connection():
    """Connection to the primary (control) database."""
    return open_connection(settings.db_server, settings.db_port, settings.primary_database)


def site_connection(site: SiteConnection):
    """Connection to one customer site database."""
    return open_connection(site.address, site.port, settings.site_database)


# ============================================================================
# DIRECTORY (primary database)
# ============================================================================

def list_site_connections(conn: psycopg.Connection, run_log: RunLog) -> List[Dict[str, Any]]:
    """
    Fetch the raw customer site rows from the directory table.

    Returns:
        List of {"ip", "port"} rows; empty on no rows or query failure
    """
    try:
        with conn.cursor() as cur:
            cur.execute(f"SELECT ip, port FROM {DIRECTORY_TABLE}")
            rows = cur.fetchall()
    except psycopg.Error as e:
        run_log.error("Error fetching sync DB connection data", {
            "error": str(e),
            "kind": SyncErrorKind.CONNECTIVITY.value,
        })
        return []

    if not rows:
        run_log.warn(f"No customer data found in {DIRECTORY_TABLE}", {"kind": SyncErrorKind.EMPTY_RESULT.value})
        return []

    run_log.success("Fetched sync DB connection data", {"count": len(rows)})
    return rows


# ============================================================================
# SITE DATA (site database)
# ============================================================================

TENANT_QUERY = f"""
    SELECT appcode AS app_code,
           propertycode AS property_code,
           posinterfacecode AS pos_interface_code,
           batchcode AS batch_code,
           salestaxrate AS sales_tax_rate,
           oauth_token_url,
           clientid AS client_id,
           clientsecret AS client_secret,
           api_endpoint
    FROM {TENANT_TABLE}
"""

PAYMENT_QUERY = f"""
    SELECT receiptno AS receipt_no,
           MAX(receiptdate) AS receipt_date,
           MAX(receipttime) AS receipt_time,
           SUM(noofitems) AS no_of_items,
           MAX(salescurrency) AS sales_currency,
           SUM(totalsalesamtb4tax) AS total_sales_amt_b4_tax,
           SUM(totalsalesamtaftertax) AS total_sales_amt_after_tax,
           SUM(salestaxrate) AS sales_tax_rate,
           SUM(servicechargeamt) AS service_charge_amt,
           SUM(paymentamt) AS payment_amt,
           MAX(paymentcurrency) AS payment_currency,
           STRING_AGG(DISTINCT paymentmethod, ',' ORDER BY paymentmethod) AS payment_method,
           MAX(salestype) AS sales_type
    FROM {PAYMENT_TABLE}
    WHERE upload IS DISTINCT FROM 'T'
    GROUP BY receiptno
    ORDER BY receiptno
"""

ITEM_QUERY = f"""
    SELECT item_desc,
           itemamt AS item_amt,
           itemdiscountamt AS item_discount_amt
    FROM {ITEM_TABLE}
    WHERE receiptdate = %s
      AND receiptno = %s
      AND upload IS DISTINCT FROM 'T'
"""


def list_tenant_configs(conn: psycopg.Connection, run_log: RunLog) -> List[TenantConfig]:
    """
    Fetch tenant configurations of a site (string fields trimmed).

    Rows that do not form a usable config (e.g. no token URL) are logged
    and skipped.

    Returns:
        Tenant configs; empty on no rows or query failure
    """
    try:
        with conn.cursor() as cur:
            cur.execute(TENANT_QUERY)
            rows = cur.fetchall()
    except psycopg.Error as e:
        run_log.error("Error fetching user connection details", {"error": str(e)})
        return []

    if not rows:
        run_log.warn("Cannot fetch user details (0 rows)", {"kind": SyncErrorKind.EMPTY_RESULT.value})
        return []

    tenants = []
    for row in rows:
        try:
            tenants.append(TenantConfig(**row))
        except ValidationError as e:
            run_log.error("Invalid tenant configuration row", {
                "AppCode": row.get("app_code"),
                "error": str(e),
            })

    run_log.success("Fetched user details", {"count": len(tenants)})
    return tenants


def list_aggregated_payments(conn: psycopg.Connection, run_log: RunLog) -> Union[List[PaymentRecord], FetchError]:
    """
    Fetch not-yet-uploaded payments aggregated per receipt number.

    Sums the amount/count columns, takes the max of the descriptive
    columns and joins the sorted distinct payment methods with commas.

    Returns:
        Payment records, or FetchError when the query failed or found nothing
    """
    try:
        with conn.cursor() as cur:
            cur.execute(PAYMENT_QUERY)
            rows = cur.fetchall()
        payments = [PaymentRecord(**row) for row in rows]
    except (psycopg.Error, ValidationError) as e:
        message = f"Error fetching user payment details: {e}"
        run_log.error(message)
        return FetchError(error=message)

    if not payments:
        message = "Cannot fetch user payment details (0 rows)"
        run_log.warn(message, {"kind": SyncErrorKind.EMPTY_RESULT.value})
        return FetchError(error=message)

    run_log.success("Fetched user payment details", {"count": len(payments)})
    return payments


def list_items(
    conn: psycopg.Connection,
    run_log: RunLog,
    receipt_date: Any,
    receipt_no: str
) -> Union[List[ItemRecord], FetchError]:
    """
    Fetch not-yet-uploaded item lines of one receipt.

    Returns:
        Item records, or FetchError when the query failed or found nothing
    """
    context = {"ReceiptDate": str(receipt_date), "ReceiptNo": receipt_no}
    try:
        with conn.cursor() as cur:
            cur.execute(ITEM_QUERY, (receipt_date, receipt_no))
            rows = cur.fetchall()
        items = [ItemRecord(**row) for row in rows]
    except (psycopg.Error, ValidationError) as e:
        message = f"Error fetching user items details: {e}"
        run_log.error(message, context)
        return FetchError(error=message)

    if not items:
        message = "No user items details found for given receipt"
        run_log.warn(message, {**context, "kind": SyncErrorKind.EMPTY_RESULT.value})
        return FetchError(error=message)

    run_log.success("Fetched user items details", {**context, "count": len(items)})
    return items


# ============================================================================
# UPLOAD MARKING (primary database)
# ============================================================================

def commit_uploads(conn: psycopg.Connection, run_log: RunLog) -> CommitResult:
    """
    Mark every not-yet-uploaded payment and item row as uploaded.

    Both UPDATEs run in one transaction: on any failure nothing is marked.
    Zero rows in both tables is reported as an ERROR result.
    """
    try:
        with conn.transaction():
            with conn.cursor() as cur:
                cur.execute(f"UPDATE {PAYMENT_TABLE} SET upload = 'T' WHERE upload <> 'T' OR upload IS NULL")
                payment_rows = cur.rowcount
                cur.execute(f"UPDATE {ITEM_TABLE} SET upload = 'T' WHERE upload <> 'T' OR upload IS NULL")
                items_rows = cur.rowcount
    except psycopg.Error as e:
        result = CommitResult(status=LogStatus.ERROR, message="Could not update tables")
        run_log.error(result.message, {"error": str(e), "kind": SyncErrorKind.COMMIT_FAILURE.value})
        return result

    counts = {"paymentRowsAffected": payment_rows, "itemsRowsAffected": items_rows}

    if payment_rows == 0 and items_rows == 0:
        result = CommitResult(
            status=LogStatus.ERROR,
            message=f"No rows were updated in {PAYMENT_TABLE} or {ITEM_TABLE}",
            payment_rows_affected=0,
            items_rows_affected=0,
        )
        run_log.warn(result.message, {**counts, "kind": SyncErrorKind.COMMIT_FAILURE.value})
        return result

    result = CommitResult(
        status=LogStatus.SUCCESS,
        message="Tables updated successfully",
        payment_rows_affected=payment_rows,
        items_rows_affected=items_rows,
    )
    run_log.success(result.message, counts)
    return result


# ============================================================================
# AUDIT LOG (primary database)
# ============================================================================

def save_run_summary(conn: psycopg.Connection, summary: RunSummary) -> bool:
    """
    Insert the run summary into the audit table.

    Values are truncated to the configured column widths. Failures are
    logged, not raised: the run itself has already finished.

    Returns:
        True if the row was written
    """
    status = summary.status.value[:settings.audit_status_width]
    message = summary.message[:settings.audit_message_width]
    context = json.dumps(summary.context, default=str)[:settings.audit_context_width]

    try:
        with conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO {AUDIT_TABLE} (status, message, context) VALUES (%s, %s, %s)",
                (status, message, context)
            )
    except psycopg.Error as e:
        logger.error(f"❌ Failed to write audit log row: {e}")
        return False

    logger.info(f"✅ Audit log written: {status} - {message[:80]}")
    return True
