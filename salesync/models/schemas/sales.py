"""
Sales Sync Schemas
Records read from the directory and site databases, and the results
produced by one sync run
"""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogStatus(str, Enum):
    """Run log entry status."""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    INFO = "INFO"
    WARN = "WARN"


class SyncErrorKind(str, Enum):
    """Failure classes recorded in log contexts under the "kind" key."""
    CONNECTIVITY = "CONNECTIVITY"
    EMPTY_RESULT = "EMPTY_RESULT"
    AUTH_FAILURE = "AUTH_FAILURE"
    DISPATCH_FAILURE = "DISPATCH_FAILURE"
    COMMIT_FAILURE = "COMMIT_FAILURE"


# ============================================================================
# SOURCE RECORDS
# ============================================================================

class SiteConnection(BaseModel):
    """Network address of one customer's site database server."""
    model_config = ConfigDict(frozen=True)

    address: str
    port: int


class TenantConfig(BaseModel):
    """
    One tenant user row from a site database (tb_ogfmain).
    String fields are whitespace-trimmed on read.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    app_code: str
    property_code: Optional[str] = None
    pos_interface_code: Optional[str] = None
    batch_code: Optional[str] = None
    sales_tax_rate: Optional[Decimal] = None
    oauth_token_url: str
    client_id: str
    client_secret: str
    api_endpoint: str


class PaymentRecord(BaseModel):
    """One receipt, aggregated over the raw payment lines sharing its number."""
    receipt_no: str
    receipt_date: Union[datetime, date, str, None] = None
    receipt_time: Union[datetime, time, str, None] = None
    no_of_items: Optional[int] = None
    sales_currency: Optional[str] = None
    total_sales_amt_b4_tax: Optional[Decimal] = None
    total_sales_amt_after_tax: Optional[Decimal] = None
    sales_tax_rate: Optional[Decimal] = None
    service_charge_amt: Optional[Decimal] = None
    payment_amt: Optional[Decimal] = None
    payment_currency: Optional[str] = None
    payment_method: Optional[str] = None
    sales_type: Optional[str] = None

    @field_validator("receipt_no", mode="before")
    @classmethod
    def receipt_no_as_text(cls, value):
        return value if isinstance(value, str) else str(value)


class ItemRecord(BaseModel):
    """A line item of one receipt (tb_ogfitemsale)."""
    item_desc: Optional[str] = None
    item_amt: Optional[Decimal] = None
    item_discount_amt: Optional[Decimal] = None


class FetchError(BaseModel):
    """Returned by a site read instead of rows when the read failed or found nothing."""
    error: str


# ============================================================================
# RUN RESULTS
# ============================================================================

class LogEntry(BaseModel):
    """One append-only run log entry."""
    timestamp: str
    status: LogStatus
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


class RunResult(BaseModel):
    """Everything collected while fanning out over the site connections."""
    api_responses: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    log_entries: List[LogEntry] = Field(default_factory=list)


class CommitResult(BaseModel):
    """Outcome of marking payment and item rows as uploaded."""
    status: LogStatus
    message: str
    payment_rows_affected: int = 0
    items_rows_affected: int = 0


class RunSummary(BaseModel):
    """The single record persisted to the audit log for a run."""
    status: LogStatus
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
