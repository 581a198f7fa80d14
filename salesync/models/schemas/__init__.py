"""
Pydantic Schemas
Source records, run results and request/response models
"""

# Health check schemas
from .health import HealthResponse

# Sales sync records
from .sales import (
    CommitResult,
    FetchError,
    ItemRecord,
    LogEntry,
    LogStatus,
    PaymentRecord,
    RunResult,
    RunSummary,
    SiteConnection,
    SyncErrorKind,
    TenantConfig,
)

# Sync schemas
from .sync import SyncResponse

__all__ = [
    # Health
    "HealthResponse",
    # Sales sync
    "CommitResult",
    "FetchError",
    "ItemRecord",
    "LogEntry",
    "LogStatus",
    "PaymentRecord",
    "RunResult",
    "RunSummary",
    "SiteConnection",
    "SyncErrorKind",
    "TenantConfig",
    # Sync
    "SyncResponse",
]
