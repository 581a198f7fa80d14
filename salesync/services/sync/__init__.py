"""
Sales Sync System
One fan-out pass from customer site databases to tenant sales APIs
"""
from salesync.services.sync.oauth import get_access_token
from salesync.services.sync.database import commit_uploads, save_run_summary
from salesync.services.sync.orchestration.sales_sync import run_sales_sync, sync_sales
from salesync.services.sync.run_log import RunLog

__all__ = [
    "get_access_token",
    "commit_uploads",
    "save_run_summary",
    "run_sales_sync",
    "sync_sales",
    "RunLog",
]
