"""
Sync Schemas
Models for the manual sync endpoint
"""
from pydantic import BaseModel


class SyncResponse(BaseModel):
    """
    Response for the manual sales sync endpoint.
    Mirrors the audit record written for the run.
    """
    status: str  # "SUCCESS", "ERROR", "WARN", "INFO"
    message: str
