"""
Tenant API Providers
Clients for the per-tenant sales endpoints
"""
from salesync.services.sync.providers.sales_api import DispatchFailure, dispatch_payload

__all__ = [
    "DispatchFailure",
    "dispatch_payload",
]
