"""
Validation utilities for directory rows
"""
from typing import Any, Mapping, Optional

from salesync.models.schemas.sales import SiteConnection


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_port(value: Any) -> Optional[int]:
    """
    Parse a port column value (stored as text in the directory).

    Returns:
        Positive integer port, or None if missing/non-numeric/non-positive
    """
    text = _clean(value)
    if text is None:
        return None
    try:
        port = int(text)
    except ValueError:
        return None
    return port if 0 < port < 65536 else None


def parse_site_connection(row: Mapping[str, Any]) -> SiteConnection:
    """
    Validate one directory row.

    Args:
        row: Row with "ip" and "port" columns

    Returns:
        SiteConnection with trimmed address and integer port

    Raises:
        ValueError: If the address is empty or the port is invalid
    """
    address = _clean(row.get("ip"))
    if not address:
        raise ValueError("IP is null for a customer entry")

    port = parse_port(row.get("port"))
    if port is None:
        raise ValueError(f"Port is null or invalid for IP: {address}")

    return SiteConnection(address=address, port=port)
