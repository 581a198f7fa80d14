"""
Payload assembly
Reshapes site records into the JSON body each tenant sales API expects

All functions are pure (no I/O). Key order of the projections is fixed, so
serialize_payload() always yields the same text for the same records.
"""
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from salesync.models.schemas.sales import ItemRecord, PaymentRecord, TenantConfig

ReceiptKey = Tuple[Any, str]


def receipt_key(payment: PaymentRecord) -> ReceiptKey:
    """Key used to attach item lines to their payment."""
    return (payment.receipt_date, payment.receipt_no)


# ============================================================================
# DATE / TIME FORMATTING
# ============================================================================

def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def format_receipt_date(value: Union[datetime, date, str, None]) -> Optional[str]:
    """
    Format a receipt date as DD/MM/YYYY.

    Examples:
        >>> format_receipt_date(date(2024, 3, 7))
        '07/03/2024'
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = _parse_iso(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime("%d/%m/%Y")


def format_receipt_time(value: Union[datetime, time, str, None]) -> Optional[str]:
    """
    Format a receipt time as 24-hour HH:MM:SS in local time.

    Timezone-aware datetimes are converted to the server's local zone first.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = time.fromisoformat(text)
        except ValueError:
            value = _parse_iso(text)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime("%H:%M:%S")


# ============================================================================
# PROJECTIONS
# ============================================================================

def _number(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def project_item(item: ItemRecord) -> Dict[str, Any]:
    """Wire shape of one item line."""
    return {
        "Item_Desc": item.item_desc,
        "ItemAmt": _number(item.item_amt),
        "ItemDiscountAmt": _number(item.item_discount_amt),
    }


def project_payment(payment: PaymentRecord) -> Dict[str, Any]:
    """
    Wire shape of one aggregated payment.

    Only the aggregated sales fields are projected; upload markers and
    bookkeeping columns never reach the payload.
    """
    return {
        "ReceiptNo": payment.receipt_no,
        "ReceiptDate": format_receipt_date(payment.receipt_date),
        "ReceiptTime": format_receipt_time(payment.receipt_time),
        "NoOfItems": payment.no_of_items,
        "SalesCurrency": payment.sales_currency,
        "TotalSalesAmtB4Tax": _number(payment.total_sales_amt_b4_tax),
        "TotalSalesAmtAfterTax": _number(payment.total_sales_amt_after_tax),
        "SalesTaxRate": _number(payment.sales_tax_rate),
        "ServiceChargeAmt": _number(payment.service_charge_amt),
        "PaymentAmt": _number(payment.payment_amt),
        "PaymentCurrency": payment.payment_currency,
        "PaymentMethod": payment.payment_method,
        "SalesType": payment.sales_type,
    }


def trim_strings(value: Any) -> Any:
    """Recursively strip whitespace from every string in dicts, lists and tuples."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        return {key: trim_strings(inner) for key, inner in value.items()}
    if isinstance(value, (list, tuple)):
        return [trim_strings(inner) for inner in value]
    return value


# ============================================================================
# TENANT PAYLOAD
# ============================================================================

def build_tenant_payload(
    tenant: TenantConfig,
    payments: Sequence[PaymentRecord],
    items_by_receipt: Mapping[ReceiptKey, List[ItemRecord]]
) -> Dict[str, Any]:
    """
    Build the request body for one tenant.

    Args:
        tenant: Tenant the payload is addressed to
        payments: Aggregated payments of the tenant's site
        items_by_receipt: Item lines per receipt_key(); a missing key
            (failed lookup) yields an empty Items list

    Returns:
        Payload dict with every string trimmed at every depth
    """
    pos_sales = []
    for payment in payments:
        sale = {
            "PropertyCode": tenant.property_code,
            "POSInterfaceCode": tenant.pos_interface_code,
            **project_payment(payment),
            "Items": [project_item(item) for item in items_by_receipt.get(receipt_key(payment), [])],
        }
        pos_sales.append(sale)

    payload = {
        "AppCode": tenant.app_code,
        "PropertyCode": tenant.property_code,
        "ClientID": tenant.client_id,
        "ClientSecret": tenant.client_secret,
        "POSInterfaceCode": tenant.pos_interface_code,
        "BatchCode": tenant.batch_code,
        "PosSales": pos_sales,
    }
    return trim_strings(payload)


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Serialize with 2-space indentation; the result is sent verbatim."""
    return json.dumps(payload, indent=2, default=str)
