"""
Tests for payload assembly (pure transformations).
"""
import json
from datetime import date, datetime, time

from factories import make_item, make_payment, make_tenant

from salesync.services.sync.payload import (
    build_tenant_payload,
    format_receipt_date,
    format_receipt_time,
    project_payment,
    receipt_key,
    serialize_payload,
    trim_strings,
)


class TestFormatting:
    """Receipt date and time formatting"""

    def test_date_is_day_month_year(self):
        assert format_receipt_date(date(2024, 3, 7)) == "07/03/2024"

    def test_naive_datetime_date(self):
        assert format_receipt_date(datetime(2023, 12, 31, 23, 59)) == "31/12/2023"

    def test_iso_string_date(self):
        assert format_receipt_date(" 2024-01-05 ") == "05/01/2024"

    def test_none_date(self):
        assert format_receipt_date(None) is None

    def test_time_is_24_hour(self):
        assert format_receipt_time(time(21, 4, 3)) == "21:04:03"

    def test_naive_datetime_time(self):
        assert format_receipt_time(datetime(1970, 1, 1, 9, 30, 0)) == "09:30:00"

    def test_iso_string_time(self):
        assert format_receipt_time("18:45:10") == "18:45:10"

    def test_none_time(self):
        assert format_receipt_time(None) is None


class TestTrimStrings:
    """Recursive whitespace trimming"""

    def test_trims_every_depth(self):
        value = {
            "a": "  x ",
            "b": [" y", {"c": "z  ", "d": [" deep "]}],
            "e": 5,
            "f": None,
        }
        assert trim_strings(value) == {
            "a": "x",
            "b": ["y", {"c": "z", "d": ["deep"]}],
            "e": 5,
            "f": None,
        }

    def test_scalars_pass_through(self):
        assert trim_strings(1.5) == 1.5
        assert trim_strings(" s ") == "s"


class TestBuildTenantPayload:
    """Tenant payload shape"""

    def test_two_receipts_give_two_pos_sales(self):
        tenant = make_tenant()
        payments = [
            make_payment("R001", receipt_date=date(2024, 3, 7)),
            make_payment("R002", receipt_date=date(2024, 3, 8)),
        ]

        payload = build_tenant_payload(tenant, payments, {})

        assert len(payload["PosSales"]) == 2
        assert [sale["ReceiptDate"] for sale in payload["PosSales"]] == ["07/03/2024", "08/03/2024"]

    def test_header_fields_and_no_internal_tenant_fields(self):
        payload = build_tenant_payload(make_tenant("APP9"), [], {})

        assert list(payload) == [
            "AppCode", "PropertyCode", "ClientID", "ClientSecret",
            "POSInterfaceCode", "BatchCode", "PosSales",
        ]
        assert payload["AppCode"] == "APP9"
        assert payload["ClientID"] == "client-app9"
        assert payload["PosSales"] == []

    def test_sale_merges_tenant_codes_and_items(self):
        tenant = make_tenant()
        payment = make_payment("R001")
        items = {receipt_key(payment): [make_item("Teh Tarik", "3.50", "0.50")]}

        sale = build_tenant_payload(tenant, [payment], items)["PosSales"][0]

        assert sale["PropertyCode"] == "PROP1"
        assert sale["POSInterfaceCode"] == "POS1"
        assert sale["ReceiptTime"] == "14:05:09"
        assert sale["PaymentMethod"] == "CARD,CASH"
        assert sale["TotalSalesAmtAfterTax"] == 106.0
        assert sale["Items"] == [{"Item_Desc": "Teh Tarik", "ItemAmt": 3.5, "ItemDiscountAmt": 0.5}]
        assert "upload" not in sale and "UPLOAD" not in sale

    def test_missing_items_give_empty_list(self):
        tenant = make_tenant()
        ok, failed = make_payment("R001"), make_payment("R002")
        items = {receipt_key(ok): [make_item()]}

        sales = build_tenant_payload(tenant, [ok, failed], items)["PosSales"]

        assert len(sales[0]["Items"]) == 1
        assert sales[1]["Items"] == []

    def test_whitespace_trimmed_at_every_depth(self):
        tenant = make_tenant(batch_code="B1")
        payment = make_payment(" R001 ", sales_currency=" MYR ", payment_method=" CASH ")
        items = {receipt_key(payment): [make_item("  Roti Canai  ")]}

        payload = build_tenant_payload(tenant, [payment], items)
        sale = payload["PosSales"][0]

        assert sale["ReceiptNo"] == "R001"
        assert sale["SalesCurrency"] == "MYR"
        assert sale["PaymentMethod"] == "CASH"
        assert sale["Items"][0]["Item_Desc"] == "Roti Canai"


class TestSerialize:
    """Deterministic JSON body"""

    def test_two_space_indent_and_stable_output(self):
        tenant = make_tenant()
        payment = make_payment()
        payload = build_tenant_payload(tenant, [payment], {receipt_key(payment): [make_item()]})

        body = serialize_payload(payload)

        assert body.startswith('{\n  "AppCode": "APP1"')
        assert serialize_payload(build_tenant_payload(tenant, [payment], {receipt_key(payment): [make_item()]})) == body
        assert json.loads(body)["PosSales"][0]["Items"][0]["ItemAmt"] == 12.5

    def test_projection_converts_decimals(self):
        projected = project_payment(make_payment())
        assert isinstance(projected["PaymentAmt"], float)
        assert projected["NoOfItems"] == 3
