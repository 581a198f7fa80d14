"""
Tests for the database helpers (directory, site reads, commit, audit log).
"""
import json
from datetime import date

import psycopg
import pytest

from factories import FakeConnection, payment_row, tenant_row

from salesync.core.config import settings
from salesync.models.schemas.sales import FetchError, LogStatus, RunSummary
from salesync.services.sync import database
from salesync.services.sync.database import (
    DatabaseConnectionError,
    commit_uploads,
    list_aggregated_payments,
    list_items,
    list_site_connections,
    list_tenant_configs,
    open_connection,
    save_run_summary,
)


class TestOpenConnection:

    def test_closes_connection_on_exit(self, monkeypatch):
        conn = FakeConnection()
        monkeypatch.setattr(database, "_connect", lambda host, port, db: conn)

        with open_connection("10.0.0.1", 5432, "sitedb") as opened:
            assert opened is conn

        assert conn.closed

    def test_closes_connection_on_error(self, monkeypatch):
        conn = FakeConnection()
        monkeypatch.setattr(database, "_connect", lambda host, port, db: conn)

        with pytest.raises(RuntimeError):
            with open_connection("10.0.0.1", 5432, "sitedb"):
                raise RuntimeError("boom")

        assert conn.closed

    def test_unreachable_server_raises_connection_error(self, monkeypatch):
        def refuse(host, port, db):
            raise psycopg.OperationalError("connection refused")

        monkeypatch.setattr(database, "_connect", refuse)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            with open_connection("10.0.0.9", 5433, "sitedb"):
                pass

        assert exc_info.value.host == "10.0.0.9"
        assert exc_info.value.port == 5433
        assert "connection refused" in str(exc_info.value)

    def test_connect_is_retried(self, monkeypatch):
        monkeypatch.setattr(settings, "db_connect_attempts", 2)
        monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
        conn = FakeConnection()
        calls = []

        def flaky(host, port, db):
            calls.append(host)
            if len(calls) == 1:
                raise psycopg.OperationalError("timeout")
            return conn

        monkeypatch.setattr(database, "_connect", flaky)

        with open_connection("10.0.0.1", 5432, "sitedb") as opened:
            assert opened is conn
        assert len(calls) == 2


class TestDirectory:

    def test_returns_rows(self, run_log):
        rows = [{"ip": "10.0.0.1", "port": "5432"}, {"ip": "10.0.0.2", "port": "5432"}]
        conn = FakeConnection([("tb_syncdb_users", rows)])

        assert list_site_connections(conn, run_log) == rows
        assert run_log.entries[-1].status == LogStatus.SUCCESS

    def test_empty_directory_warns(self, run_log):
        assert list_site_connections(FakeConnection(), run_log) == []
        assert run_log.entries[-1].status == LogStatus.WARN
        assert run_log.entries[-1].message == "No customer data found in tb_syncdb_users"

    def test_query_failure_logs_error(self, run_log):
        conn = FakeConnection([("tb_syncdb_users", psycopg.OperationalError("gone"))])

        assert list_site_connections(conn, run_log) == []
        assert run_log.entries[-1].message == "Error fetching sync DB connection data"


class TestTenantConfigs:

    def test_strings_are_trimmed(self, run_log):
        conn = FakeConnection([("tb_ogfmain", [tenant_row("APP1")])])

        tenants = list_tenant_configs(conn, run_log)

        assert len(tenants) == 1
        assert tenants[0].app_code == "APP1"
        assert tenants[0].property_code == "PROP1"
        assert tenants[0].oauth_token_url == "https://auth.app1.test/oauth/token"

    def test_invalid_row_is_skipped(self, run_log):
        rows = [tenant_row("APP1", oauth_token_url=None), tenant_row("APP2")]
        conn = FakeConnection([("tb_ogfmain", rows)])

        tenants = list_tenant_configs(conn, run_log)

        assert [tenant.app_code for tenant in tenants] == ["APP2"]
        errors = [entry for entry in run_log.entries if entry.status == LogStatus.ERROR]
        assert errors[0].message == "Invalid tenant configuration row"

    def test_no_rows_warns(self, run_log):
        assert list_tenant_configs(FakeConnection(), run_log) == []
        assert run_log.entries[-1].message == "Cannot fetch user details (0 rows)"


class TestPayments:

    def test_query_aggregates_unuploaded_rows(self, run_log):
        conn = FakeConnection([("tb_ogfpayment", [payment_row("R001"), payment_row("R002")])])

        payments = list_aggregated_payments(conn, run_log)

        assert [payment.receipt_no for payment in payments] == ["R001", "R002"]
        query = conn.executed[0][0]
        assert "GROUP BY receiptno" in query
        assert "STRING_AGG(DISTINCT paymentmethod, ','" in query
        assert "upload IS DISTINCT FROM 'T'" in query

    def test_numeric_receipt_no_is_text(self, run_log):
        conn = FakeConnection([("tb_ogfpayment", [payment_row(1001)])])
        assert list_aggregated_payments(conn, run_log)[0].receipt_no == "1001"

    def test_no_rows_is_fetch_error(self, run_log):
        result = list_aggregated_payments(FakeConnection(), run_log)
        assert isinstance(result, FetchError)
        assert result.error == "Cannot fetch user payment details (0 rows)"

    def test_query_failure_is_fetch_error(self, run_log):
        conn = FakeConnection([("tb_ogfpayment", psycopg.ProgrammingError("bad column"))])

        result = list_aggregated_payments(conn, run_log)

        assert isinstance(result, FetchError)
        assert result.error.startswith("Error fetching user payment details:")


class TestItems:

    def test_filters_by_receipt_date_and_number(self, run_log):
        rows = [{"item_desc": "Nasi Lemak", "item_amt": 12.5, "item_discount_amt": 0}]
        conn = FakeConnection([("tb_ogfitemsale", rows)])

        items = list_items(conn, run_log, date(2024, 3, 7), "R001")

        assert items[0].item_desc == "Nasi Lemak"
        assert conn.executed[0][1] == (date(2024, 3, 7), "R001")

    def test_no_items_is_fetch_error(self, run_log):
        result = list_items(FakeConnection(), run_log, date(2024, 3, 7), "R001")
        assert result == FetchError(error="No user items details found for given receipt")

    def test_query_failure_is_fetch_error(self, run_log):
        conn = FakeConnection([("tb_ogfitemsale", psycopg.OperationalError("reset"))])

        result = list_items(conn, run_log, date(2024, 3, 7), "R001")

        assert isinstance(result, FetchError)
        assert "Error fetching user items details" in result.error


class TestCommitUploads:

    def test_marks_both_tables_in_one_transaction(self, run_log):
        conn = FakeConnection([("UPDATE tb_ogfpayment", 3), ("UPDATE tb_ogfitemsale", 7)])

        result = commit_uploads(conn, run_log)

        assert result.status == LogStatus.SUCCESS
        assert result.message == "Tables updated successfully"
        assert (result.payment_rows_affected, result.items_rows_affected) == (3, 7)
        assert conn.transactions == 1
        assert run_log.entries[-1].context == {"paymentRowsAffected": 3, "itemsRowsAffected": 7}

    def test_update_includes_null_markers(self, run_log):
        conn = FakeConnection([("UPDATE", 1)])
        commit_uploads(conn, run_log)

        for query, _ in conn.queries("UPDATE"):
            assert "upload <> 'T' OR upload IS NULL" in query

    def test_zero_rows_is_error_result(self, run_log):
        conn = FakeConnection([("UPDATE", 0)])

        result = commit_uploads(conn, run_log)

        assert result.status == LogStatus.ERROR
        assert result.message == "No rows were updated in tb_ogfpayment or tb_ogfitemsale"
        assert (result.payment_rows_affected, result.items_rows_affected) == (0, 0)

    def test_second_update_failure_rolls_back(self, run_log):
        conn = FakeConnection([
            ("UPDATE tb_ogfpayment", 4),
            ("UPDATE tb_ogfitemsale", psycopg.OperationalError("lock timeout")),
        ])

        result = commit_uploads(conn, run_log)

        assert result.status == LogStatus.ERROR
        assert result.message == "Could not update tables"
        assert conn.rolled_back == 1
        assert run_log.entries[-1].context["error"] == "lock timeout"

    def test_rerun_after_success_updates_nothing(self, run_log):
        conn = FakeConnection([("UPDATE tb_ogfpayment", 2), ("UPDATE tb_ogfitemsale", 5)])
        assert commit_uploads(conn, run_log).status == LogStatus.SUCCESS

        conn.rules = [("UPDATE", 0)]
        again = commit_uploads(conn, run_log)

        assert again.status == LogStatus.ERROR
        assert again.payment_rows_affected == 0


class TestSaveRunSummary:

    def test_inserts_one_row(self):
        conn = FakeConnection()
        summary = RunSummary(status=LogStatus.SUCCESS, message="Tables updated successfully",
                             context={"paymentRowsAffected": 3})

        assert save_run_summary(conn, summary) is True

        query, params = conn.executed[0]
        assert "INSERT INTO tb_sync_log" in query
        assert params == ("SUCCESS", "Tables updated successfully", json.dumps({"paymentRowsAffected": 3}))

    def test_values_are_truncated_to_column_widths(self):
        conn = FakeConnection()
        summary = RunSummary(status=LogStatus.ERROR, message="m" * 600, context={"error": "e" * 2000})

        save_run_summary(conn, summary)

        status, message, context = conn.executed[0][1]
        assert status == "ERROR"
        assert len(message) == 500
        assert len(context) == 1000

    def test_insert_failure_returns_false(self):
        conn = FakeConnection([("INSERT", psycopg.OperationalError("read only"))])
        summary = RunSummary(status=LogStatus.INFO, message="No logs found")

        assert save_run_summary(conn, summary) is False
