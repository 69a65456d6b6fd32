"""
Unit tests for the record stores.

Run: pytest tests/unit/test_record_store.py -v
"""

import pytest

from config import database
from exceptions import DatabaseError, UnknownEntityTypeError
from services.record_store import (
    InMemoryRecordStore,
    SupabaseRecordStore,
    table_for,
    _column,
    _escape_like,
)
from tests.factories import CustomerFactory, StoredInvoiceFactory


class TestHelpers:
    """Tests for table and column helpers."""

    def test_table_for(self):
        assert table_for("customer_company") == "customers"
        assert table_for("customer_person") == "customers"
        assert table_for("invoice") == "invoices"

    def test_table_for_unknown(self):
        with pytest.raises(UnknownEntityTypeError):
            table_for("supplier")

    def test_column_json_path(self):
        assert _column("email") == "email"
        assert _column("billing_info.ico") == "billing_info->>ico"
        assert _column("venue.gps.lat") == "venue->gps->>lat"

    def test_escape_like(self):
        assert _escape_like("100%_done") == "100\\%\\_done"


# ===================
# SUPABASE STORE TESTS
# ===================

class TestSupabaseRecordStore:
    """Tests for SupabaseRecordStore against the mock client."""

    def test_find_existing(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("invoices", [
            StoredInvoiceFactory.create("2024001", id="inv-1"),
            StoredInvoiceFactory.create("2024002", id="inv-2"),
        ])

        found = supabase_store.find_existing("invoice", "invoice_number", "2024002")

        assert found == {**StoredInvoiceFactory.create("2024002", id="inv-2")}

    def test_find_existing_missing(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("invoices", [StoredInvoiceFactory.create("2024001")])

        assert supabase_store.find_existing("invoice", "invoice_number", "9999999") is None

    def test_find_existing_by_json_field(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("customers", [
            CustomerFactory.create(id="cust-1", organization="ZŠ Úvaly", ico="12345678"),
        ])

        found = supabase_store.find_existing("customer_company", "billing_info.ico", "12345678")

        assert found["id"] == "cust-1"

    def test_find_customer_by_organization(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("customers", [
            CustomerFactory.create(id="cust-1", organization="ZŠ Úvaly"),
            CustomerFactory.create(id="cust-2", organization="Divadlo 100%"),
        ])

        assert supabase_store.find_customer("zš úvaly")["id"] == "cust-1"
        assert supabase_store.find_customer(" Divadlo 100% ")["id"] == "cust-2"

    def test_find_customer_wildcards_are_literal(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("customers", [
            CustomerFactory.create(id="cust-1", organization="ZŠ Úvaly"),
        ])

        assert supabase_store.find_customer("%") is None

    def test_find_customer_by_email_and_company_id(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("customers", [
            CustomerFactory.create(id="cust-1", email="skola@uvaly.cz", ico="01234567"),
        ])

        assert supabase_store.find_customer("SKOLA@UVALY.CZ")["id"] == "cust-1"
        assert supabase_store.find_customer("1234567")["id"] == "cust-1"

    def test_find_customer_empty_reference(self, supabase_store):
        assert supabase_store.find_customer("  ") is None
        assert supabase_store.find_customer(None) is None

    def test_create_strips_transient_fields(self, supabase_store, mock_supabase):
        record = {"invoice_number": "2024001", "customer_ref": "ZŠ Úvaly", "customer_id": "cust-1"}

        created = supabase_store.create("invoice", record)

        assert created["id"] == "invoices-1"
        inserted = mock_supabase.table("invoices").inserted
        assert inserted == [{"invoice_number": "2024001", "customer_id": "cust-1"}]

    def test_update(self, supabase_store, mock_supabase):
        mock_supabase.set_table_data("customers", [
            CustomerFactory.create(id="cust-1", organization="ZŠ Úvaly"),
        ])

        updated = supabase_store.update("customer_company", "cust-1", {"phone": "+420 603 123 456", "needs_email_fix": True})

        assert updated["phone"] == "+420 603 123 456"
        assert mock_supabase.table("customers").updated == [{"phone": "+420 603 123 456"}]

    def test_database_failure_is_wrapped(self, supabase_store, mock_supabase):
        mock_supabase.table("invoices").fail_with = RuntimeError("connection reset")

        with pytest.raises(DatabaseError) as exc_info:
            supabase_store.find_existing("invoice", "invoice_number", "1")

        assert exc_info.value.details["table"] == "invoices"
        assert "connection reset" in exc_info.value.message

    def test_create_failure_is_wrapped(self, supabase_store, mock_supabase):
        mock_supabase.table("orders").fail_with = RuntimeError("duplicate key")

        with pytest.raises(DatabaseError) as exc_info:
            supabase_store.create("order", {"order_number": "IMP-2024-0001"})

        assert exc_info.value.details["operation"] == "insert"


# ===================
# IN-MEMORY STORE TESTS
# ===================

class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore"""

    def test_customer_types_share_table(self):
        store = InMemoryRecordStore()
        store.seed("customer_company", [CustomerFactory.create(email="a@b.cz")])

        assert store.find_existing("customer_person", "email", "a@b.cz") is not None

    def test_create_assigns_id(self):
        store = InMemoryRecordStore()

        created = store.create("game", {"slug": "kviz"})

        assert created["id"]
        assert store.records("game") == [created]
        assert store.create_calls == 1

    def test_update_missing_record(self):
        store = InMemoryRecordStore()

        with pytest.raises(DatabaseError):
            store.update("game", "missing", {"slug": "x"})

    def test_find_customer(self):
        store = InMemoryRecordStore()
        store.seed("customer_company", [
            CustomerFactory.create(id="cust-1", organization="ZŠ Úvaly", email="skola@uvaly.cz", ico="00012345"),
        ])

        assert store.find_customer("zš úvaly")["id"] == "cust-1"
        assert store.find_customer("Skola@Uvaly.cz")["id"] == "cust-1"
        assert store.find_customer("12345")["id"] == "cust-1"
        assert store.find_customer("Jiná škola") is None


# ===================
# CLIENT TESTS
# ===================

class TestSupabaseClient:
    """Tests for the cached client and health check."""

    def test_unconfigured_client_raises_database_error(self, monkeypatch, unconfigured_settings):
        monkeypatch.setattr(database, "settings", unconfigured_settings)
        database.get_supabase_client.cache_clear()

        with pytest.raises(DatabaseError) as exc_info:
            database.get_supabase_client()

        assert exc_info.value.details["operation"] == "connect"
        assert exc_info.value.status_code == 500

    def test_check_connection_reports_unhealthy(self, monkeypatch, unconfigured_settings):
        monkeypatch.setattr(database, "settings", unconfigured_settings)
        database.get_supabase_client.cache_clear()

        status = database.check_connection()

        assert status["status"] == "unhealthy"
        assert "not configured" in status["error"]
