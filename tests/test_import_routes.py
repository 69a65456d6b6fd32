"""
API tests for the import routes.

Run: pytest tests/test_import_routes.py -v
"""

from tests.factories import (
    CsvFactory,
    CustomerFactory,
    INVOICE_MAPPING,
    InvoiceRowFactory,
    StoredInvoiceFactory,
)


class TestRootEndpoints:
    """Tests for the app-level endpoints."""

    def test_root_lists_import_endpoints(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["upload"] == "/api/import/upload"


class TestEntitiesRoute:
    """GET /api/import/entities"""

    def test_lists_entities(self, test_client):
        response = test_client.get("/api/import/entities")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 6
        assert body["data"][0]["entity_type"] == "customer_company"


class TestUploadRoute:
    """POST /api/import/upload"""

    def test_upload_invoices(self, test_client):
        raw = CsvFactory.from_dicts(InvoiceRowFactory.create_batch(3))

        response = test_client.post(
            "/api/import/upload",
            files={"file": ("faktury.csv", raw, "text/csv")},
            data={"entity_type": "invoice"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["row_count"] == 3
        assert body["suggested_mapping"]["Číslo faktury"] == "invoice_number"
        assert body["suggested_mapping"]["Datum vystavení"] == "issue_date"
        assert body["config"]["required_fields"] == ["invoice_number", "customer_ref", "issue_date"]

    def test_header_only_file(self, test_client):
        response = test_client.post(
            "/api/import/upload",
            files={"file": ("prazdny.csv", "Číslo faktury;Odběratel\n".encode("utf-8"), "text/csv")},
            data={"entity_type": "invoice"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "IMPORT_FILE_EMPTY"

    def test_malformed_file(self, test_client):
        response = test_client.post(
            "/api/import/upload",
            files={"file": ("blank.csv", b"\n\n", "text/csv")},
            data={"entity_type": "invoice"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "CSV_MALFORMED"

    def test_unknown_entity_type(self, test_client):
        response = test_client.post(
            "/api/import/upload",
            files={"file": ("x.csv", b"A\n1\n", "text/csv")},
            data={"entity_type": "supplier"},
        )

        assert response.status_code == 422


class TestValidateRoute:
    """POST /api/import/validate"""

    def test_reports_invalid_row(self, test_client):
        rows = [
            InvoiceRowFactory.create(),
            InvoiceRowFactory.create(issue_date=""),
            InvoiceRowFactory.create(),
        ]

        response = test_client.post("/api/import/validate", json={
            "entity_type": "invoice",
            "data": rows,
            "column_mapping": INVOICE_MAPPING,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["invalid_rows"] == [1]
        assert body["valid_rows"] == [0, 2]
        assert body["can_import"] is False
        assert body["errors"][0]["field"] == "issue_date"
        assert body["stats"]["invalid"] == 1

    def test_reports_existing(self, test_client, in_memory_store):
        in_memory_store.seed("invoice", [StoredInvoiceFactory.create("2024001")])

        response = test_client.post("/api/import/validate", json={
            "entity_type": "invoice",
            "data": [InvoiceRowFactory.create(invoice_number="2024001")],
            "column_mapping": INVOICE_MAPPING,
        })

        body = response.json()
        assert body["existing_records"] == [{"field": "invoice_number", "value": "2024001", "row": 0}]
        assert body["can_import"] is False
        assert body["can_import_with_skip"] is True


class TestExecuteRoute:
    """POST /api/import/execute"""

    def test_dry_run_then_commit(self, test_client, in_memory_store):
        in_memory_store.seed("customer_company", [CustomerFactory.create(organization="ZŠ Úvaly")])
        in_memory_store.seed("invoice", [StoredInvoiceFactory.create("2024003")])
        rows = [InvoiceRowFactory.create(invoice_number=f"2024{n:03d}") for n in range(1, 6)]
        payload = {
            "entity_type": "invoice",
            "data": rows,
            "column_mapping": INVOICE_MAPPING,
        }

        dry = test_client.post("/api/import/execute", json=payload).json()

        assert dry["dry_run"] is True
        assert (dry["created"], dry["skipped"], dry["updated"]) == (4, 1, 0)
        assert len(in_memory_store.records("invoice")) == 1

        payload["options"] = {"dry_run": False, "skip_existing": True}
        real = test_client.post("/api/import/execute", json=payload).json()

        assert real["dry_run"] is False
        assert (real["created"], real["skipped"], real["updated"]) == (4, 1, 0)
        assert len(in_memory_store.records("invoice")) == 5
        assert real["message"] == "Import complete: 4 created, 0 updated, 1 skipped"

    def test_row_failures_are_reported(self, test_client):
        response = test_client.post("/api/import/execute", json={
            "entity_type": "invoice",
            "data": [InvoiceRowFactory.create(customer="Neznámý")],
            "column_mapping": INVOICE_MAPPING,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["errors"] == [{"row": 0, "message": 'Customer "Neznámý" not found'}]
