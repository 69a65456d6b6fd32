"""
Destination stores for committed import records.

SupabaseRecordStore writes to the Supabase tables; InMemoryRecordStore keeps
records in dicts and is used for local runs and tests. Both satisfy the
RecordStore protocol consumed by ImportExecutor.
"""

from typing import Any, Optional
from uuid import uuid4

import structlog

from config import DatabaseSession
from exceptions import DatabaseError, UnknownEntityTypeError
from importers.executor import RecordStore
from importers.transformers import normalize_ico
from importers.validators import resolve_path

logger = structlog.get_logger(__name__)


ENTITY_TABLES = {
    "customer_company": "customers",
    "customer_person": "customers",
    "invoice": "invoices",
    "order": "orders",
    "performance": "performances",
    "game": "games",
}

# Resolved into foreign keys before writing; no column of their own
TRANSIENT_FIELDS = ("customer_ref", "invoice_ref", "needs_email_fix")


def table_for(entity_type: str) -> str:
    table = ENTITY_TABLES.get(entity_type)
    if table is None:
        raise UnknownEntityTypeError(entity_type, list(ENTITY_TABLES))
    return table


def _column(field_path: str) -> str:
    """Dotted path to PostgREST JSON operator: billing_info.ico → billing_info->>ico."""
    if "." not in field_path:
        return field_path
    head, *rest = field_path.split(".")
    if len(rest) == 1:
        return f"{head}->>{rest[0]}"
    return f"{head}->" + "->".join(rest[:-1]) + f"->>{rest[-1]}"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseRecordStore:
    """Record store backed by the Supabase tables."""

    def __init__(self, client=None):
        self._client = client

    def find_existing(self, entity_type: str, field: str, value: str) -> Optional[dict]:
        """Return the first record whose `field` equals `value`, or None."""
        table = table_for(entity_type)

        try:
            with DatabaseSession("import_find_existing", self._client) as db:
                result = (
                    db.table(table)
                    .select("id")
                    .eq(_column(field), value)
                    .limit(1)
                    .execute()
                )
            return result.data[0] if result.data else None

        except Exception as e:
            logger.error(
                "find_existing_failed",
                table=table,
                field=field,
                error=str(e)
            )
            raise DatabaseError("select", str(e), {"table": table, "field": field})

    def find_customer(self, reference: str) -> Optional[dict]:
        """
        Resolve a customer reference from an invoice/order row.

        Matches organization or email case-insensitively, or the company ID.
        """
        if not reference or not reference.strip():
            return None

        reference = reference.strip()
        ico = normalize_ico(reference) if reference.isdigit() else None

        try:
            with DatabaseSession("import_find_customer", self._client) as db:
                for column in ("organization", "email"):
                    result = (
                        db.table("customers")
                        .select("id, email, organization")
                        .ilike(column, _escape_like(reference))
                        .limit(1)
                        .execute()
                    )
                    if result.data:
                        return result.data[0]

                if ico:
                    result = (
                        db.table("customers")
                        .select("id, email, organization")
                        .eq("billing_info->>ico", ico)
                        .limit(1)
                        .execute()
                    )
                    if result.data:
                        return result.data[0]

            return None

        except Exception as e:
            logger.error("find_customer_failed", reference=reference, error=str(e))
            raise DatabaseError("select", str(e), {"table": "customers"})

    def create(self, entity_type: str, record: dict) -> dict:
        table = table_for(entity_type)
        payload = {k: v for k, v in record.items() if k not in TRANSIENT_FIELDS}

        try:
            with DatabaseSession("import_create", self._client) as db:
                result = db.table(table).insert(payload).execute()

            created = result.data[0] if result.data else payload
            logger.debug("import_record_created", table=table, id=created.get("id"))
            return created

        except Exception as e:
            logger.error("import_record_create_failed", table=table, error=str(e))
            raise DatabaseError("insert", str(e), {"table": table})

    def update(self, entity_type: str, record_id: Any, record: dict) -> dict:
        table = table_for(entity_type)
        payload = {k: v for k, v in record.items() if k not in TRANSIENT_FIELDS}

        try:
            with DatabaseSession("import_update", self._client) as db:
                result = (
                    db.table(table)
                    .update(payload)
                    .eq("id", record_id)
                    .execute()
                )

            updated = result.data[0] if result.data else {**payload, "id": record_id}
            logger.debug("import_record_updated", table=table, id=record_id)
            return updated

        except Exception as e:
            logger.error(
                "import_record_update_failed",
                table=table,
                id=record_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e), {"table": table, "id": record_id})


class InMemoryRecordStore:
    """
    Dict-backed record store.

    Records are grouped per table, so both customer entity types share one
    collection as they do in the database.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {table: [] for table in set(ENTITY_TABLES.values())}
        self.create_calls = 0
        self.update_calls = 0

    def seed(self, entity_type: str, records: list[dict]) -> list[dict]:
        """Insert records directly, assigning ids where missing."""
        stored = []
        for record in records:
            stored.append(self._insert(table_for(entity_type), record))
        return stored

    def records(self, entity_type: str) -> list[dict]:
        return self.tables[table_for(entity_type)]

    def _insert(self, table: str, record: dict) -> dict:
        stored = {**record}
        stored.setdefault("id", str(uuid4()))
        self.tables[table].append(stored)
        return stored

    def find_existing(self, entity_type: str, field: str, value: str) -> Optional[dict]:
        for record in self.records(entity_type):
            found = resolve_path(record, field)
            if found is not None and str(found) == str(value):
                return record
        return None

    def find_customer(self, reference: str) -> Optional[dict]:
        if not reference or not reference.strip():
            return None

        wanted = reference.strip().lower()
        ico = normalize_ico(reference) if reference.strip().isdigit() else None

        for customer in self.tables["customers"]:
            if (customer.get("organization") or "").lower() == wanted:
                return customer
            if (customer.get("email") or "").lower() == wanted:
                return customer
            if ico and resolve_path(customer, "billing_info.ico") == ico:
                return customer
        return None

    def create(self, entity_type: str, record: dict) -> dict:
        self.create_calls += 1
        return self._insert(table_for(entity_type), record)

    def update(self, entity_type: str, record_id: Any, record: dict) -> dict:
        self.update_calls += 1
        for stored in self.records(entity_type):
            if stored.get("id") == record_id:
                stored.update(record)
                stored["id"] = record_id
                return stored
        raise DatabaseError("update", f"Record {record_id} not found", {"entity_type": entity_type})


__all__ = [
    "RecordStore",
    "SupabaseRecordStore",
    "InMemoryRecordStore",
    "ENTITY_TABLES",
    "table_for",
]
