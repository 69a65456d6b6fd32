"""
Invoice mapper.

Historical invoices are imported as settled: an invoice whose due date has
already passed gets status "paid", otherwise "sent". The whole amount goes
into a single line item.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, timedelta
from typing import Optional

from importers.mappers.base import (
    EntityMapper,
    Heuristic,
    MappedRecord,
    TargetField,
    SKIP_TARGET,
    IMPORT_SOURCE,
)
from importers.transformers import clean_string, map_payment_method, parse_date, parse_price
from importers.validators import ValidationRule


STATUS_PAID = "paid"
STATUS_SENT = "sent"


@dataclass
class MappedInvoice(MappedRecord):
    invoice_number: str
    customer_ref: Optional[str]
    issue_date: date
    due_date: date
    status: str
    items: list[dict] = field(default_factory=list)
    subtotal: int = 0
    total_amount: int = 0
    variable_symbol: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    source: str = IMPORT_SOURCE

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issue_date"] = self.issue_date.isoformat()
        data["due_date"] = self.due_date.isoformat()
        return data


class InvoiceMapper(EntityMapper):
    entity_type = "invoice"
    label = "Faktury"

    column_dictionary = {
        "Číslo faktury": "invoice_number",
        "Číslo dokladu": "invoice_number",
        "Odběratel": "customer_ref",
        "Datum vystavení": "issue_date",
        "Datum vytvoření": "issue_date",
        "Datum splatnosti": "due_date",
        "Celkem": "total_amount",
        "Částka": "total_amount",
        "Popis": "item_description",
        "Variabilní symbol": "variable_symbol",
        "Způsob platby": "payment_method",
        "Forma úhrady": "payment_method",
        "Poznámka": "notes",
    }

    heuristics = (
        Heuristic("due_date", contains=("splatn", "due")),
        Heuristic("issue_date", contains=("vystaven", "vytvořen", "datum", "issued")),
        Heuristic("variable_symbol", contains=("variabil",), equals=("vs",)),
        Heuristic("invoice_number", contains=("faktur", "číslo", "invoice")),
        Heuristic("customer_ref", contains=("odběratel", "zákazník", "customer")),
        Heuristic("total_amount", contains=("částka", "celkem", "cena", "amount", "total")),
        Heuristic("payment_method", contains=("platb", "úhrad", "payment")),
        Heuristic("item_description", contains=("popis", "text", "položk")),
        Heuristic("notes", contains=("poznám",)),
    )

    target_fields = (
        TargetField("invoice_number", "Číslo faktury", required=True),
        TargetField("customer_ref", "Odběratel", required=True),
        TargetField("issue_date", "Datum vystavení", required=True),
        TargetField("due_date", "Datum splatnosti"),
        TargetField("total_amount", "Celková částka"),
        TargetField("item_description", "Popis položky"),
        TargetField("variable_symbol", "Variabilní symbol"),
        TargetField("payment_method", "Způsob platby"),
        TargetField("notes", "Poznámka"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("invoice_number", "Číslo faktury", required=True, min_length=1, max_length=50),
        ValidationRule("customer_ref", "Odběratel", required=True),
        ValidationRule("issue_date", "Datum vystavení", required=True, type="date"),
        ValidationRule("due_date", "Datum splatnosti", type="date"),
        ValidationRule("total_amount", "Celková částka", type="number", min_value=0, max_value=999_999_999_999),
        ValidationRule("payment_method", "Způsob platby"),
    )

    natural_keys = ("invoice_number",)
    duplicate_fields = ("invoice_number",)
    requires_customer = True

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedInvoice]:
        invoice_number = clean_string(data.get("invoice_number"))
        if not invoice_number:
            return None

        issue_date = parse_date(data.get("issue_date"), self.locale)
        if not issue_date:
            return None

        due_date = parse_date(data.get("due_date"), self.locale)
        if not due_date:
            due_date = issue_date + timedelta(days=self.context.invoice_due_days)

        total = parse_price(data.get("total_amount"), self.locale) or 0
        description = clean_string(data.get("item_description")) or f"Faktura {invoice_number}"

        return MappedInvoice(
            invoice_number=invoice_number,
            customer_ref=clean_string(data.get("customer_ref")),
            issue_date=issue_date,
            due_date=due_date,
            status=STATUS_PAID if due_date < self.context.today() else STATUS_SENT,
            items=[{
                "description": description,
                "quantity": 1,
                "unit_price": total,
                "total": total,
            }],
            subtotal=total,
            total_amount=total,
            variable_symbol=clean_string(data.get("variable_symbol")),
            payment_method=map_payment_method(data.get("payment_method")),
            notes=clean_string(data.get("notes")),
        )
