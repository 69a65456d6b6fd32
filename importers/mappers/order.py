"""
Order mapper for event exports.

Source files carry no order number, so one is synthesized from the event
year and the row position (IMP-2024-0001). Imported orders are historical
and always "completed".
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Optional

from importers.mappers.base import (
    EntityMapper,
    Heuristic,
    MappedRecord,
    TargetField,
    SKIP_TARGET,
    IMPORT_SOURCE,
)
from importers.transformers import clean_string, parse_date, parse_gps, parse_minutes, parse_time
from importers.validators import ValidationRule


ORDER_STATUS_COMPLETED = "completed"
NOTE_AUTHOR = "Import"


def order_number(event_date: date, row_index: int) -> str:
    """IMP-<year>-<row_index + 1, zero padded to 4>."""
    return f"IMP-{event_date.year}-{row_index + 1:04d}"


@dataclass
class MappedOrder(MappedRecord):
    order_number: str
    customer_ref: str
    event_date: date
    invoice_ref: Optional[str] = None
    event_name: Optional[str] = None
    status: str = ORDER_STATUS_COMPLETED
    venue: dict = field(default_factory=dict)
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    preparation_minutes: Optional[int] = None
    contacts: Optional[dict] = None
    internal_notes: list[dict] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    source: str = IMPORT_SOURCE

    def to_dict(self) -> dict:
        data = asdict(self)
        data["event_date"] = self.event_date.isoformat()
        data["dates"] = [self.event_date.isoformat()]
        return data


class OrderMapper(EntityMapper):
    entity_type = "order"
    label = "Objednávky (akce)"

    column_dictionary = {
        "Datum zahájení": "event_date",
        "Město": "city",
        "Název": "event_name",
        "Odběratel": "customer_ref",
        "Ulice": "street",
        "Číslo faktury": "invoice_number",
        "Jazyk": "language",
        "GPS": "gps",
        "Poznámka": "notes",
        "Ozvučení": "sound",
        "Čas příjezdu (na akci)": "arrival_time",
        "Čas odjezdu (na akci)": "departure_time",
        "Příprava": "preparation_time",
        "Smlouva": "contract_date",
        "Web": "web",
        "Kontaktní osoby": "contact_person",
        "Země": "country",
        "Kraj": "region",
        "Způsob dopravy": "transport_method",
    }

    heuristics = (
        Heuristic("event_date", contains=("datum",), excludes=("smlouv",)),
        Heuristic("city", contains=("město", "city")),
        Heuristic("event_name", contains=("název", "akce")),
        Heuristic("customer_ref", contains=("odběratel", "zákazník")),
        Heuristic("invoice_number", contains=("faktur",)),
        Heuristic("gps", contains=("gps", "souřadnic")),
        Heuristic("notes", contains=("poznám",)),
        Heuristic("arrival_time", contains=("příjezd",)),
        Heuristic("departure_time", contains=("odjezd",)),
        Heuristic("preparation_time", contains=("příprav",)),
        Heuristic("contact_person", contains=("kontakt",)),
    )

    target_fields = (
        TargetField("event_date", "Datum akce", required=True),
        TargetField("customer_ref", "Odběratel", required=True),
        TargetField("event_name", "Název akce"),
        TargetField("city", "Město"),
        TargetField("street", "Ulice"),
        TargetField("region", "Kraj"),
        TargetField("country", "Země"),
        TargetField("gps", "GPS souřadnice"),
        TargetField("invoice_number", "Číslo faktury"),
        TargetField("arrival_time", "Čas příjezdu"),
        TargetField("departure_time", "Čas odjezdu"),
        TargetField("preparation_time", "Příprava"),
        TargetField("contact_person", "Kontaktní osoba"),
        TargetField("notes", "Poznámka"),
        TargetField("sound", "Ozvučení"),
        TargetField("transport_method", "Způsob dopravy"),
        TargetField("language", "Jazyk"),
        TargetField("web", "Web"),
        TargetField("contract_date", "Datum smlouvy"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("event_date", "Datum akce", required=True, type="date"),
        ValidationRule("customer_ref", "Odběratel", required=True),
        ValidationRule("event_name", "Název akce", max_length=200),
        ValidationRule("city", "Město", max_length=100),
        ValidationRule("gps", "GPS souřadnice", custom=lambda value, row: (
            None if parse_gps(value) else "GPS souřadnice must be \"lat,lng\""
        )),
        ValidationRule("contract_date", "Datum smlouvy", type="date"),
    )

    natural_keys = ("order_number",)
    duplicate_fields = ("order_number",)
    requires_customer = True

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedOrder]:
        customer_ref = clean_string(data.get("customer_ref"))
        if not customer_ref:
            return None

        event_date = parse_date(data.get("event_date"), self.locale)
        if not event_date:
            return None

        event_name = clean_string(data.get("event_name"))
        city = clean_string(data.get("city"))

        internal_notes = []
        notes = clean_string(data.get("notes"))
        if notes:
            internal_notes.append({
                "note": notes,
                "author": NOTE_AUTHOR,
                "created_at": self.context.now().isoformat(),
            })

        contact = clean_string(data.get("contact_person"))
        contract_date = parse_date(data.get("contract_date"), self.locale)

        return MappedOrder(
            order_number=order_number(event_date, row_index),
            customer_ref=customer_ref,
            event_date=event_date,
            invoice_ref=clean_string(data.get("invoice_number")),
            event_name=event_name,
            venue={
                "name": event_name or city,
                "street": clean_string(data.get("street")),
                "city": city,
                "postal_code": None,
                "region": clean_string(data.get("region")),
                "country": clean_string(data.get("country")) or self.locale.default_country,
                "gps_coordinates": parse_gps(data.get("gps")),
            },
            arrival_time=parse_time(data.get("arrival_time")),
            departure_time=parse_time(data.get("departure_time")),
            preparation_minutes=parse_minutes(data.get("preparation_time")),
            contacts={"on_site": {"name": contact, "phone": None}} if contact else None,
            internal_notes=internal_notes,
            metadata={
                "sound": clean_string(data.get("sound")),
                "transport_method": clean_string(data.get("transport_method")),
                "language": clean_string(data.get("language")),
                "web": clean_string(data.get("web")),
                "contract_date": contract_date.isoformat() if contract_date else None,
            },
        )
