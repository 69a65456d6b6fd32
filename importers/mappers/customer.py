"""
Customer mappers (company and person exports).

Both project into the same customer record shape. Customers without an
email get a placeholder address and the NEEDS_EMAIL tag so they can be
fixed up after import.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

from importers.mappers.base import (
    EntityMapper,
    Heuristic,
    MappedRecord,
    TargetField,
    SKIP_TARGET,
    IMPORT_SOURCE,
)
from importers.transformers import (
    clean_string,
    map_organization_type,
    normalize_dic,
    normalize_email,
    normalize_ico,
    normalize_phone,
    normalize_postal_code,
    split_name,
)
from importers.validators import ValidationRule


TAG_IMPORTED = "IMPORTED"
TAG_NEEDS_EMAIL = "NEEDS_EMAIL"
NAME_NOT_GIVEN = "Neuvedeno"


@dataclass
class MappedCustomer(MappedRecord):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    organization: Optional[str] = None
    organization_type: Optional[str] = None
    address: Optional[dict] = None
    billing_info: Optional[dict] = None
    web: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    notes: Optional[str] = None
    source: str = IMPORT_SOURCE
    needs_email_fix: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _group_tags(group: Optional[str]) -> list[str]:
    if not group:
        return []
    return [g.strip() for g in group.split(";") if g.strip()]


class _CustomerMapper(EntityMapper):
    """Shared helpers for both customer exports."""

    natural_keys = ("email",)
    duplicate_fields = ("email",)

    def _phone(self, data: dict) -> Optional[str]:
        return (
            normalize_phone(data.get("phone"), self.locale)
            or normalize_phone(data.get("phone2"), self.locale)
        )

    def _email(self, data: dict, ico: Optional[str], name: Optional[str], row_index: int) -> tuple[str, bool]:
        """Return (email, needs_fix)."""
        email = normalize_email(data.get("email"))
        if email:
            return email, False
        placeholder = self.context.placeholder_emails.generate(ico=ico, name=name, index=row_index)
        return placeholder, True

    @staticmethod
    def _tags(group: Optional[str], needs_email_fix: bool) -> list[str]:
        tags = _group_tags(group)
        if needs_email_fix:
            tags.append(TAG_NEEDS_EMAIL)
        tags.append(TAG_IMPORTED)
        return tags


class CompanyCustomerMapper(_CustomerMapper):
    """Company export: one row per organization with a contact person."""

    entity_type = "customer_company"
    label = "Zákazníci (firmy)"

    column_dictionary = {
        "Jméno": "organization",
        "IČ": "ico",
        "DIČ": "dic",
        "E-mail": "email",
        "Mobilní telefon": "phone",
        "Telefon do práce": "phone2",
        "Osoba": "contact_person",
        "Země": "country",
        "Kraj": "region",
        "Město": "city",
        "PSČ": "postal_code",
        "Ulice": "street",
        "Skupina": "organization_type",
        "Poznámka": "notes",
        "Web": "web",
    }

    heuristics = (
        Heuristic("email", contains=("email", "e-mail")),
        Heuristic("phone", contains=("telefon", "mobil")),
        Heuristic("dic", contains=("dič",), equals=("dic",)),
        Heuristic("ico", contains=("ič",), equals=("ico",)),
        Heuristic("city", contains=("město", "city")),
        Heuristic("street", contains=("ulice", "street")),
        Heuristic("postal_code", contains=("psč", "zip")),
        Heuristic("organization", contains=("firma", "organizace")),
        Heuristic("contact_person", contains=("osoba", "kontakt")),
        Heuristic("notes", contains=("poznám",)),
    )

    target_fields = (
        TargetField("organization", "Organizace", required=True),
        TargetField("contact_person", "Kontaktní osoba"),
        TargetField("email", "Email"),
        TargetField("phone", "Telefon"),
        TargetField("phone2", "Telefon 2"),
        TargetField("ico", "IČO"),
        TargetField("dic", "DIČ"),
        TargetField("street", "Ulice"),
        TargetField("city", "Město"),
        TargetField("postal_code", "PSČ"),
        TargetField("country", "Země"),
        TargetField("region", "Kraj"),
        TargetField("organization_type", "Typ organizace"),
        TargetField("group", "Skupina/Štítek"),
        TargetField("notes", "Poznámka"),
        TargetField("web", "Web"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("organization", "Název firmy", required=True, min_length=1, max_length=200),
        ValidationRule("ico", "IČO", type="ico"),
        ValidationRule("dic", "DIČ", type="dic"),
        ValidationRule("contact_person", "Kontaktní osoba", max_length=100),
        ValidationRule("email", "Email", type="email"),
        ValidationRule("phone", "Telefon", type="phone"),
        ValidationRule("postal_code", "PSČ", pattern=r"^\d{3}\s?\d{2}$"),
        ValidationRule("city", "Město", max_length=100),
    )

    natural_keys = ("email", "billing_info.ico")
    duplicate_fields = ("email", "billing_info.ico")

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedCustomer]:
        organization = clean_string(data.get("organization"))
        if not organization:
            return None

        first_name, last_name = split_name(data.get("contact_person"), self.locale)
        ico = normalize_ico(data.get("ico"))
        dic = normalize_dic(data.get("dic"), self.locale)
        email, needs_email_fix = self._email(data, ico, organization, row_index)

        address = None
        if any(clean_string(data.get(k)) for k in ("street", "city", "postal_code")):
            address = {
                "street": clean_string(data.get("street")),
                "city": clean_string(data.get("city")),
                "postal_code": normalize_postal_code(data.get("postal_code")),
                "region": clean_string(data.get("region")),
                "country": clean_string(data.get("country")) or self.locale.default_country,
            }

        return MappedCustomer(
            email=email,
            first_name=first_name or "Kontakt",
            last_name=last_name or organization[:50],
            phone=self._phone(data),
            organization=organization,
            organization_type=map_organization_type(
                data.get("organization_type") or data.get("group")
            ),
            address=address,
            billing_info={"company_name": organization, "ico": ico, "dic": dic},
            web=clean_string(data.get("web")),
            tags=self._tags(data.get("group"), needs_email_fix),
            notes=clean_string(data.get("notes")),
            needs_email_fix=needs_email_fix,
        )


class PersonCustomerMapper(_CustomerMapper):
    """Person export: one row per individual customer."""

    entity_type = "customer_person"
    label = "Zákazníci (osoby)"

    column_dictionary = {
        "Celé jméno": "full_name",
        "Příjmení": "last_name",
        "Jméno": "first_name",
        "E-mail": "email",
        "Mobil": "phone",
        "Telefon": "phone2",
        "IČ": "ico",
        "DIČ": "dic",
        "Skupina": "group",
        "Poznámka": "notes",
        "Web": "web",
    }

    heuristics = (
        Heuristic("email", contains=("email", "e-mail")),
        Heuristic("phone", contains=("telefon", "mobil", "phone")),
        Heuristic("full_name", contains=("celé jméno", "full name")),
        Heuristic("last_name", contains=("příjmení", "surname", "last name")),
        Heuristic("first_name", contains=("jméno", "first name")),
        Heuristic("dic", contains=("dič",), equals=("dic",)),
        Heuristic("ico", contains=("ič",), equals=("ico",)),
        Heuristic("group", contains=("skupina", "štítek")),
    )

    target_fields = (
        TargetField("first_name", "Jméno", required=True),
        TargetField("last_name", "Příjmení", required=True),
        TargetField("full_name", "Celé jméno"),
        TargetField("email", "Email"),
        TargetField("phone", "Telefon"),
        TargetField("phone2", "Telefon 2"),
        TargetField("ico", "IČO"),
        TargetField("dic", "DIČ"),
        TargetField("group", "Skupina/Štítek"),
        TargetField("notes", "Poznámka"),
        TargetField("web", "Web"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("first_name", "Jméno", required=True, min_length=1, max_length=100),
        ValidationRule("last_name", "Příjmení", required=True, min_length=1, max_length=100),
        ValidationRule("email", "Email", type="email"),
        ValidationRule("phone", "Telefon", type="phone"),
        ValidationRule("ico", "IČO", type="ico"),
        ValidationRule("dic", "DIČ", type="dic"),
    )

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedCustomer]:
        first_name = clean_string(data.get("first_name"))
        last_name = clean_string(data.get("last_name"))

        if not first_name and not last_name:
            first_name, last_name = (clean_string(n) for n in split_name(data.get("full_name"), self.locale))

        if not first_name and not last_name:
            return None

        ico = normalize_ico(data.get("ico"))
        dic = normalize_dic(data.get("dic"), self.locale)
        email, needs_email_fix = self._email(
            data, ico, f"{first_name or ''}-{last_name or ''}", row_index
        )

        return MappedCustomer(
            email=email,
            first_name=first_name or NAME_NOT_GIVEN,
            last_name=last_name or NAME_NOT_GIVEN,
            phone=self._phone(data),
            billing_info={"company_name": None, "ico": ico, "dic": dic} if (ico or dic) else None,
            web=clean_string(data.get("web")),
            tags=self._tags(data.get("group"), needs_email_fix),
            notes=clean_string(data.get("notes")),
            needs_email_fix=needs_email_fix,
        )
