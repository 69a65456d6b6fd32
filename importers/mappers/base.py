"""
Base entity mapper.

A mapper owns everything entity-specific about an import:
- the target field catalog shown to the operator
- a declarative dictionary of expected source headers
- an ordered heuristic table for unknown headers
- the validation ruleset
- the projection of a mapped row into a storable record

Suggestion order per header: exact dictionary key, case-insensitive key,
first matching heuristic, otherwise unmapped.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

import structlog

from config import settings
from importers.locale import LocaleStrategy, DEFAULT_LOCALE, get_locale
from importers.transformers import PlaceholderEmailFactory
from importers.validators import ValidationRule, resolve_path

logger = structlog.get_logger(__name__)


SKIP_FIELD = "_skip"
IMPORT_SOURCE = "csv_import"


@dataclass(frozen=True)
class TargetField:
    """Target field descriptor offered in the mapping step."""
    value: str
    label: str
    required: bool = False

    def to_dict(self) -> dict:
        return {"value": self.value, "label": self.label, "required": self.required}


SKIP_TARGET = TargetField(SKIP_FIELD, "-- Přeskočit --")


@dataclass(frozen=True)
class Heuristic:
    """
    Substring rule for header suggestion.

    Matches when the lowercased header contains any of `contains` (or equals
    any of `equals`) and none of `excludes`.
    """
    field: str
    contains: tuple[str, ...] = ()
    equals: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    def matches(self, header: str) -> bool:
        if any(x in header for x in self.excludes):
            return False
        return header in self.equals or any(x in header for x in self.contains)


@dataclass
class MapperContext:
    """Runtime collaborators shared by all mappers."""
    locale: LocaleStrategy = DEFAULT_LOCALE
    placeholder_emails: PlaceholderEmailFactory = field(
        default_factory=lambda: PlaceholderEmailFactory(settings.import_placeholder_email_domain)
    )
    invoice_due_days: int = 14
    today: Callable[[], date] = date.today
    now: Callable[[], datetime] = datetime.utcnow

    @classmethod
    def from_settings(cls, app_settings=None) -> "MapperContext":
        app_settings = app_settings or settings
        return cls(
            locale=get_locale(app_settings.import_locale),
            placeholder_emails=PlaceholderEmailFactory(app_settings.import_placeholder_email_domain),
            invoice_due_days=app_settings.invoice_default_due_days,
        )


class MappedRecord:
    """Base for projected records; subclasses are dataclasses."""

    def to_dict(self) -> dict:
        raise NotImplementedError


class EntityMapper:
    """
    Base class for entity mappers.

    Subclasses set the class attributes and implement project().
    """

    entity_type: str = ""
    label: str = ""
    column_dictionary: Mapping[str, str] = MappingProxyType({})
    heuristics: tuple[Heuristic, ...] = ()
    target_fields: tuple[TargetField, ...] = (SKIP_TARGET,)
    rules: tuple[ValidationRule, ...] = ()
    # Dotted paths into to_dict() output
    natural_keys: tuple[str, ...] = ()
    duplicate_fields: tuple[str, ...] = ()
    requires_customer: bool = False

    def __init__(self, context: Optional[MapperContext] = None):
        self.context = context or MapperContext()

    @property
    def locale(self) -> LocaleStrategy:
        return self.context.locale

    @property
    def required_fields(self) -> list[str]:
        return [f.value for f in self.target_fields if f.required]

    def config(self) -> dict:
        """Field catalog for the mapping step."""
        return {
            "entity_type": self.entity_type,
            "label": self.label,
            "required_fields": self.required_fields,
            "target_fields": [f.to_dict() for f in self.target_fields],
        }

    # ===================
    # SUGGESTION
    # ===================

    def suggest(self, headers: list[str]) -> dict[str, str]:
        """
        Suggest a column mapping for the given headers.

        Headers are processed in input order; a target already suggested for
        an earlier header is not suggested again.
        """
        suggested: dict[str, str] = {}
        used: set[str] = set()
        lowered_dictionary = {k.lower(): v for k, v in reversed(list(self.column_dictionary.items()))}

        for header in headers:
            normalized = header.strip().lower()

            target = self.column_dictionary.get(header)
            if target is None:
                target = lowered_dictionary.get(normalized)
            if target is None:
                target = self._match_heuristic(normalized)

            if target is None or target in used:
                continue

            suggested[header] = target
            used.add(target)

        logger.debug(
            "mapping_suggested",
            entity_type=self.entity_type,
            headers=len(headers),
            suggested=len(suggested)
        )

        return suggested

    def _match_heuristic(self, header: str) -> Optional[str]:
        for heuristic in self.heuristics:
            if heuristic.matches(header):
                return heuristic.field
        return None

    # ===================
    # PROJECTION
    # ===================

    @staticmethod
    def map_columns(row: dict[str, Any], mapping: dict[str, str]) -> dict[str, str]:
        """
        Re-key a raw row by target field.

        `_skip` and empty targets are ignored. When several columns point at
        the same target, the last one in mapping order wins.
        """
        mapped: dict[str, str] = {}
        for column, target in mapping.items():
            if not target or target == SKIP_FIELD:
                continue
            if column not in row:
                continue
            value = row[column]
            mapped[target] = "" if value is None else str(value)
        return mapped

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedRecord]:
        """Build the record for one mapped row, or None without a natural key."""
        raise NotImplementedError

    def transform(
        self,
        row: dict[str, Any],
        mapping: dict[str, str],
        row_index: int
    ) -> Optional[MappedRecord]:
        """Map columns then project."""
        return self.project(self.map_columns(row, mapping), row_index)

    def natural_key_values(self, record: dict) -> list[tuple[str, str]]:
        """(field, value) pairs of the record's non-empty natural keys."""
        pairs = []
        for key in self.natural_keys:
            value = resolve_path(record, key)
            if value not in (None, ""):
                pairs.append((key, str(value)))
        return pairs
