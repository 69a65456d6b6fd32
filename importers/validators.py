"""
Validation of mapped import data.

Rules are declarative (ValidationRule per target field). Violations on a
required field are errors and block the row; violations on optional fields
are warnings and never block. Batch-level checks report duplicates within
the file and collisions with records already in the store.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

import structlog

from importers.locale import LocaleStrategy, DEFAULT_LOCALE
from importers.transformers import (
    normalize_email,
    normalize_phone,
    normalize_ico,
    normalize_dic,
    parse_date,
    parse_number,
)

logger = structlog.get_logger(__name__)


ROW_VALID = "valid"
ROW_HAS_WARNINGS = "has_warnings"
ROW_HAS_ERRORS = "has_errors"

MAPPING_DUPLICATE_TARGET = "duplicate_target"
MAPPING_REQUIRED_UNMAPPED = "required_unmapped"

# Field name for issues that concern the whole row
ROW_FIELD = "_row"

_LEADING_NUMBER = re.compile(r"^-?\d+(?:[.,]\d+)?")


@dataclass(frozen=True)
class ValidationRule:
    """Declarative check for one target field."""
    field: str
    label: str
    required: bool = False
    type: str = "string"  # string, number, date, email, phone, ico, dic
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    # (value, mapped_row) -> message or None
    custom: Optional[Callable[[str, dict], Optional[str]]] = None


@dataclass
class FieldIssue:
    """Field-level error or warning (row is 0-based)."""
    row: int
    field: str
    value: Any
    message: str
    severity: str

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "field": self.field,
            "value": self.value,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class MappingIssue:
    """Problem with the column mapping itself."""
    field: str
    kind: str
    columns: list[str]
    message: str

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "kind": self.kind,
            "columns": self.columns,
            "message": self.message,
        }


@dataclass
class DuplicateValue:
    value: str
    rows: list[int]

    def to_dict(self) -> dict:
        return {"value": self.value, "rows": self.rows}


@dataclass
class DuplicateGroup:
    """Values repeated within the batch for one field."""
    field: str
    values: list[DuplicateValue]

    def to_dict(self) -> dict:
        return {"field": self.field, "values": [v.to_dict() for v in self.values]}


@dataclass
class ExistingRecord:
    """Row whose natural key already exists in the store."""
    field: str
    value: str
    row: int

    def to_dict(self) -> dict:
        return {"field": self.field, "value": self.value, "row": self.row}


@dataclass
class ValidationOutcome:
    """Result of validating one batch."""
    total_rows: int = 0
    row_status: list[str] = field(default_factory=list)
    errors: list[FieldIssue] = field(default_factory=list)
    warnings: list[FieldIssue] = field(default_factory=list)
    valid_rows: list[int] = field(default_factory=list)
    invalid_rows: list[int] = field(default_factory=list)
    warning_rows: list[int] = field(default_factory=list)
    mapping_errors: list[MappingIssue] = field(default_factory=list)
    duplicates: list[DuplicateGroup] = field(default_factory=list)
    existing_records: list[ExistingRecord] = field(default_factory=list)
    # Projected record per input row (None when the row yields no record)
    records: list[Optional[dict]] = field(default_factory=list)

    @property
    def can_import(self) -> bool:
        return not self.invalid_rows and not self.mapping_errors and not self.existing_records

    @property
    def can_import_with_skip(self) -> bool:
        return not self.invalid_rows and not self.mapping_errors

    @property
    def stats(self) -> dict:
        return {
            "total": self.total_rows,
            "valid": len(self.valid_rows),
            "invalid": len(self.invalid_rows),
            "with_warnings": len(self.warning_rows),
            "warnings": len(self.warnings),
            "errors": len(self.errors),
        }

    @property
    def mapped_rows(self) -> int:
        return sum(1 for r in self.records if r is not None)

    def summary(self) -> str:
        """Short human-readable report."""
        stats = self.stats
        lines = [f"Total rows: {stats['total']}"]

        if stats["total"]:
            percent = round(stats["valid"] / stats["total"] * 100)
            lines.append(f"Valid: {stats['valid']} ({percent}%)")

        if stats["invalid"]:
            lines.append(f"Invalid: {stats['invalid']}")
        if stats["warnings"]:
            lines.append(f"Warnings: {stats['warnings']}")
        if self.mapping_errors:
            lines.append(f"Mapping errors: {len(self.mapping_errors)}")
        if self.existing_records:
            lines.append(f"Already existing: {len(self.existing_records)}")

        return "\n".join(lines)

    def to_dict(self, limit: Optional[int] = None) -> dict:
        """Convert to API response format; `limit` caps error/warning lists."""
        return {
            "row_status": self.row_status,
            "errors": [e.to_dict() for e in self.errors[:limit]],
            "warnings": [w.to_dict() for w in self.warnings[:limit]],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "valid_rows": self.valid_rows,
            "invalid_rows": self.invalid_rows,
            "warning_rows": self.warning_rows,
            "mapping_errors": [m.to_dict() for m in self.mapping_errors],
            "duplicates": [d.to_dict() for d in self.duplicates],
            "existing_records": [e.to_dict() for e in self.existing_records],
            "stats": self.stats,
            "can_import": self.can_import,
            "can_import_with_skip": self.can_import_with_skip,
            "summary": self.summary(),
        }


def resolve_path(data: dict, path: str) -> Any:
    """Read a dotted path ("billing_info.ico") from nested dicts."""
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


class ExistingRecordLookup(Protocol):
    def find_existing(self, entity_type: str, field: str, value: str) -> Optional[dict]:
        ...


# ===================
# FIELD CHECKS
# ===================

def _as_number(text: str, locale: LocaleStrategy) -> Optional[float]:
    number = parse_number(text, locale)
    if number is not None:
        return number

    # "60 min" style cells count by their leading number
    match = _LEADING_NUMBER.match(text.replace(" ", ""))
    if match:
        return float(match.group(0).replace(",", "."))
    return None


def check_value(
    value: Any,
    rule: ValidationRule,
    row: dict,
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[str]:
    """
    Check one value against a rule.

    Returns the violation message, or None when the value passes.
    """
    text = "" if value is None else str(value).strip()

    if not text:
        if rule.required:
            return f"{rule.label} is required"
        return None

    if rule.type == "email":
        if not normalize_email(text):
            return f"{rule.label} is not a valid email address"

    elif rule.type == "phone":
        if not normalize_phone(text, locale):
            return f"{rule.label} is not a valid phone number"

    elif rule.type == "ico":
        if not normalize_ico(text):
            return f"{rule.label} is not a valid company ID (8 digits)"

    elif rule.type == "dic":
        if not normalize_dic(text, locale):
            return f"{rule.label} is not a valid VAT ID"

    elif rule.type == "date":
        if not parse_date(text, locale):
            return f"{rule.label} is not a valid date (use DD.MM.YYYY)"

    elif rule.type == "number":
        number = _as_number(text, locale)
        if number is None:
            return f"{rule.label} must be a number"
        if rule.min_value is not None and number < rule.min_value:
            return f"{rule.label} must be at least {rule.min_value:g}"
        if rule.max_value is not None and number > rule.max_value:
            return f"{rule.label} must be at most {rule.max_value:g}"

    else:
        if rule.min_length is not None and len(text) < rule.min_length:
            return f"{rule.label} must have at least {rule.min_length} characters"
        if rule.max_length is not None and len(text) > rule.max_length:
            return f"{rule.label} can have at most {rule.max_length} characters"

    if rule.pattern and not re.search(rule.pattern, text):
        return f"{rule.label} has an invalid format"

    if rule.custom:
        return rule.custom(text, row)

    return None


# ===================
# BATCH VALIDATION
# ===================

def _columns_by_target(mapping: dict[str, str]) -> tuple[dict[str, str], dict[str, list[str]]]:
    """
    Resolve target → column (last mapping wins) and collect all columns
    per target.
    """
    resolved: dict[str, str] = {}
    sources: dict[str, list[str]] = {}

    for column, target in mapping.items():
        if not target or target == "_skip":
            continue
        resolved[target] = column
        sources.setdefault(target, []).append(column)

    return resolved, sources


def check_mapping(
    rules: Sequence[ValidationRule],
    mapping: dict[str, str]
) -> list[MappingIssue]:
    """Report targets mapped from several columns and unmapped required fields."""
    resolved, sources = _columns_by_target(mapping)
    issues = []

    for target, columns in sources.items():
        if len(columns) > 1:
            issues.append(MappingIssue(
                field=target,
                kind=MAPPING_DUPLICATE_TARGET,
                columns=columns,
                message=f'Field "{target}" is mapped from several columns: {", ".join(columns)}'
            ))

    for rule in rules:
        if rule.required and rule.field not in resolved:
            issues.append(MappingIssue(
                field=rule.field,
                kind=MAPPING_REQUIRED_UNMAPPED,
                columns=[],
                message=f'Required field "{rule.label}" has no column mapped'
            ))

    return issues


def validate_data(
    rows: list[dict[str, Any]],
    rules: Sequence[ValidationRule],
    mapping: dict[str, str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> ValidationOutcome:
    """
    Validate every row against the ruleset.

    Args:
        rows: Raw rows keyed by source column
        rules: Rules per target field
        mapping: Source column → target field

    Returns:
        ValidationOutcome with per-row status and field issues
    """
    resolved, _ = _columns_by_target(mapping)
    outcome = ValidationOutcome(total_rows=len(rows))
    outcome.mapping_errors = check_mapping(rules, mapping)

    for index, row in enumerate(rows):
        mapped = {target: row.get(column, "") for target, column in resolved.items()}
        row_errors = 0
        row_warnings = 0

        for rule in rules:
            column = resolved.get(rule.field)

            if column is None:
                if rule.required:
                    outcome.errors.append(FieldIssue(
                        row=index,
                        field=rule.field,
                        value=None,
                        message=f'Column for "{rule.label}" is not mapped',
                        severity="error"
                    ))
                    row_errors += 1
                continue

            value = row.get(column, "")
            message = check_value(value, rule, mapped, locale)
            if not message:
                continue

            if rule.required:
                outcome.errors.append(FieldIssue(index, rule.field, value, message, "error"))
                row_errors += 1
            else:
                outcome.warnings.append(FieldIssue(index, rule.field, value, message, "warning"))
                row_warnings += 1

        if row_errors:
            outcome.row_status.append(ROW_HAS_ERRORS)
            outcome.invalid_rows.append(index)
        elif row_warnings:
            outcome.row_status.append(ROW_HAS_WARNINGS)
            outcome.valid_rows.append(index)
            outcome.warning_rows.append(index)
        else:
            outcome.row_status.append(ROW_VALID)
            outcome.valid_rows.append(index)

    return outcome


def find_duplicates(records: list[Optional[dict]], field_path: str) -> list[DuplicateValue]:
    """
    Group rows sharing a value (case-insensitive) for one field.

    Records are aligned with input rows; None entries are ignored.
    """
    groups: dict[str, list[int]] = {}
    for index, record in enumerate(records):
        if record is None:
            continue
        value = resolve_path(record, field_path)
        if value in (None, ""):
            continue
        key = str(value).strip().lower()
        if key:
            groups.setdefault(key, []).append(index)

    return [
        DuplicateValue(value=value, rows=rows)
        for value, rows in groups.items()
        if len(rows) > 1
    ]


def find_existing_records(
    mapper,
    records: list[Optional[dict]],
    store: ExistingRecordLookup
) -> list[ExistingRecord]:
    """Look up each record's natural keys in the store."""
    found = []
    for index, record in enumerate(records):
        if record is None:
            continue
        for key, value in mapper.natural_key_values(record):
            if store.find_existing(mapper.entity_type, key, value):
                found.append(ExistingRecord(field=key, value=value, row=index))
    return found


def _reject_unmapped_row(outcome: ValidationOutcome, index: int) -> None:
    """Mark a row that passed its field checks but produced no record as invalid."""
    if index in outcome.invalid_rows:
        return

    outcome.errors.append(FieldIssue(
        row=index,
        field=ROW_FIELD,
        value=None,
        message="Row could not be converted to a record",
        severity="error"
    ))
    outcome.row_status[index] = ROW_HAS_ERRORS
    outcome.valid_rows.remove(index)
    if index in outcome.warning_rows:
        outcome.warning_rows.remove(index)
    outcome.invalid_rows.append(index)
    outcome.invalid_rows.sort()


def validate_import(
    mapper,
    rows: list[dict[str, Any]],
    mapping: dict[str, str],
    store: Optional[ExistingRecordLookup] = None
) -> ValidationOutcome:
    """
    Full validation pass for one entity type.

    Runs the mapper's ruleset, projects every row, groups in-batch
    duplicates and, when a store is given, reports existing records.
    """
    outcome = validate_data(rows, mapper.rules, mapping, mapper.locale)

    for index, row in enumerate(rows):
        try:
            record = mapper.transform(row, mapping, index)
        except Exception as e:
            logger.warning(
                "import_projection_failed",
                entity_type=mapper.entity_type,
                row=index,
                error=str(e)
            )
            record = None
        outcome.records.append(record.to_dict() if record is not None else None)

        if record is None:
            _reject_unmapped_row(outcome, index)

    for field_path in mapper.duplicate_fields:
        values = find_duplicates(outcome.records, field_path)
        if values:
            outcome.duplicates.append(DuplicateGroup(field=field_path, values=values))

    if store is not None:
        outcome.existing_records = find_existing_records(mapper, outcome.records, store)

    logger.info(
        "import_validated",
        entity_type=mapper.entity_type,
        rows=outcome.total_rows,
        valid=len(outcome.valid_rows),
        invalid=len(outcome.invalid_rows),
        mapping_errors=len(outcome.mapping_errors),
        duplicates=len(outcome.duplicates),
        existing=len(outcome.existing_records)
    )

    return outcome
