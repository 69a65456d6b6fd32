"""
CSV import pipeline: field transformers, entity mappers, validation and
the commit executor.
"""

from importers.locale import LocaleStrategy, CZECH_LOCALE, DEFAULT_LOCALE, get_locale
from importers.mappers import EntityMapper, MapperContext, get_mapper, entity_types
from importers.validators import (
    ValidationRule,
    ValidationOutcome,
    FieldIssue,
    MappingIssue,
    DuplicateGroup,
    DuplicateValue,
    ExistingRecord,
    validate_data,
    validate_import,
    find_duplicates,
    find_existing_records,
)
from importers.executor import (
    ImportExecutor,
    ImportOptions,
    ImportRunResult,
    RowOutcome,
    RowFailure,
    RecordStore,
)

__all__ = [
    "LocaleStrategy",
    "CZECH_LOCALE",
    "DEFAULT_LOCALE",
    "get_locale",
    "EntityMapper",
    "MapperContext",
    "get_mapper",
    "entity_types",
    "ValidationRule",
    "ValidationOutcome",
    "FieldIssue",
    "MappingIssue",
    "DuplicateGroup",
    "DuplicateValue",
    "ExistingRecord",
    "validate_data",
    "validate_import",
    "find_duplicates",
    "find_existing_records",
    "ImportExecutor",
    "ImportOptions",
    "ImportRunResult",
    "RowOutcome",
    "RowFailure",
    "RecordStore",
]
