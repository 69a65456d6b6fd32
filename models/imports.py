"""
Import pipeline schemas.

Request bodies and responses for the upload, validate and execute steps.
"""

from enum import Enum
from typing import Any, Optional
from pydantic import Field

from models.base import BaseSchema


class EntityType(str, Enum):
    """Importable entity types."""
    CUSTOMER_COMPANY = "customer_company"
    CUSTOMER_PERSON = "customer_person"
    INVOICE = "invoice"
    ORDER = "order"
    PERFORMANCE = "performance"
    GAME = "game"


# ===================
# SHARED
# ===================

class TargetFieldSchema(BaseSchema):
    value: str
    label: str
    required: bool = False


class EntityConfig(BaseSchema):
    """Field catalog for the mapping step."""
    entity_type: EntityType
    label: str
    required_fields: list[str]
    target_fields: list[TargetFieldSchema]


class EntityListResponse(BaseSchema):
    data: list[EntityConfig]
    total: int


# ===================
# UPLOAD
# ===================

class ParseDiagnosticSchema(BaseSchema):
    line: int
    message: str
    severity: str = "warning"


class ColumnStatsSchema(BaseSchema):
    column: str
    non_empty: int
    distinct: int
    samples: list[str] = Field(default_factory=list)
    inferred_type: str


class UploadResponse(BaseSchema):
    """Parsed file plus suggested mapping."""
    file_name: str
    file_size: int
    row_count: int
    headers: list[str]
    preview: list[dict[str, str]]
    all_data: list[dict[str, str]]
    suggested_mapping: dict[str, str]
    config: EntityConfig
    delimiter: str
    encoding: str
    diagnostics: list[ParseDiagnosticSchema] = Field(default_factory=list)
    column_stats: list[ColumnStatsSchema] = Field(default_factory=list)


# ===================
# VALIDATE
# ===================

class ValidateRequest(BaseSchema):
    entity_type: EntityType
    data: list[dict[str, Any]] = Field(..., description="Rows keyed by source column")
    column_mapping: dict[str, str] = Field(..., description="Source column → target field")


class FieldIssueSchema(BaseSchema):
    row: int = Field(..., ge=0, description="0-based row index")
    field: str
    value: Optional[Any] = None
    message: str
    severity: str


class MappingIssueSchema(BaseSchema):
    field: str
    kind: str
    columns: list[str]
    message: str


class DuplicateValueSchema(BaseSchema):
    value: str
    rows: list[int]


class DuplicateGroupSchema(BaseSchema):
    field: str
    values: list[DuplicateValueSchema]


class ExistingRecordSchema(BaseSchema):
    field: str
    value: str
    row: int


class ValidationStats(BaseSchema):
    total: int
    valid: int
    invalid: int
    with_warnings: int
    warnings: int
    errors: int


class ValidateResponse(BaseSchema):
    """Validation report with a preview of transformed records."""
    total_rows: int
    mapped_rows: int
    skipped_rows: int
    row_status: list[str]
    valid_rows: list[int]
    invalid_rows: list[int]
    warning_rows: list[int]
    errors: list[FieldIssueSchema]
    warnings: list[FieldIssueSchema]
    error_count: int
    warning_count: int
    mapping_errors: list[MappingIssueSchema]
    duplicates: list[DuplicateGroupSchema]
    existing_records: list[ExistingRecordSchema]
    stats: ValidationStats
    can_import: bool
    can_import_with_skip: bool
    summary: str
    preview: list[dict[str, Any]]


# ===================
# EXECUTE
# ===================

class ImportOptionsSchema(BaseSchema):
    skip_existing: bool = True
    update_existing: bool = False
    dry_run: bool = True


class ExecuteRequest(BaseSchema):
    entity_type: EntityType
    data: list[dict[str, Any]]
    column_mapping: dict[str, str]
    options: ImportOptionsSchema = Field(default_factory=ImportOptionsSchema)


class RowFailureSchema(BaseSchema):
    row: int
    message: str


class RowOutcomeSchema(BaseSchema):
    row: int
    status: str
    record_id: Optional[Any] = None
    message: Optional[str] = None


class ExecuteResponse(BaseSchema):
    success: bool
    dry_run: bool
    created: int
    updated: int
    skipped: int
    failed: int
    errors: list[RowFailureSchema]
    outcomes: list[RowOutcomeSchema]
    message: str
