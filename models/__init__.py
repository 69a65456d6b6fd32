"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.imports import (
    EntityType,
    TargetFieldSchema,
    EntityConfig,
    EntityListResponse,
    ParseDiagnosticSchema,
    ColumnStatsSchema,
    UploadResponse,
    ValidateRequest,
    FieldIssueSchema,
    MappingIssueSchema,
    DuplicateValueSchema,
    DuplicateGroupSchema,
    ExistingRecordSchema,
    ValidationStats,
    ValidateResponse,
    ImportOptionsSchema,
    ExecuteRequest,
    RowFailureSchema,
    RowOutcomeSchema,
    ExecuteResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Import
    "EntityType",
    "TargetFieldSchema",
    "EntityConfig",
    "EntityListResponse",
    "ParseDiagnosticSchema",
    "ColumnStatsSchema",
    "UploadResponse",
    "ValidateRequest",
    "FieldIssueSchema",
    "MappingIssueSchema",
    "DuplicateValueSchema",
    "DuplicateGroupSchema",
    "ExistingRecordSchema",
    "ValidationStats",
    "ValidateResponse",
    "ImportOptionsSchema",
    "ExecuteRequest",
    "RowFailureSchema",
    "RowOutcomeSchema",
    "ExecuteResponse",
]
