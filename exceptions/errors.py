"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can return the same JSON envelope for all failures.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CSV_MALFORMED")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CSV PARSER ERRORS
# ===================

class MalformedInputError(ValidationError):
    """Uploaded file cannot be read as CSV (no header row, broken quoting)."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="CSV_MALFORMED",
            message=message,
            details=details
        )


class EmptyImportFileError(ValidationError):
    """File has a header row but no data rows."""

    def __init__(self, file_name: str, headers: list[str]):
        super().__init__(
            code="IMPORT_FILE_EMPTY",
            message="File contains no data rows",
            details={"file_name": file_name, "headers": headers}
        )


class ImportFileTooLargeError(AppError):
    """Upload exceeds the configured size limit (413)."""

    def __init__(self, file_size: int, max_size: int):
        super().__init__(
            code="IMPORT_FILE_TOO_LARGE",
            message=f"File is too large ({file_size} bytes, limit {max_size})",
            status_code=413,
            details={"file_size": file_size, "max_size": max_size}
        )


# ===================
# IMPORT ERRORS
# ===================

class UnknownEntityTypeError(ValidationError):
    """Entity type has no registered mapper."""

    def __init__(self, entity_type: str, valid: list[str]):
        super().__init__(
            code="IMPORT_UNKNOWN_ENTITY_TYPE",
            message=f"Unknown import entity type: {entity_type}",
            details={"provided": entity_type, "valid": valid}
        )


class CustomerReferenceNotFoundError(NotFoundError):
    """Invoice/order row references a customer that does not exist."""

    def __init__(self, reference: str):
        super().__init__(
            resource="Customer",
            identifier=reference,
            code="IMPORT_CUSTOMER_NOT_FOUND"
        )
        self.message = f'Customer "{reference}" not found'


class ExistingRecordError(ConflictError):
    """Row collides with an existing record and no conflict policy applies."""

    def __init__(self, entity_type: str, field: str, value: str):
        super().__init__(
            code="IMPORT_RECORD_EXISTS",
            message=f"{entity_type} with {field} {value} already exists",
            details={"entity_type": entity_type, "field": field, "value": value}
        )
