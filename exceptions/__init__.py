"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # CSV parser
    MalformedInputError,
    EmptyImportFileError,
    ImportFileTooLargeError,

    # Import pipeline
    UnknownEntityTypeError,
    CustomerReferenceNotFoundError,
    ExistingRecordError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # CSV parser
    "MalformedInputError",
    "EmptyImportFileError",
    "ImportFileTooLargeError",

    # Import pipeline
    "UnknownEntityTypeError",
    "CustomerReferenceNotFoundError",
    "ExistingRecordError",
]
