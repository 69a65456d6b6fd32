"""
Business logic services.

Each service handles one domain area.
"""

from services.import_service import ImportService, get_import_service
from services.record_store import (
    SupabaseRecordStore,
    InMemoryRecordStore,
    ENTITY_TABLES,
    table_for,
)

__all__ = [
    "ImportService",
    "get_import_service",
    "SupabaseRecordStore",
    "InMemoryRecordStore",
    "ENTITY_TABLES",
    "table_for",
]
