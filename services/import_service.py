"""
Import service.

Orchestrates the three import steps behind the API:
upload (parse + suggest mapping), validate (report) and execute (commit or
dry run). Holds no state between calls.
"""

from typing import Any, Optional, Union
import structlog

from config import settings as app_settings, Settings
from exceptions import DatabaseError, EmptyImportFileError, ImportFileTooLargeError
from importers.executor import ImportExecutor, ImportOptions, RecordStore
from importers.mappers import EntityMapper, MapperContext, get_mapper, entity_types
from importers.validators import validate_import
from models.imports import (
    EntityConfig,
    EntityType,
    ExecuteResponse,
    UploadResponse,
    ValidateResponse,
)
from parsers.csv_parser import parse_csv, column_statistics
from services.record_store import SupabaseRecordStore

logger = structlog.get_logger(__name__)


class ImportService:
    """
    Import business logic.

    The record store is injected for tests; otherwise the Supabase store is
    used when Supabase is configured.
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        context: Optional[MapperContext] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or app_settings
        self.context = context or MapperContext.from_settings(self.settings)
        self._store = store

    def _mapper(self, entity_type: Union[EntityType, str]) -> EntityMapper:
        if isinstance(entity_type, EntityType):
            entity_type = entity_type.value
        return get_mapper(entity_type, self.context)

    def _optional_store(self) -> Optional[RecordStore]:
        if self._store is None and self.settings.supabase_configured:
            self._store = SupabaseRecordStore()
        return self._store

    def _require_store(self) -> RecordStore:
        store = self._optional_store()
        if store is None:
            raise DatabaseError("connect", "Record store is not configured")
        return store

    # ===================
    # ENTITY CATALOG
    # ===================

    def list_entities(self) -> list[EntityConfig]:
        """Target field catalogs of all importable entity types."""
        return [
            EntityConfig.model_validate(self._mapper(entity_type).config())
            for entity_type in entity_types()
        ]

    # ===================
    # UPLOAD
    # ===================

    def prepare_upload(
        self,
        file_name: str,
        content: bytes,
        entity_type: Union[EntityType, str]
    ) -> UploadResponse:
        """
        Parse an uploaded CSV and suggest a column mapping.

        Raises:
            ImportFileTooLargeError: If the file exceeds the size limit
            UnknownEntityTypeError: If no mapper exists for the type
            MalformedInputError: If the file has no header row or cannot be read
            EmptyImportFileError: If the file has no data rows
        """
        max_size = self.settings.import_max_file_bytes
        if len(content) > max_size:
            logger.warning("import_file_too_large", file_name=file_name, size=len(content))
            raise ImportFileTooLargeError(len(content), max_size)

        mapper = self._mapper(entity_type)
        table = parse_csv(content)

        if table.row_count == 0:
            raise EmptyImportFileError(file_name, table.columns)

        stats = column_statistics(table)

        logger.info(
            "import_file_prepared",
            file_name=file_name,
            entity_type=mapper.entity_type,
            rows=table.row_count,
            columns=len(table.columns)
        )

        return UploadResponse(
            file_name=file_name,
            file_size=len(content),
            row_count=table.row_count,
            headers=table.columns,
            preview=table.rows[:self.settings.import_preview_rows],
            all_data=table.rows,
            suggested_mapping=mapper.suggest(table.columns),
            config=EntityConfig.model_validate(mapper.config()),
            delimiter=table.delimiter,
            encoding=table.encoding,
            diagnostics=[
                {"line": d.line, "message": d.message, "severity": d.severity}
                for d in table.diagnostics
            ],
            column_stats=[s.to_dict() for s in stats.values()],
        )

    # ===================
    # VALIDATE
    # ===================

    def validate(
        self,
        entity_type: Union[EntityType, str],
        data: list[dict[str, Any]],
        column_mapping: dict[str, str]
    ) -> ValidateResponse:
        """
        Validate mapped data and preview the transformed records.

        Existing-record checks run only when a store is available.
        """
        mapper = self._mapper(entity_type)
        store = self._optional_store()
        if store is None:
            logger.warning("import_existing_check_skipped", reason="store_not_configured")

        outcome = validate_import(mapper, data, column_mapping, store)
        mapped_rows = outcome.mapped_rows

        return ValidateResponse(
            total_rows=len(data),
            mapped_rows=mapped_rows,
            skipped_rows=len(data) - mapped_rows,
            preview=[r for r in outcome.records if r is not None][:self.settings.import_mapped_preview_rows],
            **outcome.to_dict(limit=self.settings.import_report_limit),
        )

    # ===================
    # EXECUTE
    # ===================

    def execute(
        self,
        entity_type: Union[EntityType, str],
        data: list[dict[str, Any]],
        column_mapping: dict[str, str],
        options: Optional[ImportOptions] = None
    ) -> ExecuteResponse:
        """
        Run the import, or a dry run of it.

        Raises:
            UnknownEntityTypeError: If no mapper exists for the type
            DatabaseError: If no record store is configured
        """
        mapper = self._mapper(entity_type)
        executor = ImportExecutor(mapper, self._require_store())
        result = executor.execute(data, column_mapping, options or ImportOptions())
        return ExecuteResponse.model_validate(result.to_dict())


# Singleton instance
_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create ImportService instance."""
    global _service
    if _service is None:
        _service = ImportService()
    return _service
