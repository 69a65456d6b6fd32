"""
CSV import routes.

Three-step flow: upload → validate → execute (dry run first, then for real).
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError
from importers.executor import ImportOptions
from models.imports import (
    EntityListResponse,
    EntityType,
    ExecuteRequest,
    ExecuteResponse,
    UploadResponse,
    ValidateRequest,
    ValidateResponse,
)
from services.import_service import ImportService, get_import_service

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# IMPORT ROUTES
# ===================

@router.get("/entities", response_model=EntityListResponse)
async def list_entities(service: ImportService = Depends(get_import_service)):
    """List importable entity types with their target fields."""
    try:
        entities = service.list_entities()
        return EntityListResponse(data=entities, total=len(entities))
    except Exception as e:
        return handle_error(e)


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    entity_type: EntityType = Form(...),
    service: ImportService = Depends(get_import_service),
):
    """
    Upload a CSV export.

    Returns headers, preview rows, all parsed rows and a suggested column
    mapping for the selected entity type.
    """
    try:
        contents = await file.read()
        logger.info(
            "import_upload_received",
            file_name=file.filename,
            size=len(contents),
            entity_type=entity_type.value
        )
        return service.prepare_upload(file.filename or "upload.csv", contents, entity_type)
    except Exception as e:
        return handle_error(e)


@router.post("/validate", response_model=ValidateResponse)
async def validate_import(
    request: ValidateRequest,
    service: ImportService = Depends(get_import_service),
):
    """Validate mapped rows; nothing is written."""
    try:
        return service.validate(request.entity_type, request.data, request.column_mapping)
    except Exception as e:
        return handle_error(e)


@router.post("/execute", response_model=ExecuteResponse)
async def execute_import(
    request: ExecuteRequest,
    service: ImportService = Depends(get_import_service),
):
    """
    Execute the import.

    With options.dry_run (the default) the response shows what would happen
    without writing anything.
    """
    try:
        options = ImportOptions(
            skip_existing=request.options.skip_existing,
            update_existing=request.options.update_existing,
            dry_run=request.options.dry_run,
        )
        return service.execute(request.entity_type, request.data, request.column_mapping, options)
    except Exception as e:
        return handle_error(e)
