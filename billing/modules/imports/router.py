"""
Router for spreadsheet imports
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from billing.common.exceptions import ValidationError
from billing.core.config import settings
from billing.database.database import get_db
from billing.modules.imports.schemas import ImportResult
from billing.modules.imports.service import BulkImporter

imports_router = APIRouter(
    prefix="/invoices",
    tags=["Invoice Import"],
    responses={400: {"model": ImportResult, "description": "Nothing could be imported"}}
)


@imports_router.post("/import", response_model=ImportResult)
async def import_invoices(
    file: UploadFile = File(..., description="Excel (.xlsx) or CSV file"),
    db: Session = Depends(get_db)
):
    """
    Import historical invoices

    Columns (case-insensitive, spaces or underscores): Date, Month, Year, Client,
    Country, Service, Revenue_Amount, Engagement, Invoice Amount, GST, TDS,
    Remittance Fee, Recieved, Invoice Url, Invoice #.

    Rows matching an existing invoice are skipped. Returns 400 with the same
    body when no row could be imported.
    """
    content = await file.read()
    if len(content) > settings.MAX_IMPORT_FILE_SIZE:
        raise ValidationError(
            f"File size exceeds the maximum allowed limit ({settings.MAX_IMPORT_FILE_SIZE // (1024 * 1024)}MB)"
        )

    result = BulkImporter(db).import_file(content, file.filename)
    if result.imported == 0 and result.errors:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result.model_dump())
    return result
