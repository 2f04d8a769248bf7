# expense_tracker/routes/admin.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from sqlalchemy.orm import Session

from expense_tracker.config import settings
from expense_tracker.database import get_db
from expense_tracker.schemas.reports import DatabaseStats, ExpenseImport, ExportResponse, ImportSummary, PurgeSummary
from expense_tracker.services import import_export, reporting
from expense_tracker.services.permissions import Actor
from expense_tracker.utils.audit import client_ip, write_log
from expense_tracker.utils.spreadsheet import XLSX_MEDIA_TYPE, read_rows, rows_to_xlsx
from expense_tracker.utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


# Export every expense as JSON, or as an Excel workbook with ?format=xlsx
@router.get("/export/expenses", response_model=ExportResponse)
def export_expenses(
    format: str = Query("json", pattern="^(json|xlsx)$"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    rows = import_export.export_rows(db)
    now = datetime.now(timezone.utc)

    if format == "xlsx":
        content = rows_to_xlsx(rows, columns=import_export.EXPORT_COLUMNS)
        filename = f"expenses_export_{now:%Y-%m-%d}.xlsx"
        return Response(
            content=content,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return {"data": rows, "export_date": now, "record_count": len(rows)}


def _import(db: Session, actor: Actor, request: Request, rows, source: str) -> dict:
    result = import_export.import_rows(db, actor, rows)
    write_log(
        db, user_id=actor.id, action="EXPENSE_IMPORT", resource="expenses",
        status="SUCCESS" if not result.errors else "PARTIAL",
        ip=client_ip(request),
        meta={"source": source, "imported": result.imported, "errors": len(result.errors)},
    )
    return {"message": "Import completed", "imported": result.imported, "errors": result.errors}


# Import rows previously exported (or hand-built) as JSON
@router.post("/import/expenses", response_model=ImportSummary)
def import_expenses(
    payload: ExpenseImport,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return _import(db, actor, request, payload.expenses, "json")


# Import an uploaded .xlsx or .csv workbook
@router.post("/import/expenses/file", response_model=ImportSummary)
def import_expenses_file(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    try:
        content = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    finally:
        file.file.close()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File is too large")

    rows = read_rows(content, file.filename)
    logger.info("Parsed %d rows from %s", len(rows), file.filename)

    return _import(db, actor, request, rows, file.filename or "file")


# Delete every expense; categories and users stay
@router.delete("/purge/expenses", response_model=PurgeSummary)
def purge_expenses(
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    deleted = import_export.purge_expenses(db, actor)
    write_log(
        db, user_id=actor.id, action="EXPENSE_PURGE", resource="expenses",
        ip=client_ip(request), meta={"deleted_count": deleted},
    )
    return {"message": f"Successfully deleted {deleted} expense records", "deleted_count": deleted}


@router.get("/database/stats", response_model=DatabaseStats)
def database_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return reporting.database_stats(db)
