"""
Spreadsheet import endpoints.

The client uploads a workbook for a preview, then posts back the raw rows it
wants to keep; rows are validated again before anything is written.
"""
from io import BytesIO

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.api.deps import get_current_user_context
from housing.services.import_service import (
    ImportFileError,
    ImportService,
    TEMPLATE_FILENAME,
    XLSX_MEDIA_TYPE,
    read_workbook,
)

router = APIRouter(prefix="/imports", tags=["imports"])

ALLOWED_EXTENSIONS = ('.xlsx', '.xlsm')


@router.post("/preview", response_model=schemas.ImportPreview)
async def preview_import(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    if not (file.filename or '').lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(status_code=422, detail="Veuillez sélectionner un fichier Excel (.xlsx)")
    content = await file.read()
    try:
        rows = read_workbook(content)
    except ImportFileError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return ImportService(db).preview(rows, user)


@router.post("/commit", response_model=schemas.ImportCommitResult)
def commit_import(
    payload: schemas.ImportCommitRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    return ImportService(db).commit(payload.rows, user)


@router.get("/template")
def download_template(user_context=Depends(get_current_user_context)):
    return StreamingResponse(
        BytesIO(ImportService.build_template()),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
