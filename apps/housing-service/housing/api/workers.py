"""
Worker API endpoints.

Registration goes through the cross-farm duplicate check; a blocked or
undecided registration answers 409 with the check result so the client can
offer the reactivate/transfer choice.
"""
from datetime import UTC, datetime
from io import BytesIO
from typing import List, Literal, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import workers as worker_repo
from housing.api.deps import get_current_user_context
from housing.api.permissions import ensure_farm_access, require_farm_for_write, resolve_farm_scope
from housing.services.import_service import ImportService, XLSX_MEDIA_TYPE
from housing.services.security_code_service import SecurityCodeError, SecurityCodeService
from housing.services.worker_registration_service import WorkerConflict, WorkerService, WorkerValidationError
from housing.utils.motifs import MOTIF_LABELS

router = APIRouter(prefix="/workers", tags=["workers"])
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[schemas.Worker])
def list_workers(
    farm_id: Optional[uuid.UUID] = None,
    status_filter: Optional[Literal['actif', 'inactif']] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 1000,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    return worker_repo.get_workers(db, farm_id=scope, status=status_filter, search=search, skip=skip, limit=limit)


@router.get("/motifs")
def list_exit_motifs(user_context=Depends(get_current_user_context)):
    """Exit reason codes with their French labels."""
    return [{"value": code, "label": label} for code, label in MOTIF_LABELS.items()]


@router.get("/export")
def export_workers(
    farm_id: Optional[uuid.UUID] = None,
    status_filter: Optional[Literal['actif', 'inactif']] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    workers = worker_repo.get_workers(db, farm_id=scope, status=status_filter, search=search, limit=None)
    content, count = ImportService(db).export_workers(workers)
    filename = f"ouvriers_{datetime.now(UTC).date().isoformat()}.xlsx"
    logger.info("Exported %s workers for farm %s", count, scope)
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/check-duplicates", response_model=schemas.DuplicateCheckResult)
def check_duplicates(
    payload: schemas.DuplicateCheckRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    farm_id = require_farm_for_write(payload.farm_id, current_user)
    return WorkerService(db).check_cross_farm_duplicates(payload.name, payload.cin, farm_id)


@router.post("/bulk-delete", response_model=schemas.BulkDeleteResult)
def bulk_delete_workers(
    payload: schemas.BulkDeleteRequest,
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Delete several workers; non-superadmins must present a security code."""
    user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    workers = worker_repo.get_workers_by_ids(db, payload.worker_ids)
    for worker in workers:
        ensure_farm_access(worker.farm_id, current_user)
    try:
        return WorkerService(db).bulk_delete(payload.worker_ids, user, security_code=payload.security_code,
                                             scope_farm_id=scope)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except SecurityCodeError as exc:
        db.rollback()
        SecurityCodeService(db).record_failure(user, str(exc))
        raise HTTPException(status_code=403, detail=str(exc))


@router.post("/", response_model=schemas.Worker, status_code=status.HTTP_201_CREATED)
def create_worker(
    payload: schemas.WorkerCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    farm_id = require_farm_for_write(payload.farm_id, current_user)
    try:
        return WorkerService(db).register_worker(payload, farm_id, user)
    except WorkerConflict as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=exc.check.model_dump(mode="json"))
    except WorkerValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(exc))


def _worker_or_404(db: Session, worker_id: uuid.UUID, current_user):
    worker = worker_repo.get_worker(db, worker_id)
    if not worker:
        raise HTTPException(status_code=404, detail="Worker not found")
    ensure_farm_access(worker.farm_id, current_user)
    return worker


@router.get("/{worker_id}", response_model=schemas.Worker)
def get_worker(
    worker_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return _worker_or_404(db, worker_id, current_user)


@router.put("/{worker_id}", response_model=schemas.Worker)
def update_worker(
    worker_id: uuid.UUID,
    payload: schemas.WorkerUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    worker = _worker_or_404(db, worker_id, current_user)
    try:
        return WorkerService(db).update_worker(worker, payload, user)
    except WorkerValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(exc))


@router.delete("/{worker_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_worker(
    worker_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    worker = _worker_or_404(db, worker_id, current_user)
    WorkerService(db).delete_worker(worker, user)


@router.post("/{worker_id}/notify-conflict")
def notify_conflict(
    worker_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Alert the admins of the farm where this worker is currently active."""
    user, _ctx = user_context
    worker = worker_repo.get_worker(db, worker_id)
    if not worker:
        raise HTTPException(status_code=404, detail="Worker not found")
    return {"notified": WorkerService(db).notify_conflict(worker, user)}
