"""
Supervisor API endpoints.

Reads are open to every signed-in user and go through the shared database
circuit breaker; writes are superadmin only.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import catalog as catalog_repo
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.audit import AuditAction, log
from housing.utils.resilience import CircuitOpenError, TRANSIENT_DB_ERRORS, db_circuit_breaker, retry_with_backoff

router = APIRouter(prefix="/supervisors", tags=["supervisors"])


@router.get("/", response_model=List[schemas.Supervisor])
def list_supervisors(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    def load():
        try:
            return catalog_repo.get_supervisors(db)
        except TRANSIENT_DB_ERRORS:
            db.rollback()
            raise

    try:
        return db_circuit_breaker.call(lambda: retry_with_backoff(load))
    except CircuitOpenError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.get("/{supervisor_id}", response_model=schemas.Supervisor)
def get_supervisor(
    supervisor_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    supervisor = catalog_repo.get_supervisor(db, supervisor_id)
    if not supervisor:
        raise HTTPException(status_code=404, detail="Supervisor not found")
    return supervisor


@router.post("/", response_model=schemas.Supervisor, status_code=status.HTTP_201_CREATED)
def create_supervisor(
    payload: schemas.SupervisorCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    supervisor = catalog_repo.create_supervisor(db, payload)
    log(db, action=AuditAction.SUPERVISOR_CREATE, target_type="supervisor", target_id=supervisor.id,
        actor_user_id=user.id, metadata={"name": supervisor.name, "company": supervisor.company})
    return supervisor


@router.put("/{supervisor_id}", response_model=schemas.Supervisor)
def update_supervisor(
    supervisor_id: uuid.UUID,
    payload: schemas.SupervisorUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    supervisor = catalog_repo.update_supervisor(db, supervisor_id, payload)
    if not supervisor:
        raise HTTPException(status_code=404, detail="Supervisor not found")
    log(db, action=AuditAction.SUPERVISOR_UPDATE, target_type="supervisor", target_id=supervisor.id,
        actor_user_id=user.id, metadata={"fields": sorted(payload.model_dump(exclude_unset=True).keys())})
    return supervisor


@router.delete("/{supervisor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supervisor(
    supervisor_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    if not catalog_repo.delete_supervisor(db, supervisor_id):
        raise HTTPException(status_code=404, detail="Supervisor not found")
    log(db, action=AuditAction.SUPERVISOR_DELETE, target_type="supervisor", target_id=supervisor_id,
        actor_user_id=user.id)
