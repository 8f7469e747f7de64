"""
Audit trail endpoints (superadmin only).
"""
from datetime import datetime
from typing import Optional, List
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import audits as audit_repo
from housing.api.deps import get_superadmin_context

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    farm_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    since: Optional[datetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """
    Newest entries first.

    - **target_type** / **target_id**: trail of one record, e.g. `worker` and its id
    - **since**: only entries created at or after this instant
    """
    return audit_repo.get_audit_logs(
        db, farm_id=farm_id, user_id=user_id, action_type=action_type, status=status,
        target_type=target_type, target_id=target_id, since=since, skip=skip, limit=limit,
    )
