"""
Security code administration (superadmin only).

Codes authorize farm admins to bulk delete workers; a superadmin generates
them and shares them with a farm, whose admin is notified.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import farms as farm_repo
from housing.db.repositories import security_codes as code_repo
from housing.api.deps import get_superadmin_context
from housing.services.security_code_service import SecurityCodeError, SecurityCodeService

router = APIRouter(prefix="/admin/security-codes", tags=["security-codes"])


@router.get("/", response_model=List[schemas.SecurityCode])
def list_active_codes(
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    return SecurityCodeService(db).list_active()


@router.get("/usages")
def list_code_usages(
    code_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Who used which code to delete which workers, newest first."""
    return [
        {
            "id": usage.id,
            "security_code_id": usage.security_code_id,
            "code": usage.code,
            "used_by": usage.used_by,
            "used_by_email": usage.used_by_email,
            "deletions_count": usage.deletions_count,
            "deleted_workers": usage.deleted_workers or [],
            "created_at": usage.created_at,
        }
        for usage in code_repo.get_usages(db, code_id=code_id)
    ]


@router.post("/", response_model=schemas.SecurityCode, status_code=status.HTTP_201_CREATED)
def generate_code(
    payload: schemas.SecurityCodeCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    return SecurityCodeService(db).generate(user, payload.expiration_value, payload.expiration_unit, payload.max_deletions)


@router.post("/{code_id}/share", response_model=schemas.SecurityCode)
def share_code(
    code_id: uuid.UUID,
    payload: schemas.SecurityCodeShare,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    farm = farm_repo.get_farm(db, payload.farm_id)
    if farm is None:
        raise HTTPException(status_code=404, detail="Farm not found")
    try:
        return SecurityCodeService(db).share_with_farm(code_id, farm, user)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except SecurityCodeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.post("/{code_id}/deactivate", response_model=schemas.SecurityCode)
def deactivate_code(
    code_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    try:
        return SecurityCodeService(db).deactivate(code_id, user)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
