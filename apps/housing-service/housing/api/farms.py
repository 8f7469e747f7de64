"""
Farm API endpoints.

Every signed-in user can list farms (transfer destinations, import lookups);
only superadmins create, rename or delete them.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import farms as farm_repo
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.audit import AuditAction, log
from housing.services.notification_service import NotificationService

router = APIRouter(prefix="/farms", tags=["farms"])


@router.get("/", response_model=List[schemas.Farm])
def list_farms(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return farm_repo.get_farms(db, skip=skip, limit=limit)


@router.get("/{farm_id}", response_model=schemas.Farm)
def get_farm(
    farm_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    farm = farm_repo.get_farm(db, farm_id)
    if not farm:
        raise HTTPException(status_code=404, detail="Farm not found")
    return farm


@router.post("/", response_model=schemas.Farm, status_code=status.HTTP_201_CREATED)
def create_farm(
    payload: schemas.FarmCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    if farm_repo.get_farm_by_name(db, payload.name):
        raise HTTPException(status_code=409, detail="A farm with this name already exists")
    farm = farm_repo.create_farm(db, payload)
    log(db, action=AuditAction.FARM_CREATE, target_type="farm", target_id=farm.id,
        actor_user_id=user.id, farm_id=farm.id, metadata={"name": farm.name})
    return farm


@router.put("/{farm_id}", response_model=schemas.Farm)
def update_farm(
    farm_id: uuid.UUID,
    payload: schemas.FarmUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    if payload.name:
        existing = farm_repo.get_farm_by_name(db, payload.name)
        if existing and existing.id != farm_id:
            raise HTTPException(status_code=409, detail="A farm with this name already exists")
    farm = farm_repo.update_farm(db, farm_id, payload)
    if not farm:
        raise HTTPException(status_code=404, detail="Farm not found")
    log(db, action=AuditAction.FARM_UPDATE, target_type="farm", target_id=farm.id,
        actor_user_id=user.id, farm_id=farm.id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True).keys())})
    return farm


@router.delete("/{farm_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_farm(
    farm_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Delete a farm together with every notification related to it."""
    user, _ctx = user_context
    farm = farm_repo.get_farm(db, farm_id)
    if not farm:
        raise HTTPException(status_code=404, detail="Farm not found")
    name = farm.name
    removed = NotificationService(db).delete_all_notifications_by_farm(farm_id)
    farm_repo.delete_farm(db, farm_id)
    # The farm row is gone, so the audit entry cannot reference it
    log(db, action=AuditAction.FARM_DELETE, target_type="farm", target_id=farm_id,
        actor_user_id=user.id, farm_id=None,
        metadata={"name": name, "notifications_deleted": removed})
