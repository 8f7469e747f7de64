"""
Users API endpoints.

Self profile for everyone; user management and farm assignment tools for
superadmins.
"""
from typing import List
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.db import schemas
from housing.db.repositories import farms as farm_repo
from housing.db.repositories import users as user_repo
from housing.audit import AuditAction, log
from housing.services import farm_assignment_service
from housing.services.farm_assignment_service import FarmAssignmentError
from housing.utils.role_permissions import ROLE_ADMIN

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=schemas.User)
def read_me(user_context=Depends(get_current_user_context)):
    user, _ctx = user_context
    return user


@router.patch("/me", response_model=schemas.User)
def update_me(
    payload: schemas.UserProfileUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    changes = payload.model_dump(exclude_unset=True)
    if "display_name" in changes:
        s = (changes["display_name"] or "").strip()
        if len(s) == 0 or len(s) > 80:
            raise HTTPException(status_code=422, detail="display_name must be 1..80 characters")
        changes["display_name"] = s
    if changes:
        user = user_repo.update_user(db, user.id, **changes)
    return user


@router.get("/", response_model=List[schemas.User])
def list_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    return user_repo.get_users(db, skip=skip, limit=limit)


@router.get("/without-farm", response_model=List[schemas.User])
def list_users_without_farm(
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    return farm_assignment_service.find_users_without_farms(db)


@router.post("/auto-assign-farms")
def auto_assign_farms(
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    return farm_assignment_service.auto_assign_users_to_farms(db, actor=user)


def _get_user_or_404(db: Session, user_id: uuid.UUID):
    target = user_repo.get_user(db, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return target


@router.get("/{user_id}/farm-check")
def check_farm_assignment(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    return farm_assignment_service.check_user_farm_assignment(db, _get_user_or_404(db, user_id))


@router.put("/{user_id}/role", response_model=schemas.User)
def change_role(
    user_id: uuid.UUID,
    payload: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    target = _get_user_or_404(db, user_id)
    previous = target.role
    target = user_repo.update_user(db, target.id, role=payload.role.value)
    log(db, action=AuditAction.USER_ROLE_CHANGE, target_type="user", target_id=target.id,
        actor_user_id=user.id, farm_id=target.farm_id,
        metadata={"old_role": previous, "new_role": payload.role.value})
    return target


@router.put("/{user_id}/farm", response_model=schemas.User)
def assign_farm(
    user_id: uuid.UUID,
    payload: schemas.UserFarmUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Assign (or clear) a user's farm; admins are also added to the farm's admin list."""
    user, _ctx = user_context
    target = _get_user_or_404(db, user_id)
    if payload.farm_id is None:
        target = user_repo.update_user(db, target.id, farm_id=None)
    else:
        try:
            farm_assignment_service.assign_user_to_farm(db, target, payload.farm_id)
            if target.role == ROLE_ADMIN:
                farm_assignment_service.add_user_to_farm_admins(db, target, payload.farm_id)
        except FarmAssignmentError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
    log(db, action=AuditAction.USER_FARM_ASSIGN, target_type="user", target_id=target.id,
        actor_user_id=user.id, farm_id=payload.farm_id)
    return target


@router.post("/{user_id}/farm-admin", response_model=schemas.Farm)
def add_farm_admin(
    user_id: uuid.UUID,
    payload: schemas.UserFarmUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    target = _get_user_or_404(db, user_id)
    farm_id = payload.farm_id or target.farm_id
    if farm_id is None or farm_repo.get_farm(db, farm_id) is None:
        raise HTTPException(status_code=404, detail="La ferme spécifiée n'existe pas")
    return farm_assignment_service.add_user_to_farm_admins(db, target, farm_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    if user.id == user_id:
        raise HTTPException(status_code=409, detail="You cannot delete your own account")
    target = _get_user_or_404(db, user_id)
    email = target.email
    user_repo.delete_user(db, user_id)
    log(db, action=AuditAction.USER_DELETE, target_type="user", target_id=user_id,
        actor_user_id=user.id, metadata={"email": email})
