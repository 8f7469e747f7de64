"""
System maintenance tools (superadmin only): room occupancy repair.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.api.deps import get_superadmin_context
from housing.audit import AuditAction, log
from housing.services import occupancy_service
from housing.services.occupancy_service import RoomNotFound

router = APIRouter(prefix="/admin", tags=["maintenance"])


@router.post("/rooms/sync", response_model=schemas.OccupancySyncResult)
def sync_all_rooms(
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Rebuild every room's occupant list from the workers currently housed in it."""
    user, _ctx = user_context
    updated = occupancy_service.sync_room_occupancy(db)
    log(db, action=AuditAction.OCCUPANCY_SYNC, target_type="room", actor_user_id=user.id,
        metadata={"updated_rooms": updated})
    return schemas.OccupancySyncResult(updated_rooms=updated)


@router.post("/rooms/{room_id}/sync", response_model=schemas.OccupancySyncResult)
def sync_room(
    room_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    try:
        changed = occupancy_service.sync_single_room_occupancy(db, room_id)
    except RoomNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    log(db, action=AuditAction.OCCUPANCY_SYNC, target_type="room", target_id=room_id, actor_user_id=user.id,
        metadata={"changed": changed})
    return schemas.OccupancySyncResult(updated_rooms=1 if changed else 0)


@router.post("/rooms/clear", response_model=schemas.OccupancySyncResult)
def clear_rooms(
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Empty every room (of one farm, or all farms)."""
    user, _ctx = user_context
    updated = occupancy_service.clear_all_room_occupants(db, farm_id=farm_id)
    log(db, action=AuditAction.ROOMS_CLEAR, target_type="room", actor_user_id=user.id, farm_id=farm_id,
        metadata={"updated_rooms": updated})
    return schemas.OccupancySyncResult(updated_rooms=updated)
