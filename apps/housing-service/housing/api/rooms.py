"""
Room API endpoints, scoped to the caller's farm unless superadmin.
"""
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import farms as farm_repo
from housing.db.repositories import rooms as room_repo
from housing.api.deps import get_current_user_context
from housing.api.permissions import ensure_farm_access, require_farm_for_write, resolve_farm_scope
from housing.audit import AuditAction, log
from housing.services.occupancy_service import genre_for

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("/", response_model=List[schemas.Room])
def list_rooms(
    farm_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 500,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    return room_repo.get_rooms(db, farm_id=scope, skip=skip, limit=limit)


@router.get("/available", response_model=List[schemas.Room])
def list_available_rooms(
    gender: Literal['homme', 'femme'],
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Rooms of the farm matching a worker gender that are not full yet."""
    _user, current_user = user_context
    scope = require_farm_for_write(farm_id, current_user)
    return room_repo.get_available_rooms(db, scope, genre_for(gender))


def _room_or_404(db: Session, room_id: uuid.UUID, current_user):
    room = room_repo.get_room(db, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    ensure_farm_access(room.farm_id, current_user)
    return room


@router.get("/{room_id}", response_model=schemas.Room)
def get_room(
    room_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return _room_or_404(db, room_id, current_user)


@router.post("/", response_model=schemas.Room, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: schemas.RoomCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    farm_id = require_farm_for_write(payload.farm_id, current_user)
    if farm_repo.get_farm(db, farm_id) is None:
        raise HTTPException(status_code=404, detail="Farm not found")
    if room_repo.find_room(db, farm_id, payload.number):
        raise HTTPException(status_code=409, detail=f"Room {payload.number} already exists in this farm")
    room = room_repo.create_room(db, payload, farm_id)
    log(db, action=AuditAction.ROOM_CREATE, target_type="room", target_id=room.id,
        actor_user_id=user.id, farm_id=farm_id, metadata={"number": room.number, "gender": room.gender})
    return room


@router.put("/{room_id}", response_model=schemas.Room)
def update_room(
    room_id: uuid.UUID,
    payload: schemas.RoomUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    room = _room_or_404(db, room_id, current_user)
    if payload.number and payload.number != room.number and room_repo.find_room(db, room.farm_id, payload.number):
        raise HTTPException(status_code=409, detail=f"Room {payload.number} already exists in this farm")
    if payload.capacity is not None and payload.capacity < (room.occupant_count or 0):
        raise HTTPException(status_code=409, detail="Capacity cannot be lower than the current occupant count")
    room = room_repo.update_room(db, room_id, payload)
    log(db, action=AuditAction.ROOM_UPDATE, target_type="room", target_id=room.id,
        actor_user_id=user.id, farm_id=room.farm_id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True).keys())})
    return room


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    room = _room_or_404(db, room_id, current_user)
    if room.occupant_count:
        raise HTTPException(status_code=409, detail="Room still has occupants")
    farm_id, number = room.farm_id, room.number
    room_repo.delete_room(db, room_id)
    log(db, action=AuditAction.ROOM_DELETE, target_type="room", target_id=room_id,
        actor_user_id=user.id, farm_id=farm_id, metadata={"number": number})
