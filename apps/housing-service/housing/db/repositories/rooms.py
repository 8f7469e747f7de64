"""
Room repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from housing.db import schemas, models


def create_room(db: Session, room: schemas.RoomCreate, farm_id: uuid.UUID):
    data = room.model_dump(exclude={'farm_id'})
    db_room = models.Room(**data, farm_id=farm_id, occupant_count=0, occupants=[])
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    return db_room


def get_room(db: Session, room_id: uuid.UUID):
    return db.query(models.Room).filter(models.Room.id == room_id).first()


def get_rooms(db: Session, farm_id: Optional[uuid.UUID] = None, skip: int = 0, limit: int = 500):
    query = db.query(models.Room)
    if farm_id is not None:
        query = query.filter(models.Room.farm_id == farm_id)
    return query.order_by(models.Room.number).offset(skip).limit(limit).all()


def find_room(db: Session, farm_id: uuid.UUID, number: str, gender: Optional[str] = None):
    query = db.query(models.Room).filter(
        models.Room.farm_id == farm_id,
        models.Room.number == str(number),
    )
    if gender is not None:
        query = query.filter(models.Room.gender == gender)
    return query.first()


def get_available_rooms(db: Session, farm_id: uuid.UUID, gender: str):
    """Rooms of the farm for the given genre that still have a free place."""
    rooms = (
        db.query(models.Room)
        .filter(models.Room.farm_id == farm_id, models.Room.gender == gender)
        .order_by(models.Room.number)
        .all()
    )
    return [r for r in rooms if (r.occupant_count or 0) < (r.capacity or 0)]


def update_room(db: Session, room_id: uuid.UUID, room: schemas.RoomUpdate):
    db_room = get_room(db, room_id)
    if db_room:
        update_data = room.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_room, key, value)
        db.commit()
        db.refresh(db_room)
    return db_room


def delete_room(db: Session, room_id: uuid.UUID) -> bool:
    db_room = get_room(db, room_id)
    if not db_room:
        return False
    db.delete(db_room)
    db.commit()
    return True
