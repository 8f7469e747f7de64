"""
Farm repository functions.
"""
from __future__ import annotations

import uuid
from sqlalchemy.orm import Session

from housing.db import schemas, models


def create_farm(db: Session, farm: schemas.FarmCreate):
    db_farm = models.Farm(**farm.model_dump(), admins=[])
    db.add(db_farm)
    db.commit()
    db.refresh(db_farm)
    return db_farm


def get_farm(db: Session, farm_id: uuid.UUID):
    return db.query(models.Farm).filter(models.Farm.id == farm_id).first()


def get_farm_by_name(db: Session, name: str):
    return db.query(models.Farm).filter(models.Farm.name == name).first()


def get_farms(db: Session, skip: int = 0, limit: int = 100):
    return db.query(models.Farm).order_by(models.Farm.name).offset(skip).limit(limit).all()


def update_farm(db: Session, farm_id: uuid.UUID, farm: schemas.FarmUpdate):
    db_farm = get_farm(db, farm_id)
    if db_farm:
        update_data = farm.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_farm, key, value)
        db.commit()
        db.refresh(db_farm)
    return db_farm


def delete_farm(db: Session, farm_id: uuid.UUID) -> bool:
    db_farm = get_farm(db, farm_id)
    if not db_farm:
        return False
    db.delete(db_farm)
    db.commit()
    return True
