"""
User repository functions.
"""
from __future__ import annotations

import uuid
from typing import Iterable, Optional
from sqlalchemy.orm import Session

from housing.db import models


def get_user(db: Session, user_id: uuid.UUID):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def get_users(db: Session, skip: int = 0, limit: int = 100):
    return db.query(models.User).order_by(models.User.email).offset(skip).limit(limit).all()


def get_users_by_roles(db: Session, roles: Iterable[str], farm_id: Optional[uuid.UUID] = None):
    query = db.query(models.User).filter(models.User.role.in_(list(roles)))
    if farm_id is not None:
        query = query.filter(models.User.farm_id == farm_id)
    return query.all()


def update_user(db: Session, user_id: uuid.UUID, **fields):
    db_user = get_user(db, user_id)
    if db_user:
        for key, value in fields.items():
            setattr(db_user, key, value)
        db.commit()
        db.refresh(db_user)
    return db_user


def delete_user(db: Session, user_id: uuid.UUID) -> bool:
    db_user = get_user(db, user_id)
    if not db_user:
        return False
    db.delete(db_user)
    db.commit()
    return True
