"""
Worker repository functions.

Read helpers plus the simple field update path; registration, exit and
transfer flows live in `housing.services`.
"""
from __future__ import annotations

import uuid
from typing import Iterable, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from housing.db import models


def get_worker(db: Session, worker_id: uuid.UUID):
    return db.query(models.Worker).filter(models.Worker.id == worker_id).first()


def get_workers(
    db: Session,
    farm_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 500,
):
    query = db.query(models.Worker)
    if farm_id is not None:
        query = query.filter(models.Worker.farm_id == farm_id)
    if status:
        query = query.filter(models.Worker.status == status)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            func.lower(models.Worker.name).like(pattern)
            | func.lower(models.Worker.cin).like(pattern)
            | func.lower(func.coalesce(models.Worker.matricule, '')).like(pattern)
        )
    return query.order_by(models.Worker.name).offset(skip).limit(limit).all()


def get_workers_by_ids(db: Session, worker_ids: Iterable[uuid.UUID]):
    ids = list(worker_ids)
    if not ids:
        return []
    return db.query(models.Worker).filter(models.Worker.id.in_(ids)).all()


def get_workers_by_cin(db: Session, cin: str):
    """Case-insensitive CIN lookup across every farm."""
    normalized = (cin or '').strip().lower()
    if not normalized:
        return []
    return db.query(models.Worker).filter(func.lower(models.Worker.cin) == normalized).all()


def get_all_workers(db: Session):
    return db.query(models.Worker).all()
