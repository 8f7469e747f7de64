"""
Worker and stock transfer repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from housing.db import models


def get_transfer(db: Session, transfer_id: uuid.UUID):
    return db.query(models.WorkerTransfer).filter(models.WorkerTransfer.id == transfer_id).first()


def get_transfers(
    db: Session,
    farm_id: Optional[uuid.UUID] = None,
    direction: Optional[str] = None,
    status: Optional[str] = None,
):
    """List transfers, optionally those leaving (`outgoing`) or reaching (`incoming`) a farm."""
    query = db.query(models.WorkerTransfer)
    if farm_id is not None:
        if direction == 'incoming':
            query = query.filter(models.WorkerTransfer.to_farm_id == farm_id)
        elif direction == 'outgoing':
            query = query.filter(models.WorkerTransfer.from_farm_id == farm_id)
        else:
            query = query.filter(
                or_(models.WorkerTransfer.to_farm_id == farm_id, models.WorkerTransfer.from_farm_id == farm_id)
            )
    if status:
        query = query.filter(models.WorkerTransfer.status == status)
    return query.order_by(models.WorkerTransfer.created_at.desc()).all()


def count_pending(db: Session) -> int:
    return db.query(models.WorkerTransfer).filter(models.WorkerTransfer.status == 'pending').count()


# Stock transfers

def get_stock_transfer(db: Session, transfer_id: uuid.UUID):
    return db.query(models.StockTransfer).filter(models.StockTransfer.id == transfer_id).first()


def get_stock_transfers(
    db: Session,
    farm_id: Optional[uuid.UUID] = None,
    direction: Optional[str] = None,
    status: Optional[str] = None,
):
    query = db.query(models.StockTransfer)
    if farm_id is not None:
        if direction == 'incoming':
            query = query.filter(models.StockTransfer.to_farm_id == farm_id)
        elif direction == 'outgoing':
            query = query.filter(models.StockTransfer.from_farm_id == farm_id)
        else:
            query = query.filter(
                or_(models.StockTransfer.to_farm_id == farm_id, models.StockTransfer.from_farm_id == farm_id)
            )
    if status:
        query = query.filter(models.StockTransfer.status == status)
    return query.order_by(models.StockTransfer.created_at.desc()).all()
