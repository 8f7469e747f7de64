"""
Security code repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from housing.db import models


def get_security_code(db: Session, code_id: uuid.UUID):
    return db.query(models.SecurityCode).filter(models.SecurityCode.id == code_id).first()


def find_active_code(db: Session, code: str):
    return (
        db.query(models.SecurityCode)
        .filter(models.SecurityCode.code == code, models.SecurityCode.is_active.is_(True))
        .order_by(models.SecurityCode.created_at.desc())
        .first()
    )


def get_security_codes(db: Session, active_only: bool = False):
    query = db.query(models.SecurityCode)
    if active_only:
        query = query.filter(models.SecurityCode.is_active.is_(True), models.SecurityCode.is_used.is_(False))
    return query.order_by(models.SecurityCode.created_at.desc()).all()


def get_usages(db: Session, code_id: Optional[uuid.UUID] = None):
    query = db.query(models.SecurityCodeUsage)
    if code_id is not None:
        query = query.filter(models.SecurityCodeUsage.security_code_id == code_id)
    return query.order_by(models.SecurityCodeUsage.created_at.desc()).all()
