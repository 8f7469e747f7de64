"""
Audit trail persistence.

Entries are written by `housing.audit.audit_log`; the superadmin audit page
reads them back filtered by farm, actor, action or a single target record.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from housing.db import schemas, models


def create_audit_log(
    db: Session,
    entry: schemas.AuditLogCreate,
    actor_user_id: Optional[uuid.UUID],
    farm_id: Optional[uuid.UUID] = None,
) -> models.AuditLog:
    fields = entry.model_dump()
    record = models.AuditLog(
        action_type=fields['action_type'],
        status=fields['status'],
        target_type=fields['target_type'],
        target_id=fields['target_id'],
        reason=fields['reason'],
        metadata_json=fields['metadata'],
        actor_user_id=actor_user_id,
        farm_id=farm_id,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_audit_logs(
    db: Session,
    farm_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    since: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.AuditLog]:
    AuditLog = models.AuditLog
    filters = []
    if farm_id:
        filters.append(AuditLog.farm_id == farm_id)
    if user_id:
        filters.append(AuditLog.actor_user_id == user_id)
    if action_type:
        filters.append(AuditLog.action_type == action_type)
    if status:
        filters.append(AuditLog.status == status)
    if target_type:
        filters.append(AuditLog.target_type == target_type)
    if target_id:
        filters.append(AuditLog.target_id == target_id)
    if since is not None:
        filters.append(AuditLog.created_at >= since)
    return (
        db.query(AuditLog)
        .filter(*filters)
        .order_by(AuditLog.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
