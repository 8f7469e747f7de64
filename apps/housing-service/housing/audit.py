"""
Audit logging helpers and enums.

Every administrative mutation goes through `log()` so records share one
schema (action, target, actor, farm, metadata).
"""
from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from housing.db import schemas
from housing.db.repositories import audits as audit_repo


class AuditAction(str, Enum):
    # Farms / rooms
    FARM_CREATE = "farm_create"
    FARM_UPDATE = "farm_update"
    FARM_DELETE = "farm_delete"
    ROOM_CREATE = "room_create"
    ROOM_UPDATE = "room_update"
    ROOM_DELETE = "room_delete"
    # Workers
    WORKER_CREATE = "worker_create"
    WORKER_UPDATE = "worker_update"
    WORKER_DELETE = "worker_delete"
    WORKER_BULK_DELETE = "worker_bulk_delete"
    WORKER_REACTIVATE = "worker_reactivate"
    WORKER_FARM_TRANSFER = "worker_farm_transfer"
    WORKER_EXIT = "worker_exit"
    WORKER_IMPORT = "worker_import"
    # Transfers
    TRANSFER_CREATE = "transfer_create"
    TRANSFER_CONFIRM = "transfer_confirm"
    TRANSFER_REJECT = "transfer_reject"
    TRANSFER_CANCEL = "transfer_cancel"
    STOCK_TRANSFER_CREATE = "stock_transfer_create"
    STOCK_TRANSFER_CONFIRM = "stock_transfer_confirm"
    STOCK_TRANSFER_REJECT = "stock_transfer_reject"
    STOCK_TRANSFER_CANCEL = "stock_transfer_cancel"
    # Security codes
    SECURITY_CODE_GENERATE = "security_code_generate"
    SECURITY_CODE_SHARE = "security_code_share"
    SECURITY_CODE_DEACTIVATE = "security_code_deactivate"
    SECURITY_CODE_USE = "security_code_use"
    # Users
    USER_ROLE_CHANGE = "user_role_change"
    USER_FARM_ASSIGN = "user_farm_assign"
    USER_DELETE = "user_delete"
    USER_AUTO_ASSIGN = "user_auto_assign"
    # Catalog
    SUPERVISOR_CREATE = "supervisor_create"
    SUPERVISOR_UPDATE = "supervisor_update"
    SUPERVISOR_DELETE = "supervisor_delete"
    ARTICLE_CREATE = "article_create"
    ARTICLE_UPDATE = "article_update"
    ARTICLE_DELETE = "article_delete"
    STOCK_CREATE = "stock_create"
    STOCK_UPDATE = "stock_update"
    STOCK_DELETE = "stock_delete"
    # System tools
    OCCUPANCY_SYNC = "occupancy_sync"
    ROOMS_CLEAR = "rooms_clear"
    ANNOUNCEMENT_SEND = "announcement_send"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID],
    farm_id: Optional[uuid.UUID] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Persist one audit record and return it."""
    # Store plain strings, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(
        db,
        entry=audit_log,
        actor_user_id=actor_user_id,
        farm_id=farm_id,
    )


def log_worker(
    db: Session,
    *,
    actor_user_id: Optional[uuid.UUID],
    worker,
    action: AuditAction,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    metadata: Optional[Dict[str, Any]] = None,
):
    payload = {"name": worker.name, "cin": worker.cin}
    payload.update(metadata or {})
    return log(
        db,
        action=action,
        status=status,
        target_type="worker",
        target_id=worker.id,
        actor_user_id=actor_user_id,
        farm_id=worker.farm_id,
        metadata=payload,
    )


__all__ = ["AuditAction", "AuditStatus", "log", "log_worker"]
