"""
Worker transfer endpoints.

The origin farm creates and may cancel a transfer; the destination farm
confirms it (choosing rooms) or rejects it.
"""
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import transfers as transfer_repo
from housing.api.deps import get_current_user_context
from housing.api.permissions import can_access_farm, ensure_farm_access, require_farm_for_write, resolve_farm_scope
from housing.services.transfer_service import TransferError, TransferService

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _transfer_or_404(db: Session, transfer_id: uuid.UUID, current_user):
    transfer = transfer_repo.get_transfer(db, transfer_id)
    if not transfer:
        raise HTTPException(status_code=404, detail="Transfer not found")
    if not (can_access_farm(transfer.from_farm_id, current_user) or can_access_farm(transfer.to_farm_id, current_user)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this farm is not allowed")
    return transfer


def _run(action):
    try:
        return action()
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except TransferError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/", response_model=List[schemas.WorkerTransfer])
def list_transfers(
    farm_id: Optional[uuid.UUID] = None,
    direction: Optional[Literal['incoming', 'outgoing']] = None,
    status_filter: Optional[Literal['pending', 'confirmed', 'rejected', 'cancelled']] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    return TransferService(db).list_transfers(farm_id=scope, direction=direction, status=status_filter)


@router.get("/{transfer_id}", response_model=schemas.WorkerTransfer)
def get_transfer(
    transfer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return _transfer_or_404(db, transfer_id, current_user)


@router.post("/", response_model=schemas.WorkerTransfer, status_code=status.HTTP_201_CREATED)
def create_transfer(
    payload: schemas.WorkerTransferCreate,
    from_farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    origin = require_farm_for_write(from_farm_id, current_user)
    return _run(lambda: TransferService(db).create_transfer(payload, origin, user))


@router.post("/{transfer_id}/confirm", response_model=schemas.WorkerTransfer)
def confirm_transfer(
    transfer_id: uuid.UUID,
    payload: schemas.TransferConfirmRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Accept the workers into the destination farm, one room per worker."""
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.to_farm_id, current_user)
    return _run(lambda: TransferService(db).confirm_transfer(transfer_id, payload.room_assignments, user))


@router.post("/{transfer_id}/reject", response_model=schemas.WorkerTransfer)
def reject_transfer(
    transfer_id: uuid.UUID,
    payload: schemas.TransferRejectRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.to_farm_id, current_user)
    return _run(lambda: TransferService(db).reject_transfer(transfer_id, user, payload.reason))


@router.post("/{transfer_id}/cancel", response_model=schemas.WorkerTransfer)
def cancel_transfer(
    transfer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.from_farm_id, current_user)
    return _run(lambda: TransferService(db).cancel_transfer(transfer_id, user))
