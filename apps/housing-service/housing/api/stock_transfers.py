"""
Stock transfer endpoints.

The farm holding the stock sends and may cancel a transfer; the receiving
farm confirms delivery or rejects it.
"""
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import catalog as catalog_repo
from housing.db.repositories import transfers as transfer_repo
from housing.api.deps import get_current_user_context
from housing.api.permissions import can_access_farm, ensure_farm_access, resolve_farm_scope
from housing.services.stock_transfer_service import StockTransferError, StockTransferService

router = APIRouter(prefix="/stock-transfers", tags=["stock-transfers"])


def _transfer_or_404(db: Session, transfer_id: uuid.UUID, current_user):
    transfer = transfer_repo.get_stock_transfer(db, transfer_id)
    if not transfer:
        raise HTTPException(status_code=404, detail="Stock transfer not found")
    if not (can_access_farm(transfer.from_farm_id, current_user) or can_access_farm(transfer.to_farm_id, current_user)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this farm is not allowed")
    return transfer


def _run(action):
    try:
        return action()
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except StockTransferError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/", response_model=List[schemas.StockTransfer])
def list_stock_transfers(
    farm_id: Optional[uuid.UUID] = None,
    direction: Optional[Literal['incoming', 'outgoing']] = None,
    status_filter: Optional[Literal['pending', 'delivered', 'rejected', 'cancelled']] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    return StockTransferService(db).list_transfers(farm_id=scope, direction=direction, status=status_filter)


@router.get("/{transfer_id}", response_model=schemas.StockTransfer)
def get_stock_transfer(
    transfer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return _transfer_or_404(db, transfer_id, current_user)


@router.post("/", response_model=schemas.StockTransfer, status_code=status.HTTP_201_CREATED)
def create_stock_transfer(
    payload: schemas.StockTransferCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Send part of a stock line to another farm; the line's farm is the origin."""
    user, current_user = user_context
    source = catalog_repo.get_stock_item(db, payload.stock_item_id)
    if not source:
        raise HTTPException(status_code=404, detail="Stock item not found")
    ensure_farm_access(source.farm_id, current_user)
    return _run(lambda: StockTransferService(db).create_transfer(payload, user))


@router.post("/{transfer_id}/confirm", response_model=schemas.StockTransfer)
def confirm_stock_transfer(
    transfer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.to_farm_id, current_user)
    return _run(lambda: StockTransferService(db).confirm_transfer(transfer_id, user))


@router.post("/{transfer_id}/reject", response_model=schemas.StockTransfer)
def reject_stock_transfer(
    transfer_id: uuid.UUID,
    payload: schemas.TransferRejectRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.to_farm_id, current_user)
    return _run(lambda: StockTransferService(db).reject_transfer(transfer_id, user, payload.reason))


@router.post("/{transfer_id}/cancel", response_model=schemas.StockTransfer)
def cancel_stock_transfer(
    transfer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    transfer = _transfer_or_404(db, transfer_id, current_user)
    ensure_farm_access(transfer.from_farm_id, current_user)
    return _run(lambda: StockTransferService(db).cancel_transfer(transfer_id, user))
