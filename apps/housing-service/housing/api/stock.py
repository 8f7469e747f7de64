"""
Stock endpoints: per-farm quantities of the items handed out to workers.
"""
from datetime import UTC, datetime
from io import BytesIO
from typing import List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import catalog as catalog_repo
from housing.api.deps import get_current_user_context
from housing.api.permissions import ensure_farm_access, require_farm_for_write, resolve_farm_scope
from housing.audit import AuditAction, log
from housing.services.import_service import XLSX_MEDIA_TYPE
from housing.services.stock_transfer_service import StockTransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["stock"])


@router.get("/", response_model=List[schemas.StockItem])
def list_stock(
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return catalog_repo.get_stock_items(db, farm_id=resolve_farm_scope(farm_id, current_user))


def _item_or_404(db: Session, stock_item_id: uuid.UUID, current_user):
    item = catalog_repo.get_stock_item(db, stock_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Stock item not found")
    ensure_farm_access(item.farm_id, current_user)
    return item


@router.post("/", response_model=schemas.StockItem, status_code=status.HTTP_201_CREATED)
def create_stock_item(
    payload: schemas.StockItemCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    farm_id = require_farm_for_write(payload.farm_id, current_user)
    if catalog_repo.find_stock_item(db, farm_id, payload.item):
        raise HTTPException(status_code=409, detail=f"Stock item {payload.item} already exists in this farm")
    item = catalog_repo.create_stock_item(db, payload, farm_id)
    log(db, action=AuditAction.STOCK_CREATE, target_type="stock_item", target_id=item.id,
        actor_user_id=user.id, farm_id=farm_id, metadata={"item": item.item, "quantity": item.quantity})
    return item


@router.put("/{stock_item_id}", response_model=schemas.StockItem)
def update_stock_item(
    stock_item_id: uuid.UUID,
    payload: schemas.StockItemUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    item = _item_or_404(db, stock_item_id, current_user)
    previous = item.quantity
    item = catalog_repo.update_stock_item(db, stock_item_id, payload)
    log(db, action=AuditAction.STOCK_UPDATE, target_type="stock_item", target_id=item.id,
        actor_user_id=user.id, farm_id=item.farm_id,
        metadata={"item": item.item, "old_quantity": previous, "new_quantity": item.quantity})
    return item


@router.delete("/{stock_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_stock_item(
    stock_item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    item = _item_or_404(db, stock_item_id, current_user)
    farm_id, name = item.farm_id, item.item
    catalog_repo.delete_stock_item(db, stock_item_id)
    log(db, action=AuditAction.STOCK_DELETE, target_type="stock_item", target_id=stock_item_id,
        actor_user_id=user.id, farm_id=farm_id, metadata={"item": name})


@router.get("/export")
def export_inventory(
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Inventory workbook: one sheet per farm (or the caller's farm) plus the transfers."""
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    content, count = StockTransferService(db).export_inventory(farm_id=scope)
    filename = f"inventaire_{datetime.now(UTC).date().isoformat()}.xlsx"
    logger.info("Exported %s stock items for farm %s", count, scope)
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
