"""
Stock transfers between farms and the inventory workbook.

pending -> delivered | rejected | cancelled. Delivery moves the quantity in
one commit: the destination line of the same item grows (or is created) and
the source line shrinks, disappearing once empty.
"""

import io
import logging
import re
import time
import uuid
from datetime import datetime, UTC
from typing import Iterable, List, Optional, Tuple

from openpyxl import Workbook
from sqlalchemy.orm import Session

from housing.audit import AuditAction, log as audit_log
from housing.db import models, schemas
from housing.db.repositories import catalog as catalog_repo
from housing.db.repositories import transfers as transfer_repo
from housing.services.notification_service import (
    EVENT_INCOMING_STOCK_TRANSFER,
    NotificationService,
    actor_display_name,
)

logger = logging.getLogger(__name__)

STATUS_PENDING = 'pending'
STATUS_DELIVERED = 'delivered'
STATUS_REJECTED = 'rejected'
STATUS_CANCELLED = 'cancelled'

STATUS_LABELS = {
    STATUS_PENDING: 'En attente',
    'confirmed': 'Confirmé',
    'in_transit': 'En transit',
    STATUS_DELIVERED: 'Livré',
    STATUS_REJECTED: 'Rejeté',
    STATUS_CANCELLED: 'Annulé',
}
PRIORITY_LABELS = {'low': 'Faible', 'medium': 'Moyen', 'high': 'Élevé', 'urgent': 'Urgent'}

INVENTORY_HEADERS = ['Article', 'Quantité', 'Unité', 'Seuil minimum', 'Dernière mise à jour']
TRANSFER_HEADERS = ['N° Suivi', 'Article', 'Quantité', 'De', 'Vers', 'Statut', 'Priorité', 'Date création', 'Notes']
SUMMARY_SHEET = 'Résumé Global'
TRANSFERS_SHEET = 'Transferts'
DEFAULT_SHEET = 'Inventaire'


class StockTransferError(Exception):
    """Stock transfer that cannot be carried out in its current state."""


def sheet_title(name: Optional[str]) -> str:
    """Excel sheet names: word characters and spaces, at most 31 characters."""
    cleaned = re.sub(r'[^\w ]', '', name or '').strip()[:31]
    return cleaned or DEFAULT_SHEET


def _fr_datetime(value: Optional[datetime]) -> str:
    return value.strftime('%d/%m/%Y %H:%M') if value else ''


class StockTransferService:
    """Service class for the stock transfer workflow."""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    def _tracking_number(self) -> str:
        stamp = int(time.time() * 1000)
        while self.db.query(models.StockTransfer).filter(models.StockTransfer.tracking_number == f"TRF-{stamp}").first():
            stamp += 1
        return f"TRF-{stamp}"

    def _pending(self, transfer_id: uuid.UUID) -> models.StockTransfer:
        transfer = transfer_repo.get_stock_transfer(self.db, transfer_id)
        if transfer is None:
            raise LookupError("Stock transfer not found")
        if transfer.status != STATUS_PENDING:
            raise StockTransferError(f"Stock transfer is {transfer.status}, only pending transfers can change")
        return transfer

    def create_transfer(self, data: schemas.StockTransferCreate, actor: models.User) -> models.StockTransfer:
        source = catalog_repo.get_stock_item(self.db, data.stock_item_id)
        if source is None:
            raise LookupError("Source stock item not found")
        if data.to_farm_id == source.farm_id:
            raise StockTransferError("Destination farm must differ from the origin farm")
        if source.quantity < data.quantity:
            raise StockTransferError(f"Insufficient stock for {source.item}: {source.quantity} available")
        from_farm = self.db.query(models.Farm).filter(models.Farm.id == source.farm_id).first()
        to_farm = self.db.query(models.Farm).filter(models.Farm.id == data.to_farm_id).first()
        if from_farm is None or to_farm is None:
            raise LookupError("Farm not found")

        transfer = models.StockTransfer(
            from_farm_id=from_farm.id,
            from_farm_name=from_farm.name,
            to_farm_id=to_farm.id,
            to_farm_name=to_farm.name,
            stock_item_id=source.id,
            item=source.item,
            quantity=data.quantity,
            unit=source.unit,
            status=STATUS_PENDING,
            transferred_by=actor.id,
            transferred_by_name=actor_display_name(actor),
            priority=data.priority,
            tracking_number=self._tracking_number(),
            notes=data.notes,
        )
        self.db.add(transfer)
        self.db.commit()
        self.db.refresh(transfer)

        self.notification_service.notify_incoming_stock_transfer(transfer, actor)
        audit_log(self.db, action=AuditAction.STOCK_TRANSFER_CREATE, target_type='stock_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=from_farm.id,
                  metadata={'to_farm_id': str(to_farm.id), 'item': transfer.item, 'quantity': transfer.quantity,
                            'tracking_number': transfer.tracking_number})
        logger.info("Stock transfer %s created: %s x%s %s -> %s",
                    transfer.tracking_number, transfer.item, transfer.quantity, from_farm.name, to_farm.name)
        return transfer

    def confirm_transfer(self, transfer_id: uuid.UUID, actor: models.User) -> models.StockTransfer:
        """Deliver the quantity to the destination farm."""
        transfer = self._pending(transfer_id)
        source = catalog_repo.get_stock_item(self.db, transfer.stock_item_id) if transfer.stock_item_id else None
        if source is None:
            raise StockTransferError(f"Source stock of {transfer.item} no longer exists")
        if source.quantity < transfer.quantity:
            raise StockTransferError(f"Insufficient stock for {transfer.item}: {source.quantity} available")

        now = datetime.now(UTC)
        destination = catalog_repo.find_stock_item(self.db, transfer.to_farm_id, transfer.item)
        if destination is None:
            destination = models.StockItem(
                farm_id=transfer.to_farm_id,
                item=transfer.item,
                quantity=0,
                unit=transfer.unit,
            )
            self.db.add(destination)
        destination.quantity = (destination.quantity or 0) + transfer.quantity
        destination.last_updated = now

        source.quantity -= transfer.quantity
        if source.quantity <= 0:
            transfer.stock_item_id = None
            self.db.delete(source)
        else:
            source.last_updated = now

        transfer.status = STATUS_DELIVERED
        transfer.confirmed_at = now
        transfer.delivered_at = now
        transfer.received_by = actor.id
        transfer.received_by_name = actor_display_name(actor)
        self.notification_service.acknowledge_transfer_notifications(transfer.id, EVENT_INCOMING_STOCK_TRANSFER)
        self.db.commit()
        self.db.refresh(transfer)

        logger.info("Stock transfer %s delivered to %s", transfer.tracking_number, transfer.to_farm_name)
        self.notification_service.notify_stock_transfer_delivered(transfer, actor)
        audit_log(self.db, action=AuditAction.STOCK_TRANSFER_CONFIRM, target_type='stock_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.to_farm_id,
                  metadata={'item': transfer.item, 'quantity': transfer.quantity})
        return transfer

    def reject_transfer(self, transfer_id: uuid.UUID, actor: models.User, reason: Optional[str] = None) -> models.StockTransfer:
        transfer = self._pending(transfer_id)
        transfer.status = STATUS_REJECTED
        transfer.rejected_at = datetime.now(UTC)
        transfer.rejected_by = actor.id
        transfer.rejection_reason = reason
        self.notification_service.acknowledge_transfer_notifications(transfer.id, EVENT_INCOMING_STOCK_TRANSFER)
        self.db.commit()
        self.db.refresh(transfer)

        logger.info("Stock transfer %s rejected by %s", transfer.tracking_number, actor.email)
        self.notification_service.notify_stock_transfer_rejected(transfer, actor)
        audit_log(self.db, action=AuditAction.STOCK_TRANSFER_REJECT, target_type='stock_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.to_farm_id, reason=reason)
        return transfer

    def cancel_transfer(self, transfer_id: uuid.UUID, actor: models.User) -> models.StockTransfer:
        transfer = self._pending(transfer_id)
        transfer.status = STATUS_CANCELLED
        transfer.cancelled_at = datetime.now(UTC)
        transfer.cancelled_by = actor.id
        self.notification_service.acknowledge_transfer_notifications(transfer.id, EVENT_INCOMING_STOCK_TRANSFER)
        self.db.commit()
        self.db.refresh(transfer)
        audit_log(self.db, action=AuditAction.STOCK_TRANSFER_CANCEL, target_type='stock_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.from_farm_id)
        return transfer

    def list_transfers(self, farm_id: Optional[uuid.UUID] = None, direction: Optional[str] = None,
                       status: Optional[str] = None) -> List[models.StockTransfer]:
        return transfer_repo.get_stock_transfers(self.db, farm_id=farm_id, direction=direction, status=status)

    # === Workbook ===

    def export_inventory(self, farm_id: Optional[uuid.UUID] = None) -> Tuple[bytes, int]:
        """
        Inventory as an .xlsx workbook; returns the file content and the item count.

        Without a farm every farm holding stock gets its own sheet, preceded
        by a global summary. A `Transferts` sheet follows when transfers exist.
        """
        items = catalog_repo.get_stock_items(self.db, farm_id=farm_id)
        farms = {f.id: f.name for f in self.db.query(models.Farm).all()}
        workbook = Workbook()
        first = workbook.active

        if farm_id is None:
            first.title = SUMMARY_SHEET
            first.append(['Ferme'] + INVENTORY_HEADERS)
            for item in items:
                first.append([farms.get(item.farm_id, '')] + self._item_row(item))
            for fid, name in sorted(farms.items(), key=lambda kv: kv[1]):
                farm_items = [i for i in items if i.farm_id == fid]
                if farm_items:
                    self._inventory_sheet(workbook.create_sheet(sheet_title(name)), farm_items)
        else:
            first.title = sheet_title(farms.get(farm_id))
            self._inventory_sheet(first, items)

        transfers = self.list_transfers(farm_id=farm_id)
        if transfers:
            self._transfer_sheet(workbook.create_sheet(TRANSFERS_SHEET), transfers)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue(), len(items)

    @staticmethod
    def _item_row(item: models.StockItem) -> list:
        return [item.item, item.quantity, item.unit or '', item.min_threshold, _fr_datetime(item.last_updated)]

    def _inventory_sheet(self, sheet, items: Iterable[models.StockItem]) -> None:
        sheet.append(INVENTORY_HEADERS)
        for item in items:
            sheet.append(self._item_row(item))

    @staticmethod
    def _transfer_sheet(sheet, transfers: Iterable[models.StockTransfer]) -> None:
        sheet.append(TRANSFER_HEADERS)
        for t in transfers:
            sheet.append([
                t.tracking_number,
                t.item,
                f"{t.quantity} {t.unit}" if t.unit else t.quantity,
                t.from_farm_name,
                t.to_farm_name,
                STATUS_LABELS.get(t.status, t.status),
                PRIORITY_LABELS.get(t.priority, t.priority),
                _fr_datetime(t.created_at),
                t.notes or '',
            ])
