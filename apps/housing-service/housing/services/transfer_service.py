"""
Worker transfer workflow between farms.

pending -> confirmed | rejected | cancelled. Confirmation moves every worker
of the transfer, updates both farms' rooms and acknowledges the incoming
notices in a single commit; the origin farm is told afterwards.
"""

import logging
import time
import uuid
from datetime import date, datetime, UTC
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from housing.audit import AuditAction, log as audit_log
from housing.db import models, schemas
from housing.db.repositories import transfers as transfer_repo
from housing.db.repositories import workers as worker_repo
from housing.services import occupancy_service
from housing.services.notification_service import NotificationService, actor_display_name
from housing.services.worker_registration_service import history_with_main_period, new_period, sort_history
from housing.utils.dates import to_iso
from housing.utils.motifs import MOTIF_TRANSFER

logger = logging.getLogger(__name__)

STATUS_PENDING = 'pending'
STATUS_CONFIRMED = 'confirmed'
STATUS_REJECTED = 'rejected'
STATUS_CANCELLED = 'cancelled'


class TransferError(Exception):
    """Transfer request that cannot be carried out in its current state."""


def sector_for_room(room: models.Room) -> str:
    return room.sector or room.gender


class TransferService:
    """Service class for the worker transfer workflow."""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    def _tracking_number(self) -> str:
        stamp = int(time.time() * 1000)
        while self.db.query(models.WorkerTransfer).filter(models.WorkerTransfer.tracking_number == f"WT-{stamp}").first():
            stamp += 1
        return f"WT-{stamp}"

    def _pending(self, transfer_id: uuid.UUID) -> models.WorkerTransfer:
        transfer = transfer_repo.get_transfer(self.db, transfer_id)
        if transfer is None:
            raise LookupError("Transfer not found")
        if transfer.status != STATUS_PENDING:
            raise TransferError(f"Transfer is {transfer.status}, only pending transfers can change")
        return transfer

    def create_transfer(self, data: schemas.WorkerTransferCreate, from_farm_id: uuid.UUID, actor: models.User) -> models.WorkerTransfer:
        if data.to_farm_id == from_farm_id:
            raise TransferError("Destination farm must differ from the origin farm")
        from_farm = self.db.query(models.Farm).filter(models.Farm.id == from_farm_id).first()
        to_farm = self.db.query(models.Farm).filter(models.Farm.id == data.to_farm_id).first()
        if from_farm is None or to_farm is None:
            raise LookupError("Farm not found")

        workers = worker_repo.get_workers_by_ids(self.db, data.worker_ids)
        if len(workers) != len(set(data.worker_ids)):
            raise LookupError("Some selected workers do not exist")
        for worker in workers:
            if worker.farm_id != from_farm_id:
                raise TransferError(f"Worker {worker.name} does not belong to {from_farm.name}")
            if worker.status != 'actif':
                raise TransferError(f"Worker {worker.name} is not active")

        transfer = models.WorkerTransfer(
            from_farm_id=from_farm.id,
            from_farm_name=from_farm.name,
            to_farm_id=to_farm.id,
            to_farm_name=to_farm.name,
            workers=[
                {
                    'worker_id': str(w.id),
                    'name': w.name,
                    'matricule': w.matricule,
                    'gender': w.gender,
                    'current_room': w.room_number,
                    'current_sector': w.sector,
                }
                for w in workers
            ],
            status=STATUS_PENDING,
            transferred_by=actor.id,
            transferred_by_name=actor_display_name(actor),
            priority=data.priority,
            tracking_number=self._tracking_number(),
            notes=data.notes,
            transfer_date=data.transfer_date,
        )
        self.db.add(transfer)
        self.db.commit()
        self.db.refresh(transfer)

        self.notification_service.notify_incoming_transfer(transfer, actor)
        audit_log(self.db, action=AuditAction.TRANSFER_CREATE, target_type='worker_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=from_farm.id,
                  metadata={'to_farm_id': str(to_farm.id), 'worker_count': len(workers),
                            'tracking_number': transfer.tracking_number})
        logger.info("Transfer %s created: %s worker(s) %s -> %s", transfer.tracking_number, len(workers), from_farm.name, to_farm.name)
        return transfer

    def _validate_assignments(
        self, transfer: models.WorkerTransfer, assignments: Dict[str, schemas.RoomAssignment]
    ) -> Dict[str, models.Room]:
        """Room of the destination farm for each worker; genders must match."""
        rooms: Dict[str, models.Room] = {}
        for entry in transfer.workers or []:
            worker_id = entry['worker_id']
            assignment = assignments.get(worker_id)
            if assignment is None or not assignment.room_number:
                raise TransferError(f"Missing room assignment for worker {entry.get('name')}")
            room = occupancy_service.find_room(self.db, transfer.to_farm_id, assignment.room_number)
            if room is None:
                raise TransferError(f"Room {assignment.room_number} not found in {transfer.to_farm_name}")
            if room.gender != occupancy_service.genre_for(entry.get('gender')):
                raise TransferError(f"Room {room.number} is reserved for {room.gender}")
            rooms[worker_id] = room
        return rooms

    def _movable_workers(self, transfer: models.WorkerTransfer) -> Dict[str, models.Worker]:
        """Workers of the transfer, each still active on the origin farm."""
        workers: Dict[str, models.Worker] = {}
        for entry in transfer.workers or []:
            worker = worker_repo.get_worker(self.db, uuid.UUID(entry['worker_id']))
            if worker is None:
                raise TransferError(f"Worker {entry.get('name')} no longer exists")
            if worker.farm_id != transfer.from_farm_id or worker.status != 'actif':
                raise TransferError(f"Worker {worker.name} is no longer active on {transfer.from_farm_name}")
            workers[entry['worker_id']] = worker
        return workers

    def confirm_transfer(
        self,
        transfer_id: uuid.UUID,
        assignments: Dict[str, schemas.RoomAssignment],
        actor: models.User,
        transfer_date: Optional[date] = None,
    ) -> models.WorkerTransfer:
        transfer = self._pending(transfer_id)
        rooms = self._validate_assignments(transfer, assignments)
        workers = self._movable_workers(transfer)
        today = transfer_date or models.today_utc()
        today_iso = to_iso(today)

        stored_assignments = {}
        for entry in transfer.workers or []:
            worker_id = entry['worker_id']
            room = rooms[worker_id]
            sector = assignments[worker_id].sector or sector_for_room(room)
            stored_assignments[worker_id] = {'room_number': room.number, 'sector': sector}

            worker = workers[worker_id]
            history = history_with_main_period(worker, exit_date=today, reason=MOTIF_TRANSFER, prefix='transfer_period')
            history = sort_history([
                {**p, 'exit_date': today_iso, 'reason': p.get('reason') or MOTIF_TRANSFER}
                if not p.get('exit_date') and p.get('entry_date') != today_iso else p
                for p in history
            ])
            history.append(new_period(
                today,
                transfer.to_farm_id,
                room_number=room.number,
                sector=sector,
                reason=f"Transfert depuis {transfer.from_farm_name}",
                transfer_id=transfer.id,
                prefix='transfer_entry',
            ))

            occupancy_service.remove_worker_from_room(self.db, worker, farm_id=transfer.from_farm_id)
            worker.work_history = history
            worker.farm_id = transfer.to_farm_id
            worker.room_number = room.number
            worker.sector = sector
            worker.entry_date = today
            worker.exit_date = None
            worker.exit_reason = None
            worker.status = 'actif'
            worker.return_count = (worker.return_count or 0) + 1
            worker.last_transfer_date = today
            worker.last_transfer_from = transfer.from_farm_id
            worker.transfer_id = transfer.id
            worker.allocated_items = []
            occupancy_service.add_worker_to_room(room, worker)

        transfer.status = STATUS_CONFIRMED
        transfer.confirmed_at = datetime.now(UTC)
        transfer.received_by = actor.id
        transfer.received_by_name = actor_display_name(actor)
        transfer.room_assignments = stored_assignments
        self.notification_service.acknowledge_transfer_notifications(transfer.id)
        self.db.commit()
        self.db.refresh(transfer)

        logger.info("Transfer %s confirmed by %s", transfer.tracking_number, actor.email)
        self.notification_service.notify_transfer_confirmed(transfer, actor)
        audit_log(self.db, action=AuditAction.TRANSFER_CONFIRM, target_type='worker_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.to_farm_id,
                  metadata={'worker_count': len(transfer.workers or [])})
        return transfer

    def reject_transfer(self, transfer_id: uuid.UUID, actor: models.User, reason: Optional[str] = None) -> models.WorkerTransfer:
        transfer = self._pending(transfer_id)
        transfer.status = STATUS_REJECTED
        transfer.rejected_at = datetime.now(UTC)
        transfer.rejected_by = actor.id
        transfer.rejection_reason = reason
        self.notification_service.acknowledge_transfer_notifications(transfer.id)
        self.db.commit()
        self.db.refresh(transfer)

        logger.info("Transfer %s rejected by %s", transfer.tracking_number, actor.email)
        self.notification_service.notify_transfer_rejected(transfer, actor)
        audit_log(self.db, action=AuditAction.TRANSFER_REJECT, target_type='worker_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.to_farm_id, reason=reason)
        return transfer

    def cancel_transfer(self, transfer_id: uuid.UUID, actor: models.User) -> models.WorkerTransfer:
        transfer = self._pending(transfer_id)
        transfer.status = STATUS_CANCELLED
        transfer.cancelled_at = datetime.now(UTC)
        self.notification_service.acknowledge_transfer_notifications(transfer.id)
        self.db.commit()
        self.db.refresh(transfer)
        audit_log(self.db, action=AuditAction.TRANSFER_CANCEL, target_type='worker_transfer', target_id=transfer.id,
                  actor_user_id=actor.id, farm_id=transfer.from_farm_id)
        return transfer

    def list_transfers(self, farm_id: Optional[uuid.UUID] = None, direction: Optional[str] = None,
                       status: Optional[str] = None) -> List[models.WorkerTransfer]:
        return transfer_repo.get_transfers(self.db, farm_id=farm_id, direction=direction, status=status)
