"""
Notification service: per-recipient in-app mailbox.

Centralizes creation (with retry on transient database errors), mailbox
queries and status changes, plus the event-specific helpers the worker
and transfer workflows use to reach farm admins and superadmins.
"""

import logging
import os
import time
import uuid
from datetime import datetime, UTC
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import and_, desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from housing.db import models
from housing.db.repositories import users as user_repo
from housing.utils.dates import to_date
from housing.utils.motifs import get_motif_label
from housing.utils.resilience import TRANSIENT_DB_ERRORS
from housing.utils.role_permissions import (
    FARM_ADMIN_ROLES,
    ROLE_SUPERADMIN,
    audience_roles,
    role_is_farm_admin,
)

logger = logging.getLogger(__name__)

# Event type constants
EVENT_WORKER_DUPLICATE = 'worker_duplicate'
EVENT_WORKER_EXIT_REQUEST = 'worker_exit_request'
EVENT_WORKER_EXIT_CONFIRMED = 'worker_exit_confirmed'
EVENT_WORKER_MOVED_FROM_FARM = 'worker_moved_from_farm'
EVENT_INCOMING_WORKER_TRANSFER = 'incoming_worker_transfer'
EVENT_WORKER_TRANSFER_CONFIRMED = 'worker_transfer_confirmed'
EVENT_WORKER_TRANSFER_REJECTED = 'worker_transfer_rejected'
EVENT_WORKER_TRANSFER_DELIVERED = 'worker_transfer_delivered'
EVENT_WORKER_REQUEST_REJECTED = 'worker_request_rejected'
EVENT_INCOMING_STOCK_TRANSFER = 'incoming_stock_transfer'
EVENT_STOCK_TRANSFER_DELIVERED = 'stock_transfer_delivered'
EVENT_STOCK_TRANSFER_REJECTED = 'stock_transfer_rejected'
EVENT_SECURITY_CODE_SHARED = 'security_code_shared'
EVENT_GENERAL = 'general'
EVENT_ANNOUNCEMENT = 'announcement'

EVENT_TYPES = frozenset({
    EVENT_WORKER_DUPLICATE,
    EVENT_WORKER_EXIT_REQUEST,
    EVENT_WORKER_EXIT_CONFIRMED,
    EVENT_WORKER_MOVED_FROM_FARM,
    EVENT_INCOMING_WORKER_TRANSFER,
    EVENT_WORKER_TRANSFER_CONFIRMED,
    EVENT_WORKER_TRANSFER_REJECTED,
    EVENT_WORKER_TRANSFER_DELIVERED,
    EVENT_WORKER_REQUEST_REJECTED,
    EVENT_INCOMING_STOCK_TRANSFER,
    EVENT_STOCK_TRANSFER_DELIVERED,
    EVENT_STOCK_TRANSFER_REJECTED,
    EVENT_SECURITY_CODE_SHARED,
    EVENT_GENERAL,
    EVENT_ANNOUNCEMENT,
})

STATUS_UNREAD = 'unread'
STATUS_READ = 'read'
STATUS_ACKNOWLEDGED = 'acknowledged'

# Recipient farm used for users that have no farm of their own
CENTRAL_FARM = 'central'


def _max_attempts() -> int:
    try:
        return max(1, int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "3")))
    except ValueError:
        return 3


def _retry_delay() -> float:
    try:
        return max(0.0, float(os.getenv("NOTIFICATION_RETRY_DELAY_SECONDS", "1.0")))
    except ValueError:
        return 1.0


def _fr_date(value) -> str:
    parsed = to_date(value)
    return parsed.strftime('%d/%m/%Y') if parsed else ''


def actor_display_name(user) -> str:
    if user is None:
        return 'Utilisateur'
    return user.display_name or user.email or 'Utilisateur'


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, sleep: Callable[[float], None] = time.sleep):
        self.db = db
        self._sleep = sleep

    # === Delivery ===

    def send_notification(
        self,
        recipient_id: uuid.UUID,
        event_type: str,
        title: str,
        message: str,
        *,
        recipient_farm_id: Optional[str] = None,
        priority: str = 'medium',
        created_by: Optional[uuid.UUID] = None,
        created_by_name: Optional[str] = None,
        action_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[models.Notification]:
        """
        Persist one notification for a recipient.

        Transient database errors are retried with a linear backoff
        (delay × attempt). Any other database error, or exhausting the
        attempts, is logged and yields None; delivery never raises.
        Callers must commit their own work first since a failed attempt
        rolls the session back.
        """
        attempts = _max_attempts()
        delay = _retry_delay()
        for attempt in range(1, attempts + 1):
            notification = models.Notification(
                recipient_id=recipient_id,
                recipient_farm_id=str(recipient_farm_id) if recipient_farm_id else '',
                event_type=event_type,
                title=title,
                message=message,
                status=STATUS_UNREAD,
                priority=priority,
                created_by=created_by,
                created_by_name=created_by_name,
                action_data=action_data,
            )
            try:
                self.db.add(notification)
                self.db.commit()
                self.db.refresh(notification)
                return notification
            except TRANSIENT_DB_ERRORS as exc:
                self.db.rollback()
                if attempt >= attempts:
                    logger.error("Notification %s to %s failed after %s attempts: %s", event_type, recipient_id, attempts, exc)
                    return None
                logger.warning("Notification %s to %s failed (attempt %s/%s), retrying: %s", event_type, recipient_id, attempt, attempts, exc)
                self._sleep(delay * attempt)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Notification %s to %s rejected, not retrying: %s", event_type, recipient_id, exc)
                return None
        return None

    def send_to_users(self, users: Iterable[models.User], event_type: str, title: str, message: str, **kwargs) -> int:
        """Send the same notification to several users; returns how many were stored."""
        farm_override = kwargs.pop('recipient_farm_id', None)
        sent = 0
        for user in users:
            farm = farm_override if farm_override is not None else (str(user.farm_id) if user.farm_id else CENTRAL_FARM)
            if self.send_notification(user.id, event_type, title, message, recipient_farm_id=farm, **kwargs) is not None:
                sent += 1
        return sent

    # === Mailbox ===

    def get_user_notifications(self, user_id: uuid.UUID, status: Optional[str] = None, limit: int = 50) -> List[models.Notification]:
        """Notifications of a recipient, newest first."""
        query = self.db.query(models.Notification).filter(models.Notification.recipient_id == user_id)
        if status:
            query = query.filter(models.Notification.status == status)
        return query.order_by(desc(models.Notification.created_at)).limit(limit).all()

    def get_total_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(models.Notification.recipient_id == user_id).count()

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(
            and_(
                models.Notification.recipient_id == user_id,
                models.Notification.status == STATUS_UNREAD,
            )
        ).count()

    def _owned(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.Notification]:
        return self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.recipient_id == user_id,
            )
        ).first()

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """False when the notification does not exist or belongs to someone else."""
        notification = self._owned(notification_id, user_id)
        if not notification:
            return False
        if notification.status == STATUS_UNREAD:
            notification.status = STATUS_READ
            notification.read_at = datetime.now(UTC)
            self.db.commit()
        return True

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        unread = self.get_user_notifications(user_id, status=STATUS_UNREAD, limit=10_000)
        now = datetime.now(UTC)
        for notification in unread:
            notification.status = STATUS_READ
            notification.read_at = now
        self.db.commit()
        return len(unread)

    def acknowledge_notification(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        notification = self._owned(notification_id, user_id)
        if not notification:
            return False
        now = datetime.now(UTC)
        notification.status = STATUS_ACKNOWLEDGED
        notification.acknowledged_at = now
        if notification.read_at is None:
            notification.read_at = now
        self.db.commit()
        return True

    def dismiss_notification(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        notification = self._owned(notification_id, user_id)
        if not notification:
            return False
        self.db.delete(notification)
        self.db.commit()
        return True

    def acknowledge_transfer_notifications(
        self, transfer_id: uuid.UUID, event_type: str = EVENT_INCOMING_WORKER_TRANSFER
    ) -> int:
        """Stage acknowledgement of every incoming-transfer notice for a transfer (no commit)."""
        now = datetime.now(UTC)
        notices = self.db.query(models.Notification).filter(
            models.Notification.event_type == event_type,
            models.Notification.status != STATUS_ACKNOWLEDGED,
            models.Notification.action_data['transfer_id'].as_string() == str(transfer_id),
        ).all()
        for notification in notices:
            notification.status = STATUS_ACKNOWLEDGED
            notification.acknowledged_at = now
            if notification.read_at is None:
                notification.read_at = now
        return len(notices)

    def delete_all_notifications_by_farm(self, farm_id: uuid.UUID) -> int:
        """Delete notifications addressed to a farm or raised on behalf of it."""
        fid = str(farm_id)
        # ->> on PostgreSQL, JSON_EXTRACT on SQLite
        doomed = self.db.query(models.Notification).filter(
            or_(
                models.Notification.recipient_farm_id == fid,
                models.Notification.action_data['requester_farm_id'].as_string() == fid,
            )
        ).all()
        for notification in doomed:
            self.db.delete(notification)
        self.db.commit()
        logger.info("Deleted %s notifications related to farm %s", len(doomed), fid)
        return len(doomed)

    # === Recipients ===

    def farm_admins(
        self,
        farm_id: uuid.UUID,
        *,
        include_superadmins: bool = False,
        exclude_user_id: Optional[uuid.UUID] = None,
    ) -> List[models.User]:
        """Admins of a farm: its `admins` list plus admin users assigned to it."""
        farm = self.db.query(models.Farm).filter(models.Farm.id == farm_id).first()
        listed = {str(a) for a in (farm.admins or [])} if farm else set()
        listed_ids = [uuid.UUID(a) for a in listed]
        candidates = self.db.query(models.User).filter(
            or_(
                models.User.farm_id == farm_id,
                models.User.role.in_(sorted(FARM_ADMIN_ROLES)),
                models.User.id.in_(listed_ids),
            )
        ).all()
        result = []
        for user in candidates:
            if exclude_user_id is not None and user.id == exclude_user_id:
                continue
            if user.role == ROLE_SUPERADMIN and not include_superadmins:
                continue
            if str(user.id) in listed or (user.farm_id == farm_id and role_is_farm_admin(user.role)):
                result.append(user)
        return result

    def superadmins(self, exclude_user_id: Optional[uuid.UUID] = None) -> List[models.User]:
        users = self.db.query(models.User).filter(models.User.role == ROLE_SUPERADMIN).all()
        return [u for u in users if u.id != exclude_user_id]

    # === Announcements ===

    def broadcast_announcement(
        self,
        sender: models.User,
        title: str,
        message: str,
        audience: str = 'all',
        priority: str = 'medium',
    ) -> int:
        """Send an `announcement` to every user of the audience except the sender."""
        recipients = [
            u for u in user_repo.get_users_by_roles(self.db, sorted(audience_roles(audience)))
            if u.id != sender.id
        ]
        sent = 0
        for user in recipients:
            stored = self.send_notification(
                user.id,
                EVENT_ANNOUNCEMENT,
                title,
                message,
                recipient_farm_id=str(user.farm_id) if user.farm_id else '',
                priority=priority,
                created_by=sender.id,
                created_by_name=actor_display_name(sender),
                action_data={'audience': audience},
            )
            if stored is not None:
                sent += 1
        logger.info("Announcement '%s' sent to %s/%s users (audience=%s)", title, sent, len(recipients), audience)
        return sent

    # === Workflow notifications ===

    def notify_worker_duplicate(self, worker: models.Worker, worker_farm: models.Farm, actor: models.User, actor_farm_name: str) -> int:
        """Warn the admins of the farm where a worker is still active about a registration attempt elsewhere."""
        recipients = self.farm_admins(worker_farm.id, exclude_user_id=actor.id)
        message = (
            f"L'ouvrier {worker.name} (CIN: {worker.cin}) est actuellement actif dans votre ferme "
            f"\"{worker_farm.name}\" depuis le {_fr_date(worker.entry_date)}. Quelqu'un de "
            f"\"{actor_farm_name}\" tente maintenant de l'enregistrer dans leur ferme. Veuillez vérifier "
            f"son statut et ajouter une date de sortie si l'ouvrier a quitté votre ferme."
        )
        return self.send_to_users(
            recipients,
            EVENT_WORKER_DUPLICATE,
            "🚨 Tentative d'enregistrement d'un ouvrier actif",
            message,
            recipient_farm_id=str(worker_farm.id),
            priority='urgent',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={
                'worker_id': str(worker.id),
                'worker_name': worker.name,
                'worker_cin': worker.cin,
                'requester_farm_id': str(actor.farm_id) if actor.farm_id else None,
                'requester_farm_name': actor_farm_name,
                'action_required': "Ajouter une date de sortie à l'ouvrier",
                'action_url': f"/workers?search={worker.cin}",
            },
        )

    def notify_worker_moved_from_farm(
        self,
        worker: models.Worker,
        previous_farm: models.Farm,
        new_farm: models.Farm,
        actor: models.User,
    ) -> int:
        recipients = self.farm_admins(previous_farm.id, exclude_user_id=actor.id)
        message = (
            f"L'ouvrier {worker.name} (CIN: {worker.cin}) qui était dans votre ferme \"{previous_farm.name}\" "
            f"a été enregistré dans la ferme \"{new_farm.name}\". Veuillez vérifier son statut et ajouter "
            f"une date de sortie si nécessaire."
        )
        return self.send_to_users(
            recipients,
            EVENT_WORKER_MOVED_FROM_FARM,
            '👤 Ouvrier transféré vers une autre ferme',
            message,
            recipient_farm_id=str(previous_farm.id),
            priority='high',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={
                'worker_id': str(worker.id),
                'worker_name': worker.name,
                'worker_cin': worker.cin,
                'requester_farm_id': str(new_farm.id),
                'requester_farm_name': new_farm.name,
                'action_required': 'Vérifier le statut de l\'ouvrier',
                'action_url': f"/workers?search={worker.cin}",
            },
        )

    def notify_worker_exit_confirmed(self, worker: models.Worker, worker_farm_name: str, actor: models.User) -> int:
        """Tell superadmins (other than the actor) that an exit date was recorded."""
        message = (
            f"Une date de sortie ({_fr_date(worker.exit_date)}) a été ajoutée pour l'ouvrier {worker.name} "
            f"({worker_farm_name}) par {actor_display_name(actor)}. Motif: {get_motif_label(worker.exit_reason)}"
        )
        return self.send_to_users(
            self.superadmins(exclude_user_id=actor.id),
            EVENT_WORKER_EXIT_CONFIRMED,
            'Date de sortie ajoutée',
            message,
            priority='high',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={
                'worker_id': str(worker.id),
                'worker_name': worker.name,
                'worker_cin': worker.cin,
                'action_required': 'Date de sortie ajoutée',
                'action_url': f"/workers/{worker.id}",
            },
        )

    def notify_incoming_transfer(self, transfer: models.WorkerTransfer, actor: models.User) -> int:
        count = len(transfer.workers or [])
        return self.send_to_users(
            self.farm_admins(transfer.to_farm_id, include_superadmins=True, exclude_user_id=actor.id),
            EVENT_INCOMING_WORKER_TRANSFER,
            "Transfert d'ouvriers entrant",
            f"Transfert de {count} ouvrier(s) de {transfer.from_farm_name} vers {transfer.to_farm_name}",
            recipient_farm_id=str(transfer.to_farm_id),
            priority=transfer.priority,
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={
                'transfer_id': str(transfer.id),
                'tracking_number': transfer.tracking_number,
                'from_farm_id': str(transfer.from_farm_id),
                'from_farm_name': transfer.from_farm_name,
                'worker_count': count,
                'requires_action': True,
            },
        )

    def notify_transfer_confirmed(self, transfer: models.WorkerTransfer, actor: models.User) -> int:
        count = len(transfer.workers or [])
        return self.send_to_users(
            self.farm_admins(transfer.from_farm_id, include_superadmins=True),
            EVENT_WORKER_TRANSFER_CONFIRMED,
            "Transfert d'ouvriers confirmé",
            f"Le transfert de {count} ouvrier(s) vers {transfer.to_farm_name} a été confirmé et accepté.",
            recipient_farm_id=str(transfer.from_farm_id),
            priority='medium',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={'transfer_id': str(transfer.id), 'tracking_number': transfer.tracking_number},
        )

    def notify_transfer_rejected(self, transfer: models.WorkerTransfer, actor: models.User) -> int:
        count = len(transfer.workers or [])
        reason = transfer.rejection_reason or 'Non spécifiée'
        return self.send_to_users(
            self.farm_admins(transfer.from_farm_id, include_superadmins=True),
            EVENT_WORKER_TRANSFER_REJECTED,
            "Transfert d'ouvriers rejeté",
            f"Le transfert de {count} ouvrier(s) vers {transfer.to_farm_name} a été rejeté. Raison: {reason}",
            recipient_farm_id=str(transfer.from_farm_id),
            priority='high',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={'transfer_id': str(transfer.id), 'tracking_number': transfer.tracking_number},
        )

    def notify_incoming_stock_transfer(self, transfer: models.StockTransfer, actor: models.User) -> int:
        amount = f"{transfer.quantity} {transfer.unit}" if transfer.unit else str(transfer.quantity)
        return self.send_to_users(
            self.farm_admins(transfer.to_farm_id, include_superadmins=True, exclude_user_id=actor.id),
            EVENT_INCOMING_STOCK_TRANSFER,
            "Transfert de stock entrant",
            f"Nouveau transfert entrant: {transfer.item} ({amount}) de {transfer.from_farm_name}",
            recipient_farm_id=str(transfer.to_farm_id),
            priority=transfer.priority,
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={
                'transfer_id': str(transfer.id),
                'tracking_number': transfer.tracking_number,
                'from_farm_id': str(transfer.from_farm_id),
                'from_farm_name': transfer.from_farm_name,
                'item': transfer.item,
                'quantity': transfer.quantity,
                'requires_action': True,
            },
        )

    def notify_stock_transfer_delivered(self, transfer: models.StockTransfer, actor: models.User) -> int:
        return self.send_to_users(
            self.farm_admins(transfer.from_farm_id, include_superadmins=True, exclude_user_id=actor.id),
            EVENT_STOCK_TRANSFER_DELIVERED,
            "Transfert de stock livré",
            f"{transfer.item} ({transfer.quantity}) a été reçu par {transfer.to_farm_name}.",
            recipient_farm_id=str(transfer.from_farm_id),
            priority='medium',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={'transfer_id': str(transfer.id), 'tracking_number': transfer.tracking_number},
        )

    def notify_stock_transfer_rejected(self, transfer: models.StockTransfer, actor: models.User) -> int:
        reason = transfer.rejection_reason or 'Non spécifiée'
        return self.send_to_users(
            self.farm_admins(transfer.from_farm_id, include_superadmins=True, exclude_user_id=actor.id),
            EVENT_STOCK_TRANSFER_REJECTED,
            "Transfert de stock rejeté",
            f"Le transfert de {transfer.item} vers {transfer.to_farm_name} a été rejeté. Raison: {reason}",
            recipient_farm_id=str(transfer.from_farm_id),
            priority='high',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={'transfer_id': str(transfer.id), 'tracking_number': transfer.tracking_number},
        )

    def notify_security_code_shared(self, admin: models.User, farm: models.Farm, code: models.SecurityCode, actor: models.User):
        return self.send_notification(
            admin.id,
            EVENT_SECURITY_CODE_SHARED,
            '🔐 Code de sécurité partagé',
            (
                f"Un code de sécurité pour la suppression groupée d'ouvriers a été partagé avec la ferme "
                f"{farm.name}. Code: {code.code}. Il expire le {code.expires_at.strftime('%d/%m/%Y %H:%M')}."
            ),
            recipient_farm_id=str(farm.id),
            priority='high',
            created_by=actor.id,
            created_by_name=actor_display_name(actor),
            action_data={'code': code.code, 'expires_at': code.expires_at.isoformat()},
        )
