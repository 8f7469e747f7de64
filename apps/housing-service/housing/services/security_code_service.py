"""
Security codes authorising bulk worker deletion.

Superadmins generate time-limited six digit codes with a deletion budget and
share them with a farm's admin; farm users spend them when bulk deleting.
"""

import logging
import random
import uuid
from datetime import datetime, timedelta, UTC
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from housing.audit import AuditAction, AuditStatus, log as audit_log
from housing.db import models
from housing.db.repositories import security_codes as code_repo
from housing.services.notification_service import NotificationService
from housing.utils.dates import add_months, as_utc
from housing.utils.role_permissions import ROLE_ADMIN

logger = logging.getLogger(__name__)

EXPIRATION_UNITS = ('hours', 'days', 'weeks', 'months')


class SecurityCodeError(Exception):
    """Invalid, expired or exhausted security code (message is user facing)."""


def compute_expiry(start: datetime, value: int, unit: str) -> datetime:
    if unit == 'hours':
        return start + timedelta(hours=value)
    if unit == 'days':
        return start + timedelta(days=value)
    if unit == 'weeks':
        return start + timedelta(days=7 * value)
    if unit == 'months':
        return add_months(start, value)
    raise ValueError(f"Unknown expiration unit: {unit}. Allowed: {list(EXPIRATION_UNITS)}")


def generate_code() -> str:
    return str(random.randint(100000, 999999))


class SecurityCodeService:
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    def generate(self, actor: models.User, expiration_value: int, expiration_unit: str, max_deletions: int = 1) -> models.SecurityCode:
        if expiration_value < 1:
            raise ValueError("expiration_value must be at least 1")
        if max_deletions < 1:
            raise ValueError("max_deletions must be at least 1")
        now = datetime.now(UTC)
        code = models.SecurityCode(
            code=generate_code(),
            expires_at=compute_expiry(now, expiration_value, expiration_unit),
            expiration_value=expiration_value,
            expiration_unit=expiration_unit,
            is_active=True,
            is_used=False,
            usage_count=0,
            shared_with=[],
            max_deletions=max_deletions,
            deletions_used=0,
            created_by=actor.id,
        )
        self.db.add(code)
        self.db.commit()
        self.db.refresh(code)
        audit_log(self.db, action=AuditAction.SECURITY_CODE_GENERATE, target_type='security_code',
                  target_id=code.id, actor_user_id=actor.id,
                  metadata={'expiration_value': expiration_value, 'expiration_unit': expiration_unit,
                            'max_deletions': max_deletions})
        return code

    def list_active(self, now: Optional[datetime] = None) -> List[models.SecurityCode]:
        """Active, unexpired, unused codes, newest first."""
        now = now or datetime.now(UTC)
        return [c for c in code_repo.get_security_codes(self.db, active_only=True) if as_utc(c.expires_at) > now]

    def share_with_farm(self, code_id: uuid.UUID, farm: models.Farm, actor: models.User) -> models.SecurityCode:
        code = code_repo.get_security_code(self.db, code_id)
        if code is None:
            raise LookupError("Security code not found")
        admin = (
            self.db.query(models.User)
            .filter(models.User.farm_id == farm.id, models.User.role == ROLE_ADMIN)
            .order_by(models.User.created_at)
            .first()
        )
        if admin is None:
            raise SecurityCodeError(f"Aucun administrateur trouvé pour la ferme {farm.name}")
        shared = list(code.shared_with or [])
        if str(farm.id) not in shared:
            shared.append(str(farm.id))
        code.shared_with = shared
        self.db.commit()
        self.db.refresh(code)
        self.notification_service.notify_security_code_shared(admin, farm, code, actor)
        audit_log(self.db, action=AuditAction.SECURITY_CODE_SHARE, target_type='security_code',
                  target_id=code.id, actor_user_id=actor.id, farm_id=farm.id,
                  metadata={'admin_id': str(admin.id)})
        return code

    def deactivate(self, code_id: uuid.UUID, actor: models.User) -> models.SecurityCode:
        code = code_repo.get_security_code(self.db, code_id)
        if code is None:
            raise LookupError("Security code not found")
        code.is_active = False
        self.db.commit()
        self.db.refresh(code)
        audit_log(self.db, action=AuditAction.SECURITY_CODE_DEACTIVATE, target_type='security_code',
                  target_id=code.id, actor_user_id=actor.id)
        return code

    def consume(self, raw_code: str, workers: Iterable[models.Worker], actor: models.User) -> models.SecurityCode:
        """
        Validate a code for deleting `workers` and record the usage.

        Stages the usage on the session without committing so it lands in
        the same commit as the deletion. Raises SecurityCodeError with the
        user facing reason when the code cannot be used.
        """
        workers = list(workers)
        value = (raw_code or '').strip()
        if not value:
            raise SecurityCodeError('Veuillez entrer un code de sécurité')
        code = code_repo.find_active_code(self.db, value)
        if code is None:
            raise SecurityCodeError('Code invalide')
        if as_utc(code.expires_at) <= datetime.now(UTC):
            raise SecurityCodeError('Code expiré')

        max_deletions = code.max_deletions or 1
        used = code.deletions_used or 0
        remaining = max_deletions - used
        selected = len(workers)
        if remaining <= 0:
            raise SecurityCodeError('Ce code a atteint sa limite de suppressions autorisées.')
        if selected > remaining:
            raise SecurityCodeError(
                f"Ce code ne peut supprimer que {remaining} ouvrier(s) supplémentaire(s). "
                f"Vous avez sélectionné {selected} ouvrier(s). Veuillez réduire votre sélection."
            )

        now = datetime.now(UTC)
        new_used = used + selected
        fully_used = new_used >= max_deletions
        code.usage_count = (code.usage_count or 0) + 1
        code.deletions_used = new_used
        code.is_used = fully_used
        code.is_active = not fully_used
        code.used_at = now
        code.used_by = actor.id

        farm_names = {str(f.id): f.name for f in self.db.query(models.Farm).all()}
        self.db.add(models.SecurityCodeUsage(
            security_code_id=code.id,
            code=code.code,
            used_by=actor.id,
            used_by_email=actor.email,
            deletions_count=selected,
            deleted_workers=[
                {
                    'worker_id': str(w.id),
                    'name': w.name,
                    'matricule': w.matricule or '',
                    'farm_id': str(w.farm_id),
                    'farm_name': farm_names.get(str(w.farm_id), 'Ferme inconnue'),
                }
                for w in workers
            ],
        ))
        logger.info("Security code %s used by %s for %s deletion(s) (%s/%s)", code.id, actor.email, selected, new_used, max_deletions)
        return code

    def record_failure(self, actor: models.User, reason: str) -> None:
        audit_log(self.db, action=AuditAction.SECURITY_CODE_USE, status=AuditStatus.FAILURE,
                  target_type='security_code', actor_user_id=actor.id, farm_id=actor.farm_id, reason=reason)
