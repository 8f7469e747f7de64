"""
Worker registration, conflict resolution and lifecycle.

A worker is identified by CIN across every farm. Registering a CIN that
already exists either fails (still active somewhere), reactivates the
record (inactive on the same farm) or moves it to the new farm (inactive
elsewhere), always preserving the work history.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from housing.audit import AuditAction, log as audit_log, log_worker
from housing.db import models, schemas
from housing.db.repositories import workers as worker_repo
from housing.services import occupancy_service
from housing.services.notification_service import NotificationService
from housing.services.security_code_service import SecurityCodeService
from housing.utils import farm_history
from housing.utils.dates import to_date, to_iso
from housing.utils.motifs import MOTIF_MUTATION, MOTIF_NONE, MOTIF_TRANSFER

logger = logging.getLogger(__name__)

DUPLICATE_NONE = 'no-duplicate'
DUPLICATE_SAME_FARM_ACTIVE = 'same-farm-active'
DUPLICATE_SAME_FARM_INACTIVE = 'same-farm-inactive'
DUPLICATE_CROSS_FARM_ACTIVE = 'cross-farm-active'
DUPLICATE_CROSS_FARM_INACTIVE = 'cross-farm-inactive'
DUPLICATE_NAME_SIMILARITY = 'name-similarity'

BLOCKING_DUPLICATES = frozenset({DUPLICATE_SAME_FARM_ACTIVE, DUPLICATE_CROSS_FARM_ACTIVE})


class WorkerConflict(Exception):
    """Registration stopped by a duplicate check result."""

    def __init__(self, check: schemas.DuplicateCheckResult):
        super().__init__(check.message or check.type)
        self.check = check


class WorkerValidationError(ValueError):
    pass


def compute_age(birth_date: date, today: date) -> int:
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def new_period(
    entry_date,
    farm_id,
    room_number: Optional[str] = None,
    sector: Optional[str] = None,
    exit_date=None,
    reason: Optional[str] = None,
    transfer_id=None,
    prefix: str = 'history',
) -> Dict[str, Any]:
    return {
        'id': f"{prefix}_{uuid.uuid4().hex}",
        'entry_date': to_iso(entry_date),
        'exit_date': to_iso(exit_date),
        'reason': reason,
        'room_number': room_number,
        'sector': sector,
        'farm_id': str(farm_id) if farm_id is not None else None,
        'transfer_id': str(transfer_id) if transfer_id is not None else None,
    }


def sort_history(history: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(history, key=lambda p: to_date(p.get('entry_date')) or date.min)


def history_with_main_period(worker: models.Worker, exit_date=None, reason: Optional[str] = None, prefix: str = 'main_period') -> List[Dict[str, Any]]:
    """Copy of the history including the worker's current period when it was never recorded."""
    history = [dict(p) for p in (worker.work_history or [])]
    main_entry = to_iso(worker.entry_date)
    if main_entry and not any(p.get('entry_date') == main_entry for p in history):
        history.append(new_period(
            worker.entry_date,
            worker.farm_id,
            room_number=worker.room_number,
            sector=worker.sector,
            exit_date=exit_date,
            reason=reason,
            prefix=prefix,
        ))
    return history


class WorkerService:
    """Service class for worker registration and lifecycle operations."""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    # === Lookups ===

    def _farms(self) -> List[models.Farm]:
        return self.db.query(models.Farm).all()

    def _farm_name(self, farm_id) -> str:
        return farm_history.get_farm_name(farm_id, self._farms())

    def _resolve_room(self, farm_id, room_number: Optional[str], gender: str) -> Optional[models.Room]:
        if not room_number:
            return None
        room = occupancy_service.find_room(self.db, farm_id, room_number)
        if room is None:
            raise WorkerValidationError(f'Chambre "{room_number}" non trouvée dans cette ferme')
        genre = occupancy_service.genre_for(gender)
        if room.gender != genre:
            raise WorkerValidationError(f'Chambre "{room_number}" est pour {room.gender}, pas pour {genre}')
        return room

    @staticmethod
    def _apply_identity(worker: models.Worker, data, today: date) -> None:
        """Copy personal fields, deriving age / birth year from whichever is provided."""
        for field in ('name', 'matricule', 'phone', 'gender', 'supervisor_id'):
            value = getattr(data, field, None)
            if value is not None:
                setattr(worker, field, value)
        if getattr(data, 'birth_date', None):
            worker.birth_date = data.birth_date
            worker.birth_year = data.birth_date.year
            worker.age = compute_age(data.birth_date, today)
        elif getattr(data, 'birth_year', None):
            worker.birth_year = data.birth_year
            worker.age = today.year - data.birth_year
        elif getattr(data, 'age', None):
            worker.age = data.age
            worker.birth_year = today.year - data.age

    # === Duplicate detection ===

    def check_cross_farm_duplicates(self, name: str, cin: str, farm_id) -> schemas.DuplicateCheckResult:
        """Classify a (name, CIN) about to be registered on `farm_id` against every existing worker."""
        matches = worker_repo.get_workers_by_cin(self.db, cin)
        # An active record wins over stale inactive ones
        matches.sort(key=lambda w: 0 if w.status == 'actif' else 1)
        existing = matches[0] if matches else None

        if existing is not None:
            same_farm = str(existing.farm_id) == str(farm_id)
            farm_name = self._farm_name(existing.farm_id)
            if existing.status == 'actif':
                if same_farm:
                    kind = DUPLICATE_SAME_FARM_ACTIVE
                    message = f"⚠️ Un ouvrier actif avec ce CIN ({cin}) existe déjà: {existing.name}"
                else:
                    kind = DUPLICATE_CROSS_FARM_ACTIVE
                    message = (
                        f"L'ouvrier {existing.name} (CIN: {existing.cin}) est actuellement actif dans la ferme "
                        f"\"{farm_name}\"."
                    )
            elif same_farm:
                kind = DUPLICATE_SAME_FARM_INACTIVE
                message = f"Un ouvrier inactif avec ce CIN existe déjà dans votre ferme: {existing.name}. Il peut être réactivé."
            else:
                kind = DUPLICATE_CROSS_FARM_INACTIVE
                message = (
                    f"Un ouvrier avec ce CIN existe dans une autre ferme ({farm_name}) mais est marqué comme inactif. "
                    f"Il peut être transféré dans votre ferme en préservant son historique."
                )
            return schemas.DuplicateCheckResult(
                type=kind,
                blocked=kind in BLOCKING_DUPLICATES,
                message=message,
                existing_worker=schemas.Worker.model_validate(existing),
                existing_farm_id=existing.farm_id,
                existing_farm_name=farm_name,
            )

        normalized = (name or '').strip().lower()
        if normalized:
            similar = (
                self.db.query(models.Worker)
                .filter(
                    func.lower(func.trim(models.Worker.name)) == normalized,
                    func.lower(models.Worker.cin) != (cin or '').strip().lower(),
                    models.Worker.status == 'actif',
                )
                .first()
            )
            if similar is not None:
                farm_name = self._farm_name(similar.farm_id)
                return schemas.DuplicateCheckResult(
                    type=DUPLICATE_NAME_SIMILARITY,
                    message=(
                        f"Un ouvrier avec un nom similaire existe déjà et est actif dans {farm_name}: "
                        f"{similar.name} (CIN: {similar.cin})"
                    ),
                    existing_worker=schemas.Worker.model_validate(similar),
                    existing_farm_id=similar.farm_id,
                    existing_farm_name=farm_name,
                )
        return schemas.DuplicateCheckResult(type=DUPLICATE_NONE)

    # === Registration ===

    def register_worker(self, data: schemas.WorkerCreate, farm_id: uuid.UUID, actor: models.User) -> models.Worker:
        """
        Create a worker, or resolve a CIN conflict the way the caller chose.

        Raises WorkerConflict when the duplicate check blocks registration or
        asks for a decision (`resolution`, `acknowledge_name_similarity`) the
        request did not carry.
        """
        check = self.check_cross_farm_duplicates(data.name, data.cin, farm_id)
        if check.type in BLOCKING_DUPLICATES:
            raise WorkerConflict(check)
        if check.type == DUPLICATE_SAME_FARM_INACTIVE:
            if data.resolution != 'reactivate':
                raise WorkerConflict(check)
            return self.reactivate_worker(worker_repo.get_worker(self.db, check.existing_worker.id), data, actor)
        if check.type == DUPLICATE_CROSS_FARM_INACTIVE:
            if data.resolution != 'transfer':
                raise WorkerConflict(check)
            return self.transfer_worker_to_new_farm(worker_repo.get_worker(self.db, check.existing_worker.id), data, farm_id, actor)
        if check.type == DUPLICATE_NAME_SIMILARITY and not data.acknowledge_name_similarity:
            raise WorkerConflict(check)
        return self.create_worker(data, farm_id, actor)

    def create_worker(self, data: schemas.WorkerCreate, farm_id: uuid.UUID, actor: models.User) -> models.Worker:
        today = models.today_utc()
        room = self._resolve_room(farm_id, data.room_number, data.gender)
        entry_date = data.entry_date or today
        sector = data.sector or (room.sector if room else None)
        worker = models.Worker(
            id=uuid.uuid4(),
            cin=data.cin.strip(),
            farm_id=farm_id,
            entry_date=entry_date,
            status='actif',
            room_number=data.room_number or None,
            sector=sector,
            return_count=0,
            total_work_days=0,
            allocated_items=[],
        )
        self._apply_identity(worker, data, today)
        worker.work_history = [new_period(entry_date, farm_id, data.room_number or None, sector)]
        self.db.add(worker)
        if room is not None:
            occupancy_service.add_worker_to_room(room, worker)
        self.db.commit()
        self.db.refresh(worker)
        log_worker(self.db, actor_user_id=actor.id, worker=worker, action=AuditAction.WORKER_CREATE)
        return worker

    def _restart(self, worker: models.Worker, data: schemas.WorkerCreate, farm_id, history: List[Dict[str, Any]], room, today: date) -> None:
        entry_date = data.entry_date or today
        sector = data.sector or (room.sector if room else None)
        history = sort_history(history)
        history.append(new_period(entry_date, farm_id, data.room_number or None, sector))
        worker.work_history = history
        self._apply_identity(worker, data, today)
        worker.farm_id = farm_id
        worker.status = 'actif'
        worker.entry_date = entry_date
        worker.exit_date = None
        worker.exit_reason = None
        worker.room_number = data.room_number or None
        worker.sector = sector
        worker.return_count = (worker.return_count or 0) + 1
        if room is not None:
            occupancy_service.add_worker_to_room(room, worker)

    def reactivate_worker(self, worker: models.Worker, data: schemas.WorkerCreate, actor: models.User) -> models.Worker:
        """Bring an inactive worker back on the same farm as a new history period."""
        today = models.today_utc()
        room = self._resolve_room(worker.farm_id, data.room_number, data.gender or worker.gender)
        history = history_with_main_period(worker, exit_date=worker.exit_date, reason=worker.exit_reason or MOTIF_NONE)
        if worker.status == 'inactif':
            history = [
                p if p.get('exit_date') else {
                    **p,
                    'exit_date': to_iso(worker.exit_date) or p.get('entry_date'),
                    'reason': p.get('reason') or worker.exit_reason or MOTIF_NONE,
                }
                for p in history
            ]
        self._restart(worker, data, worker.farm_id, history, room, today)
        self.db.commit()
        self.db.refresh(worker)
        log_worker(self.db, actor_user_id=actor.id, worker=worker, action=AuditAction.WORKER_REACTIVATE,
                   metadata={'return_count': worker.return_count})
        logger.info("Worker %s reactivated (return #%s)", worker.id, worker.return_count)
        return worker

    def transfer_worker_to_new_farm(self, worker: models.Worker, data: schemas.WorkerCreate, farm_id: uuid.UUID, actor: models.User) -> models.Worker:
        """Move an inactive worker registered elsewhere onto `farm_id`, keeping the history."""
        today = models.today_utc()
        new_entry = to_iso(data.entry_date or today)
        previous_farm_id = farm_history.get_previous_farm_id(worker, farm_id)
        origin_farm_id = worker.farm_id
        room = self._resolve_room(farm_id, data.room_number, data.gender or worker.gender)

        history = history_with_main_period(
            worker,
            exit_date=worker.exit_date or today,
            reason=worker.exit_reason or MOTIF_MUTATION,
            prefix='transfer_period',
        )
        history = [
            {**p, 'exit_date': p.get('entry_date'), 'reason': p.get('reason') or MOTIF_TRANSFER}
            if not p.get('exit_date') and p.get('entry_date') != new_entry else p
            for p in history
        ]
        self._restart(worker, data, farm_id, history, room, today)
        worker.transferred_from = origin_farm_id
        self.db.commit()
        self.db.refresh(worker)

        log_worker(self.db, actor_user_id=actor.id, worker=worker, action=AuditAction.WORKER_FARM_TRANSFER,
                   metadata={'from_farm_id': str(origin_farm_id)})
        if previous_farm_id:
            previous_farm = self.db.query(models.Farm).filter(models.Farm.id == uuid.UUID(previous_farm_id)).first()
            new_farm = self.db.query(models.Farm).filter(models.Farm.id == farm_id).first()
            if previous_farm is not None and new_farm is not None:
                self.notification_service.notify_worker_moved_from_farm(worker, previous_farm, new_farm, actor)
        logger.info("Worker %s moved from farm %s to %s", worker.id, origin_farm_id, farm_id)
        return worker

    def notify_conflict(self, worker: models.Worker, actor: models.User) -> int:
        """Manually alert the admins of the farm where the worker is active."""
        farm = self.db.query(models.Farm).filter(models.Farm.id == worker.farm_id).first()
        if farm is None:
            return 0
        actor_farm_name = self._farm_name(actor.farm_id) if actor.farm_id else 'une autre ferme'
        return self.notification_service.notify_worker_duplicate(worker, farm, actor, actor_farm_name)

    # === Updates ===

    def update_worker(self, worker: models.Worker, data: schemas.WorkerUpdate, actor: models.User) -> models.Worker:
        """
        Apply field changes. Recording an exit date deactivates the worker,
        frees their room and closes the open history period; changing the
        room of an active worker moves them between rooms.
        """
        today = models.today_utc()
        changes = data.model_dump(exclude_unset=True)
        exiting = changes.get('exit_date') is not None and to_date(changes['exit_date']) != to_date(worker.exit_date)
        new_gender = changes.get('gender') or worker.gender
        was_active = worker.status == 'actif'
        deactivating = exiting or (changes.get('status') == 'inactif' and was_active)
        old_room_number = worker.room_number

        room_changed = 'room_number' in changes and (changes['room_number'] or None) != old_room_number
        new_room = None
        if room_changed and not exiting:
            new_room = self._resolve_room(worker.farm_id, changes['room_number'], new_gender)
            if new_room is not None and not changes.get('sector'):
                changes['sector'] = new_room.sector
        elif 'gender' in changes and old_room_number and was_active and not exiting:
            self._resolve_room(worker.farm_id, old_room_number, new_gender)

        # An active worker leaves the old room exactly once, whether exiting or moving
        if was_active and old_room_number and (deactivating or room_changed):
            occupancy_service.remove_worker_from_room(self.db, worker, room_number=old_room_number)
        if new_room is not None and was_active and not deactivating:
            occupancy_service.add_worker_to_room(new_room, worker)

        identity = {k: changes.pop(k) for k in ('birth_date', 'birth_year', 'age') if k in changes}
        for key, value in changes.items():
            setattr(worker, key, value)
        if identity:
            self._apply_identity(worker, schemas.WorkerUpdate(**identity), today)
        if 'room_number' in changes:
            worker.room_number = changes['room_number'] or None

        if exiting:
            worker.status = 'inactif'
            worker.exit_reason = worker.exit_reason or MOTIF_NONE
            worker.work_history = [
                p if p.get('exit_date') else {**p, 'exit_date': to_iso(worker.exit_date), 'reason': worker.exit_reason}
                for p in (worker.work_history or [])
            ]

        self.db.commit()
        self.db.refresh(worker)
        log_worker(self.db, actor_user_id=actor.id, worker=worker,
                   action=AuditAction.WORKER_EXIT if exiting else AuditAction.WORKER_UPDATE,
                   metadata={'fields': sorted(data.model_dump(exclude_unset=True).keys())})
        if exiting:
            self.notification_service.notify_worker_exit_confirmed(worker, self._farm_name(worker.farm_id), actor)
        return worker

    # === Deletion ===

    def delete_worker(self, worker: models.Worker, actor: models.User) -> None:
        occupancy_service.remove_worker_from_room(self.db, worker)
        snapshot = {'name': worker.name, 'cin': worker.cin}
        worker_id, farm_id = worker.id, worker.farm_id
        self.db.delete(worker)
        self.db.commit()
        audit_log(self.db, action=AuditAction.WORKER_DELETE, target_type='worker', target_id=worker_id,
                  actor_user_id=actor.id, farm_id=farm_id, metadata=snapshot)

    def bulk_delete(
        self,
        worker_ids: Iterable[uuid.UUID],
        actor: models.User,
        security_code: Optional[str] = None,
        scope_farm_id: Optional[uuid.UUID] = None,
    ) -> schemas.BulkDeleteResult:
        """
        Delete several workers in one commit.

        Non-superadmins must present a security code with enough remaining
        deletions. Deleting every active worker of the scope also empties
        all of its rooms.
        """
        ids = list(dict.fromkeys(worker_ids))
        workers = worker_repo.get_workers_by_ids(self.db, ids)
        found = {w.id for w in workers}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise LookupError(f"Workers not found: {', '.join(missing)}")

        if not actor.is_superadmin:
            SecurityCodeService(self.db, self.notification_service).consume(security_code, workers, actor)

        scope = worker_repo.get_workers(self.db, farm_id=scope_farm_id, limit=None)
        delete_all = occupancy_service.is_delete_all_workers(ids, scope)

        for worker in workers:
            occupancy_service.remove_worker_from_room(self.db, worker)
            self.db.delete(worker)
        if delete_all:
            occupancy_service.clear_all_room_occupants(self.db, farm_id=scope_farm_id, commit=False)
        self.db.commit()

        audit_log(self.db, action=AuditAction.WORKER_BULK_DELETE, target_type='worker', actor_user_id=actor.id,
                  farm_id=scope_farm_id,
                  metadata={'count': len(workers), 'worker_ids': [str(w) for w in ids], 'cleared_all_rooms': delete_all})
        logger.info("Bulk deleted %s workers (all=%s) by %s", len(workers), delete_all, actor.email)
        return schemas.BulkDeleteResult(deleted=len(workers), cleared_all_rooms=delete_all)
