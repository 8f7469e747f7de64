"""
Room occupancy bookkeeping.

`occupants` (worker ids) and `occupant_count` are denormalized on each room.
The add/remove helpers only stage changes on the session; the sync and
clear tools commit their own batch.
"""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from housing.db import models
from housing.db.repositories import workers as worker_repo
from housing.utils.dates import to_date

logger = logging.getLogger(__name__)

GENDER_TO_GENRE = {'homme': 'hommes', 'femme': 'femmes'}
GENRE_SECTOR = {'hommes': 'Secteur Hommes', 'femmes': 'Secteur Femmes'}


class RoomNotFound(LookupError):
    pass


def genre_for(gender: Optional[str]) -> Optional[str]:
    """Room genre (`hommes`/`femmes`) matching a worker gender."""
    return GENDER_TO_GENRE.get((gender or '').lower())


def find_room(db: Session, farm_id, room_number) -> Optional[models.Room]:
    if farm_id is None or not room_number:
        return None
    return db.query(models.Room).filter(
        models.Room.farm_id == farm_id,
        models.Room.number == str(room_number),
    ).first()


def add_worker_to_room(room: models.Room, worker: models.Worker) -> None:
    occupants = list(room.occupants or [])
    wid = str(worker.id)
    if wid not in occupants:
        occupants.append(wid)
        room.occupants = occupants
        room.occupant_count = (room.occupant_count or 0) + 1


def remove_worker_from_room(db: Session, worker: models.Worker, farm_id=None, room_number=None) -> Optional[models.Room]:
    """Drop the worker (matched by id or CIN) from a room; defaults to the worker's current room."""
    farm_id = farm_id if farm_id is not None else worker.farm_id
    room_number = room_number if room_number is not None else worker.room_number
    room = find_room(db, farm_id, room_number)
    if room is None:
        return None
    keys = {str(worker.id), worker.cin}
    room.occupants = [o for o in (room.occupants or []) if o not in keys]
    room.occupant_count = max(0, (room.occupant_count or 0) - 1)
    return room


def _is_housed(worker: models.Worker, today: date) -> bool:
    exit_date = to_date(worker.exit_date)
    return exit_date is None or exit_date > today


def _expected_occupants(room: models.Room, workers: Iterable[models.Worker]) -> List[str]:
    valid = []
    for worker in workers:
        if genre_for(worker.gender) == room.gender:
            valid.append(str(worker.id))
        else:
            logger.warning("Gender mismatch: worker %s (%s) in %s room %s", worker.name, worker.gender, room.gender, room.number)
    return valid


def _apply(room: models.Room, expected: List[str]) -> bool:
    current = sorted(room.occupants or [])
    if room.occupant_count == len(expected) and current == sorted(expected):
        return False
    logger.info("Room %s (%s): %s -> %s occupants", room.number, room.farm_id, room.occupant_count, len(expected))
    room.occupants = expected
    room.occupant_count = len(expected)
    room.updated_at = models.now_utc()
    return True


def sync_room_occupancy(db: Session, today: Optional[date] = None) -> int:
    """Rebuild every room's occupants from housed workers; returns the number of rooms updated."""
    today = today or models.today_utc()
    grouped: Dict[Tuple[str, str], List[models.Worker]] = {}
    for worker in worker_repo.get_all_workers(db):
        if worker.room_number and _is_housed(worker, today):
            grouped.setdefault((str(worker.farm_id), str(worker.room_number)), []).append(worker)

    updated = 0
    for room in db.query(models.Room).all():
        expected = _expected_occupants(room, grouped.get((str(room.farm_id), str(room.number)), []))
        if _apply(room, expected):
            updated += 1
    if updated:
        db.commit()
    logger.info("Room occupancy sync: %s rooms updated", updated)
    return updated


def sync_single_room_occupancy(db: Session, room_id: uuid.UUID, today: Optional[date] = None) -> bool:
    """Sync one room; raises RoomNotFound for an unknown id. True when the room changed."""
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if room is None:
        raise RoomNotFound(f"Room with ID {room_id} not found")
    today = today or models.today_utc()
    workers = [
        w for w in db.query(models.Worker).filter(
            models.Worker.farm_id == room.farm_id,
            models.Worker.room_number == room.number,
        ).all()
        if _is_housed(w, today)
    ]
    changed = _apply(room, _expected_occupants(room, workers))
    if changed:
        db.commit()
    return changed


def clear_all_room_occupants(db: Session, farm_id: Optional[uuid.UUID] = None, commit: bool = True) -> int:
    """Empty every room (of one farm, or all) that still lists occupants; returns how many rooms changed."""
    query = db.query(models.Room)
    if farm_id is not None:
        query = query.filter(models.Room.farm_id == farm_id)
    updated = 0
    for room in query.all():
        if room.occupants:
            room.occupants = []
            room.occupant_count = 0
            room.updated_at = models.now_utc()
            updated += 1
    if updated and commit:
        db.commit()
    logger.info("Cleared occupants from %s rooms", updated)
    return updated


def is_delete_all_workers(selected_ids: Iterable, workers: Iterable) -> bool:
    """True when the selection is exactly the set of active workers (and there is at least one)."""
    selected = {str(s) for s in selected_ids}
    active = [w for w in workers if w.status == 'actif']
    if not active:
        return False
    return len(selected) == len(active) and all(str(w.id) in selected for w in active)
