"""
Dashboard statistics computed from full snapshots of workers, rooms and
supervisors.

Rounding follows the dashboard's display rules: halves round up.
"""

import math
import uuid
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from housing.db import models, schemas
from housing.db.repositories import transfers as transfer_repo
from housing.services.occupancy_service import genre_for
from housing.utils.dates import days_between, to_date
from housing.utils.motifs import UNSPECIFIED_LABEL
from housing.utils.role_permissions import ALLOWED_ROLES


COMPANY_ALL = 'all'
COMPANY_NONE = 'none'
NO_EXIT_LABEL = 'Aucune sortie'

DATE_FILTERS = ('all', 'today', 'week', 'month', 'specific_month', 'specific_year', 'custom')


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _is_transfer_related(worker: models.Worker) -> bool:
    if worker.last_transfer_from or worker.transfer_id:
        return True
    if 'transfert' in (worker.exit_reason or '').lower():
        return True
    return any('transfert' in str(p.get('reason') or '').lower() for p in (worker.work_history or []))


def _active_days(worker: models.Worker, today: date) -> int:
    """Days worked across every history period; open periods run until today."""
    if worker.work_history:
        total = 0
        for period in worker.work_history:
            end = to_date(period.get('exit_date')) or today
            total += max(0, days_between(period.get('entry_date'), end))
        return total
    return max(0, days_between(worker.entry_date, worker.exit_date or today))


class DashboardService:
    """Service class for dashboard and admin statistics."""

    def __init__(self, db: Session):
        self.db = db

    # === Filters ===

    def _supervisors(self) -> Dict[uuid.UUID, models.Supervisor]:
        return {s.id: s for s in self.db.query(models.Supervisor).all()}

    @staticmethod
    def matches_company(worker: models.Worker, company: str, supervisors: Dict[uuid.UUID, models.Supervisor]) -> bool:
        """`all` keeps everyone, `none` keeps workers without a supervisor company, else exact company."""
        if not company or company == COMPANY_ALL:
            return True
        supervisor = supervisors.get(worker.supervisor_id)
        worker_company = supervisor.company if supervisor is not None else None
        if company == COMPANY_NONE:
            return not worker_company
        return worker_company == company

    @staticmethod
    def matches_entry_date(
        worker: models.Worker,
        date_filter: str,
        today: date,
        month: Optional[int] = None,
        year: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> bool:
        entry = to_date(worker.entry_date)
        if not date_filter or date_filter == 'all' or entry is None:
            return True
        if date_filter == 'today':
            return entry >= today
        if date_filter == 'week':
            return entry >= today - timedelta(days=7)
        if date_filter == 'month':
            return entry >= today - timedelta(days=30)
        if date_filter == 'specific_month':
            return not (month and year) or (entry.month == month and entry.year == year)
        if date_filter == 'specific_year':
            return not year or entry.year == year
        if date_filter == 'custom':
            return not (start and end) or start <= entry <= end
        raise ValueError(f"Unknown date filter: {date_filter}. Allowed: {list(DATE_FILTERS)}")

    # === Farm statistics ===

    def farm_stats(
        self,
        farm_id: Optional[uuid.UUID] = None,
        company: str = COMPANY_ALL,
        date_filter: str = 'all',
        month: Optional[int] = None,
        year: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> schemas.FarmStats:
        """Statistics for one farm, or every farm when `farm_id` is None."""
        today = today or models.today_utc()
        worker_query = self.db.query(models.Worker)
        room_query = self.db.query(models.Room)
        if farm_id is not None:
            worker_query = worker_query.filter(models.Worker.farm_id == farm_id)
            room_query = room_query.filter(models.Room.farm_id == farm_id)
        supervisors = self._supervisors()
        workers = [
            w for w in worker_query.all()
            if self.matches_company(w, company, supervisors)
            and self.matches_entry_date(w, date_filter, today, month, year, start, end)
        ]
        return self.compute_farm_stats(workers, room_query.all(), today)

    @staticmethod
    def compute_farm_stats(workers: List[models.Worker], rooms: List[models.Room], today: date) -> schemas.FarmStats:
        active = [w for w in workers if w.status == 'actif']
        exited = [w for w in workers if w.status == 'inactif' and w.exit_date]
        men = [w for w in active if w.gender == 'homme']
        women = [w for w in active if w.gender == 'femme']

        total_places = sum(r.capacity or 0 for r in rooms)

        occupancy = {(str(r.farm_id), str(r.number), r.gender): 0 for r in rooms}
        for worker in active:
            key = (str(worker.farm_id), str(worker.room_number), genre_for(worker.gender))
            if key in occupancy:
                occupancy[key] += 1

        def average_age(group):
            ages = [w.age or 0 for w in group]
            return int(round_half_up(sum(ages) / len(ages))) if ages else 0

        motif_counts = Counter(w.exit_reason or UNSPECIFIED_LABEL for w in exited)
        most_common = motif_counts.most_common(1)

        stays = [days_between(w.entry_date, w.exit_date) for w in exited if w.entry_date]
        active_days = [_active_days(w, today) for w in workers if w.entry_date or w.work_history]
        returning = [w for w in workers if (w.return_count or 0) > 0 and not _is_transfer_related(w)]

        return schemas.FarmStats(
            total_workers=len(active),
            total_men=len(men),
            total_women=len(women),
            total_rooms=len(rooms),
            occupied_rooms=sum(1 for count in occupancy.values() if count > 0),
            total_places=total_places,
            remaining_places=total_places - len(active),
            average_age_men=average_age(men),
            average_age_women=average_age(women),
            exit_percentage=int(round_half_up(len(exited) / len(workers) * 100)) if workers else 0,
            most_common_exit_reason=most_common[0][0] if most_common else NO_EXIT_LABEL,
            most_common_exit_reason_count=most_common[0][1] if most_common else 0,
            average_stay_days=int(round_half_up(sum(stays) / len(stays))) if stays else 0,
            average_active_days=int(round_half_up(sum(active_days) / len(active_days))) if active_days else 0,
            returning_workers=len(returning),
            average_return_count=(
                round_half_up(sum(w.return_count for w in returning) / len(returning), 1) if returning else 0
            ),
        )

    # === Companies ===

    def companies(self) -> List[str]:
        """Distinct, non-empty supervisor companies, sorted."""
        return sorted({s.company.strip() for s in self.db.query(models.Supervisor).all() if s.company and s.company.strip()})

    def company_stats(self, farm_id: Optional[uuid.UUID] = None) -> List[schemas.CompanyStats]:
        query = self.db.query(models.Worker)
        if farm_id is not None:
            query = query.filter(models.Worker.farm_id == farm_id)
        return self.compute_company_stats(query.all(), self.db.query(models.Supervisor).all())

    @staticmethod
    def compute_company_stats(workers: Iterable[models.Worker], supervisors: Iterable[models.Supervisor]) -> List[schemas.CompanyStats]:
        """Per company: workers supervised, active supervisors and distinct farms; busiest first."""
        supervisors = list(supervisors)
        by_id = {s.id: s for s in supervisors}
        stats: Dict[str, Dict] = {}
        for worker in workers:
            supervisor = by_id.get(worker.supervisor_id)
            if supervisor is None or not supervisor.company:
                continue
            entry = stats.setdefault(supervisor.company, {'workers': 0, 'active_supervisors': 0, 'farms': set()})
            entry['workers'] += 1
            entry['farms'].add(str(worker.farm_id))
        for supervisor in supervisors:
            if supervisor.status == 'actif' and supervisor.company:
                entry = stats.setdefault(supervisor.company, {'workers': 0, 'active_supervisors': 0, 'farms': set()})
                entry['active_supervisors'] += 1
        return [
            schemas.CompanyStats(name=name, workers=s['workers'], active_supervisors=s['active_supervisors'],
                                 farms=sorted(s['farms']))
            for name, s in sorted(stats.items(), key=lambda item: item[1]['workers'], reverse=True)
        ]

    # === Admin ===

    def admin_stats(self) -> schemas.AdminStats:
        role_counts = dict(self.db.query(models.User.role, func.count(models.User.id)).group_by(models.User.role).all())
        worker_counts = dict(self.db.query(models.Worker.status, func.count(models.Worker.id)).group_by(models.Worker.status).all())
        return schemas.AdminStats(
            users_by_role={role: role_counts.get(role, 0) for role in ALLOWED_ROLES},
            total_farms=self.db.query(models.Farm).count(),
            total_rooms=self.db.query(models.Room).count(),
            active_workers=worker_counts.get('actif', 0),
            inactive_workers=worker_counts.get('inactif', 0),
            pending_transfers=transfer_repo.count_pending(self.db),
        )
