"""
Helpers answering which farm a worker belongs to, historically.

Work history periods are plain dicts (as stored in the JSON column) with
ISO dates and the farm id as a string.
"""

from typing import Any, Dict, Iterable, List, Optional

from housing.utils.dates import to_date

UNKNOWN_FARM_NAME = "Ferme inconnue"


def _sid(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _history_newest_first(worker) -> List[Dict[str, Any]]:
    history = list(worker.work_history or [])
    return sorted(history, key=lambda p: to_date(p.get("entry_date")) or to_date("0001-01-01"), reverse=True)


def get_previous_farm_id(worker, current_farm_id: Any = None) -> Optional[str]:
    """Most recent farm in the worker's history other than the current one."""
    if not worker.work_history:
        return None
    exclude = _sid(current_farm_id) or _sid(worker.farm_id)
    for period in _history_newest_first(worker):
        if _sid(period.get("farm_id")) != exclude:
            return _sid(period.get("farm_id"))
    if worker.farm_id is not None and _sid(worker.farm_id) != _sid(current_farm_id):
        return _sid(worker.farm_id)
    return None


def get_farm_admin_ids(farm_id: Any, farms: Iterable) -> List[str]:
    for farm in farms:
        if _sid(farm.id) == _sid(farm_id):
            return list(farm.admins or [])
    return []


def get_farm_name(farm_id: Any, farms: Iterable) -> str:
    for farm in farms:
        if _sid(farm.id) == _sid(farm_id):
            return farm.name or UNKNOWN_FARM_NAME
    return UNKNOWN_FARM_NAME


def has_multi_farm_history(worker) -> bool:
    if not worker.work_history:
        return False
    return len({_sid(p.get("farm_id")) for p in worker.work_history}) > 1


def get_most_recent_previous_farm_assignment(worker, current_farm_id: Any = None) -> Optional[Dict[str, Any]]:
    """`{farm_id, entry_date, exit_date}` of the latest period spent on another farm."""
    if not worker.work_history:
        return None
    exclude = _sid(current_farm_id) or _sid(worker.farm_id)
    for period in _history_newest_first(worker):
        if _sid(period.get("farm_id")) != exclude:
            return {
                "farm_id": _sid(period.get("farm_id")),
                "entry_date": period.get("entry_date"),
                "exit_date": period.get("exit_date"),
            }
    return None


def get_active_farm_conflict(worker, target_farm_id: Any) -> Optional[Dict[str, Any]]:
    """Conflict info when the worker is still active on a different farm."""
    if worker.status == "actif" and _sid(worker.farm_id) != _sid(target_farm_id):
        return {"farm_id": _sid(worker.farm_id), "is_active": True}
    return None
