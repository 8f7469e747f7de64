from typing import Dict, List
from pydantic import BaseModel


class FarmStats(BaseModel):
    total_workers: int
    total_men: int
    total_women: int
    total_rooms: int
    occupied_rooms: int
    total_places: int
    remaining_places: int
    average_age_men: int
    average_age_women: int
    exit_percentage: int
    most_common_exit_reason: str
    most_common_exit_reason_count: int
    average_stay_days: int
    average_active_days: int
    returning_workers: int
    average_return_count: float


class CompanyStats(BaseModel):
    name: str
    workers: int
    active_supervisors: int
    farms: List[str]


class AdminStats(BaseModel):
    users_by_role: Dict[str, int]
    total_farms: int
    total_rooms: int
    active_workers: int
    inactive_workers: int
    pending_transfers: int


class OccupancySyncResult(BaseModel):
    updated_rooms: int
