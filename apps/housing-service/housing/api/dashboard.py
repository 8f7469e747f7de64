"""
Dashboard statistics endpoints.
"""
from datetime import date
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.api.permissions import resolve_farm_scope
from housing.services.dashboard_service import COMPANY_ALL, DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

DateFilter = Literal['all', 'today', 'week', 'month', 'specific_month', 'specific_year', 'custom']


@router.get("/stats", response_model=schemas.FarmStats)
def farm_stats(
    farm_id: Optional[uuid.UUID] = None,
    company: str = COMPANY_ALL,
    date_filter: DateFilter = 'all',
    month: Optional[int] = None,
    year: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """
    Statistics for the caller's farm; superadmins may ask for one farm or all.

    - **company**: `all`, `none` (workers without a supervisor company) or a company name
    - **date_filter**: restrict workers by entry date
    """
    _user, current_user = user_context
    scope = resolve_farm_scope(farm_id, current_user)
    if month is not None and not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="month must be between 1 and 12")
    return DashboardService(db).farm_stats(
        farm_id=scope, company=company, date_filter=date_filter,
        month=month, year=year, start=start, end=end,
    )


@router.get("/companies", response_model=List[str])
def list_companies(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return DashboardService(db).companies()


@router.get("/company-stats", response_model=List[schemas.CompanyStats])
def company_stats(
    farm_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    return DashboardService(db).company_stats(resolve_farm_scope(farm_id, current_user))


@router.get("/admin-stats", response_model=schemas.AdminStats)
def admin_stats(
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    return DashboardService(db).admin_stats()
