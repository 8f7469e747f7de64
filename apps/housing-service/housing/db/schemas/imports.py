import uuid
from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .workers import AllocatedItem


class ImportedWorker(BaseModel):
    """Normalized worker built from one spreadsheet row."""

    name: str
    cin: str
    matricule: Optional[str] = None
    phone: str = ''
    gender: str
    age: int
    birth_year: int
    birth_date: Optional[date] = None
    farm_id: uuid.UUID
    room_number: Optional[str] = None
    sector: Optional[str] = None
    supervisor_id: Optional[uuid.UUID] = None
    entry_date: date
    status: str = 'actif'
    allocated_items: List[AllocatedItem] = []
    # Equipment columns as read: 'oui', 'non', '-' or the raw invalid value
    eponge: str = '-'
    lit: str = '-'
    placard: str = '-'


class ImportRowResult(BaseModel):
    row: int
    data: Optional[ImportedWorker] = None
    errors: List[str] = []
    warnings: List[str] = []
    is_valid: bool


class ImportSummary(BaseModel):
    total: int
    valid: int
    invalid: int


class ImportPreview(BaseModel):
    rows: List[ImportRowResult]
    summary: ImportSummary


class ImportCommitRequest(BaseModel):
    # Raw records keyed by spreadsheet header, re-validated before insert
    rows: List[Dict[str, Any]] = Field(min_length=1)


class ImportCommitResult(BaseModel):
    created: int
    skipped: int
    worker_ids: List[uuid.UUID] = []
