import uuid
from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class WorkHistoryPeriod(BaseModel):
    id: str
    entry_date: date
    exit_date: Optional[date] = None
    reason: Optional[str] = None
    room_number: Optional[str] = None
    sector: Optional[str] = None
    farm_id: Optional[str] = None
    transfer_id: Optional[str] = None


class AllocatedItem(BaseModel):
    id: str
    item_name: str
    allocated_at: datetime
    allocated_by: str
    stock_item_id: Optional[str] = None
    farm_id: str
    status: Literal['allocated', 'returned'] = 'allocated'
    returned_at: Optional[datetime] = None


class WorkerBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    cin: str = Field(min_length=1, max_length=50)
    matricule: Optional[str] = None
    phone: Optional[str] = None
    gender: Literal['homme', 'femme']
    age: Optional[int] = None
    birth_year: Optional[int] = None
    birth_date: Optional[date] = None
    room_number: Optional[str] = None
    sector: Optional[str] = None
    supervisor_id: Optional[uuid.UUID] = None


class WorkerCreate(WorkerBase):
    farm_id: Optional[uuid.UUID] = None
    entry_date: Optional[date] = None
    # How to resolve a CIN conflict reported by the duplicate check
    resolution: Optional[Literal['reactivate', 'transfer']] = None
    acknowledge_name_similarity: bool = False


class WorkerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    matricule: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Literal['homme', 'femme']] = None
    age: Optional[int] = None
    birth_year: Optional[int] = None
    birth_date: Optional[date] = None
    room_number: Optional[str] = None
    sector: Optional[str] = None
    supervisor_id: Optional[uuid.UUID] = None
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    exit_reason: Optional[str] = None
    status: Optional[Literal['actif', 'inactif']] = None


class Worker(WorkerBase):
    id: uuid.UUID
    farm_id: uuid.UUID
    entry_date: date
    exit_date: Optional[date] = None
    exit_reason: Optional[str] = None
    status: str
    work_history: List[WorkHistoryPeriod] = []
    total_work_days: int = 0
    return_count: int = 0
    allocated_items: List[AllocatedItem] = []
    transfer_id: Optional[uuid.UUID] = None
    transferred_from: Optional[uuid.UUID] = None
    last_transfer_date: Optional[date] = None
    last_transfer_from: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DuplicateCheckRequest(BaseModel):
    name: str = ''
    cin: str
    farm_id: Optional[uuid.UUID] = None


class DuplicateCheckResult(BaseModel):
    type: Literal[
        'no-duplicate',
        'same-farm-active',
        'same-farm-inactive',
        'cross-farm-active',
        'cross-farm-inactive',
        'name-similarity',
    ]
    blocked: bool = False
    message: str = ''
    existing_worker: Optional[Worker] = None
    existing_farm_id: Optional[uuid.UUID] = None
    existing_farm_name: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    worker_ids: List[uuid.UUID] = Field(min_length=1)
    security_code: Optional[str] = None


class BulkDeleteResult(BaseModel):
    deleted: int
    cleared_all_rooms: bool = False
