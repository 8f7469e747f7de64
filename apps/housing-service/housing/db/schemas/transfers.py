import uuid
from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class TransferWorkerEntry(BaseModel):
    worker_id: str
    name: str
    matricule: Optional[str] = None
    gender: str
    current_room: Optional[str] = None
    current_sector: Optional[str] = None


class RoomAssignment(BaseModel):
    room_number: str
    sector: Optional[str] = None


class WorkerTransferCreate(BaseModel):
    to_farm_id: uuid.UUID
    worker_ids: List[uuid.UUID] = Field(min_length=1)
    priority: Literal['low', 'medium', 'high', 'urgent'] = 'medium'
    notes: Optional[str] = None
    transfer_date: Optional[date] = None


class TransferConfirmRequest(BaseModel):
    # worker id -> room chosen in the destination farm
    room_assignments: Dict[str, RoomAssignment]


class TransferRejectRequest(BaseModel):
    reason: Optional[str] = None


class WorkerTransfer(BaseModel):
    id: uuid.UUID
    from_farm_id: uuid.UUID
    from_farm_name: str
    to_farm_id: uuid.UUID
    to_farm_name: str
    workers: List[TransferWorkerEntry] = []
    status: str
    transferred_by: Optional[uuid.UUID] = None
    transferred_by_name: Optional[str] = None
    received_by: Optional[uuid.UUID] = None
    received_by_name: Optional[str] = None
    rejected_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    priority: str
    tracking_number: str
    notes: Optional[str] = None
    room_assignments: Optional[Dict[str, RoomAssignment]] = None
    transfer_date: Optional[date] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class StockTransferCreate(BaseModel):
    stock_item_id: uuid.UUID
    to_farm_id: uuid.UUID
    quantity: int = Field(gt=0)
    priority: Literal['low', 'medium', 'high', 'urgent'] = 'medium'
    notes: Optional[str] = None


class StockTransfer(BaseModel):
    id: uuid.UUID
    from_farm_id: uuid.UUID
    from_farm_name: str
    to_farm_id: uuid.UUID
    to_farm_name: str
    stock_item_id: Optional[uuid.UUID] = None
    item: str
    quantity: int
    unit: Optional[str] = None
    status: str
    transferred_by: Optional[uuid.UUID] = None
    transferred_by_name: Optional[str] = None
    received_by: Optional[uuid.UUID] = None
    received_by_name: Optional[str] = None
    rejected_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[uuid.UUID] = None
    priority: str
    tracking_number: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
