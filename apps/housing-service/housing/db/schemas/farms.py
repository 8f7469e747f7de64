import uuid
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class FarmBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class FarmCreate(FarmBase):
    total_rooms: int = 0
    total_workers: int = 0


class FarmUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    total_rooms: Optional[int] = None
    total_workers: Optional[int] = None


class Farm(FarmBase):
    id: uuid.UUID
    total_rooms: int
    total_workers: int
    admins: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RoomBase(BaseModel):
    number: str = Field(min_length=1, max_length=20)
    gender: Literal['hommes', 'femmes']
    sector: Optional[str] = None
    capacity: int = Field(default=0, ge=0)


class RoomCreate(RoomBase):
    farm_id: Optional[uuid.UUID] = None


class RoomUpdate(BaseModel):
    number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    gender: Optional[Literal['hommes', 'femmes']] = None
    sector: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)


class Room(RoomBase):
    id: uuid.UUID
    farm_id: uuid.UUID
    occupant_count: int
    occupants: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
