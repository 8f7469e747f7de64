import uuid
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class SecurityCodeCreate(BaseModel):
    expiration_value: int = Field(ge=1)
    expiration_unit: Literal['hours', 'days', 'weeks', 'months'] = 'hours'
    max_deletions: int = Field(default=1, ge=1)


class SecurityCodeShare(BaseModel):
    farm_id: uuid.UUID


class SecurityCode(BaseModel):
    id: uuid.UUID
    code: str
    expires_at: datetime
    expiration_value: int
    expiration_unit: str
    is_active: bool
    is_used: bool
    usage_count: int
    shared_with: List[str] = []
    max_deletions: int
    deletions_used: int
    created_by: Optional[uuid.UUID] = None
    used_by: Optional[uuid.UUID] = None
    used_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
