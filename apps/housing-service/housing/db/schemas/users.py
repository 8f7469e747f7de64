import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from housing.utils.role_permissions import RoleEnum


class UserBase(BaseModel):
    email: str
    display_name: str | None = None


class User(UserBase):
    id: uuid.UUID
    role: str
    farm_id: Optional[uuid.UUID] = None
    phone: Optional[str] = None
    is_superadmin: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserRoleUpdate(BaseModel):
    role: RoleEnum


class UserFarmUpdate(BaseModel):
    farm_id: Optional[uuid.UUID] = None


class UserProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    phone: Optional[str] = None
