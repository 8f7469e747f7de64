import uuid
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class SupervisorBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: Optional[str] = None
    company: Optional[str] = None
    status: Literal['actif', 'inactif'] = 'actif'


class SupervisorCreate(SupervisorBase):
    pass


class SupervisorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = None
    company: Optional[str] = None
    status: Optional[Literal['actif', 'inactif']] = None


class Supervisor(SupervisorBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class StockItemBase(BaseModel):
    item: str = Field(min_length=1, max_length=200)
    quantity: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    min_threshold: Optional[int] = None


class StockItemCreate(StockItemBase):
    farm_id: Optional[uuid.UUID] = None


class StockItemUpdate(BaseModel):
    item: Optional[str] = Field(default=None, min_length=1, max_length=200)
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    min_threshold: Optional[int] = None


class StockItem(StockItemBase):
    id: uuid.UUID
    farm_id: uuid.UUID
    last_updated: datetime
    model_config = ConfigDict(from_attributes=True)


class ArticleNameBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    default_unit: Optional[str] = None
    is_active: bool = True


class ArticleNameCreate(ArticleNameBase):
    pass


class ArticleNameUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    default_unit: Optional[str] = None
    is_active: Optional[bool] = None


class ArticleName(ArticleNameBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
