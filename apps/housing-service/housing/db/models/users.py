import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from housing.utils.role_permissions import role_can_administer
from .base import Base, now_utc


class User(Base):
    __tablename__ = 'users'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    # 'superadmin' | 'admin' | 'user'
    role = Column(String(20), nullable=False, default='user')
    farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='SET NULL'), nullable=True, index=True)
    phone = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    @property
    def is_superadmin(self) -> bool:
        return role_can_administer(self.role)
