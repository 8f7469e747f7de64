import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class SecurityCode(Base):
    """Single-use code authorising a bulk worker deletion."""

    __tablename__ = 'security_codes'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(6), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    expiration_value = Column(Integer, nullable=False)
    # 'hours' | 'days' | 'weeks' | 'months'
    expiration_unit = Column(String(10), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_used = Column(Boolean, nullable=False, default=False)
    usage_count = Column(Integer, nullable=False, default=0)
    # Farm ids (as strings) the code was shared with
    shared_with = Column(JSONB, nullable=False, default=list)
    max_deletions = Column(Integer, nullable=False, default=1)
    deletions_used = Column(Integer, nullable=False, default=0)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    used_by = Column(UUID(as_uuid=True), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class SecurityCodeUsage(Base):
    __tablename__ = 'security_code_usages'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    security_code_id = Column(UUID(as_uuid=True), ForeignKey('security_codes.id', ondelete='CASCADE'), nullable=False)
    code = Column(String(6), nullable=False)
    used_by = Column(UUID(as_uuid=True), nullable=True)
    used_by_email = Column(String, nullable=True)
    deletions_count = Column(Integer, nullable=False, default=0)
    # Entries: worker_id, name, matricule, farm_id, farm_name
    deleted_workers = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_security_code_usages_security_code_id', 'security_code_id'),
    )
