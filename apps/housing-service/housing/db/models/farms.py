import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Farm(Base):
    __tablename__ = 'farms'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, unique=True)
    total_rooms = Column(Integer, nullable=False, default=0)
    total_workers = Column(Integer, nullable=False, default=0)
    # User ids (as strings) of the farm's administrators
    admins = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Room(Base):
    __tablename__ = 'rooms'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    number = Column(String(20), nullable=False)
    farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    # 'hommes' | 'femmes'
    gender = Column(String(10), nullable=False)
    sector = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=False, default=0)
    occupant_count = Column(Integer, nullable=False, default=0)
    # Worker ids (as strings)
    occupants = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_rooms_farm_id_number', 'farm_id', 'number'),
    )
