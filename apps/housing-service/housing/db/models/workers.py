import uuid
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Worker(Base):
    __tablename__ = 'workers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    cin = Column(String(50), nullable=False)
    matricule = Column(String(50), nullable=True)
    farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    phone = Column(String(32), nullable=True)
    # 'homme' | 'femme'
    gender = Column(String(10), nullable=False)
    age = Column(Integer, nullable=True)
    birth_year = Column(Integer, nullable=True)
    birth_date = Column(Date, nullable=True)
    room_number = Column(String(20), nullable=True)
    sector = Column(String(100), nullable=True)
    entry_date = Column(Date, nullable=False)
    exit_date = Column(Date, nullable=True)
    exit_reason = Column(String(100), nullable=True)
    # 'actif' | 'inactif'
    status = Column(String(10), nullable=False, default='actif')
    supervisor_id = Column(UUID(as_uuid=True), ForeignKey('supervisors.id', ondelete='SET NULL'), nullable=True)
    # Periods as dicts: id, entry_date, exit_date, reason, room_number, sector, farm_id, transfer_id
    work_history = Column(JSONB, nullable=False, default=list)
    total_work_days = Column(Integer, nullable=False, default=0)
    return_count = Column(Integer, nullable=False, default=0)
    # Items as dicts: id, item_name, allocated_at, allocated_by, stock_item_id, farm_id, status, returned_at
    allocated_items = Column(JSONB, nullable=False, default=list)
    transfer_id = Column(UUID(as_uuid=True), nullable=True)
    transferred_from = Column(UUID(as_uuid=True), nullable=True)
    last_transfer_date = Column(Date, nullable=True)
    last_transfer_from = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_workers_cin', 'cin'),
        Index('ix_workers_farm_id_status', 'farm_id', 'status'),
    )
