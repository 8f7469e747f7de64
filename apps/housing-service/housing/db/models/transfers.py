import uuid
from sqlalchemy import Column, String, Text, Integer, Date, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class WorkerTransfer(Base):
    __tablename__ = 'worker_transfers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    from_farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    from_farm_name = Column(String(200), nullable=False)
    to_farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    to_farm_name = Column(String(200), nullable=False)
    # Entries: worker_id, name, matricule, gender, current_room, current_sector
    workers = Column(JSONB, nullable=False, default=list)
    # 'pending' | 'confirmed' | 'rejected' | 'cancelled'
    status = Column(String(20), nullable=False, default='pending')
    transferred_by = Column(UUID(as_uuid=True), nullable=True)
    transferred_by_name = Column(String(200), nullable=True)
    received_by = Column(UUID(as_uuid=True), nullable=True)
    received_by_name = Column(String(200), nullable=True)
    rejected_by = Column(UUID(as_uuid=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    # 'low' | 'medium' | 'high' | 'urgent'
    priority = Column(String(10), nullable=False, default='medium')
    tracking_number = Column(String(40), nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    # {worker_id: {room_number, sector}}
    room_assignments = Column(JSONB, nullable=True)
    transfer_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_worker_transfers_to_farm_id_status', 'to_farm_id', 'status'),
        Index('ix_worker_transfers_from_farm_id_status', 'from_farm_id', 'status'),
    )


class StockTransfer(Base):
    __tablename__ = 'stock_transfers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    from_farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    from_farm_name = Column(String(200), nullable=False)
    to_farm_id = Column(UUID(as_uuid=True), ForeignKey('farms.id', ondelete='CASCADE'), nullable=False)
    to_farm_name = Column(String(200), nullable=False)
    stock_item_id = Column(UUID(as_uuid=True), ForeignKey('stock_items.id', ondelete='SET NULL'), nullable=True)
    item = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit = Column(String(50), nullable=True)
    # 'pending' | 'delivered' | 'rejected' | 'cancelled'
    status = Column(String(20), nullable=False, default='pending')
    transferred_by = Column(UUID(as_uuid=True), nullable=True)
    transferred_by_name = Column(String(200), nullable=True)
    received_by = Column(UUID(as_uuid=True), nullable=True)
    received_by_name = Column(String(200), nullable=True)
    rejected_by = Column(UUID(as_uuid=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancelled_by = Column(UUID(as_uuid=True), nullable=True)
    priority = Column(String(10), nullable=False, default='medium')
    tracking_number = Column(String(40), nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_stock_transfers_to_farm_id_status', 'to_farm_id', 'status'),
        Index('ix_stock_transfers_from_farm_id_status', 'from_farm_id', 'status'),
    )
