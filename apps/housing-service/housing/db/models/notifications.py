import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Notification(Base):
    __tablename__ = 'notifications'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipient_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    recipient_farm_id = Column(String(64), nullable=False, default='')
    event_type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    # 'unread' | 'read' | 'acknowledged'
    status = Column(String(20), nullable=False, default='unread')
    # 'low' | 'medium' | 'high' | 'urgent'
    priority = Column(String(10), nullable=False, default='medium')
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_by_name = Column(String(200), nullable=True)
    action_data = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_notifications_recipient_id_created_at', 'recipient_id', 'created_at'),
        Index('idx_notifications_recipient_id_status', 'recipient_id', 'status'),
        Index('idx_notifications_recipient_farm_id', 'recipient_farm_id'),
        Index('idx_notifications_event_type', 'event_type'),
    )
