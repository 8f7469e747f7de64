"""initial housing schema

Revision ID: 20250301_initial
Revises:
Create Date: 2025-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20250301_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'farms',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False, unique=True),
        sa.Column('total_rooms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_workers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('admins', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
    )

    op.create_table(
        'users',
        _uuid_pk(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='SET NULL'), nullable=True),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_farm_id'), 'users', ['farm_id'], unique=False)

    op.create_table(
        'supervisors',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('company', sa.String(200), nullable=True),
        sa.Column('status', sa.String(10), nullable=False, server_default='actif'),
        *_timestamps(),
    )

    op.create_table(
        'rooms',
        _uuid_pk(),
        sa.Column('number', sa.String(20), nullable=False),
        sa.Column('farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gender', sa.String(10), nullable=False),
        sa.Column('sector', sa.String(100), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('occupant_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('occupants', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
        sa.CheckConstraint("gender IN ('hommes', 'femmes')", name='ck_rooms_gender'),
    )
    op.create_index('ix_rooms_farm_id_number', 'rooms', ['farm_id', 'number'], unique=False)

    op.create_table(
        'workers',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('cin', sa.String(50), nullable=False),
        sa.Column('matricule', sa.String(50), nullable=True),
        sa.Column('farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('gender', sa.String(10), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('birth_year', sa.Integer(), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('room_number', sa.String(20), nullable=True),
        sa.Column('sector', sa.String(100), nullable=True),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('exit_date', sa.Date(), nullable=True),
        sa.Column('exit_reason', sa.String(100), nullable=True),
        sa.Column('status', sa.String(10), nullable=False, server_default='actif'),
        sa.Column('supervisor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('supervisors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('work_history', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('total_work_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('return_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('allocated_items', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('transfer_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('transferred_from', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_transfer_date', sa.Date(), nullable=True),
        sa.Column('last_transfer_from', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("gender IN ('homme', 'femme')", name='ck_workers_gender'),
        sa.CheckConstraint("status IN ('actif', 'inactif')", name='ck_workers_status'),
    )
    op.create_index('ix_workers_cin', 'workers', ['cin'], unique=False)
    op.create_index('ix_workers_farm_id_status', 'workers', ['farm_id', 'status'], unique=False)

    op.create_table(
        'stock_items',
        _uuid_pk(),
        sa.Column('farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('min_threshold', sa.Integer(), nullable=True),
        sa.Column('last_updated', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_stock_items_farm_id_item', 'stock_items', ['farm_id', 'item'], unique=False)

    op.create_table(
        'article_names',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False, unique=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_unit', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )

    op.create_table(
        'worker_transfers',
        _uuid_pk(),
        sa.Column('from_farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_farm_name', sa.String(200), nullable=False),
        sa.Column('to_farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('to_farm_name', sa.String(200), nullable=False),
        sa.Column('workers', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('transferred_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('transferred_by_name', sa.String(200), nullable=True),
        sa.Column('received_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('received_by_name', sa.String(200), nullable=True),
        sa.Column('rejected_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('tracking_number', sa.String(40), nullable=False, unique=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('room_assignments', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('transfer_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.Column('confirmed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('ix_worker_transfers_to_farm_id_status', 'worker_transfers', ['to_farm_id', 'status'], unique=False)
    op.create_index('ix_worker_transfers_from_farm_id_status', 'worker_transfers', ['from_farm_id', 'status'], unique=False)

    op.create_table(
        'notifications',
        _uuid_pk(),
        sa.Column('recipient_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipient_farm_id', sa.String(64), nullable=False, server_default=''),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='unread'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_by_name', sa.String(200), nullable=True),
        sa.Column('action_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('acknowledged_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_recipient_id_created_at', 'notifications', ['recipient_id', 'created_at'], unique=False)
    op.create_index('idx_notifications_recipient_id_status', 'notifications', ['recipient_id', 'status'], unique=False)
    op.create_index('idx_notifications_recipient_farm_id', 'notifications', ['recipient_farm_id'], unique=False)
    op.create_index('idx_notifications_event_type', 'notifications', ['event_type'], unique=False)

    op.create_table(
        'security_codes',
        _uuid_pk(),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('expiration_value', sa.Integer(), nullable=False),
        sa.Column('expiration_unit', sa.String(10), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shared_with', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('max_deletions', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('deletions_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('used_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f('ix_security_codes_code'), 'security_codes', ['code'], unique=False)

    op.create_table(
        'security_code_usages',
        _uuid_pk(),
        sa.Column('security_code_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('security_codes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('used_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('used_by_email', sa.String(), nullable=True),
        sa.Column('deletions_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted_workers', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_security_code_usages_security_code_id', 'security_code_usages', ['security_code_id'], unique=False)

    op.create_table(
        'audit_logs',
        _uuid_pk(),
        sa.Column('farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_audit_logs_farm_created', 'audit_logs', ['farm_id', 'created_at'], unique=False)
    op.create_index('ix_audit_logs_actor_created', 'audit_logs', ['actor_user_id', 'created_at'], unique=False)
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'], unique=False)
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('security_code_usages')
    op.drop_table('security_codes')
    op.drop_table('notifications')
    op.drop_table('worker_transfers')
    op.drop_table('article_names')
    op.drop_table('stock_items')
    op.drop_table('workers')
    op.drop_table('rooms')
    op.drop_table('supervisors')
    op.drop_index(op.f('ix_users_farm_id'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
    op.drop_table('farms')
