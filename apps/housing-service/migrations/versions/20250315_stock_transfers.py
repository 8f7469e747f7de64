"""stock transfers

Revision ID: 20250315_stock_transfers
Revises: 20250301_initial
Create Date: 2025-03-15 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20250315_stock_transfers'
down_revision: Union[str, None] = '20250301_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'stock_transfers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('from_farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_farm_name', sa.String(200), nullable=False),
        sa.Column('to_farm_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('farms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('to_farm_name', sa.String(200), nullable=False),
        sa.Column('stock_item_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('stock_items.id', ondelete='SET NULL'), nullable=True),
        sa.Column('item', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('transferred_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('transferred_by_name', sa.String(200), nullable=True),
        sa.Column('received_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('received_by_name', sa.String(200), nullable=True),
        sa.Column('rejected_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('tracking_number', sa.String(40), nullable=False, unique=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('confirmed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('ix_stock_transfers_to_farm_id_status', 'stock_transfers', ['to_farm_id', 'status'], unique=False)
    op.create_index('ix_stock_transfers_from_farm_id_status', 'stock_transfers', ['from_farm_id', 'status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_stock_transfers_from_farm_id_status', table_name='stock_transfers')
    op.drop_index('ix_stock_transfers_to_farm_id_status', table_name='stock_transfers')
    op.drop_table('stock_transfers')
