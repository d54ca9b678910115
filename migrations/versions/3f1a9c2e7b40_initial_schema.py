"""initial_schema

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-18 09:12:04.118530+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUSES = "'pending', 'approved', 'ordered', 'received', 'received-in-warehouse', 'canceled'"
ACTIONS = "'none', 'unapproval-request', 'cancellation-request'"


def upgrade() -> None:
    # 1. request_settings (key/value, holds the consecutive counter)
    op.create_table('request_settings',
    sa.Column('key', sa.String(length=100), nullable=False),
    sa.Column('value', sa.Text(), nullable=False),
    sa.PrimaryKeyConstraint('key')
    )

    # 2. purchase_requests
    op.create_table('purchase_requests',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('consecutive', sa.String(length=30), nullable=False),
    sa.Column('purchase_order', sa.String(length=100), nullable=True),
    sa.Column('request_date', sa.DateTime(), nullable=False),
    sa.Column('required_date', sa.Date(), nullable=False),
    sa.Column('arrival_date', sa.Date(), nullable=True),
    sa.Column('received_date', sa.DateTime(), nullable=True),
    sa.Column('client_id', sa.String(length=50), nullable=False),
    sa.Column('client_name', sa.String(length=255), nullable=False),
    sa.Column('client_tax_id', sa.String(length=50), nullable=True),
    sa.Column('item_id', sa.String(length=50), nullable=False),
    sa.Column('item_description', sa.Text(), nullable=False),
    sa.Column('quantity', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('delivered_quantity', sa.Numeric(precision=14, scale=2), nullable=True),
    sa.Column('inventory', sa.Numeric(precision=14, scale=2), nullable=True),
    sa.Column('unit_sale_price', sa.Numeric(precision=14, scale=2), nullable=True),
    sa.Column('priority', sa.String(length=20), nullable=False),
    sa.Column('purchase_type', sa.String(length=20), nullable=False),
    sa.Column('erp_order_number', sa.String(length=50), nullable=True),
    sa.Column('erp_order_line', sa.Integer(), nullable=True),
    sa.Column('manual_supplier', sa.String(length=255), nullable=True),
    sa.Column('route', sa.String(length=100), nullable=True),
    sa.Column('shipping_method', sa.String(length=100), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=30), nullable=False),
    sa.Column('pending_action', sa.String(length=30), nullable=False),
    sa.Column('pending_action_by', sa.String(length=255), nullable=True),
    sa.Column('previous_status', sa.String(length=30), nullable=True),
    sa.Column('reopened', sa.Boolean(), nullable=False),
    sa.Column('requested_by', sa.String(length=255), nullable=False),
    sa.Column('approved_by', sa.String(length=255), nullable=True),
    sa.Column('received_in_warehouse_by', sa.String(length=255), nullable=True),
    sa.Column('last_status_update_by', sa.String(length=255), nullable=True),
    sa.Column('last_status_update_notes', sa.Text(), nullable=True),
    sa.Column('has_been_modified', sa.Boolean(), nullable=False),
    sa.Column('last_modified_by', sa.String(length=255), nullable=True),
    sa.Column('last_modified_at', sa.DateTime(), nullable=True),
    sa.CheckConstraint('quantity > 0', name='chk_pr_quantity'),
    sa.CheckConstraint(f'status IN ({STATUSES})', name='chk_pr_status'),
    sa.CheckConstraint(f'pending_action IN ({ACTIONS})', name='chk_pr_pending_action'),
    sa.CheckConstraint(
        "pending_action = 'none' OR previous_status IS NOT NULL",
        name='chk_pr_pending_snapshot',
    ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('consecutive')
    )
    op.create_index('idx_pr_status', 'purchase_requests', ['status'], unique=False)
    op.create_index('idx_pr_request_date', 'purchase_requests', ['request_date'], unique=False)

    # 3. purchase_request_history (append-only ledger)
    op.create_table('purchase_request_history',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('timestamp', sa.DateTime(), nullable=False),
    sa.Column('status', sa.String(length=30), nullable=False),
    sa.Column('updated_by', sa.String(length=255), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(['request_id'], ['purchase_requests.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_pr_history_request', 'purchase_request_history',
        ['request_id', 'timestamp'], unique=False,
    )


def downgrade() -> None:
    op.drop_index('idx_pr_history_request', table_name='purchase_request_history')
    op.drop_table('purchase_request_history')
    op.drop_index('idx_pr_request_date', table_name='purchase_requests')
    op.drop_index('idx_pr_status', table_name='purchase_requests')
    op.drop_table('purchase_requests')
    op.drop_table('request_settings')
