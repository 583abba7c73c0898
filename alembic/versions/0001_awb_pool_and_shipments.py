"""awb pool and shipments

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('awb_pool',
    sa.Column('awb_number', sa.String(length=64), nullable=False),
    sa.Column('category', sa.String(length=20), nullable=False),
    sa.Column('assigned', sa.Boolean(), nullable=False),
    sa.Column('assigned_at', sa.String(length=40), nullable=False),
    sa.Column('released_at', sa.String(length=40), nullable=False),
    sa.Column('assigned_doc_id', sa.String(length=100), nullable=False),
    sa.Column('assigned_store_id', sa.String(length=100), nullable=False),
    sa.Column('order_id', sa.String(length=100), nullable=False),
    sa.Column('request_id', sa.String(length=100), nullable=False),
    sa.Column('released_by_doc_id', sa.String(length=100), nullable=False),
    sa.Column('created_at', sa.String(length=40), nullable=False),
    sa.Column('updated_at', sa.String(length=40), nullable=False),
    sa.Column('last_uploaded_at', sa.String(length=40), nullable=False),
    sa.Column('last_uploaded_by', sa.JSON(), nullable=True),
    sa.PrimaryKeyConstraint('awb_number')
    )
    op.create_index('ix_awb_pool_category_assigned', 'awb_pool', ['category', 'assigned'])
    op.create_index('ix_awb_pool_request_id', 'awb_pool', ['request_id'])

    op.create_table('orders',
    sa.Column('doc_id', sa.String(length=100), nullable=False),
    sa.Column('order_key', sa.String(length=255), nullable=False),
    sa.Column('order_id', sa.String(length=100), nullable=False),
    sa.Column('store_id', sa.String(length=100), nullable=False),
    sa.Column('data', sa.JSON(), nullable=False),
    sa.Column('shipment_status', sa.String(length=50), nullable=False),
    sa.Column('consignment_number', sa.String(length=64), nullable=False),
    sa.Column('courier_partner', sa.String(length=50), nullable=False),
    sa.Column('courier_type', sa.String(length=50), nullable=False),
    sa.Column('weight_kg', sa.Float(), nullable=True),
    sa.Column('shipping_date', sa.String(length=40), nullable=False),
    sa.Column('expected_delivery_date', sa.String(length=40), nullable=False),
    sa.Column('updated_at', sa.String(length=40), nullable=False),
    sa.Column('event', sa.String(length=50), nullable=False),
    sa.Column('updated_by', sa.JSON(), nullable=True),
    sa.PrimaryKeyConstraint('doc_id')
    )
    op.create_index('ix_orders_order_id', 'orders', ['order_id'])
    op.create_index('ix_orders_consignment_number', 'orders', ['consignment_number'])
    op.create_index('ix_orders_store_status', 'orders', ['store_id', 'shipment_status'])

    op.create_table('shipment_status_history',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('doc_id', sa.String(length=100), nullable=False),
    sa.Column('changed_at', sa.String(length=40), nullable=False),
    sa.Column('from_shipment_status', sa.String(length=50), nullable=False),
    sa.Column('to_shipment_status', sa.String(length=50), nullable=False),
    sa.Column('event', sa.String(length=50), nullable=False),
    sa.Column('updated_by', sa.JSON(), nullable=True),
    sa.ForeignKeyConstraint(['doc_id'], ['orders.doc_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_shipment_status_history_doc_id', 'shipment_status_history', ['doc_id'])


def downgrade() -> None:
    op.drop_index('ix_shipment_status_history_doc_id', table_name='shipment_status_history')
    op.drop_table('shipment_status_history')
    op.drop_index('ix_orders_store_status', table_name='orders')
    op.drop_index('ix_orders_consignment_number', table_name='orders')
    op.drop_index('ix_orders_order_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_awb_pool_request_id', table_name='awb_pool')
    op.drop_index('ix_awb_pool_category_assigned', table_name='awb_pool')
    op.drop_table('awb_pool')
