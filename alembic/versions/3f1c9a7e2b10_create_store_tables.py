"""create_store_tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

order_status = postgresql.ENUM(
    'Placed', 'Processing', 'Shipped', 'Delivered', 'Cancelled',
    name='store_order_status_enum', create_type=False,
)
product_unit = postgresql.ENUM(
    'gm', 'kg', 'ml', 'l', 'pack', 'pc',
    name='store_product_unit_enum', create_type=False,
)
audit_entity_type = postgresql.ENUM(
    'product', 'order',
    name='store_audit_entity_type_enum', create_type=False,
)


def upgrade() -> None:
    """Upgrade schema - Add store tables."""
    bind = op.get_bind()
    # Enum types are shared between tables, so create them once up front
    for enum_type in (order_status, product_unit, audit_entity_type):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'store_users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), server_default='', nullable=False),
        sa.Column('contact', sa.String(length=50), server_default='', nullable=False),
        sa.Column('is_admin', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('default_address', JSON, nullable=True),
        sa.Column('reset_password_token', sa.String(length=64), nullable=True),
        sa.Column('reset_password_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_store_users_reset_password_token', 'store_users', ['reset_password_token'])

    op.create_table(
        'store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), server_default='', nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('unit', product_unit, server_default='gm', nullable=False),
        sa.Column('quantity_value', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('category', sa.String(length=100), server_default='General', nullable=False),
        sa.Column('keywords', JSON, nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('stock >= 0', name='product_stock_non_negative'),
        sa.CheckConstraint('price >= 0', name='product_price_non_negative'),
    )
    op.create_index('ix_store_products_category', 'store_products', ['category'])

    op.create_table(
        'store_cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['store_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'product_id', name='unique_cart_product'),
        sa.CheckConstraint('quantity > 0', name='cart_positive_quantity'),
    )
    op.create_index('ix_store_cart_items_user_id', 'store_cart_items', ['user_id'])

    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_address', JSON, nullable=False),
        sa.Column('status', order_status, server_default='Placed', nullable=False),
        sa.Column('user_reason', sa.Text(), server_default='', nullable=False),
        sa.Column('admin_reason', sa.Text(), server_default='', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['store_users.id']),
    )
    op.create_index('ix_store_orders_user_id', 'store_orders', ['user_id'])
    op.create_index('ix_store_orders_status', 'store_orders', ['status'])
    op.create_index('ix_store_orders_created_at', 'store_orders', ['created_at'])

    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='SET NULL'),
        sa.CheckConstraint('quantity > 0', name='order_item_positive_quantity'),
    )
    op.create_index('ix_store_order_items_product_id', 'store_order_items', ['product_id'])

    op.create_table(
        'store_order_status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('reason', sa.Text(), server_default='', nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by'], ['store_users.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'ix_store_order_status_history_order_id', 'store_order_status_history', ['order_id']
    )

    op.create_table(
        'store_audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_type', audit_entity_type, nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('old_value', JSON, nullable=True),
        sa.Column('new_value', JSON, nullable=True),
        sa.Column('performed_by', sa.String(length=255), nullable=False),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_audit_logs_entity', 'store_audit_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_store_audit_logs_performed_at', 'store_audit_logs', ['performed_at'])


def downgrade() -> None:
    """Downgrade schema - Drop store tables."""
    op.drop_table('store_audit_logs')
    op.drop_table('store_order_status_history')
    op.drop_table('store_order_items')
    op.drop_table('store_orders')
    op.drop_table('store_cart_items')
    op.drop_table('store_products')
    op.drop_table('store_users')

    bind = op.get_bind()
    for enum_type in (audit_entity_type, product_unit, order_status):
        enum_type.drop(bind, checkfirst=True)
