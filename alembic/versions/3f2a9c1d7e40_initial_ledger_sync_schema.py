"""Initial ledger sync schema

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers used by Alembic
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = (
    'QUEUED', 'SENT_TO_1C', 'CONFIRMED', 'IN_PROGRESS', 'PARTIALLY_SHIPPED',
    'SHIPPED', 'DELIVERED', 'CANCELLED', 'REJECTED',
)
SYNC_ENTITIES = (
    'NOMENCLATURE', 'STOCK', 'COUNTERPARTIES', 'WAREHOUSES', 'AGREEMENTS',
    'PRODUCT_PRICES', 'SPECIAL_PRICES', 'ORDERS_EXPORT', 'ORDER_ACK', 'ORDER_STATUS',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def _id():
    return sa.Column('id', sa.Integer(), primary_key=True)


def _guid(nullable=False):
    return sa.Column('guid', sa.String(), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema."""
    # Catalog
    op.create_table(
        'product_groups',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('product_groups.id'), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'units',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('symbol', sa.String(), nullable=True),
    )
    op.create_table(
        'products',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('article', sa.String(), nullable=True),
        sa.Column('sku', sa.String(), nullable=True),
        sa.Column('is_weight', sa.Boolean(), nullable=False),
        sa.Column('is_service', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('product_groups.id'), nullable=True),
        sa.Column('base_unit_id', sa.Integer(), sa.ForeignKey('units.id'), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'product_packages',
        _id(), _guid(nullable=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('unit_id', sa.Integer(), sa.ForeignKey('units.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('multiplier', sa.Numeric(18, 6), sa.CheckConstraint('multiplier > 0'), nullable=False),
        sa.Column('barcode', sa.String(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
    )

    # Warehouses and stock
    op.create_table(
        'warehouses',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('is_pickup', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_table(
        'stock_balances',
        _id(),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(18, 4), nullable=False),
        sa.Column('reserved', sa.Numeric(18, 4), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('product_id', 'warehouse_id', name='uq_stock_product_warehouse'),
    )

    # Parties
    op.create_table(
        'counterparties',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('inn', sa.String(), nullable=True),
        sa.Column('kpp', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_table(
        'delivery_addresses',
        _id(), _guid(nullable=True),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('full_address', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('street', sa.String(), nullable=True),
        sa.Column('house', sa.String(), nullable=True),
        sa.Column('building', sa.String(), nullable=True),
        sa.Column('apartment', sa.String(), nullable=True),
        sa.Column('postcode', sa.String(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_table(
        'price_types',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_table(
        'client_contracts',
        _id(), _guid(),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=False),
        sa.Column('number', sa.String(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_to', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_table(
        'client_agreements',
        _id(), _guid(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=True),
        sa.Column('contract_id', sa.Integer(), sa.ForeignKey('client_contracts.id'), nullable=True),
        sa.Column('price_type_id', sa.Integer(), sa.ForeignKey('price_types.id'), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('currency', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    # Pricing
    price_columns = lambda: [  # noqa: E731
        sa.Column('price', sa.Numeric(18, 4), nullable=False),
        sa.Column('currency', sa.String(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('min_qty', sa.Numeric(18, 4), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]
    op.create_table(
        'special_prices',
        _id(), _guid(nullable=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=True),
        sa.Column('agreement_id', sa.Integer(), sa.ForeignKey('client_agreements.id'), nullable=True),
        sa.Column('price_type_id', sa.Integer(), sa.ForeignKey('price_types.id'), nullable=True),
        *price_columns(),
    )
    op.create_table(
        'product_prices',
        _id(), _guid(nullable=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('price_type_id', sa.Integer(), sa.ForeignKey('price_types.id'), nullable=True),
        *price_columns(),
    )

    # Orders
    op.create_table(
        'orders',
        _id(), _guid(),
        sa.Column('status', sa.Enum(*ORDER_STATUSES, name='order_status'), nullable=False),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=False),
        sa.Column('agreement_id', sa.Integer(), sa.ForeignKey('client_agreements.id'), nullable=True),
        sa.Column('contract_id', sa.Integer(), sa.ForeignKey('client_contracts.id'), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('delivery_address_id', sa.Integer(), sa.ForeignKey('delivery_addresses.id'), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('currency', sa.String(), nullable=True),
        sa.Column('queued_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_to_1c_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_status_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('export_attempts', sa.Integer(), nullable=False),
        sa.Column('last_export_error', sa.Text(), nullable=True),
        sa.Column('number_1c', sa.String(), nullable=True),
        sa.Column('date_1c', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'order_items',
        _id(),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('product_packages.id'), nullable=True),
        sa.Column('unit_id', sa.Integer(), sa.ForeignKey('units.id'), nullable=True),
        sa.Column('quantity', sa.Numeric(18, 4), nullable=False),
        sa.Column('quantity_base', sa.Numeric(18, 4), nullable=False),
        sa.Column('price', sa.Numeric(18, 4), nullable=False),
        sa.Column('line_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_percent', sa.Numeric(5, 2), nullable=True),
    )

    # Buyer profile
    op.create_table(
        'client_profiles',
        _id(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('counterparty_id', sa.Integer(), sa.ForeignKey('counterparties.id'), nullable=True),
        sa.Column('active_agreement_id', sa.Integer(), sa.ForeignKey('client_agreements.id'), nullable=True),
        sa.Column('active_contract_id', sa.Integer(), sa.ForeignKey('client_contracts.id'), nullable=True),
        sa.Column('active_warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=True),
        sa.Column('active_price_type_id', sa.Integer(), sa.ForeignKey('price_types.id'), nullable=True),
        sa.Column('active_delivery_address_id', sa.Integer(), sa.ForeignKey('delivery_addresses.id'), nullable=True),
        *_timestamps(),
    )

    # Sync journal
    op.create_table(
        'sync_runs',
        _id(),
        sa.Column('request_id', sa.String(64), nullable=False),
        sa.Column('entity', sa.Enum(*SYNC_ENTITIES, name='sync_entity'), nullable=False),
        sa.Column('direction', sa.Enum('IMPORT', 'EXPORT', name='sync_direction'), nullable=False),
        sa.Column('status', sa.Enum('STARTED', 'COMPLETED', 'PARTIAL', 'FAILED', name='sync_run_status'), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_count', sa.Integer(), nullable=False),
        sa.Column('success_count', sa.Integer(), nullable=False),
        sa.Column('error_count', sa.Integer(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_table(
        'sync_run_items',
        _id(),
        sa.Column('run_id', sa.Integer(), sa.ForeignKey('sync_runs.id'), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    # Lookup indexes
    for table in ('product_groups', 'units', 'products', 'product_packages', 'warehouses', 'counterparties',
                  'delivery_addresses', 'price_types', 'client_contracts', 'client_agreements',
                  'special_prices', 'product_prices', 'orders'):
        op.create_index(f'ix_{table}_guid', table, ['guid'], unique=True)
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_code', 'products', ['code'])
    op.create_index('ix_products_is_active', 'products', ['is_active'])
    op.create_index('ix_product_packages_product_id', 'product_packages', ['product_id'])
    op.create_index('ix_stock_balances_product_id', 'stock_balances', ['product_id'])
    op.create_index('ix_stock_balances_warehouse_id', 'stock_balances', ['warehouse_id'])
    op.create_index('ix_delivery_addresses_counterparty_id', 'delivery_addresses', ['counterparty_id'])
    op.create_index('ix_client_contracts_counterparty_id', 'client_contracts', ['counterparty_id'])
    op.create_index('ix_client_agreements_counterparty_id', 'client_agreements', ['counterparty_id'])
    op.create_index('ix_special_prices_product_id', 'special_prices', ['product_id'])
    op.create_index('ix_product_prices_product_id', 'product_prices', ['product_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_counterparty_id', 'orders', ['counterparty_id'])
    op.create_index('ix_orders_queued_at', 'orders', ['queued_at'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_client_profiles_user_id', 'client_profiles', ['user_id'], unique=True)
    op.create_index('ix_sync_runs_request_id', 'sync_runs', ['request_id'])
    op.create_index('ix_sync_runs_entity', 'sync_runs', ['entity'])
    op.create_index('ix_sync_runs_direction', 'sync_runs', ['direction'])
    op.create_index('ix_sync_runs_status', 'sync_runs', ['status'])
    op.create_index('ix_sync_runs_started_at', 'sync_runs', ['started_at'])
    op.create_index('ix_sync_run_items_run_id', 'sync_run_items', ['run_id'])


def downgrade() -> None:
    """Downgrade schema."""
    # Reverse dependency order; indexes go with their tables
    for table in ('sync_run_items', 'sync_runs', 'client_profiles', 'order_items', 'orders',
                  'product_prices', 'special_prices', 'client_agreements', 'client_contracts',
                  'price_types', 'delivery_addresses', 'counterparties', 'stock_balances',
                  'warehouses', 'product_packages', 'products', 'units', 'product_groups'):
        op.drop_table(table)
    for enum_name in ('order_status', 'sync_entity', 'sync_direction', 'sync_run_status'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
