"""Initial ledger schema: businesses, products, stock movements, sales, refunds, cash shifts

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. Businesses (trading locations inside a tenant)
2. Products with the cached current_stock counter
3. Cash shifts (one OPEN per business, partial unique index) and cash movements
4. Sales and sale items (point-in-time snapshots)
5. Refund adjustments and their lines
6. Append-only stock movements
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. BUSINESSES
    # ==========================================================================
    op.create_table('businesses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('businesses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_businesses_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_businesses_tenant_name', ['tenant_id', 'name'], unique=False)

    # ==========================================================================
    # 2. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opening_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'sku', name='uq_products_business_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_products_business_name', ['business_id', 'name'], unique=False)
        batch_op.create_index('ix_products_business_stock', ['business_id', 'current_stock'], unique=False)

    # ==========================================================================
    # 3. CASH SHIFTS AND CASH MOVEMENTS
    # ==========================================================================
    op.create_table('cash_shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('opening_float_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closing_cash_counted_cents', sa.Integer(), nullable=True),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by_user_id', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cash_shifts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cash_shifts_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_shifts_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_shifts_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_shifts_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_shifts_opened_at'), ['opened_at'], unique=False)
        batch_op.create_index('ix_cash_shifts_business_opened', ['business_id', 'opened_at'], unique=False)

    # At most one OPEN shift per business
    op.create_index(
        'uq_cash_shifts_business_open',
        'cash_shifts',
        ['business_id'],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table('cash_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount_cents > 0', name='ck_cash_movements_amount_positive'),
        sa.ForeignKeyConstraint(['shift_id'], ['cash_shifts.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cash_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cash_movements_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_movements_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_movements_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_movements_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_cash_movements_shift_kind', ['shift_id', 'kind'], unique=False)

    # ==========================================================================
    # 4. SALES AND SALE ITEMS
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('cash_shift_id', sa.Integer(), nullable=True),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sales_amount_cents', sa.Integer(), nullable=False),
        sa.Column('cost_amount_cents', sa.Integer(), nullable=False),
        sa.Column('profit_amount_cents', sa.Integer(), nullable=False),
        sa.Column('profit_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_refunded', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['cash_shift_id'], ['cash_shifts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'document_number', name='uq_sales_business_docnum'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_payment_method'), ['payment_method'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_cash_shift_id'), ['cash_shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_is_refunded'), ['is_refunded'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_sales_business_created', ['business_id', 'created_at'], unique=False)
        batch_op.create_index('ix_sales_shift_method', ['cash_shift_id', 'payment_method'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_sale_cents', sa.Integer(), nullable=False),
        sa.Column('cost_at_sale_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('refunded_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_sale_items_quantity_positive'),
        sa.CheckConstraint(
            'refunded_quantity >= 0 AND refunded_quantity <= quantity',
            name='ck_sale_items_refunded_range',
        ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 5. REFUND ADJUSTMENTS
    # ==========================================================================
    op.create_table('refund_adjustments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('cash_shift_id', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('cost_reversal_cents', sa.Integer(), nullable=False),
        sa.Column('profit_reversal_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['cash_shift_id'], ['cash_shifts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('refund_adjustments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_refund_adjustments_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_adjustments_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_adjustments_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_adjustments_cash_shift_id'), ['cash_shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_adjustments_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_refund_adjustments_business_created', ['business_id', 'created_at'], unique=False)
        batch_op.create_index('ix_refund_adjustments_shift_method', ['cash_shift_id', 'payment_method'], unique=False)

    # ==========================================================================
    # 6. STOCK MOVEMENTS (append-only)
    # ==========================================================================
    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('stock_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('refund_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['refund_id'], ['refund_adjustments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_movements_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_kind'), ['kind'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_refund_id'), ['refund_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_stock_movements_product_created', ['product_id', 'created_at'], unique=False)
        batch_op.create_index('ix_stock_movements_business_kind_created', ['business_id', 'kind', 'created_at'], unique=False)

    op.create_table('refund_adjustment_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('refund_id', sa.Integer(), nullable=False),
        sa.Column('sale_item_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('cost_cents', sa.Integer(), nullable=False),
        sa.Column('stock_movement_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['refund_id'], ['refund_adjustments.id'], ),
        sa.ForeignKeyConstraint(['sale_item_id'], ['sale_items.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['stock_movement_id'], ['stock_movements.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('refund_adjustment_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_refund_adjustment_lines_refund_id'), ['refund_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_adjustment_lines_sale_item_id'), ['sale_item_id'], unique=False)


def downgrade():
    op.drop_table('refund_adjustment_lines')
    op.drop_table('stock_movements')
    op.drop_table('refund_adjustments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('cash_movements')
    op.drop_index('uq_cash_shifts_business_open', table_name='cash_shifts')
    op.drop_table('cash_shifts')
    op.drop_table('products')
    op.drop_table('businesses')
