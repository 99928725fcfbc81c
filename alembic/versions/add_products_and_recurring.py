"""add product catalog and recurring invoice templates

Revision ID: catalog_recurring_002
Revises: email_retry_001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'catalog_recurring_002'
down_revision: Union[str, None] = 'email_retry_001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LINE_ITEM_TABLES = ('invoice_line_items', 'estimate_line_items', 'recurring_invoice_line_items')

discount_type = sa.Enum('PERCENTAGE', 'FIXED', name='discounttype', create_type=False)
frequency = sa.Enum('WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY', name='recurringfrequency')
generation_status = sa.Enum('SUCCESS', 'FAILED', name='generationstatus')


def timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('taxable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index('ix_products_owner_id', 'products', ['owner_id'])
    op.create_index('ix_products_sku', 'products', ['sku'])

    op.create_table(
        'recurring_invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('frequency', frequency, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('next_invoice_date', sa.Date(), nullable=False),
        sa.Column('due_in_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('payment_terms', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('discount_type', discount_type, nullable=False, server_default='PERCENTAGE'),
        sa.Column('discount_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_recurring_invoices_owner_id', 'recurring_invoices', ['owner_id'])
    op.create_index('ix_recurring_invoices_client_id', 'recurring_invoices', ['client_id'])
    # Scanned by the generation job
    op.create_index('ix_recurring_invoices_next_invoice_date', 'recurring_invoices', ['next_invoice_date'])
    op.create_index('ix_recurring_invoices_is_active', 'recurring_invoices', ['is_active'])

    op.create_table(
        'recurring_invoice_line_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'recurring_invoice_id',
            sa.Integer(),
            sa.ForeignKey('recurring_invoices.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Numeric(10, 2), nullable=False, server_default='1'),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index(
        'ix_recurring_invoice_line_items_recurring_invoice_id',
        'recurring_invoice_line_items',
        ['recurring_invoice_id'],
    )

    op.create_table(
        'recurring_generation_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'recurring_invoice_id',
            sa.Integer(),
            sa.ForeignKey('recurring_invoices.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('invoice_id', sa.Integer(), sa.ForeignKey('invoices.id', ondelete='SET NULL'), nullable=True),
        sa.Column('period_date', sa.Date(), nullable=False),
        sa.Column('status', generation_status, nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        *timestamps(),
    )
    op.create_index(
        'ix_recurring_generation_logs_recurring_invoice_id',
        'recurring_generation_logs',
        ['recurring_invoice_id'],
    )

    for table in LINE_ITEM_TABLES:
        op.add_column(
            table,
            sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        )


def downgrade() -> None:
    for table in LINE_ITEM_TABLES:
        op.drop_column(table, 'product_id')
    op.drop_table('recurring_generation_logs')
    op.drop_table('recurring_invoice_line_items')
    op.drop_table('recurring_invoices')
    op.drop_table('products')
    generation_status.drop(op.get_bind(), checkfirst=True)
    frequency.drop(op.get_bind(), checkfirst=True)
