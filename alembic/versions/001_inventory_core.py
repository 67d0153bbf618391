"""Create inventory core schema

Revision ID: 001_inventory_core
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_inventory_core'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    """Create companies, catalog, stock ledger and quality inspection tables"""

    # ====================
    # COMPANIES TABLE
    # ====================
    op.create_table(
        'companies',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_companies_company_code', 'companies', ['company_code'], unique=True)

    # ====================
    # PRODUCT CATEGORIES TABLE
    # ====================
    op.create_table(
        'product_categories',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('parent_id', UUID(as_uuid=True), sa.ForeignKey('product_categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'category_id', name='uq_category_company_category_id'),
    )
    op.create_index('ix_product_categories_company_id', 'product_categories', ['company_id'])

    # ====================
    # PRODUCTS TABLE
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(20), nullable=False),
        sa.Column('product_code', sa.String(50), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('material', sa.String(100), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('size', sa.String(50), nullable=True),
        sa.Column('weight', sa.Numeric(14, 3), nullable=True),
        sa.Column('unit_of_measure', sa.String(50), server_default='PCS', nullable=False),
        sa.Column('category_id', UUID(as_uuid=True), sa.ForeignKey('product_categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('selling_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('markup_percent', sa.Numeric(12, 2), nullable=True),
        sa.Column('stock_quantity', sa.Numeric(14, 3), server_default='0', nullable=False),
        sa.Column('reorder_level', sa.Numeric(14, 3), nullable=True),
        sa.Column('barcode', sa.String(100), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('specifications', sa.JSON, nullable=True),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'product_id', name='uq_product_company_product_id'),
        sa.UniqueConstraint('company_id', 'product_code', name='uq_product_company_product_code'),
        sa.UniqueConstraint('company_id', 'sku', name='uq_product_company_sku'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_product_stock_non_negative'),
    )
    op.create_index('ix_products_company_id', 'products', ['company_id'])
    op.create_index('ix_product_company_active', 'products', ['company_id', 'is_active'])

    # ====================
    # STOCK ADJUSTMENTS TABLE (append-only ledger)
    # ====================
    op.create_table(
        'stock_adjustments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('adjustment_id', sa.String(20), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('adjustment_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Numeric(14, 3), nullable=False),
        sa.Column('previous_stock', sa.Numeric(14, 3), nullable=False),
        sa.Column('new_stock', sa.Numeric(14, 3), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('adjusted_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('company_id', 'adjustment_id', name='uq_stock_adjustment_company_adjustment_id'),
        sa.CheckConstraint('quantity > 0', name='ck_stock_adjustment_quantity_positive'),
        sa.CheckConstraint('previous_stock >= 0', name='ck_stock_adjustment_previous_non_negative'),
        sa.CheckConstraint('new_stock >= 0', name='ck_stock_adjustment_new_non_negative'),
    )
    op.create_index('ix_stock_adjustments_company_id', 'stock_adjustments', ['company_id'])
    op.create_index('ix_stock_adjustment_product_created', 'stock_adjustments', ['product_id', 'created_at'])

    # ====================
    # QUALITY INSPECTION TABLES
    # ====================
    op.create_table(
        'inspection_templates',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_id', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('applicable_to', sa.JSON, nullable=False),
        sa.Column('passing_score', sa.Integer, server_default='70', nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'template_id', name='uq_inspection_template_company_template_id'),
    )
    op.create_index('ix_inspection_templates_company_id', 'inspection_templates', ['company_id'])

    op.create_table(
        'template_checkpoints',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('template_id', UUID(as_uuid=True), sa.ForeignKey('inspection_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('evaluation_type', sa.String(20), nullable=False),
        sa.Column('is_required', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('order_index', sa.Integer, server_default='0', nullable=False),
    )
    op.create_index('ix_template_checkpoints_template_id', 'template_checkpoints', ['template_id'])

    op.create_table(
        'quality_inspections',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inspection_number', sa.String(20), nullable=False),
        sa.Column('inspection_type', sa.String(30), nullable=False),
        sa.Column('reference_type', sa.String(50), nullable=False),
        sa.Column('reference_id', sa.String(100), nullable=False),
        sa.Column('inspector_name', sa.String(255), nullable=True),
        sa.Column('template_id', UUID(as_uuid=True), sa.ForeignKey('inspection_templates.id', ondelete='SET NULL'), nullable=True),
        sa.Column('scheduled_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), server_default='PENDING', nullable=False),
        sa.Column('overall_result', sa.String(20), nullable=True),
        sa.Column('quality_score', sa.Numeric(5, 2), nullable=True),
        sa.Column('inspector_notes', sa.Text, nullable=True),
        sa.Column('recommendations', sa.Text, nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'inspection_number', name='uq_quality_inspection_company_number'),
    )
    op.create_index('ix_quality_inspections_company_id', 'quality_inspections', ['company_id'])
    op.create_index('ix_quality_inspections_status', 'quality_inspections', ['status'])

    op.create_table(
        'inspection_checkpoints',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('inspection_id', UUID(as_uuid=True), sa.ForeignKey('quality_inspections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('evaluation_type', sa.String(20), nullable=False),
        sa.Column('order_index', sa.Integer, server_default='0', nullable=False),
        sa.Column('result', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
    )
    op.create_index('ix_inspection_checkpoints_inspection_id', 'inspection_checkpoints', ['inspection_id'])


def downgrade():
    """Drop inventory core tables"""
    op.drop_table('inspection_checkpoints')
    op.drop_table('quality_inspections')
    op.drop_table('template_checkpoints')
    op.drop_table('inspection_templates')
    op.drop_table('stock_adjustments')
    op.drop_table('products')
    op.drop_table('product_categories')
    op.drop_table('companies')
