"""Auto-Discount Tables

Revision ID: 0001_autodiscount
Revises:
Create Date: 2026-10-18

Creates tables owned by the auto-discount runtime:
- autodiscount_settings: Per-shop automation switch and admin discount
- autodiscount_products: Products enrolled in price oscillation
- autodiscount_shop_credentials: Catalog access token per shop
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision = '0001_autodiscount'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================================================================
    # SETTINGS
    # =========================================================================

    op.create_table(
        'autodiscount_settings',
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('auto_discount', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('admin_discount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop', name='uq_autodiscount_settings_shop')
    )
    op.create_index('ix_autodiscount_settings_shop', 'autodiscount_settings', ['shop'])
    op.create_index('idx_autodiscount_settings_enabled', 'autodiscount_settings', ['auto_discount'])

    # =========================================================================
    # ENROLLED PRODUCTS
    # =========================================================================

    op.create_table(
        'autodiscount_products',
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('product_id', sa.String(255), nullable=False),
        sa.Column('variant_id', sa.String(255), nullable=False),
        sa.Column('product_title', sa.String(512), server_default='', nullable=False),
        sa.Column('original_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('current_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('phase', sa.String(16), server_default='base', nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop', 'product_id', name='uq_autodiscount_products_shop_product'),
        sa.CheckConstraint("phase IN ('base', 'elevated')", name='ck_autodiscount_products_phase')
    )
    op.create_index('ix_autodiscount_products_shop', 'autodiscount_products', ['shop'])

    # =========================================================================
    # SHOP CREDENTIALS
    # =========================================================================

    op.create_table(
        'autodiscount_shop_credentials',
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('access_token_encrypted', sa.Text(), nullable=False),
        sa.Column('scope', sa.String(512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop', name='uq_autodiscount_credentials_shop')
    )
    op.create_index('ix_autodiscount_shop_credentials_shop', 'autodiscount_shop_credentials', ['shop'])


def downgrade():
    op.drop_index('ix_autodiscount_shop_credentials_shop', table_name='autodiscount_shop_credentials')
    op.drop_table('autodiscount_shop_credentials')

    op.drop_index('ix_autodiscount_products_shop', table_name='autodiscount_products')
    op.drop_table('autodiscount_products')

    op.drop_index('idx_autodiscount_settings_enabled', table_name='autodiscount_settings')
    op.drop_index('ix_autodiscount_settings_shop', table_name='autodiscount_settings')
    op.drop_table('autodiscount_settings')
