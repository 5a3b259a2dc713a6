"""invoice drafts

Revision ID: 0001_invoice_drafts
Revises:
Create Date: 2026-10-19 10:12:41.218504

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_invoice_drafts'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - add invoice_drafts table."""
    op.create_table('invoice_drafts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('client_id', sa.String(length=64), nullable=True),
        sa.Column('invoice_number', sa.String(length=100), nullable=True),
        sa.Column('issue_date', sa.String(length=10), nullable=True),
        sa.Column('due_date', sa.String(length=10), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('tax_rate', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('template_id', sa.String(length=64), nullable=True),
        sa.Column('signature', sa.Text(), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("type IN ('invoice', 'offer')", name='ck_invoice_drafts_type'),
        sa.CheckConstraint('tax_rate IS NULL OR tax_rate >= 0', name='ck_invoice_drafts_tax_rate'),
        sa.PrimaryKeyConstraint('id')
    )

    with op.batch_alter_table('invoice_drafts', schema=None) as batch_op:
        batch_op.create_index('ix_invoice_drafts_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_invoice_drafts_business_id', ['business_id'], unique=False)
        batch_op.create_index('ix_invoice_drafts_user_updated', ['user_id', 'updated_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema - remove invoice_drafts table."""
    with op.batch_alter_table('invoice_drafts', schema=None) as batch_op:
        batch_op.drop_index('ix_invoice_drafts_user_updated')
        batch_op.drop_index('ix_invoice_drafts_business_id')
        batch_op.drop_index('ix_invoice_drafts_user_id')

    op.drop_table('invoice_drafts')
