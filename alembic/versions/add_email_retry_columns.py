"""add retry tracking to email_logs

Revision ID: email_retry_001
Revises: 
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'email_retry_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'email_logs',
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0')
    )
    op.add_column(
        'email_logs',
        sa.Column('last_retry_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.add_column(
        'email_logs',
        sa.Column('next_retry_at', sa.DateTime(timezone=True), nullable=True)
    )
    # Scanned by the retry job
    op.create_index('ix_email_logs_next_retry_at', 'email_logs', ['next_retry_at'])


def downgrade() -> None:
    op.drop_index('ix_email_logs_next_retry_at', table_name='email_logs')
    op.drop_column('email_logs', 'next_retry_at')
    op.drop_column('email_logs', 'last_retry_at')
    op.drop_column('email_logs', 'retry_count')
