"""Merged analysis records

Revision ID: 001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'seo_analysis',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('url', sa.String(400), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('structural', postgresql.JSONB, nullable=True),
        sa.Column('content', postgresql.JSONB, nullable=True),
        sa.Column('technical', postgresql.JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(),
                  nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(),
                  nullable=False),
        sa.UniqueConstraint('user_id', 'url', name='uq_seo_analysis_user_url'),
    )
    op.create_index('ix_seo_analysis_id', 'seo_analysis', ['id'])
    op.create_index('ix_seo_analysis_user_id', 'seo_analysis', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_seo_analysis_user_id', table_name='seo_analysis')
    op.drop_index('ix_seo_analysis_id', table_name='seo_analysis')
    op.drop_table('seo_analysis')
