"""flag and segment configuration tables

Revision ID: 3c9e1f2a7b40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c9e1f2a7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('flag_configs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('environment_key', sa.String(length=100), nullable=False),
        sa.Column('flag_key', sa.String(length=100), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column('off_variation', sa.Integer(), nullable=False),
        sa.Column('variations', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('fallthrough', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('targets', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('environment_key', 'flag_key', name='uq_flag_configs_env_flag')
    )
    op.create_index('idx_flag_configs_env', 'flag_configs', ['environment_key'], unique=False)

    op.create_table('segment_configs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('environment_key', sa.String(length=100), nullable=False),
        sa.Column('segment_key', sa.String(length=100), nullable=False),
        sa.Column('segment_id', sa.String(length=64), nullable=False),
        sa.Column('included', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('excluded', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('environment_key', 'segment_key', name='uq_segment_configs_env_segment')
    )
    op.create_index('idx_segment_configs_env', 'segment_configs', ['environment_key'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_segment_configs_env', table_name='segment_configs')
    op.drop_table('segment_configs')
    op.drop_index('idx_flag_configs_env', table_name='flag_configs')
    op.drop_table('flag_configs')
