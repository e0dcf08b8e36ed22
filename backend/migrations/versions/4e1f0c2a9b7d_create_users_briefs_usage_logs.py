"""Create users, briefs and usage_logs tables

Revision ID: 4e1f0c2a9b7d
Revises:
Create Date: 2026-10-17 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4e1f0c2a9b7d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('external_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('company', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=True),
        sa.Column('plan', sa.String(32), nullable=False, server_default='free'),
        sa.Column('linkedin_url', sa.String(), nullable=True),
        sa.Column('linkedin_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_external_id'), 'users', ['external_id'], unique=True)

    op.create_table(
        'briefs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('linkedin_url', sa.String(), nullable=False),
        sa.Column('meeting_goal', sa.String(500), nullable=False),
        sa.Column('profile_name', sa.String(), nullable=True),
        sa.Column('profile_headline', sa.String(), nullable=True),
        sa.Column('profile_photo_url', sa.String(), nullable=True),
        sa.Column('profile_location', sa.String(), nullable=True),
        sa.Column('profile_company', sa.String(), nullable=True),
        sa.Column('profile_data', sa.JSON(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('talking_points', sa.JSON(), nullable=False),
        sa.Column('common_ground', sa.JSON(), nullable=False),
        sa.Column('icebreaker', sa.Text(), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('is_saved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_briefs_user_id'), 'briefs', ['user_id'], unique=False)
    op.create_index('ix_briefs_user_created', 'briefs', ['user_id', 'created_at'], unique=False)

    op.create_table(
        'usage_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(32), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_usage_logs_user_action_created',
        'usage_logs',
        ['user_id', 'action', 'created_at'],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index('ix_usage_logs_user_action_created', table_name='usage_logs')
    op.drop_table('usage_logs')
    op.drop_index('ix_briefs_user_created', table_name='briefs')
    op.drop_index(op.f('ix_briefs_user_id'), table_name='briefs')
    op.drop_table('briefs')
    op.drop_index(op.f('ix_users_external_id'), table_name='users')
    op.drop_table('users')
