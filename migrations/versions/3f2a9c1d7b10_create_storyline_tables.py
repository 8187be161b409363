"""create storyline tables

Revision ID: 3f2a9c1d7b10
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('theme', sa.Text(), nullable=False),
        sa.Column('logline', sa.Text(), nullable=False),
        sa.Column('genre', sa.String(255), nullable=False),
        sa.Column('setting_time', sa.Text(), nullable=False),
        sa.Column('setting_place', sa.Text(), nullable=False),
        sa.Column('setting_world', sa.Text(), nullable=False),
        sa.Column('style_tone', sa.Text(), nullable=False),
        sa.Column('target_chapter_count', sa.Integer(), nullable=True),
        sa.Column('target_chapter_word_count', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(64), nullable=False),
        sa.Column('instructions', sa.JSON(), nullable=True),
        sa.Column('active_outline_id', sa.Integer(), nullable=True),
        sa.Column('active_phase', sa.String(32), nullable=True),
        sa.Column('active_started_at', sa.BigInteger(), nullable=True),
        sa.Column('active_claim_token', sa.String(32), nullable=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('updated_by', sa.String(255), nullable=False),
    )
    op.create_index('ix_projects_id', 'projects', ['id'])

    op.create_table(
        'characters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('background', sa.Text(), nullable=False),
        sa.Column('motivation', sa.Text(), nullable=False),
        sa.Column('arc_or_conflict', sa.Text(), nullable=False),
    )
    op.create_index('ix_characters_id', 'characters', ['id'])
    op.create_index('ix_characters_project_id', 'characters', ['project_id'])

    op.create_table(
        'outline_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_outline_entries_id', 'outline_entries', ['id'])
    op.create_index('ix_outline_entries_project_id', 'outline_entries', ['project_id'])

    op.create_table(
        'chapters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('outline_id', sa.Integer(), sa.ForeignKey('outline_entries.id'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('draft_content', sa.Text(), nullable=True),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('updated_by', sa.String(255), nullable=False),
        sa.UniqueConstraint('project_id', 'outline_id', name='uq_chapters_project_outline'),
    )
    op.create_index('ix_chapters_id', 'chapters', ['id'])
    op.create_index('ix_chapters_project_id', 'chapters', ['project_id'])

    op.create_table(
        'continuity_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('chapter_id', sa.Integer(), sa.ForeignKey('chapters.id'), nullable=False, unique=True),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('key_events', sa.JSON(), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('location', sa.Text(), nullable=False),
        sa.Column('characters', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_continuity_records_id', 'continuity_records', ['id'])

    op.create_table(
        'user_credits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('credits', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('credits >= 0', name='ck_user_credits_non_negative'),
    )
    op.create_index('ix_user_credits_id', 'user_credits', ['id'])
    op.create_index('ix_user_credits_user_id', 'user_credits', ['user_id'], unique=True)

    op.create_table(
        'credit_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_credit_transactions_id', 'credit_transactions', ['id'])
    op.create_index('ix_credit_transactions_user_id', 'credit_transactions', ['user_id'])

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(255), nullable=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('section', sa.String(255), nullable=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('options', sa.Text(), nullable=True),
    )
    op.create_index('ix_settings_id', 'settings', ['id'])
    op.create_index('ix_settings_key', 'settings', ['key'], unique=True)


def downgrade() -> None:
    op.drop_table('settings')
    op.drop_table('credit_transactions')
    op.drop_table('user_credits')
    op.drop_table('continuity_records')
    op.drop_table('chapters')
    op.drop_table('outline_entries')
    op.drop_table('characters')
    op.drop_table('projects')
