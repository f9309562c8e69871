"""Initial schema: users, contents, tags, associated users, version log

Learn: Child tables instead of array columns so tag any-of filters and
"personalized for me" checks are plain indexed joins on both Postgres
and SQLite. JSON columns become JSONB on Postgres.

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 09:12:44.501233
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # ─── Users ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_tokens', JSONType, nullable=False),
        sa.Column('personalization_preferences', JSONType, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username'),
    )

    # ─── Contents ────────────────────────────────────────
    op.create_table(
        'contents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('author_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('metadata', JSONType, nullable=False),
        sa.Column('is_personalized', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.ForeignKeyConstraint(['updated_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_contents_author_created', 'contents', ['author_id', 'created_at'])
    op.create_index('idx_contents_created', 'contents', ['created_at'])

    # ─── Content children ────────────────────────────────
    op.create_table(
        'content_tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Uuid(), nullable=False),
        sa.Column('tag', sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_content_tags_tag', 'content_tags', ['tag'])
    op.create_index('idx_content_tags_content', 'content_tags', ['content_id'])

    op.create_table(
        'content_associated_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_content_assoc_user', 'content_associated_users', ['user_id'])
    op.create_index('idx_content_assoc_content', 'content_associated_users', ['content_id'])

    op.create_table(
        'content_versions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Uuid(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_content_versions_content', 'content_versions', ['content_id', 'version']
    )


def downgrade() -> None:
    op.drop_index('idx_content_versions_content', table_name='content_versions')
    op.drop_table('content_versions')
    op.drop_index('idx_content_assoc_content', table_name='content_associated_users')
    op.drop_index('idx_content_assoc_user', table_name='content_associated_users')
    op.drop_table('content_associated_users')
    op.drop_index('idx_content_tags_content', table_name='content_tags')
    op.drop_index('idx_content_tags_tag', table_name='content_tags')
    op.drop_table('content_tags')
    op.drop_index('idx_contents_created', table_name='contents')
    op.drop_index('idx_contents_author_created', table_name='contents')
    op.drop_table('contents')
    op.drop_table('users')
