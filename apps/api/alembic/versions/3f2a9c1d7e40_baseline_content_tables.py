"""baseline content tables

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-09-28 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TARGET_TYPE_CHECK = "target_type IN ('proposal', 'program', 'video', 'comment')"


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_table(
        'videos',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_type', sa.String(), nullable=False),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('storage_bucket', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(TARGET_TYPE_CHECK, name='ck_videos_target_type'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], name='fk_videos_owner_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_videos'),
    )
    op.create_index('ix_videos_target', 'videos', ['target_type', 'target_id'])
    op.create_index('ix_videos_owner_user_id', 'videos', ['owner_user_id'])
    op.create_index('ix_videos_created_at', 'videos', ['created_at'])

    op.create_table(
        'votes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_type', sa.String(), nullable=False),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('value', sa.SmallInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('value IN (-1, 1)', name='ck_votes_value'),
        sa.CheckConstraint(TARGET_TYPE_CHECK, name='ck_votes_target_type'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_votes_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_votes'),
        sa.UniqueConstraint('user_id', 'target_type', 'target_id', name='uq_votes_user_id'),
    )
    op.create_index('ix_votes_target', 'votes', ['target_type', 'target_id'])

    op.create_table(
        'comments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('author_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_type', sa.String(), nullable=False),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('parent_comment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('body_markdown', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['author_user_id'], ['users.id'], name='fk_comments_author_user_id_users', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_comment_id'], ['comments.id'], name='fk_comments_parent_comment_id_comments', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_comments'),
    )
    op.create_index('ix_comments_target', 'comments', ['target_type', 'target_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_comments_target', table_name='comments')
    op.drop_table('comments')
    op.drop_index('ix_votes_target', table_name='votes')
    op.drop_table('votes')
    op.drop_index('ix_videos_created_at', table_name='videos')
    op.drop_index('ix_videos_owner_user_id', table_name='videos')
    op.drop_index('ix_videos_target', table_name='videos')
    op.drop_table('videos')
    op.drop_table('users')
