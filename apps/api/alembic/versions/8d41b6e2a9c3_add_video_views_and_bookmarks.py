"""add video views and bookmarks

Revision ID: 8d41b6e2a9c3
Revises: 3f2a9c1d7e40
Create Date: 2026-10-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '8d41b6e2a9c3'
down_revision: Union[str, Sequence[str], None] = '3f2a9c1d7e40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _user_video_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('video_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=f'fk_{name}_user_id_users', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=f'fk_{name}_video_id_videos', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=f'pk_{name}'),
        sa.UniqueConstraint('user_id', 'video_id', name=f'uq_{name}_user_id'),
    )


def upgrade() -> None:
    _user_video_table('video_views')
    op.create_index('ix_video_views_user_created', 'video_views', ['user_id', 'created_at'])
    op.create_index('ix_video_views_video_id', 'video_views', ['video_id'])

    _user_video_table('bookmarks')
    op.create_index('ix_bookmarks_user_created', 'bookmarks', ['user_id', 'created_at'])
    op.create_index('ix_bookmarks_video_id', 'bookmarks', ['video_id'])


def downgrade() -> None:
    op.drop_index('ix_bookmarks_video_id', table_name='bookmarks')
    op.drop_index('ix_bookmarks_user_created', table_name='bookmarks')
    op.drop_table('bookmarks')
    op.drop_index('ix_video_views_video_id', table_name='video_views')
    op.drop_index('ix_video_views_user_created', table_name='video_views')
    op.drop_table('video_views')
