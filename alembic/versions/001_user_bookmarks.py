"""Create user_bookmarks table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_bookmarks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False, index=True),
        sa.Column(
            'opportunity_id',
            sa.Integer(),
            sa.ForeignKey('business_opportunities.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'opportunity_id', name='uq_user_bookmarks_user_opportunity'),
    )
    # Saved list is read newest first per user
    op.create_index('ix_user_bookmarks_user_created', 'user_bookmarks', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_user_bookmarks_user_created', table_name='user_bookmarks')
    op.drop_table('user_bookmarks')
