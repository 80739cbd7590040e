"""add demos and track embeds

Revision ID: b5d1e8f2a9c4
Revises: 7c2e91a4d0b3
Create Date: 2026-10-18 16:03:52.114327

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b5d1e8f2a9c4'
down_revision = '7c2e91a4d0b3'
branch_labels = None
depends_on = None


def upgrade():
    # --- Releases created through the API carry a description; tracks may embed ---
    op.add_column('releases', sa.Column('description', sa.Text(), nullable=True))
    op.add_column('tracks', sa.Column('embed_url', sa.String(length=500), nullable=True))

    op.create_table('demos',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('profile_id', sa.String(length=36), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=True),
    sa.Column('audio_path', sa.String(length=500), nullable=False),
    sa.Column('visibility', sa.String(length=20), nullable=False),
    sa.Column('key', sa.String(length=20), nullable=True),
    sa.Column('tempo', sa.Integer(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
    sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_demos_profile_id'), 'demos', ['profile_id'], unique=False)
    op.create_index(op.f('ix_demos_created_at'), 'demos', ['created_at'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_demos_created_at'), table_name='demos')
    op.drop_index(op.f('ix_demos_profile_id'), table_name='demos')
    op.drop_table('demos')
    op.drop_column('tracks', 'embed_url')
    op.drop_column('releases', 'description')
