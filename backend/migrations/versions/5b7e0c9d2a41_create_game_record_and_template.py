"""create game_record and game_template

Revision ID: 5b7e0c9d2a41
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e0c9d2a41'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_record' not in existing_tables:
        op.create_table(
            'game_record',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('access_code', sa.String(length=16), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('phase', sa.String(length=16), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_game_record_access_code', 'game_record', ['access_code'], unique=True)

    if 'game_template' not in existing_tables:
        op.create_table(
            'game_template',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )


def downgrade():
    op.drop_table('game_template')
    op.drop_index('ix_game_record_access_code', table_name='game_record')
    op.drop_table('game_record')
