"""create game_session and leaderboard_entry

Revision ID: 5c2d7e91a0b4
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d7e91a0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('token', sa.String(length=64), nullable=False),
            sa.Column('player_identity', sa.String(length=64), nullable=False),
            sa.Column('seed', sa.String(length=64), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_game_session_token', 'game_session', ['token'], unique=True)
        op.create_index('ix_game_session_created_at', 'game_session', ['created_at'])

    if 'leaderboard_entry' not in existing_tables:
        op.create_table(
            'leaderboard_entry',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('player_identity', sa.String(length=64), nullable=False),
            sa.Column('player_device_id', sa.String(length=128), nullable=True),
            sa.Column('highest_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('updated_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_leaderboard_entry_player_identity', 'leaderboard_entry', ['player_identity'], unique=True)
        op.create_index('ix_leaderboard_entry_highest_score', 'leaderboard_entry', ['highest_score'])


def downgrade():
    op.drop_index('ix_leaderboard_entry_highest_score', table_name='leaderboard_entry')
    op.drop_index('ix_leaderboard_entry_player_identity', table_name='leaderboard_entry')
    op.drop_table('leaderboard_entry')
    op.drop_index('ix_game_session_created_at', table_name='game_session')
    op.drop_index('ix_game_session_token', table_name='game_session')
    op.drop_table('game_session')
