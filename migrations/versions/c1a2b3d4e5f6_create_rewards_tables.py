"""Create players, checkpoints, ledger and pending points tables

Revision ID: c1a2b3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c1a2b3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the identity, check-in, ledger and upload tables."""
    op.create_table(
        'players',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('username', sa.String(30), nullable=True),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('total_points >= 0', name='ck_players_total_points_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_players_email', 'players', ['email'])

    op.create_table(
        'player_addresses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('chain', sa.String(20), nullable=False),
        sa.Column('address', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['player_id'], ['players.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain', 'address', name='uq_player_address_chain_address'),
        sa.UniqueConstraint('player_id', 'chain', name='uq_player_address_player_chain')
    )
    op.create_index('ix_player_addresses_player_id', 'player_addresses', ['player_id'])

    op.create_table(
        'checkpoints',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('chain_type', sa.String(20), nullable=False, server_default='evm'),
        sa.Column('points_value', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(500), nullable=False),
        sa.Column('source', sa.String(50), nullable=False),
        sa.Column('reference_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_ledger_entries_amount_positive'),
        sa.ForeignKeyConstraint(['player_id'], ['players.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ledger_entries_player_created', 'ledger_entries', ['player_id', 'created_at'])

    op.create_table(
        'checkin_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('checkpoint_id', sa.Integer(), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), nullable=False),
        sa.Column('occurred_on', sa.Date(), nullable=False),
        sa.Column('points_awarded', sa.Integer(), nullable=False),
        sa.Column('streak_day_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('chain', sa.String(20), nullable=False),
        sa.Column('wallet_address', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['player_id'], ['players.id'], ),
        sa.ForeignKeyConstraint(['checkpoint_id'], ['checkpoints.id'], ),
        sa.ForeignKeyConstraint(['ledger_entry_id'], ['ledger_entries.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_checkin_events_player_day', 'checkin_events', ['player_id', 'occurred_on'])

    op.create_table(
        'pending_points',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(500), nullable=False),
        sa.Column('uploaded_by_email', sa.String(255), nullable=True),
        sa.Column('upload_batch_id', sa.String(36), nullable=True),
        sa.Column('awarded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('awarded_at', sa.DateTime(), nullable=True),
        sa.Column('awarded_player_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('points > 0', name='ck_pending_points_points_positive'),
        sa.ForeignKeyConstraint(['awarded_player_id'], ['players.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pending_points_email_awarded', 'pending_points', ['email', 'awarded'])

    op.create_table(
        'points_uploads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.String(500), nullable=True),
        sa.Column('player_id', sa.Integer(), nullable=True),
        sa.Column('upload_batch_id', sa.String(36), nullable=True),
        sa.Column('uploaded_by_email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['player_id'], ['players.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_points_uploads_upload_batch_id', 'points_uploads', ['upload_batch_id'])


def downgrade():
    """Drop all rewards tables."""
    op.drop_index('ix_points_uploads_upload_batch_id', table_name='points_uploads')
    op.drop_table('points_uploads')
    op.drop_index('ix_pending_points_email_awarded', table_name='pending_points')
    op.drop_table('pending_points')
    op.drop_index('ix_checkin_events_player_day', table_name='checkin_events')
    op.drop_table('checkin_events')
    op.drop_index('ix_ledger_entries_player_created', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_table('checkpoints')
    op.drop_index('ix_player_addresses_player_id', table_name='player_addresses')
    op.drop_table('player_addresses')
    op.drop_index('ix_players_email', table_name='players')
    op.drop_table('players')
