"""Initial migration: users, interests, blocks, matches, swipes

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19 10:00:00

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261019_001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create users table
    op.create_table('users',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('first_name', sa.String(length=50), nullable=False),
    sa.Column('date_of_birth', sa.Date(), nullable=False),
    sa.Column('gender', sa.String(length=16), nullable=False),
    sa.Column('bio', sa.String(length=500), nullable=True),
    sa.Column('occupation', sa.String(length=100), nullable=True),
    sa.Column('photos', sa.JSON(), nullable=False),
    sa.Column('interests', sa.JSON(), nullable=False),
    sa.Column('latitude', sa.Float(), nullable=True),
    sa.Column('longitude', sa.Float(), nullable=True),
    sa.Column('city', sa.String(length=100), nullable=True),
    sa.Column('country', sa.String(length=100), nullable=True),
    sa.Column('pref_age_min', sa.Integer(), nullable=False),
    sa.Column('pref_age_max', sa.Integer(), nullable=False),
    sa.Column('pref_max_distance_km', sa.Integer(), nullable=False),
    sa.Column('pref_show_me', sa.String(length=16), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('is_premium', sa.Boolean(), nullable=False),
    sa.Column('premium_expires_at', sa.DateTime(), nullable=True),
    sa.Column('total_swipes', sa.Integer(), nullable=False),
    sa.Column('total_matches', sa.Integer(), nullable=False),
    sa.Column('profile_views', sa.Integer(), nullable=False),
    sa.Column('last_active', sa.DateTime(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_date_of_birth'), 'users', ['date_of_birth'], unique=False)
    op.create_index(op.f('ix_users_gender'), 'users', ['gender'], unique=False)
    op.create_index('idx_users_active_last_active', 'users', ['is_active', 'last_active'], unique=False)
    op.create_index('idx_users_lat_lng', 'users', ['latitude', 'longitude'], unique=False)

    # Create user_interests table
    op.create_table('user_interests',
    sa.Column('user_id', sa.BigInteger(), nullable=False),
    sa.Column('gender', sa.String(length=16), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('user_id', 'gender')
    )
    op.create_index('idx_user_interests_gender', 'user_interests', ['gender'], unique=False)

    # Create user_blocks table
    op.create_table('user_blocks',
    sa.Column('user_id', sa.BigInteger(), nullable=False),
    sa.Column('blocked_id', sa.BigInteger(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('user_id <> blocked_id', name='chk_block_no_self'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['blocked_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('user_id', 'blocked_id')
    )
    op.create_index('idx_user_blocks_blocked_id', 'user_blocks', ['blocked_id'], unique=False)

    # Create matches table
    op.create_table('matches',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('user_a', sa.BigInteger(), nullable=False),
    sa.Column('user_b', sa.BigInteger(), nullable=False),
    sa.Column('u_lo', sa.BigInteger(), nullable=False),
    sa.Column('u_hi', sa.BigInteger(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('matched_at', sa.DateTime(), nullable=False),
    sa.Column('last_message_at', sa.DateTime(), nullable=False),
    sa.Column('has_conversation', sa.Boolean(), nullable=False),
    sa.Column('message_count', sa.Integer(), nullable=False),
    sa.Column('unmatched_by', sa.BigInteger(), nullable=True),
    sa.Column('unmatched_at', sa.DateTime(), nullable=True),
    sa.Column('unmatch_reason', sa.String(length=200), nullable=True),
    sa.CheckConstraint('user_a <> user_b', name='chk_match_no_self'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_matches_user_a'), 'matches', ['user_a'], unique=False)
    op.create_index(op.f('ix_matches_user_b'), 'matches', ['user_b'], unique=False)
    op.create_index(op.f('ix_matches_u_lo'), 'matches', ['u_lo'], unique=False)
    op.create_index(op.f('ix_matches_u_hi'), 'matches', ['u_hi'], unique=False)
    op.create_index(op.f('ix_matches_matched_at'), 'matches', ['matched_at'], unique=False)
    op.create_index('idx_matches_status_last_message', 'matches', ['status', 'last_message_at'], unique=False)

    # At most one active match per unordered pair; ended matches are kept as history
    op.execute(
        """
        CREATE UNIQUE INDEX idx_match_pair_active
        ON matches(u_lo, u_hi)
        WHERE status = 'active';
    """
    )

    # Create swipes table
    op.create_table('swipes',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('swiper_id', sa.BigInteger(), nullable=False),
    sa.Column('swiped_user_id', sa.BigInteger(), nullable=False),
    sa.Column('action', sa.String(length=16), nullable=False),
    sa.Column('is_match', sa.Boolean(), nullable=False),
    sa.Column('match_id', sa.BigInteger(), nullable=True),
    sa.Column('swiped_at', sa.DateTime(), nullable=False),
    sa.Column('latitude', sa.Float(), nullable=True),
    sa.Column('longitude', sa.Float(), nullable=True),
    sa.CheckConstraint('swiper_id <> swiped_user_id', name='chk_swipe_no_self'),
    sa.ForeignKeyConstraint(['swiper_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['swiped_user_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('swiper_id', 'swiped_user_id', name='uq_swipe_pair')
    )
    op.create_index(op.f('ix_swipes_swiper_id'), 'swipes', ['swiper_id'], unique=False)
    op.create_index(op.f('ix_swipes_swiped_user_id'), 'swipes', ['swiped_user_id'], unique=False)
    op.create_index(op.f('ix_swipes_swiped_at'), 'swipes', ['swiped_at'], unique=False)
    op.create_index('idx_swipes_swiper_action_at', 'swipes', ['swiper_id', 'action', 'swiped_at'], unique=False)
    op.create_index('idx_swipes_swiped_action_at', 'swipes', ['swiped_user_id', 'action', 'swiped_at'], unique=False)


def downgrade() -> None:
    op.drop_table('swipes')
    op.drop_index('idx_match_pair_active', table_name='matches')
    op.drop_table('matches')
    op.drop_table('user_blocks')
    op.drop_table('user_interests')
    op.drop_table('users')
