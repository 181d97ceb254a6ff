"""create subscriptions and cooldown_records tables

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'a7c1e2d3f4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'subscriptions',
        sa.Column('user_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('delivery_token', sa.String(), nullable=True),
        sa.Column('delivery_endpoint', sa.String(), nullable=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_table(
        'cooldown_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('resource_key', sa.String(), nullable=False),
        sa.Column('network', sa.String(), nullable=False),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('cooldown_end', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['subscriptions.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'resource_key', 'network'),
    )


def downgrade() -> None:
    op.drop_table('cooldown_records')
    op.drop_table('subscriptions')
