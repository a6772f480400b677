"""initial crowdfunding schema

Revision ID: crowdfund_001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'crowdfund_001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    # Campaigns mirrored from the contract
    op.create_table(
        'campaigns',
        *_timestamps(),
        sa.Column('campaign_id', sa.String(length=36), nullable=False),
        sa.Column('contract_id', sa.Integer(), nullable=False),
        sa.Column('owner', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=False),
        sa.Column('target', sa.String(length=100), nullable=False),
        sa.Column('amount_collected', sa.String(length=100), nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('total_donations', sa.Integer(), nullable=False),
        sa.Column('withdrawn', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_campaigns_id', 'campaigns', ['id'])
    op.create_index('ix_campaigns_campaign_id', 'campaigns', ['campaign_id'], unique=True)
    op.create_index('ix_campaigns_contract_id', 'campaigns', ['contract_id'], unique=True)
    op.create_index('ix_campaigns_owner', 'campaigns', ['owner'])
    op.create_index('ix_campaigns_category', 'campaigns', ['category'])
    op.create_index('ix_campaigns_deadline', 'campaigns', ['deadline'])

    # Donations per campaign, one row per transaction
    op.create_table(
        'campaign_donators',
        *_timestamps(),
        sa.Column('campaign_pk', sa.Integer(), nullable=False),
        sa.Column('address', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.String(length=100), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['campaign_pk'], ['campaigns.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('campaign_pk', 'transaction_hash', name='uq_campaign_donation_tx')
    )
    op.create_index('ix_campaign_donators_id', 'campaign_donators', ['id'])
    op.create_index('ix_campaign_donators_campaign_pk', 'campaign_donators', ['campaign_pk'])
    op.create_index('ix_campaign_donators_address', 'campaign_donators', ['address'])
    op.create_index('ix_campaign_donators_transaction_hash', 'campaign_donators', ['transaction_hash'])

    # User profiles keyed by wallet address
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('address', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('avatar', sa.String(length=500), nullable=False),
        sa.Column('campaigns_created', sa.JSON(), nullable=False),
        sa.Column('total_donated', sa.Float(), nullable=False),
        sa.Column('total_raised', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_address', 'users', ['address'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'user_donations',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.String(length=100), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_donations_id', 'user_donations', ['id'])
    op.create_index('ix_user_donations_user_id', 'user_donations', ['user_id'])
    op.create_index('ix_user_donations_campaign_id', 'user_donations', ['campaign_id'])


def downgrade():
    op.drop_table('user_donations')
    op.drop_table('users')
    op.drop_table('campaign_donators')
    op.drop_table('campaigns')
