"""Create profile, vault, member, item, invitation and share link tables

Revision ID: create_vault_tables
Revises:
Create Date: 2026-10-01 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'create_vault_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('company', sa.String(length=200), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_profiles_user_id'), 'profiles', ['user_id'], unique=True)
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)

    op.create_table(
        'vaults',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vaults_owner_id'), 'vaults', ['owner_id'], unique=False)

    op.create_table(
        'vault_members',
        sa.Column('vault_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['vault_id'], ['vaults.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('vault_id', 'user_id')
    )
    op.create_index(op.f('ix_vault_members_user_id'), 'vault_members', ['user_id'], unique=False)

    op.create_table(
        'vault_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('vault_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('password', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['vault_id'], ['vaults.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vault_items_vault_id'), 'vault_items', ['vault_id'], unique=False)

    op.create_table(
        'vault_invitations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('vault_id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_id', sa.String(length=255), nullable=True),
        sa.Column('email_sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['vault_id'], ['vaults.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vault_invitations_token'), 'vault_invitations', ['token'], unique=True)
    op.create_index(op.f('ix_vault_invitations_vault_id'), 'vault_invitations', ['vault_id'], unique=False)
    op.create_index(op.f('ix_vault_invitations_email'), 'vault_invitations', ['email'], unique=False)

    op.create_table(
        'vault_share_links',
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('vault_id', sa.String(length=36), nullable=False),
        sa.Column('passcode_hash', sa.String(length=255), nullable=True),
        sa.Column('max_views', sa.Integer(), nullable=True),
        sa.Column('views_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['vault_id'], ['vaults.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('token')
    )
    op.create_index(op.f('ix_vault_share_links_vault_id'), 'vault_share_links', ['vault_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_vault_share_links_vault_id'), table_name='vault_share_links')
    op.drop_table('vault_share_links')
    op.drop_index(op.f('ix_vault_invitations_email'), table_name='vault_invitations')
    op.drop_index(op.f('ix_vault_invitations_vault_id'), table_name='vault_invitations')
    op.drop_index(op.f('ix_vault_invitations_token'), table_name='vault_invitations')
    op.drop_table('vault_invitations')
    op.drop_index(op.f('ix_vault_items_vault_id'), table_name='vault_items')
    op.drop_table('vault_items')
    op.drop_index(op.f('ix_vault_members_user_id'), table_name='vault_members')
    op.drop_table('vault_members')
    op.drop_index(op.f('ix_vaults_owner_id'), table_name='vaults')
    op.drop_table('vaults')
    op.drop_index(op.f('ix_profiles_email'), table_name='profiles')
    op.drop_index(op.f('ix_profiles_user_id'), table_name='profiles')
    op.drop_table('profiles')
