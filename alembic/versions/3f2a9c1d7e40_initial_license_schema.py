"""Initial license schema: applications, keys, key_hwids, supports

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('api_key', sa.String(length=255), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applications_id'), 'applications', ['id'], unique=False)
    op.create_index(op.f('ix_applications_name'), 'applications', ['name'], unique=True)
    op.create_index(op.f('ix_applications_api_key'), 'applications', ['api_key'], unique=True)
    op.create_index(op.f('ix_applications_created_by'), 'applications', ['created_by'], unique=False)

    op.create_table(
        'keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('api', sa.String(length=255), nullable=False),
        sa.Column('prefix', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('banned', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('used', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('device_limit', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('hwid_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('system_info', sa.Text(), nullable=True),
        sa.Column('first_used', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['api'], ['applications.api_key'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_keys_id'), 'keys', ['id'], unique=False)
    op.create_index(op.f('ix_keys_key'), 'keys', ['key'], unique=True)
    op.create_index(op.f('ix_keys_api'), 'keys', ['api'], unique=False)

    op.create_table(
        'key_hwids',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key_id', sa.Integer(), nullable=False),
        sa.Column('hwid', sa.String(length=255), nullable=False),
        sa.Column('bound_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['key_id'], ['keys.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key_id', 'hwid', name='uq_key_hwids_key_hwid')
    )
    op.create_index(op.f('ix_key_hwids_id'), 'key_hwids', ['id'], unique=False)
    op.create_index(op.f('ix_key_hwids_key_id'), 'key_hwids', ['key_id'], unique=False)

    op.create_table(
        'supports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('added_by', sa.String(length=255), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_supports_id'), 'supports', ['id'], unique=False)
    op.create_index(op.f('ix_supports_user_id'), 'supports', ['user_id'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_supports_user_id'), table_name='supports')
    op.drop_index(op.f('ix_supports_id'), table_name='supports')
    op.drop_table('supports')

    op.drop_index(op.f('ix_key_hwids_key_id'), table_name='key_hwids')
    op.drop_index(op.f('ix_key_hwids_id'), table_name='key_hwids')
    op.drop_table('key_hwids')

    op.drop_index(op.f('ix_keys_api'), table_name='keys')
    op.drop_index(op.f('ix_keys_key'), table_name='keys')
    op.drop_index(op.f('ix_keys_id'), table_name='keys')
    op.drop_table('keys')

    op.drop_index(op.f('ix_applications_created_by'), table_name='applications')
    op.drop_index(op.f('ix_applications_api_key'), table_name='applications')
    op.drop_index(op.f('ix_applications_name'), table_name='applications')
    op.drop_index(op.f('ix_applications_id'), table_name='applications')
    op.drop_table('applications')
