"""Create maintenance tables

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'assignees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('section', sa.String(50), nullable=False, server_default='SIN FUNCIONES'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_assignees_created_at', 'assignees', ['created_at'])

    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('requester', sa.String(120), nullable=False),
        sa.Column('location', sa.String(120), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='Pendiente'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='media'),
        sa.Column('is_urgent', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_accepted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('assignee_id', sa.Integer(), nullable=True),
        sa.Column('image', sa.String(500), nullable=False, server_default=''),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('incident_date', sa.Date(), nullable=True),
        sa.Column('deadline_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['assignee_id'], ['assignees.id']),
    )
    op.create_index('ix_tickets_title', 'tickets', ['title'])
    op.create_index('ix_tickets_requester', 'tickets', ['requester'])
    op.create_index('ix_tickets_location', 'tickets', ['location'])
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_index('ix_tickets_priority', 'tickets', ['priority'])
    op.create_index('ix_tickets_is_accepted', 'tickets', ['is_accepted'])
    op.create_index('ix_tickets_is_archived', 'tickets', ['is_archived'])
    op.create_index('ix_tickets_incident_date', 'tickets', ['incident_date'])
    op.create_index('ix_tickets_created_at', 'tickets', ['created_at'])

    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('code', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'code'),
    )
    op.create_index('ix_user_permissions_user_id', 'user_permissions', ['user_id'])
    op.create_index('ix_user_permissions_created_at', 'user_permissions', ['created_at'])

    # Key-value store backing saved filter views
    op.create_table(
        'storage_entries',
        sa.Column('key', sa.String(200), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )
    op.create_index('ix_storage_entries_created_at', 'storage_entries', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_storage_entries_created_at', 'storage_entries')
    op.drop_table('storage_entries')

    op.drop_index('ix_user_permissions_created_at', 'user_permissions')
    op.drop_index('ix_user_permissions_user_id', 'user_permissions')
    op.drop_table('user_permissions')

    for column in (
        'created_at', 'incident_date', 'is_archived', 'is_accepted',
        'priority', 'status', 'location', 'requester', 'title',
    ):
        op.drop_index(f'ix_tickets_{column}', 'tickets')
    op.drop_table('tickets')

    op.drop_index('ix_assignees_created_at', 'assignees')
    op.drop_table('assignees')
