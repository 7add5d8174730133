"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'alert_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('namespace', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('scope', sa.String(length=20), nullable=False),
        sa.Column('cluster_name', sa.String(length=255), nullable=False),
        sa.Column('project_name', sa.String(length=255), nullable=True),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('initial_wait_seconds', sa.Integer(), nullable=False),
        sa.Column('repeat_interval_seconds', sa.Integer(), nullable=False),
        sa.Column('condition', sa.JSON(), nullable=False),
        sa.Column('recipients', sa.JSON(), nullable=False),
        sa.Column('state', sa.String(length=20), nullable=False),
        sa.Column('resource_version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('namespace', 'name', name='uq_alert_rule_identity')
    )
    op.create_index('idx_alert_rules_scope_cluster', 'alert_rules', ['scope', 'cluster_name'])
    op.create_index('idx_alert_rules_state', 'alert_rules', ['state'])

    op.create_table(
        'notifiers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('cluster_name', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cluster_name', 'name', name='uq_notifier_identity')
    )


def downgrade() -> None:
    op.drop_table('notifiers')

    op.drop_index('idx_alert_rules_state', table_name='alert_rules')
    op.drop_index('idx_alert_rules_scope_cluster', table_name='alert_rules')
    op.drop_table('alert_rules')
