"""Create job scheduler tables.

Revision ID: 001_job_scheduler
Revises:
Create Date: 2026-10-18

Tables:
- job_schedules: recurring policy per sync job type
- job_runs: one row per execution attempt
- notifications: job completion notices
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


# revision identifiers, used by Alembic.
revision: str = '001_job_scheduler'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing = set(inspector.get_table_names())

    if 'job_schedules' not in existing:
        op.create_table(
            'job_schedules',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
            # Not unique: duplicates are repaired by the cleanup endpoint
            sa.Column('job_type', sa.String(50), nullable=False),
            sa.Column('interval_minutes', sa.Integer, nullable=False),
            sa.Column('is_active', sa.Boolean, nullable=False, server_default='false'),
            sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
            sa.Column('max_retries', sa.Integer, nullable=False, server_default='3'),
            sa.Column('retry_count', sa.Integer, nullable=False, server_default='0'),
            sa.Column('last_run', sa.DateTime(timezone=True), nullable=True),
            sa.Column('next_run', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        )
        op.create_index('ix_job_schedules_job_type', 'job_schedules', ['job_type'])
        print("Created job_schedules table")
    else:
        print("job_schedules table already exists, skipping...")

    if 'job_runs' not in existing:
        op.create_table(
            'job_runs',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
            sa.Column('job_type', sa.String(50), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='running'),
            sa.Column('priority', sa.String(20), nullable=True),
            sa.Column('source', sa.String(20), nullable=True),
            sa.Column('queue_item_id', sa.String(64), nullable=True),
            sa.Column('attempt', sa.Integer, nullable=False, server_default='1'),
            sa.Column('start_time', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
            sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
            sa.Column('duration_ms', sa.Integer, nullable=True),
            sa.Column('records_processed', sa.Integer, nullable=True),
            sa.Column('records_failed', sa.Integer, nullable=True),
            sa.Column('error', sa.Text, nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        )
        op.create_index('ix_job_runs_job_type', 'job_runs', ['job_type'])
        op.create_index('ix_job_runs_queue_item_id', 'job_runs', ['queue_item_id'])
        op.create_index('ix_job_runs_created_at', 'job_runs', ['created_at'])
        op.create_index('ix_job_runs_type_status', 'job_runs', ['job_type', 'status'])
        print("Created job_runs table")
    else:
        print("job_runs table already exists, skipping...")

    if 'notifications' not in existing:
        op.create_table(
            'notifications',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
            sa.Column('notification_type', sa.String(50), nullable=False),
            sa.Column('priority', sa.String(20), nullable=False, server_default='MEDIUM'),
            sa.Column('title', sa.String(200), nullable=False),
            sa.Column('message', sa.Text, nullable=False),
            sa.Column('entity_type', sa.String(50), nullable=True),
            sa.Column('entity_id', sa.String(64), nullable=True),
            sa.Column('extra_data', JSONB, nullable=True),
            sa.Column('is_read', sa.Boolean, nullable=False, server_default='false'),
            sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        )
        op.create_index('ix_notifications_notification_type', 'notifications', ['notification_type'])
        op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
        op.create_index('ix_notifications_type_unread', 'notifications', ['notification_type', 'is_read'])
        op.create_index('ix_notifications_created', 'notifications', ['created_at'])
        print("Created notifications table")
    else:
        print("notifications table already exists, skipping...")


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('job_runs')
    op.drop_table('job_schedules')
