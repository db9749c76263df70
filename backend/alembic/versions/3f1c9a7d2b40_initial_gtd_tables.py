"""Initial GTD tables: project, context, email, task, weekly_review

Revision ID: 3f1c9a7d2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'project',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('description', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'context',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('color', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_context_name'), 'context', ['name'], unique=True)

    op.create_table(
        'email',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('message_id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('subject', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('sender', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('recipients', sa.JSON(), nullable=True),
        sa.Column('cc', sa.JSON(), nullable=True),
        sa.Column('bcc', sa.JSON(), nullable=True),
        sa.Column('content', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('html_content', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('folder', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False),
        sa.Column('flags', sa.JSON(), nullable=True),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_email_message_id'), 'email', ['message_id'], unique=True)
    op.create_index(op.f('ix_email_folder'), 'email', ['folder'], unique=False)
    op.create_index(op.f('ix_email_processed'), 'email', ['processed'], unique=False)

    op.create_table(
        'task',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('description', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('status', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=True),
        sa.Column('context_id', sa.Integer(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('email_id', sa.Integer(), nullable=True),
        sa.Column('defer_count', sa.Integer(), nullable=False),
        sa.Column('time_estimate', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('energy_level', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('waiting_for', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('waiting_for_follow_up', sa.Date(), nullable=True),
        sa.Column('reference_category', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('notes', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['project.id']),
        sa.ForeignKeyConstraint(['context_id'], ['context.id']),
        sa.ForeignKeyConstraint(['email_id'], ['email.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_task_status'), 'task', ['status'], unique=False)
    op.create_index(op.f('ix_task_project_id'), 'task', ['project_id'], unique=False)
    op.create_index(op.f('ix_task_context_id'), 'task', ['context_id'], unique=False)

    op.create_table(
        'weekly_review',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
        sa.Column('projects_reviewed', sa.Integer(), nullable=False),
        sa.Column('stalled_projects_found', sa.Integer(), nullable=False),
        sa.Column('waiting_for_reviewed', sa.Integer(), nullable=False),
        sa.Column('someday_reviewed', sa.Integer(), nullable=False),
        sa.Column('completed_tasks_count', sa.Integer(), nullable=False),
        sa.Column('notes', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_weekly_review_completed_at'), 'weekly_review', ['completed_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_weekly_review_completed_at'), table_name='weekly_review')
    op.drop_table('weekly_review')
    op.drop_index(op.f('ix_task_context_id'), table_name='task')
    op.drop_index(op.f('ix_task_project_id'), table_name='task')
    op.drop_index(op.f('ix_task_status'), table_name='task')
    op.drop_table('task')
    op.drop_index(op.f('ix_email_processed'), table_name='email')
    op.drop_index(op.f('ix_email_folder'), table_name='email')
    op.drop_index(op.f('ix_email_message_id'), table_name='email')
    op.drop_table('email')
    op.drop_index(op.f('ix_context_name'), table_name='context')
    op.drop_table('context')
    op.drop_table('project')
