"""Initial schema: users, exams, results, notifications and audit logs.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('admin', 'teacher', 'student', name='user_role')
exam_type = sa.Enum('midterm', 'final', 'quiz', 'assignment', 'project', name='exam_type')
exam_status = sa.Enum('scheduled', 'ongoing', 'completed', 'cancelled', name='exam_status')
result_status = sa.Enum('pass', 'fail', name='result_status')
audit_action = sa.Enum(
    'USER_CREATED', 'USER_UPDATED', 'USER_LOGIN',
    'EXAM_CANCELLED', 'RESULTS_PUBLISHED', 'NOTIFICATIONS_SENT',
    'DATA_CREATED', 'DATA_UPDATED', 'DATA_DELETED',
    name='audit_action',
)


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('student_code', sa.String(20), nullable=True),
        sa.Column('teacher_code', sa.String(20), nullable=True),
        sa.Column('grade', sa.String(20), nullable=True),
        sa.Column('section', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('student_code'),
        sa.UniqueConstraint('teacher_code'),
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_grade', 'users', ['grade'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'exams',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(100), nullable=False),
        sa.Column('exam_type', exam_type, nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('total_marks', sa.Integer(), nullable=False),
        sa.Column('passing_marks', sa.Integer(), nullable=False),
        sa.Column('venue', sa.String(200), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('target_grades', postgresql.JSONB(), nullable=False),
        sa.Column('target_sections', postgresql.JSONB(), nullable=False),
        sa.Column('target_students', postgresql.JSONB(), nullable=False),
        sa.Column('teacher_id', sa.BigInteger(), nullable=False),
        sa.Column('created_by_id', sa.BigInteger(), nullable=False),
        sa.Column('status', exam_status, nullable=False),
        sa.Column('results_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('passing_marks <= total_marks', name='ck_exams_passing_le_total'),
    )
    op.create_index('ix_exams_subject', 'exams', ['subject'])
    op.create_index('ix_exams_date', 'exams', ['date'])
    op.create_index('ix_exams_teacher_id', 'exams', ['teacher_id'])
    op.create_index('ix_exams_status', 'exams', ['status'])
    op.create_index('ix_exams_created_at', 'exams', ['created_at'])

    op.create_table(
        'results',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('marks_obtained', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('total_marks', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('grade', sa.String(2), nullable=False),
        sa.Column('status', result_status, nullable=False),
        sa.Column('breakdown', postgresql.JSONB(), nullable=True),
        sa.Column('teacher_comments', sa.Text(), nullable=True),
        sa.Column('student_remarks', sa.Text(), nullable=True),
        sa.Column('attendance', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('participation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('graded_by_id', sa.BigInteger(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exam_id'], ['exams.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['graded_by_id'], ['users.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('student_id', 'exam_id', name='uq_result_student_exam'),
    )
    op.create_index('ix_results_student_id', 'results', ['student_id'])
    op.create_index('ix_results_exam_id', 'results', ['exam_id'])
    op.create_index('ix_results_grade', 'results', ['grade'])
    op.create_index('ix_results_status', 'results', ['status'])
    op.create_index('ix_results_submitted_at', 'results', ['submitted_at'])
    op.create_index('ix_results_created_at', 'results', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('action_url', sa.Text(), nullable=True),
        sa.Column('action_data', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=True),
        sa.Column('action', audit_action, nullable=False),
        sa.Column('resource_type', sa.String(100), nullable=False),
        sa.Column('resource_id', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('extra_data', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(50), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('results')
    op.drop_table('exams')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (audit_action, result_status, exam_status, exam_type, user_role):
        enum_type.drop(bind, checkfirst=True)
