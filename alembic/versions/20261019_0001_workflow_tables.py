"""workflow tables: requirements, tutor associations, demos, classes, outbox, notifications

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_DEMO = "status IN ('requested', 'scheduled')"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'requirements',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('enquiry_code', sa.String(16), nullable=False),
        sa.Column('parent_id', sa.Uuid, nullable=False),
        sa.Column('student_name', sa.String(255), nullable=True),
        sa.Column('subjects', sa.JSON, nullable=False),
        sa.Column('grade_level', sa.String(50), nullable=False),
        sa.Column('board', sa.String(50), nullable=True),
        sa.Column('teaching_modes', sa.JSON, nullable=False),
        sa.Column('location', sa.JSON, nullable=True),
        sa.Column('preferred_days', sa.JSON, nullable=True),
        sa.Column('preferred_time_slots', sa.JSON, nullable=True),
        sa.Column('gender_preference',
                  sa.Enum('male', 'female', 'no_preference', name='tutor_gender_preference_enum'),
                  nullable=False, server_default='no_preference'),
        sa.Column('start_preference',
                  sa.Enum('immediately', 'within_a_month', 'just_exploring', name='start_preference_enum'),
                  nullable=False, server_default='immediately'),
        sa.Column('additional_notes', sa.Text, nullable=True),
        sa.Column('created_by',
                  sa.Enum('parent', 'admin', name='requirement_created_by_enum'),
                  nullable=False, server_default='parent'),
        sa.Column('status',
                  sa.Enum('open', 'matched', 'closed', name='requirement_status_enum'),
                  nullable=False, server_default='open'),
        sa.Column('found_tutor', sa.Boolean, nullable=True),
        sa.Column('found_tutor_name', sa.String(255), nullable=True),
        sa.Column('close_reason', sa.Text, nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        sa.Column('posted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_requirements_enquiry_code', 'requirements', ['enquiry_code'], unique=True)
    op.create_index('ix_requirements_parent_id', 'requirements', ['parent_id'])
    op.create_index('ix_requirements_status', 'requirements', ['status'])
    op.create_index('ix_requirements_posted_at', 'requirements', ['posted_at'])

    op.create_table(
        'requirement_notes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('requirement_id', sa.Uuid,
                  sa.ForeignKey('requirements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Uuid, nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_requirement_notes_requirement_id', 'requirement_notes', ['requirement_id'])

    op.create_table(
        'tutor_associations',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('requirement_id', sa.Uuid,
                  sa.ForeignKey('requirements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutor_id', sa.Uuid, nullable=False),
        sa.Column('status',
                  sa.Enum('recommended', 'applied', 'shortlisted', 'assigned', 'rejected', 'withdrawn',
                          name='tutor_association_status_enum'),
                  nullable=False),
        sa.Column('recommended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shortlisted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('withdrawn_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('requirement_id', 'tutor_id', name='uq_association_pair'),
    )
    op.create_index('ix_tutor_associations_requirement_id', 'tutor_associations', ['requirement_id'])
    op.create_index('ix_tutor_associations_tutor_id', 'tutor_associations', ['tutor_id'])
    op.create_index('ix_tutor_associations_status', 'tutor_associations', ['status'])
    op.create_index(
        'uq_association_assigned', 'tutor_associations', ['requirement_id'], unique=True,
        postgresql_where=sa.text("status = 'assigned'"),
        sqlite_where=sa.text("status = 'assigned'"),
    )

    op.create_table(
        'demo_sessions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('requirement_id', sa.Uuid,
                  sa.ForeignKey('requirements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tutor_id', sa.Uuid, nullable=False),
        sa.Column('subjects', sa.JSON, nullable=False),
        sa.Column('mode', sa.Enum('online', 'offline', name='demo_mode_enum'),
                  nullable=False, server_default='online'),
        sa.Column('join_link', sa.String(512), nullable=True),
        sa.Column('location', sa.Text, nullable=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('start_time', sa.Time, nullable=False),
        sa.Column('end_time', sa.Time, nullable=False),
        sa.Column('duration_minutes', sa.Integer, nullable=False),
        sa.Column('status',
                  sa.Enum('requested', 'scheduled', 'completed', 'cancelled', name='demo_status_enum'),
                  nullable=False),
        sa.Column('requested_by', sa.String(20), nullable=True),
        sa.Column('reschedule_status',
                  sa.Enum('none', 'pending', name='demo_reschedule_status_enum'),
                  nullable=False, server_default='none'),
        sa.Column('proposed_date', sa.Date, nullable=True),
        sa.Column('proposed_start_time', sa.Time, nullable=True),
        sa.Column('proposed_end_time', sa.Time, nullable=True),
        sa.Column('reschedule_reason', sa.Text, nullable=True),
        sa.Column('reschedule_requested_by', sa.String(20), nullable=True),
        sa.Column('is_paid', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('cancel_reason', sa.Text, nullable=True),
        sa.Column('cancelled_by', sa.String(20), nullable=True),
        sa.Column('feedback_rating', sa.Integer, nullable=True),
        sa.Column('feedback_comment', sa.Text, nullable=True),
        sa.Column('next_step_decision', sa.String(50), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_demo_sessions_requirement_id', 'demo_sessions', ['requirement_id'])
    op.create_index('ix_demo_sessions_tutor_id', 'demo_sessions', ['tutor_id'])
    op.create_index('ix_demo_sessions_date', 'demo_sessions', ['date'])
    op.create_index('ix_demo_sessions_status', 'demo_sessions', ['status'])
    op.create_index(
        'uq_demo_active_pair', 'demo_sessions', ['requirement_id', 'tutor_id'], unique=True,
        postgresql_where=sa.text(ACTIVE_DEMO),
        sqlite_where=sa.text(ACTIVE_DEMO),
    )

    op.create_table(
        'classes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('requirement_id', sa.Uuid,
                  sa.ForeignKey('requirements.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('tutor_id', sa.Uuid, nullable=False),
        sa.Column('tutor_name', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(100), nullable=False),
        sa.Column('mode', sa.Enum('online', 'offline', name='class_mode_enum'),
                  nullable=False, server_default='online'),
        sa.Column('days', sa.JSON, nullable=False),
        sa.Column('start_time', sa.Time, nullable=False),
        sa.Column('end_time', sa.Time, nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('next_session', sa.Date, nullable=True),
        sa.Column('status',
                  sa.Enum('upcoming', 'ongoing', 'past', 'cancelled', name='class_status_enum'),
                  nullable=False, server_default='upcoming'),
        sa.Column('cancel_reason', sa.Text, nullable=True),
        sa.Column('cancelled_by', sa.String(20), nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_classes_requirement_id', 'classes', ['requirement_id'])
    op.create_index('ix_classes_tutor_id', 'classes', ['tutor_id'])
    op.create_index('ix_classes_start_date', 'classes', ['start_date'])
    op.create_index('ix_classes_status', 'classes', ['status'])

    op.create_table(
        'workflow_events',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.Uuid, nullable=False),
        sa.Column('requirement_id', sa.Uuid, nullable=True),
        sa.Column('from_status', sa.String(30), nullable=True),
        sa.Column('to_status', sa.String(30), nullable=False),
        sa.Column('actor_role', sa.String(20), nullable=False),
        sa.Column('actor_id', sa.Uuid, nullable=True),
        sa.Column('operation', sa.String(50), nullable=False),
        sa.Column('correlation_id', sa.Uuid, nullable=False),
        sa.Column('payload', sa.JSON, nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attempts', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_workflow_events_entity_type', 'workflow_events', ['entity_type'])
    op.create_index('ix_workflow_events_entity_id', 'workflow_events', ['entity_id'])
    op.create_index('ix_workflow_events_requirement_id', 'workflow_events', ['requirement_id'])
    op.create_index('ix_workflow_events_correlation_id', 'workflow_events', ['correlation_id'])
    op.create_index('ix_workflow_events_occurred_at', 'workflow_events', ['occurred_at'])
    op.create_index('ix_workflow_events_delivered_at', 'workflow_events', ['delivered_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('recipient_id', sa.Uuid, nullable=False),
        sa.Column('notification_type', sa.String(60), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text, nullable=True),
        sa.Column('action_url', sa.String(512), nullable=True),
        sa.Column('event_id', sa.Uuid,
                  sa.ForeignKey('workflow_events.id', ondelete='SET NULL'), nullable=True),
        sa.Column('extra_data', sa.JSON, nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_notification_type', 'notifications', ['notification_type'])
    op.create_index('ix_notifications_event_id', 'notifications', ['event_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('workflow_events')
    op.drop_table('classes')
    op.drop_index('uq_demo_active_pair', 'demo_sessions')
    op.drop_table('demo_sessions')
    op.drop_index('uq_association_assigned', 'tutor_associations')
    op.drop_table('tutor_associations')
    op.drop_table('requirement_notes')
    op.drop_table('requirements')
    # PostgreSQL keeps the enum types; drop them so a re-upgrade can recreate them
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'class_status_enum', 'class_mode_enum',
            'demo_reschedule_status_enum', 'demo_status_enum', 'demo_mode_enum',
            'tutor_association_status_enum',
            'requirement_status_enum', 'requirement_created_by_enum',
            'start_preference_enum', 'tutor_gender_preference_enum',
        ):
            op.execute(f'DROP TYPE IF EXISTS {enum_name}')
