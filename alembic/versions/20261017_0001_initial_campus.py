"""initial campus tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261017_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'auth_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_auth_users_id', 'auth_users', ['id'])
    op.create_index('ix_auth_users_email', 'auth_users', ['email'], unique=True)
    op.create_index('ix_auth_users_created_at', 'auth_users', ['created_at'])

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_roles_id', 'roles', ['id'])
    op.create_index('ix_roles_user_id', 'roles', ['user_id'], unique=True)
    op.create_index('ix_roles_role', 'roles', ['role'])

    op.create_table(
        'classes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('section', sa.String(length=40), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_classes_id', 'classes', ['id'])
    op.create_index('ix_classes_created_by', 'classes', ['created_by'])
    op.create_index('ix_classes_created_at', 'classes', ['created_at'])
    op.create_index('ix_classes_deleted_at', 'classes', ['deleted_at'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('profile_photo_url', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=True),
        sa.Column('is_profile_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)
    op.create_index('ix_profiles_role', 'profiles', ['role'])
    op.create_index('ix_profiles_is_active', 'profiles', ['is_active'])
    op.create_index('ix_profiles_created_at', 'profiles', ['created_at'])

    op.create_table(
        'student_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('branch', sa.String(length=120), nullable=True),
        sa.Column('degree', sa.String(length=120), nullable=True),
        sa.Column('registration_number', sa.String(length=60), nullable=True),
        sa.Column('roll_no', sa.String(length=40), nullable=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('admission_year', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_student_profiles_id', 'student_profiles', ['id'])
    op.create_index('ix_student_profiles_user_id', 'student_profiles', ['user_id'], unique=True)
    op.create_index('ix_student_profiles_created_at', 'student_profiles', ['created_at'])

    op.create_table(
        'teacher_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('qualification', sa.String(length=120), nullable=True),
        sa.Column('experience_years', sa.Integer(), nullable=True),
        sa.Column('subjects_taught', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_teacher_profiles_id', 'teacher_profiles', ['id'])
    op.create_index('ix_teacher_profiles_user_id', 'teacher_profiles', ['user_id'], unique=True)
    op.create_index('ix_teacher_profiles_created_at', 'teacher_profiles', ['created_at'])

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('roll_no', sa.String(length=40), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_students_id', 'students', ['id'])
    op.create_index('ix_students_email', 'students', ['email'], unique=True)
    op.create_index('ix_students_created_by', 'students', ['created_by'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])

    op.create_table(
        'teacher_classes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'class_id', name='uq_teacher_classes_teacher_class'),
    )
    op.create_index('ix_teacher_classes_id', 'teacher_classes', ['id'])
    op.create_index('ix_teacher_classes_teacher_id', 'teacher_classes', ['teacher_id'])
    op.create_index('ix_teacher_classes_class_id', 'teacher_classes', ['class_id'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('student_id', 'class_id', name='uq_enrollments_student_class'),
    )
    op.create_index('ix_enrollments_id', 'enrollments', ['id'])
    op.create_index('ix_enrollments_student_id', 'enrollments', ['student_id'])
    op.create_index('ix_enrollments_class_id', 'enrollments', ['class_id'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_subjects_id', 'subjects', ['id'])
    op.create_index('ix_subjects_class_id', 'subjects', ['class_id'])

    op.create_table(
        'exams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('max_marks', sa.Float(), nullable=False, server_default='100'),
        sa.Column('exam_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('max_marks > 0', name='ck_exams_max_marks_positive'),
    )
    op.create_index('ix_exams_id', 'exams', ['id'])
    op.create_index('ix_exams_class_id', 'exams', ['class_id'])
    op.create_index('ix_exams_created_at', 'exams', ['created_at'])

    op.create_table(
        'marks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exam_id', sa.Integer(), sa.ForeignKey('exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('marks_obtained', sa.Float(), nullable=False),
        sa.Column('uploaded_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('student_id', 'exam_id', 'subject_id', name='uq_marks_student_exam_subject'),
        sa.CheckConstraint('marks_obtained >= 0', name='ck_marks_non_negative'),
    )
    op.create_index('ix_marks_id', 'marks', ['id'])
    op.create_index('ix_marks_student_id', 'marks', ['student_id'])
    op.create_index('ix_marks_subject_id', 'marks', ['subject_id'])
    op.create_index('ix_marks_exam_id', 'marks', ['exam_id'])
    op.create_index('ix_marks_uploaded_by', 'marks', ['uploaded_by'])
    op.create_index('ix_marks_created_at', 'marks', ['created_at'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('marked_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('class_id', 'student_id', 'date', name='uq_attendance_class_student_date'),
        sa.CheckConstraint("status IN ('present', 'absent', 'late')", name='ck_attendance_status'),
    )
    op.create_index('ix_attendance_id', 'attendance', ['id'])
    op.create_index('ix_attendance_class_id', 'attendance', ['class_id'])
    op.create_index('ix_attendance_student_id', 'attendance', ['student_id'])
    op.create_index('ix_attendance_date', 'attendance', ['date'])
    op.create_index('ix_attendance_class_date', 'attendance', ['class_id', 'date'])

    op.create_table(
        'announcements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_announcements_id', 'announcements', ['id'])
    op.create_index('ix_announcements_class_id', 'announcements', ['class_id'])
    op.create_index('ix_announcements_created_at', 'announcements', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(length=40), nullable=False, server_default='info'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('link', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])

    op.create_table(
        'performance_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period', sa.String(length=40), nullable=False),
        sa.Column('avg_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('attendance_pct', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_exams', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_present', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_absent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('student_id', 'class_id', 'period', name='uq_performance_student_class_period'),
    )
    op.create_index('ix_performance_reports_id', 'performance_reports', ['id'])
    op.create_index('ix_performance_reports_student_id', 'performance_reports', ['student_id'])
    op.create_index('ix_performance_reports_class_id', 'performance_reports', ['class_id'])
    op.create_index('ix_performance_reports_created_at', 'performance_reports', ['created_at'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_assignments_id', 'assignments', ['id'])
    op.create_index('ix_assignments_class_id', 'assignments', ['class_id'])
    op.create_index('ix_assignments_deadline', 'assignments', ['deadline'])
    op.create_index('ix_assignments_created_by', 'assignments', ['created_by'])
    op.create_index('ix_assignments_created_at', 'assignments', ['created_at'])

    op.create_table(
        'assignment_submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_url', sa.String(length=500), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('marks', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('assignment_id', 'student_id', name='uq_assignment_submissions_assignment_student'),
        sa.CheckConstraint("status IN ('on-time', 'late')", name='ck_assignment_submissions_status'),
    )
    op.create_index('ix_assignment_submissions_id', 'assignment_submissions', ['id'])
    op.create_index('ix_assignment_submissions_assignment_id', 'assignment_submissions', ['assignment_id'])
    op.create_index('ix_assignment_submissions_student_id', 'assignment_submissions', ['student_id'])
    op.create_index('ix_assignment_submissions_submitted_at', 'assignment_submissions', ['submitted_at'])

    op.create_table(
        'mcq_tests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('duration > 0', name='ck_mcq_tests_duration_positive'),
        sa.CheckConstraint('end_date > start_date', name='ck_mcq_tests_window'),
    )
    op.create_index('ix_mcq_tests_id', 'mcq_tests', ['id'])
    op.create_index('ix_mcq_tests_class_id', 'mcq_tests', ['class_id'])
    op.create_index('ix_mcq_tests_created_by', 'mcq_tests', ['created_by'])
    op.create_index('ix_mcq_tests_created_at', 'mcq_tests', ['created_at'])

    op.create_table(
        'mcq_questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('test_id', sa.Integer(), sa.ForeignKey('mcq_tests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_mcq_questions_id', 'mcq_questions', ['id'])
    op.create_index('ix_mcq_questions_test_id', 'mcq_questions', ['test_id'])

    op.create_table(
        'mcq_submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('test_id', sa.Integer(), sa.ForeignKey('mcq_tests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('test_id', 'student_id', name='uq_mcq_submissions_test_student'),
    )
    op.create_index('ix_mcq_submissions_id', 'mcq_submissions', ['id'])
    op.create_index('ix_mcq_submissions_test_id', 'mcq_submissions', ['test_id'])
    op.create_index('ix_mcq_submissions_student_id', 'mcq_submissions', ['student_id'])
    op.create_index('ix_mcq_submissions_submitted_at', 'mcq_submissions', ['submitted_at'])


def downgrade() -> None:
    for table in (
        'mcq_submissions',
        'mcq_questions',
        'mcq_tests',
        'assignment_submissions',
        'assignments',
        'performance_reports',
        'notifications',
        'announcements',
        'attendance',
        'marks',
        'exams',
        'subjects',
        'enrollments',
        'teacher_classes',
        'students',
        'teacher_profiles',
        'student_profiles',
        'profiles',
        'classes',
        'roles',
        'auth_users',
    ):
        op.drop_table(table)
