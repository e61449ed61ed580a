from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time_provider import default_time_provider
from app.db import Base


_utcnow = default_time_provider.utcnow


class Role(str, Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'
    STUDENT = 'student'


class AttendanceStatus(str, Enum):
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'


class SubmissionStatus(str, Enum):
    ON_TIME = 'on-time'
    LATE = 'late'


class AuthUser(Base):
    __tablename__ = 'auth_users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), default='')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)


class UserRole(Base):
    __tablename__ = 'roles'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), unique=True, index=True)
    role: Mapped[str] = mapped_column(String(20), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class Profile(Base):
    __tablename__ = 'profiles'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), default='')
    first_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    profile_photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


class StudentProfile(Base):
    __tablename__ = 'student_profiles'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), unique=True, index=True)
    branch: Mapped[str | None] = mapped_column(String(120), nullable=True)
    degree: Mapped[str | None] = mapped_column(String(120), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(60), nullable=True)
    roll_no: Mapped[str | None] = mapped_column(String(40), nullable=True)
    class_id: Mapped[int | None] = mapped_column(ForeignKey('classes.id', ondelete='SET NULL'), nullable=True)
    admission_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


class TeacherProfile(Base):
    __tablename__ = 'teacher_profiles'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), unique=True, index=True)
    department: Mapped[str | None] = mapped_column(String(120), nullable=True)
    qualification: Mapped[str | None] = mapped_column(String(120), nullable=True)
    experience_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subjects_taught: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


class Student(Base):
    __tablename__ = 'students'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    roll_no: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    enrollments: Mapped[list['Enrollment']] = relationship(
        'Enrollment', back_populates='student', cascade='all, delete-orphan', passive_deletes=True
    )


class SchoolClass(Base):
    __tablename__ = 'classes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160))
    section: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    enrollments: Mapped[list['Enrollment']] = relationship(
        'Enrollment', back_populates='school_class', cascade='all, delete-orphan', passive_deletes=True
    )
    teacher_links: Mapped[list['TeacherClass']] = relationship(
        'TeacherClass', back_populates='school_class', cascade='all, delete-orphan', passive_deletes=True
    )
    subjects: Mapped[list['Subject']] = relationship('Subject', cascade='all, delete-orphan', passive_deletes=True)
    exams: Mapped[list['Exam']] = relationship('Exam', cascade='all, delete-orphan', passive_deletes=True)


class TeacherClass(Base):
    __tablename__ = 'teacher_classes'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'class_id', name='uq_teacher_classes_teacher_class'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    school_class: Mapped[SchoolClass] = relationship('SchoolClass', back_populates='teacher_links')


class Enrollment(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        UniqueConstraint('student_id', 'class_id', name='uq_enrollments_student_class'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    student: Mapped[Student] = relationship('Student', back_populates='enrollments')
    school_class: Mapped[SchoolClass] = relationship('SchoolClass', back_populates='enrollments')


class Subject(Base):
    __tablename__ = 'subjects'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    name: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class Exam(Base):
    __tablename__ = 'exams'
    __table_args__ = (
        CheckConstraint('max_marks > 0', name='ck_exams_max_marks_positive'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    name: Mapped[str] = mapped_column(String(120))
    max_marks: Mapped[float] = mapped_column(Float, default=100)
    exam_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)


class Mark(Base):
    __tablename__ = 'marks'
    __table_args__ = (
        UniqueConstraint('student_id', 'exam_id', 'subject_id', name='uq_marks_student_exam_subject'),
        CheckConstraint('marks_obtained >= 0', name='ck_marks_non_negative'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey('subjects.id', ondelete='CASCADE'), index=True)
    exam_id: Mapped[int] = mapped_column(ForeignKey('exams.id', ondelete='CASCADE'), index=True)
    marks_obtained: Mapped[float] = mapped_column(Float)
    uploaded_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    student: Mapped[Student] = relationship('Student')
    subject: Mapped[Subject] = relationship('Subject')
    exam: Mapped[Exam] = relationship('Exam')


class Attendance(Base):
    __tablename__ = 'attendance'
    __table_args__ = (
        UniqueConstraint('class_id', 'student_id', 'date', name='uq_attendance_class_student_date'),
        CheckConstraint("status IN ('present', 'absent', 'late')", name='ck_attendance_status'),
        Index('ix_attendance_class_date', 'class_id', 'date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    attendance_date: Mapped[date] = mapped_column('date', Date, index=True)
    status: Mapped[str] = mapped_column(String(20))
    marked_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    student: Mapped[Student] = relationship('Student')


class Announcement(Base):
    __tablename__ = 'announcements'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    title: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text, default='')
    created_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    school_class: Mapped[SchoolClass] = relationship('SchoolClass')


class Notification(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        Index('ix_notifications_user_created', 'user_id', 'created_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), index=True)
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text, default='')
    type: Mapped[str] = mapped_column(String(40), default='info')
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    link: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)


class PerformanceReport(Base):
    __tablename__ = 'performance_reports'
    __table_args__ = (
        UniqueConstraint('student_id', 'class_id', 'period', name='uq_performance_student_class_period'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    period: Mapped[str] = mapped_column(String(40))
    avg_marks: Mapped[float] = mapped_column(Float, default=0)
    attendance_pct: Mapped[float] = mapped_column(Float, default=0)
    total_exams: Mapped[int] = mapped_column(Integer, default=0)
    total_present: Mapped[int] = mapped_column(Integer, default=0)
    total_absent: Mapped[int] = mapped_column(Integer, default=0)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    school_class: Mapped[SchoolClass] = relationship('SchoolClass')


class Assignment(Base):
    __tablename__ = 'assignments'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    deadline: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    school_class: Mapped[SchoolClass] = relationship('SchoolClass')
    submissions: Mapped[list['AssignmentSubmission']] = relationship(
        'AssignmentSubmission', back_populates='assignment', cascade='all, delete-orphan', passive_deletes=True
    )


class AssignmentSubmission(Base):
    __tablename__ = 'assignment_submissions'
    __table_args__ = (
        UniqueConstraint('assignment_id', 'student_id', name='uq_assignment_submissions_assignment_student'),
        CheckConstraint("status IN ('on-time', 'late')", name='ck_assignment_submissions_status'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey('assignments.id', ondelete='CASCADE'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    file_url: Mapped[str] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20))
    marks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    assignment: Mapped[Assignment] = relationship('Assignment', back_populates='submissions')
    student: Mapped[Student] = relationship('Student')


class McqTest(Base):
    __tablename__ = 'mcq_tests'
    __table_args__ = (
        CheckConstraint('duration > 0', name='ck_mcq_tests_duration_positive'),
        CheckConstraint('end_date > start_date', name='ck_mcq_tests_window'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    class_id: Mapped[int] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), index=True)
    duration: Mapped[int] = mapped_column(Integer)
    start_date: Mapped[datetime] = mapped_column(DateTime)
    end_date: Mapped[datetime] = mapped_column(DateTime)
    created_by: Mapped[int] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    school_class: Mapped[SchoolClass] = relationship('SchoolClass')
    questions: Mapped[list['McqQuestion']] = relationship(
        'McqQuestion', back_populates='test', cascade='all, delete-orphan', passive_deletes=True
    )
    submissions: Mapped[list['McqSubmission']] = relationship(
        'McqSubmission', back_populates='test', cascade='all, delete-orphan', passive_deletes=True
    )


class McqQuestion(Base):
    __tablename__ = 'mcq_questions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(ForeignKey('mcq_tests.id', ondelete='CASCADE'), index=True)
    question: Mapped[str] = mapped_column(Text)
    options: Mapped[list] = mapped_column(JSON)
    correct_answer: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    test: Mapped[McqTest] = relationship('McqTest', back_populates='questions')


class McqSubmission(Base):
    __tablename__ = 'mcq_submissions'
    __table_args__ = (
        UniqueConstraint('test_id', 'student_id', name='uq_mcq_submissions_test_student'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(ForeignKey('mcq_tests.id', ondelete='CASCADE'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    answers: Mapped[dict] = mapped_column(JSON)
    score: Mapped[int] = mapped_column(Integer, default=0)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    test: Mapped[McqTest] = relationship('McqTest', back_populates='submissions')
    student: Mapped[Student] = relationship('Student')
