from app.routers import (
    admin,
    assignments,
    attendance,
    auth,
    classes,
    enrollments,
    marks,
    mcq_tests,
    notifications,
    profile,
    profile_completion,
    roles,
    student,
    students,
    system,
    teacher,
    upload,
)

__all__ = [
    'admin',
    'assignments',
    'attendance',
    'auth',
    'classes',
    'enrollments',
    'marks',
    'mcq_tests',
    'notifications',
    'profile',
    'profile_completion',
    'roles',
    'student',
    'students',
    'system',
    'teacher',
    'upload',
]
