from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AuthRequest(BaseModel):
    email: str = ''
    password: str = ''


class StudentCreateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    roll_no: str | int | None = None


class StudentUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class ClassCreateRequest(BaseModel):
    name: str | None = None
    section: str | None = None


class EnrollmentCreateRequest(CamelRequest):
    student_id: int | None = Field(default=None, alias='studentId')
    class_id: int | None = Field(default=None, alias='classId')


class MarkCreateRequest(BaseModel):
    student_id: int | None = None
    subject_id: int | None = None
    exam_id: int | None = None
    marks_obtained: Any = None


class MarkUpdateRequest(BaseModel):
    marks_obtained: Any = None


class AttendanceRequest(CamelRequest):
    class_id: int | None = Field(default=None, alias='classId')
    attendance_date: str | None = Field(default=None, alias='date')
    attendance: Any = None


class TeacherMarksRequest(CamelRequest):
    class_id: int | None = Field(default=None, alias='classId')
    exam_id: int | None = Field(default=None, alias='examId')
    subject_id: int | None = Field(default=None, alias='subjectId')
    marks: Any = None


class AnnouncementRequest(CamelRequest):
    class_id: int | None = Field(default=None, alias='classId')
    title: str | None = None
    body: str | None = None


class PerformanceReportRequest(CamelRequest):
    student_id: int | None = Field(default=None, alias='studentId')
    class_id: int | None = Field(default=None, alias='classId')
    period: str | None = None
    avg_marks: float | None = Field(default=None, alias='avgMarks')
    attendance_pct: float | None = Field(default=None, alias='attendancePct')
    total_exams: int | None = Field(default=None, alias='totalExams')
    total_present: int | None = Field(default=None, alias='totalPresent')
    total_absent: int | None = Field(default=None, alias='totalAbsent')
    remarks: str | None = None


class SubjectCreateRequest(CamelRequest):
    class_id: int | None = Field(default=None, alias='classId')
    name: str | None = None


class ExamCreateRequest(CamelRequest):
    class_id: int | None = Field(default=None, alias='classId')
    name: str | None = None
    max_marks: Any = Field(default=None, alias='maxMarks')
    exam_date: str | None = Field(default=None, alias='examDate')


class ProfileUpsertRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: str | None = None
    profile_photo: str | None = None
    branch: str | None = None
    degree: str | None = None
    registration_number: str | None = None
    roll_no: str | None = None
    class_id: int | None = None
    admission_year: int | None = None
    department: str | None = None
    qualification: str | None = None
    years_of_experience: int | None = None
    subjects: list[str] | None = None


class ProfileCompleteRequest(BaseModel):
    user_id: int | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: str | None = None
    profile_photo: str | None = None
    branch: str | None = None
    degree: str | None = None
    registration_number: str | None = None
    admission_year: int | None = None
    department: str | None = None
    qualification: str | None = None
    years_of_experience: int | None = None
    subjects: list[str] | None = None


class StudentDetailsRequest(BaseModel):
    roll_no: str | None = None
    class_id: int | None = None
    admission_year: int | None = None


class TeacherDetailsRequest(BaseModel):
    department: str | None = None
    qualification: str | None = None
    experience_years: int | None = None


class StudentCompletionRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    dob: str | None = None
    address: str | None = None
    profile_picture_url: str | None = None
    branch: str | None = None
    degree: str | None = None
    registration_number: str | None = None


class TeacherCompletionRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    dob: str | None = None
    address: str | None = None
    profile_picture_url: str | None = None
    department: str | None = None
    qualification: str | None = None
    experience_years: int | None = None
    subjects_taught: list[str] | None = None


class NotificationCreateRequest(CamelRequest):
    user_id: int | None = Field(default=None, alias='userId')
    title: str | None = None
    message: str = ''
    type: str = 'info'
    link: str | None = None


class RoleUpdateRequest(BaseModel):
    role: str | None = None


class StatusUpdateRequest(CamelRequest):
    is_active: bool = Field(alias='isActive')


class ClassDeleteRequest(CamelRequest):
    is_deleted: bool = Field(alias='isDeleted')


class TeacherAssignRequest(CamelRequest):
    teacher_id: int | None = Field(default=None, alias='teacherId')


class AssignmentCreateRequest(CamelRequest):
    title: str | None = None
    description: str | None = None
    class_id: int | None = Field(default=None, alias='classId')
    deadline: str | None = None


class McqTestCreateRequest(CamelRequest):
    title: str | None = None
    class_id: int | None = Field(default=None, alias='classId')
    duration: Any = None
    start_date: str | None = Field(default=None, alias='startDate')
    end_date: str | None = Field(default=None, alias='endDate')


class QuestionsRequest(BaseModel):
    questions: Any = None


class TestSubmitRequest(BaseModel):
    answers: Any = None
