from datetime import date, datetime

from app.models import Announcement, Attendance, Mark, Notification, PerformanceReport
from app.routers import student
from tests.api_case import ApiTestCase


class StudentPortalTests(ApiTestCase):
    routers = (student.router,)

    def setUp(self):
        super().setUp()
        self.teacher_id, _ = self.create_user('priya@campus.test', 'teacher')
        self.add_profile(self.teacher_id, 'priya@campus.test', 'Priya', 'Nair', 'teacher')
        self.user_id, token = self.create_user('asha@campus.test', 'student')
        self.headers = self.auth(token)
        self.school_class = self.add_class('Grade 6')
        self.student = self.add_student('Asha', 'asha@campus.test')
        self.enroll(self.student.id, self.school_class.id)
        self.subject = self.add_subject(self.school_class.id)

    def _add_marks(self, student_id, *values):
        for index, value in enumerate(values):
            exam = self.add_exam(self.school_class.id, name=f'Exam {student_id}-{index}')
            self.db.add(
                Mark(
                    student_id=student_id,
                    subject_id=self.subject.id,
                    exam_id=exam.id,
                    marks_obtained=value,
                    uploaded_by=self.teacher_id,
                )
            )
        self.db.commit()

    def _add_attendance(self, *statuses):
        for day, status in enumerate(statuses, start=1):
            self.db.add(
                Attendance(
                    class_id=self.school_class.id,
                    student_id=self.student.id,
                    attendance_date=date(2026, 3, day),
                    status=status,
                )
            )
        self.db.commit()

    def test_non_students_are_rejected(self):
        _, token = self.create_user('teacher2@campus.test', 'teacher')
        resp = self.client.get('/api/student/marks', headers=self.auth(token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['error']['message'], 'Access denied. Student role required.')

    def test_student_without_roster_row(self):
        _, token = self.create_user('ghost@campus.test', 'student')
        resp = self.client.get('/api/student/marks', headers=self.auth(token))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(
            resp.json()['error']['message'],
            'Student record not found. Please contact your administrator.',
        )

    def test_marks_include_teacher_name_and_average(self):
        self._add_marks(self.student.id, 80, 90)
        body = self.client.get('/api/student/marks', headers=self.headers).json()
        self.assertEqual(body['summary'], {'total': 2, 'average': 85})
        self.assertEqual(body['data'][0]['teacher_name'], 'Priya Nair')
        self.assertEqual(body['data'][0]['subject']['name'], 'Mathematics')

    def test_attendance_history_and_summary(self):
        self._add_attendance('present', 'present', 'late', 'absent')

        history = self.client.get('/api/student/attendance', headers=self.headers).json()
        self.assertEqual(history['data'][0]['date'], '2026-03-04')
        self.assertEqual(
            history['summary'],
            {'total': 4, 'present': 2, 'late': 1, 'absent': 1, 'attendancePct': 75},
        )

        summary = self.client.get('/api/student/attendance/summary', headers=self.headers).json()['data']
        self.assertEqual(summary, {'present': 3, 'total': 4, 'percentage': 75, 'comment': 'Good, Keep Improving'})

    def test_summary_without_records(self):
        summary = self.client.get('/api/student/attendance/summary', headers=self.headers).json()['data']
        self.assertEqual(summary['percentage'], 0)
        self.assertEqual(summary['comment'], 'Critical, Improve Immediately')

    def test_progress_combines_marks_and_attendance(self):
        self._add_marks(self.student.id, 80, 90)
        rival = self.add_student('Ravi', 'ravi@campus.test')
        self._add_marks(rival.id, 95)
        self._add_attendance('present', 'present', 'late', 'absent')

        data = self.client.get('/api/student/progress', headers=self.headers).json()['data']
        self.assertEqual(data['avgMarks'], 85)
        self.assertEqual(data['attendancePct'], 75)
        self.assertEqual(data['combinedScore'], 81)
        self.assertEqual(data['standing'], 'Good')
        self.assertEqual(data['rankEstimate'], {'rank': 2, 'totalStudents': 2, 'percentile': 0})
        self.assertEqual(data['totalExams'], 2)
        self.assertEqual(data['totalClassDays'], 4)

    def test_progress_without_data(self):
        data = self.client.get('/api/student/progress', headers=self.headers).json()['data']
        self.assertEqual(data['avgMarks'], 0)
        self.assertEqual(data['standing'], 'Needs Improvement')
        self.assertIsNone(data['rankEstimate'])

    def test_notification_feed_merges_announcements(self):
        self.db.add(
            Notification(
                user_id=self.user_id,
                title='Marks Updated',
                message='Your marks have been uploaded for the latest exam.',
                type='marks',
                created_at=datetime(2026, 3, 1, 9, 0),
            )
        )
        self.db.add(
            Announcement(
                class_id=self.school_class.id,
                title='Holiday',
                body='School closed Friday.',
                created_at=datetime(2026, 3, 2, 9, 0),
            )
        )
        self.db.commit()

        body = self.client.get('/api/student/notifications', headers=self.headers).json()
        self.assertEqual(body['count'], 2)
        self.assertEqual(body['unreadCount'], 1)
        self.assertEqual(body['data'][0]['source'], 'announcement')
        self.assertEqual(body['data'][0]['class_name'], 'Grade 6')
        self.assertEqual(body['data'][1]['source'], 'notification')

        announcements = self.client.get('/api/student/announcements', headers=self.headers).json()
        self.assertEqual(announcements['data'][0]['classes'], {'name': 'Grade 6'})

    def test_performance_reports(self):
        self.db.add(
            PerformanceReport(
                student_id=self.student.id,
                class_id=self.school_class.id,
                period='2026-Q1',
                avg_marks=82,
                attendance_pct=90,
            )
        )
        self.db.commit()
        body = self.client.get('/api/student/performance', headers=self.headers).json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['data'][0]['class'], {'name': 'Grade 6'})
        self.assertEqual(body['data'][0]['avg_marks'], 82)
