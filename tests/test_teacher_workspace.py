from app.models import Announcement, Mark, Notification, PerformanceReport
from app.routers import teacher
from tests.api_case import ApiTestCase


class TeacherWorkspaceTests(ApiTestCase):
    routers = (teacher.router,)

    def setUp(self):
        super().setUp()
        self.teacher_id, token = self.create_user('teacher@campus.test', 'teacher')
        self.teacher = self.auth(token)
        self.school_class = self.add_class('Grade 7')
        self.assign_teacher(self.teacher_id, self.school_class.id)
        self.asha = self.add_student('Asha', 'asha@campus.test', roll_no='1')
        self.ravi = self.add_student('Ravi', 'ravi@campus.test')
        self.enroll(self.asha.id, self.school_class.id)
        self.enroll(self.ravi.id, self.school_class.id)
        self.asha_user_id, _ = self.create_user('asha@campus.test', 'student')

    def _notifications(self, user_id):
        self.db.expire_all()
        return self.db.query(Notification).filter(Notification.user_id == user_id).all()

    def test_students_are_forbidden(self):
        _, token = self.create_user('learner@campus.test', 'student')
        resp = self.client.get('/api/teacher/stats', headers=self.auth(token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['error']['message'], 'Access denied. Teacher role required.')

    def test_student_listing_with_search_and_paging(self):
        resp = self.client.get('/api/teacher/students?limit=1', headers=self.teacher)
        body = resp.json()
        self.assertEqual(body['pagination'], {'page': 1, 'limit': 1, 'total': 2, 'totalPages': 2})
        first = body['data'][0]
        self.assertEqual(first['name'], 'Asha')
        self.assertEqual(first['class'], 'Grade 7')
        self.assertIsNone(first['attendance_pct'])
        self.assertIsNone(first['avg_marks'])

        search = self.client.get('/api/teacher/students?search=RAVI', headers=self.teacher).json()
        self.assertEqual([row['name'] for row in search['data']], ['Ravi'])
        self.assertEqual(search['data'][0]['roll_no'], '—')

        capped = self.client.get('/api/teacher/students?limit=500&sortBy=name&sortOrder=desc', headers=self.teacher).json()
        self.assertEqual(capped['pagination']['limit'], 100)
        self.assertEqual(capped['data'][0]['name'], 'Ravi')

    def test_teacher_without_classes_sees_empty_roster(self):
        _, token = self.create_user('new@campus.test', 'teacher')
        body = self.client.get('/api/teacher/students', headers=self.auth(token)).json()
        self.assertEqual(body['data'], [])
        self.assertEqual(body['pagination']['total'], 0)

    def test_bulk_marks_upsert_and_notify_linked_students(self):
        subject = self.add_subject(self.school_class.id)
        exam = self.add_exam(self.school_class.id, max_marks=50)
        payload = {
            'classId': self.school_class.id,
            'examId': exam.id,
            'subjectId': subject.id,
            'marks': [{'studentId': self.asha.id, 'marksObtained': 40}, {'studentId': self.ravi.id, 'marksObtained': 35.5}],
        }
        resp = self.client.post('/api/teacher/marks', json=payload, headers=self.teacher)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['message'], 'Marks uploaded for 2 students')

        payload['marks'] = [{'studentId': self.asha.id, 'marksObtained': 45}]
        self.client.post('/api/teacher/marks', json=payload, headers=self.teacher)
        self.db.expire_all()
        asha_marks = self.db.query(Mark).filter(Mark.student_id == self.asha.id).all()
        self.assertEqual([row.marks_obtained for row in asha_marks], [45.0])

        notes = self._notifications(self.asha_user_id)
        self.assertEqual(len(notes), 2)
        self.assertEqual(notes[0].title, 'Marks Updated')
        self.assertEqual(notes[0].type, 'marks')

    def test_bulk_marks_validation(self):
        exam = self.add_exam(self.school_class.id, max_marks=50)
        subject = self.add_subject(self.school_class.id)
        base = {'classId': self.school_class.id, 'examId': exam.id, 'subjectId': subject.id}

        empty = self.client.post('/api/teacher/marks', json={**base, 'marks': []}, headers=self.teacher)
        self.assertEqual(empty.json()['error']['message'], 'marks must be a non-empty array')

        negative = self.client.post(
            '/api/teacher/marks',
            json={**base, 'marks': [{'studentId': self.asha.id, 'marksObtained': -2}]},
            headers=self.teacher,
        )
        self.assertEqual(negative.json()['error']['message'], 'marksObtained must be a non-negative number')

        over = self.client.post(
            '/api/teacher/marks',
            json={**base, 'marks': [{'studentId': self.asha.id, 'marksObtained': 51}]},
            headers=self.teacher,
        )
        self.assertEqual(over.status_code, 400)
        self.assertEqual(over.json()['error']['message'], 'Marks obtained (51) cannot exceed max marks (50)')

        missing_exam = self.client.post('/api/teacher/marks', json={'classId': self.school_class.id}, headers=self.teacher)
        self.assertEqual(missing_exam.json()['error']['message'], 'examId is required')

    def test_bulk_marks_rejects_malformed_entries(self):
        exam = self.add_exam(self.school_class.id, max_marks=50)
        subject = self.add_subject(self.school_class.id)
        base = {'classId': self.school_class.id, 'examId': exam.id, 'subjectId': subject.id}

        not_object = self.client.post('/api/teacher/marks', json={**base, 'marks': ['40']}, headers=self.teacher)
        self.assertEqual(not_object.status_code, 400)
        self.assertEqual(not_object.json()['error']['message'], 'Each mark entry must be an object')

        bad_id = self.client.post(
            '/api/teacher/marks',
            json={**base, 'marks': [{'studentId': 'x', 'marksObtained': 5}]},
            headers=self.teacher,
        )
        self.assertEqual(bad_id.status_code, 400)
        self.assertEqual(bad_id.json()['error']['message'], 'Each mark entry must have studentId')
        self.db.expire_all()
        self.assertEqual(self.db.query(Mark).count(), 0)

    def test_bulk_marks_require_exam_and_subject_of_the_class(self):
        other_class = self.add_class('Grade 9')
        own_exam = self.add_exam(self.school_class.id)
        own_subject = self.add_subject(self.school_class.id)
        foreign_exam = self.add_exam(other_class.id, name='Grade 9 final')
        foreign_subject = self.add_subject(other_class.id, name='Physics')
        marks = [{'studentId': self.asha.id, 'marksObtained': 40}]

        exam_resp = self.client.post(
            '/api/teacher/marks',
            json={'classId': self.school_class.id, 'examId': foreign_exam.id, 'subjectId': own_subject.id, 'marks': marks},
            headers=self.teacher,
        )
        self.assertEqual(exam_resp.status_code, 400)
        self.assertEqual(exam_resp.json()['error']['message'], 'Exam does not belong to this class')

        subject_resp = self.client.post(
            '/api/teacher/marks',
            json={'classId': self.school_class.id, 'examId': own_exam.id, 'subjectId': foreign_subject.id, 'marks': marks},
            headers=self.teacher,
        )
        self.assertEqual(subject_resp.status_code, 400)
        self.assertEqual(subject_resp.json()['error']['message'], 'Subject does not belong to this class')
        self.db.expire_all()
        self.assertEqual(self.db.query(Mark).count(), 0)

    def test_attendance_rejects_malformed_entries(self):
        resp = self.client.post(
            '/api/teacher/attendance',
            json={'classId': self.school_class.id, 'attendance': [{'studentId': 'abc', 'status': 'present'}]},
            headers=self.teacher,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error']['message'], 'Each attendance entry must have studentId')

    def test_class_reads_require_assignment(self):
        other_class = self.add_class('Elsewhere')
        for path in ('announcements', 'subjects', 'exams'):
            denied = self.client.get(f'/api/teacher/{path}/{other_class.id}', headers=self.teacher)
            self.assertEqual(denied.status_code, 403)
            self.assertEqual(denied.json()['error']['message'], 'You are not assigned to this class')

        _, admin_token = self.create_user('admin@campus.test', 'admin')
        allowed = self.client.get(f'/api/teacher/exams/{other_class.id}', headers=self.auth(admin_token))
        self.assertEqual(allowed.status_code, 200)

    def test_attendance_notifies_absent_students_only(self):
        resp = self.client.post(
            '/api/teacher/attendance',
            json={
                'classId': self.school_class.id,
                'date': '2026-02-10',
                'attendance': [
                    {'studentId': self.asha.id, 'status': 'absent'},
                    {'studentId': self.ravi.id, 'status': 'present'},
                ],
            },
            headers=self.teacher,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['message'], 'Attendance recorded for 2 students on 2026-02-10')

        notes = self._notifications(self.asha_user_id)
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0].message, 'You were marked absent on 2026-02-10.')

    def test_attendance_requires_entries(self):
        resp = self.client.post(
            '/api/teacher/attendance',
            json={'classId': self.school_class.id, 'attendance': []},
            headers=self.teacher,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error']['message'], 'attendance must be a non-empty array')

    def test_announcements(self):
        resp = self.client.post(
            '/api/teacher/announcement',
            json={'classId': self.school_class.id, 'title': ' Field trip ', 'body': 'Bring lunch.'},
            headers=self.teacher,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['title'], 'Field trip')
        self.assertEqual(self._notifications(self.asha_user_id)[0].title, 'New Announcement')

        long_title = self.client.post(
            '/api/teacher/announcement',
            json={'classId': self.school_class.id, 'title': 'x' * 201, 'body': 'b'},
            headers=self.teacher,
        )
        self.assertEqual(long_title.json()['error']['message'], 'title must be under 200 characters')

        hidden = self.db.query(Announcement).first()
        self.db.add(Announcement(class_id=self.school_class.id, title='Old', body='gone', deleted_at=hidden.created_at))
        self.db.commit()
        listing = self.client.get(f'/api/teacher/announcements/{self.school_class.id}', headers=self.teacher).json()
        self.assertEqual(listing['count'], 1)

    def test_performance_report_upserts_per_period(self):
        payload = {
            'studentId': self.asha.id,
            'classId': self.school_class.id,
            'period': '2026-Q1',
            'avgMarks': 78.5,
            'attendancePct': 92,
        }
        first = self.client.post('/api/teacher/performance', json=payload, headers=self.teacher)
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()['data']['avg_marks'], 78.5)

        payload['remarks'] = 'Steady progress'
        self.client.post('/api/teacher/performance', json=payload, headers=self.teacher)
        self.db.expire_all()
        reports = self.db.query(PerformanceReport).all()
        self.assertEqual(len(reports), 1)
        self.assertEqual(reports[0].remarks, 'Steady progress')

        missing = self.client.post('/api/teacher/performance', json={**payload, 'period': ''}, headers=self.teacher)
        self.assertEqual(missing.json()['error']['message'], "period is required (e.g. '2024-Q1')")

    def test_subjects_and_exams(self):
        subject = self.client.post(
            '/api/teacher/subjects',
            json={'classId': self.school_class.id, 'name': 'Science'},
            headers=self.teacher,
        )
        self.assertEqual(subject.status_code, 201)
        subjects = self.client.get(f'/api/teacher/subjects/{self.school_class.id}', headers=self.teacher).json()
        self.assertEqual([row['name'] for row in subjects['data']], ['Science'])

        exam = self.client.post(
            '/api/teacher/exams',
            json={'classId': self.school_class.id, 'name': 'Unit 1', 'maxMarks': 25, 'examDate': '2026-04-01'},
            headers=self.teacher,
        )
        self.assertEqual(exam.status_code, 201)
        self.assertEqual(exam.json()['data']['exam_date'], '2026-04-01')

        bad = self.client.post(
            '/api/teacher/exams',
            json={'classId': self.school_class.id, 'name': 'Unit 2', 'maxMarks': 0},
            headers=self.teacher,
        )
        self.assertEqual(bad.json()['error']['message'], 'maxMarks must be a positive number')

        other_class = self.add_class('Elsewhere')
        denied = self.client.post(
            '/api/teacher/subjects',
            json={'classId': other_class.id, 'name': 'Art'},
            headers=self.teacher,
        )
        self.assertEqual(denied.status_code, 403)

    def test_stats(self):
        other = self.add_class('Grade 8')
        self.assign_teacher(self.teacher_id, other.id)
        self.enroll(self.asha.id, other.id)
        resp = self.client.get('/api/teacher/stats', headers=self.teacher)
        self.assertEqual(resp.json()['data'], {'totalClasses': 2, 'totalStudents': 2})
