from app.routers import marks
from tests.api_case import ApiTestCase


class MarksApiTests(ApiTestCase):
    routers = (marks.router,)

    def setUp(self):
        super().setUp()
        self.teacher_id, teacher_token = self.create_user('teacher@campus.test', 'teacher')
        self.teacher = self.auth(teacher_token)
        self.school_class = self.add_class('Grade 10')
        self.assign_teacher(self.teacher_id, self.school_class.id)
        self.subject = self.add_subject(self.school_class.id)
        self.exam = self.add_exam(self.school_class.id, max_marks=100)
        self.student = self.add_student('Asha', 'asha@campus.test')

    def _payload(self, **overrides):
        payload = {
            'student_id': self.student.id,
            'subject_id': self.subject.id,
            'exam_id': self.exam.id,
            'marks_obtained': 85,
        }
        payload.update(overrides)
        return payload

    def test_teacher_uploads_mark_once(self):
        resp = self.client.post('/api/marks', json=self._payload(), headers=self.teacher)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['marks_obtained'], 85)
        self.assertEqual(resp.json()['data']['uploaded_by'], self.teacher_id)

        again = self.client.post('/api/marks', json=self._payload(marks_obtained=90), headers=self.teacher)
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()['error']['message'], 'Mark already exists for this student-subject-exam combination')

    def test_upload_validation(self):
        missing = self.client.post('/api/marks', json={'student_id': self.student.id}, headers=self.teacher)
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(
            missing.json()['error']['message'],
            'student_id, subject_id, exam_id, and marks_obtained are required',
        )

        for bad in (-1, 12.5, '40'):
            resp = self.client.post('/api/marks', json=self._payload(marks_obtained=bad), headers=self.teacher)
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()['error']['message'], 'marks_obtained must be a non-negative integer')

        over = self.client.post('/api/marks', json=self._payload(marks_obtained=120), headers=self.teacher)
        self.assertEqual(over.status_code, 400)
        self.assertEqual(over.json()['error']['message'], 'Marks obtained (120) cannot exceed max marks (100)')

    def test_zero_marks_accepted(self):
        resp = self.client.post('/api/marks', json=self._payload(marks_obtained=0), headers=self.teacher)
        self.assertEqual(resp.status_code, 201)

    def test_students_and_unassigned_teachers_cannot_upload(self):
        _, student_token = self.create_user('asha@campus.test', 'student')
        resp = self.client.post('/api/marks', json=self._payload(), headers=self.auth(student_token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['error']['message'], 'Only teachers and admins can upload marks')

        _, other_token = self.create_user('other@campus.test', 'teacher')
        resp = self.client.post('/api/marks', json=self._payload(), headers=self.auth(other_token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['error']['message'], 'You are not authorized to upload marks for this class')

    def test_update_restricted_to_uploader_or_admin(self):
        mark_id = self.client.post('/api/marks', json=self._payload(), headers=self.teacher).json()['data']['id']

        _, other_token = self.create_user('other@campus.test', 'teacher')
        denied = self.client.put(f'/api/marks/{mark_id}', json={'marks_obtained': 70}, headers=self.auth(other_token))
        self.assertEqual(denied.status_code, 403)

        _, admin_token = self.create_user('admin@campus.test', 'admin')
        ok = self.client.put(f'/api/marks/{mark_id}', json={'marks_obtained': 70}, headers=self.auth(admin_token))
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()['data']['marks_obtained'], 70)

        missing = self.client.put('/api/marks/999', json={'marks_obtained': 70}, headers=self.teacher)
        self.assertEqual(missing.status_code, 404)

    def test_student_reads_own_marks(self):
        self.client.post('/api/marks', json=self._payload(), headers=self.teacher)
        _, student_token = self.create_user('ASHA@campus.test', 'student')

        resp = self.client.get('/api/marks/me', headers=self.auth(student_token))
        body = resp.json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['data'][0]['subject']['name'], 'Mathematics')
        self.assertEqual(body['data'][0]['exam']['max_marks'], 100)

        self.assertEqual(self.client.get('/api/marks/me', headers=self.teacher).status_code, 403)

    def test_student_without_roster_row(self):
        _, token = self.create_user('stranger@campus.test', 'student')
        resp = self.client.get('/api/marks/me', headers=self.auth(token))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()['error']['message'], 'Student record not found')

    def test_class_and_exam_views(self):
        self.client.post('/api/marks', json=self._payload(), headers=self.teacher)

        by_class = self.client.get(f'/api/marks/class/{self.school_class.id}', headers=self.teacher).json()
        self.assertEqual(by_class['count'], 1)
        self.assertEqual(by_class['data'][0]['student']['name'], 'Asha')

        by_exam = self.client.get(f'/api/marks/exam/{self.exam.id}', headers=self.teacher).json()
        self.assertEqual(by_exam['data'][0]['subject']['name'], 'Mathematics')

        _, other_token = self.create_user('other@campus.test', 'teacher')
        denied = self.client.get(f'/api/marks/exam/{self.exam.id}', headers=self.auth(other_token))
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()['error']['message'], 'You are not authorized to view marks for this exam')
