from app.models import Attendance
from app.routers import attendance
from tests.api_case import ApiTestCase


class AttendanceApiTests(ApiTestCase):
    routers = (attendance.router,)

    def setUp(self):
        super().setUp()
        self.teacher_id, token = self.create_user('teacher@campus.test', 'teacher')
        self.teacher = self.auth(token)
        self.school_class = self.add_class('Grade 8')
        self.assign_teacher(self.teacher_id, self.school_class.id)
        self.asha = self.add_student('Asha', 'asha@campus.test', roll_no='1')
        self.ravi = self.add_student('Ravi', 'ravi@campus.test', roll_no='2')

    def _mark(self, entries, day='2026-03-02', headers=None):
        return self.client.post(
            '/api/attendance',
            json={'classId': self.school_class.id, 'date': day, 'attendance': entries},
            headers=headers or self.teacher,
        )

    def test_marking_twice_overwrites_status(self):
        first = self._mark([
            {'studentId': self.asha.id, 'status': 'present'},
            {'studentId': self.ravi.id, 'status': 'absent'},
        ])
        self.assertEqual(first.status_code, 201)
        self.assertEqual(len(first.json()['data']), 2)

        second = self._mark([{'studentId': self.ravi.id, 'status': 'Late'}])
        self.assertEqual(second.json()['data'][0]['status'], 'late')

        self.db.expire_all()
        rows = self.db.query(Attendance).filter(Attendance.student_id == self.ravi.id).all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].status, 'late')

    def test_rejects_bad_payloads(self):
        empty = self._mark([])
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(empty.json()['error']['message'], 'Invalid attendance data')

        no_class = self.client.post('/api/attendance', json={'attendance': [{'studentId': 1, 'status': 'present'}]}, headers=self.teacher)
        self.assertEqual(no_class.json()['error']['message'], 'Invalid attendance data')

        no_student = self._mark([{'status': 'present'}])
        self.assertEqual(no_student.json()['error']['message'], 'Each attendance entry must have studentId')

        bad_status = self._mark([{'studentId': self.asha.id, 'status': 'sick'}])
        self.assertEqual(bad_status.json()['error']['message'], 'status must be one of: present, absent, late')

        bad_date = self._mark([{'studentId': self.asha.id, 'status': 'present'}], day='02/03/2026')
        self.assertEqual(bad_date.status_code, 400)
        self.assertEqual(bad_date.json()['error']['message'], 'date must be in YYYY-MM-DD format')

    def test_rejects_malformed_entries(self):
        not_object = self._mark([5])
        self.assertEqual(not_object.status_code, 400)
        self.assertEqual(not_object.json()['error']['message'], 'Each attendance entry must be an object')

        for student_id in ('abc', True, 1.5, 0):
            resp = self._mark([{'studentId': student_id, 'status': 'present'}])
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()['error']['message'], 'Each attendance entry must have studentId')

        numeric_text = self._mark([{'studentId': str(self.asha.id), 'status': 'present'}])
        self.assertEqual(numeric_text.status_code, 201)
        self.db.expire_all()
        self.assertEqual(self.db.query(Attendance).count(), 1)

    def test_unassigned_teacher_forbidden(self):
        _, token = self.create_user('other@campus.test', 'teacher')
        resp = self._mark([{'studentId': self.asha.id, 'status': 'present'}], headers=self.auth(token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['error']['message'], 'You are not assigned to this class')

    def test_admin_bypasses_class_scope(self):
        _, token = self.create_user('admin@campus.test', 'admin')
        resp = self._mark([{'studentId': self.asha.id, 'status': 'present'}], headers=self.auth(token))
        self.assertEqual(resp.status_code, 201)

    def test_class_listing_filters_by_date(self):
        self._mark([{'studentId': self.asha.id, 'status': 'present'}], day='2026-03-02')
        self._mark([{'studentId': self.asha.id, 'status': 'absent'}], day='2026-03-03')

        everything = self.client.get(f'/api/attendance/class/{self.school_class.id}', headers=self.teacher).json()
        self.assertEqual(everything['count'], 2)
        self.assertEqual(everything['data'][0]['date'], '2026-03-03')
        self.assertEqual(everything['data'][0]['students']['roll_no'], '1')

        one_day = self.client.get(
            f'/api/attendance/class/{self.school_class.id}?date=2026-03-02',
            headers=self.teacher,
        ).json()
        self.assertEqual([row['status'] for row in one_day['data']], ['present'])

    def test_listing_unknown_class(self):
        resp = self.client.get('/api/attendance/class/999', headers=self.teacher)
        self.assertEqual(resp.status_code, 404)
