from datetime import datetime

from freezegun import freeze_time

from app.core.errors import AppError
from app.models import McqQuestion, McqSubmission, McqTest, Notification
from app.routers import mcq_tests
from app.services import mcq_test_service
from tests.api_case import ApiTestCase

OPEN_WINDOW = {'startDate': '2020-01-01T09:00:00Z', 'endDate': '2099-01-01T09:00:00Z'}

QUESTIONS = [
    {'question': '2 + 2 = ?', 'options': ['3', '4', '5'], 'correct_answer': '4'},
    {'question': 'Capital of France?', 'options': ['Paris', 'Rome'], 'correct_answer': 'Paris'},
]


class McqTestApiTests(ApiTestCase):
    routers = (mcq_tests.router,)

    def setUp(self):
        super().setUp()
        self.teacher_id, token = self.create_user('teacher@campus.test', 'teacher')
        self.teacher = self.auth(token)
        self.school_class = self.add_class('Grade 10')
        self.student = self.add_student('Asha', 'asha@campus.test')
        self.enroll(self.student.id, self.school_class.id)
        self.student_user_id, student_token = self.create_user('asha@campus.test', 'student')
        self.headers = self.auth(student_token)

    def _create(self, **overrides):
        payload = {'title': 'Quiz 1', 'classId': self.school_class.id, 'duration': 30, **OPEN_WINDOW}
        payload.update(overrides)
        return self.client.post('/api/tests/teacher', json=payload, headers=self.teacher)

    def _published_test(self):
        test_id = self._create().json()['data']['id']
        rows = self.client.post(
            f'/api/tests/teacher/{test_id}/questions',
            json={'questions': QUESTIONS},
            headers=self.teacher,
        ).json()['data']
        return test_id, [row['id'] for row in rows]

    def test_create_and_notify(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['duration'], 30)
        self.assertEqual(resp.json()['data']['start_date'], '2020-01-01T09:00:00')

        self.db.expire_all()
        note = self.db.query(Notification).filter(Notification.user_id == self.student_user_id).one()
        self.assertEqual(note.title, 'New MCQ Test')
        self.assertEqual(note.message, 'A new test "Quiz 1" has been scheduled for your class.')
        self.assertEqual(note.link, '/student/tests')

    def test_create_validation(self):
        missing = self._create(title='')
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json()['error']['message'], 'All fields are required')

        bad_duration = self._create(duration=-5)
        self.assertEqual(bad_duration.json()['error']['message'], 'duration must be a positive number of minutes')

        inverted = self._create(startDate='2026-05-02T10:00:00Z', endDate='2026-05-02T09:00:00Z')
        self.assertEqual(inverted.json()['error']['message'], 'endDate must be after startDate')

        bad_date = self._create(startDate='tomorrow')
        self.assertEqual(bad_date.json()['error']['message'], 'startDate must be a valid ISO date')

    def test_add_questions(self):
        test_id = self._create().json()['data']['id']

        empty = self.client.post(f'/api/tests/teacher/{test_id}/questions', json={'questions': []}, headers=self.teacher)
        self.assertEqual(empty.json()['error']['message'], 'Questions array is required')

        wrong_answer = self.client.post(
            f'/api/tests/teacher/{test_id}/questions',
            json={'questions': [{'question': 'Pick', 'options': ['a', 'b'], 'correct_answer': 'c'}]},
            headers=self.teacher,
        )
        self.assertEqual(wrong_answer.json()['error']['message'], 'correct_answer must be one of the options')

        one_option = self.client.post(
            f'/api/tests/teacher/{test_id}/questions',
            json={'questions': [{'question': 'Pick', 'options': ['a'], 'correct_answer': 'a'}]},
            headers=self.teacher,
        )
        self.assertEqual(one_option.json()['error']['message'], 'Each question needs question, options and correct_answer')

        _, other_token = self.create_user('other@campus.test', 'teacher')
        denied = self.client.post(
            f'/api/tests/teacher/{test_id}/questions',
            json={'questions': QUESTIONS},
            headers=self.auth(other_token),
        )
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()['error']['message'], 'Not authorized to modify this test')

        ok = self.client.post(f'/api/tests/teacher/{test_id}/questions', json={'questions': QUESTIONS}, headers=self.teacher)
        self.assertEqual(ok.status_code, 201)
        self.assertEqual(len(ok.json()['data']), 2)
        self.db.expire_all()
        titles = {row.title for row in self.db.query(Notification).filter(Notification.user_id == self.student_user_id)}
        self.assertEqual(titles, {'New MCQ Test', 'New Test Published'})

    def test_take_hides_answers(self):
        test_id, _ = self._published_test()
        data = self.client.get(f'/api/tests/student/{test_id}', headers=self.headers).json()['data']
        self.assertEqual(data['test']['title'], 'Quiz 1')
        self.assertEqual(len(data['questions']), 2)
        self.assertNotIn('correct_answer', data['questions'][0])

    def test_window_enforced(self):
        upcoming = self._create(title='Later', startDate='2099-01-01T09:00:00Z', endDate='2099-01-02T09:00:00Z')
        resp = self.client.get(f"/api/tests/student/{upcoming.json()['data']['id']}", headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error']['message'], 'Test has not started yet')

        closed = self._create(title='Earlier', startDate='2020-01-01T09:00:00Z', endDate='2020-01-02T09:00:00Z')
        resp = self.client.get(f"/api/tests/student/{closed.json()['data']['id']}", headers=self.headers)
        self.assertEqual(resp.json()['error']['message'], 'Test has ended')

    def test_submit_scores_once(self):
        test_id, question_ids = self._published_test()
        answers = {str(question_ids[0]): '4', str(question_ids[1]): 'Rome'}

        resp = self.client.post(f'/api/tests/student/{test_id}/submit', json={'answers': answers}, headers=self.headers)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['message'], 'Test submitted. Your score: 1/2')
        self.assertEqual(resp.json()['data']['score'], 1)

        again = self.client.post(f'/api/tests/student/{test_id}/submit', json={'answers': answers}, headers=self.headers)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()['error']['message'], 'You have already submitted this test')

        reopen = self.client.get(f'/api/tests/student/{test_id}', headers=self.headers)
        self.assertEqual(reopen.json()['error']['message'], 'You have already submitted this test')

        listing = self.client.get('/api/tests/student', headers=self.headers).json()['data']
        self.assertEqual(listing[0]['submission']['score'], 1)
        self.assertEqual(listing[0]['classes'], {'name': 'Grade 10'})

    def test_submit_requires_answers(self):
        test_id, _ = self._published_test()
        resp = self.client.post(f'/api/tests/student/{test_id}/submit', json={'answers': ['4']}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error']['message'], 'Answers are required')

    def test_unenrolled_student_cannot_open_or_submit(self):
        test_id, question_ids = self._published_test()
        outsider = self.add_student('Kiran', 'kiran@campus.test')
        self.enroll(outsider.id, self.add_class('Grade 11').id)
        _, token = self.create_user('kiran@campus.test', 'student')

        opened = self.client.get(f'/api/tests/student/{test_id}', headers=self.auth(token))
        self.assertEqual(opened.status_code, 404)
        self.assertEqual(opened.json()['error']['message'], 'Test not found or access denied')

        submitted = self.client.post(
            f'/api/tests/student/{test_id}/submit',
            json={'answers': {str(question_ids[0]): '4'}},
            headers=self.auth(token),
        )
        self.assertEqual(submitted.status_code, 404)
        self.db.expire_all()
        self.assertEqual(self.db.query(McqSubmission).count(), 0)

        listing = self.client.get('/api/tests/student', headers=self.auth(token)).json()['data']
        self.assertEqual(listing, [])

    def test_malformed_question_entries_rejected(self):
        test_id = self._create().json()['data']['id']
        for questions in ([5], ['What is 2 + 2?'], [None]):
            resp = self.client.post(
                f'/api/tests/teacher/{test_id}/questions',
                json={'questions': questions},
                headers=self.teacher,
            )
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()['error']['message'], 'Each question needs question, options and correct_answer')
        self.db.expire_all()
        self.assertEqual(self.db.query(McqQuestion).count(), 0)

    def test_results_ranked_for_owner(self):
        test_id, question_ids = self._published_test()
        ravi = self.add_student('Ravi', 'ravi@campus.test')
        self.enroll(ravi.id, self.school_class.id)
        _, ravi_token = self.create_user('ravi@campus.test', 'student')

        self.client.post(
            f'/api/tests/student/{test_id}/submit',
            json={'answers': {str(question_ids[0]): '3'}},
            headers=self.headers,
        )
        self.client.post(
            f'/api/tests/student/{test_id}/submit',
            json={'answers': {str(question_ids[0]): '4', str(question_ids[1]): 'Paris'}},
            headers=self.auth(ravi_token),
        )

        results = self.client.get(f'/api/tests/teacher/{test_id}/results', headers=self.teacher).json()['data']
        self.assertEqual([row['students']['name'] for row in results], ['Ravi', 'Asha'])
        self.assertEqual([row['score'] for row in results], [2, 0])

        _, other_token = self.create_user('other@campus.test', 'teacher')
        denied = self.client.get(f'/api/tests/teacher/{test_id}/results', headers=self.auth(other_token))
        self.assertEqual(denied.status_code, 403)

        teacher_list = self.client.get('/api/tests/teacher', headers=self.teacher).json()['data']
        self.assertEqual(teacher_list[0]['classes'], {'name': 'Grade 10'})


class McqWindowTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        teacher_id, _ = self.create_user('teacher@campus.test', 'teacher')
        school_class = self.add_class('Grade 10')
        self.student = self.add_student('Asha', 'asha@campus.test')
        self.enroll(self.student.id, school_class.id)
        self.test = McqTest(
            title='Timed quiz',
            class_id=school_class.id,
            duration=20,
            start_date=datetime(2026, 2, 13, 9, 0),
            end_date=datetime(2026, 2, 13, 10, 0),
            created_by=teacher_id,
        )
        self.db.add(self.test)
        self.db.commit()
        self.db.add(McqQuestion(test_id=self.test.id, question='1 + 1?', options=['1', '2'], correct_answer='2'))
        self.db.commit()

    @freeze_time('2026-02-13 08:59:59')
    def test_before_start(self):
        with self.assertRaises(AppError) as ctx:
            mcq_test_service.open_test(self.db, self.student, self.test.id)
        self.assertEqual(ctx.exception.message, 'Test has not started yet')

    @freeze_time('2026-02-13 10:00:00')
    def test_open_at_end_boundary(self):
        data = mcq_test_service.open_test(self.db, self.student, self.test.id)
        self.assertEqual(data['questions'][0]['options'], ['1', '2'])

    @freeze_time('2026-02-13 10:00:01')
    def test_after_end(self):
        with self.assertRaises(AppError) as ctx:
            mcq_test_service.open_test(self.db, self.student, self.test.id)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Test has ended')

    @freeze_time('2026-02-13 09:30:00')
    def test_submission_timestamp(self):
        row, total = mcq_test_service.submit_test(self.db, self.student, self.test.id, {'1': '2'})
        self.assertEqual(total, 1)
        self.assertEqual(row.submitted_at, datetime(2026, 2, 13, 9, 30))
