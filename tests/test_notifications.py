from datetime import datetime

from app.models import Notification
from app.routers import notifications
from tests.api_case import ApiTestCase


class NotificationApiTests(ApiTestCase):
    routers = (notifications.router,)

    def setUp(self):
        super().setUp()
        self.user_id, token = self.create_user('asha@campus.test', 'student')
        self.headers = self.auth(token)
        _, teacher_token = self.create_user('teacher@campus.test', 'teacher')
        self.teacher = self.auth(teacher_token)

    def test_list_is_newest_first_and_scoped_to_caller(self):
        other_id, _ = self.create_user('other@campus.test', 'student')
        self.db.add_all(
            [
                Notification(user_id=self.user_id, title='Older', created_at=datetime(2026, 1, 1, 8, 0)),
                Notification(user_id=self.user_id, title='Newer', created_at=datetime(2026, 1, 2, 8, 0)),
                Notification(user_id=other_id, title='Not mine'),
            ]
        )
        self.db.commit()

        data = self.client.get('/api/notifications', headers=self.headers).json()['data']
        self.assertEqual([row['title'] for row in data], ['Newer', 'Older'])
        self.assertFalse(data[0]['is_read'])

    def test_mark_read_only_own_notification(self):
        other_id, _ = self.create_user('other@campus.test', 'student')
        mine = Notification(user_id=self.user_id, title='Mine')
        theirs = Notification(user_id=other_id, title='Theirs')
        self.db.add_all([mine, theirs])
        self.db.commit()

        resp = self.client.patch(f'/api/notifications/{mine.id}/read', headers=self.headers)
        self.assertTrue(resp.json()['data']['is_read'])

        denied = self.client.patch(f'/api/notifications/{theirs.id}/read', headers=self.headers)
        self.assertEqual(denied.status_code, 404)
        self.assertEqual(denied.json()['error']['message'], 'Notification not found')

    def test_teacher_sends_notification(self):
        resp = self.client.post(
            '/api/notifications',
            json={'userId': self.user_id, 'title': 'Reminder', 'message': 'Bring your lab coat', 'link': '/student'},
            headers=self.teacher,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['type'], 'info')
        self.assertEqual(resp.json()['data']['user_id'], self.user_id)

    def test_send_validation(self):
        no_user = self.client.post('/api/notifications', json={'title': 'Hi'}, headers=self.teacher)
        self.assertEqual(no_user.status_code, 400)
        self.assertEqual(no_user.json()['error']['message'], 'userId is required')

        unknown = self.client.post('/api/notifications', json={'userId': 999, 'title': 'Hi'}, headers=self.teacher)
        self.assertEqual(unknown.status_code, 404)

        no_title = self.client.post('/api/notifications', json={'userId': self.user_id}, headers=self.teacher)
        self.assertEqual(no_title.json()['error']['message'], 'title is required')

        student_sender = self.client.post(
            '/api/notifications',
            json={'userId': self.user_id, 'title': 'Hi'},
            headers=self.headers,
        )
        self.assertEqual(student_sender.status_code, 403)
