import inspect
from unittest.mock import MagicMock, patch

from app.routers import assignments, profile, upload
from app.services import storage_service
from tests.api_case import ApiTestCase


class UploadApiTests(ApiTestCase):
    routers = (upload.router,)

    def setUp(self):
        super().setUp()
        self.user_id, token = self.create_user('teacher@campus.test', 'teacher')
        self.headers = self.auth(token)

    def _upload(self, data, filename='Unit 1 notes.pdf', content_type='application/pdf', body=b'%PDF-1.4'):
        return self.client.post(
            '/api/upload',
            data=data,
            files={'file': (filename, body, content_type)},
            headers=self.headers,
        )

    def test_upload_to_explicit_path(self):
        resp = self._upload({'bucket': 'course-materials', 'path': 'grade-7/'})
        self.assertEqual(resp.status_code, 201)
        data = resp.json()['data']
        self.assertEqual(data['path'], 'grade-7/Unit_1_notes.pdf')
        self.assertEqual(data['fullPath'], 'course-materials/grade-7/Unit_1_notes.pdf')
        self.assertEqual(data['size'], len(b'%PDF-1.4'))
        self.assertTrue(data['url'].endswith('/storage/course-materials/grade-7/Unit_1_notes.pdf'))
        self.assertTrue((self.storage_root / 'course-materials' / 'grade-7' / 'Unit_1_notes.pdf').is_file())

        again = self._upload({'bucket': 'course-materials', 'path': 'grade-7'})
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()['error']['message'], 'The resource already exists')

    def test_default_key_uses_user_and_timestamp(self):
        clock = MagicMock()
        clock.now.return_value.timestamp.return_value = 1767225600.5
        resp = storage_service.store_upload(
            user_id=self.user_id,
            bucket='avatars',
            path=None,
            filename='me.png',
            content=b'png',
            content_type='image/png',
            time_provider=clock,
        )
        self.assertEqual(resp['path'], f'{self.user_id}/1767225600500-me.png')

    def test_rejects_bad_requests(self):
        no_bucket = self._upload({})
        self.assertEqual(no_bucket.status_code, 400)
        self.assertEqual(no_bucket.json()['error']['message'], 'Bucket name is required')

        bad_bucket = self._upload({'bucket': 'secrets'})
        self.assertEqual(bad_bucket.json()['error']['message'], 'Invalid bucket')

        bad_type = self._upload({'bucket': 'assignments'}, filename='run.exe', content_type='application/x-msdownload')
        self.assertEqual(bad_type.status_code, 400)
        self.assertEqual(bad_type.json()['error']['message'], storage_service.INVALID_TYPE_MESSAGE)

        traversal = self._upload({'bucket': 'assignments', 'path': '../escape'})
        self.assertEqual(traversal.status_code, 400)
        self.assertEqual(traversal.json()['error']['message'], 'Invalid file path')

    def test_file_too_large(self):
        with patch.object(storage_service.settings, 'upload_max_bytes', 4):
            resp = self._upload({'bucket': 'assignments'}, body=b'12345')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error']['message'], 'File too large. Maximum size is 5MB')

    def test_requires_authentication(self):
        resp = self.client.post('/api/upload', data={'bucket': 'avatars'}, files={'file': ('a.png', b'x', 'image/png')})
        self.assertEqual(resp.status_code, 401)

    def test_file_handlers_run_in_threadpool(self):
        for endpoint in (upload.upload_file, profile.upload_photo, assignments.submit_assignment):
            self.assertFalse(inspect.iscoroutinefunction(endpoint), endpoint.__name__)
