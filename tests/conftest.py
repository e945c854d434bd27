"""
Shared fixtures: an in-memory stand-in for the boto3 S3 client and a Flask
test app wired to it.
"""
import io
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest
from botocore.exceptions import ClientError

from study_drive import create_app
from study_drive.services import s3_service as s3_module
from study_drive.services.s3_service import S3Service


def client_error(code: str, operation: str, message: str = None) -> ClientError:
    return ClientError(
        {'Error': {'Code': code, 'Message': message or code}},
        operation
    )


class FakePaginator:
    def __init__(self, client):
        self.client = client

    def paginate(self, Bucket, Prefix='', Delimiter=None):
        self.client._maybe_fail('list_objects_v2', 'ListObjectsV2')
        page = {'CommonPrefixes': [], 'Contents': []}
        seen = set()
        for key in self.client.sorted_keys(Prefix):
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                common = Prefix + rest.split(Delimiter, 1)[0] + Delimiter
                if common not in seen:
                    seen.add(common)
                    page['CommonPrefixes'].append({'Prefix': common})
            else:
                page['Contents'].append({'Key': key})
        yield page


class FakeS3Client:
    """
    Minimal in-memory S3 client covering the calls S3Service makes.

    Set ``fail_on[method] = error_code`` to make a method raise ClientError.
    """

    def __init__(self):
        self.objects = {}
        self.fail_on = {}
        self.calls = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    # helpers -------------------------------------------------------------

    def put(self, key: str, body: bytes = b'data', content_type: str = 'application/octet-stream'):
        self._clock += timedelta(seconds=1)
        self.objects[key] = {
            'Body': body,
            'ContentType': content_type,
            'LastModified': self._clock
        }

    def sorted_keys(self, prefix: str = ''):
        return sorted(k for k in self.objects if k.startswith(prefix))

    def _maybe_fail(self, method: str, operation: str):
        self.calls.append(method)
        code = self.fail_on.get(method)
        if code:
            raise client_error(code, operation)

    # boto3 surface -------------------------------------------------------

    def head_object(self, Bucket, Key):
        self._maybe_fail('head_object', 'HeadObject')
        if Key not in self.objects:
            raise client_error('404', 'HeadObject', 'Not Found')
        obj = self.objects[Key]
        return {
            'ContentLength': len(obj['Body']),
            'ContentType': obj['ContentType'],
            'LastModified': obj['LastModified'],
            'ETag': '"etag"'
        }

    def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None):
        self._maybe_fail('upload_fileobj', 'PutObject')
        extra = ExtraArgs or {}
        self.put(Key, Fileobj.read(), extra.get('ContentType', 'binary/octet-stream'))
        self.objects[Key]['ACL'] = extra.get('ACL')

    def list_objects_v2(self, Bucket, Prefix='', MaxKeys=1000, ContinuationToken=None):
        self._maybe_fail('list_objects_v2', 'ListObjectsV2')
        keys = self.sorted_keys(Prefix)
        start = int(ContinuationToken.split('-', 1)[1]) if ContinuationToken else 0
        chunk = keys[start:start + MaxKeys]
        response = {
            'Contents': [
                {
                    'Key': key,
                    'Size': len(self.objects[key]['Body']),
                    'LastModified': self.objects[key]['LastModified'],
                    'ETag': '"etag"'
                }
                for key in chunk
            ],
            'IsTruncated': start + MaxKeys < len(keys)
        }
        if response['IsTruncated']:
            response['NextContinuationToken'] = f"cursor-{start + MaxKeys}"
        return response

    def get_paginator(self, operation_name):
        assert operation_name == 'list_objects_v2'
        return FakePaginator(self)

    def copy_object(self, Bucket, CopySource, Key, **kwargs):
        self._maybe_fail('copy_object', 'CopyObject')
        source = CopySource['Key']
        if source not in self.objects:
            raise client_error('NoSuchKey', 'CopyObject', 'The specified key does not exist.')
        original = self.objects[source]
        self.put(Key, original['Body'], original['ContentType'])

    def delete_object(self, Bucket, Key):
        self._maybe_fail('delete_object', 'DeleteObject')
        self.objects.pop(Key, None)

    def delete_objects(self, Bucket, Delete):
        self._maybe_fail('delete_objects', 'DeleteObjects')
        deleted = []
        for item in Delete['Objects']:
            self.objects.pop(item['Key'], None)
            deleted.append({'Key': item['Key']})
        return {'Deleted': deleted}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn=3600):
        self._maybe_fail('generate_presigned_url', 'GetObject')
        url = f"https://{Params['Bucket']}.s3.test/{quote(Params['Key'])}?X-Amz-Expires={ExpiresIn}"
        disposition = Params.get('ResponseContentDisposition')
        if disposition:
            url += f"&response-content-disposition={quote(disposition)}"
        return url


@pytest.fixture
def fake_s3(monkeypatch):
    fake = FakeS3Client()
    monkeypatch.setattr(s3_module.boto3, 'client', lambda *args, **kwargs: fake)
    return fake


@pytest.fixture
def s3_service(fake_s3):
    return S3Service('study-drive-test', 'us-east-1')


@pytest.fixture
def app(fake_s3):
    return create_app('testing')


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {'Authorization': 'Bearer test-token'}


@pytest.fixture
def upload(client, auth_headers):
    """POST a file to /upload and return the response."""
    def _upload(filename='My Notes.pdf', folder=None, body=b'%PDF-1.4 notes',
                content_type='application/pdf', headers=None):
        data = {'document': (io.BytesIO(body), filename, content_type)}
        if folder is not None:
            data['folder'] = folder
        return client.post(
            '/upload',
            data=data,
            content_type='multipart/form-data',
            headers=auth_headers if headers is None else headers
        )
    return _upload
