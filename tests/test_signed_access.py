"""
Unit Tests: Signed-Access Issuer and S3Service error mapping
"""
import pytest

from study_drive.services.s3_service import (
    NotConfigured,
    ObjectNotFound,
    S3Service,
    StorageUnavailable,
)
from study_drive.services.signed_access import issue_signed_url


class TestIssueSignedUrl:

    def test_default_expiry_is_one_hour(self, s3_service):
        url = issue_signed_url(s3_service, 'uploads/os_101/notes.pdf')
        assert 'X-Amz-Expires=3600' in url
        assert 'response-content-disposition' not in url

    def test_custom_expiry(self, s3_service):
        url = issue_signed_url(s3_service, 'uploads/os_101/notes.pdf', expiry_seconds=1)
        assert 'X-Amz-Expires=1' in url

    def test_force_download_sets_attachment(self, s3_service):
        url = issue_signed_url(s3_service, 'uploads/os_101/notes.pdf', force_download=True)
        assert 'response-content-disposition=attachment%3B%20filename%3D%22notes.pdf%22' in url

    def test_no_existence_check(self, s3_service, fake_s3):
        issue_signed_url(s3_service, 'uploads/os_101/missing.pdf')
        assert fake_s3.calls == ['generate_presigned_url']

    def test_signing_failure(self, s3_service, fake_s3):
        fake_s3.fail_on['generate_presigned_url'] = 'InvalidAccessKeyId'
        with pytest.raises(StorageUnavailable):
            issue_signed_url(s3_service, 'uploads/os_101/notes.pdf')


class TestS3Service:

    def test_missing_bucket(self, fake_s3):
        with pytest.raises(NotConfigured):
            S3Service(None, 'us-east-1')

    def test_file_exists(self, s3_service, fake_s3):
        fake_s3.put('uploads/root/a.txt')
        assert s3_service.file_exists('uploads/root/a.txt')
        assert not s3_service.file_exists('uploads/root/b.txt')

    def test_file_exists_other_errors(self, s3_service, fake_s3):
        fake_s3.fail_on['head_object'] = '403'
        with pytest.raises(StorageUnavailable):
            s3_service.file_exists('uploads/root/a.txt')

    def test_delete_missing_key(self, s3_service):
        with pytest.raises(ObjectNotFound):
            s3_service.delete_file('uploads/root/ghost.txt')

    def test_delete_without_check(self, s3_service, fake_s3):
        assert s3_service.delete_file('uploads/root/ghost.txt', must_exist=False)
        assert fake_s3.calls == ['delete_object']

    def test_upload_sets_content_type(self, s3_service, fake_s3):
        import io

        s3_service.upload_file(io.BytesIO(b'hello'), 'uploads/root/hi.txt', 'text/plain')
        assert fake_s3.objects['uploads/root/hi.txt']['ContentType'] == 'text/plain'
        assert fake_s3.objects['uploads/root/hi.txt']['ACL'] is None

    def test_public_read_uploads(self, fake_s3):
        import io

        service = S3Service('study-drive-test', 'us-east-1', public_read=True)
        service.upload_file(io.BytesIO(b'x'), 'uploads/root/x.txt', 'text/plain')
        assert fake_s3.objects['uploads/root/x.txt']['ACL'] == 'public-read'

    def test_delete_files_batch(self, s3_service, fake_s3):
        fake_s3.put('uploads/a/1.txt')
        fake_s3.put('uploads/a/2.txt')

        deleted, errors = s3_service.delete_files(['uploads/a/1.txt', 'uploads/a/2.txt'])
        assert deleted == ['uploads/a/1.txt', 'uploads/a/2.txt']
        assert errors == []
        assert fake_s3.objects == {}
