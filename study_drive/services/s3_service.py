"""
AWS S3 service for object storage operations.
"""
import logging
from typing import Dict, Any, Optional, List, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NotFound'}


class S3Error(Exception):
    """Base exception for S3 errors."""
    pass


class StorageUnavailable(S3Error):
    """A store call failed; the store's message is carried along."""
    pass


class ObjectNotFound(S3Error):
    """The referenced key does not exist."""

    def __init__(self, s3_key: str):
        super().__init__(f"File not found: {s3_key}")
        self.s3_key = s3_key


class NotConfigured(S3Error):
    """Destination bucket (or other storage setting) is missing."""
    pass


def _is_not_found(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') in _NOT_FOUND_CODES


class S3Service:
    """Service for AWS S3 operations."""

    def __init__(self, bucket_name: str, region: str, aws_access_key: str = None,
                 aws_secret_key: str = None, endpoint_url: str = None,
                 public_read: bool = False):
        """Initialize S3 service."""
        if not bucket_name:
            raise NotConfigured("S3 bucket is not configured (set S3_BUCKET_NAME)")

        self.bucket_name = bucket_name
        self.region = region
        self.public_read = public_read

        # Initialize S3 client
        session_kwargs = {'region_name': region}
        if aws_access_key and aws_secret_key:
            session_kwargs['aws_access_key_id'] = aws_access_key
            session_kwargs['aws_secret_access_key'] = aws_secret_key
        if endpoint_url:
            session_kwargs['endpoint_url'] = endpoint_url

        self.s3_client = boto3.client('s3', **session_kwargs)

    def upload_file(self, file_obj, s3_key: str, content_type: str) -> bool:
        """
        Upload a file object to S3.

        Args:
            file_obj: File object to upload
            s3_key: S3 key for the file
            content_type: MIME type of file

        Returns:
            True if successful
        """
        extra_args = {'ContentType': content_type}
        if self.public_read:
            extra_args['ACL'] = 'public-read'

        try:
            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                s3_key,
                ExtraArgs=extra_args
            )
            logger.info(f"Uploaded {s3_key} ({content_type})")
            return True
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to upload file: {e}")

    def file_exists(self, s3_key: str) -> bool:
        """
        Check if file exists in S3.

        Args:
            s3_key: S3 key of the file

        Returns:
            True if file exists
        """
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise StorageUnavailable(f"Failed to check file existence: {e}")
        except BotoCoreError as e:
            raise StorageUnavailable(f"Failed to check file existence: {e}")

    def list_page(self, prefix: str, max_keys: int,
                  continuation_token: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """
        List one page of objects under a prefix.

        Args:
            prefix: Key prefix to list
            max_keys: Page size passed to the store
            continuation_token: Opaque cursor from a previous page

        Returns:
            (objects, next_token) where next_token is None on the last page
        """
        params = {
            'Bucket': self.bucket_name,
            'Prefix': prefix,
            'MaxKeys': max_keys
        }
        if continuation_token:
            params['ContinuationToken'] = continuation_token

        try:
            response = self.s3_client.list_objects_v2(**params)
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to list files: {e}")

        files = []
        for obj in response.get('Contents', []):
            files.append({
                'key': obj['Key'],
                'size': obj['Size'],
                'last_modified': obj.get('LastModified'),
                'etag': obj.get('ETag')
            })

        next_token = None
        if response.get('IsTruncated'):
            next_token = response.get('NextContinuationToken')
        return files, next_token

    def list_delimited(self, prefix: str) -> Tuple[List[str], List[str]]:
        """
        List the immediate "sub-directories" and loose keys below a prefix.

        Returns:
            (common_prefixes, keys), e.g.
            (['uploads/os_101/', 'uploads/root/'], ['uploads/old.pdf'])
        """
        prefixes = []
        keys = []
        try:
            paginator = self.s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix, Delimiter='/'):
                for entry in page.get('CommonPrefixes', []):
                    prefixes.append(entry['Prefix'])
                for obj in page.get('Contents', []):
                    keys.append(obj['Key'])
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to list folders: {e}")
        return prefixes, keys

    def copy_file(self, source_key: str, destination_key: str) -> bool:
        """
        Server-side copy of one object to a new key in the same bucket.

        Content type and user metadata are carried over by the store.
        """
        extra_args = {}
        if self.public_read:
            extra_args['ACL'] = 'public-read'

        try:
            self.s3_client.copy_object(
                Bucket=self.bucket_name,
                CopySource={'Bucket': self.bucket_name, 'Key': source_key},
                Key=destination_key,
                **extra_args
            )
            logger.debug(f"Copied {source_key} -> {destination_key}")
            return True
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFound(source_key)
            raise StorageUnavailable(f"Failed to copy file: {e}")
        except BotoCoreError as e:
            raise StorageUnavailable(f"Failed to copy file: {e}")

    def delete_file(self, s3_key: str, must_exist: bool = True) -> bool:
        """
        Delete file from S3.

        S3 deletes are idempotent, so when must_exist is set the key is probed
        first and a missing key raises ObjectNotFound.

        Args:
            s3_key: S3 key of the file
            must_exist: Raise ObjectNotFound for a missing key

        Returns:
            True if successful
        """
        if must_exist and not self.file_exists(s3_key):
            raise ObjectNotFound(s3_key)

        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=s3_key
            )
            logger.info(f"Deleted {s3_key}")
            return True
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to delete file: {e}")

    def delete_files(self, s3_keys: List[str]) -> Tuple[List[str], List[Dict[str, str]]]:
        """
        Delete several objects with batched DeleteObjects calls.

        Returns:
            (deleted_keys, errors) where errors are {'key', 'error'} dicts
        """
        deleted = []
        errors = []
        # DeleteObjects accepts at most 1000 keys per call
        for start in range(0, len(s3_keys), 1000):
            chunk = s3_keys[start:start + 1000]
            try:
                response = self.s3_client.delete_objects(
                    Bucket=self.bucket_name,
                    Delete={'Objects': [{'Key': key} for key in chunk], 'Quiet': False}
                )
            except (ClientError, BotoCoreError) as e:
                raise StorageUnavailable(f"Failed to delete files: {e}")

            deleted.extend(item['Key'] for item in response.get('Deleted', []))
            for item in response.get('Errors', []):
                errors.append({
                    'key': item.get('Key'),
                    'error': item.get('Message') or item.get('Code', 'Unknown error')
                })
        return deleted, errors

    def generate_presigned_url(self, s3_key: str, expires_in: int = 3600,
                               download_filename: Optional[str] = None) -> str:
        """
        Generate presigned URL for viewing/downloading a file.

        Args:
            s3_key: S3 key of the file
            expires_in: URL expiration time in seconds
            download_filename: When set, force an attachment disposition

        Returns:
            Presigned URL string
        """
        params = {'Bucket': self.bucket_name, 'Key': s3_key}
        if download_filename:
            params['ResponseContentDisposition'] = f'attachment; filename="{download_filename}"'

        try:
            url = self.s3_client.generate_presigned_url(
                'get_object',
                Params=params,
                ExpiresIn=expires_in
            )
            return url
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to generate presigned URL: {e}")


def get_s3_service(app) -> S3Service:
    """
    Return the app's S3Service, creating it on first use.

    Args:
        app: Flask app instance

    Returns:
        S3Service instance

    Raises:
        NotConfigured if no bucket is configured
    """
    state = app.extensions.setdefault('study_drive', {})
    service = state.get('s3_service')
    if service is None:
        service = S3Service(
            bucket_name=app.config.get('S3_BUCKET_NAME'),
            region=app.config.get('AWS_REGION', 'us-east-1'),
            aws_access_key=app.config.get('AWS_ACCESS_KEY_ID'),
            aws_secret_key=app.config.get('AWS_SECRET_ACCESS_KEY'),
            endpoint_url=app.config.get('S3_ENDPOINT_URL'),
            public_read=app.config.get('PUBLIC_READ_UPLOADS', False)
        )
        state['s3_service'] = service
    return service
