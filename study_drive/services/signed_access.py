"""
Issue time-limited read URLs for stored objects.

No existence check is made before signing; a URL for a missing key simply
fails when fetched. Issued URLs cannot be revoked.
"""
from typing import Optional

from study_drive.services.key_codec import parse_key

DEFAULT_EXPIRY_SECONDS = 3600


def issue_signed_url(s3_service, key: str, expiry_seconds: Optional[int] = None,
                     force_download: bool = False) -> str:
    """
    Sign a GET URL for one object.

    Args:
        s3_service: Store collaborator exposing generate_presigned_url
        key: Object key
        expiry_seconds: Lifetime of the URL (default one hour)
        force_download: Add an attachment content-disposition override

    Returns:
        URL string
    """
    if expiry_seconds is None:
        expiry_seconds = DEFAULT_EXPIRY_SECONDS

    download_filename = None
    if force_download:
        _, name = parse_key(key)
        download_filename = name.rsplit('/', 1)[-1]

    return s3_service.generate_presigned_url(
        key,
        expires_in=expiry_seconds,
        download_filename=download_filename
    )
