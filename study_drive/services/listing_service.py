"""
Paged listing of stored objects as a folder/name view.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from study_drive.services.key_codec import (
    ROOT_FOLDER, UPLOAD_PREFIX, folder_prefix, is_placeholder, parse_key
)
from study_drive.services.signed_access import issue_signed_url
from study_drive.utils.formatters import format_file_size, format_timestamp
from study_drive.utils.validators import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


@dataclass
class StoredObject:
    """One uploaded file as seen through the key convention."""
    key: str
    folder: str
    name: str
    size: int = 0
    last_modified: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'folder': self.folder,
            'name': self.name,
            'size': self.size,
            'sizeDisplay': format_file_size(self.size),
            'lastModified': self.last_modified,
            'url': self.url
        }


@dataclass
class ListingPage:
    """A page of objects plus the cursor for the next one."""
    files: List[StoredObject] = field(default_factory=list)
    next_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'files': [f.to_dict() for f in self.files],
            'nextContinuationToken': self.next_token
        }


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT,
                maximum: int = MAX_LIMIT) -> int:
    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def list_files(s3_service, folder: Optional[str] = None, limit: Optional[int] = None,
               continuation_token: Optional[str] = None, with_urls: bool = False,
               expiry_seconds: Optional[int] = None, max_limit: int = MAX_LIMIT,
               cache=None) -> ListingPage:
    """
    Fetch one page of stored objects.

    Args:
        s3_service: Store collaborator exposing list_page
        folder: Folder to scope the listing to; None lists every folder
        limit: Page size, clamped to [1, max_limit]
        continuation_token: Opaque cursor returned by a previous page
        with_urls: Sign a read URL for every item in the page
        expiry_seconds: Lifetime of those URLs
        max_limit: Hard page-size ceiling
        cache: Optional ListingCache consulted before the store

    Returns:
        ListingPage in store order

    Raises:
        StorageUnavailable if the store call fails
    """
    limit = clamp_limit(limit, maximum=max_limit)
    prefix = folder_prefix(folder)

    cache_key = (prefix, limit, continuation_token, with_urls)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Listing cache hit for {prefix}")
            return cached

    objects, next_token = s3_service.list_page(prefix, limit, continuation_token)

    files = []
    for obj in objects:
        key = obj['key']
        if is_placeholder(key, prefix):
            continue
        try:
            item_folder, name = parse_key(key)
        except ValidationError as e:
            logger.warning(f"Skipping malformed key in listing: {e}")
            continue
        files.append(StoredObject(
            key=key,
            folder=item_folder,
            name=name,
            size=obj.get('size', 0),
            last_modified=format_timestamp(obj.get('last_modified'))
        ))

    if with_urls:
        for item in files:
            item.url = issue_signed_url(s3_service, item.key, expiry_seconds)

    page = ListingPage(files=files, next_token=next_token)
    if cache is not None:
        cache.set(cache_key, page)
    return page


def list_folders(s3_service) -> List[str]:
    """
    Folder names that currently hold at least one object, sorted.

    Objects stored directly under the uploads root count towards ``root``.
    """
    prefixes, loose_keys = s3_service.list_delimited(UPLOAD_PREFIX)

    folders = set()
    for prefix in prefixes:
        segment = prefix[len(UPLOAD_PREFIX):].rstrip('/')
        if segment:
            folders.add(segment)

    if any(not is_placeholder(key) for key in loose_keys):
        folders.add(ROOT_FOLDER)

    return sorted(folders)
