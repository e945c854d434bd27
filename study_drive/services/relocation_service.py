"""
Rename and move stored objects.

The store has no atomic rename, so a relocation is a copy to the new key
followed by a delete of the old one. Each relocation walks these states:

    COMPUTING_TARGET -> COPYING -> DELETING_SOURCE -> COMPLETED

A failure while COPYING leaves the source untouched and the original store
error propagates. A failure while DELETING_SOURCE leaves both keys present;
it is raised as RelocationIncomplete and is not rolled back. Deleting the
source key again is enough to finish the job.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from study_drive.services.collision_resolver import (
    DEFAULT_MAX_ATTEMPTS, resolve_available_key
)
from study_drive.services.key_codec import (
    normalize_folder, parse_key, parse_relocatable_key, sanitize_base_name, split_name
)
from study_drive.services.s3_service import S3Error, StorageUnavailable

logger = logging.getLogger(__name__)


class RelocationState(Enum):
    COMPUTING_TARGET = 'computing_target'
    COPYING = 'copying'
    DELETING_SOURCE = 'deleting_source'
    COMPLETED = 'completed'


class RelocationIncomplete(StorageUnavailable):
    """The copy succeeded but the source could not be deleted."""

    def __init__(self, source_key: str, destination_key: str, cause: Exception):
        super().__init__(
            f"Copied '{source_key}' to '{destination_key}' but failed to delete "
            f"the original: {cause}. Both keys now exist; delete the original to finish."
        )
        self.state = RelocationState.DELETING_SOURCE
        self.source_key = source_key
        self.destination_key = destination_key
        self.cause = cause


@dataclass
class RelocationResult:
    """Outcome of a completed relocation."""
    source_key: str
    key: str
    folder: str
    name: str
    url: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.key != self.source_key

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'name': self.name,
            'folder': self.folder,
            'url': self.url,
            'previousKey': self.source_key
        }


class Relocation:
    """
    One copy-then-delete relocation.

    The target is computed by the caller (see plan_rename / plan_move); run()
    performs the store calls and records the state reached.
    """

    def __init__(self, s3_service, source_key: str, destination_key: str):
        self.s3_service = s3_service
        self.source_key = source_key
        self.destination_key = destination_key
        self.state = RelocationState.COMPUTING_TARGET
        self.error: Optional[Exception] = None

    def run(self) -> RelocationResult:
        folder, name = parse_key(self.destination_key)

        if self.destination_key == self.source_key:
            self.state = RelocationState.COMPLETED
            return RelocationResult(self.source_key, self.destination_key, folder, name)

        self.state = RelocationState.COPYING
        try:
            self.s3_service.copy_file(self.source_key, self.destination_key)
        except S3Error as e:
            self.error = e
            logger.warning(f"Relocation of {self.source_key} aborted during copy: {e}")
            raise

        self.state = RelocationState.DELETING_SOURCE
        try:
            self.s3_service.delete_file(self.source_key, must_exist=False)
        except S3Error as e:
            self.error = RelocationIncomplete(self.source_key, self.destination_key, e)
            logger.error(
                f"Relocation left duplicate objects: {self.source_key} and "
                f"{self.destination_key}: {e}"
            )
            raise self.error from e

        self.state = RelocationState.COMPLETED
        logger.info(f"Relocated {self.source_key} -> {self.destination_key}")
        return RelocationResult(self.source_key, self.destination_key, folder, name)


def _strip_extension(new_name: str, ext: str) -> str:
    if ext and new_name.lower().endswith(ext.lower()):
        return new_name[:-len(ext)]
    return new_name


def plan_rename(s3_service, key: str, new_name: str,
                max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> Relocation:
    """
    Compute the target of a rename within the same folder.

    The extension of the stored file is kept; a new name that repeats it is
    accepted ("lecture1.pdf" and "lecture1" both give lecture1.pdf).
    """
    folder, name = parse_relocatable_key(key)
    directory, _, leaf = name.rpartition('/')
    _, ext = split_name(leaf)

    base_name = sanitize_base_name(_strip_extension(new_name.strip(), ext))
    if directory:
        base_name = f"{directory}/{base_name}"

    destination = resolve_available_key(
        s3_service, folder, base_name, ext,
        max_attempts=max_attempts, ignore_key=key
    )
    return Relocation(s3_service, key, destination)


def plan_move(s3_service, key: str, new_folder: str,
              max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> Relocation:
    """Compute the target of a move that keeps the file name."""
    _, name = parse_relocatable_key(key)
    base_name, ext = split_name(name)
    directory = name.rpartition('/')[0]
    if directory:
        base_name = f"{directory}/{base_name}"

    destination = resolve_available_key(
        s3_service, normalize_folder(new_folder), base_name, ext,
        max_attempts=max_attempts, ignore_key=key
    )
    return Relocation(s3_service, key, destination)


def rename_file(s3_service, key: str, new_name: str,
                max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> RelocationResult:
    """Rename an object in place (same folder, new base name)."""
    return plan_rename(s3_service, key, new_name, max_attempts).run()


def move_file(s3_service, key: str, new_folder: str,
              max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> RelocationResult:
    """Move an object to another folder, keeping its file name."""
    return plan_move(s3_service, key, new_folder, max_attempts).run()
