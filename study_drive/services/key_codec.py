"""
Object key codec for the uploads namespace.

Every stored object lives under ``uploads/<folder>/<filename>``. This module is
the only place that builds or parses that convention; routes and services go
through it instead of splitting key strings themselves.

Folder names are restricted to ``[a-z0-9_-]`` and default to ``root``. File
base names are sanitized by the caller (``split_filename`` or
``sanitize_base_name``) before ``build_key`` embeds them.
"""
import re
import unicodedata
from pathlib import PurePosixPath
from typing import Optional, Tuple

from study_drive.utils.validators import ValidationError

UPLOAD_PREFIX = 'uploads/'
ROOT_FOLDER = 'root'

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9_-]')
_EXT_UNSAFE = re.compile(r'[^a-z0-9]')


def normalize_folder(raw: Optional[str]) -> str:
    """
    Normalize a user-supplied folder name.

    Blank or missing input becomes ``root``; every character outside
    ``[A-Za-z0-9_-]`` becomes ``_``; the result is lower-cased.

    Examples:
        "OS 101"     -> "os_101"
        "  "         -> "root"
        "Semester 2" -> "semester_2"
    """
    folder = (raw or '').strip()
    if not folder:
        return ROOT_FOLDER
    return _UNSAFE_CHARS.sub('_', folder).lower()


def sanitize_base_name(raw: Optional[str], fallback: Optional[str] = None) -> str:
    """
    Sanitize a file base name (no extension) for embedding in a key.

    Transformations applied in order:
    1. Normalize unicode characters to ASCII equivalents
    2. Collapse whitespace runs to a single underscore
    3. Replace characters outside [A-Za-z0-9_-] with underscores
    4. Collapse repeated underscores and trim them from both ends
    5. Lower-case

    Args:
        raw: Base name as typed by the user
        fallback: Returned when nothing survives sanitization

    Raises:
        ValidationError if the result is empty and no fallback is given
    """
    name = unicodedata.normalize('NFKD', raw or '')
    name = name.encode('ascii', 'ignore').decode('ascii')
    name = re.sub(r'\s+', '_', name.strip())
    name = _UNSAFE_CHARS.sub('_', name)
    name = re.sub(r'_+', '_', name).strip('_').lower()

    if not name:
        if fallback:
            return fallback
        raise ValidationError("File name cannot be empty after sanitization")
    return name


def sanitize_extension(raw: Optional[str]) -> str:
    """Return a lower-cased ``.ext`` with only alphanumerics, or ``''``."""
    ext = _EXT_UNSAFE.sub('', (raw or '').lstrip('.').lower())
    return f".{ext}" if ext else ''


def split_filename(filename: str) -> Tuple[str, str]:
    """
    Split an uploaded filename into a sanitized ``(base_name, ext)`` pair.

    Any client-side directory components (``C:\\fakepath\\...``) are dropped.

    Example:
        "My Notes.pdf" -> ("my_notes", ".pdf")
    """
    if not filename or not filename.strip():
        raise ValidationError("Empty filename")

    leaf = PurePosixPath(filename.replace('\\', '/')).name
    path = PurePosixPath(leaf)
    ext = sanitize_extension(path.suffix)
    stem = path.stem if path.suffix else leaf
    return sanitize_base_name(stem, fallback='file'), ext


def split_name(name: str) -> Tuple[str, str]:
    """Split a stored file name into ``(base_name, ext)`` without sanitizing."""
    path = PurePosixPath(name)
    return path.stem if path.suffix else path.name, path.suffix


def build_key(folder: Optional[str], base_name: str, ext: str = '') -> str:
    """
    Build ``uploads/<folder>/<base_name><ext>``.

    The folder is normalized here; ``base_name`` and ``ext`` are embedded as
    given.
    """
    return f"{UPLOAD_PREFIX}{normalize_folder(folder)}/{base_name}{ext}"


def folder_prefix(folder: Optional[str] = None) -> str:
    """
    Listing prefix for a folder, or the bare uploads root when folder is None.
    """
    if folder is None:
        return UPLOAD_PREFIX
    return f"{UPLOAD_PREFIX}{normalize_folder(folder)}/"


def is_placeholder(key: str, prefix: str = UPLOAD_PREFIX) -> bool:
    """True for the zero-length "folder" entries some stores return."""
    return key == prefix or key.endswith('/')


def parse_key(key: str) -> Tuple[str, str]:
    """
    Parse a stored key into ``(folder, name)``.

    ``uploads/os_101/notes.pdf`` -> ``("os_101", "notes.pdf")``
    ``uploads/notes.pdf``        -> ``("root", "notes.pdf")``

    Any path below the folder segment stays part of the name.

    Raises:
        ValidationError if the key is outside the uploads namespace or has no
        file name
    """
    if not key or not key.startswith(UPLOAD_PREFIX):
        raise ValidationError(f"Key '{key}' is outside the {UPLOAD_PREFIX} namespace")

    remainder = key[len(UPLOAD_PREFIX):]
    if not remainder:
        raise ValidationError(f"Key '{key}' has no file name")

    if '/' not in remainder:
        return ROOT_FOLDER, remainder

    folder, name = remainder.split('/', 1)
    if not folder or not name:
        raise ValidationError(f"Key '{key}' has no file name")
    return folder, name


def parse_relocatable_key(key: str) -> Tuple[str, str]:
    """
    Parse a key that is about to be renamed or moved.

    Relocation needs an explicit folder segment and a file name, i.e. at least
    ``uploads/<folder>/<name>``.

    Raises:
        ValidationError for anything shorter
    """
    if not key or not key.startswith(UPLOAD_PREFIX):
        raise ValidationError(f"Invalid key '{key}'")
    segments = key.split('/')
    if len(segments) < 3 or not all(segments[1:]):
        raise ValidationError(
            f"Invalid key '{key}': expected {UPLOAD_PREFIX}<folder>/<filename>"
        )
    return parse_key(key)
