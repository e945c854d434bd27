"""
Find a free key for a new object by probing the store.

Candidates are tried in order ``base``, ``base(1)``, ``base(2)``, ... until the
store reports one as missing. Probing is check-then-act: two concurrent
uploads of the same name can still pick the same candidate, since the store
offers no create-if-absent primitive.
"""
import logging

from study_drive.services.key_codec import build_key

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1000


class ResourceExhausted(Exception):
    """No free key was found within the attempt budget."""
    pass


def candidate_key(folder: str, base_name: str, ext: str, counter: int) -> str:
    """Key for the given suffix counter; 0 means no suffix."""
    if counter == 0:
        return build_key(folder, base_name, ext)
    return build_key(folder, f"{base_name}({counter})", ext)


def resolve_available_key(s3_service, folder: str, base_name: str, ext: str,
                          max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                          ignore_key: str = None) -> str:
    """
    Return the first key in the suffix sequence that does not exist yet.

    Args:
        s3_service: Store collaborator exposing file_exists(key)
        folder: Target folder (normalized by the codec)
        base_name: Sanitized base name
        ext: Extension including the dot, or ''
        max_attempts: Number of candidates to probe before giving up
        ignore_key: A key treated as free even though it exists (the object
            being relocated onto itself)

    Raises:
        ResourceExhausted after max_attempts taken candidates
    """
    for counter in range(max_attempts):
        key = candidate_key(folder, base_name, ext, counter)
        if key == ignore_key or not s3_service.file_exists(key):
            if counter:
                logger.debug(f"Resolved name collision after {counter} probes: {key}")
            return key

    raise ResourceExhausted(
        f"No free name for '{base_name}{ext}' in folder '{folder}' "
        f"after {max_attempts} attempts"
    )
