"""
File endpoints: upload, list, delete, download, rename and move.

Routes:
- POST   /upload               - Upload a file (multipart field 'document', optional 'folder')
- GET    /files                - List one page of files
- DELETE /files                - Delete a file
- POST   /files/delete-batch   - Delete several files
- GET    /files/download       - Signed download URL (JSON or redirect)
- PUT    /files/rename         - Rename a file within its folder
- PUT    /files/move           - Move a file to another folder
- GET    /folders              - List folder names

Write endpoints are gated by require_auth and clear the listing cache.
"""
import mimetypes
import os

from flask import Blueprint, request, jsonify, current_app, redirect
from werkzeug.exceptions import RequestEntityTooLarge

from study_drive.services.collision_resolver import ResourceExhausted, resolve_available_key
from study_drive.services.key_codec import normalize_folder, parse_key, split_filename
from study_drive.services.listing_cache import get_listing_cache
from study_drive.services.listing_service import list_files as list_page_of_files, list_folders
from study_drive.services.relocation_service import RelocationIncomplete, move_file, rename_file
from study_drive.services.s3_service import (
    NotConfigured, ObjectNotFound, S3Error, get_s3_service
)
from study_drive.services.signed_access import issue_signed_url
from study_drive.utils.auth import require_auth
from study_drive.utils.formatters import format_file_size
from study_drive.utils.validators import (
    PayloadTooLarge, ValidationError, parse_bool, parse_limit, require_field,
    validate_file_size, validate_s3_key
)

bp = Blueprint('files', __name__)


def _fail(message: str, error, status: int):
    return jsonify({'message': message, 'error': str(error)}), status


def _storage_failure(message: str, e: S3Error):
    """Map a storage-layer exception to a JSON error response."""
    if isinstance(e, ObjectNotFound):
        return _fail('File not found', e, 404)
    if isinstance(e, NotConfigured):
        current_app.logger.error(f"Storage not configured: {e}")
        return _fail('Storage not configured', e, 500)
    if isinstance(e, RelocationIncomplete):
        current_app.logger.error(
            f"{message}: source {e.source_key} still present next to {e.destination_key}"
        )
        return jsonify({
            'message': message,
            'error': str(e),
            'sourceKey': e.source_key,
            'destinationKey': e.destination_key
        }), 500
    current_app.logger.error(f"{message}: {e}", exc_info=True)
    return _fail(message, e, 500)


def _validated_key(key: str) -> str:
    validate_s3_key(key)
    parse_key(key)
    return key


def _stream_size(stream) -> int:
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _sign(s3_service, key: str, force_download: bool = False) -> str:
    return issue_signed_url(
        s3_service, key,
        expiry_seconds=current_app.config['SIGNED_URL_EXPIRY_SECONDS'],
        force_download=force_download
    )


def _prefers_html() -> bool:
    """True when the Accept header ranks an HTML page above JSON (a browser tab)."""
    accept = request.accept_mimetypes
    return accept.quality('text/html') > accept.quality('application/json')


@bp.route('/upload', methods=['POST'])
@require_auth
def upload_file():
    """
    Store a new object under uploads/<folder>/<name>.

    Expected form data:
        - document: File object
        - folder: Optional folder name (default: root)

    Returns:
        {
            "message": "File uploaded successfully",
            "key": "uploads/os_101/my_notes.pdf",
            "folder": "os_101",
            "name": "my_notes.pdf",
            "size": 1024,
            "url": "https://..."
        }
    """
    try:
        if 'document' not in request.files:
            return _fail('No file uploaded', "Missing multipart field 'document'", 400)

        file = request.files['document']
        if not file.filename:
            return _fail('No file uploaded', 'Empty filename', 400)

        folder = normalize_folder(request.form.get('folder'))
        base_name, ext = split_filename(file.filename)

        size_bytes = _stream_size(file.stream)
        validate_file_size(size_bytes, current_app.config['MAX_UPLOAD_SIZE_MB'])

        s3_service = get_s3_service(current_app)
        key = resolve_available_key(
            s3_service, folder, base_name, ext,
            max_attempts=current_app.config['MAX_COLLISION_ATTEMPTS']
        )
        content_type = (
            file.mimetype
            or mimetypes.guess_type(file.filename)[0]
            or 'application/octet-stream'
        )

        s3_service.upload_file(file.stream, key, content_type)
        get_listing_cache(current_app).clear()

        stored_folder, name = parse_key(key)
        file_info = {
            'key': key,
            'folder': stored_folder,
            'name': name,
            'originalName': file.filename,
            'size': size_bytes,
            'sizeDisplay': format_file_size(size_bytes),
            'contentType': content_type,
            'url': _sign(s3_service, key)
        }
        current_app.logger.info(f"Uploaded {file.filename} as {key} ({size_bytes} bytes)")

        return jsonify({
            'message': 'File uploaded successfully',
            **file_info,
            'file': file_info
        }), 201

    except RequestEntityTooLarge as e:
        return _fail('File too large', e.description, 413)
    except PayloadTooLarge as e:
        return _fail('File too large', e, 413)
    except ValidationError as e:
        return _fail('Invalid upload', e, 400)
    except ResourceExhausted as e:
        return _fail('No free file name available', e, 409)
    except S3Error as e:
        return _storage_failure('Failed to upload file', e)
    except Exception as e:
        current_app.logger.error(f"Upload error: {e}", exc_info=True)
        return _fail('Failed to upload file', e, 500)


@bp.route('/files', methods=['GET'])
def get_files():
    """
    List one page of files.

    Query parameters:
        - folder: Restrict to one folder (default: all folders)
        - limit: Page size (clamped to MAX_PAGE_SIZE)
        - continuationToken: Cursor from the previous page
        - urls: 'false' to skip signing a URL per file

    Returns:
        {
            "files": [{key, folder, name, size, lastModified, url}, ...],
            "nextContinuationToken": "..." | null
        }
    """
    try:
        folder = request.args.get('folder')
        if folder is not None and not folder.strip():
            folder = None

        limit = parse_limit(
            request.args.get('limit'),
            default=current_app.config['DEFAULT_PAGE_SIZE'],
            maximum=current_app.config['MAX_PAGE_SIZE']
        )
        with_urls = parse_bool(request.args.get('urls'), current_app.config['SIGN_LISTING_URLS'])

        page = list_page_of_files(
            get_s3_service(current_app),
            folder=folder,
            limit=limit,
            continuation_token=request.args.get('continuationToken') or None,
            with_urls=with_urls,
            expiry_seconds=current_app.config['SIGNED_URL_EXPIRY_SECONDS'],
            max_limit=current_app.config['MAX_PAGE_SIZE'],
            cache=get_listing_cache(current_app)
        )

        body = page.to_dict()
        body['message'] = f"Found {len(page.files)} file{'s' if len(page.files) != 1 else ''}"
        return jsonify(body), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except S3Error as e:
        return _storage_failure('Failed to list files', e)
    except Exception as e:
        current_app.logger.error(f"List files error: {e}", exc_info=True)
        return _fail('Failed to list files', e, 500)


@bp.route('/files', methods=['DELETE'])
@require_auth
def delete_file():
    """
    Delete a single file.

    Expected JSON:
        {"key": "uploads/os_101/my_notes.pdf"}
    """
    try:
        data = request.get_json(silent=True) or {}
        key = _validated_key(require_field(data, 'key'))

        get_s3_service(current_app).delete_file(key)
        get_listing_cache(current_app).clear()

        return jsonify({'message': 'File deleted successfully', 'key': key}), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except S3Error as e:
        return _storage_failure('Failed to delete file', e)
    except Exception as e:
        current_app.logger.error(f"Delete file error: {e}", exc_info=True)
        return _fail('Failed to delete file', e, 500)


@bp.route('/files/delete-batch', methods=['POST'])
@require_auth
def delete_files():
    """
    Delete several files.

    Expected JSON:
        {"keys": ["uploads/a/x.pdf", "uploads/b/y.png"]}

    Returns:
        {
            "message": "Deleted 2 files",
            "deleted": [...],
            "errors": [{"key": ..., "error": ...}]
        }
    """
    try:
        data = request.get_json(silent=True) or {}
        keys = data.get('keys')
        if not isinstance(keys, list) or not keys:
            raise ValidationError("Field 'keys' must be a non-empty list")
        if not all(isinstance(key, str) for key in keys):
            raise ValidationError("Field 'keys' must contain strings")

        keys = [_validated_key(key.strip()) for key in keys]
        deleted, errors = get_s3_service(current_app).delete_files(keys)
        get_listing_cache(current_app).clear()

        if errors:
            current_app.logger.warning(f"Batch delete left {len(errors)} file(s): {errors}")

        message = f"Deleted {len(deleted)} file{'s' if len(deleted) != 1 else ''}"
        return jsonify({
            'message': message,
            'deleted': deleted,
            'errors': errors
        }), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except S3Error as e:
        return _storage_failure('Failed to delete files', e)
    except Exception as e:
        current_app.logger.error(f"Batch delete error: {e}", exc_info=True)
        return _fail('Failed to delete files', e, 500)


@bp.route('/files/download', methods=['GET'])
def download_file():
    """
    Issue a signed download URL.

    Query parameters:
        - key: Object key (required)
        - redirect: 'true' to answer with a 302 to the signed URL, 'false' for
          JSON. Defaults to a redirect when the client prefers HTML.
        - inline: 'true' to let the browser display instead of download

    Returns:
        {"url": "https://...", "key": "...", "expiresIn": 3600}
    """
    try:
        key = _validated_key((request.args.get('key') or '').strip())
        force_download = not parse_bool(request.args.get('inline'), False)

        url = _sign(get_s3_service(current_app), key, force_download=force_download)

        if parse_bool(request.args.get('redirect'), _prefers_html()):
            return redirect(url, code=302)

        return jsonify({
            'message': 'Download URL generated',
            'key': key,
            'url': url,
            'expiresIn': current_app.config['SIGNED_URL_EXPIRY_SECONDS']
        }), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except S3Error as e:
        return _storage_failure('Failed to generate download URL', e)
    except Exception as e:
        current_app.logger.error(f"Download URL error: {e}", exc_info=True)
        return _fail('Failed to generate download URL', e, 500)


@bp.route('/files/rename', methods=['PUT'])
@require_auth
def rename():
    """
    Rename a file within its folder. The extension is kept.

    Expected JSON:
        {"key": "uploads/os_101/my_notes.pdf", "newName": "lecture1"}
    """
    try:
        data = request.get_json(silent=True) or {}
        key = _validated_key(require_field(data, 'key'))
        new_name = require_field(data, 'newName')

        s3_service = get_s3_service(current_app)
        result = rename_file(
            s3_service, key, new_name,
            max_attempts=current_app.config['MAX_COLLISION_ATTEMPTS']
        )
        if result.changed:
            get_listing_cache(current_app).clear()
        result.url = _sign(s3_service, result.key)

        return jsonify({'message': 'File renamed successfully', **result.to_dict()}), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except ResourceExhausted as e:
        return _fail('No free file name available', e, 409)
    except S3Error as e:
        return _storage_failure('Failed to rename file', e)
    except Exception as e:
        current_app.logger.error(f"Rename error: {e}", exc_info=True)
        return _fail('Failed to rename file', e, 500)


@bp.route('/files/move', methods=['PUT'])
@require_auth
def move():
    """
    Move a file to another folder. A blank folder means root.

    Expected JSON:
        {"key": "uploads/os_101/lecture1.pdf", "newFolder": "Semester 2"}
    """
    try:
        data = request.get_json(silent=True) or {}
        key = _validated_key(require_field(data, 'key'))
        new_folder = data.get('newFolder')
        if new_folder is None:
            raise ValidationError("Missing required field 'newFolder'")
        if not isinstance(new_folder, str):
            raise ValidationError("Field 'newFolder' must be a string")

        s3_service = get_s3_service(current_app)
        result = move_file(
            s3_service, key, new_folder,
            max_attempts=current_app.config['MAX_COLLISION_ATTEMPTS']
        )
        if result.changed:
            get_listing_cache(current_app).clear()
        result.url = _sign(s3_service, result.key)

        return jsonify({'message': 'File moved successfully', **result.to_dict()}), 200

    except ValidationError as e:
        return _fail('Invalid request', e, 400)
    except ResourceExhausted as e:
        return _fail('No free file name available', e, 409)
    except S3Error as e:
        return _storage_failure('Failed to move file', e)
    except Exception as e:
        current_app.logger.error(f"Move error: {e}", exc_info=True)
        return _fail('Failed to move file', e, 500)


@bp.route('/folders', methods=['GET'])
def get_folders():
    """
    List folder names that hold at least one file.

    Returns:
        {"folders": ["os_101", "root"]}
    """
    try:
        folders = list_folders(get_s3_service(current_app))
        return jsonify({
            'message': f"Found {len(folders)} folder{'s' if len(folders) != 1 else ''}",
            'folders': folders
        }), 200

    except S3Error as e:
        return _storage_failure('Failed to list folders', e)
    except Exception as e:
        current_app.logger.error(f"List folders error: {e}", exc_info=True)
        return _fail('Failed to list folders', e, 500)
