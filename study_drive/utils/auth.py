"""
Shared-token authentication for write endpoints.

Whether writes need a token is a deployment decision (REQUIRE_AUTH). When
enabled, clients send ``Authorization: Bearer <token>`` or ``X-API-Key``.
"""
import hmac
from functools import wraps
from typing import Optional

from flask import current_app, jsonify, request

from study_drive.services.s3_service import NotConfigured


class Unauthorized(Exception):
    """No credentials were presented."""
    pass


class Forbidden(Exception):
    """Credentials were presented but rejected."""
    pass


def _presented_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip() or None
    return request.headers.get('X-API-Key') or None


def check_authenticated() -> None:
    """
    Raise unless the current request may perform writes.

    Raises:
        NotConfigured if auth is required but no token is configured
        Unauthorized if no token was sent
        Forbidden if the token does not match
    """
    if not current_app.config.get('REQUIRE_AUTH', True):
        return

    expected = current_app.config.get('API_TOKEN')
    if not expected:
        raise NotConfigured("Authentication is required but STUDY_DRIVE_API_TOKEN is not set")

    presented = _presented_token()
    if presented is None:
        raise Unauthorized("Authentication required")
    if not hmac.compare_digest(presented.encode(), expected.encode()):
        raise Forbidden("Invalid API token")


def require_auth(func):
    """Decorator gating a route behind check_authenticated()."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            check_authenticated()
        except Unauthorized as e:
            return jsonify({'message': 'Unauthorized', 'error': str(e)}), 401
        except Forbidden as e:
            return jsonify({'message': 'Forbidden', 'error': str(e)}), 403
        except NotConfigured as e:
            current_app.logger.error(f"Auth configuration error: {e}")
            return jsonify({'message': 'Server not configured', 'error': str(e)}), 500
        return func(*args, **kwargs)
    return wrapper
