"""
Liveness and health endpoints.
"""
from flask import Blueprint, current_app

from study_drive import __version__

bp = Blueprint('main', __name__)


@bp.route('/')
def index():
    """Plain-text liveness message."""
    return 'Study Drive backend is running', 200, {'Content-Type': 'text/plain; charset=utf-8'}


@bp.route('/health')
def health_check():
    """Health check with storage configuration status."""
    return {
        'status': 'healthy',
        'app': 'Study Drive',
        'version': __version__,
        'storage_configured': bool(current_app.config.get('S3_BUCKET_NAME'))
    }, 200
