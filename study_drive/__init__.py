"""
Flask application factory.
"""
from flask import Flask
from flask_cors import CORS
import logging

__version__ = '1.0.0'


def create_app(config_name=None):
    """
    Create and configure Flask application.

    Args:
        config_name: Configuration name ('development', 'production', 'testing')

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Load configuration
    from study_drive.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO if not app.config['DEBUG'] else logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Validate storage configuration (warn if missing, don't fail)
    if not app.config.get('TESTING'):
        try:
            from study_drive.config import Config
            Config.validate_storage_config()
            app.logger.info("Storage configuration validated")
        except ValueError as e:
            app.logger.warning(f"Storage configuration warning: {e}")
            app.logger.warning("File endpoints will fail until a bucket is configured")

    if app.config.get('REQUIRE_AUTH') and not app.config.get('API_TOKEN'):
        app.logger.warning("REQUIRE_AUTH is on but STUDY_DRIVE_API_TOKEN is unset; writes will be refused")

    # Browser console and public viewer call the API cross-origin
    origins = app.config.get('CORS_ORIGINS', '*')
    if origins != '*':
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]
    CORS(app, resources={r"/*": {"origins": origins}})

    # Shared per-app state (S3 service, listing cache)
    app.extensions.setdefault('study_drive', {})

    # Register blueprints
    from study_drive.routes import main, files

    app.register_blueprint(main.bp)
    app.register_blueprint(files.bp)

    app.logger.info("All blueprints registered")

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'message': 'Not found', 'error': str(error)}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {'message': 'Method not allowed', 'error': str(error)}, 405

    @app.errorhandler(413)
    def payload_too_large(error):
        return {'message': 'File too large', 'error': str(error)}, 413

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal error: {error}")
        return {'message': 'Internal server error', 'error': str(error)}, 500

    app.logger.info(f"Flask app created successfully in {app.config.get('FLASK_ENV', 'development')} mode")

    return app
