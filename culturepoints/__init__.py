"""
CulturePoints rewards engine
Flask application factory
"""
import os
import logging

from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, test_config: dict = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        test_config: Settings applied over the config class (e.g. a file database)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-User-Email', 'X-Request-ID'],
    )

    # Initialize request ID tracking for request tracing
    from .middleware import init_request_id_tracking
    init_request_id_tracking(app)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'culturepoints'}

    logger.info(f'CulturePoints app created ({config_name})')
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    # Player-facing
    from .api.checkin import checkin_bp
    from .api.players import players_bp

    # Admin
    from .api.admin import admin_bp

    app.register_blueprint(checkin_bp, url_prefix='/api')
    app.register_blueprint(players_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils import errors
    from .utils.errors import ErrorCode, error_response

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400)

    @app.errorhandler(404)
    def not_found(error):
        return errors.not_found('Not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(413)
    def payload_too_large(error):
        return error_response('Upload is too large', ErrorCode.INVALID_REQUEST, 413)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return errors.internal_error('Internal server error')
