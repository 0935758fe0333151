"""
Flask Application Factory for CMS Service.

This module provides the create_app() factory function that creates and
configures the Flask application. It initializes:
- SQLAlchemy database connection (SQLite unless DATABASE_URL is set)
- Flask-Migrate
- Blueprint registration
- Error handlers
- Logging configuration
- Default tenant seeding

Usage:
    # Development
    python -m cms.app

    # Production
    gunicorn -w 4 -b 0.0.0.0:5002 'cms.app:create_app()'
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from cms.config import get_config
from cms.models import db, Tenant

# Global migrate instance
migrate = Migrate()


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name ('development', 'testing', 'production').
                    If None, reads from FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Store config class for reference
    app.config['CONFIG_CLASS'] = config_class

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Create database tables and seed default data
    with app.app_context():
        db.create_all()
        _seed_default_tenant(app)

    # Configure logging
    _configure_logging(app)

    # Register blueprints
    _register_blueprints(app)

    # Register error handlers
    _register_error_handlers(app)

    # Register health check endpoint
    @app.route('/health')
    @app.route('/api/v1/health')
    def health_check():
        """Health check endpoint for monitoring."""
        return jsonify({
            'status': 'healthy',
            'service': 'cms',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    return app


def _seed_default_tenant(app: Flask) -> None:
    """
    Ensure the tenant that newly claimed devices join exists.

    Args:
        app: Flask application instance.
    """
    tenant_id = app.config.get('DEFAULT_TENANT_ID')
    if not tenant_id or db.session.get(Tenant, tenant_id) is not None:
        return

    db.session.add(Tenant(id=tenant_id, name='Default', slug='default'))
    try:
        db.session.commit()
        app.logger.info(f'Created default tenant {tenant_id}')
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.error(f'Failed to seed default tenant: {e}')


def _configure_logging(app: Flask) -> None:
    """
    Configure application logging.

    Service modules log through ``logging.getLogger(__name__)`` under the
    ``cms`` namespace, so the same handler is attached there too.

    Args:
        app: Flask application instance.
    """
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Get log directory from config
    log_dir = app.config.get('BASE_DIR', os.getcwd())
    log_dir = os.path.join(str(log_dir), 'logs')

    # Set up file handler if log path is writable
    if not app.config.get('TESTING'):
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, 'cms.log'))
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            app.logger.addHandler(file_handler)
            logging.getLogger('cms').addHandler(file_handler)
        except OSError as e:
            app.logger.warning(f'File logging disabled, {log_dir} not writable: {e}')

    # Set application log level
    app.logger.setLevel(logging.INFO)
    logging.getLogger('cms').setLevel(logging.INFO)


def _register_blueprints(app: Flask) -> None:
    """
    Register API blueprints with the application.

    Args:
        app: Flask application instance.
    """
    from cms.routes import devices_bp, publications_bp, media_bp

    app.register_blueprint(devices_bp, url_prefix='/api/v1/devices')
    app.logger.info('Registered devices blueprint at /api/v1/devices')

    app.register_blueprint(publications_bp, url_prefix='/api/v1/publications')
    app.logger.info('Registered publications blueprint at /api/v1/publications')

    app.register_blueprint(media_bp, url_prefix='/api/v1/media')
    app.logger.info('Registered media blueprint at /api/v1/media')


def _register_error_handlers(app: Flask) -> None:
    """
    Register error handlers for common HTTP errors.

    Args:
        app: Flask application instance.
    """
    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'status': 'error',
            'error': 'Bad Request',
            'message': str(error.description) if hasattr(error, 'description') else 'Invalid request'
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'status': 'error',
            'error': 'Not Found',
            'message': 'The requested resource was not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'status': 'error',
            'error': 'Method Not Allowed',
            'message': 'The method is not allowed for the requested URL'
        }), 405

    @app.errorhandler(SQLAlchemyError)
    def database_error(error):
        db.session.rollback()
        app.logger.error(f'Database error: {error}')
        return jsonify({
            'status': 'error',
            'error': 'Internal Server Error',
            'message': 'A database error occurred'
        }), 500

    @app.errorhandler(500)
    def internal_server_error(error):
        return jsonify({
            'status': 'error',
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred'
        }), 500


if __name__ == '__main__':
    # Development server
    application = create_app()
    config = application.config['CONFIG_CLASS']
    application.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG
    )
