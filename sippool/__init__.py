# sippool/__init__.py
# -*- coding: utf-8 -*-
"""SIP configuration pool gateway: application package setup."""

import os
import logging
from flask import Flask, jsonify, request

from .config import config
from .extensions import db, migrate


def _error_envelope(message, code, status_code):
    return jsonify(success=False, error=message, code=code), status_code


def create_app(config_name=None):
    """
    Create and configure an instance of the Flask application using the App Factory pattern.

    Args:
        config_name (str, optional): The name of the configuration to use ('development', 'testing', 'production').
                                     Defaults to FLASK_ENV environment variable or 'default'.

    Returns:
        Flask: The configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')
        if config_name not in config:
            print(f"WARNING: Invalid FLASK_ENV '{config_name}', defaulting to 'development'.")
            config_name = 'development'

    app = Flask(__name__)

    try:
        app.config.from_object(config[config_name])
        config[config_name].init_app(app)
        print(f"INFO: App created with configuration: '{config_name}'")
    except KeyError:
        print(f"ERROR: Configuration '{config_name}' not found. Check config.py.")
        raise ValueError(f"Invalid configuration name: {config_name}")

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)

    log_level_name = app.config.get('LOG_LEVEL', 'INFO' if not app.debug else 'DEBUG').upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    app.logger.setLevel(log_level)
    for handler in app.logger.handlers:
        handler.setLevel(log_level)
    logging.getLogger('sippool').setLevel(log_level)
    app.logger.info(f"Flask logger initialized with level: {log_level_name}")

    # --- Register Blueprints ---
    from .api.routes.sip_configs import sip_configs_bp
    app.register_blueprint(sip_configs_bp, url_prefix='/api/sip-config')

    # --- CLI (provisioning and operator commands) ---
    from .cli import pool_cli
    app.cli.add_command(pool_cli)

    @app.route('/health')
    def health_check():
        return {"status": "ok", "message": "Application is running."}, 200

    # --- Global HTTP Error Handlers ---
    # Errors raised by abort() or unmatched routes still use the gateway envelope.

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(f"Bad Request (400): {error.description}")
        return _error_envelope(error.description or "Bad request.", "VALIDATION_ERROR", 400)

    @app.errorhandler(401)
    def unauthorized_error(error):
        app.logger.warning(f"Unauthorized (401): {error.description}")
        return _error_envelope(error.description or "Unauthorized.", "UNAUTHORIZED", 401)

    @app.errorhandler(403)
    def forbidden_error(error):
        app.logger.warning(f"Forbidden (403): {error.description}")
        return _error_envelope(error.description or "Forbidden.", "FORBIDDEN", 403)

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.info(f"Not Found (404): {error.description} (Path: {request.path})")
        return _error_envelope(error.description or "Resource not found.", "NOT_FOUND", 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        app.logger.info(f"Method Not Allowed (405): {request.method} {request.path}")
        return _error_envelope(error.description or "Method not allowed.", "METHOD_NOT_ALLOWED", 405)

    @app.errorhandler(409)
    def conflict_error(error):
        app.logger.warning(f"Conflict (409): {error.description}")
        return _error_envelope(error.description or "Conflict.", "CONFLICT", 409)

    @app.errorhandler(500)
    def internal_error(error):
        original_exception = getattr(error, "original_exception", error)
        app.logger.error(f"Internal Server Error (500): {getattr(error, 'description', error)}", exc_info=original_exception)
        # Never leave a half-finished transaction on the scoped session
        try:
            db.session.rollback()
            app.logger.info("Rolled back database session due to 500 error.")
        except Exception as rb_err:
            app.logger.error(f"Error during automatic rollback after 500 error: {rb_err}", exc_info=True)
        return _error_envelope(getattr(error, 'description', None) or "Internal server error.", "INTERNAL_ERROR", 500)

    # --- Shell Context Processor ---
    @app.shell_context_processor
    def make_shell_context():
        from .database import models
        from .database.pool_repository import SipConfigRepository
        from .services.assignment_service import AssignmentService
        from .services.stats_service import PoolStatsService
        return {
            'db': db,
            'models': models,
            'SipConfigRepository': SipConfigRepository,
            'AssignmentService': AssignmentService,
            'PoolStatsService': PoolStatsService,
        }

    return app
