import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

import database
from database import db
from extensions import init_extensions
from storage import CurriculumStore
from utils.api_logger import init_request_logging
from utils.errors import CurriculumError
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

def create_app(test_config=None):
    """Application factory function"""
    app = Flask(__name__)

    # Configure the Flask application
    app.config.update({
        'SECRET_KEY': os.environ.get('FLASK_SECRET_KEY', 'dev_key_for_development_only'),
        'SQLALCHEMY_DATABASE_URI': os.environ.get('DATABASE_URL', database.DEFAULT_DATABASE_URL),
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MAX_CONTENT_LENGTH': 50 * 1024 * 1024,
    })
    if test_config:
        app.config.update(test_config)

    if not app.config.get('TESTING'):
        setup_logging(log_level=os.environ.get('LOG_LEVEL'), log_dir=os.environ.get('LOG_DIR'))
    logger.info("Starting application initialization...")

    database.init_app(app)
    init_extensions(app, db)
    init_request_logging(app)

    # One store per app; it works against the request-scoped session
    store = CurriculumStore(db.session)
    app.extensions['curriculum_store'] = store
    with app.app_context():
        store.ensure_admin_tab()

    from routes import blueprints
    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    from commands import register_commands
    register_commands(app)

    register_error_handlers(app)

    logger.info("Application initialized successfully")
    return app

def register_error_handlers(app):
    @app.errorhandler(CurriculumError)
    def handle_curriculum_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.kind} error: {error.message}", exc_info=error.__cause__)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'message': error.description, 'error': error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.error(f"Unhandled error: {str(error)}", exc_info=True)
        return jsonify({'message': 'Internal server error', 'error': 'internal'}), 500
