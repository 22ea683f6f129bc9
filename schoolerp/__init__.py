"""
SchoolERP Application Factory
Multi-branch school administration API
"""

import os
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from schoolerp.models import db
from schoolerp.models.database import init_db
from schoolerp.routes import (
    auth_bp, tenant_bp, people_bp, admission_bp, leave_bp, attendance_bp,
    examination_bp, salary_bp, courtesy_call_bp, communication_bp, health_bp
)
from schoolerp.schemas import ma
from schoolerp.utils import (
    SchoolERPException, DatabaseError, create_response, setup_logging, log_error, log_info
)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Import and set configuration
    from config import config
    config_class = config.get(config_name, config['default'])
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Initialize extensions
    db.init_app(app)
    ma.init_app(app)
    CORS(app)

    register_error_handlers(app)

    # Setup logging
    with app.app_context():
        setup_logging()
        log_info(f"Application initialized ({config_name})")

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(tenant_bp, url_prefix='/api/tenants')
    app.register_blueprint(people_bp, url_prefix='/api/people')
    app.register_blueprint(admission_bp, url_prefix='/api/admissions')
    app.register_blueprint(leave_bp, url_prefix='/api/leave')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(examination_bp, url_prefix='/api/examinations')
    app.register_blueprint(salary_bp, url_prefix='/api/salary')
    app.register_blueprint(courtesy_call_bp, url_prefix='/api/courtesy-calls')
    app.register_blueprint(communication_bp, url_prefix='/api/communication')
    app.register_blueprint(health_bp, url_prefix='/api/health')

    # Create database tables and seed data
    with app.app_context():
        init_db()
        log_info("Database tables created successfully")

    return app


def register_error_handlers(app: Flask) -> None:
    """Turn exceptions into the standard JSON envelope"""

    @app.errorhandler(SchoolERPException)
    def handle_app_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            log_error(f"{type(error).__name__}", error)
        return jsonify(create_response(False, error.message, errors=error.errors)), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        log_error("Database statement failed", error)
        return handle_app_error(DatabaseError("Database error"))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify(create_response(False, error.description)), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        log_error("Unhandled error", error)
        return jsonify(create_response(False, "Internal server error")), 500
