"""Flask application factory for the care tracker backend."""
from flask import Flask
import os
import logging
from pathlib import Path
from .models import db
from .blueprints import (
    auth, care_recipients, care_stats, medications, appointments, meals, tracking,
    vitals, notes, contacts, supplies, emergency_info
)
from .cli import init_db_command, create_user_command, seed_demo_command
from .logging_config import setup_logging
from .utils import register_error_handlers

logger = logging.getLogger(__name__)

BLUEPRINTS = (
    auth, care_recipients, care_stats, medications, appointments, meals, tracking,
    vitals, notes, contacts, supplies, emergency_info
)


def create_app(test_config=None):
    """Flask application factory for the care tracker backend.

    Creates and configures a Flask application instance with:
    - SQLAlchemy database integration
    - Blueprint registration for API endpoints
    - Bearer token authentication
    - JSON error handlers
    - CLI command registration
    - Logging configuration

    Args:
        test_config (dict, optional): Configuration overrides for testing

    Returns:
        Flask: Configured Flask application instance
    """
    # Setup logging first
    setup_logging()
    logger.info("Starting Flask application initialization")

    app = Flask(__name__, instance_relative_config=True)
    logger.debug(f"Flask app created with instance path: {app.instance_path}")

    app.config.from_mapping(
        SECRET_KEY=os.getenv('SECRET_KEY', 'dev'),
        EMERGENCY_GRANT_TTL_SECONDS=int(os.getenv('EMERGENCY_GRANT_TTL_SECONDS', '900')),
        PASSWORD_RESET_TTL_SECONDS=int(os.getenv('PASSWORD_RESET_TTL_SECONDS', '3600')),
    )

    if test_config is None:
        # Load the instance config, if it exists, when not testing
        config_loaded = app.config.from_pyfile('config.py', silent=True)
        if config_loaded:
            logger.info("Loaded configuration from instance/config.py")
        else:
            logger.debug("No instance config file found, using defaults")
    else:
        # Load the test config if passed in
        app.config.from_mapping(test_config)
        logger.info("Loaded test configuration")

    # Ensure the instance folder exists
    try:
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created instance directory: {app.instance_path}")
    except OSError:
        logger.debug(f"Instance directory already exists: {app.instance_path}")

    # Only set default database URI if not already set (e.g., by tests)
    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        db_url = os.getenv('DATABASE_URL', 'sqlite:///care_tracker.db')
        app.config['SQLALCHEMY_DATABASE_URI'] = db_url
        logger.info(f"Configured database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    else:
        logger.info(f"Using existing database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    db.init_app(app)
    logger.info("SQLAlchemy database initialized")

    logger.info("Registering API blueprints")
    for module in BLUEPRINTS:
        app.register_blueprint(module.bp)
        logger.debug(f"Registered {module.bp.name} blueprint")
    logger.info("All API blueprints registered successfully")

    auth.init_auth(app)
    logger.info("Authentication system initialized")

    register_error_handlers(app)

    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(seed_demo_command)
    logger.info("CLI commands registered: init-db, create-user, seed-demo")

    logger.info("Flask application initialization completed successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
