"""
Frame Studio - Flask Application Factory
Photo frame customization: placement editor, artifact export and previews
"""

import os
from pathlib import Path
from flask import Flask
from loguru import logger
from dotenv import load_dotenv

from .config import AppConfig, load_config, set_config


def create_app(config=None, blob_store=None, retry_sleep=None):
    """
    Flask application factory

    Args:
        config: Environment name, or a mapping of configuration overrides
        blob_store: Artifact upload client (defaults from configuration)
        retry_sleep: Sleep function for upload retries (tests pass a fake)
    """

    # Load environment variables
    load_dotenv()

    app = Flask(__name__)

    # Load configuration
    environment = config if isinstance(config, str) else os.getenv('FLASK_ENV', 'development')
    app_config = load_config(environment)
    if isinstance(config, dict):
        app_config = AppConfig(**{**app_config.model_dump(), **config})
    set_config(app_config)

    app.config.update(app_config.model_dump())
    if isinstance(config, dict):
        app.config.update(config)

    # Configure logging
    setup_logging(app)

    from .services import build_services
    app.extensions['frame_studio'] = build_services(app_config, blob_store=blob_store,
                                                    retry_sleep=retry_sleep)

    # Register blueprints
    from . import routes
    app.register_blueprint(routes.bp)

    logger.info(f"Frame Studio initialized in {environment} mode "
                f"(store: {app_config.STORE_PATH})")

    return app


def setup_logging(app):
    """Configure loguru logging"""
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    log_file = app.config.get('LOG_FILE', 'logs/app.log')

    # Ensure logs directory exists
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        rotation="1 day",
        retention="30 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )
