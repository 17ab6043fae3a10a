#!/usr/bin/env python3
"""
Production deployment for Frame Studio.

Builds the application with production settings and serves it with
the Waitress WSGI server.
"""

import os
import sys
from pathlib import Path
from typing import List

from loguru import logger
from waitress import serve

from frame_studio import create_app


def create_production_app():
    """Create production Flask application with proper configuration."""
    os.environ['FLASK_ENV'] = 'production'

    config = {
        'DEBUG': False,
        'TESTING': False,
        'SESSION_COOKIE_SECURE': True,
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
    }
    if os.environ.get('MAX_UPLOAD_SIZE'):
        config['MAX_UPLOAD_SIZE'] = int(os.environ['MAX_UPLOAD_SIZE'])

    return create_app(config)


def check_production_requirements(app) -> List[str]:
    """Check that production requirements are met."""
    errors = []

    if not os.environ.get('SECRET_KEY'):
        errors.append("Environment variable SECRET_KEY is required")

    if not app.config.get('UPLOAD_ENDPOINT'):
        errors.append("UPLOAD_ENDPOINT is required; local artifact storage is for development only")

    # Check write permissions for the customization store
    store_dir = Path(app.config['STORE_PATH']).parent
    try:
        check_file = store_dir / '.write_check'
        store_dir.mkdir(parents=True, exist_ok=True)
        check_file.write_text('ok')
        check_file.unlink()
    except OSError as e:
        errors.append(f"No write permission to store directory {store_dir}: {e}")

    return errors


def main():
    app = create_production_app()

    errors = check_production_requirements(app)
    if errors:
        for error in errors:
            logger.error(f"Production requirement not met: {error}")
        sys.exit(1)

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', '8000'))
    threads = int(os.environ.get('THREADS', '4'))

    logger.info(f"Starting Frame Studio on {host}:{port} with {threads} threads")
    serve(
        app,
        host=host,
        port=port,
        threads=threads,
        channel_timeout=120,
        cleanup_interval=30,
        connection_limit=1000,
        url_scheme='https' if os.environ.get('HTTPS', '').lower() == 'true' else 'http'
    )


if __name__ == '__main__':
    main()
