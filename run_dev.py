#!/usr/bin/env python3
"""
Frame Studio - Development Runner
Run this script to start the development server
"""

import os
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set environment defaults
os.environ.setdefault('FLASK_APP', 'frame_studio')
os.environ.setdefault('FLASK_ENV', 'development')

from frame_studio import create_app


def main():
    """Main entry point"""
    print("=" * 60)
    print("Frame Studio - Development Server")
    print("=" * 60)

    app = create_app()
    svc = app.extensions['frame_studio']

    print(f"Environment: {app.config.get('FLASK_ENV', 'unknown')}")
    print(f"Debug mode: {app.config.get('DEBUG', False)}")
    print(f"Log level: {app.config.get('LOG_LEVEL', 'INFO')}")
    print(f"Customization store: {svc.store.path} ({len(svc.store)} saved)")

    if not app.config.get('UPLOAD_ENDPOINT'):
        print(f"⚠️  UPLOAD_ENDPOINT not set, artifacts are saved to {app.config.get('LOCAL_BLOB_DIR')}")

    if not Path('config/settings.yaml').exists():
        print("⚠️  Missing config file: config/settings.yaml (using defaults)")

    print("-" * 60)
    print("Starting development server...")
    print("API available at: http://localhost:5000")
    print("Press Ctrl+C to stop")
    print("-" * 60)

    app.run(
        host='0.0.0.0',
        port=5000,
        debug=app.config.get('DEBUG', True),
        use_reloader=True,
        threaded=True
    )


if __name__ == '__main__':
    main()
