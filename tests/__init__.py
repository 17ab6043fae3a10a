"""
Test suite for Frame Studio.

This package contains unit tests and Flask integration tests for the
frame customization editor, artifact export, storage and previews.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
