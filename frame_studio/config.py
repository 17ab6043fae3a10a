"""
Configuration management for Frame Studio
Loads settings from YAML files with environment variable overrides
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from loguru import logger


class AppConfig(BaseModel):
    """Main application configuration"""

    # Flask settings
    SECRET_KEY: str = Field(default_factory=lambda: os.urandom(24).hex())
    FLASK_ENV: str = "development"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # Editor canvas envelope
    CANVAS_MIN_SIZE: Tuple[int, int] = (300, 400)
    CANVAS_MAX_SIZE: Tuple[int, int] = (500, 700)
    CANVAS_DEFAULT_SIZE: Tuple[int, int] = (400, 600)
    FIT_RATIO: float = 0.8  # user photo fits within 80% of the binding axis

    # Controls
    SCALE_MIN: float = 0.1
    SCALE_MAX: float = 3.0
    ROTATION_MIN: float = -180.0
    ROTATION_MAX: float = 180.0

    # Uploads
    MAX_UPLOAD_SIZE: int = 20 * 1024 * 1024  # 20MB
    ALLOWED_EXTENSIONS: List[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
    UPLOAD_ENDPOINT: Optional[str] = None
    UPLOAD_PRESET: Optional[str] = None
    UPLOAD_FOLDER: str = "product-customizations"
    UPLOAD_TIMEOUT: float = 60.0
    LOCAL_BLOB_DIR: str = "var/blobs"
    LOCAL_IMAGE_ROOTS: List[str] = []  # extra directories images may be read from besides LOCAL_BLOB_DIR
    IMAGE_FETCH_TIMEOUT: Optional[float] = None

    # Retry policy
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_DELAY: float = 1.0
    RETRY_MULTIPLIER: float = 2.0

    # Persistence
    STORE_PATH: str = "var/customizations.json"
    STORE_NAMESPACE: str = "product-customizations"

    # Editor sessions
    MAX_SESSIONS: int = 100
    FRAME_CACHE_SIZE: int = 32

    # Preview
    PREVIEW_DEFAULT_WIDTH: int = 500
    PREVIEW_DEFAULT_HEIGHT: int = 800
    PREVIEW_MAX_SIZE: int = 2048


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except Exception as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def load_config(environment: str = "development", config_dir: str = "config") -> AppConfig:
    """Load configuration with environment-specific overrides"""

    # Load base settings
    base_config = load_yaml_config(f"{config_dir}/settings.yaml")

    # Load environment-specific settings
    env_config = load_yaml_config(f"{config_dir}/settings_{environment}.yaml")

    # Merge configurations (env overrides base)
    config_dict = {**base_config, **env_config}

    # Apply environment variable overrides
    env_overrides = {
        'FLASK_ENV': os.getenv('FLASK_ENV', environment),
        'LOG_LEVEL': os.getenv('LOG_LEVEL'),
        'LOG_FILE': os.getenv('LOG_FILE'),
        'SECRET_KEY': os.getenv('SECRET_KEY'),
        'UPLOAD_ENDPOINT': os.getenv('UPLOAD_ENDPOINT'),
        'UPLOAD_PRESET': os.getenv('UPLOAD_PRESET'),
        'STORE_PATH': os.getenv('STORE_PATH'),
        'LOCAL_BLOB_DIR': os.getenv('LOCAL_BLOB_DIR'),
    }

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    # Special handling for boolean DEBUG flag
    if 'FLASK_ENV' in config_dict:
        config_dict['DEBUG'] = config_dict['FLASK_ENV'] == 'development'

    try:
        return AppConfig(**config_dict)
    except Exception as e:
        logger.error(f"Configuration validation error: {e}")
        # Return default config on validation error
        return AppConfig()


# Global config instance
_config_instance = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config(os.getenv('FLASK_ENV', 'development'))
    return _config_instance


def set_config(config: AppConfig) -> None:
    """Replace the global configuration instance (used by the app factory)"""
    global _config_instance
    _config_instance = config
