"""
Utilities package.
"""
from .config_loader import get_config, Config
from .logging_config import get_logger, setup_logging
from .json_exporter import to_session_json
from .exceptions import (
    FrameTryOnException,
    DetectionError,
    DegenerateGeometryError,
    AssetLoadError,
    ExportError,
    InvalidImageError,
    ConfigurationError,
)

__all__ = [
    'get_config', 'Config',
    'get_logger', 'setup_logging',
    'to_session_json',
    'FrameTryOnException', 'DetectionError', 'DegenerateGeometryError',
    'AssetLoadError', 'ExportError', 'InvalidImageError', 'ConfigurationError',
]
