"""
Utility functions and helpers for the TinyKNN library.

This module provides various utility functionalities:
- config: Configuration management
- file_utils: File operations helpers
- versioning: Content hashing for archives
- logging: Logging utilities
- errors: Custom exception types
"""

from tinyknn.utils.config import Config, get_config, set_global_config, load_config
from tinyknn.utils.file_utils import (
    ensure_dir,
    load_json,
    save_json,
    read_bytes,
    write_bytes
)
from tinyknn.utils.versioning import calculate_content_hash, verify_content_hash
from tinyknn.utils.logging import setup_logger, configure_logging
from tinyknn.utils.errors import (
    TinyKNNError,
    InvalidInputError, DimensionMismatchError, InvalidFeatureError, InvalidKError,
    EmptyIndexError,
    NotInitializedError,
    UnknownIdError,
    StorageError, ArchiveIOError, CorruptArchiveError,
    ConfigError
)

__all__ = [
    # Configuration
    "Config",
    "get_config",
    "set_global_config",
    "load_config",

    # File utilities
    "ensure_dir",
    "load_json",
    "save_json",
    "read_bytes",
    "write_bytes",

    # Versioning utilities
    "calculate_content_hash",
    "verify_content_hash",

    # Logging utilities
    "setup_logger",
    "configure_logging",

    # Error classes
    "TinyKNNError",
    "InvalidInputError", "DimensionMismatchError", "InvalidFeatureError", "InvalidKError",
    "EmptyIndexError",
    "NotInitializedError",
    "UnknownIdError",
    "StorageError", "ArchiveIOError", "CorruptArchiveError",
    "ConfigError"
]
