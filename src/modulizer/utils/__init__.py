"""
Utility modules for document keys, file-system checks and logging.

Examples:
    >>> from modulizer.utils import module_key, setup_logger
    >>> module_key("elements/button.html")
    './elements/button.js'
    >>> logger = setup_logger("modulizer")
"""

from .path_utils import (
    # Type alias
    PathLike,
    # File-system helpers
    normalize_path,
    ensure_directory,
    is_safe_path,
    is_readable,
    is_writable,
    # Document keys
    normalize_key,
    is_external_href,
    resolve_link,
    change_extension,
    module_key,
    module_specifier,
)

from .logger import (
    setup_logger,
    get_logger,
    set_log_level,
    add_file_handler,
    add_console_handler,
    VALID_LOG_LEVELS,
)

__all__ = [
    "PathLike",
    "normalize_path",
    "ensure_directory",
    "is_safe_path",
    "is_readable",
    "is_writable",
    "normalize_key",
    "is_external_href",
    "resolve_link",
    "change_extension",
    "module_key",
    "module_specifier",
    "setup_logger",
    "get_logger",
    "set_log_level",
    "add_file_handler",
    "add_console_handler",
    "VALID_LOG_LEVELS",
]
