"""
Utils module - Utility functions and helpers.
"""

from medsecure.utils.paths import (
    is_path_within_directory,
    sanitize_filename,
    stored_file_name,
)
from medsecure.utils.validators import (
    ValidationError,
    require_fields,
    validate_email,
    validate_string_safe,
)

__all__ = [
    "is_path_within_directory",
    "sanitize_filename",
    "stored_file_name",
    "ValidationError",
    "require_fields",
    "validate_email",
    "validate_string_safe",
]
