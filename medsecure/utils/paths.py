"""
Path Utilities
==============

Upload naming and containment checks.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Final, Optional

# Anything outside this set becomes "_" in stored names
_UNSAFE_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-zA-Z0-9._-]")
_MAX_NAME_LENGTH: Final[int] = 200


def sanitize_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename by replacing potentially dangerous characters.

    Raises:
        ValueError: If nothing usable remains
    """
    if not filename:
        raise ValueError("Filename cannot be empty")

    # Drop any client-supplied directory part
    name = re.split(r"[\\/]", filename)[-1]
    sanitized = _UNSAFE_CHARS.sub(replacement, name).strip(". ")

    if not sanitized or set(sanitized) == {replacement}:
        raise ValueError("Filename becomes empty after sanitization")

    if len(sanitized) > _MAX_NAME_LENGTH:
        sanitized = sanitized[-_MAX_NAME_LENGTH:]

    return sanitized


def stored_file_name(original_name: str, now_ms: Optional[int] = None) -> str:
    """Name used on disk: ``<epoch-ms>_<sanitized original>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}_{sanitize_filename(original_name)}"


def is_path_within_directory(path: Path, directory: Path) -> bool:
    """
    Check if a path is safely within a directory (prevents path traversal).
    """
    try:
        resolved_path = path.resolve()
        resolved_dir = directory.resolve()
        return resolved_path.is_relative_to(resolved_dir)
    except (ValueError, RuntimeError):
        return False
