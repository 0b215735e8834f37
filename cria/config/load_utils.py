"""JSON loading utility for configuration files.

Errors are reported as LoadError so callers can tell unreadable files apart
from files that parse but fail validation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from cria.core.errors import LoadError

logger = logging.getLogger(__name__)


def load_json_file(path: Path, error_context: str = "") -> dict[str, Any]:
    """Load and parse a JSON object from a file.

    Args:
        path: Path to the JSON file to load.
        error_context: Optional prefix for error messages (e.g. "config").

    Returns:
        Parsed JSON as a dict. Returns an empty dict if the file is empty.

    Raises:
        LoadError: If the file doesn't exist, can't be read, contains invalid
            JSON, or contains non-object JSON.
    """
    context_prefix = f"{error_context}: " if error_context else ""
    resolved = path.resolve()

    if not resolved.is_file():
        raise LoadError(f"{context_prefix}File not found: {path}")

    try:
        content = resolved.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise LoadError(f"{context_prefix}Failed to read file {path}: {e}") from e

    content = content.strip()
    if not content:
        return {}

    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise LoadError(f"{context_prefix}Invalid JSON in {path}: {e}") from e

    if not isinstance(result, dict):
        raise LoadError(
            f"{context_prefix}Expected object in {path}, got {type(result).__name__}"
        )

    logger.debug("Loaded %s", resolved)
    return result
