"""Configuration loading for render defaults."""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cria.config.load_utils import load_json_file
from cria.config.schema import RenderConfig
from cria.core.errors import ConfigError, LoadError

logger = logging.getLogger(__name__)


def load_config(path: Path | str) -> RenderConfig:
    """Load and validate a render configuration file.

    Args:
        path: Path to a JSON config file.

    Returns:
        Validated RenderConfig.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or fails
            validation.
    """
    try:
        data = load_json_file(Path(path), error_context="config")
    except LoadError as e:
        raise ConfigError(e.message) from e
    return validate_config(data, source=str(path))


def validate_config(data: dict[str, Any], source: str = "<dict>") -> RenderConfig:
    """Validate an already-parsed configuration mapping.

    Raises:
        ConfigError: If validation fails. The message lists every field error.
    """
    try:
        config = RenderConfig.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration in {source}: {errors}") from e

    logger.debug("Loaded render config from %s", source)
    return config
