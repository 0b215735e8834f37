"""Configuration loading and validation."""

from cria.config.loader import load_config, validate_config
from cria.config.schema import OverheadConfig, RenderConfig

__all__ = [
    "OverheadConfig",
    "RenderConfig",
    "load_config",
    "validate_config",
]
