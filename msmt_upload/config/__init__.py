"""Configuration loading (YAML + JSON schema + environment)."""

from .loader import ConfigError, UploadConfig, load_config

__all__ = ["ConfigError", "UploadConfig", "load_config"]
