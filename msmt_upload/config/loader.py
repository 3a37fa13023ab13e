from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..client.api import DEFAULT_DOCUMENT_PATH, DEFAULT_LOOKUP_PATH
from ..models.canonical_row import DEFAULT_UOM
from ..normalize.dates import SERIAL_EPOCH
from ..services.submission import DEFAULT_DELAY_SECONDS

"""Config loader.

Responsibilities:
- Load YAML config/upload.yml
- Validate against config_schema.json (package data)
- Apply defaults
- Environment overrides: MSMT_BASE_URL, MSMT_BEARER_TOKEN (.env は CLI 側で読み込み済み)
"""

__all__ = [
    "ConfigError",
    "ServiceConfig",
    "UploadSettings",
    "UploadConfig",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/upload.yml")
DEFAULT_PREFERENCES_PATH = ".msmt_upload/preferences.json"
DEFAULT_LOGS_DIRECTORY = "./logs"

ENV_BASE_URL = "MSMT_BASE_URL"
ENV_BEARER_TOKEN = "MSMT_BEARER_TOKEN"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ServiceConfig:
    base_url: str
    document_path: str
    lookup_path: str
    timeout_seconds: float
    verify_tls: bool
    bearer_token: str | None


@dataclass(frozen=True)
class UploadSettings:
    delay_seconds: float
    serial_epoch: date
    default_uom: str


@dataclass(frozen=True)
class UploadConfig:
    service: ServiceConfig
    upload: UploadSettings
    preferences_path: Path
    logs_directory: Path


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {location}: {e.message}") from e


def _stringify_dates(data: dict[str, Any]) -> None:
    # YAML は 1899-12-31 を date 型で返す
    upload = data.get("upload")
    if isinstance(upload, dict) and isinstance(upload.get("serial_epoch"), date):
        upload["serial_epoch"] = upload["serial_epoch"].isoformat()


def load_config(path: Path, env: Mapping[str, str] | None = None) -> UploadConfig:
    if env is None:
        env = os.environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _stringify_dates(data)
    _validate_config_schema(data)

    svc_raw = data["service"]
    base_url = env.get(ENV_BASE_URL) or svc_raw["base_url"]
    service = ServiceConfig(
        base_url=base_url.rstrip("/"),
        document_path=svc_raw.get("document_path", DEFAULT_DOCUMENT_PATH),
        lookup_path=svc_raw.get("lookup_path", DEFAULT_LOOKUP_PATH),
        timeout_seconds=float(svc_raw.get("timeout_seconds", 30)),
        verify_tls=bool(svc_raw.get("verify_tls", True)),
        bearer_token=env.get(ENV_BEARER_TOKEN) or None,
    )

    up_raw = data.get("upload", {})
    epoch_raw = up_raw.get("serial_epoch")
    try:
        epoch = date.fromisoformat(epoch_raw) if epoch_raw else SERIAL_EPOCH
    except ValueError as e:
        raise ConfigError(f"upload.serial_epoch is not a valid date: {epoch_raw}") from e
    upload = UploadSettings(
        delay_seconds=float(up_raw.get("delay_seconds", DEFAULT_DELAY_SECONDS)),
        serial_epoch=epoch,
        default_uom=up_raw.get("default_uom", DEFAULT_UOM),
    )

    prefs_raw = data.get("preferences", {})
    return UploadConfig(
        service=service,
        upload=upload,
        preferences_path=Path(prefs_raw.get("path", DEFAULT_PREFERENCES_PATH)),
        logs_directory=Path(data.get("logs_directory", DEFAULT_LOGS_DIRECTORY)),
    )
