from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from .aliases import DEFAULT_HEADER_ALIASES, MAPPING_VERSION, REPORT_TYPE, merge_aliases

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate against the JSON schema shipped in config/schemas/
- Apply defaults (report_type / mapping_version / logs_directory)
- Merge extra header aliases into the built-in alias table
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).parent / "schemas" / "import_config.json"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback values; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    report_type: str = REPORT_TYPE
    mapping_version: str = MAPPING_VERSION
    logs_directory: str = "./logs"
    header_aliases: dict[str, list[str]] = field(
        default_factory=lambda: merge_aliases(DEFAULT_HEADER_ALIASES, None)
    )
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @classmethod
    def defaults(cls) -> ImportConfig:
        return cls()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    try:
        aliases = merge_aliases(DEFAULT_HEADER_ALIASES, data.get("header_aliases"))
    except ValueError as e:
        raise ConfigError(str(e)) from e

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        report_type=data.get("report_type", REPORT_TYPE),
        mapping_version=data.get("mapping_version", MAPPING_VERSION),
        logs_directory=data.get("logs_directory", "./logs"),
        header_aliases=aliases,
        database=db,
    )
