from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config (default location: config/import.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults for everything but endpoint.base_url
"""

__all__ = [
    "ConfigError",
    "EndpointConfig",
    "ParserConfig",
    "ImportConfig",
    "config_from_dict",
    "load_config",
    "SCHEMA_PATH",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_PROGRESS_PATH = "/bulk-upload/progress"
DEFAULT_UPLOAD_PATH = "/bulk-upload"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_IDLE_TIMEOUT = 120.0
DEFAULT_REQUEST_TIMEOUT = 30.0


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class EndpointConfig:
    """Where and how the ingestion service is reached."""
    base_url: str
    progress_path: str = DEFAULT_PROGRESS_PATH
    upload_path: str = DEFAULT_UPLOAD_PATH
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    idle_timeout: float | None = DEFAULT_IDLE_TIMEOUT  # max silence between stream reads
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT  # one-shot (non-streamed) requests
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def progress_url(self) -> str:
        return self.base_url.rstrip("/") + self.progress_path

    @property
    def upload_url(self) -> str:
        return self.base_url.rstrip("/") + self.upload_path

    @property
    def stream_timeout(self) -> tuple[float, float | None]:
        # requests applies the read timeout to every socket read of the body
        return (self.connect_timeout, self.idle_timeout)


@dataclass(frozen=True)
class ParserConfig:
    min_columns: int = 4
    header_synonyms: dict[str, list[str]] = field(default_factory=dict)  # merged over the built-in table


@dataclass(frozen=True)
class ImportConfig:
    endpoint: EndpointConfig
    parser: ParserConfig = field(default_factory=ParserConfig)
    warehouse: str | None = None  # default warehouse when the caller gives none
    preview_limit: int = 5
    error_log_dir: str = "./logs"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the
            config data violates it (missing keys, wrong types, extra keys)
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


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Build an ImportConfig from already-loaded data (validated first)."""
    _validate_config_schema(data)

    ep = data["endpoint"]
    # explicit null disables the idle timeout
    idle = ep.get("idle_timeout", DEFAULT_IDLE_TIMEOUT)
    endpoint = EndpointConfig(
        base_url=ep["base_url"],
        progress_path=ep.get("progress_path", DEFAULT_PROGRESS_PATH),
        upload_path=ep.get("upload_path", DEFAULT_UPLOAD_PATH),
        connect_timeout=float(ep.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
        idle_timeout=float(idle) if idle is not None else None,
        request_timeout=float(ep.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
        headers=dict(ep.get("headers") or {}),
    )
    parser_raw = data.get("parser") or {}
    parser = ParserConfig(
        min_columns=parser_raw.get("min_columns", 4),
        header_synonyms={k: list(v) for k, v in (parser_raw.get("header_synonyms") or {}).items()},
    )
    return ImportConfig(
        endpoint=endpoint,
        parser=parser,
        warehouse=data.get("warehouse"),
        preview_limit=data.get("preview_limit", 5),
        error_log_dir=data.get("error_log_dir", "./logs"),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")
    return config_from_dict(data)
