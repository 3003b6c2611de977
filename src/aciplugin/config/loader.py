from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from aciplugin.config.defaults import CONFIG_FILE_PATH_ENV
from aciplugin.config.errors import FileReadError, SchemaParseError
from aciplugin.config.models import ConfigurationDocument

logger = logging.getLogger(__name__)

__all__ = ["resolve_config_path", "parse_document", "load_document"]


def resolve_config_path(path: str | os.PathLike[str] | None = None) -> Path:
    """Return the configuration file path, falling back to PLUGIN_CONFIG_FILE_PATH.

    Raises:
        FileReadError: If no path is given and the environment variable is unset.
    """
    if path is not None and str(path):
        return Path(path)
    env_path = os.environ.get(CONFIG_FILE_PATH_ENV, "")
    if not env_path:
        raise FileReadError(f"no value set to environment variable {CONFIG_FILE_PATH_ENV}")
    return Path(env_path)


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<document>"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def parse_document(data: bytes, source: str = "<config>") -> ConfigurationDocument:
    """Decode raw configuration bytes into a ``ConfigurationDocument``.

    Sources named ``*.json`` are decoded as JSON, anything else as YAML.

    Raises:
        SchemaParseError: If the bytes cannot be decoded into the document structure.
    """
    try:
        raw: Any
        if source.endswith(".json"):
            raw = json.loads(data)
        else:
            raw = yaml.safe_load(data)
    except (json.JSONDecodeError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise SchemaParseError(f"failed to unmarshal config data from {source}: {exc}") from exc

    if not isinstance(raw, dict):
        raise SchemaParseError(
            f"failed to unmarshal config data from {source}: top level must be a mapping"
        )

    try:
        return ConfigurationDocument.model_validate(raw)
    except ValidationError as exc:
        raise SchemaParseError(
            f"failed to unmarshal config data from {source}: {_format_validation_error(exc)}"
        ) from exc


def load_document(path: str | os.PathLike[str] | None = None) -> ConfigurationDocument:
    """Read and parse the plugin configuration file.

    Args:
        path: Optional explicit path. Defaults to the PLUGIN_CONFIG_FILE_PATH
            environment variable.

    Raises:
        FileReadError: If the path is unset or the file cannot be read.
        SchemaParseError: If the file content is malformed.
    """
    config_path = resolve_config_path(path)
    logger.debug("Loading plugin config from %s", config_path)
    try:
        data = config_path.read_bytes()
    except (OSError, ValueError) as exc:
        raise FileReadError(
            f"failed to read the config file {config_path}: {exc}", path=str(config_path)
        ) from exc
    return parse_document(data, str(config_path))
