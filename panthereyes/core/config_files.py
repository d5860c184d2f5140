"""
Config Files — fixed `.panthereyes/` layout plus YAML read/validate helpers.

Files are re-read on every call; nothing here caches.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from panthereyes.core.exceptions import ConfigIoError, ConfigSchemaError

logger = logging.getLogger("panthereyes.config_files")

CONFIG_DIR_NAME = ".panthereyes"
POLICY_FILE_NAME = "policy.yaml"
RULES_FILE_NAME = "rules.yaml"
EXCEPTIONS_FILE_NAME = "exceptions.yaml"

ModelT = TypeVar("ModelT", bound=BaseModel)


def resolve_root_dir(root_dir: str | Path | None) -> Path:
    """Workspace root, defaulting to the current directory."""
    return Path(root_dir) if root_dir else Path.cwd()


def config_file_path(root_dir: str | Path | None, file_name: str) -> Path:
    return resolve_root_dir(root_dir) / CONFIG_DIR_NAME / file_name


def read_config_file(file_path: Path, io_error: type[ConfigIoError]) -> str:
    """Read a config file, wrapping any OS error in `io_error`."""
    try:
        return file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise io_error(str(file_path), e) from e


def parse_yaml_model(
    raw_yaml: str,
    model: type[ModelT],
    file_path: str,
    schema_error: type[ConfigSchemaError],
) -> ModelT:
    """Parse YAML text and validate it against `model`."""
    try:
        parsed = yaml.safe_load(raw_yaml)
    except yaml.YAMLError as e:
        raise schema_error(file_path, f"YAML parse error: {e}") from e

    try:
        return model.model_validate(parsed if parsed is not None else {})
    except ValidationError as e:
        logger.debug("Schema validation failed for %s: %s", file_path, e)
        raise schema_error(file_path, str(e)) from e
