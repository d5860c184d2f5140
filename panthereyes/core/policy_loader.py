"""
Policy Loader — reads and validates `.panthereyes/policy.yaml`.
"""

from __future__ import annotations

from pathlib import Path

from panthereyes.core.config_files import (
    POLICY_FILE_NAME,
    config_file_path,
    parse_yaml_model,
    read_config_file,
)
from panthereyes.core.exceptions import PolicyConfigIoError, PolicyConfigSchemaError
from panthereyes.models.policy_models import LoadedPolicyFile, PolicyFile


def parse_policy_yaml(raw_yaml: str, file_path: str = ".panthereyes/policy.yaml") -> PolicyFile:
    return parse_yaml_model(raw_yaml, PolicyFile, file_path, PolicyConfigSchemaError)


def load_policy_file(root_dir: str | Path | None = None) -> LoadedPolicyFile:
    """
    Load the layered policy file under `root_dir`.

    Raises:
        PolicyConfigIoError: the file is missing or unreadable.
        PolicyConfigSchemaError: the YAML is malformed or violates the schema.
    """
    file_path = config_file_path(root_dir, POLICY_FILE_NAME)
    raw_yaml = read_config_file(file_path, PolicyConfigIoError)
    return LoadedPolicyFile(
        file_path=str(file_path),
        data=parse_policy_yaml(raw_yaml, str(file_path)),
    )
