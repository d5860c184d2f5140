"""PantherEyes configuration exceptions.

All configuration failures are fatal to the requesting operation: no partial
or degraded preview is ever returned.

Example:
    >>> from panthereyes.core.policy_engine import preview_effective_policy
    >>> from panthereyes.core.exceptions import ConfigIoError, UnknownPolicyEnvironmentError
    >>>
    >>> try:
    ...     preview = preview_effective_policy("dev", "web", root_dir="path/to/repo")
    ... except UnknownPolicyEnvironmentError as e:
    ...     print(f"No such environment: {e.env_name}")
    ... except ConfigIoError as e:
    ...     print(f"Could not read {e.file_path}")
"""

from __future__ import annotations


class PantherEyesError(Exception):
    """Base exception for all PantherEyes errors."""

    pass


class ConfigError(PantherEyesError):
    """Raised when the `.panthereyes/` configuration cannot be used."""

    pass


class ConfigIoError(ConfigError):
    """Raised when a configuration file is missing or unreadable."""

    kind = "config"

    def __init__(self, file_path: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Failed to read {self.kind} file {file_path}")
        self.file_path = file_path
        self.cause = cause


class ConfigSchemaError(ConfigError):
    """Raised when a configuration file is not valid YAML or violates its schema.

    `detail` carries the parser/validator message.
    """

    kind = "config"

    def __init__(self, file_path: str, detail: str) -> None:
        super().__init__(f"Invalid {self.kind} schema in {file_path}: {detail}")
        self.file_path = file_path
        self.detail = detail


class PolicyConfigIoError(ConfigIoError):
    kind = "policy"


class PolicyConfigSchemaError(ConfigSchemaError):
    kind = "policy"


class RuleCatalogIoError(ConfigIoError):
    kind = "rule catalog"


class RuleCatalogSchemaError(ConfigSchemaError):
    kind = "rule catalog"


class ExceptionsIoError(ConfigIoError):
    kind = "exceptions"


class ExceptionsSchemaError(ConfigSchemaError):
    kind = "exceptions"


class UnknownPolicyEnvironmentError(ConfigError):
    """Raised when the requested environment is not a key of `envs`."""

    def __init__(self, env_name: str, available_envs: list[str]) -> None:
        available = ", ".join(available_envs) if available_envs else "<none>"
        super().__init__(
            f"Unknown policy environment '{env_name}'. Available: {available}"
        )
        self.env_name = env_name
        self.available_envs = list(available_envs)
