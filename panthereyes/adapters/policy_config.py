"""
Policy Config Adapter — the workspace policy API as seen by tools.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from panthereyes.core.config_files import (
    EXCEPTIONS_FILE_NAME,
    RULES_FILE_NAME,
    config_file_path,
)
from panthereyes.core.policy_engine import list_effective_directives, preview_effective_policy
from panthereyes.core.policy_loader import load_policy_file
from panthereyes.core.rule_catalog import load_exceptions, load_rule_catalog
from panthereyes.models.base import CamelModel
from panthereyes.models.policy_models import EffectiveDirective, EffectivePolicyPreview
from panthereyes.models.rule_models import RuleTarget


class ConfigFilePaths(CamelModel):
    policy: str
    rules: str
    exceptions: str


class ConfigCounts(CamelModel):
    environments: int
    rules: int
    exceptions: int


class SecurityConfigValidation(CamelModel):
    valid: bool
    root_dir: str
    files: ConfigFilePaths
    counts: ConfigCounts
    warnings: list[str] = Field(default_factory=list)


class WorkspacePolicyConfigAdapter:
    def validate_security_config(self, root_dir: str | Path) -> SecurityConfigValidation:
        """
        Load all three config files; any load failure propagates.

        A configuration that loads is valid; soft problems become warnings.
        """
        policy = load_policy_file(root_dir)
        rules = load_rule_catalog(root_dir)
        exceptions = load_exceptions(root_dir)

        warnings: list[str] = []
        if not policy.data.envs:
            warnings.append("No environments defined in .panthereyes/policy.yaml")
        if not rules.rules:
            warnings.append("Rule catalog is empty")

        return SecurityConfigValidation(
            valid=True,
            root_dir=str(root_dir),
            files=ConfigFilePaths(
                policy=policy.file_path,
                rules=str(config_file_path(root_dir, RULES_FILE_NAME)),
                exceptions=str(config_file_path(root_dir, EXCEPTIONS_FILE_NAME)),
            ),
            counts=ConfigCounts(
                environments=len(policy.data.envs),
                rules=len(rules.rules),
                exceptions=len(exceptions.exceptions),
            ),
            warnings=warnings,
        )

    def preview_effective_policy(
        self, root_dir: str | Path, env: str, target: RuleTarget | str
    ) -> EffectivePolicyPreview:
        return preview_effective_policy(env, target, root_dir)

    def list_effective_directives(
        self, root_dir: str | Path, env: str, target: RuleTarget | str
    ) -> list[EffectiveDirective]:
        return list_effective_directives(env, target, root_dir)
