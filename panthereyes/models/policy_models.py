"""
Policy Data Models — layered policy file schema and the effective preview.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from pydantic import Field

from panthereyes.models.base import CamelModel
from panthereyes.models.rule_models import RuleException, RuleTarget, Severity

DirectivePrimitive = Union[bool, int, float, str]
DirectiveValue = Union[DirectivePrimitive, list[DirectivePrimitive]]


class PolicyMode(str, Enum):
    AUDIT = "audit"
    WARN = "warn"
    ENFORCE = "enforce"


class RuleOverride(CamelModel):
    """Per-rule enablement/severity override plus supplemental directives."""

    enabled: bool | None = None
    severity: Severity | None = None
    directives: dict[str, DirectiveValue] = Field(default_factory=dict)


class PolicyLayer(CamelModel):
    mode: PolicyMode | None = None
    fail_on_severity: Severity | None = None
    directives: dict[str, DirectiveValue] = Field(default_factory=dict)
    rule_overrides: dict[str, RuleOverride] = Field(default_factory=dict)


class EnvironmentTargets(CamelModel):
    web: PolicyLayer | None = None
    mobile: PolicyLayer | None = None

    def for_target(self, target: RuleTarget) -> PolicyLayer | None:
        return self.web if target == RuleTarget.WEB else self.mobile


class EnvironmentPolicy(PolicyLayer):
    targets: EnvironmentTargets = Field(default_factory=EnvironmentTargets)


class PolicyFile(CamelModel):
    version: int = Field(default=1, ge=1)
    defaults: PolicyLayer = Field(default_factory=PolicyLayer)
    envs: dict[str, EnvironmentPolicy] = Field(default_factory=dict)


class LoadedPolicyFile(CamelModel):
    file_path: str
    data: PolicyFile


class EffectiveDirective(CamelModel):
    """Final directive value and the layer that last set it."""

    key: str
    value: DirectiveValue
    source: str = Field(
        ...,
        description="'defaults' | 'envs.<env>' | 'envs.<env>.targets.<target>'",
    )


class EffectiveRulePreview(CamelModel):
    rule_id: str
    title: str
    description: str
    remediation: str
    tags: list[str] = Field(default_factory=list)
    allow_exception: bool
    enabled: bool
    default_severity: Severity
    effective_severity: Severity
    has_active_exception: bool
    active_exceptions: list[RuleException] = Field(default_factory=list)
    override_directives: dict[str, DirectiveValue] = Field(default_factory=dict)


class PolicyPaths(CamelModel):
    policy: str
    rules: str
    exceptions: str


class EffectivePolicyPreview(CamelModel):
    """Merged single-environment, single-target view. Never persisted."""

    env: str
    target: RuleTarget
    mode: PolicyMode
    fail_on_severity: Severity
    directives: dict[str, DirectiveValue] = Field(default_factory=dict)
    directive_list: list[EffectiveDirective] = Field(default_factory=list)
    rules: list[EffectiveRulePreview] = Field(default_factory=list)
    exceptions_applied: list[RuleException] = Field(default_factory=list)
    paths: PolicyPaths
