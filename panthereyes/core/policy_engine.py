"""
Policy Resolution Engine — merges layered policy into an effective preview.

Layers are applied in a fixed order, later layers winning:

    defaults  ->  envs.<env>  ->  envs.<env>.targets.<target>

Every call re-reads the three YAML files. The result is a pure function of
their contents plus wall-clock time (only used for exception expiry).
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path

from panthereyes.core.config_files import (
    EXCEPTIONS_FILE_NAME,
    POLICY_FILE_NAME,
    RULES_FILE_NAME,
    config_file_path,
)
from panthereyes.core.exceptions import UnknownPolicyEnvironmentError
from panthereyes.core.policy_loader import load_policy_file
from panthereyes.core.rule_catalog import (
    DEFAULT_RULE_CATALOG,
    load_exceptions,
    load_rule_catalog,
)
from panthereyes.models.policy_models import (
    DirectiveValue,
    EffectiveDirective,
    EffectivePolicyPreview,
    EffectiveRulePreview,
    PolicyFile,
    PolicyLayer,
    PolicyMode,
    PolicyPaths,
    RuleOverride,
)
from panthereyes.models.rule_models import (
    RuleException,
    RuleMetadata,
    RuleTarget,
    Severity,
)

logger = logging.getLogger("panthereyes.policy")

DEFAULT_MODE = PolicyMode.WARN
DEFAULT_FAIL_ON_SEVERITY = Severity.HIGH


@dataclass(frozen=True)
class SourcedLayer:
    """A policy layer tagged with its provenance. `layer` may be absent."""

    source: str
    layer: PolicyLayer | None


@dataclass(frozen=True)
class ResolvedPolicyLayer:
    mode: PolicyMode = DEFAULT_MODE
    fail_on_severity: Severity = DEFAULT_FAIL_ON_SEVERITY
    directives: dict[str, DirectiveValue] = field(default_factory=dict)
    directive_sources: dict[str, str] = field(default_factory=dict)
    rule_overrides: dict[str, RuleOverride] = field(default_factory=dict)

    @property
    def directive_list(self) -> list[EffectiveDirective]:
        return [
            EffectiveDirective(
                key=key,
                value=self.directives[key],
                source=self.directive_sources.get(key, "defaults"),
            )
            for key in sorted(self.directives)
        ]


def resolve_layer_stack(policy: PolicyFile, env: str, target: RuleTarget) -> list[SourcedLayer]:
    """Ordered layer stack for (env, target); raises if env is unknown."""
    env_config = policy.envs.get(env)
    if env_config is None:
        raise UnknownPolicyEnvironmentError(env, list(policy.envs))

    target_value = RuleTarget(target).value
    return [
        SourcedLayer("defaults", policy.defaults),
        SourcedLayer(f"envs.{env}", env_config),
        SourcedLayer(
            f"envs.{env}.targets.{target_value}",
            env_config.targets.for_target(RuleTarget(target)),
        ),
    ]


def merge_rule_overrides(
    base: dict[str, RuleOverride],
    incoming: dict[str, RuleOverride],
) -> dict[str, RuleOverride]:
    """
    Merge per-rule overrides from a later layer on top of `base`.

    `enabled` and `severity` only overwrite when explicitly set; directive
    sub-maps are shallow-merged with later keys winning.
    """
    merged = dict(base)
    for rule_id, override in incoming.items():
        previous = merged.get(rule_id)
        merged[rule_id] = RuleOverride(
            enabled=override.enabled if override.enabled is not None else (
                previous.enabled if previous else None
            ),
            severity=override.severity if override.severity is not None else (
                previous.severity if previous else None
            ),
            directives={
                **(previous.directives if previous else {}),
                **override.directives,
            },
        )
    return merged


def _apply_layer(state: ResolvedPolicyLayer, sourced: SourcedLayer) -> ResolvedPolicyLayer:
    layer = sourced.layer
    if layer is None:
        return state

    directives = dict(state.directives)
    directive_sources = dict(state.directive_sources)
    for key, value in layer.directives.items():
        directives[key] = value
        directive_sources[key] = sourced.source

    return ResolvedPolicyLayer(
        mode=layer.mode or state.mode,
        fail_on_severity=layer.fail_on_severity or state.fail_on_severity,
        directives=directives,
        directive_sources=directive_sources,
        rule_overrides=merge_rule_overrides(state.rule_overrides, layer.rule_overrides),
    )


def resolve_effective_layer(policy: PolicyFile, env: str, target: RuleTarget) -> ResolvedPolicyLayer:
    """Fold the layer stack left to right into a single resolved layer."""
    return reduce(_apply_layer, resolve_layer_stack(policy, env, target), ResolvedPolicyLayer())


def _utc(now: dt.datetime | None) -> dt.datetime:
    if now is None:
        return dt.datetime.now(dt.timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=dt.timezone.utc)
    return now


def is_exception_active(
    exception: RuleException,
    env: str,
    target: RuleTarget,
    now: dt.datetime | None = None,
) -> bool:
    """
    An exception is active when env and target match and it has not expired.

    `expires_on` is inclusive: the exception stays active until the end of
    that day (UTC). No `expires_on` means it never expires.
    """
    if env not in exception.environments:
        return False
    if RuleTarget(target) not in exception.targets:
        return False
    if not exception.expires_on:
        return True

    try:
        expiry_day = dt.date.fromisoformat(exception.expires_on)
    except ValueError:
        return False

    expiry = dt.datetime.combine(expiry_day, dt.time.max, tzinfo=dt.timezone.utc)
    return expiry >= _utc(now)


def to_effective_rule_preview(
    rule: RuleMetadata,
    override: RuleOverride | None,
    active_exceptions: list[RuleException],
) -> EffectiveRulePreview:
    return EffectiveRulePreview(
        rule_id=rule.rule_id,
        title=rule.title,
        description=rule.description,
        remediation=rule.remediation,
        tags=list(rule.tags),
        allow_exception=rule.allow_exception,
        enabled=override.enabled if override and override.enabled is not None else True,
        default_severity=rule.default_severity,
        effective_severity=(
            override.severity if override and override.severity is not None else rule.default_severity
        ),
        has_active_exception=len(active_exceptions) > 0,
        active_exceptions=active_exceptions,
        override_directives=dict(override.directives) if override else {},
    )


def preview_effective_policy(
    env: str,
    target: RuleTarget | str,
    root_dir: str | Path | None = None,
    now: dt.datetime | None = None,
) -> EffectivePolicyPreview:
    """
    Resolve the effective policy for one environment and one target.

    Args:
        env: Environment name; must be a key of `envs` in policy.yaml.
        target: 'web' or 'mobile'.
        root_dir: Workspace root containing `.panthereyes/` (default: cwd).
        now: Clock override for exception expiry (default: current UTC time).

    Raises:
        UnknownPolicyEnvironmentError, ConfigIoError, ConfigSchemaError.
    """
    target = RuleTarget(target)
    policy = load_policy_file(root_dir)
    resolved = resolve_effective_layer(policy.data, env, target)
    rules_catalog = load_rule_catalog(root_dir)
    exceptions_catalog = load_exceptions(root_dir)

    catalog_rules = rules_catalog.rules or DEFAULT_RULE_CATALOG.rules
    scoped_rules = [rule for rule in catalog_rules if target in rule.targets]
    scoped_rule_ids = {rule.rule_id for rule in scoped_rules}

    active_exceptions = [
        entry
        for entry in exceptions_catalog.exceptions
        if is_exception_active(entry, env, target, now)
    ]

    effective_rules = []
    for rule in scoped_rules:
        rule_exceptions = (
            [entry for entry in active_exceptions if entry.rule_id == rule.rule_id]
            if rule.allow_exception
            else []
        )
        effective_rules.append(
            to_effective_rule_preview(rule, resolved.rule_overrides.get(rule.rule_id), rule_exceptions)
        )

    logger.debug(
        "Resolved policy %s/%s: mode=%s rules=%d exceptions=%d",
        env,
        target.value,
        resolved.mode.value,
        len(effective_rules),
        len(active_exceptions),
    )

    return EffectivePolicyPreview(
        env=env,
        target=target,
        mode=resolved.mode,
        fail_on_severity=resolved.fail_on_severity,
        directives=dict(resolved.directives),
        directive_list=resolved.directive_list,
        rules=effective_rules,
        exceptions_applied=[
            entry for entry in active_exceptions if entry.rule_id in scoped_rule_ids
        ],
        paths=PolicyPaths(
            policy=str(config_file_path(root_dir, POLICY_FILE_NAME)),
            rules=str(config_file_path(root_dir, RULES_FILE_NAME)),
            exceptions=str(config_file_path(root_dir, EXCEPTIONS_FILE_NAME)),
        ),
    )


def list_effective_directives(
    env: str,
    target: RuleTarget | str,
    root_dir: str | Path | None = None,
) -> list[EffectiveDirective]:
    """Effective directives for (env, target), sorted by key, with provenance."""
    return preview_effective_policy(env, target, root_dir).directive_list
