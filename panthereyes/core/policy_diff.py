"""
Policy Diff — structural comparison of two effective policy previews.

Directive values are compared by their canonical JSON encoding, never by
identity, so list-valued directives compare structurally.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Literal

from pydantic import Field

from panthereyes.models.base import CamelModel
from panthereyes.models.policy_models import (
    DirectiveValue,
    EffectiveDirective,
    EffectivePolicyPreview,
    EffectiveRulePreview,
    PolicyMode,
)
from panthereyes.models.rule_models import RuleTarget, Severity

DiffStatus = Literal["added", "removed", "changed"]


class EnvironmentPair(CamelModel):
    base: str
    compare: str


class ValueComparison(CamelModel):
    base: str
    compare: str
    changed: bool


class DirectiveDiff(CamelModel):
    key: str
    status: DiffStatus
    base_value: DirectiveValue | None = None
    compare_value: DirectiveValue | None = None
    base_source: str | None = None
    compare_source: str | None = None


class RuleSummary(CamelModel):
    enabled: bool
    effective_severity: Severity
    has_active_exception: bool
    default_severity: Severity
    allow_exception: bool


class RuleDiff(CamelModel):
    rule_id: str
    status: DiffStatus
    changes: list[str] = Field(default_factory=list)
    base: RuleSummary | None = None
    compare: RuleSummary | None = None


class ComparisonSummary(CamelModel):
    changes_detected: bool
    mode_changed: bool
    fail_on_severity_changed: bool
    directive_diff_count: int
    rule_diff_count: int


class PreviewStats(CamelModel):
    mode: PolicyMode
    fail_on_severity: Severity
    rule_count: int
    directives_count: int


class PolicyEnvComparison(CamelModel):
    root_dir: str
    target: RuleTarget
    environments: EnvironmentPair
    mode: ValueComparison
    fail_on_severity: ValueComparison
    directives: list[DirectiveDiff] = Field(default_factory=list)
    rules: list[RuleDiff] = Field(default_factory=list)
    summary: ComparisonSummary
    base: PreviewStats
    compare: PreviewStats


class ReviewGate(CamelModel):
    should_review: bool
    reason: str


class ReportSummary(ComparisonSummary):
    headline: str


class PolicyComparisonReport(CamelModel):
    report_type: str = "panthereyes.policy_env_comparison"
    generated_at: str
    summary: ReportSummary
    gate: ReviewGate
    diff: PolicyEnvComparison
    markdown: str


def _normalize_numbers(value: object) -> object:
    # 80 and 80.0 are the same directive value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_numbers(item) for item in value]
    return value


def canonical_json(value: object) -> str:
    return json.dumps(_normalize_numbers(value), sort_keys=True, separators=(",", ":"))


def diff_directives(
    base_directives: list[EffectiveDirective],
    compare_directives: list[EffectiveDirective],
) -> list[DirectiveDiff]:
    base_map = {d.key: d for d in base_directives}
    compare_map = {d.key: d for d in compare_directives}
    diffs: list[DirectiveDiff] = []

    for key in sorted(set(base_map) | set(compare_map)):
        base = base_map.get(key)
        compare = compare_map.get(key)
        if base is None and compare is not None:
            diffs.append(DirectiveDiff(
                key=key, status="added",
                compare_value=compare.value, compare_source=compare.source,
            ))
        elif base is not None and compare is None:
            diffs.append(DirectiveDiff(
                key=key, status="removed",
                base_value=base.value, base_source=base.source,
            ))
        elif base is not None and compare is not None:
            same_value = canonical_json(base.value) == canonical_json(compare.value)
            if not same_value or base.source != compare.source:
                diffs.append(DirectiveDiff(
                    key=key, status="changed",
                    base_value=base.value, compare_value=compare.value,
                    base_source=base.source, compare_source=compare.source,
                ))
    return diffs


def summarize_rule(rule: EffectiveRulePreview) -> RuleSummary:
    return RuleSummary(
        enabled=rule.enabled,
        effective_severity=rule.effective_severity,
        has_active_exception=rule.has_active_exception,
        default_severity=rule.default_severity,
        allow_exception=rule.allow_exception,
    )


def diff_rules(
    base_rules: list[EffectiveRulePreview],
    compare_rules: list[EffectiveRulePreview],
) -> list[RuleDiff]:
    base_map = {r.rule_id: r for r in base_rules}
    compare_map = {r.rule_id: r for r in compare_rules}
    diffs: list[RuleDiff] = []

    for rule_id in sorted(set(base_map) | set(compare_map)):
        base = base_map.get(rule_id)
        compare = compare_map.get(rule_id)
        if base is None and compare is not None:
            diffs.append(RuleDiff(
                rule_id=rule_id, status="added", changes=["rule added"],
                compare=summarize_rule(compare),
            ))
            continue
        if base is not None and compare is None:
            diffs.append(RuleDiff(
                rule_id=rule_id, status="removed", changes=["rule removed"],
                base=summarize_rule(base),
            ))
            continue
        if base is None or compare is None:
            continue

        changes: list[str] = []
        if base.enabled != compare.enabled:
            changes.append(f"enabled: {_fmt(base.enabled)} -> {_fmt(compare.enabled)}")
        if base.effective_severity != compare.effective_severity:
            changes.append(
                f"effectiveSeverity: {base.effective_severity.value} -> {compare.effective_severity.value}"
            )
        if base.has_active_exception != compare.has_active_exception:
            changes.append(
                f"hasActiveException: {_fmt(base.has_active_exception)} -> {_fmt(compare.has_active_exception)}"
            )
        if changes:
            diffs.append(RuleDiff(
                rule_id=rule_id, status="changed", changes=changes,
                base=summarize_rule(base), compare=summarize_rule(compare),
            ))
    return diffs


def _fmt(flag: bool) -> str:
    return "true" if flag else "false"


def compare_policies(
    *,
    root_dir: str,
    target: RuleTarget | str,
    base_env: str,
    compare_env: str,
    base_preview: EffectivePolicyPreview,
    compare_preview: EffectivePolicyPreview,
    base_directives: list[EffectiveDirective],
    compare_directives: list[EffectiveDirective],
) -> PolicyEnvComparison:
    """Diff two previews of the same target across environments."""
    directives = diff_directives(base_directives, compare_directives)
    rules = diff_rules(base_preview.rules, compare_preview.rules)
    mode_changed = base_preview.mode != compare_preview.mode
    fail_changed = base_preview.fail_on_severity != compare_preview.fail_on_severity

    return PolicyEnvComparison(
        root_dir=str(root_dir),
        target=RuleTarget(target),
        environments=EnvironmentPair(base=base_env, compare=compare_env),
        mode=ValueComparison(
            base=base_preview.mode.value,
            compare=compare_preview.mode.value,
            changed=mode_changed,
        ),
        fail_on_severity=ValueComparison(
            base=base_preview.fail_on_severity.value,
            compare=compare_preview.fail_on_severity.value,
            changed=fail_changed,
        ),
        directives=directives,
        rules=rules,
        summary=ComparisonSummary(
            changes_detected=mode_changed or fail_changed or bool(directives) or bool(rules),
            mode_changed=mode_changed,
            fail_on_severity_changed=fail_changed,
            directive_diff_count=len(directives),
            rule_diff_count=len(rules),
        ),
        base=PreviewStats(
            mode=base_preview.mode,
            fail_on_severity=base_preview.fail_on_severity,
            rule_count=len(base_preview.rules),
            directives_count=len(base_directives),
        ),
        compare=PreviewStats(
            mode=compare_preview.mode,
            fail_on_severity=compare_preview.fail_on_severity,
            rule_count=len(compare_preview.rules),
            directives_count=len(compare_directives),
        ),
    )


def build_comparison_report(
    diff: PolicyEnvComparison,
    generated_at: dt.datetime | None = None,
) -> PolicyComparisonReport:
    """CI-friendly report (structured + markdown) for a comparison."""
    timestamp = (generated_at or dt.datetime.now(dt.timezone.utc)).isoformat()
    envs = f"{diff.environments.base} -> {diff.environments.compare}"
    s = diff.summary

    headline = (
        f"Policy diff detected for {diff.target.value}: {envs}"
        if s.changes_detected
        else f"No effective policy diff for {diff.target.value}: {envs}"
    )
    gate = ReviewGate(
        should_review=s.changes_detected,
        reason=(
            "Effective policy differences detected between compared environments."
            if s.changes_detected
            else "No effective policy differences detected."
        ),
    )

    def yes_no(flag: bool) -> str:
        return "yes" if flag else "no"

    lines = [
        "# PantherEyes Policy Comparison Report",
        "",
        f"- Generated at: {timestamp}",
        f"- Root: `{diff.root_dir}`",
        f"- Target: `{diff.target.value}`",
        f"- Environments: `{diff.environments.base}` -> `{diff.environments.compare}`",
        f"- Changes detected: **{yes_no(s.changes_detected)}**",
        f"- Mode changed: **{yes_no(s.mode_changed)}**",
        f"- Fail-on-severity changed: **{yes_no(s.fail_on_severity_changed)}**",
        f"- Directive diffs: **{s.directive_diff_count}**",
        f"- Rule diffs: **{s.rule_diff_count}**",
        "",
    ]
    for title, stats in (("Base", diff.base), ("Compare", diff.compare)):
        lines += [
            f"## {title}",
            f"- mode: `{stats.mode.value}`",
            f"- failOnSeverity: `{stats.fail_on_severity.value}`",
            f"- ruleCount: {stats.rule_count}",
            f"- directivesCount: {stats.directives_count}",
            "",
        ]
    lines += [
        "## Gate",
        f"- shouldReview: **{_fmt(gate.should_review)}**",
        f"- reason: {gate.reason}",
        "",
    ]
    if diff.directives:
        lines.append("## Directive Diffs")
        lines += [f"- `{entry.key}` ({entry.status})" for entry in diff.directives]
        lines.append("")
    if diff.rules:
        lines.append("## Rule Diffs")
        lines += [f"- `{entry.rule_id}` ({entry.status})" for entry in diff.rules]
        lines.append("")

    return PolicyComparisonReport(
        generated_at=timestamp,
        summary=ReportSummary(headline=headline, **s.model_dump()),
        gate=gate,
        diff=diff,
        markdown="\n".join(lines),
    )
