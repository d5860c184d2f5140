"""
Tests for Policy Resolution Engine — layer merging, provenance and exceptions.
"""

import datetime as dt

import pytest

from panthereyes.core.exceptions import UnknownPolicyEnvironmentError
from panthereyes.core.policy_engine import (
    is_exception_active,
    list_effective_directives,
    merge_rule_overrides,
    preview_effective_policy,
)
from panthereyes.models.policy_models import PolicyMode, RuleOverride
from panthereyes.models.rule_models import RuleException, RuleTarget, Severity


def _rules_by_id(preview):
    return {rule.rule_id: rule for rule in preview.rules}


def test_dev_web_preview_merges_defaults_and_env(policy_root):
    preview = preview_effective_policy("dev", "web", policy_root)

    assert preview.env == "dev"
    assert preview.target == RuleTarget.WEB
    assert preview.mode == PolicyMode.WARN
    assert preview.fail_on_severity == Severity.HIGH
    assert preview.directives == {"minScore": 60, "sampleRate": 0.1}


def test_directive_provenance_names_the_last_writer(policy_root):
    directives = list_effective_directives("prod", "web", policy_root)

    assert [d.key for d in directives] == ["minScore", "requireCsp", "sampleRate"]
    sources = {d.key: d.source for d in directives}
    assert sources == {
        "minScore": "envs.prod",
        "requireCsp": "envs.prod.targets.web",
        "sampleRate": "defaults",
    }


def test_rules_are_scoped_to_target(policy_root):
    web = _rules_by_id(preview_effective_policy("prod", "web", policy_root))
    mobile = _rules_by_id(preview_effective_policy("prod", "mobile", policy_root))

    assert set(web) == {"web.csp.required", "web.cors.strict"}
    assert set(mobile) == {"mobile.debug.disabled", "mobile.ats.strict"}


def test_rule_override_changes_effective_severity(policy_root):
    dev = _rules_by_id(preview_effective_policy("dev", "web", policy_root))
    prod_mobile = _rules_by_id(preview_effective_policy("prod", "mobile", policy_root))

    assert dev["web.csp.required"].default_severity == Severity.HIGH
    assert dev["web.csp.required"].effective_severity == Severity.MEDIUM
    assert dev["web.csp.required"].enabled is True
    assert prod_mobile["mobile.debug.disabled"].effective_severity == Severity.CRITICAL


def test_active_exception_applies_only_to_matching_env(policy_root):
    dev = preview_effective_policy("dev", "web", policy_root)
    prod = preview_effective_policy("prod", "web", policy_root)

    assert _rules_by_id(dev)["web.csp.required"].has_active_exception is True
    assert [e.exception_id for e in dev.exceptions_applied] == ["EXC-CSP-DEV"]
    assert _rules_by_id(prod)["web.csp.required"].has_active_exception is False
    assert prod.exceptions_applied == []


def test_expired_exception_is_ignored(policy_root):
    preview = preview_effective_policy("prod", "mobile", policy_root)
    assert _rules_by_id(preview)["mobile.ats.strict"].has_active_exception is False
    assert preview.exceptions_applied == []


def test_rule_without_allow_exception_is_never_excepted(make_workspace):
    root = make_workspace(exceptions="""\
version: 1
exceptions:
  - exceptionId: EXC-CORS-PROD
    ruleId: web.cors.strict
    environments: [prod]
    targets: [web]
    reason: Partner widget needs wildcard origins
    approvedBy: security-team
    expiresOn: 2099-12-31
""")
    rules = _rules_by_id(preview_effective_policy("prod", "web", root))

    assert rules["web.cors.strict"].allow_exception is False
    assert rules["web.cors.strict"].has_active_exception is False
    assert rules["web.cors.strict"].active_exceptions == []


def test_preview_is_idempotent(policy_root):
    now = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
    first = preview_effective_policy("prod", "mobile", policy_root, now=now)
    second = preview_effective_policy("prod", "mobile", policy_root, now=now)

    assert first.model_dump() == second.model_dump()


def test_unknown_environment_raises(policy_root):
    with pytest.raises(UnknownPolicyEnvironmentError) as exc:
        preview_effective_policy("qa", "web", policy_root)
    assert exc.value.env_name == "qa"
    assert exc.value.available_envs == ["dev", "staging", "prod"]


def test_env_without_overrides_inherits_defaults(policy_root):
    preview = preview_effective_policy("staging", "mobile", policy_root)
    assert preview.mode == PolicyMode.WARN
    assert preview.fail_on_severity == Severity.HIGH
    assert preview.directives == {"minScore": 70, "sampleRate": 0.1}


def test_preview_paths_point_into_config_dir(policy_root):
    preview = preview_effective_policy("dev", "web", policy_root)
    assert preview.paths.policy.endswith("policy.yaml")
    assert ".panthereyes" in preview.paths.exceptions


def test_preview_is_recomputed_from_disk(policy_workspace):
    before = preview_effective_policy("staging", "web", policy_workspace)
    policy_file = policy_workspace / ".panthereyes" / "policy.yaml"
    policy_file.write_text(
        policy_file.read_text(encoding="utf-8").replace("  staging:\n    mode: warn", "  staging:\n    mode: enforce"),
        encoding="utf-8",
    )
    after = preview_effective_policy("staging", "web", policy_workspace)

    assert before.mode == PolicyMode.WARN
    assert after.mode == PolicyMode.ENFORCE


def test_merge_rule_overrides_keeps_unset_fields():
    base = {"r1": RuleOverride(enabled=False, severity=Severity.LOW, directives={"a": 1, "b": 2})}
    incoming = {"r1": RuleOverride(severity=Severity.HIGH, directives={"b": 3})}

    merged = merge_rule_overrides(base, incoming)["r1"]
    assert merged.enabled is False
    assert merged.severity == Severity.HIGH
    assert merged.directives == {"a": 1, "b": 3}


def _exception(**overrides):
    fields = dict(
        exception_id="E1",
        rule_id="web.csp.required",
        environments=["dev"],
        targets=["web"],
        reason="r",
        approved_by="me",
        expires_on="2030-06-30",
    )
    fields.update(overrides)
    return RuleException(**fields)


def test_exception_active_through_end_of_expiry_day():
    exception = _exception()
    last_moment = dt.datetime(2030, 6, 30, 23, 59, 59, tzinfo=dt.timezone.utc)
    next_day = dt.datetime(2030, 7, 1, 0, 0, 1, tzinfo=dt.timezone.utc)

    assert is_exception_active(exception, "dev", RuleTarget.WEB, last_moment) is True
    assert is_exception_active(exception, "dev", RuleTarget.WEB, next_day) is False


def test_exception_without_expiry_never_expires():
    exception = _exception(expires_on=None)
    far_future = dt.datetime(2999, 1, 1, tzinfo=dt.timezone.utc)
    assert is_exception_active(exception, "dev", RuleTarget.WEB, far_future) is True


def test_exception_must_match_env_and_target():
    exception = _exception()
    now = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
    assert is_exception_active(exception, "prod", RuleTarget.WEB, now) is False
    assert is_exception_active(exception, "dev", RuleTarget.MOBILE, now) is False
