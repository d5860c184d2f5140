"""
Tests for Policy Scorer — severity penalties and pass/warn/fail thresholds.
"""

from panthereyes.core.scorer import (
    FindingInput,
    calculate_score,
    evaluate_policy,
    score_status,
)
from panthereyes.models.rule_models import Severity


def _finding(severity, finding_id="f"):
    return FindingInput(id=finding_id, severity=severity, message="m")


def test_no_findings_scores_100():
    result = evaluate_policy("web", [])
    assert result.score == 100
    assert result.status == "pass"
    assert [rule.rule_id for rule in result.matched_rules] == ["web.csp.required"]


def test_penalties_are_summed():
    findings = [_finding(Severity.LOW), _finding(Severity.MEDIUM)]
    assert calculate_score(findings) == 80


def test_score_floors_at_zero():
    findings = [_finding(Severity.CRITICAL), _finding(Severity.CRITICAL)]
    assert calculate_score(findings) == 0


def test_status_thresholds():
    assert score_status(85) == "pass"
    assert score_status(84) == "warn"
    assert score_status(60) == "warn"
    assert score_status(59) == "fail"


def test_single_high_finding_warns():
    result = evaluate_policy("mobile", [_finding(Severity.HIGH)])
    assert result.score == 65
    assert result.status == "warn"
    assert [rule.rule_id for rule in result.matched_rules] == ["mobile.debug.disabled"]
