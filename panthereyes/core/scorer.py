"""
PantherEyes — policy evaluation score.

score = max(0, 100 - Σ severity_weight(finding))
status: pass (score >= 85), warn (score >= 60), fail otherwise.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from panthereyes.core.rule_catalog import DEFAULT_RULE_CATALOG
from panthereyes.models.rule_models import RuleMetadata, RuleTarget, Severity

SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.LOW: 5,
    Severity.MEDIUM: 15,
    Severity.HIGH: 35,
    Severity.CRITICAL: 60,
}


class FindingInput(BaseModel):
    id: str
    severity: Severity
    message: str


class EvaluationResult(BaseModel):
    target: RuleTarget
    findings: list[FindingInput] = Field(default_factory=list)
    matched_rules: list[RuleMetadata] = Field(default_factory=list)
    score: int = Field(default=100, ge=0, le=100)
    status: Literal["pass", "warn", "fail"] = "pass"


def calculate_score(findings: list[FindingInput]) -> int:
    penalty = sum(SEVERITY_PENALTIES[f.severity] for f in findings)
    return max(0, 100 - penalty)


def score_status(score: int) -> Literal["pass", "warn", "fail"]:
    if score >= 85:
        return "pass"
    if score >= 60:
        return "warn"
    return "fail"


def evaluate_policy(
    target: RuleTarget | str,
    findings: list[FindingInput],
    rules: list[RuleMetadata] | None = None,
) -> EvaluationResult:
    """Score a set of findings for a target against the (default) rule catalog."""
    target = RuleTarget(target)
    catalog = rules if rules is not None else DEFAULT_RULE_CATALOG.rules
    score = calculate_score(findings)
    return EvaluationResult(
        target=target,
        findings=findings,
        matched_rules=[rule for rule in catalog if target in rule.targets],
        score=score,
        status=score_status(score),
    )
