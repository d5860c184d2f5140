"""
Intent Catalog — the intents the agent can plan for, with matching keywords.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from panthereyes.models.agent_models import IntentId


@dataclass(frozen=True)
class IntentDefinition:
    id: IntentId
    title: str
    description: str
    keywords: tuple[str, ...]


INTENT_CATALOG: tuple[IntentDefinition, ...] = (
    IntentDefinition(
        id="compare_policy_envs",
        title="Compare Policy Environments",
        description="Compare effective policy and directives between environments for a target.",
        keywords=("compare", "diff", "difference", "policy", "env", "environment", "dev", "staging", "prod"),
    ),
    IntentDefinition(
        id="explain_finding",
        title="Explain Finding",
        description="Explain a security finding and why it matters.",
        keywords=("explain", "finding", "issue", "vulnerability", "ios-ats-001", "and-net-001", "explicar"),
    ),
    IntentDefinition(
        id="suggest_remediation",
        title="Suggest Remediation",
        description="Suggest remediation steps for a finding or security policy issue.",
        keywords=("remediation", "fix", "resolve", "mitigate", "remediacao", "corrigir", "bloqueie"),
    ),
    IntentDefinition(
        id="create_policy_exception",
        title="Create Policy Exception",
        description="Propose a dry-run ChangeSet adding an exception entry to exceptions.yaml.",
        keywords=("exception", "excecao", "waiver", "bypass", "approve", "approved", "criar excecao"),
    ),
    IntentDefinition(
        id="generate_policy_tests",
        title="Generate Policy Tests",
        description="Propose a dry-run ChangeSet with policy regression tests for an env and target.",
        keywords=("policy", "test", "tests", "generate", "cases", "scenario", "cenarios"),
    ),
)


def get_intent_by_id(intent_id: str) -> Optional[IntentDefinition]:
    return next((intent for intent in INTENT_CATALOG if intent.id == intent_id), None)
