"""
Suggest Remediation planner — remediation steps plus policy guidance.
"""

from __future__ import annotations

from typing import Any

from panthereyes.models.agent_models import PlannerContextInfo, PlannerExecutionResult
from panthereyes.planners.base import Planner, PlannerRun, PlannerRunInput
from panthereyes.planners.common import (
    empty_change_set,
    policy_context_summary,
    resolve_planner_inputs,
)
from panthereyes.planners.finding_knowledge import extract_finding_id, resolve_finding_knowledge


def extract_environment_hints(message: str) -> dict[str, bool]:
    normalized = message.lower()
    return {
        "keepDevWarn": "dev" in normalized and ("warn" in normalized or "audit" in normalized),
        "wantsProdBlock": "prod" in normalized and ("block" in normalized or "bloquei" in normalized),
    }


def policy_guidance(keep_dev_warn: bool, prod_block: bool) -> list[str]:
    return [
        "Keep dev in warn/audit mode while applying code/config remediation in prod/staging first."
        if keep_dev_warn
        else "Validate whether dev should remain warn/audit to avoid blocking local experimentation.",
        "Set prod policy to block on this finding severity (or stronger) after remediation rollout."
        if prod_block
        else "Confirm prod policy fail threshold matches the finding severity for enforcement.",
    ]


class SuggestRemediationPlanner(Planner):
    id = "suggest_remediation"

    async def plan(self, input: PlannerRunInput, run: PlannerRun) -> PlannerExecutionResult:
        request = input.request
        env, target, root_dir = resolve_planner_inputs(request, run.context.default_root_dir)
        requested = extract_finding_id(request.message)
        knowledge = resolve_finding_knowledge(requested)
        hints = extract_environment_hints(request.message)
        run.log.info(
            f"planner.suggest_remediation.start env={env} target={target.value} "
            f"requested={requested} hints={hints}"
        )

        policy_context = None
        if request.context and request.context.root_dir:
            preview = await run.tool(
                "preview_effective_policy", {"root_dir": root_dir, "env": env, "target": target}
            )
            policy_context = policy_context_summary(preview, with_rule_count=True)

        if knowledge is not None:
            remediation: dict[str, Any] = {
                "findingId": knowledge.canonical_id,
                "requestedFindingId": requested,
                "title": knowledge.title,
                "remediationSteps": list(knowledge.remediation),
                "policyGuidance": policy_guidance(hints["keepDevWarn"], hints["wantsProdBlock"]),
                "suggestedFiles": list(knowledge.references),
                "dryRunChangeSetSupported": False,
                "notes": ["This planner suggests remediation steps only; it does not apply patches."],
            }
            summary = (
                f"Suggested remediation for {knowledge.canonical_id} "
                f"with policy guidance for {env}/{target.value}."
            )
        else:
            remediation = {
                "findingId": requested or "unknown",
                "requestedFindingId": requested,
                "title": "Unknown finding",
                "remediationSteps": [
                    "Use the exact finding `id` from PantherEyes scan JSON output.",
                    "Re-run the request with `rootDir`, `env`, and `target` context to get policy-aware guidance.",
                ],
                "policyGuidance": [
                    "Deterministic remediation knowledge is available only for seeded demo findings in this version."
                ],
                "suggestedFiles": [],
                "dryRunChangeSetSupported": False,
                "notes": ["LLM-backed remediation generation is not enabled in this deterministic planner."],
            }
            summary = "Returned generic remediation guidance because finding could not be mapped."

        return PlannerExecutionResult(
            planner_id=self.id,
            summary=summary,
            change_set=empty_change_set(summary),
            tool_outputs={"remediation": remediation, "policyContext": policy_context},
            context=PlannerContextInfo(env=env, target=target, root_dir=root_dir),
        )
