"""
Explain Finding planner — knowledge-base explanation, optionally LLM-augmented.
"""

from __future__ import annotations

from typing import Any, Optional

from panthereyes.models.agent_models import PlannerContextInfo, PlannerExecutionResult
from panthereyes.planners.base import Planner, PlannerRun, PlannerRunInput
from panthereyes.planners.common import (
    empty_change_set,
    policy_context_summary,
    resolve_planner_inputs,
)
from panthereyes.planners.finding_knowledge import extract_finding_id, resolve_finding_knowledge


class ExplainFindingPlanner(Planner):
    id = "explain_finding"

    async def plan(self, input: PlannerRunInput, run: PlannerRun) -> PlannerExecutionResult:
        request = input.request
        env, target, root_dir = resolve_planner_inputs(request, run.context.default_root_dir)
        requested = extract_finding_id(request.message)
        knowledge = resolve_finding_knowledge(requested)
        run.log.info(
            f"planner.explain_finding.start env={env} target={target.value} "
            f"requested={requested} resolved={knowledge.canonical_id if knowledge else None}"
        )

        policy_context = None
        if request.context and request.context.root_dir:
            preview = await run.tool(
                "preview_effective_policy", {"root_dir": root_dir, "env": env, "target": target}
            )
            policy_context = policy_context_summary(preview)

        if knowledge is not None:
            explanation: dict[str, Any] = {
                "findingId": knowledge.canonical_id,
                "requestedFindingId": requested,
                "title": knowledge.title,
                "severity": knowledge.severity.value,
                "target": knowledge.target.value,
                "explanation": knowledge.explanation,
                "risk": list(knowledge.risk),
                "remediation": list(knowledge.remediation),
                "references": list(knowledge.references),
                "notes": (
                    [f"Alias resolved: {requested} -> {knowledge.canonical_id}"]
                    if requested and requested != knowledge.canonical_id
                    else []
                ),
            }
            summary = (
                f"Explained finding {knowledge.canonical_id} ({knowledge.severity.value}) "
                f"for {knowledge.target.value}."
            )
        else:
            explanation = {
                "findingId": requested or "unknown",
                "requestedFindingId": requested,
                "title": "Unknown finding",
                "severity": "medium",
                "target": target.value,
                "explanation": (
                    "No deterministic knowledge entry was found for this finding. Provide the full "
                    "PantherEyes finding ID (for example `mobile.ios.ats.arbitrary-loads-enabled`) "
                    "for a better explanation."
                ),
                "risk": ["Review CLI scan JSON output to inspect exact finding fields and remediation text."],
                "remediation": ["Re-run `panthereyes scan --json ...` and use the exact finding `id` in the prompt."],
                "references": [],
                "notes": ["LLM-backed explanation is not enabled in this deterministic planner."],
            }
            summary = "Could not map finding from prompt; returned generic guidance."

        augmentation = await self.llm_augmentation(run, request.message, explanation)

        return PlannerExecutionResult(
            planner_id=self.id,
            summary=summary,
            change_set=empty_change_set(summary),
            tool_outputs={
                "explanation": explanation,
                "policyContext": policy_context,
                "llmAugmentation": augmentation,
            },
            context=PlannerContextInfo(env=env, target=target, root_dir=root_dir),
        )

    async def llm_augmentation(
        self, run: PlannerRun, message: str, explanation: dict[str, Any]
    ) -> Optional[dict[str, str]]:
        """Optional chat-model rewrite; any failure falls back to None."""
        llm = run.context.llm
        if llm.provider == "none":
            return None

        prompt = "\n".join([
            "You are helping explain a security finding in PantherEyes.",
            f"User request: {message}",
            f"Finding ID: {explanation['findingId']}",
            f"Title: {explanation['title']}",
            f"Deterministic explanation: {explanation['explanation']}",
            f"Deterministic remediation hints: {' | '.join(explanation['remediation'])}",
            "Return a concise developer-focused explanation with one remediation priority ordering.",
        ])
        try:
            content = await llm.generate(prompt)
        except Exception as e:
            run.log.warning(f"planner.explain_finding.llm_fallback_failed provider={llm.provider}: {e}")
            return None
        return {"provider": llm.provider, "content": content}
