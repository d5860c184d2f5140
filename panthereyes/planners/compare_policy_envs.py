"""
Compare Policy Environments planner — effective policy diff between two envs.
"""

from __future__ import annotations

from panthereyes.core.policy_diff import compare_policies
from panthereyes.models.agent_models import PlannerContextInfo, PlannerExecutionResult
from panthereyes.planners.base import Planner, PlannerRun, PlannerRunInput
from panthereyes.planners.common import (
    empty_change_set,
    infer_environment_pair,
    resolve_planner_inputs,
)


class ComparePolicyEnvsPlanner(Planner):
    id = "compare_policy_envs"

    async def plan(self, input: PlannerRunInput, run: PlannerRun) -> PlannerExecutionResult:
        env, target, root_dir = resolve_planner_inputs(input.request, run.context.default_root_dir)
        base_env, compare_env = infer_environment_pair(input.request.message, env)
        run.log.info(
            f"planner.compare_policy_envs.start root_dir={root_dir} target={target.value} "
            f"base={base_env} compare={compare_env}"
        )

        validation = await run.tool("validate_security_config", {"root_dir": root_dir})
        base_preview = await run.tool(
            "preview_effective_policy", {"root_dir": root_dir, "env": base_env, "target": target}
        )
        compare_preview = await run.tool(
            "preview_effective_policy", {"root_dir": root_dir, "env": compare_env, "target": target}
        )
        base_directives = await run.tool(
            "list_effective_directives", {"root_dir": root_dir, "env": base_env, "target": target}
        )
        compare_directives = await run.tool(
            "list_effective_directives", {"root_dir": root_dir, "env": compare_env, "target": target}
        )

        comparison = compare_policies(
            root_dir=root_dir,
            target=target,
            base_env=base_env,
            compare_env=compare_env,
            base_preview=base_preview,
            compare_preview=compare_preview,
            base_directives=base_directives,
            compare_directives=compare_directives,
        )

        if comparison.summary.changes_detected:
            summary = (
                f"Compared policy {base_env} -> {compare_env} for {target.value}. "
                f"Found {comparison.summary.directive_diff_count} directive diff(s) "
                f"and {comparison.summary.rule_diff_count} rule diff(s)."
            )
        else:
            summary = (
                f"Compared policy {base_env} -> {compare_env} for {target.value}. "
                "No effective differences detected."
            )

        return PlannerExecutionResult(
            planner_id=self.id,
            summary=summary,
            change_set=empty_change_set(summary),
            tool_outputs={"validation": validation, "comparison": comparison},
            context=PlannerContextInfo(env=compare_env, target=target, root_dir=root_dir),
        )
