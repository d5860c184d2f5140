"""
Tool Implementations — the four agent tools.

Three tools are thin reads through the policy config adapter. The fourth,
generate_policy_tests, is pure text generation: it returns a dry-run
ChangeSet (pytest regression file, JSON snapshot, README) and writes nothing.
"""

from __future__ import annotations

import json
import re

from panthereyes.core.scorer import evaluate_policy
from panthereyes.models.agent_models import Change, ChangeSet
from panthereyes.tools.types import (
    GeneratePolicyTestsInput,
    GeneratePolicyTestsOutput,
    PolicyScopeInput,
    RootDirInput,
    ToolDefinition,
    ToolExecutionContext,
)

MAX_RULE_ASSERTIONS = 8


def _blocking_rules(input: GeneratePolicyTestsInput) -> list:
    preview = input.preview
    return [
        rule
        for rule in preview.rules
        if rule.enabled
        and (rule.effective_severity == preview.fail_on_severity or rule.effective_severity.value == "critical")
    ]


def build_policy_test_file(input: GeneratePolicyTestsInput) -> str:
    env, target, preview = input.env, input.target.value, input.preview
    suffix = re.sub(r"\W", "_", f"{env}_{target}")
    enabled_rules = [rule for rule in preview.rules if rule.enabled]
    blocking_count = len(_blocking_rules(input))

    directive_lines = [
        f"    assert directives[{d.key!r}] == {d.value!r}, \"directive {d.key} mismatch\""
        for d in input.directives
    ] or ["    # No directives to assert."]
    rule_lines = [
        f"    assert {rule.rule_id!r} in rules, \"expected rule {rule.rule_id} for {env}/{target}\""
        for rule in enabled_rules[:MAX_RULE_ASSERTIONS]
    ] or ["    # No rules to assert."]

    lines = [
        '"""',
        f"Policy regression tests for {env}/{target} — generated as a dry-run proposal.",
        '"""',
        "",
        "from panthereyes.core.policy_engine import list_effective_directives, preview_effective_policy",
        "",
        "",
        f"def test_policy_preview_matches_expected_directives_{suffix}():",
        f"    preview = preview_effective_policy({env!r}, {target!r})",
        f"    directives = {{d.key: d.value for d in list_effective_directives({env!r}, {target!r})}}",
        "    rules = {rule.rule_id: rule for rule in preview.rules}",
        "",
        f"    assert preview.mode.value == {preview.mode.value!r}",
        f"    assert preview.fail_on_severity.value == {preview.fail_on_severity.value!r}",
        f"    assert len(preview.rules) >= {len(enabled_rules)}",
        *directive_lines,
        *rule_lines,
        "",
        "",
        f"def test_policy_block_threshold_is_stable_{suffix}():",
        f"    preview = preview_effective_policy({env!r}, {target!r})",
        "    blocking = [",
        "        rule",
        "        for rule in preview.rules",
        "        if rule.enabled",
        "        and (rule.effective_severity == preview.fail_on_severity",
        "             or rule.effective_severity.value == \"critical\")",
        "    ]",
        "",
        f"    assert preview.fail_on_severity.value == {preview.fail_on_severity.value!r}",
        f"    assert len(blocking) >= {blocking_count}",
        "",
    ]
    return "\n".join(lines)


def build_policy_snapshot(input: GeneratePolicyTestsInput) -> str:
    snapshot = {
        "env": input.env,
        "target": input.target.value,
        "mode": input.preview.mode.value,
        "failOnSeverity": input.preview.fail_on_severity.value,
        "directives": [d.to_wire() for d in input.directives],
        "ruleCount": len(input.preview.rules),
        "exceptionsApplied": [entry.exception_id for entry in input.preview.exceptions_applied],
    }
    return json.dumps(snapshot, indent=2) + "\n"


def build_readme(input: GeneratePolicyTestsInput) -> str:
    return (
        f"# PantherEyes Policy Tests ({input.env}/{input.target.value})\n"
        "\n"
        "This file is a dry-run proposal generated by the agent planner. "
        "Apply the ChangeSet to add policy regression tests.\n"
        "\n"
        "## Inputs\n"
        "\n"
        f"- env: {input.env}\n"
        f"- target: {input.target.value}\n"
        f"- rules considered: {len(input.preview.rules)}\n"
        f"- directives considered: {len(input.directives)}\n"
        f"- config root: {input.root_dir}\n"
    )


def build_policy_tests_change_set(input: GeneratePolicyTestsInput) -> ChangeSet:
    base_dir = f"tests/policy/{input.env}"
    target = input.target.value
    changes = [
        Change(
            kind="create",
            path=f"{base_dir}/test_{target}_effective_policy.py",
            language="python",
            reason="Add deterministic regression tests for effective policy preview and directives.",
            content=build_policy_test_file(input),
        ),
        Change(
            kind="create",
            path=f"{base_dir}/{target}.effective-policy.snapshot.json",
            language="json",
            reason="Persist expected effective policy snapshot for review (dry-run proposal only).",
            content=build_policy_snapshot(input),
        ),
        Change(
            kind="create",
            path=f"{base_dir}/README.md",
            language="md",
            reason="Document generated policy test scope and assumptions.",
            content=build_readme(input),
        ),
    ]
    return ChangeSet(
        summary=f"Proposed {len(changes)} file change(s) for policy tests in {base_dir}",
        changes=changes,
    )


def _validate(input: RootDirInput, context: ToolExecutionContext):
    return context.adapters.policy_config.validate_security_config(input.root_dir)


def _preview(input: PolicyScopeInput, context: ToolExecutionContext):
    return context.adapters.policy_config.preview_effective_policy(input.root_dir, input.env, input.target)


def _list_directives(input: PolicyScopeInput, context: ToolExecutionContext):
    return context.adapters.policy_config.list_effective_directives(input.root_dir, input.env, input.target)


def _generate_tests(input: GeneratePolicyTestsInput, context: ToolExecutionContext) -> GeneratePolicyTestsOutput:
    cli_preview = context.adapters.cli.preview_scan_command(input.env, input.target, input.root_dir)
    baseline = evaluate_policy(input.target, [])
    return GeneratePolicyTestsOutput(
        change_set=build_policy_tests_change_set(input),
        notes=[
            f"CLI preview: {' '.join(cli_preview.command)}",
            f"Score baseline (empty findings): {baseline.score}/{baseline.status}",
            "Planner is deterministic; no LLM call was performed.",
        ],
    )


def create_tool_implementations() -> list[ToolDefinition]:
    return [
        ToolDefinition(
            name="validate_security_config",
            description="Validate PantherEyes .panthereyes YAML files and return basic counts.",
            input_model=RootDirInput,
            execute=_validate,
        ),
        ToolDefinition(
            name="preview_effective_policy",
            description="Resolve effective policy for a given environment and target.",
            input_model=PolicyScopeInput,
            execute=_preview,
        ),
        ToolDefinition(
            name="list_effective_directives",
            description="List final effective directives with provenance for env and target.",
            input_model=PolicyScopeInput,
            execute=_list_directives,
        ),
        ToolDefinition(
            name="generate_policy_tests",
            description="Generate a dry-run ChangeSet for policy regression tests without writing files.",
            input_model=GeneratePolicyTestsInput,
            execute=_generate_tests,
        ),
    ]
