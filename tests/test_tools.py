"""
Tests for Agent Tools — registry lookup, traced execution and the test-generation tool.
"""

import asyncio
import logging

import pytest

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.core.exceptions import PolicyConfigIoError
from panthereyes.tools.executor import ToolExecutionError, ToolExecutor
from panthereyes.tools.registry import ToolRegistry, UnknownToolError

logger = logging.getLogger("panthereyes.test.tools")


def _executor():
    return ToolExecutor(ToolRegistry(), logger, AgentAdapters())


def _run(tool_name, payload):
    return asyncio.run(_executor().run("req-1", tool_name, payload))


def test_registry_lists_four_tools():
    names = [tool.name for tool in ToolRegistry().list()]
    assert names == [
        "validate_security_config",
        "preview_effective_policy",
        "list_effective_directives",
        "generate_policy_tests",
    ]


def test_registry_unknown_tool():
    with pytest.raises(UnknownToolError) as exc:
        ToolRegistry().get("delete_everything")
    assert str(exc.value) == "Tool not registered: delete_everything"


def test_validate_tool_counts_config(policy_root):
    result = _run("validate_security_config", {"root_dir": policy_root})

    assert result.output.valid is True
    assert result.output.counts.environments == 3
    assert result.output.counts.rules == 4
    assert result.output.counts.exceptions == 2
    assert result.trace.status == "success"
    assert result.trace.tool == "validate_security_config"
    assert result.trace.id.startswith("req-1:validate_security_config:")
    assert result.trace.duration_ms >= 0


def test_preview_tool_accepts_camel_case_input(policy_root):
    result = _run("preview_effective_policy", {"rootDir": policy_root, "env": "prod", "target": "web"})
    assert result.output.mode.value == "enforce"
    assert result.trace.input == {"rootDir": policy_root, "env": "prod", "target": "web"}


def test_list_directives_tool(policy_root):
    result = _run("list_effective_directives", {"root_dir": policy_root, "env": "dev", "target": "web"})
    assert [d.key for d in result.output] == ["minScore", "sampleRate"]


def test_failing_tool_raises_with_error_trace(make_workspace):
    root = str(make_workspace(policy=None))

    with pytest.raises(ToolExecutionError) as exc:
        _run("validate_security_config", {"root_dir": root})

    trace = exc.value.trace
    assert trace.status == "error"
    assert trace.error.code == "PolicyConfigIoError"
    assert trace.output is None
    assert isinstance(exc.value.cause, PolicyConfigIoError)
    assert exc.value.__cause__ is exc.value.cause


def test_invalid_input_is_an_execution_error():
    with pytest.raises(ToolExecutionError) as exc:
        _run("preview_effective_policy", {"root_dir": "", "env": "dev", "target": "web"})
    assert exc.value.trace.error.code == "ValidationError"


def test_unknown_tool_records_no_trace():
    with pytest.raises(UnknownToolError):
        _run("nope", {})


def _generate(policy_root, env="prod", target="web"):
    executor = _executor()

    async def run():
        scope = {"root_dir": policy_root, "env": env, "target": target}
        validation = (await executor.run("req-1", "validate_security_config", {"root_dir": policy_root})).output
        preview = (await executor.run("req-1", "preview_effective_policy", scope)).output
        directives = (await executor.run("req-1", "list_effective_directives", scope)).output
        return await executor.run(
            "req-1",
            "generate_policy_tests",
            {**scope, "validation": validation, "preview": preview, "directives": directives},
        )

    return asyncio.run(run())


def test_generate_policy_tests_proposes_three_files(policy_root):
    result = _generate(policy_root)
    change_set = result.output.change_set

    assert change_set.dry_run is True
    assert [c.path for c in change_set.changes] == [
        "tests/policy/prod/test_web_effective_policy.py",
        "tests/policy/prod/web.effective-policy.snapshot.json",
        "tests/policy/prod/README.md",
    ]
    assert all(c.kind == "create" for c in change_set.changes)
    assert change_set.summary == "Proposed 3 file change(s) for policy tests in tests/policy/prod"


def test_generated_test_file_asserts_directives_and_rules(policy_root):
    test_file = _generate(policy_root).output.change_set.changes[0].content

    assert "def test_policy_preview_matches_expected_directives_prod_web():" in test_file
    assert "assert directives['minScore'] == 90" in test_file
    assert "assert directives['requireCsp'] == True" in test_file
    assert "assert 'web.csp.required' in rules" in test_file
    assert "assert preview.mode.value == 'enforce'" in test_file


def test_generate_notes_include_cli_preview(policy_root):
    notes = _generate(policy_root, env="dev", target="mobile").output.notes

    assert notes[0].startswith("CLI preview: ")
    assert "scan --target mobile" in notes[0]
    assert notes[2] == "Planner is deterministic; no LLM call was performed."
