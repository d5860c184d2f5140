"""
MCP Tool Host — the `panthereyes.*` tool surface shared by stdio JSON-RPC and HTTP.

Every call returns `{content, structuredContent}` where `content` carries a
one-line text summary plus the JSON payload. Argument problems raise
McpInvalidParamsError; tool failures raise McpToolExecutionError with a
`code: message` text taken from the failing trace.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Optional, Union

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.core.exceptions import PantherEyesError
from panthereyes.core.logging_context import bind_logger
from panthereyes.core.policy_diff import (
    PolicyEnvComparison,
    build_comparison_report,
    compare_policies,
)
from panthereyes.models.agent_models import AgentContextInput, ChatRequest
from panthereyes.models.base import to_jsonable
from panthereyes.models.rule_models import RuleTarget
from panthereyes.planners.finding_knowledge import resolve_finding_knowledge
from panthereyes.planners.suggest_remediation import policy_guidance
from panthereyes.runtime import AgentRuntime
from panthereyes.tools.executor import ToolExecutionError, ToolExecutor
from panthereyes.tools.registry import ToolRegistry

TARGETS = ("web", "mobile")
PHASES = ("static", "non-static")
REPORT_FORMATS = ("markdown", "json", "both")
GATE_STATUSES = ("warn", "block")


class McpInvalidParamsError(PantherEyesError):
    """Bad `tools/call` params or arguments (JSON-RPC -32602)."""


class UnknownMcpToolError(McpInvalidParamsError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown MCP tool: {name}")
        self.name = name


class McpToolExecutionError(PantherEyesError):
    """An underlying agent tool failed."""


# -- Argument readers --------------------------------------------------------


def as_record(value: Any, label: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise McpInvalidParamsError(f"Invalid {label}: expected object")
    return value


def read_string(source: dict[str, Any], field: str) -> str:
    value = source.get(field)
    if not isinstance(value, str) or not value.strip():
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected non-empty string")
    return value.strip()


def read_optional_string(source: dict[str, Any], field: str) -> Optional[str]:
    value = source.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected string")
    return value.strip() or None


def read_target(source: dict[str, Any], field: str) -> RuleTarget:
    value = read_string(source, field)
    if value not in TARGETS:
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected 'web' or 'mobile'")
    return RuleTarget(value)


def read_optional_target(source: dict[str, Any], field: str) -> Optional[RuleTarget]:
    value = read_optional_string(source, field)
    if value is None:
        return None
    if value not in TARGETS:
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected 'web' or 'mobile'")
    return RuleTarget(value)


def read_optional_bool(source: dict[str, Any], field: str) -> Optional[bool]:
    value = source.get(field)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected boolean")
    return value


def read_optional_enum(source: dict[str, Any], field: str, values: Iterable[str]) -> Optional[str]:
    allowed = tuple(values)
    value = read_optional_string(source, field)
    if value is None:
        return None
    if value not in allowed:
        raise McpInvalidParamsError(
            f"Invalid tools/call argument '{field}': expected one of {', '.join(allowed)}"
        )
    return value


def read_phase(source: dict[str, Any], field: str) -> str:
    return read_optional_enum(source, field, PHASES) or "static"


def read_fail_on(source: dict[str, Any], field: str) -> Optional[list[str]]:
    value = source.get(field)
    if value is None:
        return None
    if not isinstance(value, list):
        raise McpInvalidParamsError(f"Invalid tools/call argument '{field}': expected array")
    for entry in value:
        if entry not in GATE_STATUSES:
            raise McpInvalidParamsError(
                f"Invalid tools/call argument '{field}': expected values 'warn' or 'block'"
            )
    return list(value) or None


# -- Result shaping ----------------------------------------------------------


def tool_result(text: str, payload: Any, content_json: Any = None) -> dict[str, Any]:
    structured = to_jsonable(payload)
    return {
        "content": [
            {"type": "text", "text": text},
            {"type": "json", "json": structured if content_json is None else to_jsonable(content_json)},
        ],
        "structuredContent": structured,
    }


def object_schema(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def build_scan_gate(
    root_dir: str,
    target: RuleTarget,
    phase: str,
    fail_on: list[str],
    scan_result: Any,
) -> dict[str, Any]:
    """CI gate decision from a scan document's `summary.status`."""
    summary = scan_result.get("summary") if isinstance(scan_result, dict) else None
    findings = scan_result.get("findings") if isinstance(scan_result, dict) else None
    status = summary.get("status") if isinstance(summary, dict) and isinstance(summary.get("status"), str) else "unknown"

    should_fail = (status == "block" and "block" in fail_on) or (status == "warn" and "warn" in fail_on)
    decision = status if status in ("pass", "warn", "block") else "warn"
    thresholds = ", ".join(fail_on)

    return {
        "reportType": "panthereyes.scan_gate",
        "rootDir": root_dir,
        "target": target.value,
        "phase": phase,
        "scan": {
            "status": status,
            "findingsCount": len(findings) if isinstance(findings, list) else 0,
            "summary": summary if isinstance(summary, dict) else None,
        },
        "gate": {
            "decision": decision,
            "failOn": fail_on,
            "shouldFail": should_fail,
            "reason": (
                f"Scan status '{status}' matches failOn thresholds ({thresholds})."
                if should_fail
                else f"Scan status '{status}' does not trigger failOn thresholds ({thresholds})."
            ),
        },
        "raw": scan_result,
    }


_TARGET_SCHEMA = {"type": "string", "enum": list(TARGETS)}
_PHASE_SCHEMA = {"type": "string", "enum": list(PHASES), "default": "static"}

MCP_TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "panthereyes.validate_security_config",
        "description": "Validate .panthereyes policy/rules/exceptions files for a workspace root.",
        "inputSchema": object_schema(
            {"rootDir": {"type": "string", "description": "Workspace root directory containing .panthereyes/"}},
            ["rootDir"],
        ),
    },
    {
        "name": "panthereyes.preview_effective_policy",
        "description": "Resolve the effective policy for an environment and target.",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string"},
                "env": {"type": "string", "description": "Environment name (e.g., dev, staging, prod)"},
                "target": _TARGET_SCHEMA,
            },
            ["rootDir", "env", "target"],
        ),
    },
    {
        "name": "panthereyes.list_effective_directives",
        "description": "List effective directives (with provenance) for an environment and target.",
        "inputSchema": object_schema(
            {"rootDir": {"type": "string"}, "env": {"type": "string"}, "target": _TARGET_SCHEMA},
            ["rootDir", "env", "target"],
        ),
    },
    {
        "name": "panthereyes.compare_policy_envs",
        "description": "Compare effective policy and directives between two environments for the same target.",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string"},
                "target": _TARGET_SCHEMA,
                "baseEnv": {"type": "string", "description": "Reference environment (e.g., dev)"},
                "compareEnv": {"type": "string", "description": "Environment to compare against (e.g., prod)"},
            },
            ["rootDir", "target", "baseEnv", "compareEnv"],
        ),
    },
    {
        "name": "panthereyes.compare_policy_envs_report",
        "description": "Generate a CI-friendly report (JSON + markdown) comparing policy environments for a target.",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string"},
                "target": _TARGET_SCHEMA,
                "baseEnv": {"type": "string"},
                "compareEnv": {"type": "string"},
                "format": {"type": "string", "enum": list(REPORT_FORMATS), "default": "both"},
            },
            ["rootDir", "target", "baseEnv", "compareEnv"],
        ),
    },
    {
        "name": "panthereyes.scan",
        "description": "Run the PantherEyes CLI scan and return its parsed JSON output.",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string", "description": "Path to scan (sample/app root)"},
                "target": _TARGET_SCHEMA,
                "phase": _PHASE_SCHEMA,
            },
            ["rootDir", "target"],
        ),
    },
    {
        "name": "panthereyes.scan_gate",
        "description": "Run a PantherEyes scan and return a CI-friendly gate decision (pass/warn/block).",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string", "description": "Path to scan (sample/app root)"},
                "target": _TARGET_SCHEMA,
                "phase": _PHASE_SCHEMA,
                "failOn": {
                    "type": "array",
                    "description": 'Statuses that should fail CI (default: ["block"])',
                    "items": {"type": "string", "enum": list(GATE_STATUSES)},
                },
            },
            ["rootDir", "target"],
        ),
    },
    {
        "name": "panthereyes.generate_policy_tests",
        "description": "Generate a deterministic ChangeSet proposal for policy tests (dry-run, no file writes).",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string"},
                "env": {"type": "string"},
                "target": _TARGET_SCHEMA,
                "userMessage": {
                    "type": "string",
                    "description": "Optional user intent text used for planner/tool notes",
                    "default": "Generate policy tests",
                },
            },
            ["rootDir", "env", "target"],
        ),
    },
    {
        "name": "panthereyes.explain_finding",
        "description": "Explain a PantherEyes finding (supports aliases like IOS-ATS-001 / AND-NET-001).",
        "inputSchema": object_schema(
            {
                "findingId": {"type": "string", "description": "Finding ID or alias (e.g., IOS-ATS-001)"},
                "rootDir": {"type": "string"},
                "env": {"type": "string"},
                "target": _TARGET_SCHEMA,
            },
            ["findingId"],
        ),
    },
    {
        "name": "panthereyes.suggest_remediation",
        "description": "Return deterministic remediation guidance for a PantherEyes finding.",
        "inputSchema": object_schema(
            {
                "findingId": {"type": "string", "description": "Finding ID or alias (e.g., AND-NET-001)"},
                "rootDir": {"type": "string"},
                "env": {"type": "string"},
                "target": _TARGET_SCHEMA,
                "keepDevWarn": {"type": "boolean"},
                "prodBlock": {"type": "boolean"},
            },
            ["findingId"],
        ),
    },
    {
        "name": "panthereyes.create_policy_exception",
        "description": "Generate a dry-run ChangeSet to add/update an exception in .panthereyes/exceptions.yaml.",
        "inputSchema": object_schema(
            {
                "rootDir": {"type": "string"},
                "env": {"type": "string"},
                "target": _TARGET_SCHEMA,
                "findingId": {"type": "string", "description": "Finding ID or alias (e.g., IOS-ATS-001)"},
                "owner": {"type": "string", "description": "Optional approver/owner hint"},
                "reason": {"type": "string", "description": "Optional explicit reason text"},
            },
            ["rootDir", "env", "target", "findingId"],
        ),
    },
]


class PantherEyesMcpToolHost:
    def __init__(
        self,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        adapters: Optional[AgentAdapters] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("panthereyes.mcp.tools")
        self.adapters = adapters or AgentAdapters()
        self.executor = ToolExecutor(ToolRegistry(), self.logger, self.adapters)
        self._handlers = {
            "panthereyes.validate_security_config": self._validate_security_config,
            "panthereyes.preview_effective_policy": self._preview_effective_policy,
            "panthereyes.list_effective_directives": self._list_effective_directives,
            "panthereyes.compare_policy_envs": self._compare_policy_envs,
            "panthereyes.compare_policy_envs_report": self._compare_policy_envs_report,
            "panthereyes.scan": self._scan,
            "panthereyes.scan_gate": self._scan_gate,
            "panthereyes.generate_policy_tests": self._generate_policy_tests,
            "panthereyes.explain_finding": self._explain_finding,
            "panthereyes.suggest_remediation": self._suggest_remediation,
            "panthereyes.create_policy_exception": self._create_policy_exception,
        }

    def list_tools(self) -> list[dict[str, Any]]:
        return [dict(tool) for tool in MCP_TOOL_DEFINITIONS]

    async def call_tool(self, name: str, arguments: Any = None) -> dict[str, Any]:
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownMcpToolError(name)
        args = as_record(arguments, "tools/call.arguments")
        return await handler(args)

    async def run_tool(self, name: str, input: dict[str, Any]) -> Any:
        request_id = f"mcp-{uuid.uuid4()}"
        try:
            result = await self.executor.run(request_id, name, input)
        except ToolExecutionError as e:
            code = e.trace.error.code if e.trace.error and e.trace.error.code else "tool_execution_error"
            message = e.trace.error.message if e.trace.error else str(e.cause)
            raise McpToolExecutionError(f"{code}: {message}") from e.cause
        return result.output

    async def _policy_context(
        self, root_dir: Optional[str], env: Optional[str], target: Optional[RuleTarget]
    ) -> Optional[dict[str, Any]]:
        if not (root_dir and env and target):
            return None
        try:
            preview = await self.run_tool(
                "preview_effective_policy", {"root_dir": root_dir, "env": env, "target": target}
            )
        except McpToolExecutionError as e:
            self.logger.warning(f"mcp.policy_context.unavailable: {e}")
            return None
        return {
            "env": preview.env,
            "target": preview.target.value,
            "mode": preview.mode.value,
            "failOnSeverity": preview.fail_on_severity.value,
        }

    async def _compare(self, args: dict[str, Any]) -> PolicyEnvComparison:
        root_dir = read_string(args, "rootDir")
        target = read_target(args, "target")
        base_env = read_string(args, "baseEnv")
        compare_env = read_string(args, "compareEnv")

        base_scope = {"root_dir": root_dir, "env": base_env, "target": target}
        compare_scope = {"root_dir": root_dir, "env": compare_env, "target": target}
        return compare_policies(
            root_dir=root_dir,
            target=target,
            base_env=base_env,
            compare_env=compare_env,
            base_preview=await self.run_tool("preview_effective_policy", base_scope),
            compare_preview=await self.run_tool("preview_effective_policy", compare_scope),
            base_directives=await self.run_tool("list_effective_directives", base_scope),
            compare_directives=await self.run_tool("list_effective_directives", compare_scope),
        )

    async def _validate_security_config(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir = read_string(args, "rootDir")
        result = await self.run_tool("validate_security_config", {"root_dir": root_dir})
        return tool_result(f"Validated PantherEyes security config in {root_dir}.", result)

    async def _preview_effective_policy(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, env, target = read_string(args, "rootDir"), read_string(args, "env"), read_target(args, "target")
        result = await self.run_tool("preview_effective_policy", {"root_dir": root_dir, "env": env, "target": target})
        return tool_result(f"Resolved effective policy for {env}/{target.value}.", result)

    async def _list_effective_directives(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, env, target = read_string(args, "rootDir"), read_string(args, "env"), read_target(args, "target")
        result = await self.run_tool("list_effective_directives", {"root_dir": root_dir, "env": env, "target": target})
        return tool_result(f"Listed effective directives for {env}/{target.value}.", result)

    async def _compare_policy_envs(self, args: dict[str, Any]) -> dict[str, Any]:
        diff = await self._compare(args)
        outcome = "Changes detected." if diff.summary.changes_detected else "No effective policy differences detected."
        return tool_result(
            f"Compared {diff.environments.base} -> {diff.environments.compare} for {diff.target.value}. {outcome}",
            diff,
        )

    async def _compare_policy_envs_report(self, args: dict[str, Any]) -> dict[str, Any]:
        report_format = read_optional_enum(args, "format", REPORT_FORMATS) or "both"
        report = build_comparison_report(await self._compare(args))
        structured = to_jsonable(report)

        content: list[dict[str, Any]] = [
            {"type": "text", "text": report.markdown if report_format in ("markdown", "both") else report.summary.headline}
        ]
        if report_format in ("json", "both"):
            content.append({"type": "json", "json": structured})
        return {"content": content, "structuredContent": structured}

    async def _scan(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, target, phase = read_string(args, "rootDir"), read_target(args, "target"), read_phase(args, "phase")
        scan_result = await self.adapters.cli.run_scan(root_dir, target, phase)
        summary = scan_result.get("summary") if isinstance(scan_result, dict) else None
        status = summary.get("status", "unknown") if isinstance(summary, dict) else "unknown"
        return tool_result(
            f"PantherEyes scan ({phase}) for {target.value} completed with status: {status}", scan_result
        )

    async def _scan_gate(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, target, phase = read_string(args, "rootDir"), read_target(args, "target"), read_phase(args, "phase")
        fail_on = read_fail_on(args, "failOn") or ["block"]
        scan_result = await self.adapters.cli.run_scan(root_dir, target, phase)
        gate = build_scan_gate(root_dir, target, phase, fail_on, scan_result)
        decision = gate["gate"]["decision"].upper()
        failing = "yes" if gate["gate"]["shouldFail"] else "no"
        return tool_result(f"{decision} gate for {target.value}/{phase} (fail={failing})", gate)

    async def _generate_policy_tests(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, env, target = read_string(args, "rootDir"), read_string(args, "env"), read_target(args, "target")
        user_message = read_optional_string(args, "userMessage") or "Generate policy tests"
        scope = {"root_dir": root_dir, "env": env, "target": target}

        validation = await self.run_tool("validate_security_config", {"root_dir": root_dir})
        preview = await self.run_tool("preview_effective_policy", scope)
        directives = await self.run_tool("list_effective_directives", scope)
        generation = await self.run_tool(
            "generate_policy_tests",
            {**scope, "user_message": user_message, "validation": validation, "preview": preview, "directives": directives},
        )

        structured = {
            "validation": validation,
            "previewSummary": {
                "mode": preview.mode.value,
                "failOnSeverity": preview.fail_on_severity.value,
                "ruleCount": len(preview.rules),
            },
            "directivesCount": len(directives),
            **to_jsonable(generation),
        }
        return tool_result(generation.change_set.summary, structured, content_json=generation)

    async def _explain_finding(self, args: dict[str, Any]) -> dict[str, Any]:
        finding_id = read_string(args, "findingId")
        knowledge = resolve_finding_knowledge(finding_id)
        policy_context = await self._policy_context(
            read_optional_string(args, "rootDir"),
            read_optional_string(args, "env"),
            read_optional_target(args, "target"),
        )

        if knowledge is None:
            return tool_result(
                f"No deterministic knowledge entry found for {finding_id}.",
                {
                    "findingId": finding_id,
                    "known": False,
                    "explanation": (
                        "Unknown deterministic finding. Use the exact PantherEyes finding id from scan JSON, "
                        "or rely on /chat intent for future LLM-backed support."
                    ),
                    "policyContext": policy_context,
                },
            )

        return tool_result(
            f"Explained finding {knowledge.canonical_id} ({knowledge.severity.value}).",
            {
                "known": True,
                "findingId": knowledge.canonical_id,
                "requestedFindingId": finding_id,
                "title": knowledge.title,
                "severity": knowledge.severity.value,
                "target": knowledge.target.value,
                "explanation": knowledge.explanation,
                "risk": list(knowledge.risk),
                "remediation": list(knowledge.remediation),
                "references": list(knowledge.references),
                "policyContext": policy_context,
            },
        )

    async def _suggest_remediation(self, args: dict[str, Any]) -> dict[str, Any]:
        finding_id = read_string(args, "findingId")
        knowledge = resolve_finding_knowledge(finding_id)
        keep_dev_warn = read_optional_bool(args, "keepDevWarn") or False
        prod_block = read_optional_bool(args, "prodBlock") or False
        policy_context = await self._policy_context(
            read_optional_string(args, "rootDir"),
            read_optional_string(args, "env"),
            read_optional_target(args, "target"),
        )

        if knowledge is None:
            return tool_result(
                f"No deterministic remediation template found for {finding_id}.",
                {
                    "known": False,
                    "findingId": finding_id,
                    "remediationSteps": [
                        "Use the exact finding id from PantherEyes scan JSON output.",
                        "Provide rootDir/env/target to receive policy-aware remediation context.",
                    ],
                    "policyGuidance": [
                        "Deterministic remediation guidance is currently available for seeded demo findings only."
                    ],
                    "references": [],
                    "policyContext": policy_context,
                },
            )

        return tool_result(
            f"Suggested remediation for {knowledge.canonical_id}.",
            {
                "known": True,
                "findingId": knowledge.canonical_id,
                "requestedFindingId": finding_id,
                "title": knowledge.title,
                "remediationSteps": list(knowledge.remediation),
                "policyGuidance": policy_guidance(keep_dev_warn, prod_block),
                "references": list(knowledge.references),
                "policyContext": policy_context,
            },
        )

    async def _create_policy_exception(self, args: dict[str, Any]) -> dict[str, Any]:
        root_dir, env, target = read_string(args, "rootDir"), read_string(args, "env"), read_target(args, "target")
        finding_id = read_string(args, "findingId")
        owner = read_optional_string(args, "owner")
        reason = read_optional_string(args, "reason")
        message = " ".join(
            part
            for part in (
                "Create policy exception",
                f"for {finding_id}",
                f"owner {owner}" if owner else "",
                f"reason {reason}" if reason else "",
            )
            if part
        )

        runtime = AgentRuntime(
            logger=bind_logger(self.logger, component="mcp.runtime_bridge"),
            adapters=self.adapters,
        )
        response = await runtime.handle_chat(ChatRequest(
            message=message,
            intent="create_policy_exception",
            context=AgentContextInput(root_dir=root_dir, env=env, target=target),
        ))
        return tool_result(
            response.planner.summary,
            {"intent": response.intent, "planner": response.planner, "tools": response.tools},
            content_json=response.planner,
        )
