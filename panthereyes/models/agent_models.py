"""
Agent Data Models — chat request/response contract, ChangeSets and traces.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field

from panthereyes.models.base import CamelModel, NonEmptyStr
from panthereyes.models.rule_models import RuleTarget

IntentId = Literal[
    "generate_policy_tests",
    "compare_policy_envs",
    "explain_finding",
    "suggest_remediation",
    "create_policy_exception",
]

ToolName = Literal[
    "validate_security_config",
    "preview_effective_policy",
    "list_effective_directives",
    "generate_policy_tests",
]


class AgentContextInput(CamelModel):
    env: Optional[str] = None
    target: Optional[RuleTarget] = None
    root_dir: Optional[str] = None


class ChatRequest(CamelModel):
    message: NonEmptyStr = Field(..., description="Free-form user message")
    intent: Optional[str] = Field(default=None, description="Explicit intent id (wins over heuristics)")
    context: Optional[AgentContextInput] = None


class Change(CamelModel):
    kind: Literal["create", "update"]
    path: str
    language: Optional[str] = None
    reason: str
    content: str


class ChangeSet(CamelModel):
    """A proposal only. Nothing in the agent applies it."""

    dry_run: Literal[True] = True
    summary: str
    changes: list[Change] = Field(default_factory=list)


class ResolvedIntent(CamelModel):
    requested_intent: Optional[str] = None
    resolved_intent: IntentId
    confidence: float
    strategy: Literal["explicit", "heuristic"]
    reason: str


class ToolTraceError(CamelModel):
    message: str
    code: Optional[str] = None


class ToolTrace(CamelModel):
    id: str
    tool: ToolName
    status: Literal["success", "error"]
    started_at: str
    finished_at: str
    duration_ms: int
    input: Any = None
    output: Any = None
    error: Optional[ToolTraceError] = None


class PlannerContextInfo(CamelModel):
    env: str
    target: RuleTarget
    root_dir: str


class PlannerExecutionResult(CamelModel):
    planner_id: IntentId
    deterministic: Literal[True] = True
    summary: str
    change_set: ChangeSet
    tool_outputs: dict[str, Any] = Field(default_factory=dict)
    context: PlannerContextInfo


class ChatResponse(CamelModel):
    request_id: str
    intent: ResolvedIntent
    planner: PlannerExecutionResult
    tools: list[ToolTrace] = Field(default_factory=list)
