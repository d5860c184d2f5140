"""
Tool Types — tool definitions, per-tool inputs, and execution results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from pydantic import Field

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.adapters.policy_config import SecurityConfigValidation
from panthereyes.models.agent_models import ChangeSet, ToolName, ToolTrace
from panthereyes.models.base import CamelModel, NonEmptyStr
from panthereyes.models.policy_models import EffectiveDirective, EffectivePolicyPreview
from panthereyes.models.rule_models import RuleTarget


class RootDirInput(CamelModel):
    root_dir: NonEmptyStr


class PolicyScopeInput(RootDirInput):
    env: NonEmptyStr
    target: RuleTarget


class GeneratePolicyTestsInput(PolicyScopeInput):
    user_message: str = "Generate policy tests"
    validation: SecurityConfigValidation
    preview: EffectivePolicyPreview
    directives: list[EffectiveDirective] = Field(default_factory=list)


class GeneratePolicyTestsOutput(CamelModel):
    change_set: ChangeSet
    notes: list[str] = Field(default_factory=list)


@dataclass
class ToolExecutionContext:
    request_id: str
    logger: Union[logging.Logger, logging.LoggerAdapter]
    adapters: AgentAdapters


ToolExecute = Callable[[Any, ToolExecutionContext], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    description: str
    input_model: type[CamelModel]
    execute: ToolExecute


@dataclass
class ToolExecutionResult:
    output: Any
    trace: ToolTrace
