"""
Planner Base — one deterministic planner per intent.

Subclasses implement `plan()`. `run()` wraps it with start logging and the
shared failure path: the failing tool's trace (if any) is recorded, the
error is logged, and the original cause is re-raised. Planners never
swallow tool failures.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from panthereyes.core.logging_context import bind_logger
from panthereyes.llm.gateway import ChatModelAdapter
from panthereyes.models.agent_models import (
    ChatRequest,
    IntentId,
    PlannerExecutionResult,
    ResolvedIntent,
    ToolTrace,
)
from panthereyes.planners.common import normalize_tool_error
from panthereyes.tools.executor import ToolExecutor

logger = logging.getLogger("panthereyes.planner")


@dataclass
class PlannerContext:
    request_id: str
    logger: Union[logging.Logger, logging.LoggerAdapter]
    tools: ToolExecutor
    llm: ChatModelAdapter
    default_root_dir: Optional[str] = None


@dataclass
class PlannerRunInput:
    request: ChatRequest
    intent: ResolvedIntent


@dataclass
class PlannerRunOutput:
    result: PlannerExecutionResult
    traces: list[ToolTrace] = field(default_factory=list)


class PlannerRun:
    """Per-run state: the planner's bound logger and the traces collected so far."""

    def __init__(self, context: PlannerContext, planner_id: str) -> None:
        self.context = context
        self.log = bind_logger(context.logger, planner_id=planner_id)
        self.traces: list[ToolTrace] = []

    async def tool(self, name: str, input: Any) -> Any:
        result = await self.context.tools.run(self.context.request_id, name, input)
        self.traces.append(result.trace)
        return result.output


class Planner(ABC):
    id: IntentId
    deterministic = True

    async def run(self, input: PlannerRunInput, context: PlannerContext) -> PlannerRunOutput:
        run = PlannerRun(context, self.id)
        try:
            result = await self.plan(input, run)
        except Exception as e:
            trace, cause = normalize_tool_error(e)
            if trace is not None:
                run.traces.append(trace)
            run.log.error(f"planner.{self.id}.error: {type(cause).__name__}: {cause}")
            raise cause
        return PlannerRunOutput(result=result, traces=run.traces)

    @abstractmethod
    async def plan(self, input: PlannerRunInput, run: PlannerRun) -> PlannerExecutionResult:
        ...
