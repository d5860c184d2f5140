"""
Agent Runtime — one chat request in, one planner run out.

Each request gets a fresh uuid4 request id and a request-bound logger. The
intent is resolved, its planner runs against the shared ToolExecutor, and
the planner result plus every tool trace is returned. Errors propagate to
the caller.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Union

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.core.logging_context import bind_logger
from panthereyes.intents.resolver import resolve_intent
from panthereyes.models.agent_models import ChatRequest, ChatResponse
from panthereyes.planners.base import PlannerContext, PlannerRunInput
from panthereyes.planners.registry import PlannerRegistry
from panthereyes.tools.executor import ToolExecutor
from panthereyes.tools.registry import ToolRegistry


class AgentRuntime:
    def __init__(
        self,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        adapters: Optional[AgentAdapters] = None,
        tool_registry: Optional[ToolRegistry] = None,
        planner_registry: Optional[PlannerRegistry] = None,
        default_root_dir: Optional[str] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("panthereyes.agent")
        self.adapters = adapters or AgentAdapters()
        self.planner_registry = planner_registry or PlannerRegistry()
        self.tool_executor = ToolExecutor(tool_registry or ToolRegistry(), self.logger, self.adapters)
        self.default_root_dir = default_root_dir

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        request_id = str(uuid.uuid4())
        log = bind_logger(self.logger, request_id=request_id)
        log.info(
            f"agent.chat.start requested_intent={request.intent} "
            f"context={request.context.to_wire() if request.context else None}"
        )

        intent = resolve_intent(request.message, request.intent)
        planner = self.planner_registry.get(intent.resolved_intent)
        output = await planner.run(
            PlannerRunInput(request=request, intent=intent),
            PlannerContext(
                request_id=request_id,
                logger=log,
                tools=self.tool_executor,
                llm=self.adapters.llm,
                default_root_dir=self.default_root_dir,
            ),
        )

        response = ChatResponse(
            request_id=request_id,
            intent=intent,
            planner=output.result,
            tools=output.traces,
        )
        log.info(
            f"agent.chat.success intent={intent.resolved_intent} "
            f"change_count={len(response.planner.change_set.changes)} tool_count={len(response.tools)}"
        )
        return response
