"""
Tool Executor — runs a registered tool and records a trace for every call.

Success returns {output, trace}. Failure raises ToolExecutionError carrying
the error trace and the original exception (also chained as __cause__).
"""

from __future__ import annotations

import datetime as dt
import inspect
import logging
import time
from typing import Any, Union

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.core.exceptions import PantherEyesError
from panthereyes.core.logging_context import bind_logger
from panthereyes.models.agent_models import ToolTrace, ToolTraceError
from panthereyes.tools.registry import ToolRegistry
from panthereyes.tools.types import ToolExecutionContext, ToolExecutionResult


class ToolExecutionError(PantherEyesError):
    def __init__(self, trace: ToolTrace, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.trace = trace
        self.cause = cause
        self.__cause__ = cause


def _iso(moment: dt.datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _trace_input(payload: Any) -> Any:
    if hasattr(payload, "to_wire"):
        return payload.to_wire()
    return payload


class ToolExecutor:
    def __init__(
        self,
        registry: ToolRegistry,
        logger: Union[logging.Logger, logging.LoggerAdapter],
        adapters: AgentAdapters,
    ) -> None:
        self.registry = registry
        self.logger = logger
        self.adapters = adapters

    async def run(self, request_id: str, tool_name: str, input: Any) -> ToolExecutionResult:
        """
        Execute `tool_name` with `input` (a dict or the tool's input model).

        Raises:
            UnknownToolError: the tool is not registered (no trace is recorded).
            ToolExecutionError: input validation or the tool itself failed.
        """
        tool = self.registry.get(tool_name)
        log = bind_logger(self.logger, request_id=request_id, tool=tool_name)
        started_at = dt.datetime.now(dt.timezone.utc)
        started_ms = int(time.time() * 1000)
        started = time.perf_counter()
        trace_id = f"{request_id}:{tool_name}:{started_ms}"

        log.info("tool.run.start")
        context = ToolExecutionContext(request_id=request_id, logger=log, adapters=self.adapters)

        try:
            payload = input if isinstance(input, tool.input_model) else tool.input_model.model_validate(input)
            output = tool.execute(payload, context)
            if inspect.isawaitable(output):
                output = await output
        except Exception as e:
            duration_ms = int((time.perf_counter() - started) * 1000)
            log.error(f"tool.run.error duration_ms={duration_ms}: {type(e).__name__}: {e}")
            trace = ToolTrace(
                id=trace_id,
                tool=tool_name,
                status="error",
                started_at=_iso(started_at),
                finished_at=_iso(dt.datetime.now(dt.timezone.utc)),
                duration_ms=duration_ms,
                input=_trace_input(input),
                error=ToolTraceError(message=str(e), code=type(e).__name__),
            )
            raise ToolExecutionError(trace, e) from e

        duration_ms = int((time.perf_counter() - started) * 1000)
        log.info(f"tool.run.success duration_ms={duration_ms}")
        return ToolExecutionResult(
            output=output,
            trace=ToolTrace(
                id=trace_id,
                tool=tool_name,
                status="success",
                started_at=_iso(started_at),
                finished_at=_iso(dt.datetime.now(dt.timezone.utc)),
                duration_ms=duration_ms,
                input=_trace_input(payload),
                output=output,
            ),
        )
