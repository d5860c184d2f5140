"""
PantherEyes — POST /chat endpoint.

Accepts a ChatRequest, resolves the intent and runs its planner. Bad input
and unusable `.panthereyes/` configuration are client errors (400); anything
else is a 500 with a generic message.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from panthereyes.api.dependencies import get_agent_runtime
from panthereyes.core.exceptions import ConfigError
from panthereyes.models.agent_models import ChatRequest
from panthereyes.runtime import AgentRuntime

logger = logging.getLogger("panthereyes.http.chat")
router = APIRouter()


@router.post("/chat")
async def chat(req: ChatRequest, runtime: AgentRuntime = Depends(get_agent_runtime)):
    """Run the planner for one chat message and return its dry-run result."""
    logger.info(
        f"http.chat.received intent={req.intent} "
        f"context={req.context.to_wire() if req.context else None}"
    )
    try:
        response = await runtime.handle_chat(req)
    except ConfigError as e:
        logger.error(f"http.chat.error: {type(e).__name__}: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("Unexpected chat error")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return JSONResponse(content=response.to_wire())
