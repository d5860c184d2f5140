"""
PantherEyes — HTTP bridge to the MCP tool host.

  GET  /tools/list   → {tools}
  GET  /tools/schema → {schemaVersion, endpoints, tools}
  POST /tools/call   → {content, structuredContent}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from panthereyes.api.dependencies import get_tool_host
from panthereyes.mcp.tool_host import McpInvalidParamsError, PantherEyesMcpToolHost

logger = logging.getLogger("panthereyes.http.tools")
router = APIRouter(prefix="/tools")

SCHEMA_VERSION = 1
ENDPOINTS = {"schema": "/tools/schema", "list": "/tools/list", "call": "/tools/call"}


class ToolCallRequest(BaseModel):
    name: Optional[str] = None
    arguments: Any = None


@router.get("/list")
async def list_tools(host: PantherEyesMcpToolHost = Depends(get_tool_host)):
    return {"tools": host.list_tools()}


@router.get("/schema")
async def tools_schema(host: PantherEyesMcpToolHost = Depends(get_tool_host)):
    return {"schemaVersion": SCHEMA_VERSION, "endpoints": ENDPOINTS, "tools": host.list_tools()}


@router.post("/call")
async def call_tool(req: ToolCallRequest, host: PantherEyesMcpToolHost = Depends(get_tool_host)):
    """Call one `panthereyes.*` tool; argument errors are 400s."""
    if not req.name or not req.name.strip():
        return JSONResponse(status_code=400, content={"error": "Invalid payload: name is required"})

    logger.info(f"http.tools.call name={req.name}")
    try:
        result = await host.call_tool(req.name.strip(), req.arguments if req.arguments is not None else {})
    except McpInvalidParamsError as e:
        logger.warning(f"http.tools.call.invalid name={req.name}: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.error(f"http.tools.call.error name={req.name}: {type(e).__name__}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return result
