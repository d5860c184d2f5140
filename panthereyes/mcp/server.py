"""
PantherEyes MCP Server — JSON-RPC methods over the stdio protocol.

Methods: initialize, ping, tools/list, tools/call. Notifications (no id)
produce no response.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Optional, Union

from panthereyes.core.logging_context import bind_logger
from panthereyes.mcp.protocol import StdioJsonRpcProtocol
from panthereyes.mcp.tool_host import McpInvalidParamsError, PantherEyesMcpToolHost

JSON_RPC_METHOD_NOT_FOUND = -32601
JSON_RPC_INVALID_PARAMS = -32602
JSON_RPC_INTERNAL_ERROR = -32603

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "panthereyes-agent-mcp"
SERVER_VERSION = "0.1.0"


class PantherEyesMcpServer:
    def __init__(
        self,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        tools: Optional[PantherEyesMcpToolHost] = None,
        output: Optional[BinaryIO] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("panthereyes.mcp")
        self.tools = tools or PantherEyesMcpToolHost(bind_logger(self.logger, component="mcp.tools"))
        self.protocol = StdioJsonRpcProtocol(
            on_request=self.dispatch_request,
            on_protocol_error=self._on_protocol_error,
            output=output,
        )

    async def start(self) -> None:
        self.logger.info("mcp.server.start transport=stdio")
        await self.protocol.serve_stdin()
        self.logger.info("mcp.server.stop")

    async def dispatch_request(self, message: dict[str, Any]) -> None:
        method = message.get("method")
        log = bind_logger(self.logger, method=method, id=message.get("id"))
        log.debug("mcp.request.received")

        if method == "notifications/initialized":
            return
        if "id" not in message:
            log.debug("mcp.notification.ignored")
            return

        request_id = message["id"]
        try:
            if method == "initialize":
                self.protocol.write_result(request_id, {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {"tools": {"listChanged": False}},
                    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                })
            elif method == "ping":
                self.protocol.write_result(request_id, {})
            elif method == "tools/list":
                self.protocol.write_result(request_id, {"tools": self.tools.list_tools()})
            elif method == "tools/call":
                params = message.get("params")
                if not isinstance(params, dict):
                    raise McpInvalidParamsError("tools/call.params must be an object")
                name = params.get("name")
                if not isinstance(name, str) or not name.strip():
                    raise McpInvalidParamsError("tools/call.params.name must be a non-empty string")
                result = await self.tools.call_tool(name, params.get("arguments"))
                self.protocol.write_result(request_id, result)
            else:
                self.protocol.write_error(request_id, JSON_RPC_METHOD_NOT_FOUND, f"Method not found: {method}")
        except McpInvalidParamsError as e:
            log.error(f"mcp.request.error: {e}")
            self.protocol.write_error(request_id, JSON_RPC_INVALID_PARAMS, str(e))
        except Exception as e:
            log.error(f"mcp.request.error: {type(e).__name__}: {e}")
            self.protocol.write_error(request_id, JSON_RPC_INTERNAL_ERROR, str(e))

    def _on_protocol_error(self, error: Exception) -> None:
        self.logger.error(f"mcp.protocol.error: {error}")
