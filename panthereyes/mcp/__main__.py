"""
PantherEyes MCP entry point — `python -m panthereyes.mcp`.

stdout carries JSON-RPC frames only, so logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.adapters.scan_cli import PantherEyesCliAdapter
from panthereyes.config import settings
from panthereyes.core.logging_context import bind_logger
from panthereyes.llm.gateway import create_chat_model
from panthereyes.mcp.server import PantherEyesMcpServer
from panthereyes.mcp.tool_host import PantherEyesMcpToolHost


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    logger = bind_logger(logging.getLogger("panthereyes.mcp"), service="panthereyes-agent-mcp")
    adapters = AgentAdapters(
        cli=PantherEyesCliAdapter(command=settings.scan_cli_command),
        llm=create_chat_model(settings),
    )
    tools = PantherEyesMcpToolHost(bind_logger(logger, component="mcp.tools"), adapters=adapters)
    asyncio.run(PantherEyesMcpServer(logger, tools=tools).start())


if __name__ == "__main__":
    main()
