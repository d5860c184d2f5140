"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

import logging
from functools import lru_cache

from panthereyes.adapters.bundle import AgentAdapters
from panthereyes.adapters.scan_cli import PantherEyesCliAdapter
from panthereyes.config import settings
from panthereyes.llm.gateway import create_chat_model
from panthereyes.mcp.tool_host import PantherEyesMcpToolHost
from panthereyes.runtime import AgentRuntime


@lru_cache
def get_agent_adapters() -> AgentAdapters:
    """Shared adapters; the chat model and scan command follow the settings."""
    return AgentAdapters(
        cli=PantherEyesCliAdapter(command=settings.scan_cli_command),
        llm=create_chat_model(settings),
    )


@lru_cache
def get_agent_runtime() -> AgentRuntime:
    """Shared agent runtime singleton."""
    return AgentRuntime(
        logger=logging.getLogger("panthereyes.agent"),
        adapters=get_agent_adapters(),
        default_root_dir=settings.panthereyes_root_dir or None,
    )


@lru_cache
def get_tool_host() -> PantherEyesMcpToolHost:
    """Shared MCP tool host behind the /tools endpoints."""
    return PantherEyesMcpToolHost(
        logger=logging.getLogger("panthereyes.http.tools"),
        adapters=get_agent_adapters(),
    )
