"""
Tool Registry — name -> ToolDefinition, built once at startup.
"""

from __future__ import annotations

from typing import Optional

from panthereyes.tools.implementations import create_tool_implementations
from panthereyes.tools.types import ToolDefinition


class UnknownToolError(KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Tool not registered: {self.name}"


class ToolRegistry:
    def __init__(self, tool_definitions: Optional[list[ToolDefinition]] = None) -> None:
        definitions = tool_definitions if tool_definitions is not None else create_tool_implementations()
        self._tools: dict[str, ToolDefinition] = {tool.name: tool for tool in definitions}

    def get(self, name: str) -> ToolDefinition:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def list(self) -> list[ToolDefinition]:
        return list(self._tools.values())
