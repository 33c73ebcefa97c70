"""
Tool Manager - registry of tools available to the agent.

Usage:
    manager = ToolManager()
    manager.register(CalculatorTool())
    result = await manager.execute("calculator", "calculate", {"expression": "2 + 2"})
"""

import logging
from typing import Any, Dict, List, Optional

from air.core.exceptions import ToolExecutionError
from air.tools.base import Tool, ToolResult

logger = logging.getLogger("air.tools.manager")


class ToolManager:
    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool '{tool.name}'")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[str]:
        return list(self._tools)

    def describe(self) -> List[Dict[str, Any]]:
        """JSON-able descriptors advertised to the model in agent mode."""
        return [tool.describe() for tool in self._tools.values()]

    async def execute(self, tool_name: str, function: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Execute `function` on the named tool.

        Raises:
            ToolExecutionError: Unknown tool, or the tool itself failed
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            raise ToolExecutionError(f"Unknown tool: {tool_name}", tool_name)

        logger.debug(f"Executing {tool_name}.{function} with {args}")
        return await tool.execute(function, args or {})
