"""
Tools Module - non-generative capabilities the agent can invoke.

Screenshot and voice requests are recognized by the intent router but no
tool is registered for them; executing them fails and the query falls
through to the model.
"""

from pathlib import Path
from typing import Optional

from air.tools.base import Tool, ToolResult
from air.tools.calculator import CalculatorTool
from air.tools.command import CommandTool
from air.tools.filesystem import FilesystemTool
from air.tools.manager import ToolManager
from air.tools.memory_tool import KnowledgeTool, MemoryTool
from air.tools.planner import PlannerTool
from air.tools.web import WebTool


def create_tool_manager(
    root: Optional[Path] = None,
    store=None,
    knowledge=None,
    command_timeout: float = 30.0,
    web_timeout: float = 15.0,
) -> ToolManager:
    """Register the standard tool set."""
    manager = ToolManager()
    manager.register(CalculatorTool())
    manager.register(FilesystemTool(root=root))
    manager.register(WebTool(timeout=web_timeout))
    manager.register(CommandTool(cwd=root, timeout=command_timeout))
    manager.register(PlannerTool())
    if store is not None:
        manager.register(MemoryTool(store))
    if knowledge is not None:
        manager.register(KnowledgeTool(knowledge))
    return manager


__all__ = [
    "CalculatorTool",
    "CommandTool",
    "FilesystemTool",
    "KnowledgeTool",
    "MemoryTool",
    "PlannerTool",
    "Tool",
    "ToolManager",
    "ToolResult",
    "WebTool",
    "create_tool_manager",
]
