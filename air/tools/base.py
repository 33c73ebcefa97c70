"""
Base Tool - contract for non-generative capabilities.

A tool exposes named functions that take a JSON-style argument dict:

    result = await tool.execute("read_file", {"path": "README.md"})

Each subclass lists its functions in `functions` (name -> description) and
implements a coroutine `_<name>` for each. `execute()` dispatches
to it and wraps argument and OS errors in ToolExecutionError.
"""

import json
import logging
from abc import ABC
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from air.core.exceptions import ToolExecutionError

logger = logging.getLogger("air.tools")


@dataclass
class ToolResult:
    """
    Outcome of one tool call.

    Attributes:
        success: Whether the tool did what was asked
        result: Text or JSON-compatible data
        metadata: Optional extra details (timings, exit codes, ...)
    """
    success: bool
    result: Any
    metadata: Optional[Dict[str, Any]] = None

    def to_text(self) -> str:
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, indent=2, default=str)


class Tool(ABC):
    name: str = "tool"
    description: str = ""
    functions: Dict[str, str] = {}

    # Pure-data tools: their output is shown as-is, without an LLM pass
    returns_raw: bool = False

    def available_functions(self) -> List[str]:
        return list(self.functions)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "functions": dict(self.functions),
        }

    async def execute(self, function: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Run one of this tool's functions.

        Raises:
            ToolExecutionError: Unknown function, bad arguments or OS failure
        """
        if function not in self.functions:
            raise ToolExecutionError(
                f"Tool '{self.name}' has no function '{function}'. "
                f"Available: {', '.join(self.functions)}",
                self.name,
            )
        handler = getattr(self, f"_{function}")
        try:
            return await handler(**(args or {}))
        except ToolExecutionError:
            raise
        except (TypeError, ValueError, ArithmeticError, OSError) as e:
            logger.warning(f"Tool {self.name}.{function} failed: {e}")
            raise ToolExecutionError(str(e), self.name) from e
