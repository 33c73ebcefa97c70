"""
Tool-call parsing for the agent loop.

Models are asked to request tools with a JSON object:

    {"tool": "filesystem", "function": "read_file", "args": {"path": "README.md"}}

either inside a ```json fenced block or inline in the text.
"""

import json
import re
from typing import Any, Dict, Iterator, Optional

from air.ai.router.intent import ToolIntent

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def _candidate_objects(text: str) -> Iterator[Dict[str, Any]]:
    for match in _FENCED_JSON.finditer(text):
        try:
            value = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            yield value

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            yield value
        start = text.find("{", start + 1)


def parse_tool_call(text: str) -> Optional[ToolIntent]:
    """First well-formed tool request in a model reply, if any."""
    for obj in _candidate_objects(text):
        tool = obj.get("tool")
        function = obj.get("function")
        if isinstance(tool, str) and isinstance(function, str):
            args = obj.get("args") or obj.get("arguments") or {}
            if not isinstance(args, dict):
                args = {}
            return ToolIntent(tool, function, args)
    return None
