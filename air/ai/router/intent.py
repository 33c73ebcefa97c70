"""
Tool Intent Router - classify free text into an optional tool call.

Runs before the orchestrator asks any model. Rules are ordered and the
first match wins:

    1. file path mention    -> filesystem
    2. explicit URL         -> web
    3. command prefix       -> command
    4. math pattern         -> calculator
    5. task keywords        -> planner
    6. memory recall        -> memory
    7. screenshot / voice   -> screenshot, voice

The order resolves overlapping vocabulary: "read file http_client.rs" is a
file read even though it contains "http", because file detection runs
before URL detection.

Example:
    router = ToolIntentRouter()
    intent = router.detect("what is 5 + 3")
    # ToolIntent(tool_name="calculator", function="calculate",
    #            arguments={"expression": "5 + 3"})
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("air.ai.router.intent")


@dataclass
class ToolIntent:
    tool_name: str
    function: str
    arguments: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# PATTERNS
# ---------------------------------------------------------------------------

FILE_EXTENSIONS = (
    "rs", "py", "js", "ts", "tsx", "jsx", "toml", "json", "md", "txt", "yaml",
    "yml", "cfg", "ini", "csv", "html", "css", "sh", "go", "java", "c", "cpp",
    "h", "lock", "log", "xml", "sql", "env",
)
_EXT = "|".join(FILE_EXTENSIONS)

_READ_FILE = re.compile(
    r"^(?:please\s+)?(?:read|open|show|cat|view|display)\s+(?:me\s+)?(?:the\s+)?"
    r"(?:contents?\s+of\s+)?(?:the\s+)?file\s+(\S+)",
    re.IGNORECASE,
)
_WRITE_FILE = re.compile(
    r"^(?:please\s+)?(?:write|create|save|make)\s+(?:a\s+|the\s+)?(?:new\s+)?file\s+(\S+)"
    r"(?:\s+(?:with(?:\s+content)?|containing)\s*:?\s*(.*))?$",
    re.IGNORECASE | re.DOTALL,
)
_LIST_DIR = re.compile(
    r"^(?:please\s+)?(?:list|show)\s+(?:the\s+)?(?:files|directory|dir|folder|contents)"
    r"(?:\s+(?:in|of|under)?\s*(\S+))?\s*$",
    re.IGNORECASE,
)
_READ_PATH = re.compile(
    rf"^(?:please\s+)?(?:read|open|show|cat|view|display)\s+(?:me\s+)?(?:the\s+)?(\S+\.(?:{_EXT}))\b",
    re.IGNORECASE,
)

_URL = re.compile(r"(https?://[^\s<>\"']+|www\.[^\s<>\"']+)", re.IGNORECASE)
_URL_TRAILING = ".,;:!?)]}'\""
_SUMMARY_WORDS = re.compile(
    r"\b(summar\w*|analy[sz]\w*|extract|read\s+content|get\s+summary|content\s+from)\b",
    re.IGNORECASE,
)

_COMMAND_PREFIX = re.compile(r"^(?:run|execute|command)\s*:?\s+(.+)$", re.IGNORECASE | re.DOTALL)
COMMAND_PROGRAMS = {
    "git", "cargo", "npm", "npx", "pip", "python", "python3", "node", "ls",
    "dir", "pwd", "cd", "pytest", "docker",
}

_MATH_KEYWORDS = re.compile(
    r"\b(calculate|compute|solve|math|factorial|sqrt)\b|%\s*of\b",
    re.IGNORECASE,
)
_MATH_QUESTION = re.compile(r"\b(what\s+is|what's|how\s+much\s+is)\b", re.IGNORECASE)
_MATH_OPERATOR = re.compile(r"[+*/^×÷%]|\d\s*-\s*\d|\d\s*!")
_MATH_CHARS = set("0123456789+-*/^%().=?!×÷")
_MATH_PREFIX = re.compile(
    r"^(?:please\s+)?(?:calculate|compute|solve|what\s+is|what's|how\s+much\s+is|math)\s*:?\s*",
    re.IGNORECASE,
)

_CREATE_TASK = re.compile(r"^(?:please\s+)?(?:create|add|new)\s+(?:a\s+)?(?:new\s+)?task\s*:?\s*(.*)$", re.IGNORECASE)
_BREAK_DOWN = re.compile(r"\bbreak\s*down\s+(?:the\s+)?(?:task\s+)?(.*)$", re.IGNORECASE)
_LIST_TASKS = re.compile(r"\b(?:list|show)\s+(?:my\s+|all\s+)?tasks\b", re.IGNORECASE)

_MEMORY_RECALL = re.compile(
    r"\bwhat\s+did\s+(?:we|i)\s+(?:discuss|talk\s+about|say)\b"
    r"|\bremember\s+(?:our|the|when)\b"
    r"|\b(?:our|the)\s+(?:previous|last|earlier)\s+conversation\b"
    r"|\bearlier\s+conversation\b",
    re.IGNORECASE,
)

_SCREENSHOT_LIST = re.compile(r"\b(?:list|show)\s+screenshots\b", re.IGNORECASE)
_SCREENSHOT_REGION = re.compile(r"\b(?:screenshot|capture)\s+region\b", re.IGNORECASE)
_SCREENSHOT = re.compile(r"\bscreenshot\b|\bscreen\s+capture\b|\bcapture\s+(?:the\s+)?screen\b", re.IGNORECASE)

_VOICE_LIST = re.compile(r"\b(?:list|available)\s+voices\b", re.IGNORECASE)
_VOICE_LISTEN = re.compile(
    r"^listen\b|\bspeech\s+to\s+text\b|\bvoice\s+recognition\b|\btranscribe\b",
    re.IGNORECASE,
)
_VOICE_SPEAK = re.compile(r"^(?:speak|say|tts)\b\s*(.*)$|\btext\s+to\s+speech\b\s*(.*)$", re.IGNORECASE)


def extract_url(text: str) -> Optional[str]:
    """First URL in the text, trailing punctuation removed, www. made absolute."""
    match = _URL.search(text)
    if not match:
        return None
    url = match.group(1).rstrip(_URL_TRAILING)
    if url.lower().startswith("www."):
        url = f"https://{url}"
    return url


def extract_math_expression(text: str) -> str:
    expression = _MATH_PREFIX.sub("", text.strip())
    expression = re.sub(r"[\s=?]+$", "", expression)
    return expression.strip()


def looks_like_math(text: str) -> bool:
    if _MATH_KEYWORDS.search(text):
        return True
    has_digit = bool(re.search(r"\d", text))
    if _MATH_QUESTION.search(text) and (has_digit or _MATH_OPERATOR.search(text)):
        return True

    compact = [c for c in text if not c.isspace()]
    if not compact or not has_digit or not _MATH_OPERATOR.search(text):
        return False
    math_chars = sum(1 for c in compact if c in _MATH_CHARS)
    return math_chars / len(compact) > 0.6


class ToolIntentRouter:
    """Ordered, pattern-based classifier for tool requests."""

    def __init__(self):
        self._rules: List[Callable[[str], Optional[ToolIntent]]] = [
            self._detect_file,
            self._detect_url,
            self._detect_command,
            self._detect_math,
            self._detect_planner,
            self._detect_memory,
            self._detect_screenshot,
            self._detect_voice,
        ]

    def detect(self, query: str) -> Optional[ToolIntent]:
        """
        Classify a query.

        Returns:
            ToolIntent for the first matching rule, or None for plain
            conversation
        """
        text = query.strip()
        if not text:
            return None
        for rule in self._rules:
            intent = rule(text)
            if intent is not None:
                logger.debug(f"Detected tool intent {intent.tool_name}.{intent.function} for '{text[:60]}'")
                return intent
        return None

    # ---------------------------------------------------------------------------
    # RULES
    # ---------------------------------------------------------------------------

    def _detect_file(self, text: str) -> Optional[ToolIntent]:
        match = _READ_FILE.match(text)
        if match:
            return ToolIntent("filesystem", "read_file", {"path": match.group(1)})

        match = _WRITE_FILE.match(text)
        if match:
            return ToolIntent(
                "filesystem", "write_file",
                {"path": match.group(1), "content": (match.group(2) or "").strip()},
            )

        match = _LIST_DIR.match(text)
        if match:
            return ToolIntent("filesystem", "list_directory", {"path": match.group(1) or "."})

        match = _READ_PATH.match(text)
        if match:
            path = match.group(1)
            if "://" not in path and not path.lower().startswith("www."):
                return ToolIntent("filesystem", "read_file", {"path": path})
        return None

    def _detect_url(self, text: str) -> Optional[ToolIntent]:
        url = extract_url(text)
        if url is None:
            return None
        function = "summarize" if _SUMMARY_WORDS.search(text) else "fetch"
        return ToolIntent("web", function, {"url": url})

    def _detect_command(self, text: str) -> Optional[ToolIntent]:
        match = _COMMAND_PREFIX.match(text)
        if match:
            return ToolIntent("command", "execute", {"command": match.group(1).strip()})

        first_word = text.split()[0].lower()
        if first_word in COMMAND_PROGRAMS:
            return ToolIntent("command", "execute", {"command": text})
        return None

    def _detect_math(self, text: str) -> Optional[ToolIntent]:
        if not looks_like_math(text):
            return None
        return ToolIntent("calculator", "calculate", {"expression": extract_math_expression(text)})

    def _detect_planner(self, text: str) -> Optional[ToolIntent]:
        match = _CREATE_TASK.match(text)
        if match:
            return ToolIntent("planner", "create_task", {"title": match.group(1).strip()})

        match = _BREAK_DOWN.search(text)
        if match:
            return ToolIntent("planner", "break_down_task", {"task": match.group(1).strip()})

        if _LIST_TASKS.search(text):
            return ToolIntent("planner", "list_tasks", {})
        return None

    def _detect_memory(self, text: str) -> Optional[ToolIntent]:
        if _MEMORY_RECALL.search(text):
            return ToolIntent("memory", "search_conversations", {"query": text})
        return None

    def _detect_screenshot(self, text: str) -> Optional[ToolIntent]:
        if _SCREENSHOT_LIST.search(text):
            return ToolIntent("screenshot", "list_screenshots", {})
        if _SCREENSHOT_REGION.search(text):
            return ToolIntent("screenshot", "capture_region", {})
        if _SCREENSHOT.search(text):
            return ToolIntent("screenshot", "capture", {})
        return None

    def _detect_voice(self, text: str) -> Optional[ToolIntent]:
        if _VOICE_LIST.search(text):
            return ToolIntent("voice", "list_voices", {})
        if _VOICE_LISTEN.search(text):
            return ToolIntent("voice", "listen", {})
        match = _VOICE_SPEAK.search(text)
        if match:
            spoken = (match.group(1) or match.group(2) or "").strip()
            return ToolIntent("voice", "speak", {"text": spoken})
        return None
