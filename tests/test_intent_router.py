"""
Tests for tool intent detection and model-written tool calls.

This module tests:
- ToolIntentRouter rule order and argument extraction
- Math heuristics and expression cleanup
- parse_tool_call() for the agent loop
"""

import pytest

from air.ai.router.intent import (
    ToolIntent,
    ToolIntentRouter,
    extract_math_expression,
    extract_url,
    looks_like_math,
)
from air.ai.router.react import parse_tool_call


@pytest.fixture
def router() -> ToolIntentRouter:
    return ToolIntentRouter()


class TestFileIntents:
    """Tests for filesystem detection."""

    def test_read_file(self, router):
        """Test an explicit file read."""
        assert router.detect("read file src/main.rs") == ToolIntent(
            "filesystem", "read_file", {"path": "src/main.rs"}
        )

    def test_file_wins_over_url_vocabulary(self, router):
        """Test 'http' in a file name does not trigger the web tool."""
        intent = router.detect("read file http_client.rs")
        assert intent.tool_name == "filesystem"
        assert intent.arguments == {"path": "http_client.rs"}

    def test_read_bare_path(self, router):
        """Test a path with a known extension implies a read."""
        assert router.detect("show config.toml").arguments == {"path": "config.toml"}

    def test_write_file_with_content(self, router):
        """Test write requests capture path and content."""
        intent = router.detect("write file notes.txt with content hello world")
        assert intent == ToolIntent(
            "filesystem", "write_file", {"path": "notes.txt", "content": "hello world"}
        )

    @pytest.mark.parametrize("query, path", [("list files", "."), ("list files in src", "src")])
    def test_list_directory(self, router, query, path):
        """Test directory listings default to the current directory."""
        intent = router.detect(query)
        assert intent.function == "list_directory"
        assert intent.arguments == {"path": path}


class TestUrlIntents:
    """Tests for web detection."""

    def test_fetch(self, router):
        """Test a URL alone means fetch."""
        assert router.detect("fetch https://example.com") == ToolIntent(
            "web", "fetch", {"url": "https://example.com"}
        )

    def test_summarize_strips_trailing_punctuation(self, router):
        """Test summary wording selects summarize and trims the URL."""
        intent = router.detect("summarize https://example.com/article.")
        assert intent.function == "summarize"
        assert intent.arguments == {"url": "https://example.com/article"}

    def test_www_is_made_absolute(self):
        """Test bare www. hosts get a scheme."""
        assert extract_url("check www.rust-lang.org please") == "https://www.rust-lang.org"

    def test_no_url(self):
        """Test text without a URL."""
        assert extract_url("no links here") is None


class TestCommandIntents:
    """Tests for command detection."""

    def test_run_prefix(self, router):
        """Test 'run:' prefixes are stripped."""
        assert router.detect("run: cargo build") == ToolIntent(
            "command", "execute", {"command": "cargo build"}
        )

    def test_known_program(self, router):
        """Test a known program name as first word."""
        assert router.detect("git status") == ToolIntent("command", "execute", {"command": "git status"})


class TestMathIntents:
    """Tests for calculator detection."""

    @pytest.mark.parametrize(
        "query, expression",
        [
            ("what is 5 + 3", "5 + 3"),
            ("what's 2+2?", "2+2"),
            ("calculate 15% of 200", "15% of 200"),
            ("2^10", "2^10"),
            ("how much is 12 * 4 =", "12 * 4"),
        ],
    )
    def test_math_detected(self, router, query, expression):
        """Test math phrasing maps onto a cleaned expression."""
        intent = router.detect(query)
        assert intent.tool_name == "calculator"
        assert intent.arguments == {"expression": expression}

    @pytest.mark.parametrize(
        "text",
        ["what is the capital of France", "tell me a story", "what's the weather"],
    )
    def test_not_math(self, text):
        """Test ordinary questions are not math."""
        assert looks_like_math(text) is False

    def test_extract_math_expression(self):
        """Test leading phrasing and trailing '=?' are removed."""
        assert extract_math_expression("compute: 7 * 6 = ?") == "7 * 6"


class TestOtherIntents:
    """Tests for planner, memory, screenshot and voice detection."""

    def test_create_task(self, router):
        """Test task creation."""
        assert router.detect("create task write docs") == ToolIntent(
            "planner", "create_task", {"title": "write docs"}
        )

    def test_break_down(self, router):
        """Test task breakdown."""
        assert router.detect("break down build a website") == ToolIntent(
            "planner", "break_down_task", {"task": "build a website"}
        )

    def test_list_tasks(self, router):
        """Test listing tasks is not a directory listing."""
        assert router.detect("list my tasks") == ToolIntent("planner", "list_tasks", {})

    def test_memory_recall(self, router):
        """Test questions about earlier conversation."""
        intent = router.detect("what did we discuss earlier?")
        assert intent.tool_name == "memory"
        assert intent.function == "search_conversations"

    def test_screenshot(self, router):
        """Test screenshot requests are recognized."""
        assert router.detect("take a screenshot") == ToolIntent("screenshot", "capture", {})

    def test_speak(self, router):
        """Test text-to-speech requests capture the text."""
        assert router.detect("speak hello there") == ToolIntent("voice", "speak", {"text": "hello there"})

    @pytest.mark.parametrize("query", ["hello how are you", "", "   ", "what is the capital of France"])
    def test_plain_conversation(self, router, query):
        """Test conversation produces no intent."""
        assert router.detect(query) is None


class TestParseToolCall:
    """Tests for parse_tool_call()."""

    def test_fenced_json(self):
        """Test a ```json block with args."""
        text = 'Let me check.\n```json\n{"tool": "filesystem", "function": "read_file", "args": {"path": "a.md"}}\n```'
        assert parse_tool_call(text) == ToolIntent("filesystem", "read_file", {"path": "a.md"})

    def test_inline_object_with_arguments_key(self):
        """Test inline JSON using 'arguments'."""
        text = 'Calling {"tool": "calculator", "function": "calculate", "arguments": {"expression": "2+2"}} now'
        assert parse_tool_call(text) == ToolIntent("calculator", "calculate", {"expression": "2+2"})

    def test_plain_answer(self):
        """Test ordinary text has no tool call."""
        assert parse_tool_call("The answer is 4.") is None

    def test_json_without_tool_fields(self):
        """Test unrelated JSON is ignored."""
        assert parse_tool_call('{"answer": 4}') is None
