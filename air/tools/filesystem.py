"""
Filesystem Tool - read, write and list files under a root directory.

Paths are resolved against `root`; anything that resolves outside it is
rejected.
"""

from pathlib import Path
from typing import Optional

from air.core.exceptions import ToolExecutionError
from air.tools.base import Tool, ToolResult

MAX_READ_BYTES = 100_000


class FilesystemTool(Tool):
    name = "filesystem"
    description = "Read, write and list files and directories"
    functions = {
        "read_file": "Read a text file. Args: path",
        "write_file": "Write text to a file. Args: path, content",
        "list_directory": "List entries of a directory. Args: path (optional)",
    }
    returns_raw = True

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or Path.cwd()).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise ToolExecutionError(f"Path '{path}' is outside {self.root}", self.name)
        return resolved

    async def _read_file(self, path: str) -> ToolResult:
        target = self._resolve(path)
        if not target.is_file():
            raise ToolExecutionError(f"File not found: {path}", self.name)

        data = target.read_bytes()
        truncated = len(data) > MAX_READ_BYTES
        text = data[:MAX_READ_BYTES].decode("utf-8", errors="replace")
        if truncated:
            text += f"\n... (truncated, {len(data)} bytes total)"
        return ToolResult(
            success=True,
            result=text,
            metadata={"path": str(target), "bytes": len(data), "truncated": truncated},
        )

    async def _write_file(self, path: str, content: str = "") -> ToolResult:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return ToolResult(
            success=True,
            result=f"Wrote {len(content)} characters to {path}",
            metadata={"path": str(target)},
        )

    async def _list_directory(self, path: str = ".") -> ToolResult:
        target = self._resolve(path)
        if not target.is_dir():
            raise ToolExecutionError(f"Not a directory: {path}", self.name)

        entries = sorted(target.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower()))
        lines = [f"{entry.name}/" if entry.is_dir() else entry.name for entry in entries]
        return ToolResult(
            success=True,
            result="\n".join(lines) if lines else "(empty directory)",
            metadata={"path": str(target), "count": len(lines)},
        )
