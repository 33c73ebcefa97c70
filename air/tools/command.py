"""
Command Tool - run allow-listed programs.

Commands are split with shlex and executed without a shell, so pipes and
redirection are not interpreted. Only programs in SAFE_PROGRAMS may run.
`cd` and `pwd` are handled by the tool itself and change the working
directory used for later commands.
"""

import asyncio
import logging
import os
import shlex
from pathlib import Path
from typing import Optional

from air.core.exceptions import ToolExecutionError
from air.tools.base import Tool, ToolResult

logger = logging.getLogger("air.tools.command")

SAFE_PROGRAMS = {
    "git", "cargo", "npm", "npx", "node", "pip", "python", "python3", "pytest",
    "ls", "dir", "pwd", "cd", "echo", "cat", "head", "tail", "wc", "grep",
    "find", "which", "date", "whoami", "uname", "make", "docker", "go", "rustc",
}

MAX_OUTPUT_CHARS = 8000


class CommandTool(Tool):
    name = "command"
    description = "Execute safe system commands"
    functions = {
        "execute": "Run a command line. Args: command",
    }

    def __init__(self, cwd: Optional[Path] = None, timeout: float = 30.0):
        self.cwd = Path(cwd or Path.cwd()).resolve()
        self.timeout = timeout

    async def _execute(self, command: str) -> ToolResult:
        argv = shlex.split(command)
        if not argv:
            raise ToolExecutionError("Empty command", self.name)

        program = argv[0]
        if program not in SAFE_PROGRAMS:
            raise ToolExecutionError(f"Command '{program}' is not in the allowed list", self.name)

        if program == "pwd":
            return ToolResult(success=True, result=str(self.cwd), metadata={"exit_code": 0})
        if program == "cd":
            return self._change_directory(argv[1] if len(argv) > 1 else str(Path.home()))
        if program == "dir" and os.name != "nt":
            argv[0] = "ls"

        logger.info(f"Running command: {command} (cwd={self.cwd})")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(self.cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolExecutionError(f"Program not found: {argv[0]}", self.name) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ToolExecutionError(f"Command timed out after {self.timeout}s", self.name) from e

        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")
        combined = output if not errors else f"{output}\n[stderr]\n{errors}".strip()
        if len(combined) > MAX_OUTPUT_CHARS:
            combined = combined[:MAX_OUTPUT_CHARS] + "\n... (truncated)"

        return ToolResult(
            success=process.returncode == 0,
            result=combined or "(no output)",
            metadata={"exit_code": process.returncode, "command": command},
        )

    def _change_directory(self, path: str) -> ToolResult:
        target = Path(path).expanduser()
        if not target.is_absolute():
            target = self.cwd / target
        target = target.resolve()
        if not target.is_dir():
            raise ToolExecutionError(f"No such directory: {path}", self.name)
        self.cwd = target
        return ToolResult(success=True, result=f"Changed directory to {target}", metadata={"exit_code": 0})
