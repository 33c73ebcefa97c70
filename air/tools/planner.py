"""
Planner Tool - a small in-memory task list.

Tasks live for the duration of the process. `break_down_task` splits a
description on sequencing words ("then", "and", commas) into ordered
subtasks.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List

from air.core.exceptions import ToolExecutionError
from air.tools.base import Tool, ToolResult

_SPLIT_PATTERN = re.compile(r",\s*(?:and\s+)?(?:then\s+)?|\s+and then\s+|\s+then\s+|;\s*|\s+and\s+", re.IGNORECASE)


@dataclass
class Task:
    id: int
    title: str
    done: bool = False
    subtasks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"id": self.id, "title": self.title, "done": self.done, "subtasks": list(self.subtasks)}


def split_steps(description: str) -> List[str]:
    parts = [p.strip(" .") for p in _SPLIT_PATTERN.split(description)]
    return [p for p in parts if p]


class PlannerTool(Tool):
    name = "planner"
    description = "Create, break down and track tasks"
    functions = {
        "create_task": "Add a task. Args: title",
        "break_down_task": "Split a task into ordered steps. Args: task",
        "list_tasks": "Show all tasks",
        "complete_task": "Mark a task done. Args: task_id",
    }

    def __init__(self):
        self._tasks: Dict[int, Task] = {}
        self._next_id = 1

    async def _create_task(self, title: str) -> ToolResult:
        title = title.strip()
        if not title:
            raise ToolExecutionError("Task title is empty", self.name)
        task = Task(id=self._next_id, title=title)
        self._tasks[task.id] = task
        self._next_id += 1
        return ToolResult(success=True, result=f"Created task #{task.id}: {task.title}", metadata=task.to_dict())

    async def _break_down_task(self, task: str) -> ToolResult:
        steps = split_steps(task)
        if len(steps) < 2:
            steps = [f"Clarify the goal: {task.strip()}", "Gather what is needed", "Do the work", "Verify the result"]
        lines = [f"{i}. {step}" for i, step in enumerate(steps, start=1)]
        return ToolResult(success=True, result="\n".join(lines), metadata={"steps": steps})

    async def _list_tasks(self) -> ToolResult:
        if not self._tasks:
            return ToolResult(success=True, result="No tasks yet.", metadata={"count": 0})
        lines = [f"[{'x' if t.done else ' '}] #{t.id} {t.title}" for t in self._tasks.values()]
        return ToolResult(success=True, result="\n".join(lines), metadata={"count": len(lines)})

    async def _complete_task(self, task_id: int) -> ToolResult:
        task = self._tasks.get(int(task_id))
        if task is None:
            raise ToolExecutionError(f"No task #{task_id}", self.name)
        task.done = True
        return ToolResult(success=True, result=f"Completed task #{task.id}: {task.title}")
