"""
Calculator Tool - safe arithmetic without eval().

Expressions are parsed with the `ast` module and only numeric literals,
arithmetic operators and a small set of math functions are evaluated.

Supported forms:
    "2 + 2", "(3 + 4) * 2", "2 ^ 10", "3 x 4"
    "15% of 200"
    "factorial of 5", "5!"
    "sqrt(16)", "abs(-3)", "round(2.567, 2)"
"""

import ast
import math
import operator
import re
import statistics as stats
from typing import Any, Callable, Dict, List, Union

from air.tools.base import Tool, ToolResult

Number = Union[int, float]

MAX_EXPONENT = 1000
MAX_FACTORIAL = 1000


def _factorial(n: Number) -> int:
    if n != int(n) or n < 0:
        raise ValueError("Factorial needs a non-negative integer")
    if n > MAX_FACTORIAL:
        raise ValueError(f"Factorial argument above {MAX_FACTORIAL}")
    return math.factorial(int(n))


_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS: Dict[str, Callable[..., Number]] = {
    "sqrt": math.sqrt,
    "abs": abs,
    "round": round,
    "log": math.log,
    "log10": math.log10,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "factorial": _factorial,
}

_CONSTANTS: Dict[str, float] = {"pi": math.pi, "e": math.e}

_PERCENT_OF = re.compile(r"^\s*([\d.]+)\s*%\s*of\s*([\d.]+)\s*$", re.IGNORECASE)
_FACTORIAL_OF = re.compile(r"^\s*factorial\s+of\s+(\d+)\s*$", re.IGNORECASE)
_BANG = re.compile(r"(\d+)\s*!")


def _evaluate_node(node: ast.AST) -> Number:
    if isinstance(node, ast.Expression):
        return _evaluate_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _evaluate_node(node.left)
        right = _evaluate_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ValueError("Exponent too large")
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate_node(node.operand))
    if isinstance(node, ast.Name) and node.id in _CONSTANTS:
        return _CONSTANTS[node.id]
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and not node.keywords
    ):
        args = [_evaluate_node(arg) for arg in node.args]
        return _FUNCTIONS[node.func.id](*args)
    raise ValueError(f"Unsupported expression element: {ast.dump(node)[:60]}")


def _format_number(value: Number) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.10g}"
    return str(value)


def evaluate(expression: str) -> Number:
    """
    Evaluate an arithmetic expression.

    Raises:
        ValueError: Empty, malformed, unsupported or too deeply nested expression
    """
    text = re.sub(r"[\s=?]+$", "", expression.strip())
    if not text:
        raise ValueError("Empty expression")

    match = _PERCENT_OF.match(text)
    if match:
        return float(match.group(1)) / 100 * float(match.group(2))

    match = _FACTORIAL_OF.match(text)
    if match:
        return _factorial(int(match.group(1)))

    text = _BANG.sub(r"factorial(\1)", text)
    text = text.replace("^", "**").replace("×", "*").replace("÷", "/")
    text = re.sub(r"(?<=\d)\s*[xX]\s*(?=\d)", "*", text)

    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Could not parse expression '{expression}'") from e
    except (RecursionError, MemoryError) as e:
        raise ValueError("Expression is nested too deeply") from e

    try:
        return _evaluate_node(tree)
    except ZeroDivisionError as e:
        raise ValueError("Division by zero") from e
    except (RecursionError, MemoryError) as e:
        raise ValueError("Expression is nested too deeply") from e


class CalculatorTool(Tool):
    name = "calculator"
    description = "Evaluate arithmetic expressions, percentages, factorials and basic statistics"
    functions = {
        "calculate": "Evaluate an expression. Args: expression",
        "statistics": "Mean, median, min, max and sum. Args: numbers",
    }

    async def _calculate(self, expression: str) -> ToolResult:
        value = evaluate(expression)
        return ToolResult(
            success=True,
            result=f"{expression.strip()} = {_format_number(value)}",
            metadata={"value": value},
        )

    async def _statistics(self, numbers: List[Number]) -> ToolResult:
        if isinstance(numbers, str):
            numbers = [float(n) for n in re.findall(r"-?\d+(?:\.\d+)?", numbers)]
        if not numbers:
            raise ValueError("No numbers given")
        summary = {
            "count": len(numbers),
            "sum": sum(numbers),
            "mean": stats.mean(numbers),
            "median": stats.median(numbers),
            "min": min(numbers),
            "max": max(numbers),
        }
        return ToolResult(success=True, result=summary)
