"""
air command line interface.

Examples:
    air -p "what is 2+2"
    air --mode cloud ask "summarize https://example.com"
    air -i
    air --agent ask "how many lines are in notes.md"
    air login
    air setup --local
    air memory add ./docs
    air memory maintain
    air stats
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional

import httpx
import typer
from typer import Argument, Option, Typer

from air.agent import create_knowledge_base, create_memory_store, create_orchestrator
from air.ai.monitoring import configure_logging
from air.ai.router import QueryMode, QueryOrchestrator
from air.core.config import settings
from air.core.exceptions import AirError

logger = logging.getLogger("air.cli")

app = Typer(help="air - a local-first AI agent with cloud failover")
memory_app = Typer(help="Knowledge base commands")
app.add_typer(memory_app, name="memory")

PROMPT = "air> "

HELP_TEXT = """Commands:
  help, h         Show this help
  stats           Provider and learning statistics
  mode <name>     Switch mode: auto, local, cloud, pure
  clear, cls      Clear the screen
  exit, quit, q   Leave the session
Anything else is sent to the agent."""

LOGIN_KEYS = (
    ("OPENAI_API_KEY", "OpenAI API key"),
    ("ANTHROPIC_API_KEY", "Anthropic API key"),
    ("GEMINI_KEY", "Gemini API key"),
    ("OPEN_ROUTER", "OpenRouter API key"),
)


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _build_orchestrator() -> QueryOrchestrator:
    try:
        return create_orchestrator(settings)
    except AirError as e:
        _fail(str(e))


def _print_stats(stats: Dict) -> None:
    typer.echo("\nProviders")
    typer.echo("-" * 40)
    for name, metrics in stats.get("providers", {}).items():
        typer.echo(
            f"{name}: {metrics['successful_requests']}/{metrics['total_requests']} ok, "
            f"avg {metrics['avg_response_time_ms']:.0f}ms"
        )

    typer.echo("\nQueries")
    typer.echo("-" * 40)
    for key, value in stats.get("queries", {}).items():
        if not isinstance(value, dict):
            typer.echo(f"{key}: {value}")

    learning = stats.get("learning")
    if learning:
        typer.echo("\nLearning")
        typer.echo("-" * 40)
        typer.echo(f"Mistakes: {learning['mistakes']}")
        typer.echo(f"Successes: {learning['successes']}")
        typer.echo(f"Success rate: {learning['success_rate']:.0%}")

    recent = stats.get("recent")
    if recent:
        typer.echo("\nRecent queries")
        typer.echo("-" * 40)
        for record in recent:
            status = "ok" if record["success"] else "failed"
            typer.echo(f"{record['request_id']} {record['source']} {record['model']} {record['latency_ms']:.0f}ms {status}")


def upsert_env(path: Path, values: Dict[str, str]) -> None:
    """Set KEY=value lines in a .env file, keeping every other line."""
    lines = path.read_text(encoding="utf-8").splitlines() if path.exists() else []
    pending = dict(values)

    for i, line in enumerate(lines):
        key = line.split("=", 1)[0].strip()
        if "=" in line and key in pending:
            lines[i] = f"{key}={pending.pop(key)}"
    lines.extend(f"{key}={value}" for key, value in pending.items())

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


# ============================================================================
# Query Commands
# ============================================================================

def _ask(orchestrator: QueryOrchestrator, prompt: str, mode: QueryMode, loop=None, agent: bool = False) -> None:
    if agent:
        coroutine = orchestrator.run_agent_loop(prompt, mode=mode)
    else:
        coroutine = orchestrator.process(prompt, mode=mode)
    try:
        if loop is None:
            response = asyncio.run(coroutine)
        else:
            response = loop.run_until_complete(coroutine)
    except AirError as e:
        _fail(str(e))
    typer.echo(response.content)


def _interactive(orchestrator: QueryOrchestrator, mode: QueryMode, agent: bool = False) -> None:
    typer.echo(f"air interactive session ({mode.value} mode). Type 'help' for commands.")
    # One loop for the whole session, abandoned local calls keep running
    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                line = input(PROMPT).strip()
            except (EOFError, KeyboardInterrupt):
                typer.echo("")
                break

            if not line:
                continue
            command = line.lower()
            if command in ("exit", "quit", "q"):
                break
            if command in ("help", "h"):
                typer.echo(HELP_TEXT)
            elif command == "stats":
                _print_stats(loop.run_until_complete(orchestrator.get_stats()))
            elif command in ("clear", "cls"):
                typer.clear()
            elif command.startswith("mode"):
                name = command[len("mode"):].strip()
                try:
                    mode = QueryMode(name)
                except ValueError:
                    typer.echo(f"Unknown mode '{name}'. Choose from: auto, local, cloud, pure")
                    continue
                typer.echo(f"Mode set to {mode.value}")
            else:
                try:
                    _ask(orchestrator, line, mode, loop=loop, agent=agent)
                except typer.Exit:
                    # Strict-mode failures end the query, not the session
                    continue
    finally:
        loop.close()
    typer.echo("Goodbye!")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    prompt: Optional[str] = Option(None, "--prompt", "-p", help="Answer a single prompt and exit"),
    interactive: bool = Option(False, "--interactive", "-i", help="Start an interactive session"),
    verbose: bool = Option(False, "--verbose", "-v", help="Debug logging on stderr"),
    mode: QueryMode = Option(QueryMode.AUTO, "--mode", "-m", help="Routing mode"),
    agent: bool = Option(False, "--agent", "-a", help="Let the model call tools itself"),
) -> None:
    """Ask a question, or start an interactive session when no command is given."""
    configure_logging(verbose=verbose, quiet=not verbose)
    ctx.obj = {"mode": mode, "agent": agent}
    if ctx.invoked_subcommand is not None:
        return

    orchestrator = _build_orchestrator()
    if prompt and not interactive:
        _ask(orchestrator, prompt, mode, agent=agent)
        return
    if prompt:
        _ask(orchestrator, prompt, mode, agent=agent)
    _interactive(orchestrator, mode, agent=agent)


@app.command("ask")
def ask(
    ctx: typer.Context,
    prompt: str = Argument(..., help="Question or instruction"),
    mode: Optional[QueryMode] = Option(None, "--mode", "-m", help="Routing mode"),
    agent: bool = Option(False, "--agent", "-a", help="Let the model call tools itself"),
) -> None:
    """Answer a single prompt.

    Examples:
        air ask "what is 15% of 200"
        air ask --mode local "explain this error"
        air ask --agent "list files in src and summarize them"
    """
    options = ctx.obj or {}
    selected = mode or options.get("mode", QueryMode.AUTO)
    _ask(_build_orchestrator(), prompt, selected, agent=agent or options.get("agent", False))


@app.command("stats")
def stats() -> None:
    """Show provider metrics and learning insights."""
    orchestrator = _build_orchestrator()
    _print_stats(asyncio.run(orchestrator.get_stats()))


# ============================================================================
# Setup Commands
# ============================================================================

@app.command("login")
def login(
    env_file: Path = Option(Path(".env"), "--env-file", help="File to store the keys in"),
) -> None:
    """Store cloud provider API keys in a .env file.

    Leave a prompt empty to keep the current value.
    """
    values = {}
    for key, label in LOGIN_KEYS:
        value = typer.prompt(label, default="", show_default=False, hide_input=True)
        if value.strip():
            values[key] = value.strip()

    if not values:
        typer.echo("No keys entered, nothing changed.")
        return
    upsert_env(env_file, values)
    typer.echo(f"Saved {len(values)} key(s) to {env_file}")


@app.command("setup")
def setup(
    local: bool = Option(False, "--local", help="Pull the local model through Ollama"),
    model: Optional[str] = Option(None, "--model", help="Model to pull (defaults to LOCAL_MODEL_NAME)"),
    env_file: Path = Option(Path(".env"), "--env-file", help="File to record the model name in"),
) -> None:
    """Prepare optional components.

    Examples:
        air setup --local --model llama3.2:1b
    """
    if not local:
        typer.echo("Nothing to set up. Use --local to pull a local model.")
        return

    name = model or settings.LOCAL_MODEL_NAME
    if not name:
        _fail("No model given. Use --model or set LOCAL_MODEL_NAME")

    base_url = settings.LOCAL_BASE_URL.rstrip("/")
    typer.echo(f"Pulling {name} from {base_url} (this can take a while)...")
    try:
        with httpx.Client(timeout=None) as client:
            response = client.post(f"{base_url}/api/pull", json={"model": name, "stream": False})
            response.raise_for_status()
            status = response.json().get("status", "unknown")
    except httpx.HTTPStatusError as e:
        _fail(f"Model pull failed: {e.response.status_code} {e.response.text}")
    except httpx.RequestError as e:
        _fail(f"Could not reach the local model server at {base_url}: {e}")

    upsert_env(env_file, {"LOCAL_MODEL_NAME": name})
    typer.echo(f"Pull finished ({status}). LOCAL_MODEL_NAME={name} saved to {env_file}")


# ============================================================================
# Memory Commands
# ============================================================================

@memory_app.command("add")
def memory_add(
    path: Path = Argument(..., help="File or directory to ingest"),
    output_json: bool = Option(False, "--json", help="Output as JSON"),
) -> None:
    """Add documents to the knowledge base."""
    knowledge = create_knowledge_base(settings)
    try:
        chunks = asyncio.run(knowledge.add_path(path))
    except FileNotFoundError:
        _fail(f"No such file or directory: {path}")
    except AirError as e:
        _fail(str(e))

    if output_json:
        typer.echo(json.dumps({"success": True, "path": str(path), "chunks": chunks}))
    else:
        typer.echo(f"Added {chunks} chunk(s) from {path}")


@memory_app.command("maintain")
def memory_maintain(
    output_json: bool = Option(False, "--json", help="Output as JSON"),
) -> None:
    """Trim old conversations and forget mistakes that were learned from."""
    try:
        result = asyncio.run(create_memory_store(settings).perform_maintenance())
    except AirError as e:
        _fail(str(e))

    if output_json:
        typer.echo(json.dumps(result))
    else:
        typer.echo(
            f"Trimmed {result['conversations_trimmed']} conversation(s), "
            f"removed {result['mistakes_removed']} learned mistake(s)"
        )


if __name__ == "__main__":
    app()
