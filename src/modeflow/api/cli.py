"""modeflow Command Line Interface.

Runs the travel demo as an interactive chat and lists registered modes.
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from modeflow.core.config import get_settings
from modeflow.core.errors import ModeflowError
from modeflow.core.logging import configure_logging
from modeflow.demo.travel import TRAVEL_INITIAL_MODE, build_travel_registry
from modeflow.modes.definition import ToolKind
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.runtime import ModeRuntime, create_runtime
from modeflow.modes.session import ModeSession

app = typer.Typer(
    name="modeflow",
    help="modeflow - swap what a conversational agent is focused on, one mode at a time",
    add_completion=False,
)
console = Console()

EXIT_WORDS = {"exit", "quit", "bye", "q"}


def _print_failure(error: ModeflowError) -> None:
    failure = error.to_failure()
    lines = [f"[bold red]{failure.error}[/bold red]: {failure.message}"]
    if failure.mode:
        lines.append(f"[dim]Mode: {failure.mode}[/dim]")
    console.print(Panel("\n".join(lines), title="Turn failed", border_style="red"))


async def _chat_loop(runtime: ModeRuntime, session: ModeSession) -> None:
    """Read user input until an exit word, rendering each turn."""
    while True:
        try:
            user_input = Prompt.ask("[bold green]You[/bold green]")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Conversation ended.[/dim]")
            break

        if not user_input.strip():
            continue

        if user_input.lower().strip() in EXIT_WORDS:
            console.print("[dim]Ending conversation...[/dim]")
            break

        previous_mode = session.current_mode
        try:
            output = await runtime.submit_turn(session, user_input)
        except ModeflowError as e:
            # The session is unchanged; let the user try again
            _print_failure(e)
            continue

        console.print()
        console.print(output)
        console.print()

        if session.current_mode != previous_mode:
            console.print(f"[dim]Mode: {previous_mode} → {session.current_mode}[/dim]")


@app.command()
def chat(
    mode: str = typer.Option(
        TRAVEL_INITIAL_MODE, "--mode", "-m", help="Mode to start the conversation in"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Start an interactive conversation with the travel assistant.

    Examples:
        modeflow chat                  # Start in orientation
        modeflow chat -v               # Show mode transitions and tool calls in the log
    """
    configure_logging(level=logging.DEBUG if verbose else None, quiet=not verbose)
    settings = get_settings()

    if not settings.llm_api_key:
        console.print(
            "[bold red]Error:[/bold red] LLM_API_KEY environment variable is required.",
            style="red",
        )
        console.print("Set it in your .env file or environment.")
        raise typer.Exit(1)

    registry = build_travel_registry()
    runtime = create_runtime(registry, settings=settings)

    try:
        session = runtime.create_session(mode)
    except ModeflowError as e:
        _print_failure(e)
        raise typer.Exit(1)

    console.print(
        Panel(
            "[bold blue]modeflow[/bold blue] travel assistant\n\n"
            f"[dim]Starting in mode '{session.current_mode}'. "
            "Type 'exit' or 'quit' to end the conversation.[/dim]",
            title="Welcome",
            border_style="blue",
        )
    )

    asyncio.run(_chat_loop(runtime, session))


def _modes_table(registry: ModeRegistry) -> Table:
    table = Table(title="Modes", show_header=True, header_style="bold")
    table.add_column("Mode", style="bold", no_wrap=True)
    table.add_column("Description")
    table.add_column("Tools")

    for definition in registry:
        tools = registry.tools_for(definition.identity)
        tool_names = [
            f"→ {t.name}" if t.kind is ToolKind.MODE_ENTRY else t.name
            for t in tools.values()
        ]
        table.add_row(definition.identity, definition.description, ", ".join(tool_names))

    return table


@app.command()
def modes():
    """List the travel demo's modes and the tools each one exposes."""
    registry = build_travel_registry()
    console.print(_modes_table(registry))
    console.print(f"[dim]Conversations start in '{TRAVEL_INITIAL_MODE}'. '→' marks mode-entry tools.[/dim]")


if __name__ == "__main__":
    app()
