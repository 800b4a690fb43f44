"""CLI commands for taskweave."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from taskweave.config import build_agent_from_config, load_config, save_default_config
from taskweave.errors import TaskweaveError
from taskweave.providers.litellm_provider import LiteLLMProvider
from taskweave.utils.logging import configure_logging

app = typer.Typer(
    name="taskweave",
    help="taskweave: tool-calling agents with pluggable conversation memory",
)
console = Console()


@app.command()
def init(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Write a default configuration file."""
    path = save_default_config(config_path)

    console.print(f"[green]Config created at:[/green] {path}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit config to add your API key")
    console.print("2. Run: taskweave chat -m \"Hello!\"")


@app.command()
def chat(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message to send"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Chat with an agent built from the configuration."""
    config = load_config(config_path)
    log_file = Path(config.logging.file).expanduser() if config.logging.file else None
    configure_logging(config.logging.level, log_file)

    api_key = config.get_api_key()
    if not api_key:
        console.print("[red]Error:[/red] No API key configured. Run 'taskweave init' first.")
        raise typer.Exit(1)

    provider = LiteLLMProvider(
        api_key=api_key,
        api_base=config.get_api_base(),
        default_model=config.agent.model,
        embedding_model=config.providers.embedding_model,
    )
    agent = build_agent_from_config(config, provider)

    if message:
        try:
            response = asyncio.run(agent.run(message))
        except TaskweaveError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        console.print(response)
        return

    console.print(f"[bold]{agent.name}[/bold] interactive mode. Type 'exit' to quit.\n")
    while True:
        try:
            user_input = console.input("[bold blue]> [/bold blue]")
            if user_input.strip().lower() in ("exit", "quit"):
                break
            if not user_input.strip():
                continue
            response = asyncio.run(agent.run(user_input))
            console.print(f"\n{response}\n")
        except TaskweaveError as e:
            console.print(f"[red]Error:[/red] {e}\n")
        except (KeyboardInterrupt, EOFError):
            break
    console.print("\n[dim]Goodbye![/dim]")


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Show the effective configuration."""
    config = load_config(config_path)

    table = Table(title="taskweave Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Agent", config.agent.name)
    table.add_row("Model", config.agent.model)
    table.add_row("Max Tokens", str(config.agent.max_tokens))
    table.add_row("Temperature", str(config.agent.temperature))
    table.add_row("Max Iterations", str(config.agent.max_iterations))
    table.add_row("Model Timeout", str(config.agent.model_timeout))
    table.add_row("Tool Timeout", str(config.agent.tool_timeout))
    table.add_row("Model Retries", str(config.agent.max_model_retries))

    api_key = config.get_api_key()
    table.add_row("API Key", f"...{api_key[-8:]}" if api_key else "[red]Not configured[/red]")
    table.add_row("API Base", config.get_api_base() or "Default")
    table.add_row("Embedding Model", config.providers.embedding_model)

    table.add_row("Memory", config.memory.type)
    table.add_row("Max Messages", str(config.memory.max_messages))
    if config.memory.type == "summary":
        table.add_row("Summary Threshold", str(config.memory.summary_threshold))
    if config.memory.type in ("vector", "hybrid"):
        table.add_row("Vector Backend", config.memory.vector_backend)
    table.add_row("Strict Memory", "Enabled" if config.agent.strict_memory else "Disabled")
    table.add_row("Log Level", config.logging.level)

    console.print(table)
