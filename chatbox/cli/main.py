import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel

from chatbox.cli.commands import (
    ask_command,
    config_command,
    default_command,
    providers_command,
    retry_command,
    sessions_group,
    version_command,
)
from chatbox.core.app import ChatboxApp
from chatbox.utils.errors import ChatboxError
from chatbox.utils.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def handle_exception(e: Exception, debug_mode: bool = False) -> int:
    """Print an error panel and return the exit code to use."""
    exit_code = 1

    if isinstance(e, ChatboxError):
        exit_code = getattr(e, "exit_code", 1)
        notes = getattr(e, "__notes__", [])
        hint_text = "\n".join([f"[dim]💡 {note}[/dim]" for note in notes])
        body = f"[red]Error[/red]: {e}"
        if hint_text:
            body = f"{body}\n\n{hint_text}"
        console.print(Panel(body, title="[bold]chatbox Error[/bold]", border_style="red"))
    elif isinstance(e, KeyboardInterrupt):
        console.print("[yellow]Interrupted[/yellow]")
        exit_code = 130
    else:
        console.print(
            Panel(
                f"[red]Unexpected Error[/red]: {e}",
                title="[bold]chatbox Error[/bold]",
                border_style="red",
            )
        )

    if debug_mode:
        logger.exception(f"Unhandled exception: {e}")
    return exit_code


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("-c", "--config", "config_path", default=None, help="Path to config.yaml")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, config_path, debug):
    """chatbox - streaming chat with reasoning, from the terminal

    \b
    Examples:
      chatbox ask "your question"             # Use default provider
      chatbox ask -p deepseek "your question" # Reasoning model
      chatbox sessions                        # List stored sessions
      chatbox retry <session-id>              # Regenerate the last answer
    """
    setup_logging(logging.DEBUG if debug else logging.WARNING)
    ctx.obj = {"app": ChatboxApp.create(config_path), "debug": debug}


cli.add_command(ask_command, "ask")
cli.add_command(retry_command, "retry")
cli.add_command(sessions_group, "sessions")
cli.add_command(providers_command, "providers")
cli.add_command(config_command, "config")
cli.add_command(default_command, "default")
cli.add_command(version_command, "version")


def main() -> None:
    debug = "--debug" in sys.argv
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        sys.exit(130)
    except click.exceptions.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except (Exception, KeyboardInterrupt) as e:
        sys.exit(handle_exception(e, debug_mode=debug))


if __name__ == "__main__":
    main()
